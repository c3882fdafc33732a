from __future__ import annotations

import argparse
import logging
import os
import sys

from rich.console import Console

from .config import NoiseType, PlaybackConfig
from .engine import SignalInterruptSource, StreamingEngine
from .generators import generate
from .logging_utils import configure_logging, debug_enabled, log_exception
from .sink import SoundDeviceSink, list_devices
from .spinner import Spinner, render_error

_LOGGER = logging.getLogger("noisebox.cli")
_CONSOLE = Console()
_COMMANDS = ("play", "list", "help")
_NOISE_CHOICES = ", ".join(kind.value for kind in NoiseType)
_HELP_LINES = (
    f"play: Play noise. Options: --duration [10s, 2m, 3h], --type [{_NOISE_CHOICES}]",
    "list: List audio devices. No options.",
    "help: Show this help message.",
)


def _exit_now(code: int) -> None:
    os._exit(code)


def _device_arg(value: str) -> int | str:
    return int(value) if value.isdigit() else value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="noisebox", add_help=False)
    sub = parser.add_subparsers(dest="command", required=True)

    play = sub.add_parser("play", help="Play noise until interrupted or the duration elapses.")
    play.add_argument(
        "--duration",
        type=str,
        default="",
        help="How long to play (default: until interrupted, format: 10s, 2m, 3h).",
    )
    # Validated by PlaybackConfig so that unknown names surface as InvalidArgumentError.
    play.add_argument("--type", type=str, default="white", help=f"Noise type ({_NOISE_CHOICES}).")
    play.add_argument("--device", type=_device_arg, default=None, help="Output device id or name.")

    sub.add_parser("list", help="List audio devices.")
    sub.add_parser("help", help="Show this help message.")
    return parser


def _play(args: argparse.Namespace) -> int:
    config = PlaybackConfig.from_args(args.type, args.duration, device=args.device)
    with Spinner(f"Generating {config.noise_type} noise"):
        samples = generate(
            config.noise_type,
            config.buffer_length,
            sample_rate=config.sample_rate,
            note_length=config.note_length,
        )
    sink = SoundDeviceSink(device=config.device, blocksize=config.blocksize)
    with SignalInterruptSource() as interrupt:
        engine = StreamingEngine(
            sink,
            interrupt=interrupt,
            exit_process=_exit_now,
            sample_rate=config.sample_rate,
        )
        engine.run(samples, duration=config.duration)
    return 0


def _list() -> int:
    for device in list_devices():
        _CONSOLE.print(device.describe(), highlight=False, markup=False, soft_wrap=True)
    return 0


def _help() -> int:
    for line in _HELP_LINES:
        _CONSOLE.print(line, highlight=False, markup=False, soft_wrap=True)
    return 0


def main(argv: list[str] | None = None) -> int:
    log_path = configure_logging()
    _LOGGER.debug("Logging to %s", log_path)
    args_list = sys.argv[1:] if argv is None else argv
    if not args_list or args_list[0] not in _COMMANDS:
        _CONSOLE.print("Expected 'play' or 'list' commands", highlight=False)
        return 1
    try:
        parser = build_parser()
        args = parser.parse_args(args_list)

        if args.command == "play":
            return _play(args)
        if args.command == "list":
            return _list()
        return _help()
    except Exception as exc:
        _LOGGER.warning("noisebox CLI failed: %s", exc, exc_info=debug_enabled())
        log_exception("noisebox CLI", exc)
        render_error("noisebox CLI", exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
