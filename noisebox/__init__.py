from __future__ import annotations

from .audio import NOTE_LENGTH, SAMPLE_RATE, FloatArray
from .config import NoiseType, PlaybackConfig, parse_duration, parse_noise_type
from .engine import InterruptSource, SignalInterruptSource, StopSignal, StreamingEngine
from .errors import DeviceError, InvalidArgumentError, NoiseboxError
from .generators import (
    PinkNoiseState,
    brown_noise,
    build_note_table,
    generate,
    minor_noise,
    pink_noise,
    white_noise,
)
from .logging_utils import configure_logging as _configure_logging
from .sink import AudioSink, DeviceInfo, SoundDeviceSink, StreamHandle, list_devices

__all__ = [
    "NOTE_LENGTH",
    "SAMPLE_RATE",
    "AudioSink",
    "DeviceError",
    "DeviceInfo",
    "FloatArray",
    "InterruptSource",
    "InvalidArgumentError",
    "NoiseType",
    "NoiseboxError",
    "PinkNoiseState",
    "PlaybackConfig",
    "SignalInterruptSource",
    "SoundDeviceSink",
    "StopSignal",
    "StreamHandle",
    "StreamingEngine",
    "brown_noise",
    "build_note_table",
    "generate",
    "list_devices",
    "minor_noise",
    "parse_duration",
    "parse_noise_type",
    "pink_noise",
    "white_noise",
]

__version__ = "0.1.0"

_configure_logging()
del _configure_logging
