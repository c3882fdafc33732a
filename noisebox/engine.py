from __future__ import annotations

import logging
import os
import signal
import threading
from types import FrameType
from typing import Any, Callable, Protocol

import numpy as np

from .audio import SAMPLE_RATE, FloatArray, ensure_audio_contract
from .sink import AudioSink

_LOGGER = logging.getLogger("noisebox.engine")

ExitFn = Callable[[int], Any]


class StopSignal:
    """One-shot stop request from the duration timer to the write loop.

    Setting it more than once, or after the loop has exited, is harmless.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def set(self) -> None:
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        return self._event.wait(timeout)


class InterruptSource(Protocol):
    def wait(self, timeout: float | None = None) -> bool: ...


class SignalInterruptSource:
    """Turns SIGINT/SIGTERM into an event the engine can wait on."""

    def __init__(self, signals: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)) -> None:
        self._signals = signals
        self._event = threading.Event()
        self._previous: dict[signal.Signals, Any] = {}

    def _handle(self, signum: int, frame: FrameType | None) -> None:
        _ = frame
        _LOGGER.debug("Received signal %d", signum)
        self._event.set()

    def install(self) -> None:
        for sig in self._signals:
            self._previous[sig] = signal.signal(sig, self._handle)

    def restore(self) -> None:
        for sig, handler in self._previous.items():
            signal.signal(sig, handler)
        self._previous.clear()

    def wait(self, timeout: float | None = None) -> bool:
        return self._event.wait(timeout)

    def __enter__(self) -> "SignalInterruptSource":
        self.install()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.restore()


class StreamingEngine:
    """Loops one precomputed buffer into an audio sink until stopped.

    There are two ways out, and they are deliberately different:

    * the duration timer sets a :class:`StopSignal`; the write loop sees it
      at the next iteration boundary, lets the in-flight write finish, then
      releases the sink (``stop``, ``close``, ``terminate``). The caller keeps
      waiting for an interrupt afterwards.
    * an interrupt ends the process right away through ``exit_process``.
      In-flight writes and sink cleanup are not waited for.
    """

    def __init__(
        self,
        sink: AudioSink,
        *,
        interrupt: InterruptSource | None = None,
        exit_process: ExitFn = os._exit,
        sample_rate: int = SAMPLE_RATE,
        poll_interval: float = 0.1,
    ) -> None:
        self._sink = sink
        # Without an explicit source, run() installs SIGINT/SIGTERM handlers itself.
        self._owned_interrupt = SignalInterruptSource() if interrupt is None else None
        self._interrupt: InterruptSource = interrupt or self._owned_interrupt
        self._exit_process = exit_process
        self._sample_rate = sample_rate
        self._poll_interval = poll_interval
        self.stop_signal = StopSignal()
        self._error: list[BaseException] = []
        self._writer: threading.Thread | None = None
        self._timer: threading.Timer | None = None
        self.writes = 0

    @property
    def writer(self) -> threading.Thread | None:
        return self._writer

    def run(self, buffer: FloatArray, *, duration: float | None = None) -> None:
        samples = ensure_audio_contract(buffer)
        owned = self._owned_interrupt
        if owned is not None:
            owned.install()
        try:
            self._start(samples, duration)
            while not self._interrupt.wait(self._poll_interval):
                if self._error:
                    raise self._error[0]
            _LOGGER.info("Interrupted, exiting")
            self._exit_process(0)
        finally:
            if self._timer is not None:
                self._timer.cancel()
            if owned is not None:
                owned.restore()

    def _start(self, samples: FloatArray, duration: float | None) -> None:
        sink = self._sink
        sink.initialize()
        sink.open_stream(1, self._sample_rate, len(samples))
        sink.start()
        _LOGGER.info(
            "Playing %.1fs buffer on loop (%s)",
            len(samples) / self._sample_rate,
            "until interrupted" if duration is None else f"for {duration:g}s",
        )

        self._writer = threading.Thread(
            target=self._write_loop,
            args=(samples,),
            name="noisebox-writer",
            daemon=True,
        )
        self._writer.start()

        if duration is not None:
            self._timer = threading.Timer(max(duration, 0.0), self._on_duration_elapsed)
            self._timer.daemon = True
            self._timer.start()

    def _on_duration_elapsed(self) -> None:
        _LOGGER.info("Duration elapsed, stopping playback")
        self.stop_signal.set()

    def _write_loop(self, samples: FloatArray) -> None:
        sink = self._sink
        try:
            try:
                while not self.stop_signal.is_set():
                    np.copyto(sink.buffer, samples)
                    sink.write()
                    self.writes += 1
            finally:
                self._release()
        except BaseException as exc:
            _LOGGER.error("Write loop failed: %s", exc, exc_info=True)
            self._error.append(exc)

    def _release(self) -> None:
        for step in (self._sink.stop, self._sink.close, self._sink.terminate):
            try:
                step()
                _LOGGER.debug("Sink %s done", step.__name__)
            except Exception as exc:
                _LOGGER.warning("Sink %s failed: %s", step.__name__, exc, exc_info=True)
