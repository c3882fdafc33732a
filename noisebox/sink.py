from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

import numpy as np
from pydantic import BaseModel, ConfigDict

from .audio import FloatArray
from .errors import DeviceError

_LOGGER = logging.getLogger("noisebox.sink")


class StreamHandle(BaseModel):
    channels: int
    sample_rate: int
    buffer_size: int
    device: int | str | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")


class DeviceInfo(BaseModel):
    id: int
    name: str
    max_input_channels: int
    max_output_channels: int
    default_sample_rate: float

    model_config = ConfigDict(frozen=True, extra="ignore")

    def describe(self) -> str:
        return (
            f"ID: {self.id}, Name: {self.name}, "
            f"MaxInputChannels: {self.max_input_channels}, "
            f"MaxOutputChannels: {self.max_output_channels}, "
            f"DefaultSampleRate: {self.default_sample_rate:f}"
        )


@runtime_checkable
class AudioSink(Protocol):
    """Output device seen by the streaming engine.

    ``buffer`` is the write target allocated by ``open_stream``; ``write``
    blocks until the device has accepted its contents.
    """

    buffer: FloatArray

    def initialize(self) -> None: ...

    def open_stream(self, channels: int, sample_rate: int, buffer_size: int) -> StreamHandle: ...

    def start(self) -> None: ...

    def write(self) -> None: ...

    def stop(self) -> None: ...

    def close(self) -> None: ...

    def terminate(self) -> None: ...


def _load_sounddevice() -> Any:
    try:
        import sounddevice as sd_module  # type: ignore[import]
    except (ImportError, OSError) as exc:
        # OSError: the module imports but the PortAudio library is missing.
        _LOGGER.info("sounddevice not available: %s", exc, exc_info=True)
        raise DeviceError(f"Could not initialize audio output: {exc}") from exc
    return sd_module


class SoundDeviceSink:
    """Blocking mono float32 output through ``sounddevice.OutputStream``."""

    def __init__(self, *, device: int | str | None = None, blocksize: int = 0) -> None:
        self._device = device
        self._blocksize = blocksize
        self._sd: Any = None
        self._stream: Any = None
        self.buffer: FloatArray = np.zeros(0, dtype=np.float32)

    def initialize(self) -> None:
        sd = _load_sounddevice()
        try:
            sd.query_devices(self._device, kind="output")
        except (sd.PortAudioError, ValueError) as exc:
            raise DeviceError(f"Could not initialize audio output: {exc}") from exc
        self._sd = sd
        _LOGGER.debug("Audio output initialized (device=%s)", self._device)

    def open_stream(self, channels: int, sample_rate: int, buffer_size: int) -> StreamHandle:
        if self._sd is None:
            raise DeviceError("Audio output is not initialized")
        sd = self._sd
        try:
            self._stream = sd.OutputStream(
                samplerate=sample_rate,
                channels=channels,
                dtype="float32",
                blocksize=self._blocksize,
                device=self._device,
            )
        except (sd.PortAudioError, ValueError) as exc:
            raise DeviceError(f"Could not open default stream: {exc}") from exc
        self.buffer = np.zeros(buffer_size, dtype=np.float32)
        return StreamHandle(
            channels=channels,
            sample_rate=sample_rate,
            buffer_size=buffer_size,
            device=self._device,
        )

    def _require_stream(self) -> Any:
        if self._stream is None:
            raise DeviceError("Audio stream is not open")
        return self._stream

    def start(self) -> None:
        stream = self._require_stream()
        try:
            stream.start()
        except self._sd.PortAudioError as exc:
            self.close()
            raise DeviceError(f"Could not start stream: {exc}") from exc

    def write(self) -> None:
        stream = self._require_stream()
        try:
            underflowed = stream.write(self.buffer.reshape(-1, 1))
        except self._sd.PortAudioError as exc:
            raise DeviceError(f"Could not write to stream: {exc}") from exc
        if underflowed:
            _LOGGER.debug("Output underflow reported by device")

    def stop(self) -> None:
        if self._stream is not None:
            self._stream.stop()

    def close(self) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None

    def terminate(self) -> None:
        # sounddevice owns the PortAudio lifetime; dropping the handle is all
        # that is left for us to release.
        self._sd = None
        _LOGGER.debug("Audio output terminated")


def list_devices() -> list[DeviceInfo]:
    sd = _load_sounddevice()
    try:
        devices = sd.query_devices()
    except sd.PortAudioError as exc:
        raise DeviceError(f"Could not list devices: {exc}") from exc
    return [
        DeviceInfo(
            id=index,
            name=str(device["name"]),
            max_input_channels=int(device["max_input_channels"]),
            max_output_channels=int(device["max_output_channels"]),
            default_sample_rate=float(device["default_samplerate"]),
        )
        for index, device in enumerate(devices)
    ]
