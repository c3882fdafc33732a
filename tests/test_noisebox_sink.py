from __future__ import annotations

import sys
import types

import numpy as np
import pytest

from noisebox.errors import DeviceError
from noisebox.sink import AudioSink, SoundDeviceSink, list_devices


class _PortAudioError(Exception):
    pass


class _FakeOutputStream:
    instances: list["_FakeOutputStream"] = []

    def __init__(self, **kwargs: object) -> None:
        self.kwargs = kwargs
        self.calls: list[str] = []
        self.written: list[np.ndarray] = []
        self.fail_write = False
        self.fail_start = False
        _FakeOutputStream.instances.append(self)

    def start(self) -> None:
        self.calls.append("start")
        if self.fail_start:
            raise _PortAudioError("Invalid sample rate")

    def write(self, data: np.ndarray) -> bool:
        if self.fail_write:
            raise _PortAudioError("Stream is stopped")
        self.written.append(data.copy())
        return False

    def stop(self) -> None:
        self.calls.append("stop")

    def close(self) -> None:
        self.calls.append("close")


_DEVICES = [
    {
        "name": "Built-in Microphone",
        "max_input_channels": 2,
        "max_output_channels": 0,
        "default_samplerate": 48_000.0,
    },
    {
        "name": "Built-in Output",
        "max_input_channels": 0,
        "max_output_channels": 2,
        "default_samplerate": 44_100.0,
    },
]


def _fake_sounddevice(*, broken: bool = False) -> types.ModuleType:
    module = types.ModuleType("sounddevice")

    def query_devices(device: object = None, kind: str | None = None) -> object:
        if broken:
            raise _PortAudioError("Error querying device -1")
        if kind == "output":
            return _DEVICES[1]
        return _DEVICES

    module.PortAudioError = _PortAudioError  # type: ignore[attr-defined]
    module.OutputStream = _FakeOutputStream  # type: ignore[attr-defined]
    module.query_devices = query_devices  # type: ignore[attr-defined]
    return module


@pytest.fixture
def fake_sd(monkeypatch: pytest.MonkeyPatch) -> types.ModuleType:
    _FakeOutputStream.instances.clear()
    module = _fake_sounddevice()
    monkeypatch.setitem(sys.modules, "sounddevice", module)
    return module


def test_sounddevice_sink_satisfies_protocol() -> None:
    assert isinstance(SoundDeviceSink(), AudioSink)


def test_sink_lifecycle_writes_mono_frames(fake_sd: types.ModuleType) -> None:
    sink = SoundDeviceSink(device=1, blocksize=512)
    sink.initialize()
    handle = sink.open_stream(1, 44_100, 4)
    assert handle.buffer_size == 4
    assert sink.buffer.shape == (4,)

    stream = _FakeOutputStream.instances[-1]
    assert stream.kwargs == {
        "samplerate": 44_100,
        "channels": 1,
        "dtype": "float32",
        "blocksize": 512,
        "device": 1,
    }

    sink.start()
    sink.buffer[:] = [0.1, 0.2, 0.3, 0.4]
    sink.write()
    sink.stop()
    sink.close()
    sink.terminate()

    assert stream.calls == ["start", "stop", "close"]
    assert stream.written[0].shape == (4, 1)
    assert np.allclose(stream.written[0][:, 0], [0.1, 0.2, 0.3, 0.4])


def test_sink_write_error_becomes_device_error(fake_sd: types.ModuleType) -> None:
    sink = SoundDeviceSink()
    sink.initialize()
    sink.open_stream(1, 44_100, 2)
    _FakeOutputStream.instances[-1].fail_write = True
    with pytest.raises(DeviceError, match="Could not write to stream"):
        sink.write()


def test_start_failure_closes_stream(fake_sd: types.ModuleType) -> None:
    sink = SoundDeviceSink()
    sink.initialize()
    sink.open_stream(1, 44_100, 2)
    stream = _FakeOutputStream.instances[-1]
    stream.fail_start = True
    with pytest.raises(DeviceError, match="Could not start stream"):
        sink.start()
    assert stream.calls == ["start", "close"]
    with pytest.raises(DeviceError, match="not open"):
        sink.write()


def test_open_stream_requires_initialize(fake_sd: types.ModuleType) -> None:
    with pytest.raises(DeviceError, match="not initialized"):
        SoundDeviceSink().open_stream(1, 44_100, 2)


def test_initialize_reports_device_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(sys.modules, "sounddevice", _fake_sounddevice(broken=True))
    with pytest.raises(DeviceError, match="Could not initialize audio output"):
        SoundDeviceSink().initialize()


def test_missing_sounddevice_is_device_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(sys.modules, "sounddevice", None)
    with pytest.raises(DeviceError):
        SoundDeviceSink().initialize()


def test_list_devices(fake_sd: types.ModuleType) -> None:
    devices = list_devices()
    assert [device.id for device in devices] == [0, 1]
    assert devices[1].describe() == (
        "ID: 1, Name: Built-in Output, MaxInputChannels: 0, "
        "MaxOutputChannels: 2, DefaultSampleRate: 44100.000000"
    )


def test_list_devices_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(sys.modules, "sounddevice", _fake_sounddevice(broken=True))
    with pytest.raises(DeviceError, match="Could not list devices"):
        list_devices()
