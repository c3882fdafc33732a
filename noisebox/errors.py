from __future__ import annotations


class NoiseboxError(Exception):
    """Base error for the noisebox package."""


class InvalidArgumentError(NoiseboxError):
    """Raised when a noise type, duration or buffer length cannot be used."""


class DeviceError(NoiseboxError):
    """Raised when the audio device cannot be initialized, opened or written."""
