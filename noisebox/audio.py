from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import numpy as np
from numpy.typing import NDArray

FloatArray = NDArray[np.float32]
AudioNumbers = NDArray[np.floating[Any]] | Sequence[float] | FloatArray

SAMPLE_RATE = 44_100
BUFFER_SECONDS = 60
NOTE_LENGTH = 2  # seconds per minor-noise note
VIBRATO_RATE = 5.0  # oscillations per second
VIBRATO_DEPTH = 0.1


def samples_for(seconds: float, *, sample_rate: int = SAMPLE_RATE) -> int:
    return int(sample_rate * seconds)


def ensure_audio_contract(audio: AudioNumbers) -> FloatArray:
    """Normalize dtype and shape to a contiguous mono float32 buffer."""

    mono: FloatArray = np.ascontiguousarray(audio, dtype=np.float32).reshape(-1)
    return mono
