from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Mapping

import numpy as np
from numpy.typing import NDArray
from scipy.signal import lfilter  # type: ignore[import]

from .audio import NOTE_LENGTH, SAMPLE_RATE, VIBRATO_DEPTH, VIBRATO_RATE, FloatArray
from .config import NoiseType, parse_noise_type
from .errors import InvalidArgumentError

_LOGGER = logging.getLogger("noisebox.generators")

PINK_SLOTS = 16
NOTE_TABLE_SIZE = 16
BROWN_GAIN = 0.02
BROWN_DAMPING = 1.02

_default_rng: np.random.Generator | None = None


def default_rng() -> np.random.Generator:
    """Process-wide generator, seeded once from the wall clock."""

    global _default_rng
    if _default_rng is None:
        seed = time.time_ns()
        _default_rng = np.random.default_rng(seed)
        _LOGGER.debug("Seeded random source with %d", seed)
    return _default_rng


def _uniform(rng: np.random.Generator, size: int | None = None) -> NDArray[np.float64]:
    return rng.uniform(-1.0, 1.0, size)


# -----------------------------------------------------------------------------
# White / brown
# -----------------------------------------------------------------------------


def white_noise(length: int, rng: np.random.Generator) -> FloatArray:
    return _uniform(rng, length).astype(np.float32)


def brown_noise(length: int, rng: np.random.Generator) -> FloatArray:
    """Damped random walk: ``y[n] = (y[n-1] + 0.02 * g[n]) / 1.02`` with ``y[-1] = 0``."""

    gaussian = rng.standard_normal(length)
    walk = lfilter([BROWN_GAIN], [BROWN_DAMPING, -1.0], gaussian)
    return np.asarray(walk, dtype=np.float32)


# -----------------------------------------------------------------------------
# Pink
# -----------------------------------------------------------------------------


@dataclass(slots=True)
class PinkNoiseState:
    """Rolling slot values for the random-slot pink noise scheme."""

    values: NDArray[np.float64]

    @classmethod
    def random(cls, rng: np.random.Generator, slots: int = PINK_SLOTS) -> PinkNoiseState:
        return cls(values=_uniform(rng, slots))

    def advance(
        self,
        slots: NDArray[np.int64],
        replacements: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        """Replace ``values[slots[i]]`` with ``replacements[i]`` in order.

        Each output is the slot's value before the update minus its
        replacement. The state keeps the last replacement written per slot.
        """

        out = np.empty(len(slots), dtype=np.float64)
        for slot in range(len(self.values)):
            (hits,) = np.nonzero(slots == slot)
            if hits.size == 0:
                continue
            chain = np.concatenate(([self.values[slot]], replacements[hits]))
            out[hits] = chain[:-1] - chain[1:]
            self.values[slot] = chain[-1]
        return out


def pink_noise(
    length: int,
    rng: np.random.Generator,
    state: PinkNoiseState | None = None,
) -> FloatArray:
    pink_state = state if state is not None else PinkNoiseState.random(rng)
    slots = rng.integers(0, len(pink_state.values), size=length)
    replacements = _uniform(rng, length)
    return pink_state.advance(slots, replacements).astype(np.float32)


# -----------------------------------------------------------------------------
# Minor
# -----------------------------------------------------------------------------


def build_note_table(rng: np.random.Generator, size: int = NOTE_TABLE_SIZE) -> NDArray[np.float64]:
    octaves = rng.integers(2, 5, size=size)
    steps = rng.integers(0, 7, size=size)
    return 440.0 * np.power(2.0, (octaves + steps) / 12.0)


def render_note(frequency: float, window: int, sample_rate: int = SAMPLE_RATE) -> NDArray[np.float64]:
    j = np.arange(window, dtype=np.float64)
    omega = 2.0 * math.pi * frequency / sample_rate
    vibrato = 1.0 + VIBRATO_DEPTH * np.sin(2.0 * math.pi * VIBRATO_RATE * j / sample_rate)
    envelope = np.sin(math.pi * j / window)
    return envelope * vibrato * np.sin(j * omega)


def minor_noise(
    length: int,
    rng: np.random.Generator,
    *,
    sample_rate: int = SAMPLE_RATE,
    note_length: int = NOTE_LENGTH,
) -> FloatArray:
    """Random notes from a fresh table, one per full window; the tail stays silent."""

    samples = np.zeros(length, dtype=np.float32)
    notes = build_note_table(rng)
    window = note_length * sample_rate
    for start in range(0, length - window + 1, window):
        frequency = float(notes[rng.integers(len(notes))])
        samples[start : start + window] = render_note(frequency, window, sample_rate)
    return samples


# -----------------------------------------------------------------------------
# Dispatch
# -----------------------------------------------------------------------------

_SimpleGenerator = Callable[[int, np.random.Generator], FloatArray]

_GENERATORS: Mapping[NoiseType, _SimpleGenerator] = MappingProxyType(
    {
        NoiseType.WHITE: white_noise,
        NoiseType.BROWN: brown_noise,
        NoiseType.PINK: pink_noise,
    }
)


def generate(
    noise_type: NoiseType | str,
    length: int,
    *,
    rng: np.random.Generator | None = None,
    sample_rate: int = SAMPLE_RATE,
    note_length: int = NOTE_LENGTH,
) -> FloatArray:
    """Synthesize ``length`` mono samples of the requested noise."""

    kind = parse_noise_type(noise_type)
    if length < 0:
        raise InvalidArgumentError(f"buffer length must be non-negative, got {length}")
    source = rng if rng is not None else default_rng()
    started = time.monotonic()
    if kind is NoiseType.MINOR:
        samples = minor_noise(length, source, sample_rate=sample_rate, note_length=note_length)
    else:
        samples = _GENERATORS[kind](length, source)
    _LOGGER.debug(
        "Generated %d %s samples in %.3fs",
        length,
        kind.value,
        time.monotonic() - started,
    )
    return samples
