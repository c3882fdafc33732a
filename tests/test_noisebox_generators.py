from __future__ import annotations

import numpy as np
import pytest

from noisebox import SAMPLE_RATE, InvalidArgumentError, NoiseType, generate
from noisebox.generators import (
    PinkNoiseState,
    brown_noise,
    build_note_table,
    default_rng,
    minor_noise,
    pink_noise,
    render_note,
    white_noise,
)

WINDOW = 2 * SAMPLE_RATE


def _rng(seed: int = 1234) -> np.random.Generator:
    return np.random.default_rng(seed)


def test_generate_white_one_second() -> None:
    samples = generate(NoiseType.WHITE, 44_100, rng=_rng())
    assert samples.shape == (44_100,)
    assert samples.dtype == np.float32
    assert np.all(samples >= -1.0)
    assert np.all(samples <= 1.0)


def test_white_noise_is_centered_and_uncorrelated() -> None:
    samples = white_noise(200_000, _rng()).astype(np.float64)
    assert abs(samples.mean()) < 0.01
    lag_one = np.corrcoef(samples[:-1], samples[1:])[0, 1]
    assert abs(lag_one) < 0.01


def test_brown_noise_follows_damped_walk() -> None:
    samples = brown_noise(5_000, _rng(7))
    gaussian = _rng(7).standard_normal(5_000)

    expected = np.empty(5_000)
    previous = 0.0
    for index, draw in enumerate(gaussian):
        previous = (previous + 0.02 * draw) / 1.02
        expected[index] = previous

    assert samples[0] == pytest.approx(0.02 * gaussian[0] / 1.02, rel=1e-6)
    assert np.allclose(samples, expected, atol=1e-6)


def test_pink_state_requires_explicit_values() -> None:
    with pytest.raises(TypeError):
        PinkNoiseState()  # type: ignore[call-arg]


def test_pink_state_advance_subtracts_replacement() -> None:
    state = PinkNoiseState(values=np.array([0.5, -0.5]))
    out = state.advance(np.array([0, 0, 1]), np.array([0.1, 0.2, 0.3]))
    assert np.allclose(out, [0.4, -0.1, -0.8])
    assert np.allclose(state.values, [0.2, 0.3])


def test_pink_noise_bounds_and_state() -> None:
    rng = _rng()
    state = PinkNoiseState.random(rng)
    samples = pink_noise(50_000, rng, state)
    assert len(state.values) == 16
    assert np.all(np.abs(state.values) <= 1.0)
    assert np.all(np.abs(samples) <= 2.0)
    assert np.any(samples != 0.0)


def test_pink_noise_uses_every_slot() -> None:
    rng = _rng(3)
    state = PinkNoiseState.random(rng)
    before = state.values.copy()
    pink_noise(2_000, rng, state)
    assert np.all(state.values != before)


def test_note_table_uses_minor_register() -> None:
    table = build_note_table(_rng())
    allowed = {440.0 * 2 ** ((octave + step) / 12) for octave in (2, 3, 4) for step in range(7)}
    assert table.shape == (16,)
    for frequency in table:
        assert any(frequency == pytest.approx(value) for value in allowed)


def test_render_note_envelope_is_zero_at_edges() -> None:
    note = render_note(440.0, WINDOW)
    assert note[0] == 0.0
    assert abs(note[-1]) < 1e-3
    assert np.max(np.abs(note)) <= 1.1 + 1e-9


def test_generate_minor_single_window() -> None:
    samples = generate("minor", WINDOW, rng=_rng(11))
    assert samples.shape == (WINDOW,)
    assert samples[0] == 0.0
    assert np.count_nonzero(samples) > WINDOW // 2


def test_minor_noise_one_frequency_per_window() -> None:
    samples = minor_noise(2 * WINDOW, _rng(5))

    replay = _rng(5)
    table = build_note_table(replay)
    for start in (0, WINDOW):
        frequency = float(table[replay.integers(len(table))])
        expected = render_note(frequency, WINDOW).astype(np.float32)
        assert np.allclose(samples[start : start + WINDOW], expected, atol=1e-6)


def test_minor_noise_leaves_partial_tail_silent() -> None:
    samples = minor_noise(WINDOW + 1_000, _rng())
    assert np.all(samples[WINDOW:] == 0.0)


def test_minor_noise_shorter_than_note_is_silent() -> None:
    samples = minor_noise(WINDOW - 1, _rng())
    assert not np.any(samples)


def test_generate_rejects_unknown_type() -> None:
    with pytest.raises(InvalidArgumentError, match="red"):
        generate("red", 10, rng=_rng())


def test_generate_rejects_negative_length() -> None:
    with pytest.raises(InvalidArgumentError):
        generate(NoiseType.PINK, -1, rng=_rng())


@pytest.mark.parametrize("kind", list(NoiseType))
def test_generate_empty_buffer(kind: NoiseType) -> None:
    assert generate(kind, 0, rng=_rng()).shape == (0,)


def test_default_rng_is_shared() -> None:
    assert default_rng() is default_rng()
