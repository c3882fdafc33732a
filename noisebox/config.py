from __future__ import annotations

import logging
import re
from enum import Enum
from types import MappingProxyType
from typing import Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .audio import BUFFER_SECONDS, NOTE_LENGTH, SAMPLE_RATE, samples_for
from .errors import InvalidArgumentError

_LOGGER = logging.getLogger("noisebox.config")


class NoiseType(str, Enum):
    WHITE = "white"
    BROWN = "brown"
    PINK = "pink"
    MINOR = "minor"

    def __str__(self) -> str:
        return self.value.capitalize()


def parse_noise_type(value: str | NoiseType) -> NoiseType:
    if isinstance(value, NoiseType):
        return value
    try:
        return NoiseType(value.strip().lower())
    except (ValueError, AttributeError) as exc:
        raise InvalidArgumentError(f"invalid noise type: {value}") from exc


# -----------------------------------------------------------------------------
# Durations: "10s", "2m", "1h30m", "1.5s", "300ms"
# -----------------------------------------------------------------------------

_UNIT_SECONDS: Mapping[str, float] = MappingProxyType(
    {
        "ns": 1e-9,
        "us": 1e-6,
        "µs": 1e-6,
        "μs": 1e-6,
        "ms": 1e-3,
        "s": 1.0,
        "m": 60.0,
        "h": 3600.0,
    }
)
_DURATION_RE = re.compile(r"^[-+]?(?:(?:\d+\.?\d*|\.\d+)(?:ns|us|µs|μs|ms|s|m|h))+$")
_MAX_NANOSECONDS = 2**63 - 1
_PART_RE = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(text: str) -> float:
    """Parse a duration string into seconds.

    The accepted grammar is a signed sequence of decimal numbers, each with a
    unit suffix (``ns``, ``us``, ``ms``, ``s``, ``m``, ``h``). A bare ``0`` is
    also accepted. Negative values are returned as-is; callers treat them as
    "already elapsed".
    """

    raw = text.strip()
    if raw in {"0", "+0", "-0"}:
        return 0.0
    if not raw or not _DURATION_RE.match(raw):
        raise InvalidArgumentError(f"could not parse duration: {text}")
    sign = -1.0 if raw.startswith("-") else 1.0
    total = 0.0
    for number, unit in _PART_RE.findall(raw):
        total += float(number) * _UNIT_SECONDS[unit]
    # Durations are bounded by a signed 64-bit nanosecond count.
    if total * 1e9 > _MAX_NANOSECONDS:
        raise InvalidArgumentError(f"could not parse duration: {text}")
    return sign * total


class PlaybackConfig(BaseModel):
    """Validated settings for one playback run."""

    noise_type: NoiseType = NoiseType.WHITE
    duration: float | None = None
    sample_rate: int = Field(default=SAMPLE_RATE, gt=0)
    buffer_seconds: int = Field(default=BUFFER_SECONDS, gt=0)
    note_length: int = Field(default=NOTE_LENGTH, gt=0)
    channels: Literal[1] = 1
    device: int | str | None = None
    blocksize: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("noise_type", mode="before")
    @classmethod
    def _coerce_noise_type(cls, value: object) -> object:
        if isinstance(value, str):
            try:
                return parse_noise_type(value)
            except InvalidArgumentError as exc:
                raise ValueError(str(exc)) from exc
        return value

    @property
    def buffer_length(self) -> int:
        return samples_for(self.buffer_seconds, sample_rate=self.sample_rate)

    @classmethod
    def from_args(
        cls,
        noise_type: str | NoiseType = NoiseType.WHITE,
        duration: str | None = None,
        **overrides: object,
    ) -> PlaybackConfig:
        parsed_type = parse_noise_type(noise_type)
        parsed_duration = parse_duration(duration) if duration else None
        try:
            config = cls.model_validate(
                {"noise_type": parsed_type, "duration": parsed_duration, **overrides}
            )
        except ValidationError as exc:
            raise InvalidArgumentError(f"invalid playback settings: {exc}") from exc
        _LOGGER.debug("Playback config: %s", config.model_dump())
        return config
