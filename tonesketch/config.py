from __future__ import annotations

import logging
import os
from types import MappingProxyType
from typing import Any, Literal, Mapping, cast, get_args

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import InvalidConfigError, InvalidRequestError

_LOGGER = logging.getLogger("tonesketch.config")

Instrument = Literal["piano", "guitar", "bass", "drums", "synth", "strings"]
Style = Literal["lofi", "edm", "jazz", "rock", "pop", "classical"]
Mode = Literal["melody", "chord", "beat", "continue"]

INSTRUMENTS: tuple[Instrument, ...] = get_args(Instrument)
STYLES: tuple[Style, ...] = get_args(Style)
MODES: tuple[Mode, ...] = get_args(Mode)

DEFAULT_INSTRUMENT: Instrument = "piano"
DEFAULT_STYLE: Style = "pop"
DEFAULT_MODE: Mode = "continue"

SAMPLE_RATE = 44_100
SECONDS_PER_BAR = 2
DEFAULT_MAX_BARS = 64
DEFAULT_RENDER_TIMEOUT = 30.0

MAX_BARS_ENV = "TONESKETCH_MAX_BARS"
RENDER_TIMEOUT_ENV = "TONESKETCH_RENDER_TIMEOUT"

# (base frequency in Hz, relative harmonic amplitudes)
INSTRUMENT_VOICES: Mapping[Instrument, tuple[float, tuple[float, ...]]] = MappingProxyType(
    {
        "piano": (440.0, (1.0, 0.5, 0.25, 0.125)),
        "guitar": (330.0, (1.0, 0.6, 0.3, 0.15, 0.1)),
        "bass": (110.0, (1.0, 0.8, 0.4, 0.2)),
        "drums": (60.0, (1.0, 0.3, 0.1)),
        "synth": (523.0, (1.0, 0.7, 0.5, 0.3, 0.2)),
        "strings": (440.0, (1.0, 0.8, 0.6, 0.4, 0.2)),
    }
)

STYLE_FREQUENCY_MULT: Mapping[Style, float] = MappingProxyType(
    {
        "lofi": 1.0,
        "edm": 1.2,
        "jazz": 0.8,
        "rock": 1.1,
        "pop": 1.0,
        "classical": 0.9,
    }
)

RHYTHM_GATES: Mapping[Style, tuple[float, ...]] = MappingProxyType(
    {
        "lofi": (1.0, 0.0, 0.5, 0.0, 0.8, 0.0, 0.3, 0.0),
        "edm": (1.0, 0.5, 1.0, 0.5, 1.0, 0.5, 1.0, 0.5),
        "jazz": (1.0, 0.0, 0.7, 0.3, 0.5, 0.0, 0.8, 0.2),
        "rock": (1.0, 0.0, 0.8, 0.0, 1.0, 0.0, 0.6, 0.0),
        "pop": (1.0, 0.3, 0.6, 0.3, 0.8, 0.3, 0.5, 0.3),
        "classical": (1.0, 0.2, 0.4, 0.6, 0.8, 0.6, 0.4, 0.2),
    }
)


def normalize_instrument(value: str) -> Instrument:
    if value in INSTRUMENT_VOICES:
        return cast(Instrument, value)
    return DEFAULT_INSTRUMENT


def normalize_style(value: str) -> Style:
    if value in RHYTHM_GATES:
        return cast(Style, value)
    return DEFAULT_STYLE


def normalize_mode(value: str) -> Mode:
    if value in MODES:
        return cast(Mode, value)
    return DEFAULT_MODE


class MusicalProperties(BaseModel):
    """Frequency, harmonic series and rhythm gate derived from instrument and style."""

    base_frequency: float
    harmonics: tuple[float, ...]
    rhythm_gate: tuple[float, ...] = Field(min_length=8, max_length=8)

    model_config = ConfigDict(frozen=True, extra="forbid")


def resolve_properties(instrument: str, style: str) -> MusicalProperties:
    """Look up voice and rhythm tables; unknown names fall back to piano / pop."""

    base_frequency, harmonics = INSTRUMENT_VOICES[normalize_instrument(instrument)]
    style_key = normalize_style(style)
    return MusicalProperties(
        base_frequency=base_frequency * STYLE_FREQUENCY_MULT[style_key],
        harmonics=harmonics,
        rhythm_gate=RHYTHM_GATES[style_key],
    )


class GenerationRequest(BaseModel):
    """Parameters for one clip.

    Instrument, style and mode are kept verbatim so that responses echo what
    the caller sent; they are normalised only when the clip is rendered.
    """

    instrument: str
    style: str
    mode: str
    bars: int = Field(ge=1)
    text_prompt: str | None = Field(default=None, alias="textPrompt")
    project_id: str | None = Field(default=None, alias="projectId")

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    @field_validator("bars", mode="before")
    @classmethod
    def _coerce_bars(cls, value: object) -> object:
        match value:
            case bool():
                raise ValueError("bars must be an integer")
            case int():
                return value
            case float() if value.is_integer():
                return int(value)
            case str() if value.strip().lstrip("+-").isdigit():
                return int(value.strip())
            case _:
                raise ValueError("bars must be an integer")

    @property
    def duration(self) -> int:
        return self.bars * SECONDS_PER_BAR

    @property
    def total_samples(self) -> int:
        return SAMPLE_RATE * self.duration

    @property
    def properties(self) -> MusicalProperties:
        return resolve_properties(self.instrument, self.style)


def parse_request(payload: Mapping[str, Any]) -> GenerationRequest:
    """Validate a request payload, raising InvalidRequestError on failure."""

    try:
        return GenerationRequest.model_validate(payload)
    except ValidationError as exc:
        _LOGGER.info("Rejected generation request: %s", exc)
        raise InvalidRequestError(_describe_validation_error(exc)) from exc


def _describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error["loc"]) or "request"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


def default_prompt(request: GenerationRequest) -> str:
    return (
        f"Generate a {request.style} {request.mode} for {request.instrument} "
        f"with {request.bars} bars"
    )


def suggestion_title(request: GenerationRequest) -> str:
    return f"{request.style[:1].upper()}{request.style[1:]} {request.mode} ({request.instrument})"


class Settings(BaseModel):
    """Runtime limits for rendering."""

    max_bars: int = Field(default=DEFAULT_MAX_BARS, ge=1)
    render_timeout: float = Field(default=DEFAULT_RENDER_TIMEOUT, gt=0)

    model_config = ConfigDict(frozen=True, extra="forbid")


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build settings from TONESKETCH_* environment variables."""

    env = os.environ if environ is None else environ
    values: dict[str, str] = {}
    if env.get(MAX_BARS_ENV):
        values["max_bars"] = env[MAX_BARS_ENV]
    if env.get(RENDER_TIMEOUT_ENV):
        values["render_timeout"] = env[RENDER_TIMEOUT_ENV]
    try:
        return Settings.model_validate(values)
    except ValidationError as exc:
        _LOGGER.warning("Failed to parse settings: %s", exc, exc_info=True)
        raise InvalidConfigError(str(exc)) from exc
