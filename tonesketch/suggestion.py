from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Literal

import numpy as np
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .audio import encode_wav, to_data_url
from .config import (
    GenerationRequest,
    Settings,
    default_prompt,
    load_settings,
    suggestion_title,
)
from .errors import BarLimitError
from .synth import render

_LOGGER = logging.getLogger("tonesketch.suggestion")


def _utc_timestamp() -> str:
    # millisecond precision with a Z suffix, like JavaScript toISOString
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Suggestion(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    audio_url: str
    title: str
    instrument: str
    style: str
    mode: str
    bars: int
    duration: int
    generated_at: str = Field(default_factory=_utc_timestamp)

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class SuggestionResult(BaseModel):
    success: Literal[True] = True
    suggestion: Suggestion
    prompt: str

    model_config = ConfigDict(frozen=True)

    def to_payload(self) -> dict[str, object]:
        return self.model_dump(by_alias=True)


def check_limits(request: GenerationRequest, settings: Settings) -> None:
    if request.bars > settings.max_bars:
        raise BarLimitError(f"bars must be at most {settings.max_bars}, got {request.bars}")


def render_clip(
    request: GenerationRequest,
    *,
    settings: Settings | None = None,
    rng: np.random.Generator | None = None,
    seed: int | None = None,
) -> bytes:
    """Render a request straight to WAV bytes."""

    active = settings or load_settings()
    check_limits(request, active)
    samples = render(request, rng=rng, seed=seed, timeout=active.render_timeout)
    return encode_wav(samples)


def generate_suggestion(
    request: GenerationRequest,
    *,
    settings: Settings | None = None,
    rng: np.random.Generator | None = None,
    seed: int | None = None,
) -> SuggestionResult:
    _LOGGER.info(
        "Generating suggestion: project=%s instrument=%s style=%s mode=%s bars=%d",
        request.project_id,
        request.instrument,
        request.style,
        request.mode,
        request.bars,
    )
    wav = render_clip(request, settings=settings, rng=rng, seed=seed)
    suggestion = Suggestion(
        audio_url=to_data_url(wav),
        title=suggestion_title(request),
        instrument=request.instrument,
        style=request.style,
        mode=request.mode,
        bars=request.bars,
        duration=request.duration,
    )
    _LOGGER.info(
        "Generated suggestion %s (%s, %d bytes)", suggestion.id, suggestion.title, len(wav)
    )
    return SuggestionResult(suggestion=suggestion, prompt=request.text_prompt or default_prompt(request))
