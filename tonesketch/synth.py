"""
Architecture:

1. Generators: per-mode waveform functions of sample time
2. Envelope: fades plus style-specific amplitude shaping
3. Renderer: request -> float sample buffer, rendered block by block
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from types import MappingProxyType
from typing import Callable, TypeAlias

import numpy as np
from numpy.typing import NDArray

from .config import (
    SAMPLE_RATE,
    GenerationRequest,
    Mode,
    MusicalProperties,
    Style,
    normalize_instrument,
    normalize_mode,
    normalize_style,
)
from .errors import RenderTimeoutError

_LOGGER = logging.getLogger("tonesketch.synth")

FloatArray: TypeAlias = NDArray[np.float64]

# =============================================================================
# CONSTANTS
# =============================================================================

# Major-scale walk, one step every half second
MELODY_RATIOS: tuple[float, ...] = (1.0, 1.125, 1.25, 1.5, 1.333, 1.125, 1.0)
# Chord roots, one change every two seconds
CHORD_ROOTS: tuple[float, ...] = (1.0, 1.5, 1.333, 1.125)
MAJOR_TRIAD: tuple[float, ...] = (1.0, 1.25, 1.5)

BEAT_CYCLE_SECONDS = 2.0
KICK_PERIOD_SECONDS = 0.5
KICK_FREQUENCY = 60.0

MAX_FADE_SECONDS = 0.1
BLOCK_SAMPLES = SAMPLE_RATE

TWO_PI = 2.0 * np.pi


# =============================================================================
# PART 1: GENERATORS
# =============================================================================


def _harmonic_sum(t: FloatArray, freq: FloatArray | float, harmonics: tuple[float, ...]) -> FloatArray:
    total = np.zeros_like(t)
    for index, weight in enumerate(harmonics):
        total += weight * np.sin(TWO_PI * freq * (index + 1) * t)
    return total


def melody(t: FloatArray, props: MusicalProperties) -> FloatArray:
    """Stepwise major-scale line with a light 5 Hz vibrato."""
    step = np.floor(np.mod(t * 2.0, len(MELODY_RATIOS))).astype(np.intp)
    freq = props.base_frequency * np.asarray(MELODY_RATIOS)[step]
    vibrato = 1.0 + 0.02 * np.sin(TWO_PI * 5.0 * t)
    return _harmonic_sum(t, freq, props.harmonics) * vibrato * 0.3


def chord(t: FloatArray, props: MusicalProperties) -> FloatArray:
    """Major triads over a four-chord root progression."""
    step = np.floor(np.mod(t * 0.5, len(CHORD_ROOTS))).astype(np.intp)
    root = props.base_frequency * np.asarray(CHORD_ROOTS)[step]
    total = np.zeros_like(t)
    weighted = tuple(weight * 0.33 for weight in props.harmonics)
    for ratio in MAJOR_TRIAD:
        total += _harmonic_sum(t, root * ratio, weighted)
    return total * 0.2


def beat(
    t: FloatArray,
    props: MusicalProperties,
    instrument: str,
    rng: np.random.Generator,
) -> FloatArray:
    """Kick and noise-snare transients gated by the style's 8-step pattern.

    Only drums produce sound. Noise values are drawn from ``rng`` in sample
    order, so a seeded generator reproduces the same clip regardless of how
    the buffer is split into blocks.
    """
    out = np.zeros_like(t)
    if normalize_instrument(instrument) != "drums":
        return out

    gate = np.asarray(props.rhythm_gate)
    beat_index = np.floor(np.mod(t, BEAT_CYCLE_SECONDS) / BEAT_CYCLE_SECONDS * gate.size)
    intensity = gate[np.clip(beat_index.astype(np.intp), 0, gate.size - 1)]
    kick_phase = np.mod(t, KICK_PERIOD_SECONDS)

    kick = (kick_phase < 0.1) & (intensity > 0.5)
    out[kick] = np.sin(TWO_PI * KICK_FREQUENCY * t[kick]) * np.exp(-20.0 * kick_phase[kick])

    snare = (kick_phase > 0.25) & (kick_phase < 0.35) & (intensity > 0.3)
    count = int(np.count_nonzero(snare))
    if count:
        noise = rng.random(count) - 0.5
        out[snare] += 0.5 * noise * np.exp(-40.0 * (kick_phase[snare] - 0.25))
    return out


def continuation(t: FloatArray, props: MusicalProperties) -> FloatArray:
    """Sustained harmonic tone with a slow 0.1 Hz pitch drift."""
    drift = 1.0 + 0.02 * np.sin(TWO_PI * 0.1 * t)
    return _harmonic_sum(t, props.base_frequency * drift, props.harmonics) * 0.25


ToneFn: TypeAlias = Callable[[FloatArray, MusicalProperties], FloatArray]

# Pure tone voices; beat mode needs the instrument and an rng and is dispatched separately
TONE_GENERATORS: Mapping[Mode, ToneFn] = MappingProxyType(
    {
        "melody": melody,
        "chord": chord,
        "continue": continuation,
    }
)


# =============================================================================
# PART 2: ENVELOPE
# =============================================================================


def fade_time(duration: float) -> float:
    return min(MAX_FADE_SECONDS, duration * 0.05)


def apply_envelope(samples: FloatArray, t: FloatArray, duration: float, style: str) -> FloatArray:
    """Scale ``samples`` in place by the fade envelope and the style's modulation."""
    fade = fade_time(duration)
    fade_in = t < fade
    samples[fade_in] *= t[fade_in] / fade
    fade_out = t > duration - fade
    samples[fade_out] *= (duration - t[fade_out]) / fade

    style_key: Style = normalize_style(style)
    if style_key == "lofi":
        samples *= 0.8 + 0.2 * np.sin(TWO_PI * 0.5 * t)
    elif style_key == "edm":
        samples *= 0.7 + 0.3 * np.abs(np.sin(TWO_PI * 2.0 * t))
    return samples


# =============================================================================
# PART 3: RENDERER
# =============================================================================


def _resolve_rng(rng: np.random.Generator | None, seed: int | None) -> np.random.Generator:
    if rng is not None:
        return rng
    return np.random.default_rng(seed)


def render_block(
    request: GenerationRequest,
    props: MusicalProperties,
    t: FloatArray,
    rng: np.random.Generator,
) -> FloatArray:
    mode = normalize_mode(request.mode)
    if mode == "beat":
        raw = beat(t, props, request.instrument, rng)
    else:
        raw = TONE_GENERATORS[mode](t, props)
    return apply_envelope(raw, t, float(request.duration), request.style)


def render(
    request: GenerationRequest,
    *,
    rng: np.random.Generator | None = None,
    seed: int | None = None,
    timeout: float | None = None,
) -> FloatArray:
    """Render the request into a float buffer of ``request.total_samples`` samples.

    Rendering proceeds one second at a time; when ``timeout`` is given the
    deadline is checked between blocks.
    """
    props = request.properties
    generator = _resolve_rng(rng, seed)
    total = request.total_samples
    deadline = None if timeout is None else time.monotonic() + timeout

    buffer = np.empty(total, dtype=np.float64)
    for start in range(0, total, BLOCK_SAMPLES):
        if deadline is not None and time.monotonic() > deadline:
            _LOGGER.warning(
                "Render exceeded %.2fs after %d of %d samples", timeout, start, total
            )
            raise RenderTimeoutError(f"rendering did not finish within {timeout:.2f}s")
        stop = min(start + BLOCK_SAMPLES, total)
        t = np.arange(start, stop, dtype=np.float64) / SAMPLE_RATE
        buffer[start:stop] = render_block(request, props, t, generator)
    return buffer
