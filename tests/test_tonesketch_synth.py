from __future__ import annotations

import math

import numpy as np
import pytest

from tonesketch import synth
from tonesketch.config import SAMPLE_RATE, GenerationRequest, resolve_properties
from tonesketch.errors import RenderTimeoutError
from tonesketch.synth import (
    TONE_GENERATORS,
    apply_envelope,
    beat,
    chord,
    continuation,
    fade_time,
    melody,
    render,
)


def _request(instrument: str, style: str, mode: str, bars: int = 1) -> GenerationRequest:
    return GenerationRequest(instrument=instrument, style=style, mode=mode, bars=bars)


def test_melody_matches_formula() -> None:
    props = resolve_properties("piano", "pop")
    t = 1.3  # third step of the scale walk
    freq = 440.0 * 1.25
    expected = sum(
        weight * math.sin(2 * math.pi * freq * (i + 1) * t)
        for i, weight in enumerate(props.harmonics)
    )
    expected *= (1 + 0.02 * math.sin(2 * math.pi * 5 * t)) * 0.3
    assert melody(np.array([t]), props)[0] == pytest.approx(expected)


def test_chord_matches_formula() -> None:
    props = resolve_properties("guitar", "pop")
    t = 2.7  # second chord, root ratio 1.5
    root = 330.0 * 1.5
    expected = 0.0
    for ratio in (1.0, 1.25, 1.5):
        for i, weight in enumerate(props.harmonics):
            expected += weight * 0.33 * math.sin(2 * math.pi * root * ratio * (i + 1) * t)
    assert chord(np.array([t]), props)[0] == pytest.approx(expected * 0.2)


def test_continuation_matches_formula() -> None:
    props = resolve_properties("bass", "pop")
    t = 0.77
    drift = 1 + 0.02 * math.sin(2 * math.pi * 0.1 * t)
    expected = sum(
        weight * math.sin(2 * math.pi * 110.0 * (i + 1) * drift * t)
        for i, weight in enumerate(props.harmonics)
    )
    assert continuation(np.array([t]), props)[0] == pytest.approx(expected * 0.25)


def test_beat_is_silent_for_non_drums() -> None:
    props = resolve_properties("piano", "edm")
    t = np.arange(SAMPLE_RATE) / SAMPLE_RATE
    assert not np.any(beat(t, props, "piano", np.random.default_rng(0)))


def test_beat_kick_follows_gate() -> None:
    props = resolve_properties("drums", "rock")
    rng = np.random.default_rng(0)
    # gate step 0 (1.0) fires the kick, step 1 (0.0) at t=0.25..0.5 never fires
    t = np.array([0.05, 0.3, 1.05])
    out = beat(t, props, "drums", rng)
    assert out[0] == pytest.approx(math.sin(2 * math.pi * 60 * 0.05) * math.exp(-20 * 0.05))
    assert out[1] == 0.0
    assert out[2] == pytest.approx(math.sin(2 * math.pi * 60 * 1.05) * math.exp(-20 * 0.05))


def test_beat_snare_is_bounded_noise() -> None:
    props = resolve_properties("drums", "edm")
    t = np.linspace(0.26, 0.34, 100)
    out = beat(t, props, "drums", np.random.default_rng(1))
    assert np.any(out != 0.0)
    assert np.all(np.abs(out) <= 0.25)


def test_fade_time_caps_at_tenth_of_second() -> None:
    assert fade_time(4.0) == pytest.approx(0.1)
    assert fade_time(1.0) == pytest.approx(0.05)


def test_envelope_fades_and_leaves_middle_untouched() -> None:
    t = np.array([0.0, 0.05, 1.0, 1.95])
    out = apply_envelope(np.ones(4), t, 2.0, "pop")
    assert out == pytest.approx([0.0, 0.5, 1.0, 0.5])


def test_envelope_lofi_tremolo() -> None:
    t = np.array([0.5, 1.5])
    out = apply_envelope(np.ones(2), t, 4.0, "lofi")
    assert out == pytest.approx([1.0, 0.6])


def test_envelope_edm_pump() -> None:
    t = np.array([0.125, 1.0])
    out = apply_envelope(np.ones(2), t, 4.0, "edm")
    assert out == pytest.approx([1.0, 0.7])


def test_render_length_matches_bars() -> None:
    samples = render(_request("strings", "classical", "chord", bars=2))
    assert samples.shape == (SAMPLE_RATE * 4,)
    assert samples[0] == 0.0


@pytest.mark.parametrize("mode", ["melody", "chord", "continue"])
def test_render_is_deterministic(mode: str) -> None:
    request = _request("guitar", "lofi", mode)
    assert np.array_equal(render(request), render(request))


def test_seeded_beat_is_reproducible_across_block_sizes(monkeypatch: pytest.MonkeyPatch) -> None:
    request = _request("drums", "jazz", "beat", bars=2)
    first = render(request, seed=7)
    monkeypatch.setattr(synth, "BLOCK_SAMPLES", 1_000)
    second = render(request, seed=7)
    assert np.array_equal(first, second)


def test_unknown_mode_renders_continuation() -> None:
    assert np.array_equal(
        render(_request("synth", "rock", "remix")),
        render(_request("synth", "rock", "continue")),
    )


@pytest.mark.parametrize("instrument", ["piano", "guitar", "bass", "drums", "synth", "strings"])
@pytest.mark.parametrize("mode", ["melody", "chord", "beat", "continue"])
def test_render_stays_within_unit_range(instrument: str, mode: str) -> None:
    samples = render(_request(instrument, "edm", mode), seed=0)
    assert np.max(np.abs(samples)) <= 1.0


def test_render_honours_deadline() -> None:
    with pytest.raises(RenderTimeoutError):
        render(_request("piano", "pop", "melody"), timeout=-1.0)


def test_tone_generators_exclude_beat() -> None:
    assert set(TONE_GENERATORS) == {"melody", "chord", "continue"}
    assert TONE_GENERATORS["continue"] is continuation
