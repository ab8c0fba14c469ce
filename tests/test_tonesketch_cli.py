from __future__ import annotations

from pathlib import Path

import pytest
import soundfile as sf  # type: ignore[import]

from tonesketch.cli import build_parser, main


def test_render_writes_wav(tmp_path: Path) -> None:
    target = tmp_path / "out.wav"
    code = main(
        [
            "render",
            "--instrument",
            "bass",
            "--style",
            "rock",
            "--mode",
            "chord",
            "--bars",
            "1",
            "--output",
            str(target),
        ]
    )
    assert code == 0
    info = sf.info(str(target))
    assert info.samplerate == 44_100
    assert info.channels == 1
    assert info.frames == 88_200


def test_render_rejects_non_positive_bars() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args(["render", "--bars", "0"])


def test_render_over_limit_fails(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TONESKETCH_MAX_BARS", "1")
    monkeypatch.setenv("TONESKETCH_LOG_DIR", str(tmp_path))
    code = main(["render", "--bars", "2", "--output", str(tmp_path / "x.wav")])
    assert code == 1
    assert not (tmp_path / "x.wav").exists()
    assert "BarLimitError" in (tmp_path / "tonesketch.log").read_text()


def test_doctor_reports_self_check(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["doctor"]) == 0
    out = capsys.readouterr().out
    assert "Max bars: 64" in out
    assert "Self-check: 2.0s clip" in out
