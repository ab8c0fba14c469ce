from __future__ import annotations

import argparse
import logging
import os
from typing import Iterable

from rich.console import Console

from .audio import read_wav_info, write_wav
from .config import (
    INSTRUMENTS,
    MODES,
    SAMPLE_RATE,
    STYLES,
    GenerationRequest,
    load_settings,
)
from .logging_utils import configure_logging, get_log_path, log_exception
from .suggestion import check_limits, render_clip
from .synth import render

_LOGGER = logging.getLogger("tonesketch.cli")
_CONSOLE = Console()
_ERR_CONSOLE = Console(stderr=True)


def _report(lines: Iterable[str]) -> None:
    for line in lines:
        _CONSOLE.print(line)


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"{value!r} is not an integer") from exc
    if parsed < 1:
        raise argparse.ArgumentTypeError("bars must be at least 1")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tonesketch")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr.")
    sub = parser.add_subparsers(dest="command", required=True)

    render_cmd = sub.add_parser("render", help="Render a clip to a wav file.")
    # unknown names fall back to defaults, so no choices= here
    render_cmd.add_argument("--instrument", default="piano", help=f"One of {', '.join(INSTRUMENTS)}.")
    render_cmd.add_argument("--style", default="pop", help=f"One of {', '.join(STYLES)}.")
    render_cmd.add_argument("--mode", default="melody", help=f"One of {', '.join(MODES)}.")
    render_cmd.add_argument("--bars", type=_positive_int, default=4)
    render_cmd.add_argument("--seed", type=int, default=None, help="Seed for beat-mode noise.")
    render_cmd.add_argument("--output", type=str, default="suggestion.wav")

    serve = sub.add_parser("serve", help="Run the HTTP service.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    sub.add_parser("doctor", help="Show settings and run a render self-check.")
    return parser


def _run_render(args: argparse.Namespace) -> int:
    settings = load_settings()
    request = GenerationRequest(
        instrument=args.instrument,
        style=args.style,
        mode=args.mode,
        bars=args.bars,
    )
    check_limits(request, settings)
    with _CONSOLE.status("Rendering clip"):
        samples = render(request, seed=args.seed, timeout=settings.render_timeout)
    path = write_wav(args.output, samples)
    _CONSOLE.print(f"Wrote {request.duration}s clip to {path} (sr={SAMPLE_RATE})")
    return 0


def _run_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from .service import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port)
    return 0


def _run_doctor() -> int:
    settings = load_settings()
    probe = GenerationRequest(instrument="piano", style="pop", mode="melody", bars=1)
    info = read_wav_info(render_clip(probe, settings=settings))
    _report(
        [
            f"Max bars: {settings.max_bars}",
            f"Render timeout: {settings.render_timeout:.1f}s",
            f"Log file: {get_log_path()}",
            f"Self-check: {info.duration:.1f}s clip, {info.sample_rate} Hz, "
            f"{info.bits_per_sample}-bit, {info.channels} channel",
            "Hints:",
            "- Set TONESKETCH_MAX_BARS to change the longest accepted clip.",
            "- Set TONESKETCH_RENDER_TIMEOUT to change the render deadline in seconds.",
        ]
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(logging.INFO if args.verbose else None)
    try:
        if args.command == "render":
            return _run_render(args)
        if args.command == "serve":
            return _run_serve(args)
        if args.command == "doctor":
            return _run_doctor()
        parser.print_help()
        return 1
    except Exception as exc:
        debug = bool(os.environ.get("TONESKETCH_DEBUG"))
        _LOGGER.warning("tonesketch CLI failed: %s", exc, exc_info=debug)
        log_exception("tonesketch CLI", exc, details={"command": args.command})
        _ERR_CONSOLE.print(f"[red]tonesketch {args.command} failed:[/red] {exc}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
