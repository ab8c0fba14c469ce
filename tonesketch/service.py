"""
tonesketch HTTP service

FastAPI application exposing the suggestion generator to the studio front end.
"""
from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Mapping
from typing import Any

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from . import __version__
from .config import Settings, load_settings, parse_request
from .errors import BarLimitError, InvalidRequestError, RenderTimeoutError
from .logging_utils import log_exception
from .suggestion import generate_suggestion

_LOGGER = logging.getLogger("tonesketch.service")

SERVICE_NAME = "tonesketch"
CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": ", ".join(CORS_ALLOW_HEADERS),
}


def _error(status_code: int, error: str, details: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "details": details})


async def _read_payload(request: Request) -> Mapping[str, Any]:
    body = await request.body()
    try:
        payload = json.loads(body or b"null")
    except (ValueError, UnicodeDecodeError) as exc:
        raise InvalidRequestError(f"request body is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise InvalidRequestError("request body must be a JSON object")
    return payload


def create_app(settings: Settings | None = None) -> FastAPI:
    active = settings or load_settings()
    app = FastAPI(title=SERVICE_NAME, version=__version__)
    app.state.settings = active
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=CORS_ALLOW_HEADERS,
    )

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Basic health check."""
        return {"status": "ok", "service": SERVICE_NAME, "version": __version__}

    # preflights carrying Access-Control-Request-Method are answered by CORSMiddleware
    @app.options("/generate-music-ai")
    async def generate_music_ai_options() -> Response:
        return Response(status_code=200, headers=CORS_HEADERS)

    @app.post("/generate-music-ai")
    async def generate_music_ai(request: Request) -> JSONResponse:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        try:
            payload = await _read_payload(request)
            generation = parse_request(payload)
            result = await run_in_threadpool(generate_suggestion, generation, settings=active)
        except BarLimitError as exc:
            return _error(422, "Requested clip is too long", str(exc))
        except InvalidRequestError as exc:
            return _error(400, "Invalid generation request", str(exc))
        except RenderTimeoutError as exc:
            _LOGGER.warning("Suggestion render timed out: %s", exc)
            return _error(504, "Generation timed out", str(exc))
        except Exception as exc:
            _LOGGER.error("Error in generate-music-ai: %s", exc, exc_info=True)
            log_exception(
                "generate-music-ai",
                exc,
                details={"route": request.url.path, "request_id": request_id},
            )
            return _error(500, "Failed to generate AI suggestion", str(exc))
        return JSONResponse(content=result.to_payload())

    return app
