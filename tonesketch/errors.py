from __future__ import annotations


class ToneSketchError(Exception):
    """Base error for the tonesketch library."""


class InvalidConfigError(ToneSketchError):
    """Raised when settings, headers or data URLs cannot be parsed."""


class InvalidRequestError(ToneSketchError):
    """Raised when a generation request fails validation."""


class BarLimitError(InvalidRequestError):
    """Raised when a request asks for more bars than the configured limit."""


class RenderTimeoutError(ToneSketchError):
    """Raised when rendering does not finish before its deadline."""
