from __future__ import annotations

__version__ = "0.1.0"

from .audio import (  # noqa: E402
    WavInfo,
    decode_data_url,
    encode_wav,
    read_wav_info,
    to_data_url,
    write_wav,
)
from .config import (  # noqa: E402
    SAMPLE_RATE,
    GenerationRequest,
    Instrument,
    Mode,
    MusicalProperties,
    Settings,
    Style,
    load_settings,
    parse_request,
    resolve_properties,
)
from .errors import (  # noqa: E402
    BarLimitError,
    InvalidConfigError,
    InvalidRequestError,
    RenderTimeoutError,
    ToneSketchError,
)
from .logging_utils import configure_logging as _configure_logging  # noqa: E402
from .suggestion import (  # noqa: E402
    Suggestion,
    SuggestionResult,
    generate_suggestion,
    render_clip,
)
from .synth import render  # noqa: E402

__all__ = [
    "SAMPLE_RATE",
    "BarLimitError",
    "GenerationRequest",
    "Instrument",
    "InvalidConfigError",
    "InvalidRequestError",
    "Mode",
    "MusicalProperties",
    "RenderTimeoutError",
    "Settings",
    "Style",
    "Suggestion",
    "SuggestionResult",
    "ToneSketchError",
    "WavInfo",
    "decode_data_url",
    "encode_wav",
    "generate_suggestion",
    "load_settings",
    "parse_request",
    "read_wav_info",
    "render",
    "render_clip",
    "resolve_properties",
    "to_data_url",
    "write_wav",
]

_configure_logging()
del _configure_logging
