from __future__ import annotations

import os
from typing import Optional

DEFAULT_TEXT_MODEL = "gemini-2.5-flash"
DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"
DEFAULT_TIMEOUT_SECONDS = 120.0
DEFAULT_RATE_LIMIT = 20

_TRUTHY = {"1", "true", "yes", "on"}


def get_api_key() -> Optional[str]:
    api_key = os.getenv("GOOGLE_API_KEY", "").strip()
    return api_key or None


def get_text_model_name() -> str:
    return os.getenv("MODEL_NAME", DEFAULT_TEXT_MODEL)


def get_image_model_name() -> str:
    return os.getenv("IMAGE_MODEL_NAME", DEFAULT_IMAGE_MODEL)


def get_step_timeout() -> Optional[float]:
    """Seconds allowed per generation call; ``0`` disables the bound."""
    raw = os.getenv("GENERATION_TIMEOUT_SECONDS")
    if raw is None or not raw.strip():
        return DEFAULT_TIMEOUT_SECONDS
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"GENERATION_TIMEOUT_SECONDS must be a number, got {raw!r}.") from exc
    return value if value > 0 else None


def get_use_personas() -> bool:
    return os.getenv("USE_PERSONAS", "").strip().lower() in _TRUTHY


def get_rate_limit() -> int:
    raw = os.getenv("RATE_LIMIT_PER_MINUTE")
    if not raw:
        return DEFAULT_RATE_LIMIT
    return max(1, int(raw))
