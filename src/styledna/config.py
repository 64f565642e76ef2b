"""Runtime settings read from environment variables."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from styledna.collaborator._openai import DEFAULT_ANALYSIS_MODEL, DEFAULT_IMAGE_MODEL

DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024
_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def _env_str(environ: Mapping[str, str], name: str) -> str | None:
    value = (environ.get(name) or "").strip()
    return value or None


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = _env_str(environ, name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        msg = f"{name} must be an integer, got {raw!r}."
        raise ValueError(msg) from None
    if value <= 0:
        msg = f"{name} must be positive, got {value}."
        raise ValueError(msg)
    return value


def _env_bool(environ: Mapping[str, str], name: str, default: bool) -> bool:
    raw = _env_str(environ, name)
    if raw is None:
        return default
    lowered = raw.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    msg = f"{name} must be a boolean flag, got {raw!r}."
    raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class Settings:
    """Service configuration.

    Defaults match a single-process development deployment: in-memory storage,
    one-hour image and analysis retention, ten requests per minute per client,
    and demo data whenever the AI service fails.
    """

    openai_api_key: str | None = None
    analysis_model: str = DEFAULT_ANALYSIS_MODEL
    image_model: str = DEFAULT_IMAGE_MODEL
    image_ttl: timedelta = timedelta(minutes=60)
    analysis_ttl: timedelta = timedelta(minutes=60)
    rate_limit_max: int = 10
    rate_limit_window: timedelta = timedelta(seconds=60)
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    storage_dir: Path | None = None
    demo_fallback: bool = True

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from ``STYLEDNA_*`` variables and ``OPENAI_API_KEY``."""
        env = os.environ if environ is None else environ
        storage_dir = _env_str(env, "STYLEDNA_STORAGE_DIR")
        return cls(
            openai_api_key=_env_str(env, "OPENAI_API_KEY"),
            analysis_model=_env_str(env, "STYLEDNA_ANALYSIS_MODEL") or DEFAULT_ANALYSIS_MODEL,
            image_model=_env_str(env, "STYLEDNA_IMAGE_MODEL") or DEFAULT_IMAGE_MODEL,
            image_ttl=timedelta(seconds=_env_int(env, "STYLEDNA_IMAGE_TTL_SECONDS", 3600)),
            analysis_ttl=timedelta(seconds=_env_int(env, "STYLEDNA_ANALYSIS_TTL_SECONDS", 3600)),
            rate_limit_max=_env_int(env, "STYLEDNA_RATE_LIMIT_MAX", 10),
            rate_limit_window=timedelta(seconds=_env_int(env, "STYLEDNA_RATE_LIMIT_WINDOW_SECONDS", 60)),
            max_upload_bytes=_env_int(env, "STYLEDNA_MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES),
            storage_dir=Path(storage_dir) if storage_dir is not None else None,
            demo_fallback=_env_bool(env, "STYLEDNA_DEMO_FALLBACK", True),
        )
