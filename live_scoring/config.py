# live_scoring/config.py
from __future__ import annotations

import logging
import os
from dotenv import load_dotenv

# Load .env from project root
load_dotenv()


def _get_env(name: str, default: str = "") -> str:
    return os.getenv(name, default).strip()


def _get_env_int(name: str, default: int) -> int:
    raw = _get_env(name, str(default))
    try:
        return int(raw)
    except ValueError:
        return default


# -------------------------
# Scoring backend (authoritative match state)
# -------------------------
SCORING_API_BASE_URL: str = _get_env("SCORING_API_BASE_URL", "http://localhost:5000/api/v1")

# Optional bearer token; empty means unauthenticated requests
SCORING_API_TOKEN: str = _get_env("SCORING_API_TOKEN")

SCORING_API_TIMEOUT_SECONDS: int = _get_env_int("SCORING_API_TIMEOUT_SECONDS", 10)


# -------------------------
# Double-tap guards (milliseconds)
# -------------------------
RECORD_COOLDOWN_MS: int = _get_env_int("RECORD_COOLDOWN_MS", 400)
WICKET_COOLDOWN_MS: int = _get_env_int("WICKET_COOLDOWN_MS", 500)
UNDO_COOLDOWN_MS: int = _get_env_int("UNDO_COOLDOWN_MS", 500)


# -------------------------
# Logging
# -------------------------
LOG_LEVEL: str = _get_env("LOG_LEVEL", "INFO").upper()


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def validate_config() -> None:
    # Basic URL sanity
    if not SCORING_API_BASE_URL.startswith("http"):
        raise RuntimeError("SCORING_API_BASE_URL must start with http/https")

    if SCORING_API_TIMEOUT_SECONDS <= 0:
        raise RuntimeError("SCORING_API_TIMEOUT_SECONDS must be positive")

    # Cool-downs may be zero (guard disabled) but never negative
    for name, value in (
        ("RECORD_COOLDOWN_MS", RECORD_COOLDOWN_MS),
        ("WICKET_COOLDOWN_MS", WICKET_COOLDOWN_MS),
        ("UNDO_COOLDOWN_MS", UNDO_COOLDOWN_MS),
    ):
        if value < 0:
            raise RuntimeError(f"{name} must not be negative")

    if LOG_LEVEL not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise RuntimeError(f"LOG_LEVEL must be a standard logging level, got {LOG_LEVEL!r}")
