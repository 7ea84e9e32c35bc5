from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List

from oddsblaze.config import BOOK_ID_MAP, DEFAULT_SGP_BOOKS
from opportunities.config import DEBOUNCE_MS, FLASH_MS, HIGHLIGHT_MS, OPPORTUNITIES_URL, SIGNAL_FEED_URL
from sgp.config import (
    NEGATIVE_CACHE_TTL,
    QUOTE_CACHE_TTL,
    QUOTE_STALE_THRESHOLD,
    STREAM_PING_INTERVAL_MS,
    STREAM_TIME_BUDGET_MS,
)


def _env_bool(name: str, default: bool = False) -> bool:
    return (os.getenv(name, str(int(default))) or "").strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default


def _env_str(name: str, default: str) -> str:
    v = os.getenv(name, default)
    return default if v is None else str(v)


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = (_env_str(name, "") or "").strip()
    if not raw:
        return list(default)
    return [p.strip().lower() for p in raw.split(",") if p.strip()]


@dataclass(frozen=True)
class Settings:
    # Ports / run
    port: int = _env_int("PORT", 8000)
    cors_origins: List[str] = field(default_factory=lambda: _env_list("CORS_ORIGINS", ["*"]))

    # Debugging / behavior
    ws_debug: bool = _env_bool("WS_DEBUG", False)
    signal_feed_enabled: bool = _env_bool("SIGNAL_FEED", True)

    # SGP quotes (seconds / milliseconds)
    sgp_cache_ttl: float = _env_float("SGP_CACHE_TTL", QUOTE_CACHE_TTL)
    sgp_stale_after: float = _env_float("SGP_STALE_AFTER", QUOTE_STALE_THRESHOLD)
    sgp_negative_ttl: float = _env_float("SGP_NEGATIVE_TTL", NEGATIVE_CACHE_TTL)
    sgp_time_budget_ms: int = _env_int("SGP_TIME_BUDGET_MS", STREAM_TIME_BUDGET_MS)
    sgp_ping_interval_ms: int = _env_int("SGP_PING_INTERVAL_MS", STREAM_PING_INTERVAL_MS)
    sgp_default_books: List[str] = field(default_factory=lambda: _env_list("SGP_BOOKS", DEFAULT_SGP_BOOKS))
    sgp_supported_books: List[str] = field(default_factory=lambda: _env_list("SGP_SUPPORTED_BOOKS", list(BOOK_ID_MAP)))

    # Opportunity stream
    opportunities_url: str = _env_str("OPPORTUNITIES_URL", OPPORTUNITIES_URL)
    signal_feed_url: str = _env_str("SIGNAL_FEED_URL", SIGNAL_FEED_URL)
    debounce_ms: int = _env_int("STREAM_DEBOUNCE_MS", DEBOUNCE_MS)
    flash_ms: int = _env_int("STREAM_FLASH_MS", FLASH_MS)
    highlight_ms: int = _env_int("STREAM_HIGHLIGHT_MS", HIGHLIGHT_MS)
    refresh_limit: int = _env_int("STREAM_LIMIT", 200)
