from __future__ import annotations

import logging
from typing import Optional

CACHE_KEY_PREFIX = "sgp_quote"

# Seconds
QUOTE_CACHE_TTL = 90
QUOTE_STALE_THRESHOLD = 30
NEGATIVE_CACHE_TTL = 8

# Milliseconds
STREAM_TIME_BUDGET_MS = 2500
STREAM_PING_INTERVAL_MS = 15000

MIN_LEGS = 2

NOT_ENOUGH_LEGS = "Not enough legs with SGP support"
DUPLICATE_TOKENS = "Duplicate selections detected"
NO_API_KEY = "API key not configured"
FETCH_FAILED = "Failed to fetch"
REQUEST_FAILED = "Request failed"

# Errors that say nothing about the leg combination; never cached.
TRANSIENT_ERRORS = frozenset({NO_API_KEY, FETCH_FAILED, REQUEST_FAILED})

API_ERROR_PREFIX = "API error: "
# Upstream statuses that mean "try again later" rather than "no price".
RETRYABLE_STATUSES = frozenset({408, 425, 429})


def is_transient_error(error: Optional[str]) -> bool:
    """True for failures that should be retried, not cached."""
    if error is None:
        return False
    if error in TRANSIENT_ERRORS:
        return True
    if error.startswith(API_ERROR_PREFIX):
        try:
            status = int(error[len(API_ERROR_PREFIX):])
        except ValueError:
            return False
        return status >= 500 or status in RETRYABLE_STATUSES
    return False


logger = logging.getLogger("sgp")
