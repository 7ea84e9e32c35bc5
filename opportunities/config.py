from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

load_dotenv()
OPPORTUNITIES_URL = os.getenv("OPPORTUNITIES_URL", "http://localhost:3000/api/v2/opportunities")
SIGNAL_FEED_URL = os.getenv("SIGNAL_FEED_URL", "http://localhost:3000/api/v2/sse/props")

# Session timing, milliseconds
DEBOUNCE_MS = 1000
FLASH_MS = 5000
HIGHLIGHT_MS = 10000

# Signal feed reconnect policy
RECONNECT_BASE_MS = 3000
RECONNECT_MAX_MS = 30000
MAX_RECONNECT_ATTEMPTS = 10

logger = logging.getLogger("opportunities")
