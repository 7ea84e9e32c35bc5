from __future__ import annotations

import os
import logging
from dotenv import load_dotenv

# Load API key from .env (if present)
load_dotenv()
API_KEY = os.getenv("ODDSBLAZE_API_KEY")

# One SGP pricing host per book
SGP_URL_TEMPLATE = "https://{book}.sgp.oddsblaze.com/"
REQUEST_TIMEOUT = float(os.getenv("ODDSBLAZE_TIMEOUT", "6"))

# Our book ids -> provider subdomains, where they differ
BOOK_ID_MAP = {
    "draftkings": "draftkings",
    "fanduel": "fanduel",
    "betmgm": "betmgm",
    "caesars": "caesars",
    "bet365": "bet365",
    "betrivers": "betrivers",
    "betparx": "betparx",
    "pointsbet": "pointsbet",
    "espn": "espnbet",
    "fanatics": "fanatics",
    "fliff": "fliff",
    "hard-rock": "hard-rock",
    "bally-bet": "bally-bet",
    "thescore": "thescore",
    "prophetx": "prophetx",
    "pinnacle": "pinnacle",
    "wynnbet": "wynnbet",
}

# Most popular first
BOOK_PRIORITY = [
    "fanduel",
    "draftkings",
    "betmgm",
    "caesars",
    "fanatics",
    "betrivers",
    "hard-rock",
    "betparx",
    "bally-bet",
    "espn",
    "thescore",
    "prophetx",
    "pinnacle",
]

DEFAULT_SGP_BOOKS = [
    "draftkings",
    "fanduel",
    "betmgm",
    "betrivers",
    "caesars",
    "fanatics",
    "hard-rock",
    "betparx",
    "bally-bet",
    "thescore",
    "prophetx",
]

# Tracing / logging setup
TRACE_ENABLED = os.getenv("TRACE", "0").strip().lower() in ("1", "true", "yes", "on")
if TRACE_ENABLED:
    logging.basicConfig(
        filename=os.getenv("TRACE_FILE", "trace.log"),
        level=logging.DEBUG,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
logger = logging.getLogger("oddsblaze")


def provider_book_id(book: str) -> str:
    return BOOK_ID_MAP.get(book, book)
