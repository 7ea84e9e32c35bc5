"""
oddsblaze
=========

Client for the upstream same-game-parlay pricing service.

Public API (stable re-exports):
- fetch_book_odds (from quotes)
- API constants (from config): API_KEY, BOOK_ID_MAP, BOOK_PRIORITY, DEFAULT_SGP_BOOKS
"""
from .config import API_KEY, BOOK_ID_MAP, BOOK_PRIORITY, DEFAULT_SGP_BOOKS, provider_book_id
from .quotes import fetch_book_odds

__all__ = [
    "API_KEY", "BOOK_ID_MAP", "BOOK_PRIORITY", "DEFAULT_SGP_BOOKS", "provider_book_id",
    "fetch_book_odds",
]
