from __future__ import annotations

from typing import List, Optional

from sgp.config import API_ERROR_PREFIX, FETCH_FAILED, NO_API_KEY
from sgp.models import SgpBookOdds

from . import config
from .http import post_json

NOT_ENOUGH_LEGS = "Not enough legs"
NO_PRICE = "No price available"


def fetch_book_odds(book: str, tokens: List[str], *, api_key: Optional[str] = None) -> SgpBookOdds:
    """Price one token combination at one book. Never raises."""
    key = api_key or config.API_KEY
    if not key:
        return SgpBookOdds.failed(NO_API_KEY)
    if len(tokens) < 2:
        return SgpBookOdds.failed(NOT_ENOUGH_LEGS)

    url = config.SGP_URL_TEMPLATE.format(book=config.provider_book_id(book))
    status, data = post_json(url, list(tokens), params={"key": key}, timeout=config.REQUEST_TIMEOUT)
    if status is None:
        return SgpBookOdds.failed(FETCH_FAILED)
    if status < 200 or status >= 300:
        config.logger.warning("sgp %s status=%s", book, status)
        return SgpBookOdds.failed(f"{API_ERROR_PREFIX}{status}")
    if not isinstance(data, dict):
        return SgpBookOdds.failed(FETCH_FAILED)
    if data.get("error") or data.get("message"):
        return SgpBookOdds.failed(str(data.get("error") or data.get("message")))
    if not data.get("price"):
        return SgpBookOdds.failed(NO_PRICE)
    return SgpBookOdds(price=str(data["price"]), links=data.get("links"), limits=data.get("limits"))
