from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set

import requests
import sseclient
from requests.exceptions import RequestException

from utils import parse_american

from .config import logger
from .models import SgpBookOdds


@dataclass
class SgpQuoteResult:
    """Running view of one streamed pricing request; partial results are valid."""
    legs_hash: Optional[str] = None
    quotes: Dict[str, SgpBookOdds] = field(default_factory=dict)
    pending: Set[str] = field(default_factory=set)
    completed: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    from_cache: bool = False
    stale: bool = False
    timed_out: bool = False
    done: bool = False
    cache_age_ms: Optional[int] = None
    error: Optional[str] = None

    def best(self) -> Optional[str]:
        """Book with the highest American price among priced quotes."""
        priced = [(parse_american(q.price), b) for b, q in self.quotes.items() if q.ok]
        priced = [(p, b) for p, b in priced if p is not None]
        return max(priced)[1] if priced else None


class SgpStreamReader:
    """Folds hello / quote / done events into an ``SgpQuoteResult``."""

    def __init__(self, on_update: Optional[Callable[[SgpQuoteResult], None]] = None):
        self.result = SgpQuoteResult()
        self.on_update = on_update

    def apply(self, event: str, data: str) -> SgpQuoteResult:
        try:
            payload = json.loads(data) if data else {}
        except ValueError:
            logger.debug("ignoring undecodable %s event", event)
            return self.result
        if not isinstance(payload, dict):
            return self.result
        r = self.result
        if event == "hello":
            r.legs_hash = payload.get("legs_hash")
            r.pending = set(payload.get("books_pending") or [])
            stale = payload.get("stale_cache")
            if isinstance(stale, dict):
                r.quotes = {b: SgpBookOdds.from_dict(q) for b, q in stale.items() if isinstance(q, dict)}
                r.stale = True
        elif event == "quote":
            book = payload.pop("book_id", None)
            if not book:
                return r
            quote = SgpBookOdds.from_dict(payload)
            r.quotes[book] = quote
            r.pending.discard(book)
            (r.failed if quote.error else r.completed).append(book)
        elif event == "done":
            r.done = True
            r.stale = False
            r.timed_out = bool(payload.get("timed_out"))
            r.pending = set(payload.get("pending") or [])
        else:
            return r
        if self.on_update is not None:
            self.on_update(r)
        return r

    def apply_cached_body(self, body: Dict[str, Any]) -> SgpQuoteResult:
        r = self.result
        r.legs_hash = body.get("legs_hash")
        quotes = body.get("quotes") or {}
        r.quotes = {b: SgpBookOdds.from_dict(q) for b, q in quotes.items() if isinstance(q, dict)}
        r.from_cache = True
        r.cache_age_ms = body.get("cache_age_ms")
        r.pending = set()
        r.done = True
        if self.on_update is not None:
            self.on_update(r)
        return r


def fetch_quote_stream(url: str, body: Dict[str, Any], *, timeout: float = 10.0,
                       on_update: Optional[Callable[[SgpQuoteResult], None]] = None) -> SgpQuoteResult:
    """POST to the streaming pricing endpoint and consume it to completion."""
    reader = SgpStreamReader(on_update)
    try:
        r = requests.post(url, json=body, stream=True, timeout=timeout,
                          headers={"Accept": "text/event-stream"})
    except RequestException as e:
        reader.result.error = str(e)
        return reader.result
    try:
        if r.status_code != 200:
            try:
                reader.result.error = (r.json() or {}).get("error") or f"HTTP {r.status_code}"
            except ValueError:
                reader.result.error = f"HTTP {r.status_code}"
            return reader.result
        if r.headers.get("content-type", "").startswith("application/json"):
            return reader.apply_cached_body(r.json() or {})
        for event in sseclient.SSEClient(r).events():
            reader.apply(event.event, event.data)
            if reader.result.done:
                break
    except RequestException as e:
        logger.warning("sgp stream dropped: %s", e)
        reader.result.error = str(e)
    finally:
        r.close()
    return reader.result
