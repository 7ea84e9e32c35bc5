from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Dict, Optional, Set

from fastapi import WebSocket

from opportunities import OpportunityClient, OpportunityFilters, OpportunityStream, SignalFeed, bridge_to_loop
from opportunities.filters import normalize_filter_values

from .config import Settings

FILTER_KEYS = ("sports", "sport", "markets", "market", "preset", "market_lines", "marketLines",
               "min_odds", "minOdds", "max_odds", "maxOdds", "min_edge", "minEdge",
               "min_books_per_side", "minBooksPerSide", "sort", "limit", "search", "market_contains")

logger = logging.getLogger("server")

FeedFactory = Callable[[asyncio.AbstractEventLoop, OpportunityStream], Optional[SignalFeed]]


def _truthy(v: Any) -> bool:
    return str(v or "").strip().lower() in ("1", "true", "yes", "on")


class Hub:
    """
    Connection hub: one OpportunityStream session (and signal feed) per
    websocket. Every applied snapshot is pushed to its own connection.
    """
    def __init__(self, settings: Settings, *, fetcher=None, feed_factory: Optional[FeedFactory] = None):
        self.settings = settings
        self.connections: Set[WebSocket] = set()
        self.sessions: Dict[WebSocket, OpportunityStream] = {}
        self.feeds: Dict[WebSocket, SignalFeed] = {}
        self.prefs: Dict[WebSocket, Dict[str, Any]] = {}
        self.lock = asyncio.Lock()
        self._fetcher = fetcher or OpportunityClient(settings.opportunities_url)
        if feed_factory is None and settings.signal_feed_enabled:
            feed_factory = self._default_feed
        self._feed_factory = feed_factory

    def _default_feed(self, loop: asyncio.AbstractEventLoop, session: OpportunityStream) -> SignalFeed:
        return bridge_to_loop(loop, session, self.settings.signal_feed_url)

    async def connect(self, ws: WebSocket):
        await ws.accept()
        session = OpportunityStream(
            self._fetcher,
            OpportunityFilters(limit=self.settings.refresh_limit),
            debounce_ms=self.settings.debounce_ms,
            flash_ms=self.settings.flash_ms,
            highlight_ms=self.settings.highlight_ms,
        )
        session.add_listener(lambda s: self._schedule_push(ws, s))
        async with self.lock:
            self.connections.add(ws)
            self.sessions[ws] = session
            self.prefs[ws] = {"filters": {}, "quiet_controls": True}

    async def disconnect(self, ws: WebSocket):
        async with self.lock:
            self.connections.discard(ws)
            session = self.sessions.pop(ws, None)
            feed = self.feeds.pop(ws, None)
            self.prefs.pop(ws, None)
        if session is not None:
            session.close()
        if feed is not None:
            await asyncio.to_thread(feed.stop)

    # ------------------------------------------------------------------
    # Control messages
    # ------------------------------------------------------------------

    async def handle_control(self, ws: WebSocket, data: Dict[str, Any]) -> None:
        """
        Apply one client control message. Filter keys may be top-level or
        under ``filters``; ``refresh`` and ``reconnect`` are actions.
        """
        if "quiet" in data:
            async with self.lock:
                if ws in self.prefs:
                    self.prefs[ws]["quiet_controls"] = bool(data.get("quiet"))

        updates = {k: data[k] for k in FILTER_KEYS if k in data}
        fobj = data.get("filters")
        reset = _truthy(data.get("filters_replace") or data.get("clear_filters"))
        if isinstance(fobj, dict):
            if not fobj:
                reset = True
            updates.update({k: fobj[k] for k in FILTER_KEYS if k in fobj})

        if updates or reset:
            await self.update_filters(ws, updates, reset=reset)
        elif _truthy(data.get("refresh")):
            session = self.sessions.get(ws)
            if session is not None:
                await session.refresh()
        if _truthy(data.get("reconnect")):
            session = self.sessions.get(ws)
            if session is not None:
                session.reconnect()

    async def update_filters(self, ws: WebSocket, updates: Dict[str, Any], *, reset: bool = False):
        async with self.lock:
            if ws not in self.prefs:
                return
            merged = {} if reset else dict(self.prefs[ws].get("filters") or {})
            merged.update(updates)
            self.prefs[ws]["filters"] = merged
            session = self.sessions[ws]
            quiet = bool(self.prefs[ws].get("quiet_controls", True))
        filters = OpportunityFilters.from_prefs({"limit": self.settings.refresh_limit, **merged})
        sports_changed = filters.sports != session.filters.sports
        if not quiet:
            await self.send(ws, {"control": "filters_updated", "filters": {
                "sports": sorted(filters.sports),
                "markets": sorted(normalize_filter_values(filters.markets)),
            }})
        await session.load(filters)
        if sports_changed or ws not in self.feeds:
            await self._restart_feed(ws, session)

    async def _restart_feed(self, ws: WebSocket, session: OpportunityStream) -> None:
        if self._feed_factory is None:
            return
        old = self.feeds.pop(ws, None)
        if old is not None:
            await asyncio.to_thread(old.stop)
        feed = self._feed_factory(asyncio.get_running_loop(), session)
        if feed is None:
            return
        async with self.lock:
            if ws not in self.sessions:
                return
            self.feeds[ws] = feed
        feed.start()

    # ------------------------------------------------------------------
    # Push
    # ------------------------------------------------------------------

    def _schedule_push(self, ws: WebSocket, session: OpportunityStream) -> None:
        payload = {"payload": session.snapshot()}
        asyncio.get_running_loop().create_task(self.send(ws, payload))

    async def send(self, ws: WebSocket, payload: Dict[str, Any]) -> bool:
        if ws not in self.connections:
            return False
        try:
            await ws.send_text(json.dumps(payload, ensure_ascii=False))
            return True
        except Exception as e:
            if self.settings.ws_debug:
                logger.debug("send failed: %s", e)
            return False
