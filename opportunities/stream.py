"""
OpportunityStream
=================

One filter-set session over the opportunities endpoint. It keeps the current
snapshot, diffs every refresh against it, and tracks short-lived flash and
highlight annotations plus a stale set for rows that dropped out.

Triggers:
- ``load()`` on start and whenever filters change (full replace, no diff)
- ``refresh()`` manually or from a debounced, relevant change signal

Only one fetch runs at a time. Triggers arriving meanwhile are coalesced
into a single follow-up fetch, so diffs are applied in order and ``version``
increases by one per applied snapshot.
"""
from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from utils import now_ms

from .config import DEBOUNCE_MS, FLASH_MS, HIGHLIGHT_MS, logger
from .diff import dedupe, diff_snapshots
from .filters import OpportunityFilters, apply_client_filters, relevant_keys
from .models import ChangeRecord, Opportunity, OpportunityPage, Signal
from .timers import LoopScheduler, Scheduler, TimerHandle

Fetcher = Callable[[OpportunityFilters, bool], Awaitable[OpportunityPage]]
Listener = Callable[["OpportunityStream"], None]


class StreamState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    REFRESHING = "refreshing"


class ConnectionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    FAILED = "failed"


class OpportunityStream:
    def __init__(
        self,
        fetcher: Fetcher,
        filters: Optional[OpportunityFilters] = None,
        *,
        scheduler: Optional[Scheduler] = None,
        debounce_ms: int = DEBOUNCE_MS,
        flash_ms: int = FLASH_MS,
        highlight_ms: int = HIGHLIGHT_MS,
        clock: Callable[[], int] = now_ms,
    ):
        self._fetcher = fetcher
        self.filters = filters or OpportunityFilters()
        self._scheduler = scheduler or LoopScheduler()
        self._debounce_s = debounce_ms / 1000.0
        self._flash_s = flash_ms / 1000.0
        self._highlight_s = highlight_ms / 1000.0
        self._clock = clock

        self.state = StreamState.UNINITIALIZED
        self.connection = ConnectionState.IDLE
        self.cache: Dict[str, Opportunity] = {}
        self.order: List[str] = []
        self.stale: Set[str] = set()
        self.stale_rows: Dict[str, Opportunity] = {}
        self.changes: Dict[str, ChangeRecord] = {}
        self.added: Set[str] = set()
        self.version = 0
        self.error: Optional[str] = None
        self.last_updated: Optional[int] = None
        self.total_scanned = 0
        self.meta: Dict[str, Any] = {}

        self._generation = 0
        self._inflight = False
        self._pending = False
        self._pending_initial = False
        self._debounce: Optional[TimerHandle] = None
        self._flash_timers: Dict[str, TimerHandle] = {}
        self._highlight_timers: Dict[str, TimerHandle] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._listeners: List[Listener] = []
        self.on_reconnect: Optional[Callable[[], None]] = None

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    async def load(self, filters: Optional[OpportunityFilters] = None) -> None:
        """Full fetch replacing the snapshot; used on start and filter change."""
        if filters is not None:
            self.filters = filters
        self._generation += 1
        self._cancel_debounce()
        await self._request(initial=True)

    async def refresh(self) -> None:
        await self._request(initial=False)

    def handle_signal(self, message: Any) -> bool:
        """Feed one change-signal message. Returns True if a refresh was scheduled."""
        sig = message if isinstance(message, Signal) else Signal.from_dict(message if isinstance(message, dict) else {})
        if sig.type != "update" or not sig.keys:
            return False
        hits = relevant_keys(sig.keys, self.filters)
        if not hits:
            logger.debug("skipping %d updates (no match)", sig.count)
            return False
        logger.debug("%d/%d relevant updates", len(hits), sig.count)
        self._cancel_debounce()
        self._debounce = self._scheduler.call_later(self._debounce_s, self._on_debounce)
        return True

    def set_connection(self, state: ConnectionState) -> None:
        if state != self.connection:
            self.connection = state
            self._notify()

    def reconnect(self) -> None:
        """Restart the signal feed (when attached) and pull a fresh snapshot."""
        if self.on_reconnect is not None:
            self.on_reconnect()
        self._spawn(self.refresh())

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        self._cancel_debounce()
        for h in list(self._flash_timers.values()) + list(self._highlight_timers.values()):
            h.cancel()
        self._flash_timers.clear()
        self._highlight_timers.clear()
        for t in list(self._tasks):
            t.cancel()
        self._listeners.clear()

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def loading(self) -> bool:
        return self.state is StreamState.LOADING

    @property
    def is_fetching(self) -> bool:
        return self._inflight

    @property
    def connection_status(self) -> str:
        """Connection indicator, with ``fetching`` while a pull is outstanding."""
        if self.connection in (ConnectionState.FAILED, ConnectionState.RECONNECTING):
            return self.connection.value
        if self._inflight:
            return "fetching"
        return self.connection.value

    def rows(self, *, include_stale: bool = True) -> List[Opportunity]:
        """Current rows in fetch order, stale rows appended, client filters applied."""
        out = [self.cache[i] for i in self.order if i in self.cache]
        if include_stale:
            out.extend(r for i, r in self.stale_rows.items() if i not in self.cache)
        return apply_client_filters(out, self.filters)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "state": self.state.value,
            "connection": self.connection_status,
            "error": self.error,
            "last_updated": self.last_updated,
            "total_scanned": self.total_scanned,
            "meta": dict(self.meta),
            "opportunities": [r.to_dict() for r in self.rows()],
            "stale": sorted(self.stale),
            "added": sorted(self.added),
            "changes": {k: v.to_dict() for k, v in self.changes.items()},
        }

    def add_listener(self, fn: Listener) -> Callable[[], None]:
        self._listeners.append(fn)

        def remove() -> None:
            if fn in self._listeners:
                self._listeners.remove(fn)
        return remove

    # ------------------------------------------------------------------
    # Fetch / apply
    # ------------------------------------------------------------------

    async def _request(self, *, initial: bool) -> None:
        if self._inflight:
            self._pending = True
            self._pending_initial = self._pending_initial or initial
            return
        self._inflight = True
        try:
            while True:
                await self._fetch_once(initial)
                if not self._pending:
                    break
                initial = self._pending_initial
                self._pending = False
                self._pending_initial = False
        finally:
            self._inflight = False

    async def _fetch_once(self, initial: bool) -> None:
        gen = self._generation
        loaded = self.state in (StreamState.READY, StreamState.REFRESHING)
        self.state = StreamState.LOADING if initial or not loaded else StreamState.REFRESHING
        try:
            page = await self._fetcher(self.filters, not initial)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("opportunity fetch failed: %s", e)
            self.error = str(e) or "Failed to fetch"
            self.state = StreamState.READY if loaded else StreamState.UNINITIALIZED
            self._notify()
            return
        if gen != self._generation:
            logger.debug("discarding snapshot for superseded filters")
            self.state = StreamState.READY if loaded else StreamState.UNINITIALIZED
            return
        if initial or not loaded:
            self._apply_initial(page)
        else:
            self._apply_diff(page)
        self.error = None
        self.total_scanned = page.total_scanned
        self.meta = {"total_scanned": page.total_scanned, "returned": len(self.cache), **page.meta}
        self.version += 1
        self.last_updated = self._clock()
        self.state = StreamState.READY
        self._notify()

    def _apply_initial(self, page: OpportunityPage) -> None:
        for h in list(self._flash_timers.values()) + list(self._highlight_timers.values()):
            h.cancel()
        self._flash_timers.clear()
        self._highlight_timers.clear()
        self.cache, self.order = dedupe(page.opportunities)
        self.stale.clear()
        self.stale_rows.clear()
        self.changes.clear()
        self.added.clear()

    def _apply_diff(self, page: OpportunityPage) -> None:
        d = diff_snapshots(self.cache, page.opportunities)
        for oid in d.removed:
            self.stale.add(oid)
            self.stale_rows[oid] = self.cache[oid]
        for oid in d.snapshot:
            self.stale.discard(oid)
            self.stale_rows.pop(oid, None)
        self.cache, self.order = d.snapshot, d.order

        for oid, rec in d.changes.items():
            self.changes[oid] = rec
            self._restart(self._flash_timers, oid, self._flash_s, self._clear_change)
        for oid in d.added:
            self.added.add(oid)
            self._restart(self._highlight_timers, oid, self._highlight_s, self._clear_added)
        if not d.is_empty:
            logger.info("diff +%d ~%d -%d", len(d.added), len(d.updated), len(d.removed))

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def _restart(self, timers: Dict[str, TimerHandle], oid: str, delay: float,
                 fire: Callable[[str], None]) -> None:
        old = timers.pop(oid, None)
        if old is not None:
            old.cancel()
        timers[oid] = self._scheduler.call_later(delay, lambda: fire(oid))

    def _clear_change(self, oid: str) -> None:
        self._flash_timers.pop(oid, None)
        if self.changes.pop(oid, None) is not None:
            self._notify()

    def _clear_added(self, oid: str) -> None:
        self._highlight_timers.pop(oid, None)
        if oid in self.added:
            self.added.discard(oid)
            self._notify()

    def _cancel_debounce(self) -> None:
        if self._debounce is not None:
            self._debounce.cancel()
            self._debounce = None

    def _on_debounce(self) -> None:
        self._debounce = None
        self._spawn(self.refresh())

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _notify(self) -> None:
        for fn in list(self._listeners):
            try:
                fn(self)
            except Exception:
                logger.exception("stream listener failed")
