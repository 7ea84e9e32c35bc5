"""
SgpAggregator
=============

Prices a set of parlay legs across books with at most one upstream call per
distinct token combination.

Per book, the tokens of the legs it supports are collected. Books with fewer
than two tokens, or with duplicate tokens, get a per-book error and are never
sent upstream. The remaining books are grouped by an order-independent hash of
their token set. Each group is priced once (cache first) and the quote is
copied to every member, annotated with that member's own leg coverage.
"""
from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import AsyncIterator, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from oddsblaze.config import DEFAULT_SGP_BOOKS

from .cache import QuoteCache
from .config import (
    DUPLICATE_TOKENS,
    MIN_LEGS,
    NEGATIVE_CACHE_TTL,
    NOT_ENOUGH_LEGS,
    REQUEST_FAILED,
    STREAM_PING_INTERVAL_MS,
    STREAM_TIME_BUDGET_MS,
    is_transient_error,
    logger,
)
from .errors import SgpRequestError
from .hashing import books_with_full_support, compute_legs_hash, compute_token_hash, sort_by_priority, tokens_for_book
from .models import AggregateResult, SgpBookOdds, SgpLeg, SgpQuoteCacheEntry

QuoteProvider = Callable[[str, List[str]], SgpBookOdds]


def resolve_books(sportsbooks: Optional[Iterable[str]], default: Optional[Iterable[str]] = None) -> List[str]:
    """Requested books (deduplicated, in order) or the default SGP books."""
    seen: set = set()
    out: List[str] = []
    for b in sportsbooks or default or DEFAULT_SGP_BOOKS:
        b = str(b).strip().lower()
        if b and b not in seen:
            seen.add(b)
            out.append(b)
    return out


@dataclass
class _Group:
    tokens: List[str]
    books: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class StreamEvent:
    """One server-sent event; ``event`` None is a comment (keep-alive)."""
    event: Optional[str]
    data: Optional[dict] = None


@dataclass
class StreamPlan:
    legs: List[SgpLeg]
    legs_hash: str
    books_pending: List[str]
    cached: Optional[SgpQuoteCacheEntry] = None
    fresh: bool = False
    skipped: List[str] = field(default_factory=list)


class SgpAggregator:
    def __init__(
        self,
        provider: QuoteProvider,
        cache: Optional[QuoteCache] = None,
        *,
        negative_ttl_seconds: float = NEGATIVE_CACHE_TTL,
        time_budget_ms: int = STREAM_TIME_BUDGET_MS,
        ping_interval_ms: int = STREAM_PING_INTERVAL_MS,
        default_books: Optional[Iterable[str]] = None,
        supported_books: Optional[Iterable[str]] = None,
    ):
        self.provider = provider
        self.cache = cache if cache is not None else QuoteCache()
        self.negative_ttl_seconds = negative_ttl_seconds
        self.time_budget_ms = time_budget_ms
        self.ping_interval_ms = ping_interval_ms
        self.default_books = list(default_books) if default_books else None
        # None accepts any book id
        self.supported_books = frozenset(supported_books) if supported_books is not None else None

    def books_for(self, sportsbooks: Optional[Iterable[str]] = None) -> List[str]:
        """Requested (or default) books, limited to those that offer SGPs."""
        books = resolve_books(sportsbooks, self.default_books)
        if self.supported_books is None:
            return books
        dropped = [b for b in books if b not in self.supported_books]
        if dropped:
            logger.info("ignoring books without SGP support: %s", ", ".join(dropped))
        return [b for b in books if b in self.supported_books]

    # ------------------------------------------------------------------
    # Upstream
    # ------------------------------------------------------------------

    async def _call_provider(self, book: str, tokens: List[str]) -> SgpBookOdds:
        try:
            return await asyncio.to_thread(self.provider, book, list(tokens))
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("sgp provider failed for %s", book)
            return SgpBookOdds.failed(REQUEST_FAILED)

    def _remember(self, token_hash: str, book: str, odds: SgpBookOdds) -> None:
        if is_transient_error(odds.error):
            return
        ttl = None if odds.error is None else self.negative_ttl_seconds
        self.cache.set(token_hash, {book: odds.quote_only()}, ttl)

    async def _price_group(self, token_hash: str, group: _Group) -> Tuple[SgpBookOdds, bool]:
        """Quote for a token group and whether it came from the cache."""
        entry = self.cache.get(token_hash)
        if entry is not None:
            cached = entry.quote_for()
            if cached is not None:
                return cached, True
        book = sort_by_priority(group.books)[0]
        odds = await self._call_provider(book, group.tokens)
        self._remember(token_hash, book, odds)
        return odds, False

    # ------------------------------------------------------------------
    # Aggregate
    # ------------------------------------------------------------------

    async def aggregate(
        self,
        legs: Sequence[SgpLeg],
        sportsbooks: Optional[Iterable[str]] = None,
        *,
        cancel: Optional[asyncio.Event] = None,
    ) -> Optional[AggregateResult]:
        """Price ``legs`` at every requested book.

        Returns None when ``cancel`` is set before pricing finishes.
        """
        total = len(legs)
        books = self.books_for(sportsbooks)
        odds: Dict[str, SgpBookOdds] = {}
        support: Dict[str, int] = {}
        groups: Dict[str, _Group] = {}
        fetched: List[str] = []

        for book in books:
            tokens = tokens_for_book(legs, book)
            support[book] = len(tokens)
            if len(tokens) < MIN_LEGS:
                odds[book] = SgpBookOdds.failed(NOT_ENOUGH_LEGS).with_support(len(tokens), total)
                continue
            fetched.append(book)
            if len(set(tokens)) != len(tokens):
                logger.warning("skipping %s: duplicate tokens detected", book)
                odds[book] = SgpBookOdds.failed(DUPLICATE_TOKENS).with_support(len(tokens), total)
                continue
            h = compute_token_hash(tokens)
            groups.setdefault(h, _Group(tokens)).books.append(book)

        hashes = list(groups)
        pricing = asyncio.ensure_future(asyncio.gather(*(self._price_group(h, groups[h]) for h in hashes)))
        if cancel is None:
            priced = await pricing
        else:
            waiter = asyncio.ensure_future(cancel.wait())
            done, _ = await asyncio.wait({pricing, waiter}, return_when=asyncio.FIRST_COMPLETED)
            if pricing not in done:
                pricing.cancel()
                await asyncio.gather(pricing, return_exceptions=True)
                logger.info("sgp aggregate cancelled with %d groups outstanding", len(hashes))
                return None
            waiter.cancel()
            priced = pricing.result()

        upstream_calls = 0
        for h, (quote, from_cache) in zip(hashes, priced):
            if not from_cache:
                upstream_calls += 1
            for book in groups[h].books:
                odds[book] = quote.with_support(support[book], total, from_cache=from_cache)

        logger.info("sgp aggregate: %d upstream calls for %d books", upstream_calls, len(fetched))
        return AggregateResult(
            odds={b: odds[b] for b in books if b in odds},
            total_legs=total,
            books_fetched=fetched,
            upstream_calls=upstream_calls,
        )

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    def plan_stream(self, legs: Sequence[SgpLeg], sportsbooks: Optional[Iterable[str]] = None) -> StreamPlan:
        """Resolve the legs hash, the books to price and any cached entry.

        Books whose tokens repeat are kept out of ``books_pending`` and listed
        in ``skipped``. ``fresh`` means the cached entry holds at least one
        price and can be served as is.
        """
        if len(legs) < MIN_LEGS:
            raise SgpRequestError("At least 2 legs required")
        supported = books_with_full_support(legs, self.books_for(sportsbooks))
        if not supported:
            raise SgpRequestError("No books support all legs")
        pending: List[str] = []
        skipped: List[str] = []
        for book in sort_by_priority(supported):
            tokens = tokens_for_book(legs, book)
            (pending if len(set(tokens)) == len(tokens) else skipped).append(book)
        if skipped:
            logger.warning("skipping %s: duplicate tokens detected", ", ".join(skipped))
        legs_hash = compute_legs_hash(legs)
        cached = self.cache.get(legs_hash)
        return StreamPlan(
            legs=list(legs),
            legs_hash=legs_hash,
            books_pending=pending,
            cached=cached,
            fresh=cached is not None and cached.has_price and not self.cache.is_stale(cached),
            skipped=skipped,
        )

    def cached_body(self, plan: StreamPlan) -> dict:
        entry = plan.cached
        return {
            "legs_hash": plan.legs_hash,
            "quotes": {b: q.to_dict() for b, q in entry.quotes.items()},
            "from_cache": True,
            "cache_age_ms": self.cache.age_ms(entry),
        }

    async def stream(self, plan: StreamPlan) -> AsyncIterator[StreamEvent]:
        """
        hello, then one quote per book as it lands, then done.

        Books still outstanding when the time budget runs out are reported in
        ``done.pending``. Books in ``plan.skipped`` are reported as failed
        without an upstream call. Each non-transient quote is merged into the
        cache entry as it lands, so partial results survive a consumer that
        stops early.
        """
        hello = {"legs_hash": plan.legs_hash, "books_pending": list(plan.books_pending)}
        if plan.cached is not None:
            hello["stale_cache"] = {b: q.to_dict() for b, q in plan.cached.quotes.items()}
        yield StreamEvent("hello", hello)

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.time_budget_ms / 1000.0
        ping_every = self.ping_interval_ms / 1000.0

        tasks: Dict[asyncio.Task, str] = {}
        for book in plan.books_pending:
            tokens = tokens_for_book(plan.legs, book)
            tasks[asyncio.ensure_future(self._call_provider(book, tokens))] = book

        results: Dict[str, SgpBookOdds] = {}
        completed: List[str] = []
        failed: List[str] = []
        timed_out = False
        try:
            for book in plan.skipped:
                failed.append(book)
                yield StreamEvent("quote", {"book_id": book, **SgpBookOdds.failed(DUPLICATE_TOKENS).to_dict()})

            waiting = set(tasks)
            while waiting:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    timed_out = True
                    break
                done, waiting = await asyncio.wait(waiting, timeout=min(remaining, ping_every),
                                                   return_when=asyncio.FIRST_COMPLETED)
                if not done:
                    if loop.time() < deadline:
                        yield StreamEvent(None)
                    continue
                for t in done:
                    book = tasks[t]
                    quote = t.result()
                    results[book] = quote
                    (failed if quote.error else completed).append(book)
                    if not is_transient_error(quote.error):
                        ttl = None if quote.ok else self.negative_ttl_seconds
                        self.cache.update_cached_quote(plan.legs_hash, book, quote, ttl)
                    yield StreamEvent("quote", {"book_id": book, **quote.to_dict()})

            pending = [b for b in plan.books_pending if b not in results]
            yield StreamEvent("done", {
                "completed": completed,
                "failed": failed,
                "pending": pending,
                "from_cache": False,
                "timed_out": timed_out,
            })
        finally:
            for t in tasks:
                if not t.done():
                    t.cancel()


def format_sse(ev: StreamEvent) -> str:
    if ev.event is None:
        return ": ping\n\n"
    return f"event: {ev.event}\ndata: {json.dumps(ev.data, separators=(',', ':'))}\n\n"
