"""Builders shared by the stream tests (fixtures live in conftest.py)."""

from __future__ import annotations

import asyncio
from typing import Any, List, Optional

from opportunities.models import Opportunity, OpportunityPage


def build_opp(player: str, *, edge: float = 5.0, price: int = 150, market: str = "points",
              line: Optional[float] = 20.5, side: str = "over", sport: str = "nba",
              event_id: str = "evt1", book: str = "fanduel") -> Opportunity:
    return Opportunity.from_dict({
        "sport": sport,
        "event_id": event_id,
        "player": player,
        "market": market,
        "line": line,
        "side": side,
        "best_book": book,
        "best_price": price,
        "edge_pct": edge,
    })


def build_page(*opps: Opportunity, total_scanned: int = 0) -> OpportunityPage:
    return OpportunityPage(list(opps), total_scanned or len(opps), {})


class FakeFetcher:
    """Async fetcher returning queued items; the last item repeats.

    Exception items are raised. Set ``gate`` to an asyncio.Event to hold
    fetches until it is set.
    """

    def __init__(self, *items: Any):
        self.items: List[Any] = list(items)
        self.calls: List[tuple] = []
        self.gate: Optional[asyncio.Event] = None

    async def __call__(self, filters, refresh):
        self.calls.append((filters, refresh))
        if self.gate is not None:
            await self.gate.wait()
        item = self.items.pop(0) if len(self.items) > 1 else self.items[0]
        if isinstance(item, Exception):
            raise item
        return item
