from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from utils import parse_american, to_epoch_seconds


def _num(v: Any) -> Optional[float]:
    if v is None or isinstance(v, bool):
        return None
    try:
        return float(v)
    except (TypeError, ValueError):
        return None


def _token(v: Any) -> str:
    return str(v if v is not None else "").strip().lower()


def _line_token(v: Any) -> str:
    n = _num(v)
    return f"{n:g}" if n is not None else _token(v)


def opportunity_id(event_id: Any, player: Any, market: Any, line: Any, side: Any) -> str:
    """Stable identity of a selection: event:player:market:line:side, lower-cased."""
    return ":".join((_token(event_id), _token(player), _token(market), _line_token(line), _token(side)))


@dataclass(frozen=True)
class Opportunity:
    """One tradeable edge as returned by the opportunities endpoint.

    ``price`` is the best American price as an int (0 when missing) and
    ``edge`` the edge percent (falls back to EV percent). ``raw`` keeps the
    upstream payload for re-serialisation.
    """
    id: str
    sport: str
    event_id: str
    player: str
    market: str
    line: Optional[float]
    side: str
    best_book: str
    price: int
    edge: float
    ev_pct: Optional[float] = None
    best_link: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Opportunity":
        event_id = d.get("event_id") or d.get("eventId") or ""
        player = d.get("player") or ""
        market = d.get("market") or ""
        line = d.get("line")
        side = d.get("side") or ""
        edge = _num(d.get("edge_pct"))
        ev_pct = _num(d.get("ev_pct"))
        if edge is None:
            edge = ev_pct if ev_pct is not None else 0.0
        return cls(
            id=opportunity_id(event_id, player, market, line, side),
            sport=_token(d.get("sport")),
            event_id=str(event_id),
            player=str(player),
            market=str(market),
            line=_num(line),
            side=_token(side),
            best_book=_token(d.get("best_book")),
            price=parse_american(d.get("best_price")) or 0,
            edge=edge,
            ev_pct=ev_pct,
            best_link=d.get("best_link"),
            raw=dict(d),
        )

    def to_dict(self) -> Dict[str, Any]:
        out = dict(self.raw)
        out["id"] = self.id
        return out


@dataclass(frozen=True)
class OpportunityPage:
    opportunities: List[Opportunity]
    total_scanned: int = 0
    meta: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_response(cls, payload: Dict[str, Any]) -> "OpportunityPage":
        rows = payload.get("opportunities") or []
        opps = [Opportunity.from_dict(r) for r in rows if isinstance(r, dict)]
        try:
            total = int(payload.get("total_scanned") or 0)
        except (TypeError, ValueError):
            total = 0
        meta = payload.get("meta") if isinstance(payload.get("meta"), dict) else {}
        return cls(opps, total, dict(meta))


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"

    @classmethod
    def between(cls, before: float, after: float, eps: float = 0.0) -> Optional["Direction"]:
        if after - before > eps:
            return cls.UP
        if before - after > eps:
            return cls.DOWN
        return None


@dataclass(frozen=True)
class ChangeRecord:
    edge: Optional[Direction] = None
    price: Optional[Direction] = None

    def to_dict(self) -> Dict[str, str]:
        out = {}
        if self.edge:
            out["edge"] = self.edge.value
        if self.price:
            out["price"] = self.price.value
        return out


@dataclass(frozen=True)
class Signal:
    """A change-signal feed message."""
    type: str
    keys: List[str]
    count: int = 0
    timestamp: Optional[int] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Signal":
        keys = d.get("keys")
        keys = [str(k) for k in keys] if isinstance(keys, list) else []
        try:
            count = int(d.get("count") or len(keys))
        except (TypeError, ValueError):
            count = len(keys)
        return cls(str(d.get("type") or ""), keys, count, to_epoch_seconds(d.get("timestamp")))
