from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

from .errors import SgpRequestError


@dataclass(frozen=True)
class SgpLeg:
    """One parlay leg with each book's opaque correlation token for it."""
    event_id: str
    market: str
    side: str
    line: Optional[float] = None
    player_id: Optional[str] = None
    sgp_tokens: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SgpLeg":
        if not isinstance(d, dict):
            raise SgpRequestError("Invalid leg")
        tokens = d.get("sgp_tokens") or {}
        if not isinstance(tokens, dict):
            raise SgpRequestError("Invalid sgp_tokens")
        line = d.get("line")
        try:
            line = float(line) if line is not None else None
        except (TypeError, ValueError) as e:
            raise SgpRequestError(f"Invalid line: {line!r}") from e
        return cls(
            event_id=str(d.get("event_id") or ""),
            market=str(d.get("market") or ""),
            side=str(d.get("side") or ""),
            line=line,
            player_id=(str(d["player_id"]) if d.get("player_id") else None),
            sgp_tokens={str(k).strip().lower(): str(v) for k, v in tokens.items() if v},
        )

    def token_for(self, book: str) -> Optional[str]:
        return self.sgp_tokens.get(book)


@dataclass(frozen=True)
class SgpBookOdds:
    price: Optional[str] = None
    links: Optional[Dict[str, str]] = None
    limits: Optional[Dict[str, float]] = None
    error: Optional[str] = None
    legs_supported: Optional[int] = None
    total_legs: Optional[int] = None
    has_all_legs: Optional[bool] = None
    from_cache: Optional[bool] = None

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.price)

    @classmethod
    def failed(cls, error: str) -> "SgpBookOdds":
        return cls(error=error)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SgpBookOdds":
        known = {k: d.get(k) for k in cls.__dataclass_fields__ if k in d}
        return cls(**known)

    def with_support(self, legs_supported: int, total_legs: int, *, from_cache: Optional[bool] = None) -> "SgpBookOdds":
        return replace(
            self,
            legs_supported=legs_supported,
            total_legs=total_legs,
            has_all_legs=legs_supported == total_legs,
            from_cache=from_cache if from_cache is not None else self.from_cache,
        )

    def quote_only(self) -> "SgpBookOdds":
        """The book-independent part, as stored in the cache."""
        return SgpBookOdds(price=self.price, links=self.links, limits=self.limits, error=self.error)

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class SgpQuoteCacheEntry:
    legs_hash: str
    quotes: Dict[str, SgpBookOdds]
    cached_at: int
    ttl_seconds: float

    def age_ms(self, now: int) -> int:
        return max(0, now - self.cached_at)

    def is_expired(self, now: int) -> bool:
        return self.age_ms(now) > self.ttl_seconds * 1000

    @property
    def has_price(self) -> bool:
        return any(q.ok for q in self.quotes.values())

    def quote_for(self, book: Optional[str] = None) -> Optional[SgpBookOdds]:
        if book is not None and book in self.quotes:
            return self.quotes[book]
        return next(iter(self.quotes.values()), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "legs_hash": self.legs_hash,
            "quotes": {b: q.to_dict() for b, q in self.quotes.items()},
            "cached_at": self.cached_at,
            "ttl_seconds": self.ttl_seconds,
        }


@dataclass
class AggregateResult:
    odds: Dict[str, SgpBookOdds]
    total_legs: int
    books_fetched: List[str]
    upstream_calls: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "odds": {b: o.to_dict() for b, o in self.odds.items()},
            "total_legs": self.total_legs,
            "books_fetched": list(self.books_fetched),
        }


def parse_request(body: Any) -> Tuple[List[SgpLeg], Optional[List[str]]]:
    """Validate a pricing body into (legs, sportsbooks or None)."""
    if not isinstance(body, dict):
        raise SgpRequestError("Invalid request body")
    raw_legs = body.get("legs")
    if not isinstance(raw_legs, list) or len(raw_legs) < 2:
        raise SgpRequestError("At least 2 legs required")
    legs = [SgpLeg.from_dict(x) for x in raw_legs]
    books = body.get("sportsbooks")
    if books is not None and not isinstance(books, list):
        raise SgpRequestError("sportsbooks must be a list")
    wanted = [str(b).strip().lower() for b in books or [] if str(b).strip()]
    return legs, wanted or None
