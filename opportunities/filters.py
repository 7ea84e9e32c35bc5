from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Set

from .models import Opportunity

DEFAULT_MIN_ODDS = -10000
DEFAULT_MAX_ODDS = 20000


def norm_token(x: Any) -> str:
    try:
        return (x or "").strip().lower()
    except AttributeError:
        return str(x).strip().lower()


def normalize_filter_values(value: Any) -> Set[str]:
    """
    Accept str (comma-separated), list/tuple/set, or scalar and normalize to a lower-cased set.
    """
    if value is None:
        return set()
    if isinstance(value, str):
        cand = value.split(",")
    elif isinstance(value, (list, tuple, set, frozenset)):
        cand = [str(it) for it in value if it is not None]
    else:
        cand = [str(value)]
    return {c.strip().lower() for c in cand if c and c.strip()}


def _int(v: Any, default: int) -> int:
    try:
        return int(v)
    except (TypeError, ValueError):
        return default


def _float(v: Any, default: float) -> float:
    try:
        return float(v)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class OpportunityFilters:
    """
    Filter set of one stream session.

    The first group is sent to the opportunities endpoint; ``markets`` also
    drives signal relevance. ``market_contains`` and ``search`` apply only to
    rows already fetched.
    """
    sports: FrozenSet[str] = frozenset()
    markets: FrozenSet[str] = frozenset()
    preset: Optional[str] = None
    market_lines: Dict[str, List[float]] = field(default_factory=dict)
    min_odds: int = DEFAULT_MIN_ODDS
    max_odds: int = DEFAULT_MAX_ODDS
    min_edge: float = 0.0
    min_books_per_side: int = 2
    sort: str = "edge"
    limit: int = 200

    market_contains: str = ""
    search: str = ""

    @staticmethod
    def from_prefs(prefs: Dict[str, Any]) -> "OpportunityFilters":
        ml = prefs.get("market_lines") or prefs.get("marketLines") or {}
        if isinstance(ml, str):
            try:
                ml = json.loads(ml)
            except ValueError:
                ml = {}
        return OpportunityFilters(
            sports=frozenset(normalize_filter_values(prefs.get("sports") or prefs.get("sport"))),
            markets=frozenset(normalize_filter_values(prefs.get("markets") or prefs.get("market"))),
            preset=norm_token(prefs.get("preset")) or None,
            market_lines=dict(ml) if isinstance(ml, dict) else {},
            min_odds=_int(prefs.get("min_odds", prefs.get("minOdds")), DEFAULT_MIN_ODDS),
            max_odds=_int(prefs.get("max_odds", prefs.get("maxOdds")), DEFAULT_MAX_ODDS),
            min_edge=_float(prefs.get("min_edge", prefs.get("minEdge")), 0.0),
            min_books_per_side=_int(prefs.get("min_books_per_side", prefs.get("minBooksPerSide")), 2),
            sort=norm_token(prefs.get("sort")) or "edge",
            limit=_int(prefs.get("limit"), 200),
            market_contains=norm_token(prefs.get("market_contains") or prefs.get("marketSearch")),
            search=norm_token(prefs.get("search")),
        )

    def with_updates(self, **changes: Any) -> "OpportunityFilters":
        return replace(self, **changes)

    def to_query_params(self, *, refresh: bool = False) -> Dict[str, str]:
        params = {
            "sports": ",".join(sorted(self.sports)),
            "minOdds": str(self.min_odds),
            "maxOdds": str(self.max_odds),
            "minEdge": f"{self.min_edge:g}",
            "minBooksPerSide": str(self.min_books_per_side),
            "sort": self.sort,
            "limit": str(self.limit),
        }
        if self.preset:
            params["preset"] = self.preset
        if self.market_lines:
            params["marketLines"] = json.dumps(self.market_lines, sort_keys=True, separators=(",", ":"))
        if refresh:
            params["refresh"] = "true"
        return params


def is_relevant_key(key: str, sports: Iterable[str], markets: Iterable[str] = ()) -> bool:
    """
    Signal keys look like ``odds:{sport}:{event}:{market}:{book}``.

    A key is relevant when its sport is selected (or no sport filter is set)
    and, with a market filter active, its market is selected.
    """
    parts = str(key or "").split(":")
    if len(parts) < 4:
        return False
    sport, market = parts[1].strip().lower(), parts[3].strip().lower()
    sports = set(sports or ())
    markets = set(markets or ())
    if sports and sport not in sports:
        return False
    if markets and market not in markets:
        return False
    return True


def relevant_keys(keys: Iterable[str], filters: OpportunityFilters) -> List[str]:
    return [k for k in keys if is_relevant_key(k, filters.sports, filters.markets)]


def matches_client_filters(opp: Opportunity, filters: OpportunityFilters) -> bool:
    if opp.edge < filters.min_edge:
        return False
    if opp.price and not (filters.min_odds <= opp.price <= filters.max_odds):
        return False
    if filters.market_contains and filters.market_contains not in opp.market.lower():
        return False
    if filters.search:
        hay = " ".join((opp.player, opp.market, opp.best_book, opp.event_id)).lower()
        if filters.search not in hay:
            return False
    return True


def apply_client_filters(rows: Iterable[Opportunity], filters: OpportunityFilters) -> List[Opportunity]:
    return [r for r in rows if matches_client_filters(r, filters)]
