from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from .evcalc import blend_sharp_odds
from .types import BookOffer, WeightedOdds

MARKET_AVERAGE = "market_average"


@dataclass(frozen=True)
class SharpPreset:
    id: str
    label: str
    books: Tuple[Tuple[str, float], ...]


def _single(book: str, label: str) -> SharpPreset:
    return SharpPreset(book, label, ((book, 1.0),))


SHARP_PRESETS: Dict[str, SharpPreset] = {
    p.id: p for p in (
        _single("pinnacle", "Pinnacle"),
        _single("circa", "Circa"),
        _single("prophetx", "ProphetX"),
        SharpPreset("pinnacle_circa", "Pinnacle + Circa", (("pinnacle", 0.5), ("circa", 0.5))),
        SharpPreset("hardrock_thescore", "Hard Rock + theScore", (("hardrock", 0.5), ("thescore", 0.5))),
        _single("draftkings", "DraftKings"),
        _single("fanduel", "FanDuel"),
        _single("betmgm", "BetMGM"),
        _single("caesars", "Caesars"),
        _single("hardrock", "Hard Rock"),
        _single("bet365", "Bet365"),
        SharpPreset(MARKET_AVERAGE, "Market Average", ()),
    )
}


@dataclass(frozen=True)
class SharpOdds:
    price: int
    source: str
    blended_from: Optional[Tuple[str, ...]] = None


def sharp_odds_for_preset(offers: Iterable[BookOffer], preset: str) -> Optional[SharpOdds]:
    """Reference price for one side under a preset.

    Multi-book presets need every member book present; a partial blend is
    not a reference. ``market_average`` weights all offers equally.
    """
    cfg = SHARP_PRESETS.get((preset or "").strip().lower())
    if cfg is None:
        return None
    by_book = {}
    for o in offers:
        by_book.setdefault(o.book.strip().lower(), o)

    if cfg.id == MARKET_AVERAGE:
        if not by_book:
            return None
        blended = blend_sharp_odds([WeightedOdds(b, o.price, 1.0) for b, o in by_book.items()])
        if blended == 0:
            return None
        return SharpOdds(blended, f"Market Avg ({len(by_book)} books)", tuple(by_book))

    if len(cfg.books) == 1:
        match = by_book.get(cfg.books[0][0])
        return SharpOdds(int(match.price), cfg.books[0][0]) if match else None

    inputs = []
    for book, weight in cfg.books:
        match = by_book.get(book)
        if match is None:
            return None
        inputs.append(WeightedOdds(book, match.price, weight))
    blended = blend_sharp_odds(inputs)
    if blended == 0:
        return None
    names = tuple(w.book for w in inputs)
    return SharpOdds(blended, f"{cfg.id} ({', '.join(names)})", names)
