from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from .convert import (
    american_to_decimal,
    american_to_implied_prob,
    implied_prob_to_american,
)
from .types import (
    BookOffer,
    DevigMethod,
    EVCalculation,
    MultiDevigResult,
    MultiEVCalculation,
    SharpReference,
    Side,
    WeightedOdds,
)


def calculate_ev(fair_prob: float, book_odds: float) -> float:
    """EV as a fraction of stake: fair_prob * decimal - 1."""
    return fair_prob * american_to_decimal(book_odds) - 1.0


def calculate_kelly(fair_prob: float, book_odds: float) -> float:
    """Full-Kelly bankroll fraction, floored at 0."""
    decimal = american_to_decimal(book_odds)
    if decimal <= 1:
        return 0.0
    return max(0.0, (fair_prob * decimal - 1.0) / (decimal - 1.0))


def calculate_ev_details(fair_prob: float, offer: BookOffer, method: DevigMethod) -> EVCalculation:
    book_decimal = american_to_decimal(offer.price)
    book_prob = american_to_implied_prob(offer.price)
    ev = calculate_ev(fair_prob, offer.price)
    return EVCalculation(
        method=method,
        fair_prob=fair_prob,
        book_prob=book_prob,
        book_decimal=book_decimal,
        ev=ev,
        ev_percent=ev * 100.0,
        edge=book_prob - fair_prob,
        kelly_fraction=calculate_kelly(fair_prob, offer.price),
    )


def calculate_multi_ev(devig_results: MultiDevigResult, offer: BookOffer, side: Side | str) -> MultiEVCalculation:
    """EV for one offer under every successful de-vig result.

    Aggregates are in EV percent. With no successful method all aggregates
    are 0 and ``kelly_worst`` stays None.
    """
    out = MultiEVCalculation()
    evs: List[float] = []
    kellys: List[float] = []
    for method in DevigMethod:
        res = devig_results.get(method)
        if res is None or not res.success:
            continue
        calc = calculate_ev_details(res.fair_prob(side), offer, method)
        out.by_method[method] = calc
        evs.append(calc.ev_percent)
        kellys.append(calc.kelly_fraction)

    if evs:
        out.ev_worst = min(evs)
        out.ev_best = max(evs)
        out.ev_display = out.ev_worst
    if kellys:
        out.kelly_worst = min(kellys)
    return out


def is_positive_ev(calc: MultiEVCalculation, min_ev: float = 0.0) -> bool:
    """+EV iff the worst-case EV percent clears the threshold."""
    return calc.ev_worst > min_ev


def blend_sharp_odds(book_odds: Sequence[WeightedOdds]) -> int:
    """Blend several reference books by weighted implied probability.

    Averaging odds directly would skew toward the longer price.
    """
    if not book_odds:
        return 0
    if len(book_odds) == 1:
        return int(round(book_odds[0].odds))
    total_weight = 0.0
    blended = 0.0
    for wo in book_odds:
        blended += american_to_implied_prob(wo.odds) * wo.weight
        total_weight += wo.weight
    if total_weight <= 0:
        return 0
    return implied_prob_to_american(blended / total_weight)


def create_sharp_reference(over_odds: float, under_odds: float, preset: str, source: str,
                           blended_from: Optional[Iterable[str]] = None) -> SharpReference:
    return SharpReference(
        preset=preset,
        over_odds=over_odds,
        under_odds=under_odds,
        over_decimal=american_to_decimal(over_odds),
        under_decimal=american_to_decimal(under_odds),
        source=source,
        blended_from=tuple(blended_from) if blended_from is not None else None,
    )


def format_ev(ev_percent: float) -> str:
    """5.23 -> '+5.2%'"""
    sign = "+" if ev_percent >= 0 else ""
    return f"{sign}{ev_percent:.1f}%"


def format_kelly(kelly: float, fraction: float = 1.0) -> str:
    return f"{kelly * fraction * 100:.1f}%"


def get_kelly_stake(kelly: float, bankroll: float, fraction: float = 1.0) -> float:
    return bankroll * kelly * fraction
