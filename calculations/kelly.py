"""Bet sizing helpers on top of the Kelly criterion.

f = (b*p - q) / b, with b = decimal - 1 and q = 1 - p.
"""
from __future__ import annotations

import math
from dataclasses import dataclass

from .convert import american_to_decimal, decimal_to_implied_prob

DEFAULT_KELLY_FRACTION = 0.25
LONG_ODDS_ANCHOR_PROB = 0.45
LONG_ODDS_MIN_MULTIPLIER = 0.35


def apply_boost_to_decimal_odds(decimal_odds: float, boost_percent: float) -> float:
    """A profit boost scales the profit part: 2.50 with 30% -> 2.95."""
    if boost_percent <= 0:
        return decimal_odds
    return 1 + (decimal_odds - 1) * (1 + boost_percent / 100.0)


def _full_kelly(best_odds: float, fair_odds: float, boost_percent: float) -> float:
    decimal = apply_boost_to_decimal_odds(american_to_decimal(best_odds), boost_percent)
    p = decimal_to_implied_prob(american_to_decimal(fair_odds))
    b = decimal - 1
    if b <= 0:
        return 0.0
    return (b * p - (1 - p)) / b


def calculate_kelly_stake(bankroll: float, best_odds: float, fair_odds: float,
                          fraction: float = DEFAULT_KELLY_FRACTION, boost_percent: float = 0.0) -> float:
    """Recommended stake, never negative."""
    if not bankroll or bankroll <= 0 or not best_odds or not fair_odds:
        return 0.0
    return bankroll * max(0.0, _full_kelly(best_odds, fair_odds, boost_percent) * fraction)


def format_stake(stake: float) -> str:
    if stake <= 0:
        return "$0"
    if stake < 1:
        return f"${stake:.2f}"
    if stake < 10:
        return f"${round(stake)}"
    if stake < 100:
        return f"${round(stake / 5) * 5}"
    return f"${round(stake / 10) * 10}"


def get_long_odds_stake_multiplier(american_odds: float) -> float:
    """Dampener for long underdog prices; 1 for favourites and near-even."""
    if not math.isfinite(american_odds) or american_odds <= 100:
        return 1.0
    implied = decimal_to_implied_prob(american_to_decimal(american_odds))
    scaled = math.sqrt(implied / LONG_ODDS_ANCHOR_PROB)
    return max(LONG_ODDS_MIN_MULTIPLIER, min(1.0, scaled))


@dataclass(frozen=True)
class KellyStake:
    stake: float
    display: str
    kelly_pct: float


def get_kelly_stake_display(bankroll: float, best_odds: float, fair_odds: float,
                            kelly_percent: float = 25.0, boost_percent: float = 0.0) -> KellyStake:
    fraction = kelly_percent / 100.0 if kelly_percent > 0 else DEFAULT_KELLY_FRACTION
    if not best_odds or not fair_odds:
        return KellyStake(0.0, format_stake(0.0), 0.0)
    full = _full_kelly(best_odds, fair_odds, boost_percent)
    stake = max(0.0, bankroll or 0.0) * max(0.0, full * fraction)
    return KellyStake(stake, format_stake(stake), max(0.0, full * 100))
