from __future__ import annotations

import math

# Degenerate inputs (odds of 0, probabilities outside (0, 1)) map to neutral
# values rather than raising: prob 0, decimal 1, American 0.


def _finite(x: float) -> bool:
    try:
        return math.isfinite(float(x))
    except (TypeError, ValueError):
        return False


def american_to_implied_prob(odds: float) -> float:
    """-110 -> 0.5238, +150 -> 0.4"""
    if not _finite(odds) or odds == 0:
        return 0.0
    if odds < 0:
        return abs(odds) / (abs(odds) + 100.0)
    return 100.0 / (odds + 100.0)


def american_to_decimal(odds: float) -> float:
    """-110 -> 1.909, +150 -> 2.5"""
    if not _finite(odds) or odds == 0:
        return 1.0
    if odds < 0:
        return 1.0 + 100.0 / abs(odds)
    return 1.0 + odds / 100.0


def decimal_to_american(decimal: float) -> int:
    if not _finite(decimal) or decimal <= 1:
        return 0
    if decimal >= 2:
        return int(round((decimal - 1) * 100))
    return int(round(-100.0 / (decimal - 1)))


def implied_prob_to_american(prob: float) -> int:
    if not _finite(prob) or prob <= 0 or prob >= 1:
        return 0
    if prob >= 0.5:
        return int(round(-100.0 * prob / (1 - prob)))
    return int(round(100.0 * (1 - prob) / prob))


def implied_prob_to_decimal(prob: float) -> float:
    if not _finite(prob) or prob <= 0:
        return math.inf
    return 1.0 / prob


def decimal_to_implied_prob(decimal: float) -> float:
    if not _finite(decimal) or decimal <= 0:
        return 0.0
    return 1.0 / decimal


def calculate_margin(prob_over: float, prob_under: float) -> float:
    """Market overround, e.g. -110/-110 -> 0.0476."""
    return prob_over + prob_under - 1.0


def calculate_margin_from_odds(over_odds: float, under_odds: float) -> float:
    return calculate_margin(american_to_implied_prob(over_odds), american_to_implied_prob(under_odds))
