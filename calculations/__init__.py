"""
calculations
============

Odds math: conversions between American / decimal / implied probability,
market margin, the four de-vig methods, EV and Kelly sizing, and blended
sharp references.

Public API (stable):
- american_to_implied_prob, american_to_decimal, decimal_to_american,
  implied_prob_to_american, implied_prob_to_decimal (from convert)
- calculate_margin, calculate_margin_from_odds (from convert)
- devig, devig_multiple and the per-method functions (from devig)
- calculate_ev, calculate_kelly, calculate_multi_ev, is_positive_ev,
  blend_sharp_odds (from evcalc)
- calculate_kelly_stake, format_stake (from kelly)
- SHARP_PRESETS, sharp_odds_for_preset (from presets)

Nothing here raises on malformed numbers; degenerate inputs yield neutral
values or a DevigResult with success=False.
"""
from .convert import (
    american_to_decimal,
    american_to_implied_prob,
    calculate_margin,
    calculate_margin_from_odds,
    decimal_to_american,
    decimal_to_implied_prob,
    implied_prob_to_american,
    implied_prob_to_decimal,
)
from .devig import (
    DEFAULT_DEVIG_METHODS,
    devig,
    devig_additive,
    devig_multiple,
    devig_multiplicative,
    devig_power,
    devig_probit,
)
from .evcalc import (
    blend_sharp_odds,
    calculate_ev,
    calculate_ev_details,
    calculate_kelly,
    calculate_multi_ev,
    create_sharp_reference,
    format_ev,
    format_kelly,
    get_kelly_stake,
    is_positive_ev,
)
from .kelly import calculate_kelly_stake, format_stake, get_kelly_stake_display, get_long_odds_stake_multiplier
from .presets import SHARP_PRESETS, sharp_odds_for_preset
from .types import (
    BookOffer,
    DevigMethod,
    DevigResult,
    EVCalculation,
    MultiEVCalculation,
    SharpReference,
    Side,
    WeightedOdds,
)

__all__ = [
    "american_to_decimal",
    "american_to_implied_prob",
    "calculate_margin",
    "calculate_margin_from_odds",
    "decimal_to_american",
    "decimal_to_implied_prob",
    "implied_prob_to_american",
    "implied_prob_to_decimal",
    "DEFAULT_DEVIG_METHODS",
    "devig",
    "devig_additive",
    "devig_multiple",
    "devig_multiplicative",
    "devig_power",
    "devig_probit",
    "blend_sharp_odds",
    "calculate_ev",
    "calculate_ev_details",
    "calculate_kelly",
    "calculate_multi_ev",
    "create_sharp_reference",
    "format_ev",
    "format_kelly",
    "get_kelly_stake",
    "is_positive_ev",
    "calculate_kelly_stake",
    "format_stake",
    "get_kelly_stake_display",
    "get_long_odds_stake_multiplier",
    "SHARP_PRESETS",
    "sharp_odds_for_preset",
    "BookOffer",
    "DevigMethod",
    "DevigResult",
    "EVCalculation",
    "MultiEVCalculation",
    "SharpReference",
    "Side",
    "WeightedOdds",
]
