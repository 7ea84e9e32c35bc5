from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional


class DevigMethod(str, Enum):
    POWER = "power"
    MULTIPLICATIVE = "multiplicative"
    ADDITIVE = "additive"
    PROBIT = "probit"

    @classmethod
    def parse(cls, value: object) -> Optional["DevigMethod"]:
        """Lenient lookup by value ("Power", " probit ") -> member or None."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return None


class Side(str, Enum):
    OVER = "over"
    UNDER = "under"


@dataclass(frozen=True)
class BookOffer:
    """One book's quoted American price for one selection."""
    book: str
    price: int
    link: Optional[str] = None
    limits: Optional[Dict[str, float]] = None


@dataclass(frozen=True)
class DevigResult:
    """Output of one de-vig method on a two-sided market.

    ``error`` carries the failure reason when ``success`` is False and a
    non-fatal warning (clamping, convergence) when it is True.
    """
    method: DevigMethod
    fair_prob_over: float
    fair_prob_under: float
    margin: float
    success: bool
    error: Optional[str] = None

    @property
    def warning(self) -> Optional[str]:
        return self.error if self.success else None

    def fair_prob(self, side: Side | str) -> float:
        return self.fair_prob_over if Side(side) is Side.OVER else self.fair_prob_under

    @classmethod
    def failed(cls, method: DevigMethod, error: str, margin: float = 0.0) -> "DevigResult":
        return cls(method, 0.0, 0.0, margin, False, error)


MultiDevigResult = Dict[DevigMethod, DevigResult]


@dataclass(frozen=True)
class EVCalculation:
    method: DevigMethod
    fair_prob: float
    book_prob: float
    book_decimal: float
    ev: float
    ev_percent: float
    edge: float
    kelly_fraction: float


@dataclass
class MultiEVCalculation:
    """EV of one book offer under every successful de-vig method.

    ``ev_display`` is the minimum across methods (conservative).
    """
    by_method: Dict[DevigMethod, EVCalculation] = field(default_factory=dict)
    ev_worst: float = 0.0
    ev_best: float = 0.0
    ev_display: float = 0.0
    kelly_worst: Optional[float] = None

    def get(self, method: DevigMethod) -> Optional[EVCalculation]:
        return self.by_method.get(method)


@dataclass(frozen=True)
class WeightedOdds:
    book: str
    odds: float
    weight: float


@dataclass(frozen=True)
class SharpReference:
    preset: str
    over_odds: float
    under_odds: float
    over_decimal: float
    under_decimal: float
    source: str
    blended_from: Optional[tuple] = None
