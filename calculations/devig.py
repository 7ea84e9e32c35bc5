"""
De-vig methods for two-sided markets.

Each method takes (over_odds, under_odds) in American format and returns a
DevigResult. Failures come back as ``success=False`` with an error string;
numerically shaky but usable results come back as ``success=True`` with a
warning in ``error``.
"""
from __future__ import annotations

import math
from typing import Callable, Dict, Iterable, Optional

from .convert import american_to_implied_prob, calculate_margin
from .types import DevigMethod, DevigResult, MultiDevigResult

DEFAULT_DEVIG_METHODS: tuple[DevigMethod, ...] = (DevigMethod.POWER, DevigMethod.MULTIPLICATIVE)

PROB_FLOOR = 0.001
PROB_CEIL = 0.999

POWER_K_LOW = 0.1
POWER_K_HIGH = 10.0
POWER_TOLERANCE = 1e-10
POWER_MAX_ITERATIONS = 100
POWER_SUM_WARN = 1e-3

PROBIT_MIN_MARGIN = 1e-3


def _clamp(p: float) -> float:
    return max(PROB_FLOOR, min(PROB_CEIL, p))


def _implied_pair(over_odds: float, under_odds: float) -> tuple[float, float, float]:
    p_over = american_to_implied_prob(over_odds)
    p_under = american_to_implied_prob(under_odds)
    return p_over, p_under, calculate_margin(p_over, p_under)


def _proportional(method: DevigMethod, p_over: float, p_under: float, margin: float,
                  warning: Optional[str] = None) -> DevigResult:
    total = p_over + p_under
    if total <= 0 or not math.isfinite(total):
        return DevigResult.failed(method, "Invalid odds: total probability <= 0", margin)
    return DevigResult(method, p_over / total, p_under / total, margin, True, warning)


# -----------------------------------------------------------------------------
# Normal distribution helpers
# -----------------------------------------------------------------------------

def normal_cdf(x: float) -> float:
    """Standard normal CDF via the Abramowitz-Stegun 7.1.26 erf approximation."""
    a1, a2, a3, a4, a5 = 0.254829592, -0.284496736, 1.421413741, -1.453152027, 1.061405429
    p = 0.3275911
    sign = -1.0 if x < 0 else 1.0
    x = abs(x) / math.sqrt(2.0)
    t = 1.0 / (1.0 + p * x)
    y = 1.0 - (((((a5 * t + a4) * t) + a3) * t + a2) * t + a1) * t * math.exp(-x * x)
    return 0.5 * (1.0 + sign * y)


_A = (-3.969683028665376e+01, 2.209460984245205e+02, -2.759285104469687e+02,
      1.383577518672690e+02, -3.066479806614716e+01, 2.506628277459239e+00)
_B = (-5.447609879822406e+01, 1.615858368580409e+02, -1.556989798598866e+02,
      6.680131188771972e+01, -1.328068155288572e+01)
_C = (-7.784894002430293e-03, -3.223964580411365e-01, -2.400758277161838e+00,
      -2.549732539343734e+00, 4.374664141464968e+00, 2.938163982698783e+00)
_D = (7.784695709041462e-03, 3.224671290700398e-01, 2.445134137142996e+00,
      3.754408661907416e+00)
_P_LOW = 0.02425
_P_HIGH = 1 - _P_LOW


def normal_inverse_cdf(p: float) -> float:
    """Probit function, Acklam's rational approximation."""
    if p <= 0:
        return -math.inf
    if p >= 1:
        return math.inf
    if p == 0.5:
        return 0.0
    if p < _P_LOW:
        q = math.sqrt(-2 * math.log(p))
        return ((((((_C[0] * q + _C[1]) * q + _C[2]) * q + _C[3]) * q + _C[4]) * q + _C[5])
                / ((((_D[0] * q + _D[1]) * q + _D[2]) * q + _D[3]) * q + 1))
    if p <= _P_HIGH:
        q = p - 0.5
        r = q * q
        return ((((((_A[0] * r + _A[1]) * r + _A[2]) * r + _A[3]) * r + _A[4]) * r + _A[5]) * q
                / (((((_B[0] * r + _B[1]) * r + _B[2]) * r + _B[3]) * r + _B[4]) * r + 1))
    q = math.sqrt(-2 * math.log(1 - p))
    return -((((((_C[0] * q + _C[1]) * q + _C[2]) * q + _C[3]) * q + _C[4]) * q + _C[5])
             / ((((_D[0] * q + _D[1]) * q + _D[2]) * q + _D[3]) * q + 1))


# -----------------------------------------------------------------------------
# Methods
# -----------------------------------------------------------------------------

def devig_multiplicative(over_odds: float, under_odds: float) -> DevigResult:
    """Rescale both implied probabilities so they sum to 1."""
    p_over, p_under, margin = _implied_pair(over_odds, under_odds)
    return _proportional(DevigMethod.MULTIPLICATIVE, p_over, p_under, margin)


def devig_additive(over_odds: float, under_odds: float) -> DevigResult:
    """Subtract half the margin from each side, clamp, renormalise."""
    method = DevigMethod.ADDITIVE
    p_over, p_under, margin = _implied_pair(over_odds, under_odds)
    if p_over <= 0 or p_under <= 0:
        return DevigResult.failed(method, "Invalid odds: probability <= 0", margin)

    fair_over = p_over - margin / 2
    fair_under = p_under - margin / 2
    needs_clamping = not (0 <= fair_over <= 1 and 0 <= fair_under <= 1)
    fair_over = _clamp(fair_over)
    fair_under = _clamp(fair_under)
    warning = "Clamping applied due to extreme odds" if needs_clamping else None
    return _proportional(method, fair_over, fair_under, margin, warning)


def devig_power(over_odds: float, under_odds: float) -> DevigResult:
    """Find k with p_over**k + p_under**k == 1 by bisection and apply it.

    When the root sits outside the search bracket the result is renormalised
    and flagged with a convergence warning instead of failing.
    """
    method = DevigMethod.POWER
    p_over, p_under, margin = _implied_pair(over_odds, under_odds)
    if p_over <= 0 or p_under <= 0:
        return DevigResult.failed(method, "Invalid odds: probability <= 0", margin)

    k_low, k_high, k = POWER_K_LOW, POWER_K_HIGH, 1.0
    for _ in range(POWER_MAX_ITERATIONS):
        k = (k_low + k_high) / 2
        s = p_over ** k + p_under ** k
        if abs(s - 1) < POWER_TOLERANCE:
            break
        if s > 1:
            k_low = k
        else:
            k_high = k

    fair_over = p_over ** k
    fair_under = p_under ** k
    total = fair_over + fair_under
    if not math.isfinite(total) or total <= 0:
        return DevigResult.failed(method, "Power search produced non-finite probabilities", margin)
    warning = "Convergence warning: sum not exactly 1" if abs(total - 1) > POWER_SUM_WARN else None
    return _proportional(method, fair_over, fair_under, margin, warning)


def devig_probit(over_odds: float, under_odds: float) -> DevigResult:
    """Shift both normal quantiles by their mean so they are symmetric around 0.

    Since Phi(z) + Phi(-z) == 1, the shifted probabilities sum to 1.
    """
    method = DevigMethod.PROBIT
    p_over, p_under, margin = _implied_pair(over_odds, under_odds)
    if p_over <= 0 or p_under <= 0:
        return DevigResult.failed(method, "Invalid odds: probability <= 0", margin)
    if abs(margin) < PROBIT_MIN_MARGIN:
        return _proportional(method, p_over, p_under, margin)

    z_over = normal_inverse_cdf(_clamp(p_over))
    z_under = normal_inverse_cdf(_clamp(p_under))
    k = (z_over + z_under) / 2
    fair_over = normal_cdf(z_over - k)
    fair_under = normal_cdf(z_under - k)

    if not (math.isfinite(fair_over) and math.isfinite(fair_under)) \
            or not (0 < fair_over < 1 and 0 < fair_under < 1):
        return _proportional(method, p_over, p_under, margin,
                             "Probit out of range, fell back to proportional")
    return _proportional(method, fair_over, fair_under, margin)


_METHODS: Dict[DevigMethod, Callable[[float, float], DevigResult]] = {
    DevigMethod.POWER: devig_power,
    DevigMethod.MULTIPLICATIVE: devig_multiplicative,
    DevigMethod.ADDITIVE: devig_additive,
    DevigMethod.PROBIT: devig_probit,
}


def devig(method: DevigMethod | str, over_odds: float, under_odds: float) -> DevigResult:
    m = DevigMethod.parse(method)
    if m is None:
        return DevigResult.failed(DevigMethod.MULTIPLICATIVE, f"Unknown de-vig method: {method}")
    try:
        return _METHODS[m](over_odds, under_odds)
    except (ArithmeticError, ValueError, TypeError) as e:
        return DevigResult.failed(m, str(e) or type(e).__name__)


def devig_multiple(over_odds: float, under_odds: float,
                   methods: Optional[Iterable[DevigMethod | str]] = None) -> MultiDevigResult:
    """Run a subset of methods; each one succeeds or fails on its own."""
    results: MultiDevigResult = {}
    for raw in (DEFAULT_DEVIG_METHODS if methods is None else methods):
        m = DevigMethod.parse(raw)
        if m is None or m in results:
            continue
        results[m] = devig(m, over_odds, under_odds)
    return results
