"""Tests for the de-vig methods."""

from __future__ import annotations

import pytest

from calculations.devig import (
    DEFAULT_DEVIG_METHODS,
    devig,
    devig_additive,
    devig_multiple,
    devig_multiplicative,
    devig_power,
    devig_probit,
    normal_cdf,
    normal_inverse_cdf,
)
from calculations.convert import calculate_margin_from_odds
from calculations.types import DevigMethod, Side

ALL_METHODS = (devig_multiplicative, devig_additive, devig_power, devig_probit)
PER_SIDE_CHECKED = (devig_additive, devig_power, devig_probit)


class TestMultiplicative:
    def test_mixed_prices(self):
        """-110 / +150: fair 0.567 / 0.433, margin is an underround of -0.0762."""
        res = devig_multiplicative(-110, 150)
        assert res.success
        assert res.fair_prob_over == pytest.approx(0.567, abs=1e-3)
        assert res.fair_prob_under == pytest.approx(0.433, abs=1e-3)
        assert res.margin == pytest.approx(-0.0762, abs=1e-4)

    def test_symmetric_market(self):
        res = devig_multiplicative(-110, -110)
        assert res.fair_prob_over == pytest.approx(0.5)
        assert res.fair_prob_under == pytest.approx(0.5)

    def test_zero_odds_fail(self):
        res = devig_multiplicative(0, 0)
        assert not res.success
        assert res.error


class TestAllMethods:
    @pytest.mark.parametrize("fn", ALL_METHODS)
    @pytest.mark.parametrize("over,under", [(-110, -110), (-150, 130), (-300, 240), (120, -140)])
    def test_probabilities_sum_to_one(self, fn, over, under):
        res = fn(over, under)
        assert res.success
        assert res.fair_prob_over + res.fair_prob_under == pytest.approx(1.0, abs=1e-9)
        assert 0 < res.fair_prob_over < 1

    @pytest.mark.parametrize("fn", PER_SIDE_CHECKED)
    def test_invalid_side_fails(self, fn):
        res = fn(0, -110)
        assert not res.success
        assert res.fair_prob_over == 0.0

    @pytest.mark.parametrize("fn", ALL_METHODS)
    def test_favourite_keeps_higher_probability(self, fn):
        res = fn(-200, 170)
        assert res.fair_prob_over > res.fair_prob_under


class TestPower:
    def test_shifts_more_to_favourite_than_multiplicative(self):
        power = devig_power(-150, 130)
        mult = devig_multiplicative(-150, 130)
        assert power.fair_prob_over > mult.fair_prob_over
        assert power.warning is None

    def test_root_outside_bracket_still_succeeds(self):
        """Huge overround pushes k past the search bracket: renormalised with a warning."""
        res = devig_power(-10000, -10000)
        assert res.success
        assert res.fair_prob_over + res.fair_prob_under == pytest.approx(1.0)
        assert res.warning is not None


class TestProbit:
    @pytest.mark.parametrize("favourite", range(100, 1001, 50))
    def test_matches_multiplicative_without_margin(self, favourite):
        """-o/+o pairs carry exactly zero margin."""
        probit = devig_probit(-favourite, favourite)
        mult = devig_multiplicative(-favourite, favourite)
        assert probit.success
        assert probit.fair_prob_over == pytest.approx(mult.fair_prob_over, abs=1e-12)
        assert probit.fair_prob_under == pytest.approx(mult.fair_prob_under, abs=1e-12)

    @pytest.mark.parametrize("over,under", [(-300, 299), (-500, 498), (250, -251), (-1000, 995)])
    def test_matches_multiplicative_below_margin_threshold(self, over, under):
        assert 0 < calculate_margin_from_odds(over, under) < 1e-3
        probit = devig_probit(over, under)
        mult = devig_multiplicative(over, under)
        assert probit.fair_prob_over == pytest.approx(mult.fair_prob_over, abs=1e-12)
        assert probit.warning is None

    def test_normal_helpers(self):
        assert normal_cdf(0) == pytest.approx(0.5, abs=1e-7)
        assert normal_cdf(1.96) == pytest.approx(0.975, abs=1e-4)
        assert normal_inverse_cdf(0.975) == pytest.approx(1.96, abs=1e-3)
        assert normal_inverse_cdf(0.5) == 0.0
        assert normal_inverse_cdf(0.01) == pytest.approx(-2.3263, abs=1e-3)


class TestDispatch:
    def test_by_name(self):
        res = devig(" Probit ", -120, 100)
        assert res.method is DevigMethod.PROBIT
        assert res.success

    @pytest.mark.parametrize("method", list(DevigMethod))
    def test_every_method_dispatches(self, method):
        res = devig(method, -110, 150)
        assert res.method is method
        assert res.success

    def test_unknown_method(self):
        res = devig("bogus", -110, -110)
        assert not res.success
        assert "Unknown" in res.error

    def test_default_methods(self):
        results = devig_multiple(-110, 150)
        assert set(results) == set(DEFAULT_DEVIG_METHODS)

    def test_subset_is_deduplicated(self):
        results = devig_multiple(-110, 150, ["probit", "PROBIT", "nope", DevigMethod.ADDITIVE])
        assert list(results) == [DevigMethod.PROBIT, DevigMethod.ADDITIVE]

    def test_failures_are_independent(self):
        results = devig_multiple(0, 0, list(DevigMethod))
        assert len(results) == 4
        assert not any(r.success for r in results.values())

    def test_fair_prob_by_side(self):
        res = devig_multiplicative(-110, 150)
        assert res.fair_prob(Side.UNDER) == res.fair_prob_under
        assert res.fair_prob("over") == res.fair_prob_over
