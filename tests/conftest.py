"""Shared fixtures for the test suite.

Builders (build_opp, build_page, FakeFetcher) are in tests/helpers.py.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import pytest

from sgp.models import SgpLeg
from tests.helpers import build_opp, build_page


@pytest.fixture()
def make_opp():
    """Factory for Opportunity rows (player name is the main identity)."""
    return build_opp


@pytest.fixture()
def make_page():
    return build_page


@pytest.fixture()
def make_leg():
    """Factory for SGP legs: ``make_leg("points", x="t1", y="t1")``."""
    def _make(market: str, side: str = "over", line: Optional[float] = 20.5,
              event_id: str = "evt1", player_id: Optional[str] = "p1", **tokens: str) -> SgpLeg:
        return SgpLeg.from_dict({
            "event_id": event_id,
            "market": market,
            "side": side,
            "line": line,
            "player_id": player_id,
            "sgp_tokens": dict(tokens),
        })
    return _make


@pytest.fixture()
def leg_body() -> Dict[str, Any]:
    """Request body pricing two legs at books x and y."""
    return {
        "legs": [
            {"event_id": "evt1", "market": "points", "side": "over", "line": 20.5,
             "player_id": "p1", "sgp_tokens": {"x": "tx1", "y": "ty1"}},
            {"event_id": "evt1", "market": "rebounds", "side": "over", "line": 8.5,
             "player_id": "p1", "sgp_tokens": {"x": "tx2", "y": "ty2"}},
        ],
        "sportsbooks": ["x", "y"],
    }
