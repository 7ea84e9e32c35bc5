"""Tests for the opportunities HTTP client and response parsing."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest
import requests

from opportunities.client import OpportunityClient
from opportunities.errors import OpportunityFetchError
from opportunities.filters import OpportunityFilters
from opportunities.models import Opportunity, OpportunityPage, Signal

PAYLOAD = {
    "opportunities": [
        {"sport": "NBA", "event_id": "evt1", "player": "LeBron James", "market": "points", "line": 25.5,
         "side": "over", "best_book": "FanDuel", "best_price": "+120", "edge_pct": 4.2, "ev_pct": 3.1},
        "junk",
    ],
    "total_scanned": 812,
    "meta": {"preset": "pinnacle"},
}


def _client(resp=None, exc=None):
    session = MagicMock()
    if exc is not None:
        session.get.side_effect = exc
    else:
        session.get.return_value = resp
    return OpportunityClient("http://api/opps", session=session), session


class TestFetch:
    def test_success(self):
        resp = MagicMock(status_code=200)
        resp.json.return_value = PAYLOAD
        client, session = _client(resp)
        page = client.fetch(OpportunityFilters(sports=frozenset({"nba"})), refresh=True)
        assert page.total_scanned == 812
        assert page.meta == {"preset": "pinnacle"}
        assert len(page.opportunities) == 1
        params = session.get.call_args.kwargs["params"]
        assert params["sports"] == "nba"
        assert params["refresh"] == "true"

    def test_http_error(self):
        resp = MagicMock(status_code=500, reason="Server Error")
        client, _ = _client(resp)
        with pytest.raises(OpportunityFetchError) as exc:
            client.fetch(OpportunityFilters())
        assert exc.value.status == 500
        assert str(exc.value).startswith("Failed to fetch")

    def test_transport_error(self):
        client, _ = _client(exc=requests.ConnectionError("refused"))
        with pytest.raises(OpportunityFetchError):
            client.fetch(OpportunityFilters())

    def test_invalid_json(self):
        resp = MagicMock(status_code=200)
        resp.json.side_effect = ValueError("no json")
        client, _ = _client(resp)
        with pytest.raises(OpportunityFetchError, match="invalid JSON"):
            client.fetch(OpportunityFilters())

    def test_async_call(self):
        resp = MagicMock(status_code=200)
        resp.json.return_value = {"opportunities": []}
        client, _ = _client(resp)
        page = asyncio.run(client(OpportunityFilters(), True))
        assert isinstance(page, OpportunityPage)
        assert page.opportunities == []


class TestModels:
    def test_opportunity_from_dict(self):
        opp = Opportunity.from_dict(PAYLOAD["opportunities"][0])
        assert opp.id == "evt1:lebron james:points:25.5:over"
        assert opp.price == 120
        assert opp.edge == 4.2
        assert opp.best_book == "fanduel"
        assert opp.sport == "nba"
        assert opp.to_dict()["id"] == opp.id

    def test_edge_falls_back_to_ev(self):
        opp = Opportunity.from_dict({"event_id": "e", "player": "p", "market": "m", "side": "over", "ev_pct": 2.0})
        assert opp.edge == 2.0
        assert opp.price == 0

    def test_signal(self):
        sig = Signal.from_dict({"type": "update", "keys": ["a", "b"], "timestamp": 1_700_000_000_000})
        assert sig.count == 2
        assert sig.timestamp == 1_700_000_000
