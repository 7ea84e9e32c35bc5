"""Tests for the upstream SGP pricing client."""

from __future__ import annotations

import pytest

from oddsblaze import config, quotes
from oddsblaze.quotes import NO_PRICE, fetch_book_odds
from sgp.config import FETCH_FAILED, NO_API_KEY


@pytest.fixture()
def api_key(monkeypatch):
    monkeypatch.setattr(config, "API_KEY", "test-key")


def _fake_post(monkeypatch, status, data):
    calls = []

    def fake(url, payload, params=None, *, timeout=30):
        calls.append((url, payload, params))
        return status, data

    monkeypatch.setattr(quotes, "post_json", fake)
    return calls


class TestFetchBookOdds:
    def test_no_api_key(self, monkeypatch):
        monkeypatch.setattr(config, "API_KEY", None)
        assert fetch_book_odds("fanduel", ["t1", "t2"]).error == NO_API_KEY

    def test_explicit_key_wins(self, monkeypatch):
        monkeypatch.setattr(config, "API_KEY", None)
        calls = _fake_post(monkeypatch, 200, {"price": "+300"})
        assert fetch_book_odds("fanduel", ["t1", "t2"], api_key="k2").price == "+300"
        assert calls[0][2] == {"key": "k2"}

    def test_success(self, monkeypatch, api_key):
        calls = _fake_post(monkeypatch, 200, {"price": "+450", "links": {"desktop": "https://fd/slip"},
                                              "limits": {"max": 250}})
        odds = fetch_book_odds("espn", ["t1", "t2"])
        assert odds.ok
        assert odds.price == "+450"
        assert odds.limits == {"max": 250}
        url, payload, params = calls[0]
        assert url == "https://espnbet.sgp.oddsblaze.com/"
        assert payload == ["t1", "t2"]
        assert params == {"key": "test-key"}

    def test_single_token(self, monkeypatch, api_key):
        calls = _fake_post(monkeypatch, 200, {"price": "+100"})
        assert fetch_book_odds("fanduel", ["t1"]).error == "Not enough legs"
        assert calls == []

    @pytest.mark.parametrize("status,data,error", [
        (None, None, FETCH_FAILED),
        (500, {"error": "boom"}, "API error: 500"),
        (200, "not a dict", FETCH_FAILED),
        (200, {"message": "Invalid selections"}, "Invalid selections"),
        (200, {"error": "Market suspended"}, "Market suspended"),
        (200, {}, NO_PRICE),
    ])
    def test_errors(self, monkeypatch, api_key, status, data, error):
        _fake_post(monkeypatch, status, data)
        odds = fetch_book_odds("draftkings", ["t1", "t2"])
        assert odds.error == error
        assert not odds.ok


def test_provider_book_id():
    assert config.provider_book_id("espn") == "espnbet"
    assert config.provider_book_id("unknown") == "unknown"
