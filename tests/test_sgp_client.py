"""Tests for the streamed-quote reader."""

from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import requests

from sgp import client as sgp_client
from sgp.client import SgpStreamReader, fetch_quote_stream


def _hello(stale=None):
    data = {"legs_hash": "abc", "books_pending": ["x", "y"]}
    if stale is not None:
        data["stale_cache"] = stale
    return json.dumps(data)


class TestSgpStreamReader:
    def test_hello_quote_done(self):
        updates = []
        reader = SgpStreamReader(lambda r: updates.append(r.done))
        reader.apply("hello", _hello())
        reader.apply("quote", json.dumps({"book_id": "x", "price": "+300"}))
        r = reader.apply("quote", json.dumps({"book_id": "y", "error": "No price available"}))
        assert r.pending == set()
        assert r.completed == ["x"]
        assert r.failed == ["y"]
        r = reader.apply("done", json.dumps({"pending": [], "timed_out": False}))
        assert r.done
        assert updates == [False, False, False, True]

    def test_stale_quotes_replaced_as_fresh_arrive(self):
        reader = SgpStreamReader()
        reader.apply("hello", _hello({"x": {"price": "+280"}, "y": {"price": "+260"}}))
        assert reader.result.stale
        reader.apply("quote", json.dumps({"book_id": "x", "price": "+300"}))
        assert reader.result.quotes["x"].price == "+300"
        assert reader.result.quotes["y"].price == "+260"
        reader.apply("done", json.dumps({"pending": ["y"], "timed_out": True}))
        assert not reader.result.stale
        assert reader.result.timed_out
        assert reader.result.pending == {"y"}

    def test_best_price(self):
        reader = SgpStreamReader()
        reader.apply("hello", _hello())
        reader.apply("quote", json.dumps({"book_id": "x", "price": "+300"}))
        reader.apply("quote", json.dumps({"book_id": "y", "price": "+450"}))
        reader.apply("quote", json.dumps({"book_id": "z", "error": "No price available"}))
        assert reader.result.best() == "y"

    def test_ignores_garbage(self):
        reader = SgpStreamReader()
        reader.apply("quote", "{not json")
        reader.apply("quote", json.dumps({"price": "+100"}))
        reader.apply("mystery", json.dumps({"a": 1}))
        assert reader.result.quotes == {}
        assert reader.result.best() is None

    def test_cached_body(self):
        reader = SgpStreamReader()
        r = reader.apply_cached_body({"legs_hash": "abc", "quotes": {"x": {"price": "+200"}},
                                      "from_cache": True, "cache_age_ms": 1200})
        assert r.from_cache and r.done
        assert r.cache_age_ms == 1200
        assert r.quotes["x"].price == "+200"


class TestFetchQuoteStream:
    def test_streams_events(self, monkeypatch):
        resp = MagicMock(status_code=200, headers={"content-type": "text/event-stream"})
        monkeypatch.setattr(sgp_client.requests, "post", MagicMock(return_value=resp))
        events = [
            SimpleNamespace(event="hello", data=_hello()),
            SimpleNamespace(event="quote", data=json.dumps({"book_id": "x", "price": "+300"})),
            SimpleNamespace(event="done", data=json.dumps({"pending": ["y"], "timed_out": True})),
        ]
        monkeypatch.setattr(sgp_client.sseclient, "SSEClient",
                            lambda r: SimpleNamespace(events=lambda: iter(events)))
        result = fetch_quote_stream("http://svc/api/sse/sgp-quote", {"legs": []})
        assert result.done
        assert result.quotes["x"].price == "+300"
        assert result.pending == {"y"}
        assert resp.close.called

    def test_cached_json(self, monkeypatch):
        resp = MagicMock(status_code=200, headers={"content-type": "application/json"})
        resp.json.return_value = {"legs_hash": "abc", "quotes": {"x": {"price": "+200"}}, "from_cache": True}
        monkeypatch.setattr(sgp_client.requests, "post", MagicMock(return_value=resp))
        result = fetch_quote_stream("http://svc", {})
        assert result.from_cache
        assert result.quotes["x"].price == "+200"

    def test_error_status(self, monkeypatch):
        resp = MagicMock(status_code=400, headers={})
        resp.json.return_value = {"error": "At least 2 legs required"}
        monkeypatch.setattr(sgp_client.requests, "post", MagicMock(return_value=resp))
        assert fetch_quote_stream("http://svc", {}).error == "At least 2 legs required"

    def test_transport_error(self, monkeypatch):
        monkeypatch.setattr(sgp_client.requests, "post", MagicMock(side_effect=requests.ConnectionError("down")))
        result = fetch_quote_stream("http://svc", {})
        assert result.error
        assert not result.done
