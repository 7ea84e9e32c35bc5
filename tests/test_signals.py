"""Tests for the change-signal feed reader and its loop bridge."""

from __future__ import annotations

import asyncio
import threading
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import requests

from opportunities import signals
from opportunities.filters import OpportunityFilters
from opportunities.signals import SignalFeed, bridge_to_loop, parse_signal_data
from opportunities.stream import ConnectionState, OpportunityStream
from opportunities.timers import ManualScheduler
from tests.helpers import FakeFetcher, build_page


class TestParseSignalData:
    def test_plain_json(self):
        assert parse_signal_data('{"type": "update", "keys": ["a"]}') == {"type": "update", "keys": ["a"]}

    def test_leading_noise(self):
        assert parse_signal_data('retry 1 {"type": "update"}') == {"type": "update"}

    @pytest.mark.parametrize("data", ["", "no json here", "{bad", "[1, 2]"])
    def test_rejects(self, data):
        assert parse_signal_data(data) is None


class TestBackoff:
    def test_exponential_and_capped(self):
        feed = SignalFeed("http://feed", lambda m: None)
        delays = []
        for n in (1, 2, 3, 5):
            feed.attempts = n
            delays.append(feed._backoff())
        assert delays == [3.0, 6.0, 12.0, 30.0]

    def test_gives_up_after_max_attempts(self, monkeypatch):
        get = MagicMock(side_effect=requests.ConnectionError("down"))
        monkeypatch.setattr(signals.requests, "get", get)
        states = []
        feed = SignalFeed("http://feed", lambda m: None, states.append, base_backoff_ms=0, max_attempts=3)
        feed.run()
        assert get.call_count == 3
        assert feed.state is ConnectionState.FAILED
        assert states == [ConnectionState.CONNECTING, ConnectionState.RECONNECTING, ConnectionState.FAILED]

    def test_bad_status_counts_as_failure(self, monkeypatch):
        resp = MagicMock(status_code=503)
        monkeypatch.setattr(signals.requests, "get", MagicMock(return_value=resp))
        feed = SignalFeed("http://feed", lambda m: None, base_backoff_ms=0, max_attempts=2)
        feed.run()
        assert feed.attempts == 2
        assert resp.close.called


class TestRun:
    def test_delivers_messages(self, monkeypatch):
        resp = MagicMock(status_code=200)
        monkeypatch.setattr(signals.requests, "get", MagicMock(return_value=resp))
        events = [
            SimpleNamespace(event="message", data='{"type": "update", "keys": ["odds:nba:e:points:fd"]}'),
            SimpleNamespace(event="message", data="keepalive"),
            SimpleNamespace(event="message", data='{"type": "update", "keys": ["odds:nba:e:assists:fd"]}'),
        ]
        monkeypatch.setattr(signals.sseclient, "SSEClient",
                            lambda r: SimpleNamespace(events=lambda: iter(events)))
        got = []
        states = []
        feed = SignalFeed("http://feed", None, states.append)

        def on_message(msg):
            got.append(msg)
            if len(got) == 2:
                feed.stop_event.set()

        feed.on_message = on_message
        feed.run()
        assert [m["keys"][0] for m in got] == ["odds:nba:e:points:fd", "odds:nba:e:assists:fd"]
        assert states == [ConnectionState.CONNECTING, ConnectionState.CONNECTED]
        assert feed.attempts == 0
        assert resp.close.called

    def test_handler_errors_do_not_stop_reader(self, monkeypatch):
        monkeypatch.setattr(signals.requests, "get", MagicMock(return_value=MagicMock(status_code=200)))
        events = [SimpleNamespace(event="message", data='{"n": 1}'),
                  SimpleNamespace(event="message", data='{"n": 2}')]
        monkeypatch.setattr(signals.sseclient, "SSEClient",
                            lambda r: SimpleNamespace(events=lambda: iter(events)))
        seen = []
        feed = SignalFeed("http://feed", None)

        def on_message(msg):
            seen.append(msg["n"])
            if msg["n"] == 1:
                raise ValueError("bad handler")
            feed.stop_event.set()

        feed.on_message = on_message
        feed.run()
        assert seen == [1, 2]

    def test_restart_leaves_stuck_reader_stopped(self, monkeypatch):
        """A reader still blocked after stop() must not resume once a new one starts."""
        monkeypatch.setattr(signals.requests, "get", MagicMock(side_effect=lambda *a, **k: MagicMock(status_code=200)))
        gate = threading.Event()
        first_blocked = threading.Event()
        readers = []

        def fake_client(r):
            n = len(readers)
            readers.append(r)

            def events():
                if n == 0:
                    first_blocked.set()
                gate.wait(5)
                yield SimpleNamespace(event="message", data='{"reader": %d}' % n)
            return SimpleNamespace(events=events)

        monkeypatch.setattr(signals.sseclient, "SSEClient", fake_client)
        got = []
        delivered_by = set()
        feed = SignalFeed("http://feed", None, base_backoff_ms=0)

        def on_message(msg):
            got.append(msg["reader"])
            delivered_by.add(threading.current_thread().ident)
            feed.stop_event.set()

        feed.on_message = on_message
        feed.start()
        assert first_blocked.wait(2)
        first = feed._thread
        feed.stop(timeout=0.2)
        assert first.is_alive()

        feed.start()
        second = feed._thread
        assert second is not first
        gate.set()
        first.join(2)
        second.join(2)

        assert not first.is_alive() and not second.is_alive()
        assert got == [1]
        assert len(delivered_by) == 1


class TestBridge:
    def test_routes_onto_loop(self):
        async def main():
            loop = asyncio.get_running_loop()
            sched = ManualScheduler()
            session = OpportunityStream(FakeFetcher(build_page()), OpportunityFilters(sports=frozenset({"nba"})),
                                        scheduler=sched)
            feed = bridge_to_loop(loop, session, "http://feed")
            assert feed.params == {"sports": "nba"}
            assert session.on_reconnect == feed.reconnect

            feed.on_state(ConnectionState.CONNECTED)
            feed.on_message({"type": "update", "keys": ["odds:nba:e:points:fd"]})
            await asyncio.sleep(0)
            return session, sched

        session, sched = asyncio.run(main())
        assert session.connection is ConnectionState.CONNECTED
        assert sched.pending == 1
