from __future__ import annotations

import json
import threading
from typing import Any, Callable, Dict, Optional

import requests
import sseclient
from requests import RequestException
from requests.exceptions import ChunkedEncodingError

from .config import MAX_RECONNECT_ATTEMPTS, RECONNECT_BASE_MS, RECONNECT_MAX_MS, SIGNAL_FEED_URL, logger
from .stream import ConnectionState


def parse_signal_data(data: str) -> Optional[Dict[str, Any]]:
    """Decode one SSE data field. Anything before the first '{' is ignored."""
    if not data:
        return None
    start = data.find("{")
    if start < 0:
        return None
    try:
        obj = json.loads(data[start:])
    except ValueError:
        return None
    return obj if isinstance(obj, dict) else None


class SignalFeed:
    """
    Reads the change-signal SSE feed on a background thread.

    Messages go to ``on_message``; connection changes go to ``on_state``.
    Both are called from the worker thread; use ``bridge_to_loop`` to hop
    onto an event loop. After ``max_attempts`` consecutive failures the feed
    reports ``failed`` and stops until ``reconnect()``.
    """

    def __init__(
        self,
        url: str,
        on_message: Callable[[Dict[str, Any]], None],
        on_state: Optional[Callable[[ConnectionState], None]] = None,
        *,
        base_backoff_ms: int = RECONNECT_BASE_MS,
        max_backoff_ms: int = RECONNECT_MAX_MS,
        max_attempts: int = MAX_RECONNECT_ATTEMPTS,
        params: Optional[Dict[str, str]] = None,
    ):
        self.url = url
        self.params = dict(params or {})
        self.on_message = on_message
        self.on_state = on_state
        self.base_backoff = base_backoff_ms / 1000.0
        self.max_backoff = max_backoff_ms / 1000.0
        self.max_attempts = max_attempts
        self.state = ConnectionState.IDLE
        self.attempts = 0
        self.stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        # A reader that outlived stop() keeps its own (set) event.
        self.stop_event = threading.Event()
        self._thread = threading.Thread(target=self.run, args=(self.stop_event,),
                                        name="signal-feed", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        self.stop_event.set()
        t = self._thread
        if t is not None and t is not threading.current_thread():
            t.join(timeout=timeout)
        self._thread = None
        self._set_state(ConnectionState.IDLE)

    def reconnect(self) -> None:
        """Reset the attempt counter and (re)start the reader."""
        self.stop()
        self.attempts = 0
        self.start()

    def _set_state(self, state: ConnectionState) -> None:
        if state == self.state:
            return
        self.state = state
        if self.on_state is not None:
            try:
                self.on_state(state)
            except Exception:
                logger.exception("signal feed state callback failed")

    def _backoff(self) -> float:
        return min(self.base_backoff * (2 ** max(0, self.attempts - 1)), self.max_backoff)

    def _failed_once(self, stop: threading.Event) -> bool:
        """Count a failure and wait; False when the feed should give up."""
        self.attempts += 1
        if self.attempts >= self.max_attempts:
            logger.warning("signal feed giving up after %d attempts", self.attempts)
            self._set_state(ConnectionState.FAILED)
            return False
        self._set_state(ConnectionState.RECONNECTING)
        stop.wait(self._backoff())
        return not stop.is_set()

    def run(self, stop: Optional[threading.Event] = None) -> None:
        stop = stop if stop is not None else self.stop_event
        self._set_state(ConnectionState.CONNECTING)
        while not stop.is_set():
            try:
                r = requests.get(self.url, params=self.params, stream=True, timeout=(5, 45),
                                 headers={"Accept": "text/event-stream"})
            except RequestException as e:
                logger.warning("signal feed request failed: %s", e)
                if not self._failed_once(stop):
                    return
                continue
            if r.status_code != 200:
                logger.warning("signal feed status=%s", r.status_code)
                r.close()
                if not self._failed_once(stop):
                    return
                continue

            self.attempts = 0
            self._set_state(ConnectionState.CONNECTED)
            try:
                client = sseclient.SSEClient(r)
                for event in client.events():
                    if stop.is_set():
                        break
                    msg = parse_signal_data(event.data)
                    if msg is None:
                        continue
                    try:
                        self.on_message(msg)
                    except Exception:
                        logger.exception("signal handler failed")
            except (ChunkedEncodingError, RequestException) as e:
                logger.warning("signal feed dropped: %s", e)
            finally:
                r.close()
            if stop.is_set():
                break
            if not self._failed_once(stop):
                return


def bridge_to_loop(loop, session, url: str = SIGNAL_FEED_URL) -> SignalFeed:
    """Wire a feed to an OpportunityStream living on ``loop``."""
    def on_message(msg: Dict[str, Any]) -> None:
        loop.call_soon_threadsafe(session.handle_signal, msg)

    def on_state(state: ConnectionState) -> None:
        loop.call_soon_threadsafe(session.set_connection, state)

    sports = ",".join(sorted(session.filters.sports))
    feed = SignalFeed(url, on_message, on_state, params={"sports": sports} if sports else None)
    session.on_reconnect = feed.reconnect
    return feed
