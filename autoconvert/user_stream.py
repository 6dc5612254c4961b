"""Binance user data stream: listen key, keep-alive and websocket session."""
from __future__ import annotations

import json
import logging
import threading
from typing import Callable, Optional

import requests
import websocket

DEFAULT_STREAM_URL = "wss://stream.binance.com:9443/ws"

MessageHandler = Callable[[dict], object]


class UserDataStream:
    """Own the listen key and feed decoded user data events to ``on_event``.

    The websocket is re-opened after a disconnect until ``stop`` is called;
    transport errors are only logged.
    """

    def __init__(
        self,
        client,
        on_event: MessageHandler,
        *,
        stream_url: str = DEFAULT_STREAM_URL,
        keepalive_seconds: float = 30 * 60,
        retry_seconds: float = 60,
    ):
        self.client = client
        self.on_event = on_event
        self.stream_url = stream_url.rstrip("/")
        self.keepalive_seconds = keepalive_seconds
        self.retry_seconds = retry_seconds
        self.listen_key: Optional[str] = None
        self._stop = threading.Event()
        self._keepalive_thread: Optional[threading.Thread] = None
        self._ws: Optional[websocket.WebSocketApp] = None

    def open(self) -> str:
        """Create the listen key; errors propagate and are fatal at startup."""

        self.listen_key = self.client.start_user_stream()
        self._keepalive_thread = threading.Thread(target=self._keepalive_loop, name="listen-key-keepalive", daemon=True)
        self._keepalive_thread.start()
        return self.listen_key

    def keepalive_once(self) -> bool:
        logging.info("Pinging User Data Stream")
        try:
            self.client.keepalive_user_stream(self.listen_key)
        except (requests.RequestException, ValueError) as exc:
            logging.error("User data stream keep-alive failed: %s", exc)
            return False
        return True

    def _keepalive_loop(self) -> None:
        delay = self.keepalive_seconds
        while not self._stop.wait(delay):
            delay = self.keepalive_seconds if self.keepalive_once() else self.retry_seconds

    def _on_message(self, ws, message) -> None:
        try:
            payload = json.loads(message)
        except (TypeError, ValueError) as exc:
            logging.warning("Unable to decode user data message: %s", exc)
            return
        if not isinstance(payload, dict):
            logging.debug("Ignoring non-object user data message: %r", payload)
            return
        try:
            self.on_event(payload)
        except Exception as exc:  # pylint: disable=broad-except
            logging.exception("User data handler failed: %s", exc)

    def _on_error(self, ws, error) -> None:
        logging.error("User data stream error: %s", error)

    def _on_close(self, ws, status_code=None, reason=None) -> None:
        logging.warning("User data stream closed: %s %s", status_code, reason)

    def _on_open(self, ws) -> None:
        logging.info("starting binance user data handler")

    def run(self) -> None:
        """Open the listen key if needed and block on the websocket until ``stop``.

        A dropped connection is re-opened after ``retry_seconds``.
        """

        if self.listen_key is None:
            self.open()
        while not self._stop.is_set():
            self._ws = websocket.WebSocketApp(
                f"{self.stream_url}/{self.listen_key}",
                on_message=self._on_message,
                on_error=self._on_error,
                on_close=self._on_close,
                on_open=self._on_open,
            )
            self._ws.run_forever(ping_interval=20, ping_timeout=10)
            if self._stop.is_set():
                break
            logging.warning("User data stream disconnected; reconnecting in %ss", self.retry_seconds)
            self._stop.wait(self.retry_seconds)

    def stop(self) -> None:
        self._stop.set()
        if self._ws is not None:
            self._ws.close()
        if self._keepalive_thread is not None:
            self._keepalive_thread.join(timeout=5)
            self._keepalive_thread = None
        if self.listen_key:
            try:
                self.client.close_user_stream(self.listen_key)
            except (requests.RequestException, ValueError) as exc:
                logging.warning("Unable to close user data stream: %s", exc)
