"""Best-effort Telegram notifications for trading decisions."""
from __future__ import annotations

import logging
import queue
import threading
from typing import Optional, Union

import requests

TELEGRAM_API_SEND_MESSAGE_URL = "https://api.telegram.org/bot{token}/sendMessage"


class NullNotifier:
    """Notifier that only logs."""

    def notify(self, message: str) -> None:
        logging.info(message)

    def close(self) -> None:
        return None


class TelegramNotifier:
    """Queue messages and deliver them to one chat from a background thread.

    ``notify`` never blocks and never raises; undeliverable messages are
    logged and dropped.
    """

    def __init__(
        self,
        bot_token: str,
        chat_id: Union[int, str, None],
        *,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.timeout = timeout
        self._session = session or requests.Session()
        self._queue: "queue.Queue[Optional[str]]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None

    @property
    def enabled(self) -> bool:
        return bool(self.bot_token) and bool(self.chat_id)

    def start(self) -> "TelegramNotifier":
        if self.enabled and self._thread is None:
            self._thread = threading.Thread(target=self._run, name="telegram-notifier", daemon=True)
            self._thread.start()
        return self

    def notify(self, message: str) -> None:
        logging.info(message)
        if self._thread is not None:
            self._queue.put_nowait(message)

    def close(self, timeout: float = 5.0) -> None:
        if self._thread is None:
            return
        self._queue.put_nowait(None)
        self._thread.join(timeout)
        self._thread = None

    def _run(self) -> None:
        while True:
            message = self._queue.get()
            if message is None:
                return
            self.send(message)

    def send(self, message: str) -> bool:
        url = TELEGRAM_API_SEND_MESSAGE_URL.format(token=self.bot_token)
        try:
            resp = self._session.post(url, data={"chat_id": self.chat_id, "text": message}, timeout=self.timeout)
        except requests.RequestException as exc:
            logging.warning("Telegram send failed: %s", exc)
            return False
        if resp.status_code != 200:
            logging.warning("Telegram API returned status %s: %s", resp.status_code, resp.text)
            return False
        return True


def build_notifier(bot_token: str, chat_id: Union[int, str, None]):
    if bot_token and chat_id:
        return TelegramNotifier(bot_token, chat_id).start()
    if bot_token:
        logging.warning("bot_chat_id not configured; Telegram notifications disabled")
    return NullNotifier()
