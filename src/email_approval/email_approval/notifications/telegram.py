from __future__ import annotations

from typing import Optional

import requests

from .sink import NotificationSink

TELEGRAM_API = "https://api.telegram.org/bot"
MAX_MESSAGE_LENGTH = 4096


class TelegramNotifier(NotificationSink):
    """Send plain-text alerts to one Telegram chat through the Bot API."""

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        *,
        timeout: float = 10,
        session: Optional[requests.Session] = None,
    ):
        if not bot_token or not chat_id:
            raise ValueError("bot_token and chat_id are required")
        self._url = f"{TELEGRAM_API}{bot_token}/sendMessage"
        self._chat_id = str(chat_id)
        self._timeout = timeout
        self._session = session or requests.Session()

    def notify(self, text: str) -> bool:
        """Returns False when Telegram rejects the message; network errors propagate."""

        resp = self._session.post(
            self._url,
            json={
                "chat_id": self._chat_id,
                "text": text[:MAX_MESSAGE_LENGTH],
                "disable_web_page_preview": True,
            },
            timeout=self._timeout,
        )
        if resp.status_code != 200:
            return False
        return bool(resp.json().get("ok"))
