from __future__ import annotations

import logging

import pytest
import requests

from src.email_approval.email_approval.notifications.log_handler import NotificationLogHandler
from src.email_approval.email_approval.notifications.telegram import TelegramNotifier


class FakeResponse:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self._body = body if body is not None else {"ok": True}

    def json(self):
        return self._body


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse()
        self.error = error
        self.calls = []

    def post(self, url, json=None, timeout=None):
        self.calls.append((url, json, timeout))
        if self.error:
            raise self.error
        return self.response


def test_notify_posts_to_bot_api():
    session = FakeSession()
    notifier = TelegramNotifier("123:abc", "-100", timeout=3, session=session)

    assert notifier.notify("x" * 5000) is True

    url, body, timeout = session.calls[0]
    assert url == "https://api.telegram.org/bot123:abc/sendMessage"
    assert body["chat_id"] == "-100"
    assert len(body["text"]) == 4096
    assert timeout == 3


def test_notify_reports_rejection():
    session = FakeSession(FakeResponse(400, {"ok": False}))
    assert TelegramNotifier("t", "c", session=session).notify("hi") is False


def test_notifier_requires_credentials():
    with pytest.raises(ValueError):
        TelegramNotifier("", "c")


class RecordingSink:
    def __init__(self):
        self.messages = []

    def notify(self, text):
        self.messages.append(text)
        return True


def test_log_handler_forwards_only_errors():
    sink = RecordingSink()
    logger = logging.getLogger("tests.notifications.forward")
    logger.propagate = False
    handler = NotificationLogHandler(sink, app_name="erp")
    logger.addHandler(handler)
    try:
        logger.warning("just a warning")
        logger.error("SMTP down for %s", "tenant-1")
    finally:
        logger.removeHandler(handler)

    assert sink.messages == ["[erp] ERROR tests.notifications.forward: SMTP down for tenant-1"]


def test_log_handler_survives_sink_failure(monkeypatch):
    notifier = TelegramNotifier("t", "c", session=FakeSession(error=requests.ConnectionError("offline")))
    handler = NotificationLogHandler(notifier)
    seen = []
    monkeypatch.setattr(handler, "handleError", lambda record: seen.append(record))

    handler.emit(logging.makeLogRecord({"levelno": logging.ERROR, "levelname": "ERROR", "msg": "boom"}))

    assert len(seen) == 1
