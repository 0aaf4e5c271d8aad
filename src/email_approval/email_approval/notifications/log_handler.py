from __future__ import annotations

import logging

from .sink import NotificationSink


class NotificationLogHandler(logging.Handler):
    """Forward error records to a NotificationSink.

    Delivery problems are reported through ``logging.Handler.handleError`` so a
    broken sink never breaks the request that logged the error.
    """

    def __init__(self, sink: NotificationSink, *, app_name: str = "email-approval", level: int = logging.ERROR):
        super().__init__(level=level)
        self._sink = sink
        self._app_name = app_name
        self.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._sink.notify(f"[{self._app_name}] {self.format(record)}")
        except Exception:
            self.handleError(record)
