from __future__ import annotations

from typing import Protocol


class NotificationSink(Protocol):
    """Where operational alerts go (chat, pager, ...)."""

    def notify(self, text: str) -> bool:
        raise NotImplementedError
