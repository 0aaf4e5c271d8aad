from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import TaskStatus
from .model import ApprovalTask


class TaskRepository(Protocol):
    def create(
        self,
        *,
        title: str,
        source_module: str,
        source_id: str,
        assigned_to: str,
        actions: Sequence[str],
    ) -> int:
        raise NotImplementedError

    def get(self, *, task_id: int) -> Optional[ApprovalTask]:
        raise NotImplementedError

    def decide(
        self,
        *,
        task_id: int,
        status: TaskStatus,
        decided_by: str,
        remarks: Optional[str] = None,
    ) -> bool:
        """Move a PENDING task to ``status``; False if it was not PENDING."""

        raise NotImplementedError
