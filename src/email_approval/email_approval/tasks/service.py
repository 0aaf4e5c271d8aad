from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..common.validators import require_non_empty
from ..core.enums import TaskStatus
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from .model import ApprovalTask
from .repository import TaskRepository

logger = logging.getLogger(__name__)

ACTION_STATUS = {
    "approve": TaskStatus.APPROVED,
    "reject": TaskStatus.REJECTED,
    "request_info": TaskStatus.INFO_REQUESTED,
}


class TaskDecisionService:
    """Use case: apply an approver's decision to an approval task."""

    def __init__(self, tasks: TaskRepository):
        self._tasks = tasks

    def create_task(
        self,
        *,
        title: str,
        source_module: str,
        source_id: str,
        assigned_to: str,
        actions: Sequence[str] = ("approve", "reject"),
    ) -> int:
        actions = [a.strip() for a in actions if isinstance(a, str) and a.strip()]
        if not actions:
            raise ValidationError("At least one action is required")
        unsupported = [a for a in actions if a not in ACTION_STATUS]
        if unsupported:
            raise ValidationError(f"Unsupported action: {', '.join(unsupported)}")

        task_id = self._tasks.create(
            title=require_non_empty(title, "title"),
            source_module=require_non_empty(source_module, "sourceModule"),
            source_id=require_non_empty(source_id, "sourceId"),
            assigned_to=require_non_empty(assigned_to, "assignedTo"),
            actions=actions,
        )
        logger.info("Created approval task %s for %s/%s", task_id, source_module, source_id)
        return task_id

    def get_task(self, task_id: int) -> ApprovalTask:
        task = self._tasks.get(task_id=int(task_id))
        if not task:
            raise NotFoundError(f"Approval task {task_id} not found")
        return task

    def apply_decision(
        self,
        *,
        task_id: int,
        approver_id: str,
        action: str,
        remarks: Optional[str] = None,
    ) -> TaskStatus:
        task = self.get_task(task_id)

        if task.assigned_to != str(approver_id):
            raise AuthorizationError("You are not authorized to approve this task")
        if action not in task.actions:
            raise ValidationError(f"Invalid action: {action}")
        if task.status != TaskStatus.PENDING:
            raise ValidationError(f"Task already processed ({task.status.value})")

        status = ACTION_STATUS.get(action)
        if status is None:
            raise ValidationError(f"Unsupported action: {action}")

        decided = self._tasks.decide(
            task_id=task.task_id,
            status=status,
            decided_by=str(approver_id),
            remarks=(remarks or "").strip() or None,
        )
        if not decided:
            raise ValidationError("Task already processed")

        logger.info("Task %s moved to %s by %s", task.task_id, status.value, approver_id)
        return status
