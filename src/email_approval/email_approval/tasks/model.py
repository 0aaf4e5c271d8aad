from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from ..core.enums import TaskStatus


@dataclass(frozen=True)
class ApprovalTask:
    task_id: int
    title: str
    source_module: str
    source_id: str
    assigned_to: str
    actions: Tuple[str, ...]
    status: TaskStatus
    created_at: datetime
    decided_by: Optional[str] = None
    decided_at: Optional[datetime] = None
    remarks: Optional[str] = None
