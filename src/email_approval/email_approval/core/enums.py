from __future__ import annotations

from enum import Enum


class TaskStatus(str, Enum):
    """Approval task lifecycle stored in the database."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    INFO_REQUESTED = "INFO_REQUESTED"


class EmailStatus(str, Enum):
    """Delivery status of an outbound email record."""

    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


class EmailModule(str, Enum):
    """Source modules that send emails."""

    SYSTEM = "SYSTEM"
    PAYROLL = "PAYROLL"
    HR_FILING = "HR_FILING"
    LEAVE = "LEAVE"
    PURCHASE_ORDER = "PURCHASE_ORDER"


class FailureReason(str, Enum):
    """Why an email approval action did not go through."""

    INVALID_TOKEN = "invalid_token"
    EXPIRED = "expired"
    UNKNOWN_TEMPLATE = "unknown_template"
    INVALID_ACTION = "invalid_action"
    ALREADY_PROCESSED = "already_processed"
    REMARKS_REQUIRED = "remarks_required"
    DECISION_FAILED = "decision_failed"
