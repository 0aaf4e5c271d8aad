from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, FrozenSet, Mapping, Optional, Tuple

from ..common.validators import (
    Field,
    optional_text,
    require_email,
    require_list,
    require_mapping,
    require_non_empty,
    require_positive_int,
    validate_payload,
)
from ..core.enums import FailureReason
from ..core.exceptions import ValidationError
from ..emails.model import EmailAttachment


@dataclass(frozen=True)
class TokenData:
    """Decoded payload of an approval token."""

    task_id: int
    approver_id: str
    source_module: str
    source_id: str
    action: str
    timestamp: int
    nonce: str

    def to_payload(self) -> dict:
        return {
            "taskId": self.task_id,
            "approverId": self.approver_id,
            "sourceModule": self.source_module,
            "sourceId": self.source_id,
            "action": self.action,
            "timestamp": self.timestamp,
            "nonce": self.nonce,
        }


def _identity(data: Mapping[str, Any]) -> Dict[str, Any]:
    return dict(data)


def _default_subject(data: Mapping[str, Any]) -> str:
    return f"Approval Required - {data.get('title') or 'Request'}"


def _default_description(data: Mapping[str, Any]) -> str:
    return "Please review the request and take appropriate action."


@dataclass(frozen=True)
class RedirectUrls:
    success: str
    rejection: str
    error: Optional[str] = None
    already_processed: Optional[str] = None

    def for_action(self, action: str) -> str:
        return self.rejection if action == "reject" else self.success


@dataclass(frozen=True)
class EmailApprovalConfig:
    """Static per-template configuration, registered in code at startup."""

    template_name: str
    redirect_urls: RedirectUrls
    actions: Tuple[str, ...] = ("approve", "reject")
    data_mapper: Callable[[Mapping[str, Any]], Dict[str, Any]] = _identity
    remarks_required: FrozenSet[str] = frozenset({"reject"})
    required_fields: Tuple[str, ...] = ()
    title: str = "Approval Required"
    subject: Callable[[Mapping[str, Any]], str] = _default_subject
    description: Callable[[Mapping[str, Any]], str] = _default_description
    template_file: Optional[str] = None

    def __post_init__(self):
        if not self.actions:
            raise ValueError(f"{self.template_name}: at least one action is required")
        if len(set(self.actions)) != len(self.actions):
            raise ValueError(f"{self.template_name}: duplicate actions")
        unknown = set(self.remarks_required) - set(self.actions)
        if unknown:
            raise ValueError(f"{self.template_name}: remarks configured for unknown actions {sorted(unknown)}")

    @property
    def file_name(self) -> str:
        return self.template_file or f"{self.template_name}.html"

    def allows(self, action: str) -> bool:
        return action in self.actions

    def requires_remarks(self, action: str) -> bool:
        return action in self.remarks_required


@dataclass(frozen=True)
class EmailApprovalContext:
    task_id: int
    approver_id: str
    approver_name: str
    approver_email: str
    source_module: str
    source_id: str
    template_name: str
    approval_data: Mapping[str, Any]
    base_url: str
    company_name: str


@dataclass(frozen=True)
class ActionButton:
    action: str
    label: str
    url: str
    style: str
    type: str
    token: str
    token_data: TokenData


@dataclass(frozen=True)
class RenderedEmail:
    template_name: str
    subject: str
    html_content: str
    buttons: Tuple[ActionButton, ...]


@dataclass(frozen=True)
class IssuedTokenRecord:
    """Server-side state of one minted token (one-time use, audit)."""

    token_id: str
    issuance_id: str
    token: str
    data: TokenData
    template_name: str
    created_at: datetime
    is_used: bool = False
    used_at: Optional[datetime] = None
    outcome: Optional[str] = None


def _attachments(value: Any, key: str) -> Tuple[EmailAttachment, ...]:
    out = []
    for i, item in enumerate(require_list(value, key)):
        item = require_mapping(item, f"{key}[{i}]")
        filename = require_non_empty(item.get("filename"), f"{key}[{i}].filename")
        content = item.get("content")
        if not isinstance(content, str):
            raise ValidationError(f"{key}[{i}].content must be base64 text")
        try:
            raw = base64.b64decode(content, validate=True)
        except (binascii.Error, ValueError):
            raise ValidationError(f"{key}[{i}].content is not valid base64")
        out.append(
            EmailAttachment(
                filename=filename,
                content=raw,
                content_type=optional_text(item.get("contentType"), f"{key}[{i}].contentType")
                or "application/octet-stream",
            )
        )
    return tuple(out)


SEND_REQUEST_FIELDS = (
    Field("taskId", "task_id", require_positive_int),
    Field("approverId", "approver_id", lambda v, k: require_non_empty(str(v), k)),
    Field("module", "module", require_non_empty),
    Field("sourceId", "source_id", lambda v, k: require_non_empty(str(v), k)),
    Field("templateName", "template_name", require_non_empty),
    Field("approvalData", "approval_data", require_mapping, required=False),
    Field("recipientEmail", "recipient_email", require_email),
    Field("attachments", "attachments", _attachments, required=False, default=()),
)


@dataclass(frozen=True)
class SendEmailApprovalRequest:
    task_id: int
    approver_id: str
    module: str
    source_id: str
    template_name: str
    recipient_email: str
    approval_data: Mapping[str, Any] = field(default_factory=dict)
    attachments: Tuple[EmailAttachment, ...] = ()

    @classmethod
    def from_payload(cls, payload: Any) -> "SendEmailApprovalRequest":
        values = validate_payload(payload, SEND_REQUEST_FIELDS)
        values["approval_data"] = values["approval_data"] or {}
        return cls(**values)


PROCESS_REQUEST_FIELDS = (
    Field("token", "token", require_non_empty),
    Field("action", "action", require_non_empty),
    Field("remarks", "remarks", optional_text, required=False),
)


@dataclass(frozen=True)
class ProcessEmailApprovalRequest:
    token: str
    action: str
    remarks: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "ProcessEmailApprovalRequest":
        return cls(**validate_payload(payload, PROCESS_REQUEST_FIELDS))


@dataclass(frozen=True)
class ActionResult:
    success: bool
    redirect_url: str
    message: str
    reason: Optional[FailureReason] = None
    task_id: Optional[int] = None
    action: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "reason": self.reason.value if self.reason else None,
            "message": self.message,
            "redirectUrl": self.redirect_url,
            "taskId": self.task_id,
            "action": self.action,
        }
