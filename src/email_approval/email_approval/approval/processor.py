"""Processing of an approver's click on an emailed action link.

Every failure here ends as an ``ActionResult`` with a redirect target; only
infrastructure errors propagate to the caller.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote

from ..core.enums import FailureReason
from ..core.exceptions import (
    AlreadyProcessed,
    ApprovalError,
    DomainError,
    InvalidAction,
    NotFoundError,
    RemarksRequired,
    TokenExpired,
    TokenIntegrityFailure,
    UnknownTemplate,
)
from ..tasks.service import TaskDecisionService
from ..users.repository import UserRepository
from .model import ActionResult, EmailApprovalConfig, IssuedTokenRecord, ProcessEmailApprovalRequest, TokenData
from .repository import ApprovalTokenRepository
from .templates import TemplateResolver
from .tokens import TokenCodec

logger = logging.getLogger(__name__)

_SUCCESS_MESSAGES = {
    "approve": "Request approved successfully",
    "reject": "Request rejected successfully",
    "request_info": "Request for more information sent",
}


class ApprovalActionProcessor:
    def __init__(
        self,
        *,
        codec: TokenCodec,
        tokens: ApprovalTokenRepository,
        resolver: TemplateResolver,
        tasks: TaskDecisionService,
        users: UserRepository,
        base_url: str,
        frontend_url: str,
    ):
        self._codec = codec
        self._tokens = tokens
        self._resolver = resolver
        self._tasks = tasks
        self._users = users
        self._base_url = base_url.rstrip("/")
        self._frontend_url = frontend_url.rstrip("/")

    # -------- use cases --------
    def process(self, req: ProcessEmailApprovalRequest, *, now: Optional[int] = None) -> ActionResult:
        config: Optional[EmailApprovalConfig] = None
        data: Optional[TokenData] = None
        try:
            data, record, config = self._lookup(req.token, now=now)
            self._check(record, config, req.action)

            if config.requires_remarks(req.action) and not (req.remarks or "").strip():
                raise RemarksRequired(f"Remarks are required to {req.action.replace('_', ' ')} this request")

            claimed = self._tokens.consume(
                token_id=record.token_id,
                issuance_id=record.issuance_id,
                outcome=req.action,
                apply=lambda: self._tasks.apply_decision(
                    task_id=data.task_id,
                    approver_id=data.approver_id,
                    action=req.action,
                    remarks=req.remarks,
                ),
            )
            if not claimed:
                raise AlreadyProcessed("This request has already been processed")
        except TokenExpired as e:
            return self._failure(e.reason, str(e), req, self._config_for(e.data), e.data)
        except ApprovalError as e:
            return self._failure(e.reason, str(e), req, config, data)
        except DomainError as e:
            # Raised by the decision; the claim has been rolled back with it.
            logger.warning("Decision for task %s failed: %s", data.task_id if data else None, e)
            return self._failure(FailureReason.DECISION_FAILED, str(e), req, config, data)

        logger.info("Email action %s processed for task %s by %s", req.action, data.task_id, data.approver_id)
        return ActionResult(
            success=True,
            redirect_url=self._absolute(config.redirect_urls.for_action(req.action)),
            message=_SUCCESS_MESSAGES.get(req.action, "Action processed successfully"),
            task_id=data.task_id,
            action=req.action,
        )

    def validate(self, token: str, *, now: Optional[int] = None) -> Dict[str, Any]:
        try:
            data, record, config = self._authenticate(token, None, now=now)
        except ApprovalError as e:
            return {"isValid": False, "reason": e.reason.value if e.reason else None, "errorMessage": str(e)}

        return {
            "isValid": True,
            "taskId": data.task_id,
            "approverId": data.approver_id,
            "sourceModule": data.source_module,
            "sourceId": data.source_id,
            "action": data.action,
            "remarksRequired": config.requires_remarks(data.action),
            "expiresAt": self._expires_at(data),
        }

    def token_info(self, token: str, *, now: Optional[int] = None) -> Dict[str, Any]:
        """Details shown on the remarks form. Raises ApprovalError for unusable tokens."""

        data, record, config = self._authenticate(token, None, now=now)

        approver = self._users.get_by_id(data.approver_id)
        if not approver:
            raise NotFoundError(f"Approver {data.approver_id} not found")
        task = self._tasks.get_task(data.task_id)

        return {
            "taskId": data.task_id,
            "approver": {"name": approver.full_name, "email": approver.email},
            "sourceModule": data.source_module,
            "sourceId": data.source_id,
            "action": data.action,
            "templateName": record.template_name,
            "remarksRequired": config.requires_remarks(data.action),
            "task": {"title": task.title, "status": task.status.value},
            "expiresAt": self._expires_at(data),
        }

    # -------- helpers --------
    def _authenticate(
        self,
        token: str,
        action: Optional[str],
        *,
        now: Optional[int],
    ) -> Tuple[TokenData, IssuedTokenRecord, EmailApprovalConfig]:
        data, record, config = self._lookup(token, now=now)
        self._check(record, config, action)
        return data, record, config

    def _lookup(
        self, token: str, *, now: Optional[int]
    ) -> Tuple[TokenData, IssuedTokenRecord, EmailApprovalConfig]:
        data = self._codec.decode(token, now=now)

        record = self._tokens.get(data.nonce)
        if not record or record.token != token or record.data != data:
            raise TokenIntegrityFailure("Approval token is not recognised")

        return data, record, self._resolver.resolve(record.template_name)

    @staticmethod
    def _check(record: IssuedTokenRecord, config: EmailApprovalConfig, action: Optional[str]) -> None:
        if action is not None and (action != record.data.action or not config.allows(action)):
            raise InvalidAction(f"Invalid action: {action}")
        if record.is_used:
            raise AlreadyProcessed("This request has already been processed")

    def _config_for(self, data: Optional[TokenData]) -> Optional[EmailApprovalConfig]:
        if data is None:
            return None
        record = self._tokens.get(data.nonce)
        if not record:
            return None
        try:
            return self._resolver.resolve(record.template_name)
        except UnknownTemplate:
            return None

    def _failure(
        self,
        reason: Optional[FailureReason],
        message: str,
        req: ProcessEmailApprovalRequest,
        config: Optional[EmailApprovalConfig],
        data: Optional[TokenData],
    ) -> ActionResult:
        reason = reason or FailureReason.INVALID_TOKEN
        urls = config.redirect_urls if config else None

        if reason == FailureReason.ALREADY_PROCESSED:
            target = (urls and urls.already_processed) or "/member/dashboard?approval=already_processed"
            redirect_url = self._absolute(target)
        elif reason == FailureReason.REMARKS_REQUIRED:
            redirect_url = f"{self._base_url}/email-approval/{req.token}/{req.action}"
        elif urls and urls.error:
            redirect_url = self._absolute(urls.error)
        else:
            redirect_url = (
                f"{self._frontend_url}/member/dashboard?error=email_approval_failed&message={quote(message)}"
            )

        logger.info("Email action %s rejected (%s): %s", req.action, reason.value, message)
        return ActionResult(
            success=False,
            redirect_url=redirect_url,
            message=message,
            reason=reason,
            task_id=data.task_id if data else None,
            action=req.action,
        )

    def _absolute(self, url: str) -> str:
        if url.startswith(("http://", "https://")):
            return url
        return f"{self._frontend_url}/{url.lstrip('/')}"

    def _expires_at(self, data: TokenData) -> str:
        expires = datetime.fromtimestamp(data.timestamp + self._codec.ttl_seconds, tz=timezone.utc)
        return expires.isoformat()
