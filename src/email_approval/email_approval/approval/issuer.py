from __future__ import annotations

import logging
import uuid
from typing import Optional

from ..common.datetime_utils import now_utc
from ..core.constants import APPROVAL_MODULE_CONTEXT
from ..core.enums import EmailStatus
from ..core.exceptions import NotFoundError, TransportFailure, ValidationError
from ..emails.model import OutgoingEmail, SentEmail
from ..emails.service import EmailService
from ..tasks.service import TaskDecisionService
from ..users.repository import UserRepository
from .model import EmailApprovalContext, IssuedTokenRecord, SendEmailApprovalRequest
from .repository import ApprovalTokenRepository
from .templates import TemplateResolver

logger = logging.getLogger(__name__)


class ApprovalRequestIssuer:
    """Use case: email an approver one link per allowed action.

    Re-issuing for the same task is not deduplicated; every call mints a new
    issuance whose tokens stay valid until one of them is used or they expire.
    """

    def __init__(
        self,
        *,
        users: UserRepository,
        tasks: TaskDecisionService,
        resolver: TemplateResolver,
        tokens: ApprovalTokenRepository,
        emails: EmailService,
        base_url: str,
        company_name: str,
    ):
        self._users = users
        self._tasks = tasks
        self._resolver = resolver
        self._tokens = tokens
        self._emails = emails
        self._base_url = base_url
        self._company_name = company_name

    def issue(self, req: SendEmailApprovalRequest, *, now: Optional[int] = None) -> SentEmail:
        config = self._resolver.resolve(req.template_name)

        approver = self._users.get_by_id(req.approver_id)
        if not approver:
            raise NotFoundError(f"Approver {req.approver_id} not found")
        if not approver.is_active:
            raise ValidationError(f"Approver {req.approver_id} is inactive")
        task = self._tasks.get_task(req.task_id)
        unsupported = [a for a in config.actions if a not in task.actions]
        if unsupported:
            raise ValidationError(
                f"Template {req.template_name!r} offers actions task {task.task_id} does not accept: "
                f"{', '.join(unsupported)}"
            )

        context = EmailApprovalContext(
            task_id=task.task_id,
            approver_id=approver.user_id,
            approver_name=approver.full_name,
            approver_email=req.recipient_email,
            source_module=req.module,
            source_id=req.source_id,
            template_name=req.template_name,
            approval_data=req.approval_data,
            base_url=self._base_url,
            company_name=self._company_name,
        )
        rendered = self._resolver.render(req.template_name, context, now=now)

        issuance_id = str(uuid.uuid4())
        created_at = now_utc()
        self._tokens.save_many(
            [
                IssuedTokenRecord(
                    token_id=b.token_data.nonce,
                    issuance_id=issuance_id,
                    token=b.token,
                    data=b.token_data,
                    template_name=req.template_name,
                    created_at=created_at,
                )
                for b in rendered.buttons
            ]
        )

        record = self._emails.send(
            OutgoingEmail(
                to=(req.recipient_email,),
                subject=rendered.subject,
                html_content=rendered.html_content,
                attachments=req.attachments,
            ),
            module=req.module,
            module_context=APPROVAL_MODULE_CONTEXT,
            metadata={
                "taskId": task.task_id,
                "sourceId": req.source_id,
                "templateName": req.template_name,
                "issuanceId": issuance_id,
                "actions": [b.action for b in rendered.buttons],
            },
        )

        if record.status != EmailStatus.SENT:
            logger.error(
                "Approval email for task %s to %s failed: %s",
                task.task_id,
                req.recipient_email,
                record.error_message,
            )
            raise TransportFailure(record.error_message or "Email delivery failed", record=record)

        logger.info("Approval email for task %s sent to %s (issuance %s)", task.task_id, req.recipient_email, issuance_id)
        return record
