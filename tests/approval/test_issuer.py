from __future__ import annotations

import base64

import pytest

from src.email_approval.email_approval.approval.model import SendEmailApprovalRequest
from src.email_approval.email_approval.core.enums import EmailStatus
from src.email_approval.email_approval.core.exceptions import (
    NotFoundError,
    TemplateRenderError,
    TransportFailure,
    UnknownTemplate,
    ValidationError,
)


def _request(task_id, data, **overrides):
    kwargs = dict(
        task_id=task_id,
        approver_id="approver-1",
        module="LEAVE",
        source_id="LV-001",
        template_name="leave-approval",
        recipient_email="maria@example.test",
        approval_data=data,
    )
    kwargs.update(overrides)
    return SendEmailApprovalRequest(**kwargs)


def test_issue_sends_email_and_stores_one_token_per_action(services, repos, transport, leave_task, leave_data):
    record = services.approval_issuer.issue(_request(leave_task, leave_data))

    assert record.status == EmailStatus.SENT
    assert record.message_id == "<msg-1@example.test>"
    assert record.module == "LEAVE"
    assert record.module_context == "APPROVAL_REQUEST"
    assert record.metadata["taskId"] == leave_task
    assert record.metadata["templateName"] == "leave-approval"

    issuance = repos.tokens.list_by_issuance(record.metadata["issuanceId"])
    assert sorted(r.data.action for r in issuance) == ["approve", "reject"]
    assert all(not r.is_used for r in issuance)
    assert all(r.template_name == "leave-approval" for r in issuance)

    (message,) = transport.sent
    assert message.to == ("maria@example.test",)
    assert message.subject == "Leave Approval Required - Juan Dela Cruz (2026-03-02 - 2026-03-04)"
    for rec in issuance:
        assert f"/email-approval/{rec.token}/{rec.data.action}" in message.html_content


def test_each_issue_creates_a_new_issuance(services, repos, leave_task, leave_data):
    first = services.approval_issuer.issue(_request(leave_task, leave_data))
    second = services.approval_issuer.issue(_request(leave_task, leave_data))

    assert first.metadata["issuanceId"] != second.metadata["issuanceId"]
    assert len(repos.tokens.list_by_issuance(second.metadata["issuanceId"])) == 2


def test_transport_failure_is_raised_with_failed_record(services, repos, transport, leave_task, leave_data):
    transport.fail = True

    with pytest.raises(TransportFailure) as exc:
        services.approval_issuer.issue(_request(leave_task, leave_data))

    record = exc.value.record
    assert record.status == EmailStatus.FAILED
    assert record.error_message == "connection refused"
    assert repos.sent_emails.records[record.id].status == EmailStatus.FAILED


def test_unknown_approver_or_task(services, leave_task, leave_data):
    with pytest.raises(NotFoundError):
        services.approval_issuer.issue(_request(leave_task, leave_data, approver_id="nobody"))
    with pytest.raises(NotFoundError):
        services.approval_issuer.issue(_request(999, leave_data))


def test_unknown_template_sends_nothing(services, transport, leave_task, leave_data):
    with pytest.raises(UnknownTemplate):
        services.approval_issuer.issue(_request(leave_task, leave_data, template_name="nope"))
    assert transport.sent == []


def test_render_failure_stores_no_tokens(services, repos, transport, leave_task):
    with pytest.raises(TemplateRenderError):
        services.approval_issuer.issue(_request(leave_task, {"employeeName": "Juan"}))
    assert transport.sent == []
    assert repos.sent_emails.records == {}


def test_attachments_are_forwarded(services, transport, leave_task, leave_data):
    req = SendEmailApprovalRequest.from_payload(
        {
            "taskId": leave_task,
            "approverId": "approver-1",
            "module": "LEAVE",
            "sourceId": "LV-001",
            "templateName": "leave-approval",
            "recipientEmail": "maria@example.test",
            "approvalData": leave_data,
            "attachments": [
                {
                    "filename": "form.pdf",
                    "content": base64.b64encode(b"%PDF-1.4").decode("ascii"),
                    "contentType": "application/pdf",
                }
            ],
        }
    )
    services.approval_issuer.issue(req)

    (att,) = transport.sent[0].attachments
    assert att.filename == "form.pdf"
    assert att.content == b"%PDF-1.4"
    assert att.content_type == "application/pdf"


def test_send_request_validation_collects_errors():
    with pytest.raises(ValidationError) as exc:
        SendEmailApprovalRequest.from_payload({"taskId": "abc", "recipientEmail": "not-an-email"})

    message = str(exc.value)
    assert "taskId must be an integer" in message
    assert "recipientEmail is not a valid email address" in message
    assert "templateName is required" in message


def test_template_actions_must_be_accepted_by_the_task(services, repos, transport, leave_task):
    filing = {"filingType": "OVERTIME", "employeeName": "Juan Dela Cruz"}

    with pytest.raises(ValidationError) as exc:
        services.approval_issuer.issue(_request(leave_task, filing, template_name="hr-filing-approval"))

    assert "request_info" in str(exc.value)
    assert transport.sent == []
    assert repos.sent_emails.records == {}

    task_id = services.task_service.create_task(
        title="Overtime",
        source_module="HR_FILING",
        source_id="OT-9",
        assigned_to="approver-1",
        actions=("approve", "reject", "request_info"),
    )
    record = services.approval_issuer.issue(_request(task_id, filing, template_name="hr-filing-approval"))
    assert record.metadata["actions"] == ["approve", "reject", "request_info"]


def test_unsafe_subject_ends_as_failed_delivery(services, repos, transport, leave_task, leave_data):
    def refuse_line_breaks(message, *, timeout):
        raise ValueError("Header values may not contain linefeed or carriage return characters")

    transport.send = refuse_line_breaks
    data = dict(leave_data, employeeName="Juan\nBcc: evil@example.test")

    with pytest.raises(TransportFailure) as exc:
        services.approval_issuer.issue(_request(leave_task, data))

    assert exc.value.record.status == EmailStatus.FAILED
    assert repos.sent_emails.records[exc.value.record.id].status == EmailStatus.FAILED
