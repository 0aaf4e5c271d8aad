from __future__ import annotations

import threading
from urllib.parse import parse_qs, urlparse

import pytest

from src.email_approval.email_approval.approval.model import (
    EmailApprovalConfig,
    ProcessEmailApprovalRequest,
    RedirectUrls,
    SendEmailApprovalRequest,
)
from src.email_approval.email_approval.core.enums import FailureReason, TaskStatus

FRONTEND = "https://app.example.test"
ISSUED_AT = 1_767_225_600


def _issue(services, task_id, data, *, template_name="leave-approval", now=None):
    record = services.approval_issuer.issue(
        SendEmailApprovalRequest(
            task_id=task_id,
            approver_id="approver-1",
            module="LEAVE",
            source_id="LV-001",
            template_name=template_name,
            recipient_email="maria@example.test",
            approval_data=data,
        ),
        now=now,
    )
    return record.metadata["issuanceId"]


def _tokens(repos, issuance_id):
    return {r.data.action: r.token for r in repos.tokens.list_by_issuance(issuance_id)}


def _process(services, token, action, remarks=None, now=None):
    return services.approval_processor.process(
        ProcessEmailApprovalRequest(token=token, action=action, remarks=remarks),
        now=now,
    )


def test_approve_decides_task_and_redirects_to_success(services, repos, leave_task, leave_data):
    tokens = _tokens(repos, _issue(services, leave_task, leave_data))

    result = _process(services, tokens["approve"], "approve")

    assert result.success is True
    assert result.reason is None
    assert result.task_id == leave_task
    assert result.redirect_url == f"{FRONTEND}/member/leaves?approval=approve&status=success"
    task = services.task_service.get_task(leave_task)
    assert task.status == TaskStatus.APPROVED
    assert task.decided_by == "approver-1"


def test_reject_requires_remarks_and_leaves_task_untouched(services, repos, leave_task, leave_data):
    tokens = _tokens(repos, _issue(services, leave_task, leave_data))

    result = _process(services, tokens["reject"], "reject", remarks="   ")

    assert result.success is False
    assert result.reason == FailureReason.REMARKS_REQUIRED
    assert result.redirect_url == f"https://api.example.test/email-approval/{tokens['reject']}/reject"
    assert services.task_service.get_task(leave_task).status == TaskStatus.PENDING
    assert repos.tasks.decide_calls == 0

    result = _process(services, tokens["reject"], "reject", remarks="Overlaps with audit week")

    assert result.success is True
    assert result.redirect_url == f"{FRONTEND}/member/leaves?approval=reject&status=success"
    task = services.task_service.get_task(leave_task)
    assert task.status == TaskStatus.REJECTED
    assert task.remarks == "Overlaps with audit week"


def test_replay_is_already_processed(services, repos, leave_task, leave_data):
    tokens = _tokens(repos, _issue(services, leave_task, leave_data))
    assert _process(services, tokens["approve"], "approve").success

    again = _process(services, tokens["approve"], "approve")

    assert again.success is False
    assert again.reason == FailureReason.ALREADY_PROCESSED
    assert again.redirect_url == f"{FRONTEND}/member/dashboard?approval=already_processed"
    assert repos.tasks.decide_calls == 1


def test_using_one_token_burns_its_siblings(services, repos, leave_task, leave_data):
    issuance = _issue(services, leave_task, leave_data)
    tokens = _tokens(repos, issuance)
    assert _process(services, tokens["approve"], "approve").success

    result = _process(services, tokens["reject"], "reject", remarks="Changed my mind")

    assert result.reason == FailureReason.ALREADY_PROCESSED
    assert services.task_service.get_task(leave_task).status == TaskStatus.APPROVED
    outcomes = {r.data.action: r.outcome for r in repos.tokens.list_by_issuance(issuance)}
    assert outcomes == {"approve": "approve", "reject": None}


def test_action_must_match_token(services, repos, leave_task, leave_data):
    tokens = _tokens(repos, _issue(services, leave_task, leave_data))

    result = _process(services, tokens["approve"], "reject", remarks="x")

    assert result.reason == FailureReason.INVALID_ACTION
    assert services.task_service.get_task(leave_task).status == TaskStatus.PENDING


def test_expired_token_redirects_to_error(services, repos, leave_task, leave_data):
    tokens = _tokens(repos, _issue(services, leave_task, leave_data, now=ISSUED_AT))

    result = _process(services, tokens["approve"], "approve", now=ISSUED_AT + 3601)

    assert result.reason == FailureReason.EXPIRED
    assert result.task_id == leave_task
    parsed = urlparse(result.redirect_url)
    assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == f"{FRONTEND}/member/dashboard"
    assert parse_qs(parsed.query)["error"] == ["email_approval_failed"]
    assert services.task_service.get_task(leave_task).status == TaskStatus.PENDING


@pytest.mark.parametrize("token", ["garbage", "a.b", ""])
def test_invalid_token_redirects_to_error(services, token):
    result = _process(services, token, "approve")

    assert result.success is False
    assert result.reason == FailureReason.INVALID_TOKEN
    assert result.redirect_url.startswith(f"{FRONTEND}/member/dashboard?error=email_approval_failed")


def test_validly_signed_but_unissued_token_is_rejected(services, leave_task):
    codec = services.token_codec
    token = codec.mint(
        codec.new_token_data(
            task_id=leave_task,
            approver_id="approver-1",
            source_module="LEAVE",
            source_id="LV-001",
            action="approve",
        )
    )

    result = _process(services, token, "approve")

    assert result.reason == FailureReason.INVALID_TOKEN
    assert services.task_service.get_task(leave_task).status == TaskStatus.PENDING


def test_decision_failure_rolls_back_the_claim(services, repos, leave_data):
    # Task assigned to someone else: the decision service refuses the approver.
    task_id = services.task_service.create_task(
        title="Leave", source_module="LEAVE", source_id="LV-002", assigned_to="other-1"
    )
    issuance = _issue(services, task_id, leave_data)
    tokens = _tokens(repos, issuance)

    result = _process(services, tokens["approve"], "approve")

    assert result.reason == FailureReason.DECISION_FAILED
    assert all(not r.is_used for r in repos.tokens.list_by_issuance(issuance))
    assert services.task_service.get_task(task_id).status == TaskStatus.PENDING


def test_concurrent_clicks_yield_exactly_one_success(services, repos, leave_task, leave_data):
    tokens = _tokens(repos, _issue(services, leave_task, leave_data))
    workers = 8
    barrier = threading.Barrier(workers)
    results = []
    lock = threading.Lock()

    def click(i):
        action = "approve" if i % 2 == 0 else "reject"
        barrier.wait()
        res = _process(services, tokens[action], action, remarks="concurrent")
        with lock:
            results.append(res)

    threads = [threading.Thread(target=click, args=(i,)) for i in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sum(1 for r in results if r.success) == 1
    assert all(r.reason == FailureReason.ALREADY_PROCESSED for r in results if not r.success)
    assert repos.tasks.decide_calls == 1
    assert services.task_service.get_task(leave_task).status in (TaskStatus.APPROVED, TaskStatus.REJECTED)


def test_validate_and_token_info(services, repos, leave_task, leave_data):
    tokens = _tokens(repos, _issue(services, leave_task, leave_data))
    processor = services.approval_processor

    summary = processor.validate(tokens["reject"])
    assert summary["isValid"] is True
    assert summary["taskId"] == leave_task
    assert summary["action"] == "reject"
    assert summary["remarksRequired"] is True

    info = processor.token_info(tokens["reject"])
    assert info["approver"] == {"name": "Maria Santos", "email": "maria@example.test"}
    assert info["task"] == {"title": "Vacation leave", "status": "PENDING"}
    assert info["templateName"] == "leave-approval"

    assert processor.validate("nonsense") == {
        "isValid": False,
        "reason": "invalid_token",
        "errorMessage": "Approval token is malformed",
    }


def test_template_redirects_are_used_for_action_failures(services, repos, leave_task):
    services.template_registry.register(
        EmailApprovalConfig(
            template_name="purchase-order-approval",
            redirect_urls=RedirectUrls(
                success="/po?status=approved",
                rejection="/po?status=rejected",
                error="/custom-error",
                already_processed="/custom-done",
            ),
        )
    )
    tokens = _tokens(
        repos,
        _issue(services, leave_task, {"title": "PO-77"}, template_name="purchase-order-approval"),
    )

    mismatch = _process(services, tokens["approve"], "reject", remarks="x")
    assert mismatch.reason == FailureReason.INVALID_ACTION
    assert mismatch.redirect_url == f"{FRONTEND}/custom-error"

    assert _process(services, tokens["approve"], "approve").redirect_url == f"{FRONTEND}/po?status=approved"

    replay = _process(services, tokens["approve"], "approve")
    assert replay.reason == FailureReason.ALREADY_PROCESSED
    assert replay.redirect_url == f"{FRONTEND}/custom-done"
