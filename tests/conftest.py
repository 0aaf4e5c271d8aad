from __future__ import annotations

import threading
import uuid
from dataclasses import replace
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from src.email_approval.email_approval.container import build_services
from src.email_approval.email_approval.core.enums import EmailStatus, TaskStatus
from src.email_approval.email_approval.emails.model import SentEmail, TransportResult
from src.email_approval.email_approval.tasks.model import ApprovalTask
from src.email_approval.email_approval.users.model import User

SECRET = "test-secret"
BASE_URL = "https://api.example.test"
FRONTEND_URL = "https://app.example.test"


class FakeUserRepo:
    def __init__(self, users=()):
        self._users = {u.user_id: u for u in users}

    def get_by_id(self, user_id):
        return self._users.get(str(user_id))


class FakeTaskRepo:
    def __init__(self):
        self._next_id = 1
        self._tasks: dict[int, ApprovalTask] = {}
        self._lock = threading.Lock()
        self.decide_calls = 0

    def create(self, *, title, source_module, source_id, assigned_to, actions):
        tid = self._next_id
        self._next_id += 1
        self._tasks[tid] = ApprovalTask(
            task_id=tid,
            title=title,
            source_module=source_module,
            source_id=source_id,
            assigned_to=assigned_to,
            actions=tuple(actions),
            status=TaskStatus.PENDING,
            created_at=datetime(2026, 2, 1, 10, 0, 0),
        )
        return tid

    def get(self, *, task_id):
        return self._tasks.get(int(task_id))

    def decide(self, *, task_id, status, decided_by, remarks=None):
        with self._lock:
            self.decide_calls += 1
            task = self._tasks.get(int(task_id))
            if not task or task.status != TaskStatus.PENDING:
                return False
            self._tasks[int(task_id)] = replace(
                task,
                status=status,
                decided_by=decided_by,
                decided_at=datetime(2026, 2, 1, 11, 0, 0),
                remarks=remarks,
            )
            return True


class FakeTokenRepo:
    """In-memory token store; the lock plays the role of the row locks."""

    def __init__(self):
        self._records = {}
        self._lock = threading.Lock()

    def save_many(self, records):
        for rec in records:
            self._records[rec.token_id] = rec

    def get(self, token_id):
        return self._records.get(token_id)

    def list_by_issuance(self, issuance_id):
        return [r for r in self._records.values() if r.issuance_id == issuance_id]

    def consume(self, *, token_id, issuance_id, outcome, apply):
        with self._lock:
            siblings = self.list_by_issuance(issuance_id)
            if any(r.is_used for r in siblings):
                return False
            before = dict(self._records)
            used_at = datetime(2026, 2, 1, 11, 0, 0)
            for r in siblings:
                self._records[r.token_id] = replace(
                    r,
                    is_used=True,
                    used_at=used_at,
                    outcome=outcome if r.token_id == token_id else None,
                )
            try:
                apply()
            except Exception:
                self._records = before
                raise
            return True


class FakeSentEmailRepo:
    def __init__(self):
        self.records: dict[str, SentEmail] = {}

    def create(self, data):
        now = datetime(2026, 2, 1, 10, 0, 0) + timedelta(seconds=len(self.records))
        rec = SentEmail(
            id=str(uuid.uuid4()),
            company_id=data.company_id,
            module=data.module,
            to=tuple(data.to),
            subject=data.subject,
            status=data.status,
            sent_at=now,
            created_at=now,
            updated_at=now,
            sent_by=data.sent_by,
            module_context=data.module_context,
            cc=tuple(data.cc),
            bcc=tuple(data.bcc),
            html_content=data.html_content,
            text_content=data.text_content,
            error_message=data.error_message,
            message_id=data.message_id,
            metadata=data.metadata,
        )
        self.records[rec.id] = rec
        return rec

    def update_status(self, *, email_id, status, message_id=None, error_message=None):
        rec = self.records.get(email_id)
        if not rec or rec.status != EmailStatus.PENDING:
            return False
        self.records[email_id] = replace(rec, status=status, message_id=message_id, error_message=error_message)
        return True

    def get(self, *, email_id, company_id=None):
        rec = self.records.get(email_id)
        if rec and company_id is not None and rec.company_id != company_id:
            return None
        return rec

    def list(self, *, company_id, filters):
        rows = [r for r in self.records.values() if r.company_id == company_id]
        if filters.module:
            rows = [r for r in rows if r.module == filters.module]
        if filters.status is not None:
            rows = [r for r in rows if r.status == filters.status]
        if filters.search:
            rows = [r for r in rows if filters.search.lower() in r.subject.lower()]
        rows.sort(key=lambda r: r.sent_at, reverse=filters.sort_order != "asc")
        start = (filters.page - 1) * filters.limit
        return rows[start : start + filters.limit], len(rows)

    def count_by_status(self, *, company_id):
        out: dict[str, int] = {}
        for r in self.records.values():
            if r.company_id == company_id:
                out[r.status.value] = out.get(r.status.value, 0) + 1
        return out

    def count_by_module_status(self, *, company_id):
        out: dict[tuple, int] = {}
        for r in self.records.values():
            if r.company_id == company_id:
                key = (r.module, r.status.value)
                out[key] = out.get(key, 0) + 1
        return [(m, s, n) for (m, s), n in out.items()]

    def count_by_day(self, *, company_id, since):
        out = {}
        for r in self.records.values():
            if r.company_id == company_id and r.sent_at >= since:
                out[r.sent_at.date()] = out.get(r.sent_at.date(), 0) + 1
        return out


class FakeTransport:
    def __init__(self, *, fail: bool = False):
        self.fail = fail
        self.sent = []

    def send(self, message, *, timeout):
        self.sent.append(message)
        if self.fail:
            return TransportResult(status=EmailStatus.FAILED, error_message="connection refused")
        return TransportResult(status=EmailStatus.SENT, message_id=f"<msg-{len(self.sent)}@example.test>")


@pytest.fixture
def approver():
    return User(user_id="approver-1", full_name="Maria Santos", email="maria@example.test")


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def repos(approver):
    return SimpleNamespace(
        users=FakeUserRepo([approver, User(user_id="other-1", full_name="Other Person", email="o@example.test")]),
        tasks=FakeTaskRepo(),
        tokens=FakeTokenRepo(),
        sent_emails=FakeSentEmailRepo(),
    )


@pytest.fixture
def settings():
    return SimpleNamespace(
        BASE_URL=BASE_URL,
        FRONTEND_URL=FRONTEND_URL,
        COMPANY_ID=1,
        COMPANY_NAME="Acme Corp",
        APPROVAL_TOKEN_TTL_SECONDS=3600,
        EMAIL_SEND_TIMEOUT_SECONDS=5,
    )


@pytest.fixture
def services(repos, transport, settings):
    return build_services(
        users_repo=repos.users,
        tasks_repo=repos.tasks,
        tokens_repo=repos.tokens,
        sent_emails_repo=repos.sent_emails,
        transport=transport,
        secret_key=SECRET,
        settings=settings,
    )


@pytest.fixture
def leave_task(services, approver):
    return services.task_service.create_task(
        title="Vacation leave",
        source_module="LEAVE",
        source_id="LV-001",
        assigned_to=approver.user_id,
    )


@pytest.fixture
def leave_data():
    return {
        "employeeName": "Juan Dela Cruz",
        "leaveType": "Vacation Leave",
        "startDate": "2026-03-02",
        "endDate": "2026-03-04",
        "days": 3,
        "reason": "Family trip",
    }
