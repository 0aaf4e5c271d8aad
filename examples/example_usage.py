"""Example: issue an approval email through the service layer (no Flask).

Controllers stay thin; the workflow lives in the issuer and processor services.
Run ``scripts/init_db.py`` and ``scripts/seed_db.py`` first.
"""

import importlib

from config import get_settings_module

from src.email_approval.email_approval.approval.model import SendEmailApprovalRequest
from src.email_approval.email_approval.container import build_container
from src.email_approval.email_approval.core.exceptions import TransportFailure


def main():
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG, settings=settings)

    task_id = container.task_service.create_task(
        title="Vacation leave, 3 days",
        source_module="LEAVE",
        source_id="LV-2024-001",
        assigned_to="demo-approver",
    )
    request = SendEmailApprovalRequest(
        task_id=task_id,
        approver_id="demo-approver",
        module="LEAVE",
        source_id="LV-2024-001",
        template_name="leave-approval",
        recipient_email="approver@example.com",
        approval_data={
            "employeeName": "Juan Dela Cruz",
            "leaveType": "Vacation Leave",
            "startDate": "2024-06-03",
            "endDate": "2024-06-05",
            "days": 3,
        },
    )
    try:
        record = container.approval_issuer.issue(request)
        print("sent", record.id, record.message_id)
    except TransportFailure as e:
        print("delivery failed:", e, "(audit record", e.record.id if e.record else None, ")")


if __name__ == "__main__":
    main()
