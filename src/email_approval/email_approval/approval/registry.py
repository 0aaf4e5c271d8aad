"""Built-in approval email templates.

Each template is an ``EmailApprovalConfig`` whose data mapper is a plain function
defined here; nothing executable is ever read from storage.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping

from ..core.constants import GENERIC_TEMPLATE
from ..core.exceptions import UnknownTemplate
from .model import EmailApprovalConfig, RedirectUrls

FILING_TYPE_LABELS = {
    "OFFICIAL_BUSINESS_FORM": "Official Business",
    "CERTIFICATE_OF_ATTENDANCE": "Certificate of Attendance",
    "OVERTIME": "Overtime",
    "SCHEDULE_ADJUSTMENT": "Schedule Adjustment",
    "LEAVE": "Leave",
}

FILING_TEMPLATES = {
    "OFFICIAL_BUSINESS_FORM": "hr-filing-official-business",
    "CERTIFICATE_OF_ATTENDANCE": "hr-filing-certificate-attendance",
    "OVERTIME": "hr-filing-overtime",
    "SCHEDULE_ADJUSTMENT": "hr-filing-schedule-adjustment",
    "LEAVE": "hr-filing-leave",
}


class ApprovalTemplateRegistry:
    def __init__(self, configs: Iterable[EmailApprovalConfig] = ()):
        self._configs: Dict[str, EmailApprovalConfig] = {}
        for config in configs:
            self.register(config)

    def register(self, config: EmailApprovalConfig) -> None:
        if config.template_name in self._configs:
            raise ValueError(f"Template {config.template_name!r} is already registered")
        self._configs[config.template_name] = config

    def resolve(self, template_name: str) -> EmailApprovalConfig:
        config = self._configs.get(template_name)
        if config is None:
            raise UnknownTemplate(f"No approval template registered for {template_name!r}")
        return config

    def names(self) -> list[str]:
        return sorted(self._configs)


# -------- data mappers --------
def map_leave(data: Mapping[str, Any]) -> Dict[str, Any]:
    out = dict(data)
    out.setdefault("leaveType", "Leave")
    out.setdefault("reason", "")
    out["period"] = f"{data.get('startDate', '')} - {data.get('endDate', '')}".strip(" -")
    return out


def map_payroll(data: Mapping[str, Any]) -> Dict[str, Any]:
    out = dict(data)
    out.setdefault("payrollGroup", "Payroll")
    out.setdefault("dateRange", "")
    out["employeeCount"] = int(data.get("employeeCount") or 0)
    return out


def map_hr_filing(data: Mapping[str, Any]) -> Dict[str, Any]:
    out = dict(data)
    filing_type = data.get("filingType") or ""
    out["filingTypeLabel"] = data.get("filingTypeLabel") or FILING_TYPE_LABELS.get(filing_type, "HR Filing")
    out.setdefault("department", "N/A")
    return out


# -------- subjects / descriptions --------
def _leave_subject(data: Mapping[str, Any]) -> str:
    return f"Leave Approval Required - {data.get('employeeName') or 'Employee'} ({data.get('period') or ''})"


def _leave_description(data: Mapping[str, Any]) -> str:
    return (
        f"Please review the {data.get('leaveType') or 'leave'} request submitted by "
        f"{data.get('employeeName') or 'an employee'}."
    )


def _payroll_subject(data: Mapping[str, Any]) -> str:
    return f"Payroll Approval Required - {data.get('payrollGroup') or 'Payroll'} ({data.get('dateRange') or ''})"


def _payroll_description(data: Mapping[str, Any]) -> str:
    return (
        f"Please review and approve the payroll for {data.get('payrollGroup') or 'the selected group'} "
        f"covering {data.get('dateRange') or 'the specified period'}."
    )


def _filing_subject(data: Mapping[str, Any]) -> str:
    return f"{data.get('filingTypeLabel') or 'HR Filing'} - Approval Required"


def _filing_description(data: Mapping[str, Any]) -> str:
    return (
        f"Please review and approve the {data.get('filingType') or 'filing'} request submitted by "
        f"{data.get('employeeName') or data.get('requestorName') or 'an employee'}."
    )


def build_default_registry() -> ApprovalTemplateRegistry:
    dashboard = RedirectUrls(
        success="/member/dashboard?approval=approve&status=success",
        rejection="/member/dashboard?approval=reject&status=success",
    )
    filings = RedirectUrls(
        success="/member/manpower/filings?approval=approve&status=success",
        rejection="/member/manpower/filings?approval=reject&status=success",
    )

    registry = ApprovalTemplateRegistry(
        [
            EmailApprovalConfig(template_name=GENERIC_TEMPLATE, redirect_urls=dashboard),
            EmailApprovalConfig(
                template_name="leave-approval",
                redirect_urls=RedirectUrls(
                    success="/member/leaves?approval=approve&status=success",
                    rejection="/member/leaves?approval=reject&status=success",
                ),
                data_mapper=map_leave,
                required_fields=("employeeName", "startDate", "endDate"),
                title="Leave Approval Required",
                subject=_leave_subject,
                description=_leave_description,
            ),
            EmailApprovalConfig(
                template_name="payroll-approval",
                redirect_urls=RedirectUrls(
                    success="/member/manpower/payroll/center?approval=approve&status=success",
                    rejection="/member/manpower/payroll/center?approval=reject&status=success",
                ),
                data_mapper=map_payroll,
                required_fields=("payrollGroup", "dateRange"),
                title="Payroll Approval Required",
                subject=_payroll_subject,
                description=_payroll_description,
            ),
            EmailApprovalConfig(
                template_name="hr-filing-approval",
                redirect_urls=filings,
                actions=("approve", "reject", "request_info"),
                remarks_required=frozenset({"reject", "request_info"}),
                data_mapper=map_hr_filing,
                required_fields=("filingType",),
                title="HR Filing Approval Required",
                subject=_filing_subject,
                description=_filing_description,
            ),
        ]
    )

    for template_name in FILING_TEMPLATES.values():
        registry.register(
            EmailApprovalConfig(
                template_name=template_name,
                redirect_urls=filings,
                data_mapper=map_hr_filing,
                required_fields=("filingType",),
                title="HR Filing Approval Required",
                subject=_filing_subject,
                description=_filing_description,
                template_file="hr-filing-approval.html",
            )
        )

    return registry
