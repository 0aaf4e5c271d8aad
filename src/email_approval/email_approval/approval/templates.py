from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

from jinja2 import Environment, FileSystemLoader, Template, TemplateError, TemplateNotFound, select_autoescape

from ..common.datetime_utils import parse_iso_date
from ..core.constants import GENERIC_TEMPLATE
from ..core.exceptions import TemplateRenderError
from .model import ActionButton, EmailApprovalConfig, EmailApprovalContext, RenderedEmail
from .registry import ApprovalTemplateRegistry
from .tokens import TokenCodec

logger = logging.getLogger(__name__)

_BUTTON_BASE = "color: white; padding: 12px 24px; text-decoration: none; border-radius: 4px; font-weight: bold;"

# action -> (label, background colour, type)
_BUTTONS = {
    "approve": ("Approve", "#28a745", "primary"),
    "reject": ("Reject", "#dc3545", "danger"),
    "request_info": ("Request Info", "#17a2b8", "info"),
}


# -------- template filters --------
def format_currency(amount: Any) -> str:
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        return "₱0.00"
    return f"₱{amount:,.2f}"


def format_date(value: Union[str, date, None]) -> str:
    if not value:
        return ""
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, str):
        try:
            value = parse_iso_date(value[:10])
        except ValueError:
            return value
    return f"{value:%B} {value.day}, {value.year}"


def format_number(num: Any) -> str:
    if isinstance(num, bool) or not isinstance(num, (int, float)):
        return "0"
    return f"{num:,}"


def create_email_environment(templates_dir: Union[str, Path]) -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(templates_dir)),
        autoescape=select_autoescape(["html", "xml"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["format_currency"] = format_currency
    env.filters["format_date"] = format_date
    env.filters["format_number"] = format_number
    return env


class TemplateResolver:
    """Turns an approval context into a ready-to-send email.

    Every configured action gets its own freshly minted token, so a rendered email
    always carries exactly one working link per action.
    """

    def __init__(self, registry: ApprovalTemplateRegistry, codec: TokenCodec, env: Environment):
        self._registry = registry
        self._codec = codec
        self._env = env

    def resolve(self, template_name: str) -> EmailApprovalConfig:
        return self._registry.resolve(template_name)

    def render(
        self,
        template_name: str,
        context: EmailApprovalContext,
        *,
        now: Optional[int] = None,
    ) -> RenderedEmail:
        config = self.resolve(template_name)

        try:
            data = config.data_mapper(context.approval_data)
        except (TypeError, ValueError, KeyError) as e:
            raise TemplateRenderError(f"{template_name}: approval data could not be mapped ({e})")

        missing = [f for f in config.required_fields if data.get(f) in (None, "")]
        if missing:
            raise TemplateRenderError(f"{template_name}: missing required fields {', '.join(missing)}")

        buttons = tuple(self._button(config, context, action, now=now) for action in config.actions)

        template_data: Dict[str, Any] = {
            **data,
            "approver": {"name": context.approver_name, "email": context.approver_email},
            "company": {"name": context.company_name},
            "approval": {
                "title": config.title,
                "description": config.description(data),
                "details": data,
                "actions": [
                    {"action": b.action, "label": b.label, "url": b.url, "style": b.style, "type": b.type}
                    for b in buttons
                ],
            },
            "baseUrl": context.base_url,
            "taskId": context.task_id,
            "sourceModule": context.source_module,
            "sourceId": context.source_id,
        }

        template = self._load(config)
        try:
            html_content = template.render(**template_data)
        except TemplateError as e:
            logger.error("Failed to render template %s: %s", template_name, e)
            raise TemplateRenderError(f"Template {template_name} failed to render")

        return RenderedEmail(
            template_name=template_name,
            subject=config.subject(data),
            html_content=html_content,
            buttons=buttons,
        )

    def _load(self, config: EmailApprovalConfig) -> Template:
        try:
            return self._env.get_template(config.file_name)
        except TemplateNotFound:
            if config.file_name == f"{GENERIC_TEMPLATE}.html":
                raise TemplateRenderError(f"Template {config.file_name} not found")
            logger.warning("Template %s not found, falling back to %s", config.file_name, GENERIC_TEMPLATE)
        except TemplateError as e:
            raise TemplateRenderError(f"Template {config.file_name} is invalid: {e}")

        try:
            return self._env.get_template(f"{GENERIC_TEMPLATE}.html")
        except TemplateError as e:
            raise TemplateRenderError(f"Fallback template {GENERIC_TEMPLATE} unavailable: {e}")

    def _button(
        self,
        config: EmailApprovalConfig,
        context: EmailApprovalContext,
        action: str,
        *,
        now: Optional[int],
    ) -> ActionButton:
        token_data = self._codec.new_token_data(
            task_id=context.task_id,
            approver_id=context.approver_id,
            source_module=context.source_module,
            source_id=context.source_id,
            action=action,
            now=now,
        )
        token = self._codec.mint(token_data)
        label, colour, kind = _BUTTONS.get(action, (action.replace("_", " ").title(), "#6c757d", "secondary"))
        style = f"background-color: {colour}; {_BUTTON_BASE}"
        if action != config.actions[0]:
            style += " margin-left: 10px;"

        return ActionButton(
            action=action,
            label=label,
            url=f"{context.base_url.rstrip('/')}/email-approval/{token}/{action}",
            style=style,
            type=kind,
            token=token,
            token_data=token_data,
        )
