from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import parse_iso_date
from ..common.http import api_key_required, error_response
from ..common.validators import require_positive_int
from ..core.constants import DEFAULT_LIST_LIMIT, DEFAULT_STATS_DAYS
from ..core.enums import EmailStatus
from ..core.exceptions import DomainError, ValidationError
from ..container import Container
from .model import SentEmailFilters


def _parse_filters(args) -> SentEmailFilters:
    status = args.get("status")
    if status:
        try:
            status = EmailStatus(status.upper())
        except ValueError:
            raise ValidationError(f"Unknown status: {status}")

    def _date(key: str):
        value = args.get(key)
        if not value:
            return None
        try:
            return parse_iso_date(value)
        except ValueError:
            raise ValidationError(f"{key} must be YYYY-MM-DD")

    return SentEmailFilters(
        module=args.get("module") or None,
        status=status or None,
        date_from=_date("dateFrom"),
        date_to=_date("dateTo"),
        search=(args.get("search") or "").strip() or None,
        page=require_positive_int(args.get("page", 1), "page"),
        limit=require_positive_int(args.get("limit", DEFAULT_LIST_LIMIT), "limit"),
        sort_by=args.get("sortBy") or "sent_at",
        sort_order=args.get("sortOrder") or "desc",
    )


def register(app: Flask, container: Container) -> None:
    service = container.sent_email_service

    def _company_id() -> int:
        return int(app.config.get("COMPANY_ID", 1))

    @app.route("/api/sent-emails", methods=["GET"], endpoint="api_sent_emails")
    @api_key_required
    def list_sent_emails():
        try:
            page = service.list_sent_emails(_company_id(), _parse_filters(request.args))
        except DomainError as e:
            return error_response(e)
        return jsonify(page.to_dict())

    @app.route("/api/sent-emails/stats", methods=["GET"], endpoint="api_sent_email_stats")
    @api_key_required
    def sent_email_stats():
        try:
            days = require_positive_int(request.args.get("days", DEFAULT_STATS_DAYS), "days")
        except DomainError as e:
            return error_response(e)
        return jsonify(service.get_email_stats(_company_id(), days=min(days, 90)))

    @app.route("/api/sent-emails/<email_id>", methods=["GET"], endpoint="api_sent_email_detail")
    @api_key_required
    def sent_email_detail(email_id: str):
        try:
            email = service.get_sent_email(email_id, _company_id())
        except DomainError as e:
            return error_response(e)
        return jsonify(email.to_dict())
