from __future__ import annotations

import logging

from flask import Flask, jsonify, redirect, render_template, request

from ..common.http import api_key_required, error_response
from ..core.enums import FailureReason
from ..core.exceptions import DomainError, TransportFailure
from ..container import Container
from .model import ProcessEmailApprovalRequest, SendEmailApprovalRequest

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    processor = container.approval_processor

    def _remarks_form(token: str, action: str, *, error: str = "", status: int = 200):
        try:
            info = processor.token_info(token)
        except DomainError:
            # Token became unusable between the click and the form; let process() pick the redirect.
            result = processor.process(ProcessEmailApprovalRequest(token=token, action=action))
            return redirect(result.redirect_url)

        return (
            render_template(
                "email_approval/remarks_form.html",
                info=info,
                token=token,
                action=action,
                action_label=action.replace("_", " ").title(),
                error=error,
            ),
            status,
        )

    # -------- approver-facing links --------
    @app.route("/email-approval/<token>/validate", methods=["GET"], endpoint="email_approval_validate")
    def validate_token(token: str):
        return jsonify(processor.validate(token))

    @app.route("/email-approval/<token>/info", methods=["GET"], endpoint="email_approval_info")
    def token_info(token: str):
        try:
            return jsonify(processor.token_info(token))
        except DomainError as e:
            return error_response(e)

    @app.route("/email-approval/<token>/<action>", methods=["GET", "POST"], endpoint="email_approval_action")
    def email_action(token: str, action: str):
        remarks = request.form.get("remarks") if request.method == "POST" else None
        result = processor.process(ProcessEmailApprovalRequest(token=token, action=action, remarks=remarks))

        if result.reason == FailureReason.REMARKS_REQUIRED:
            if request.method == "POST":
                return _remarks_form(token, action, error=result.message, status=400)
            return _remarks_form(token, action)
        return redirect(result.redirect_url)

    @app.route("/api/email-approval/process", methods=["POST"], endpoint="api_email_approval_process")
    def api_process():
        try:
            req = ProcessEmailApprovalRequest.from_payload(request.get_json(silent=True))
        except DomainError as e:
            return error_response(e)

        result = processor.process(req)
        if result.success:
            return jsonify(result.to_dict()), 200
        return jsonify(result.to_dict()), 409 if result.reason == FailureReason.ALREADY_PROCESSED else 400

    # -------- internal API --------
    @app.route("/api/email-approval/send", methods=["POST"], endpoint="api_email_approval_send")
    @api_key_required
    def api_send():
        try:
            req = SendEmailApprovalRequest.from_payload(request.get_json(silent=True))
            record = container.approval_issuer.issue(req)
        except TransportFailure as e:
            body = {"success": False, "message": str(e)}
            if e.record is not None:
                body["email"] = e.record.to_dict()
            return jsonify(body), 502
        except DomainError as e:
            return error_response(e)

        return jsonify({"success": True, "email": record.to_dict()}), 201
