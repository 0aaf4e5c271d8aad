"""Small helpers shared by the JSON controllers."""

from __future__ import annotations

import hmac
from functools import wraps

from flask import current_app, jsonify, request

from ..core.exceptions import (
    AuthorizationError,
    DomainError,
    NotFoundError,
    TransportFailure,
    UnknownTemplate,
)


def api_key_required(view):
    """Guard internal endpoints with ``X-Api-Key`` when INTERNAL_API_KEY is configured."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        expected = current_app.config.get("INTERNAL_API_KEY")
        if expected:
            supplied = request.headers.get("X-Api-Key") or ""
            if not hmac.compare_digest(supplied.encode("utf-8"), str(expected).encode("utf-8")):
                return jsonify({"success": False, "message": "Invalid or missing API key"}), 401
        return view(*args, **kwargs)

    return wrapper


def status_for(e: DomainError) -> int:
    if isinstance(e, TransportFailure):
        return 502
    if isinstance(e, (NotFoundError, UnknownTemplate)):
        return 404
    if isinstance(e, AuthorizationError):
        return 403
    return 400


def error_response(e: DomainError):
    return jsonify({"success": False, "message": str(e)}), status_for(e)
