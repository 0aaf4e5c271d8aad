from __future__ import annotations

from typing import Any, Optional

from .enums import FailureReason


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a referenced entity does not exist."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class ApprovalError(DomainError):
    """Base class for the email approval workflow failures."""

    reason: Optional[FailureReason] = None


class InvalidTokenFormat(ApprovalError):
    reason = FailureReason.INVALID_TOKEN


class TokenIntegrityFailure(ApprovalError):
    reason = FailureReason.INVALID_TOKEN


class TokenExpired(ApprovalError):
    """Raised when a well-formed, correctly signed token is past its TTL.

    The decoded payload is kept on ``data`` so callers can still route the failure.
    """

    reason = FailureReason.EXPIRED

    def __init__(self, message: str, *, data: Any = None):
        super().__init__(message)
        self.data = data


class UnknownTemplate(ApprovalError):
    reason = FailureReason.UNKNOWN_TEMPLATE


class InvalidAction(ApprovalError):
    reason = FailureReason.INVALID_ACTION


class AlreadyProcessed(ApprovalError):
    reason = FailureReason.ALREADY_PROCESSED


class RemarksRequired(ApprovalError):
    reason = FailureReason.REMARKS_REQUIRED


class TemplateRenderError(ApprovalError):
    """Raised on missing required template fields or render-engine failure."""


class TransportFailure(ApprovalError):
    """Raised to the issuing caller when the email could not be delivered.

    ``record`` holds the FAILED sent-email record saved for audit.
    """

    def __init__(self, message: str, *, record: Any = None):
        super().__init__(message)
        self.record = record
