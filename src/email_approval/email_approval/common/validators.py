"""Boundary validation helpers.

Request payloads are described declaratively with ``Field`` specs and checked by
``validate_payload`` before anything reaches the service layer.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Sequence

from ..core.exceptions import ValidationError

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def require_non_empty(value: str, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_email(value: str, field_name: str) -> str:
    value = require_non_empty(value, field_name)
    if not _EMAIL_RE.match(value):
        raise ValidationError(f"{field_name} is not a valid email address")
    return value


def require_positive_int(value: Any, field_name: str) -> int:
    # bool is an int subclass; reject it explicitly.
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")
    if isinstance(value, float) and value != number:
        raise ValidationError(f"{field_name} must be an integer")
    if number <= 0:
        raise ValidationError(f"{field_name} must be positive")
    return number


def optional_text(value: Any, field_name: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string")
    return value.strip() or None


def require_mapping(value: Any, field_name: str) -> dict:
    if not isinstance(value, Mapping):
        raise ValidationError(f"{field_name} must be an object")
    return dict(value)


def require_list(value: Any, field_name: str) -> list:
    if not isinstance(value, (list, tuple)):
        raise ValidationError(f"{field_name} must be a list")
    return list(value)


@dataclass(frozen=True)
class Field:
    """One entry of a request schema.

    ``key`` is the wire name, ``attr`` the Python attribute it lands in.
    """

    key: str
    attr: str
    check: Callable[[Any, str], Any]
    required: bool = True
    default: Any = None


def validate_payload(payload: Any, fields: Sequence[Field]) -> dict:
    """Validate ``payload`` against ``fields`` and return ``{attr: value}``.

    All field errors are collected into one ValidationError.
    """

    if not isinstance(payload, Mapping):
        raise ValidationError("Request body must be a JSON object")

    out: dict[str, Any] = {}
    errors: list[str] = []
    for f in fields:
        raw = payload.get(f.key)
        if raw is None or (isinstance(raw, str) and not raw.strip() and f.required):
            if f.required:
                errors.append(f"{f.key} is required")
            else:
                out[f.attr] = f.default
            continue
        try:
            out[f.attr] = f.check(raw, f.key)
        except ValidationError as e:
            errors.append(str(e))

    if errors:
        raise ValidationError("; ".join(errors))
    return out
