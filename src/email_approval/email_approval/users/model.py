from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class User:
    """Domain entity: an account that can act as approver.

    Note: Plain data object (no DB access code).
    """

    user_id: str
    full_name: str
    email: str
    is_active: bool = True
