"""Signed approval tokens that carry their own context and expire after a TTL."""

from __future__ import annotations

import secrets
from typing import Any, Optional

from itsdangerous import BadPayload, BadSignature, URLSafeSerializer

from ..common.datetime_utils import epoch_seconds
from ..core.constants import DEFAULT_TOKEN_SALT, DEFAULT_TOKEN_TTL_SECONDS, NONCE_BYTES
from ..core.exceptions import InvalidTokenFormat, TokenExpired, TokenIntegrityFailure
from .model import TokenData

_STR_FIELDS = ("approverId", "sourceModule", "sourceId", "action", "nonce")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class TokenCodec:
    def __init__(
        self,
        secret_key: str,
        *,
        salt: str = DEFAULT_TOKEN_SALT,
        ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS,
    ):
        if not secret_key:
            raise ValueError("secret_key is required for approval tokens")
        if int(ttl_seconds) <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._serializer = URLSafeSerializer(secret_key, salt=salt)
        self.ttl_seconds = int(ttl_seconds)

    def new_token_data(
        self,
        *,
        task_id: int,
        approver_id: str,
        source_module: str,
        source_id: str,
        action: str,
        now: Optional[int] = None,
    ) -> TokenData:
        return TokenData(
            task_id=int(task_id),
            approver_id=str(approver_id),
            source_module=str(source_module),
            source_id=str(source_id),
            action=action,
            timestamp=int(now if now is not None else epoch_seconds()),
            nonce=secrets.token_urlsafe(NONCE_BYTES),
        )

    def mint(self, data: TokenData) -> str:
        return self._serializer.dumps(data.to_payload())

    def decode(self, token: str, *, now: Optional[int] = None) -> TokenData:
        data = self._load(token)
        now = int(now if now is not None else epoch_seconds())
        if now - data.timestamp > self.ttl_seconds:
            raise TokenExpired("Approval link has expired", data=data)
        return data

    def _load(self, token: str) -> TokenData:
        if not isinstance(token, str) or not token.strip():
            raise InvalidTokenFormat("Approval token is missing")

        try:
            payload = self._serializer.loads(token)
        except BadPayload:
            raise InvalidTokenFormat("Approval token payload is unreadable")
        except BadSignature as e:
            # Tell a garbled token apart from a readable one with a bad signature.
            if e.payload is None:
                raise InvalidTokenFormat("Approval token is malformed")
            try:
                self._serializer.load_payload(e.payload)
            except BadPayload:
                raise InvalidTokenFormat("Approval token payload is unreadable")
            raise TokenIntegrityFailure("Approval token signature does not match")

        return self._to_token_data(payload)

    @staticmethod
    def _to_token_data(payload: Any) -> TokenData:
        if not isinstance(payload, dict):
            raise InvalidTokenFormat("Approval token payload is not an object")
        if not _is_int(payload.get("taskId")) or not _is_int(payload.get("timestamp")):
            raise InvalidTokenFormat("Approval token payload is incomplete")
        if any(not isinstance(payload.get(k), str) for k in _STR_FIELDS) or not payload["nonce"]:
            raise InvalidTokenFormat("Approval token payload is incomplete")

        return TokenData(
            task_id=payload["taskId"],
            approver_id=payload["approverId"],
            source_module=payload["sourceModule"],
            source_id=payload["sourceId"],
            action=payload["action"],
            timestamp=payload["timestamp"],
            nonce=payload["nonce"],
        )
