from __future__ import annotations

from typing import Callable, Optional, Protocol, Sequence

from .model import IssuedTokenRecord


class ApprovalTokenRepository(Protocol):
    """Server-side store of issued approval tokens.

    This is the only shared mutable state of the workflow; ``consume`` is where
    concurrent clicks are serialized.
    """

    def save_many(self, records: Sequence[IssuedTokenRecord]) -> None:
        raise NotImplementedError

    def get(self, token_id: str) -> Optional[IssuedTokenRecord]:
        raise NotImplementedError

    def list_by_issuance(self, issuance_id: str) -> Sequence[IssuedTokenRecord]:
        raise NotImplementedError

    def consume(
        self,
        *,
        token_id: str,
        issuance_id: str,
        outcome: str,
        apply: Callable[[], object],
    ) -> bool:
        """Atomically mark every unused token of ``issuance_id`` as used and run ``apply``.

        Returns False (and does not call ``apply``) when the issuance was already
        consumed. If ``apply`` raises, the claim is rolled back and the error propagates.
        """

        raise NotImplementedError
