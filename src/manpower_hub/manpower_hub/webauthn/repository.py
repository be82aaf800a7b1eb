from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import CredentialRecord, PendingChallenge


class CredentialRepository(Protocol):
    """Credential Store: subject -> registered public-key credentials."""

    def create(self, record: CredentialRecord) -> None:
        """Persist a new credential; raises DuplicateCredentialError on a reused id."""

        raise NotImplementedError

    def get_by_credential_id(self, credential_id: bytes) -> Optional[CredentialRecord]:
        raise NotImplementedError

    def list_for_subject(self, subject_id: str) -> Sequence[CredentialRecord]:
        raise NotImplementedError

    def update_sign_count(self, credential_id: bytes, *, expected: int, new: int, used_at: datetime) -> bool:
        """Compare-and-swap of the counter.

        Returns False when the stored value is no longer ``expected``, i.e.
        another verification advanced it first.
        """

        raise NotImplementedError

    def flag_for_review(self, credential_id: bytes, *, reason: str, flagged_at: datetime) -> bool:
        raise NotImplementedError


class ChallengeRepository(Protocol):
    """Single-slot pending challenge per subject."""

    def put(self, pending: PendingChallenge) -> None:
        """Store ``pending``, silently replacing any unconsumed challenge."""

        raise NotImplementedError

    def pop(self, subject_id: str) -> Optional[PendingChallenge]:
        """Atomically read and clear the slot. Only one caller can win."""

        raise NotImplementedError

    def discard(self, subject_id: str) -> None:
        raise NotImplementedError
