from __future__ import annotations

import logging
import secrets
from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from ..common.datetime_utils import utc_now
from ..common.encoding import b64url_encode, user_handle_for
from ..core.constants import (
    ATTESTATION_CONVEYANCE,
    AUTHENTICATOR_ATTACHMENT,
    CREDENTIAL_TYPE,
    SUPPORTED_COSE_ALGORITHMS,
)
from ..core.enums import CeremonyKind
from ..core.exceptions import (
    AlreadyRegisteredError,
    ChallengeExpiredError,
    ChallengeMismatchError,
    NotAuthorizedForEntityError,
    NotFoundError,
)
from ..employees.model import Employee
from ..employees.repository import EmployeeRepository
from ..users.model import User
from ..users.repository import UserRepository
from .model import CredentialRecord, IssuedChallenge, PendingChallenge
from .protocol import bytes_equal
from .repository import ChallengeRepository, CredentialRepository
from .settings import WebAuthnSettings

logger = logging.getLogger(__name__)


def credentials_in_scope(
    records: Sequence[CredentialRecord], scope_entity_id: Optional[str]
) -> list[CredentialRecord]:
    """Credentials usable for a ceremony on behalf of ``scope_entity_id``.

    A scoped request only accepts credentials bound to exactly that entity;
    unbound credentials never stand in for a bound one.
    """
    if scope_entity_id is None:
        return list(records)
    return [r for r in records if r.bound_entity_id == scope_entity_id]


class ChallengeIssuer:
    """Issues and consumes the one-time challenges of both ceremonies."""

    def __init__(
        self,
        users: UserRepository,
        employees: EmployeeRepository,
        credentials: CredentialRepository,
        challenges: ChallengeRepository,
        settings: WebAuthnSettings,
    ):
        self._users = users
        self._employees = employees
        self._credentials = credentials
        self._challenges = challenges
        self._settings = settings

    @property
    def settings(self) -> WebAuthnSettings:
        return self._settings

    def _subject(self, subject_id: str) -> User:
        user = self._users.get_by_id(subject_id)
        if not user or not user.is_active:
            raise NotFoundError(f"no active subject {subject_id!r}")
        return user

    def authorize_entity(self, subject_id: str, scope_entity_id: Optional[str]) -> Optional[Employee]:
        """Resolve the scope entity and check that ``subject_id`` may act for it.

        Only the subject linked to an active employee record can register or
        authenticate on its behalf.
        """
        if scope_entity_id is None:
            return None
        employee = self._employees.get_by_id(scope_entity_id)
        if not employee:
            raise NotFoundError(f"no employee {scope_entity_id!r}")
        if employee.user_id != subject_id:
            raise NotAuthorizedForEntityError(
                f"employee {scope_entity_id!r} belongs to {employee.user_id!r}, not {subject_id!r}"
            )
        if not employee.is_active:
            raise NotAuthorizedForEntityError(f"employee {scope_entity_id!r} is {employee.status.value}")
        return employee

    def credential_exists(self, subject_id: str, scope_entity_id: Optional[str] = None) -> bool:
        records = self._credentials.list_for_subject(subject_id)
        return bool(credentials_in_scope(records, scope_entity_id))

    def issue(
        self,
        subject_id: str,
        kind: CeremonyKind,
        scope_entity_id: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> IssuedChallenge:
        """Generate a fresh challenge and store it in the subject's slot.

        Any challenge still pending for the subject is overwritten, so a late
        verification against it fails.
        """
        now = now or utc_now()
        user = self._subject(subject_id)
        entity = self.authorize_entity(subject_id, scope_entity_id)

        existing = credentials_in_scope(self._credentials.list_for_subject(subject_id), scope_entity_id)
        allow: tuple = ()
        exclude: tuple = ()
        if kind == CeremonyKind.AUTHENTICATION:
            if not existing:
                raise NotFoundError(f"no credential registered for {subject_id!r} (scope={scope_entity_id!r})")
            allow = tuple(r.credential_id for r in existing)
        else:
            if existing and not self._settings.allow_reregistration:
                raise AlreadyRegisteredError(f"{subject_id!r} already has a credential (scope={scope_entity_id!r})")
            exclude = tuple(r.credential_id for r in existing)

        challenge = secrets.token_bytes(self._settings.challenge_bytes)
        self._challenges.put(
            PendingChallenge(
                subject_id=subject_id,
                kind=kind,
                challenge=challenge,
                issued_at=now,
                scope_entity_id=scope_entity_id,
            )
        )
        logger.debug("issued %s challenge for subject=%s scope=%s", kind.value, subject_id, scope_entity_id)
        return IssuedChallenge(
            subject=user,
            kind=kind,
            challenge=challenge,
            issued_at=now,
            entity=entity,
            allow_credentials=allow,
            exclude_credentials=exclude,
        )

    def registration_options(
        self, subject_id: str, scope_entity_id: Optional[str] = None, *, now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        issued = self.issue(subject_id, CeremonyKind.REGISTRATION, scope_entity_id, now=now)
        s = self._settings
        user = issued.subject
        display_name = issued.entity.full_name if issued.entity else user.display_name
        return {
            "challenge": b64url_encode(issued.challenge),
            "rp": {"name": s.rp_name, "id": s.rp_id},
            "user": {
                "id": b64url_encode(user_handle_for(user.user_id)),
                "name": user.email,
                "displayName": display_name,
            },
            "pubKeyCredParams": [{"type": CREDENTIAL_TYPE, "alg": alg} for alg in SUPPORTED_COSE_ALGORITHMS],
            "authenticatorSelection": {
                "authenticatorAttachment": AUTHENTICATOR_ATTACHMENT,
                "userVerification": s.user_verification.value,
                "residentKey": "discouraged",
            },
            "excludeCredentials": [
                {"id": b64url_encode(cid), "type": CREDENTIAL_TYPE} for cid in issued.exclude_credentials
            ],
            "timeout": s.timeout_ms,
            "attestation": ATTESTATION_CONVEYANCE,
        }

    def authentication_options(
        self, subject_id: str, scope_entity_id: Optional[str] = None, *, now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        issued = self.issue(subject_id, CeremonyKind.AUTHENTICATION, scope_entity_id, now=now)
        s = self._settings
        return {
            "challenge": b64url_encode(issued.challenge),
            "allow_credentials": [
                {"id": b64url_encode(cid), "type": CREDENTIAL_TYPE} for cid in issued.allow_credentials
            ],
            "user_verification": s.user_verification.value,
            "timeout": s.timeout_ms,
            "rp_id": s.rp_id,
        }

    def consume(
        self,
        subject_id: str,
        kind: CeremonyKind,
        claimed_challenge: bytes,
        *,
        scope_entity_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> PendingChallenge:
        """Pop the pending challenge and check it against the claimed one.

        The slot is cleared whatever the outcome: a challenge gets exactly one
        verification attempt.
        """
        now = now or utc_now()
        pending = self._challenges.pop(subject_id)
        if pending is None:
            raise ChallengeMismatchError(f"no pending challenge for {subject_id!r}")
        if pending.kind != kind:
            raise ChallengeMismatchError(f"pending challenge is for {pending.kind.value}, not {kind.value}")
        if not bytes_equal(pending.challenge, claimed_challenge):
            raise ChallengeMismatchError("claimed challenge is not the pending one")
        if pending.is_expired(now=now, ttl_seconds=self._settings.challenge_ttl_seconds):
            raise ChallengeExpiredError(f"challenge issued at {pending.issued_at.isoformat()} expired")
        if pending.scope_entity_id != scope_entity_id:
            raise NotAuthorizedForEntityError(
                f"challenge issued for scope {pending.scope_entity_id!r}, presented for {scope_entity_id!r}"
            )
        return pending

    def discard(self, subject_id: str) -> None:
        self._challenges.discard(subject_id)
