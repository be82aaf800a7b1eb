from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Mapping, Optional, Tuple, Type

from ..common.encoding import b64url_decode
from ..common.validators import optional_str
from ..core.enums import CeremonyKind
from ..core.exceptions import (
    CeremonyError,
    MalformedAssertionError,
    MalformedAttestationError,
    ValidationError,
)
from ..employees.model import Employee
from ..users.model import User


@dataclass(frozen=True)
class CredentialRecord:
    """Domain entity: one registered public-key credential.

    ``public_key`` is the CBOR-encoded COSE key extracted at registration and
    never changes afterwards. ``sign_count`` only moves forward.
    """

    subject_id: str
    credential_id: bytes
    public_key: bytes
    sign_count: int
    bound_entity_id: Optional[str] = None
    aaguid: Optional[bytes] = None
    attestation_format: str = "none"
    created_at: Optional[datetime] = None
    last_used_at: Optional[datetime] = None
    flagged_at: Optional[datetime] = None
    flag_reason: Optional[str] = None


@dataclass(frozen=True)
class PendingChallenge:
    """The single in-flight challenge slot of a subject."""

    subject_id: str
    kind: CeremonyKind
    challenge: bytes
    issued_at: datetime
    scope_entity_id: Optional[str] = None

    def is_expired(self, *, now: datetime, ttl_seconds: int) -> bool:
        return now > self.issued_at + timedelta(seconds=int(ttl_seconds))


@dataclass(frozen=True)
class IssuedChallenge:
    """What the Challenge Issuer hands back to the HTTP layer."""

    subject: User
    kind: CeremonyKind
    challenge: bytes
    issued_at: datetime
    entity: Optional[Employee] = None
    allow_credentials: Tuple[bytes, ...] = field(default_factory=tuple)
    exclude_credentials: Tuple[bytes, ...] = field(default_factory=tuple)

    @property
    def subject_id(self) -> str:
        return self.subject.user_id

    @property
    def scope_entity_id(self) -> Optional[str]:
        return self.entity.employee_id if self.entity else None


def _required_bytes(body: Mapping[str, Any], key: str, error_cls: Type[CeremonyError]) -> bytes:
    value = body.get(key)
    if value is None or value == "":
        raise error_cls(f"missing field {key!r}")
    try:
        return b64url_decode(value, key)
    except ValidationError as e:
        raise error_cls(str(e)) from e


def _required_text(body: Mapping[str, Any], key: str, error_cls: Type[CeremonyError]) -> str:
    value = body.get(key)
    if not isinstance(value, str) or not value:
        raise error_cls(f"missing field {key!r}")
    return value


@dataclass(frozen=True)
class CeremonyRequest:
    """Fields every verify body shares: who, on whose behalf, which challenge."""

    subject_id: str
    scope_entity_id: Optional[str]
    challenge: bytes


@dataclass(frozen=True)
class RegistrationResponse:
    """Decoded attestation response from ``navigator.credentials.create()``."""

    credential_id: bytes
    raw_id: bytes
    credential_type: str
    attestation_object: bytes
    client_data: bytes

    @classmethod
    def from_json(cls, body: Mapping[str, Any]) -> "RegistrationResponse":
        err = MalformedAttestationError
        return cls(
            credential_id=_required_bytes(body, "credential_id", err),
            raw_id=_required_bytes(body, "raw_id", err),
            credential_type=_required_text(body, "ceremony_type", err),
            attestation_object=_required_bytes(body, "attestation_object", err),
            client_data=_required_bytes(body, "client_data", err),
        )


@dataclass(frozen=True)
class AssertionResponse:
    """Decoded assertion response from ``navigator.credentials.get()``."""

    credential_id: bytes
    raw_id: bytes
    credential_type: str
    authenticator_data: bytes
    client_data: bytes
    signature: bytes
    user_handle: Optional[bytes] = None

    @classmethod
    def from_json(cls, body: Mapping[str, Any]) -> "AssertionResponse":
        err = MalformedAssertionError
        user_handle = None
        if body.get("user_handle"):
            user_handle = _required_bytes(body, "user_handle", err)
        return cls(
            credential_id=_required_bytes(body, "credential_id", err),
            raw_id=_required_bytes(body, "raw_id", err),
            credential_type=_required_text(body, "ceremony_type", err),
            authenticator_data=_required_bytes(body, "authenticator_data", err),
            client_data=_required_bytes(body, "client_data", err),
            signature=_required_bytes(body, "signature", err),
            user_handle=user_handle,
        )


def parse_ceremony_request(body: Mapping[str, Any], error_cls: Type[CeremonyError]) -> CeremonyRequest:
    subject_id = optional_str(body.get("subject_id"), "subject_id")
    if not subject_id:
        raise ValidationError("subject_id is required")
    return CeremonyRequest(
        subject_id=subject_id,
        scope_entity_id=optional_str(body.get("scope_entity_id"), "scope_entity_id"),
        challenge=_required_bytes(body, "challenge", error_cls),
    )
