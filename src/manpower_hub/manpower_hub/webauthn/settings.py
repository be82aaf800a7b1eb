from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit

from ..core.constants import (
    DEFAULT_AUTHENTICATOR_TIMEOUT_MS,
    DEFAULT_CHALLENGE_BYTES,
    DEFAULT_CHALLENGE_TTL_SECONDS,
    MIN_CHALLENGE_BYTES,
)
from ..core.enums import UserVerification


@dataclass(frozen=True)
class WebAuthnSettings:
    """Relying-party configuration.

    ``rp_id`` and ``origin`` are fixed server-side values; the verifiers never
    take them from the client payload.
    """

    rp_id: str
    rp_name: str
    origin: str
    timeout_ms: int = DEFAULT_AUTHENTICATOR_TIMEOUT_MS
    challenge_ttl_seconds: int = DEFAULT_CHALLENGE_TTL_SECONDS
    challenge_bytes: int = DEFAULT_CHALLENGE_BYTES
    user_verification: UserVerification = UserVerification.REQUIRED
    allow_reregistration: bool = False

    def __post_init__(self):
        if not self.rp_id:
            raise ValueError("WEBAUTHN_RP_ID must be set")
        parts = urlsplit(self.origin)
        if parts.scheme not in {"http", "https"} or not parts.hostname:
            raise ValueError(f"WEBAUTHN_ORIGIN is not an origin: {self.origin!r}")
        host = parts.hostname
        if host != self.rp_id and not host.endswith("." + self.rp_id):
            raise ValueError(f"origin host {host!r} is not within RP id {self.rp_id!r}")
        if self.challenge_bytes < MIN_CHALLENGE_BYTES:
            raise ValueError(f"challenges must be at least {MIN_CHALLENGE_BYTES} bytes")
        if self.timeout_ms <= 0 or self.challenge_ttl_seconds <= 0:
            raise ValueError("timeouts must be positive")

    @property
    def rp_id_hash(self) -> bytes:
        return hashlib.sha256(self.rp_id.encode("utf-8")).digest()

    @property
    def require_user_verification(self) -> bool:
        return self.user_verification == UserVerification.REQUIRED

    @classmethod
    def from_settings(cls, settings: Any) -> "WebAuthnSettings":
        """Build from a config module (``config.development`` etc.)."""
        return cls(
            rp_id=str(getattr(settings, "WEBAUTHN_RP_ID")),
            rp_name=str(getattr(settings, "WEBAUTHN_RP_NAME", "Manpower Hub")),
            origin=str(getattr(settings, "WEBAUTHN_ORIGIN")),
            timeout_ms=int(getattr(settings, "WEBAUTHN_TIMEOUT_MS", DEFAULT_AUTHENTICATOR_TIMEOUT_MS)),
            challenge_ttl_seconds=int(
                getattr(settings, "WEBAUTHN_CHALLENGE_TTL_SECONDS", DEFAULT_CHALLENGE_TTL_SECONDS)
            ),
            user_verification=UserVerification(
                getattr(settings, "WEBAUTHN_USER_VERIFICATION", UserVerification.REQUIRED.value)
            ),
            allow_reregistration=bool(getattr(settings, "WEBAUTHN_ALLOW_REREGISTRATION", False)),
        )
