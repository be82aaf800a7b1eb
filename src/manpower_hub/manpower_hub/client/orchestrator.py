from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from ..common.encoding import b64url_decode, b64url_encode
from ..core.constants import CREDENTIAL_TYPE, DEFAULT_AUTHENTICATOR_TIMEOUT_MS
from ..core.enums import UserVerification
from ..core.exceptions import CeremonyError, NotFoundError, TransportError, ValidationError
from .authenticator import (
    Authenticator,
    GetAssertionRequest,
    MakeCredentialRequest,
    invoke_authenticator,
)
from .http import CeremonyApi

logger = logging.getLogger(__name__)

AUTH_VERIFY_PATH = "/webauthn/auth/verify"

ConsentCallback = Callable[[str, Optional[str]], bool]


def _decode(value: Any, field_name: str) -> bytes:
    try:
        return b64url_decode(value, field_name)
    except ValidationError as e:
        raise TransportError(f"server sent an unreadable {field_name}") from e


class CeremonyOrchestrator:
    """Client side of both ceremonies.

    Decides between registration and authentication, drives the local
    authenticator and ships its output to the server. Every public method
    that answers a yes/no question fails closed: any ceremony error means
    ``False``.
    """

    def __init__(
        self,
        api: CeremonyApi,
        authenticator: Authenticator,
        *,
        origin: str,
        consent: ConsentCallback,
        timeout_seconds: float = DEFAULT_AUTHENTICATOR_TIMEOUT_MS / 1000,
    ):
        self._api = api
        self._authenticator = authenticator
        self._origin = origin
        self._consent = consent
        self._timeout_seconds = float(timeout_seconds)

    def ensure_authenticated(self, subject_id: str, scope_entity_id: Optional[str] = None) -> bool:
        return self.perform_gated_action(AUTH_VERIFY_PATH, subject_id, scope_entity_id)

    def perform_gated_action(self, path: str, subject_id: str, scope_entity_id: Optional[str] = None) -> bool:
        """Authenticate (registering first if needed) and submit to ``path``.

        ``path`` is either the plain verify endpoint or an attendance action
        that takes the same body.
        """
        try:
            registered = False
            if not self._api.credential_exists(subject_id, scope_entity_id):
                if not self._register_with_consent(subject_id, scope_entity_id):
                    return False
                registered = True

            try:
                options = self._api.authentication_options(subject_id, scope_entity_id)
            except NotFoundError:
                # The existence check raced a deletion, or scoping filtered
                # everything out: fall back to registration once.
                if registered or not self._register_with_consent(subject_id, scope_entity_id):
                    return False
                options = self._api.authentication_options(subject_id, scope_entity_id)

            return self._authenticate_with(options, subject_id, scope_entity_id, path=path)
        except CeremonyError as e:
            logger.info("ceremony failed subject=%s scope=%s code=%s: %s", subject_id, scope_entity_id, e.code, e)
            return False

    def _register_with_consent(self, subject_id: str, scope_entity_id: Optional[str]) -> bool:
        if not self._consent(subject_id, scope_entity_id):
            logger.info("registration declined subject=%s scope=%s", subject_id, scope_entity_id)
            return False
        return self.register(subject_id, scope_entity_id)

    def register(self, subject_id: str, scope_entity_id: Optional[str] = None) -> bool:
        """Run one registration ceremony. Raises on failure."""
        options = self._api.registration_options(subject_id, scope_entity_id)
        try:
            rp = options["rp"]
            user = options["user"]
            challenge_text = options["challenge"]
            request = MakeCredentialRequest(
                rp_id=rp["id"],
                rp_name=rp.get("name", rp["id"]),
                origin=self._origin,
                challenge=_decode(challenge_text, "challenge"),
                user_handle=_decode(user["id"], "user.id"),
                user_name=user.get("name", subject_id),
                user_display_name=user.get("displayName", subject_id),
                algorithms=tuple(int(p["alg"]) for p in options.get("pubKeyCredParams", [])),
                exclude_credentials=tuple(
                    _decode(c["id"], "excludeCredentials.id") for c in options.get("excludeCredentials", [])
                ),
                require_user_verification=(
                    options.get("authenticatorSelection", {}).get("userVerification")
                    == UserVerification.REQUIRED.value
                ),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise TransportError(f"unusable registration options: {e}") from e

        result = invoke_authenticator(
            lambda: self._authenticator.make_credential(request), timeout_seconds=self._timeout_seconds
        )
        payload = _subject_payload(subject_id, scope_entity_id)
        payload.update(
            {
                "credential_id": b64url_encode(result.credential_id),
                "raw_id": b64url_encode(result.credential_id),
                "ceremony_type": CREDENTIAL_TYPE,
                "challenge": challenge_text,
                "attestation_object": b64url_encode(result.attestation_object),
                "client_data": b64url_encode(result.client_data),
            }
        )
        return self._api.verify_registration(payload)

    def authenticate(
        self, subject_id: str, scope_entity_id: Optional[str] = None, *, path: str = AUTH_VERIFY_PATH
    ) -> bool:
        """Run one authentication ceremony. Raises on failure."""
        options = self._api.authentication_options(subject_id, scope_entity_id)
        return self._authenticate_with(options, subject_id, scope_entity_id, path=path)

    def _authenticate_with(
        self, options: Dict[str, Any], subject_id: str, scope_entity_id: Optional[str], *, path: str
    ) -> bool:
        try:
            challenge_text = options["challenge"]
            request = GetAssertionRequest(
                rp_id=options["rp_id"],
                origin=self._origin,
                challenge=_decode(challenge_text, "challenge"),
                allow_credentials=tuple(
                    _decode(c["id"], "allow_credentials.id") for c in options.get("allow_credentials", [])
                ),
                require_user_verification=options.get("user_verification") == UserVerification.REQUIRED.value,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise TransportError(f"unusable authentication options: {e}") from e

        result = invoke_authenticator(
            lambda: self._authenticator.get_assertion(request), timeout_seconds=self._timeout_seconds
        )
        payload = _subject_payload(subject_id, scope_entity_id)
        payload.update(
            {
                "credential_id": b64url_encode(result.credential_id),
                "raw_id": b64url_encode(result.credential_id),
                "ceremony_type": CREDENTIAL_TYPE,
                "challenge": challenge_text,
                "authenticator_data": b64url_encode(result.authenticator_data),
                "client_data": b64url_encode(result.client_data),
                "signature": b64url_encode(result.signature),
            }
        )
        if result.user_handle is not None:
            payload["user_handle"] = b64url_encode(result.user_handle)
        return self._api.verify_authentication(payload, path=path)


def _subject_payload(subject_id: str, scope_entity_id: Optional[str]) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"subject_id": subject_id}
    if scope_entity_id is not None:
        payload["scope_entity_id"] = scope_entity_id
    return payload
