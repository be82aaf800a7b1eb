from __future__ import annotations

import hashlib
import os
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from fido2.cose import ES256
from fido2.webauthn import (
    AttestationObject,
    AttestedCredentialData,
    AuthenticatorData,
    CollectedClientData,
)

from ..core.constants import CLIENT_DATA_TYPE_CREATE, CLIENT_DATA_TYPE_GET, COSE_ALG_ES256, MAX_SIGN_COUNT
from ..core.exceptions import UserCancelledError
from .authenticator import (
    AssertionResult,
    AttestationResult,
    GetAssertionRequest,
    MakeCredentialRequest,
)

_ZERO_AAGUID = b"\x00" * 16


@dataclass
class _StoredKey:
    rp_id: str
    user_handle: bytes
    private_key: ec.EllipticCurvePrivateKey
    counter: int = 0


class SoftwareAuthenticator:
    """P-256 authenticator kept in memory.

    Produces the same bytes a platform authenticator would (``none``
    attestation, CBOR COSE keys, DER ECDSA signatures) so the server side can
    be exercised end to end without hardware.

    ``approve`` stands in for the biometric prompt: returning False means the
    user cancelled.
    """

    def __init__(
        self,
        *,
        approve: Optional[Callable[[], bool]] = None,
        user_verified: bool = True,
        counter_step: int = 1,
    ):
        self._approve = approve or (lambda: True)
        self._user_verified = user_verified
        self._counter_step = int(counter_step)
        self._keys: Dict[bytes, _StoredKey] = {}
        self._lock = threading.Lock()

    @property
    def credential_ids(self) -> list[bytes]:
        return list(self._keys)

    def set_counter(self, credential_id: bytes, value: int) -> None:
        self._keys[bytes(credential_id)].counter = int(value)

    def _flags(self) -> int:
        flags = AuthenticatorData.FLAG.UP
        if self._user_verified:
            flags |= AuthenticatorData.FLAG.UV
        return int(flags)

    def _prompt(self, require_user_verification: bool) -> None:
        if not self._approve():
            raise UserCancelledError("user dismissed the biometric prompt")
        if require_user_verification and not self._user_verified:
            raise UserCancelledError("biometric check not passed")

    def make_credential(self, request: MakeCredentialRequest) -> AttestationResult:
        if COSE_ALG_ES256 not in request.algorithms:
            raise UserCancelledError("no supported algorithm offered")
        for cid in request.exclude_credentials:
            if cid in self._keys:
                raise UserCancelledError("authenticator already holds an excluded credential")
        self._prompt(request.require_user_verification)

        private_key = ec.generate_private_key(ec.SECP256R1())
        credential_id = os.urandom(32)
        attested = AttestedCredentialData.create(
            _ZERO_AAGUID,
            credential_id,
            ES256.from_cryptography_key(private_key.public_key()),
        )
        auth_data = AuthenticatorData.create(
            hashlib.sha256(request.rp_id.encode("utf-8")).digest(),
            self._flags() | int(AuthenticatorData.FLAG.AT),
            0,
            attested,
        )
        client_data = CollectedClientData.create(
            type=CLIENT_DATA_TYPE_CREATE,
            challenge=request.challenge,
            origin=request.origin,
        )
        attestation = AttestationObject.create("none", auth_data, {})

        with self._lock:
            self._keys[credential_id] = _StoredKey(
                rp_id=request.rp_id,
                user_handle=request.user_handle,
                private_key=private_key,
            )
        return AttestationResult(
            credential_id=credential_id,
            attestation_object=bytes(attestation),
            client_data=bytes(client_data),
        )

    def get_assertion(self, request: GetAssertionRequest) -> AssertionResult:
        candidates = [cid for cid in request.allow_credentials if cid in self._keys]
        if not candidates:
            raise UserCancelledError("no matching credential on this authenticator")
        credential_id = candidates[0]
        stored = self._keys[credential_id]
        if stored.rp_id != request.rp_id:
            raise UserCancelledError(f"credential belongs to {stored.rp_id!r}, not {request.rp_id!r}")
        self._prompt(request.require_user_verification)

        with self._lock:
            stored.counter = min(stored.counter + self._counter_step, MAX_SIGN_COUNT)
            counter = stored.counter

        auth_data = AuthenticatorData.create(
            hashlib.sha256(request.rp_id.encode("utf-8")).digest(),
            self._flags(),
            counter,
        )
        client_data = CollectedClientData.create(
            type=CLIENT_DATA_TYPE_GET,
            challenge=request.challenge,
            origin=request.origin,
        )
        signature = stored.private_key.sign(bytes(auth_data) + client_data.hash, ec.ECDSA(hashes.SHA256()))
        return AssertionResult(
            credential_id=credential_id,
            authenticator_data=bytes(auth_data),
            client_data=bytes(client_data),
            signature=signature,
            user_handle=stored.user_handle,
        )
