"""fido2-backed parsing and the checks both verifiers share.

Every function here raises a ``CeremonyError`` subclass; parsing helpers take
the class to raise so registration reports ``MalformedAttestationError`` and
authentication ``MalformedAssertionError`` for the same kind of defect.
"""
from __future__ import annotations

import hmac
from typing import Type

from cryptography.exceptions import InvalidSignature
from fido2 import cbor
from fido2.attestation import Attestation
from fido2.cose import CoseKey, UnsupportedKey
from fido2.webauthn import AttestationObject, AuthenticatorData, CollectedClientData

from ..core.constants import SUPPORTED_COSE_ALGORITHMS
from ..core.exceptions import (
    CeremonyError,
    ChallengeMismatchError,
    InvalidSignatureError,
    MalformedAttestationError,
    OriginMismatchError,
    RPIDMismatchError,
)
from .settings import WebAuthnSettings


def bytes_equal(a: bytes, b: bytes) -> bool:
    return hmac.compare_digest(bytes(a), bytes(b))


def parse_client_data(raw: bytes, error_cls: Type[CeremonyError]) -> CollectedClientData:
    try:
        client_data = CollectedClientData(raw)
        # Touch the lazily decoded fields so a bad challenge fails here.
        client_data.challenge, client_data.origin, client_data.type
    except Exception as e:
        raise error_cls(f"unreadable client data: {e}") from e
    return client_data


def parse_authenticator_data(raw: bytes, error_cls: Type[CeremonyError]) -> AuthenticatorData:
    try:
        return AuthenticatorData(raw)
    except Exception as e:
        raise error_cls(f"unreadable authenticator data: {e}") from e


def parse_attestation_object(raw: bytes) -> AttestationObject:
    try:
        return AttestationObject(raw)
    except Exception as e:
        raise MalformedAttestationError(f"unreadable attestation object: {e}") from e


def check_client_data(
    client_data: CollectedClientData,
    *,
    expected_type: str,
    claimed_challenge: bytes,
    settings: WebAuthnSettings,
    error_cls: Type[CeremonyError],
) -> None:
    if client_data.type != expected_type:
        raise error_cls(f"client data type {client_data.type!r}, expected {expected_type!r}")
    if not bytes_equal(client_data.challenge, claimed_challenge):
        raise ChallengeMismatchError("challenge signed by the authenticator differs from the claimed one")
    if client_data.origin != settings.origin:
        raise OriginMismatchError(f"origin {client_data.origin!r} != {settings.origin!r}")
    if getattr(client_data, "cross_origin", False):
        raise OriginMismatchError("cross-origin ceremony rejected")


def check_authenticator_data(
    auth_data: AuthenticatorData,
    *,
    settings: WebAuthnSettings,
    error_cls: Type[CeremonyError],
) -> None:
    if not bytes_equal(auth_data.rp_id_hash, settings.rp_id_hash):
        raise RPIDMismatchError("rpIdHash does not match the configured RP id")
    if not auth_data.is_user_present():
        raise error_cls("user presence flag not set")
    if settings.require_user_verification and not auth_data.is_user_verified():
        raise error_cls("user verification required but not performed")


def verify_attestation_statement(attestation: AttestationObject, client_data_hash: bytes) -> None:
    """Check the statement is consistent for its declared format.

    Trust paths are not evaluated (attestation conveyance is ``none``); a
    ``none`` statement must simply be empty.
    """
    try:
        verifier = Attestation.for_type(attestation.fmt)()
        verifier.verify(attestation.att_stmt, attestation.auth_data, client_data_hash)
    except Exception as e:
        raise MalformedAttestationError(f"attestation statement ({attestation.fmt}) rejected: {e}") from e


def encode_public_key(public_key: CoseKey) -> bytes:
    if isinstance(public_key, UnsupportedKey) or public_key.ALGORITHM not in SUPPORTED_COSE_ALGORITHMS:
        raise MalformedAttestationError(f"unsupported COSE algorithm {public_key.get(3)!r}")
    return cbor.encode(dict(public_key))


def verify_signature(public_key: bytes, message: bytes, signature: bytes) -> None:
    try:
        key = CoseKey.parse(cbor.decode(public_key))
    except Exception as e:
        raise InvalidSignatureError(f"stored public key unreadable: {e}") from e

    try:
        key.verify(message, signature)
    except (InvalidSignature, ValueError, TypeError, NotImplementedError) as e:
        raise InvalidSignatureError("assertion signature does not verify") from e
