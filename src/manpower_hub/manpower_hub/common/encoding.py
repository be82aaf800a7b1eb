"""Wire encoding for every binary field of the ceremony.

Challenges, credential ids, user handles, authenticator output and signatures
all travel as URL-safe base64 *without* padding. Both the server and the
orchestrator go through these two functions so the bytes compared on each side
are identical.
"""
from __future__ import annotations

import base64
import binascii
import re

from ..core.exceptions import ValidationError

_B64URL_RE = re.compile(r"^[A-Za-z0-9_-]*$")


def b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(bytes(data)).rstrip(b"=").decode("ascii")


def b64url_decode(value: str, field_name: str = "value") -> bytes:
    """Decode unpadded base64url text.

    Trailing ``=`` padding is tolerated. Anything outside the URL-safe
    alphabet (including standard ``+`` and ``/``) is rejected instead of being
    silently dropped.
    """
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be base64url text")

    stripped = value.rstrip("=")
    if not _B64URL_RE.match(stripped) or len(stripped) % 4 == 1:
        raise ValidationError(f"{field_name} is not valid base64url")

    padded = stripped + "=" * (-len(stripped) % 4)
    try:
        decoded = base64.urlsafe_b64decode(padded)
    except (binascii.Error, ValueError) as e:
        raise ValidationError(f"{field_name} is not valid base64url") from e
    # Unused trailing bits must be zero, so each byte string has one text form.
    if b64url_encode(decoded) != stripped:
        raise ValidationError(f"{field_name} is not canonical base64url")
    return decoded


def user_handle_for(subject_id: str) -> bytes:
    """WebAuthn user handle of a subject: the UTF-8 bytes of its id."""
    return subject_id.encode("utf-8")
