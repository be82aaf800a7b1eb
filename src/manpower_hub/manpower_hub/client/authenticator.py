"""The local authenticator seen from the orchestrator.

A browser exposes the platform authenticator through callbacks; here it is a
single blocking call with an explicit timeout. ``invoke_authenticator`` bounds
the call and turns expiry into ``CeremonyTimeoutError``.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol, Tuple, TypeVar

from ..core.constants import DEFAULT_AUTHENTICATOR_TIMEOUT_MS
from ..core.exceptions import CeremonyTimeoutError

T = TypeVar("T")


@dataclass(frozen=True)
class MakeCredentialRequest:
    rp_id: str
    rp_name: str
    origin: str
    challenge: bytes
    user_handle: bytes
    user_name: str
    user_display_name: str
    algorithms: Tuple[int, ...]
    exclude_credentials: Tuple[bytes, ...] = field(default_factory=tuple)
    require_user_verification: bool = True


@dataclass(frozen=True)
class AttestationResult:
    credential_id: bytes
    attestation_object: bytes
    client_data: bytes


@dataclass(frozen=True)
class GetAssertionRequest:
    rp_id: str
    origin: str
    challenge: bytes
    allow_credentials: Tuple[bytes, ...]
    require_user_verification: bool = True


@dataclass(frozen=True)
class AssertionResult:
    credential_id: bytes
    authenticator_data: bytes
    client_data: bytes
    signature: bytes
    user_handle: Optional[bytes] = None


class Authenticator(Protocol):
    """Platform authenticator capability.

    Implementations raise ``UserCancelledError`` when the user dismisses the
    prompt or fails the biometric check.
    """

    def make_credential(self, request: MakeCredentialRequest) -> AttestationResult:
        raise NotImplementedError

    def get_assertion(self, request: GetAssertionRequest) -> AssertionResult:
        raise NotImplementedError


def invoke_authenticator(
    call: Callable[[], T], *, timeout_seconds: float = DEFAULT_AUTHENTICATOR_TIMEOUT_MS / 1000
) -> T:
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="authenticator")
    try:
        future = executor.submit(call)
        try:
            return future.result(timeout=timeout_seconds)
        except FutureTimeout as e:
            future.cancel()
            raise CeremonyTimeoutError(f"authenticator did not answer within {timeout_seconds:g}s") from e
    finally:
        # Do not wait for a stuck prompt; its result is discarded either way.
        executor.shutdown(wait=False)
