import hashlib
import threading
from dataclasses import replace
from datetime import timedelta

import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from fido2.cose import ES256
from fido2.webauthn import AuthenticatorData, CollectedClientData

from src.manpower_hub.manpower_hub.client.soft_authenticator import SoftwareAuthenticator
from src.manpower_hub.manpower_hub.core.enums import CeremonyKind, EmployeeStatus
from src.manpower_hub.manpower_hub.core.exceptions import (
    ChallengeExpiredError,
    ChallengeMismatchError,
    InvalidSignatureError,
    MalformedAssertionError,
    NotAuthorizedForEntityError,
    NotFoundError,
    OriginMismatchError,
    PossibleCloneDetectedError,
    RPIDMismatchError,
)
from src.manpower_hub.manpower_hub.webauthn import protocol
from src.manpower_hub.manpower_hub.webauthn.assertion_service import AssertionVerifier
from src.manpower_hub.manpower_hub.webauthn.model import AssertionResponse, CredentialRecord


def test_register_then_authenticate_scenario(ceremonies, credentials, fixed_now):
    record = ceremonies.register("u1")
    assert record.sign_count == 0

    response, c2 = ceremonies.assertion("u1")
    assert ceremonies.verify("u1", response, c2) is True
    assert credentials.get_by_credential_id(record.credential_id).sign_count == 1
    assert credentials.get_by_credential_id(record.credential_id).last_used_at == fixed_now

    with pytest.raises(ChallengeMismatchError):
        ceremonies.verify("u1", response, c2)
    assert credentials.get_by_credential_id(record.credential_id).sign_count == 1


def test_each_issued_challenge_authenticates_once(ceremonies, credentials):
    record = ceremonies.register("u1")

    for expected in (1, 2, 3):
        response, challenge = ceremonies.assertion("u1")
        assert ceremonies.verify("u1", response, challenge) is True
        assert credentials.get_by_credential_id(record.credential_id).sign_count == expected


def test_replay_against_fresh_challenge_is_mismatch(ceremonies, issuer, fixed_now):
    ceremonies.register("u1")
    old_response, old_challenge = ceremonies.assertion("u1")
    assert ceremonies.verify("u1", old_response, old_challenge) is True

    issuer.issue("u1", CeremonyKind.AUTHENTICATION, now=fixed_now)
    with pytest.raises(ChallengeMismatchError):
        ceremonies.verify("u1", old_response, old_challenge)

    fresh = issuer.issue("u1", CeremonyKind.AUTHENTICATION, now=fixed_now).challenge
    with pytest.raises(ChallengeMismatchError):
        # Claiming the fresh challenge does not help: client data still carries the old one.
        ceremonies.verify("u1", old_response, fresh)


def test_stale_counter_is_possible_clone_and_flagged(ceremonies, credentials, fixed_now):
    record = ceremonies.register("u1")
    response, challenge = ceremonies.assertion("u1")
    ceremonies.verify("u1", response, challenge)

    ceremonies.authenticator.set_counter(record.credential_id, 0)
    cloned, challenge = ceremonies.assertion("u1")

    with pytest.raises(PossibleCloneDetectedError):
        ceremonies.verify("u1", cloned, challenge)

    stored = credentials.get_by_credential_id(record.credential_id)
    assert stored.sign_count == 1
    assert stored.flagged_at == fixed_now
    assert stored.flag_reason


def test_equal_counter_is_possible_clone(ceremonies, credentials):
    record = ceremonies.register("u1")
    ceremonies.authenticator.set_counter(record.credential_id, 4)
    response, challenge = ceremonies.assertion("u1")
    ceremonies.verify("u1", response, challenge)

    ceremonies.authenticator.set_counter(record.credential_id, 4)
    response, challenge = ceremonies.assertion("u1")

    with pytest.raises(PossibleCloneDetectedError):
        ceremonies.verify("u1", response, challenge)
    assert credentials.get_by_credential_id(record.credential_id).sign_count == 5


def test_authenticator_without_counter_keeps_working(ceremonies, credentials):
    ceremonies.authenticator = SoftwareAuthenticator(counter_step=0)
    record = ceremonies.register("u1")

    for _ in range(2):
        response, challenge = ceremonies.assertion("u1")
        assert ceremonies.verify("u1", response, challenge) is True
    assert credentials.get_by_credential_id(record.credential_id).sign_count == 0


def test_credential_bound_to_other_entity_is_refused(ceremonies, challenges, credentials):
    record = ceremonies.register("u1", "EMP-C")
    response, challenge = ceremonies.assertion("u1", "EMP-C")

    with pytest.raises(NotAuthorizedForEntityError):
        ceremonies.verify("u1", response, challenge, "EMP-A")

    assert "u1" not in challenges.slots
    assert credentials.get_by_credential_id(record.credential_id).sign_count == 0


def test_unbound_credential_is_refused_for_scoped_request(ceremonies):
    ceremonies.register("u1")
    response, challenge = ceremonies.assertion("u1")

    with pytest.raises(NotAuthorizedForEntityError):
        ceremonies.verify("u1", response, challenge, "EMP-A")


def test_scoped_credential_passes_for_its_entity(ceremonies):
    ceremonies.register("u1", "EMP-A")
    response, challenge = ceremonies.assertion("u1", "EMP-A")

    assert ceremonies.verify("u1", response, challenge, "EMP-A") is True


def test_assertion_without_registration_is_not_found(ceremonies, issuer, fixed_now):
    challenge = issuer.issue("u1", CeremonyKind.REGISTRATION, now=fixed_now).challenge
    response = AssertionResponse(
        credential_id=b"\x01" * 16,
        raw_id=b"\x01" * 16,
        credential_type="public-key",
        authenticator_data=b"\x00" * 37,
        client_data=b"{}",
        signature=b"\x00",
    )

    with pytest.raises(NotFoundError):
        ceremonies.verify("u1", response, challenge)


def test_credential_of_another_subject_is_not_found(ceremonies, issuer, fixed_now):
    ceremonies.register("u1")
    response, _ = ceremonies.assertion("u1")
    ceremonies.register("u2")
    other = issuer.issue("u2", CeremonyKind.AUTHENTICATION, now=fixed_now).challenge

    with pytest.raises(NotFoundError):
        ceremonies.verify("u2", response, other)


def test_tampered_signature_fails_closed(ceremonies, credentials):
    record = ceremonies.register("u1")
    response, challenge = ceremonies.assertion("u1")
    bad = bytearray(response.signature)
    bad[-1] ^= 0x01

    with pytest.raises(InvalidSignatureError):
        ceremonies.verify("u1", replace(response, signature=bytes(bad)), challenge)
    assert credentials.get_by_credential_id(record.credential_id).sign_count == 0


def test_tampered_counter_breaks_signature(ceremonies, credentials):
    record = ceremonies.register("u1")
    response, challenge = ceremonies.assertion("u1")
    data = bytearray(response.authenticator_data)
    data[36] = 0x63

    with pytest.raises(InvalidSignatureError):
        ceremonies.verify("u1", replace(response, authenticator_data=bytes(data)), challenge)
    assert credentials.get_by_credential_id(record.credential_id).sign_count == 0


def test_foreign_origin_is_rejected(ceremonies):
    ceremonies.register("u1")
    response, challenge = ceremonies.assertion("u1", origin="https://evil.example")

    with pytest.raises(OriginMismatchError):
        ceremonies.verify("u1", response, challenge)


def test_foreign_rp_id_is_rejected(credentials, issuer, challenges, settings, fixed_now, ceremonies):
    # An authenticator scoped to another site signs correctly, but for the wrong rpIdHash.
    private_key = ec.generate_private_key(ec.SECP256R1())
    credentials.create(
        CredentialRecord(
            subject_id="u1",
            credential_id=b"\x07" * 32,
            public_key=protocol.encode_public_key(ES256.from_cryptography_key(private_key.public_key())),
            sign_count=0,
        )
    )
    challenge = issuer.issue("u1", CeremonyKind.AUTHENTICATION, now=fixed_now).challenge
    auth_data = AuthenticatorData.create(
        hashlib.sha256(b"evil.example").digest(),
        int(AuthenticatorData.FLAG.UP | AuthenticatorData.FLAG.UV),
        1,
    )
    client_data = CollectedClientData.create(type="webauthn.get", challenge=challenge, origin=settings.origin)
    response = AssertionResponse(
        credential_id=b"\x07" * 32,
        raw_id=b"\x07" * 32,
        credential_type="public-key",
        authenticator_data=bytes(auth_data),
        client_data=bytes(client_data),
        signature=private_key.sign(bytes(auth_data) + client_data.hash, ec.ECDSA(hashes.SHA256())),
    )

    with pytest.raises(RPIDMismatchError):
        ceremonies.verify("u1", response, challenge)
    assert "u1" not in challenges.slots
    assert credentials.get_by_credential_id(b"\x07" * 32).sign_count == 0


def test_expired_challenge(ceremonies, settings, fixed_now):
    ceremonies.register("u1")
    response, challenge = ceremonies.assertion("u1")

    with pytest.raises(ChallengeExpiredError):
        ceremonies.verify(
            "u1", response, challenge, now=fixed_now + timedelta(seconds=settings.challenge_ttl_seconds + 1)
        )


def test_user_handle_of_someone_else(ceremonies):
    ceremonies.register("u1")
    response, challenge = ceremonies.assertion("u1")

    with pytest.raises(MalformedAssertionError):
        ceremonies.verify("u1", replace(response, user_handle=b"u2"), challenge)


def test_registration_challenge_cannot_be_used_to_authenticate(ceremonies, issuer, fixed_now):
    ceremonies.register("u1", "EMP-A")
    response, _ = ceremonies.assertion("u1", "EMP-A")
    registration = issuer.issue("u1", CeremonyKind.REGISTRATION, "EMP-C", now=fixed_now)

    with pytest.raises(ChallengeMismatchError):
        ceremonies.verify("u1", response, registration.challenge, "EMP-A")


class _RacingCredentials:
    """Counter CAS that always loses, as if another verification won first."""

    def __init__(self, inner):
        self._inner = inner

    def __getattr__(self, name):
        return getattr(self._inner, name)

    def update_sign_count(self, credential_id, *, expected, new, used_at):
        return False


def test_lost_counter_race_is_possible_clone(ceremonies, credentials, fixed_now):
    record = ceremonies.register("u1")
    response, challenge = ceremonies.assertion("u1")
    verifier = AssertionVerifier(ceremonies.container.challenge_issuer, _RacingCredentials(credentials))

    with pytest.raises(PossibleCloneDetectedError):
        verifier.verify_assertion("u1", response, challenge, now=fixed_now)
    assert credentials.get_by_credential_id(record.credential_id).flagged_at == fixed_now


def test_concurrent_verification_of_one_assertion_succeeds_once(ceremonies):
    ceremonies.register("u1")
    response, challenge = ceremonies.assertion("u1")
    outcomes = []
    start = threading.Barrier(4)

    def attempt():
        start.wait()
        try:
            outcomes.append(ceremonies.verify("u1", response, challenge))
        except ChallengeMismatchError:
            outcomes.append(False)

    threads = [threading.Thread(target=attempt) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(outcomes) == [False, False, False, True]


def test_employee_deactivated_after_registration(ceremonies, employees, challenges, credentials):
    record = ceremonies.register("u1", "EMP-A")
    response, challenge = ceremonies.assertion("u1", "EMP-A")
    employees.employees_by_id["EMP-A"] = replace(employees.employees_by_id["EMP-A"], status=EmployeeStatus.INACTIVE)

    with pytest.raises(NotAuthorizedForEntityError):
        ceremonies.verify("u1", response, challenge, "EMP-A")

    assert "u1" not in challenges.slots
    assert credentials.get_by_credential_id(record.credential_id).sign_count == 0
