from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import utc_now
from ..core.constants import CLIENT_DATA_TYPE_CREATE, CREDENTIAL_TYPE
from ..core.enums import CeremonyKind
from ..core.exceptions import AlreadyRegisteredError, CeremonyError, MalformedAttestationError
from . import protocol
from .challenge_service import ChallengeIssuer, credentials_in_scope
from .model import CredentialRecord, RegistrationResponse
from .repository import CredentialRepository

logger = logging.getLogger(__name__)


class RegistrationVerifier:
    def __init__(self, issuer: ChallengeIssuer, credentials: CredentialRepository):
        self._issuer = issuer
        self._credentials = credentials

    def verify_registration(
        self,
        subject_id: str,
        response: RegistrationResponse,
        claimed_challenge: bytes,
        scope_entity_id: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> CredentialRecord:
        """Validate an attestation response and persist the new credential.

        Any failure is terminal: the pending challenge is gone afterwards and
        the client has to request new options.
        """
        now = now or utc_now()
        settings = self._issuer.settings
        popped = False
        try:
            if response.credential_type != CREDENTIAL_TYPE:
                raise MalformedAttestationError(f"credential type {response.credential_type!r}")
            if not protocol.bytes_equal(response.credential_id, response.raw_id):
                raise MalformedAttestationError("credential_id and raw_id differ")
            self._issuer.authorize_entity(subject_id, scope_entity_id)

            popped = True
            self._issuer.consume(
                subject_id,
                CeremonyKind.REGISTRATION,
                claimed_challenge,
                scope_entity_id=scope_entity_id,
                now=now,
            )

            client_data = protocol.parse_client_data(response.client_data, MalformedAttestationError)
            protocol.check_client_data(
                client_data,
                expected_type=CLIENT_DATA_TYPE_CREATE,
                claimed_challenge=claimed_challenge,
                settings=settings,
                error_cls=MalformedAttestationError,
            )

            attestation = protocol.parse_attestation_object(response.attestation_object)
            auth_data = attestation.auth_data
            protocol.check_authenticator_data(auth_data, settings=settings, error_cls=MalformedAttestationError)

            attested = auth_data.credential_data
            if attested is None:
                raise MalformedAttestationError("attested credential data missing")
            if not protocol.bytes_equal(attested.credential_id, response.credential_id):
                raise MalformedAttestationError("attested credential id differs from the submitted one")
            protocol.verify_attestation_statement(attestation, client_data.hash)
            public_key = protocol.encode_public_key(attested.public_key)

            if not settings.allow_reregistration and credentials_in_scope(
                self._credentials.list_for_subject(subject_id), scope_entity_id
            ):
                raise AlreadyRegisteredError(f"{subject_id!r} registered a credential meanwhile")

            record = CredentialRecord(
                subject_id=subject_id,
                credential_id=bytes(attested.credential_id),
                public_key=public_key,
                sign_count=int(auth_data.counter),
                bound_entity_id=scope_entity_id,
                aaguid=bytes(attested.aaguid),
                attestation_format=str(attestation.fmt),
                created_at=now,
            )
            self._credentials.create(record)
        except CeremonyError as e:
            if not popped:
                self._issuer.discard(subject_id)
            log = logger.warning if e.security_event else logger.info
            log("registration rejected subject=%s scope=%s code=%s: %s", subject_id, scope_entity_id, e.code, e)
            raise

        logger.info(
            "registered credential subject=%s scope=%s fmt=%s counter=%d",
            subject_id,
            scope_entity_id,
            record.attestation_format,
            record.sign_count,
        )
        return record
