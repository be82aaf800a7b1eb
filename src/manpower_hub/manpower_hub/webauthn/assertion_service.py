from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import utc_now
from ..common.encoding import user_handle_for
from ..core.constants import CLIENT_DATA_TYPE_GET, CREDENTIAL_TYPE
from ..core.enums import CeremonyKind
from ..core.exceptions import (
    CeremonyError,
    MalformedAssertionError,
    NotAuthorizedForEntityError,
    NotFoundError,
    PossibleCloneDetectedError,
)
from . import protocol
from .challenge_service import ChallengeIssuer
from .model import AssertionResponse, CredentialRecord
from .repository import CredentialRepository

logger = logging.getLogger(__name__)


class AssertionVerifier:
    def __init__(self, issuer: ChallengeIssuer, credentials: CredentialRepository):
        self._issuer = issuer
        self._credentials = credentials

    def verify_assertion(
        self,
        subject_id: str,
        response: AssertionResponse,
        claimed_challenge: bytes,
        scope_entity_id: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> bool:
        """Check an assertion and advance the credential's counter.

        Returns True or raises; there is no partial success. Order matters:
        lookup, scope, challenge, client data, authenticator data, signature
        and only then the counter, so a forged response can never move it.
        """
        now = now or utc_now()
        settings = self._issuer.settings
        popped = False
        record: Optional[CredentialRecord] = None
        try:
            if response.credential_type != CREDENTIAL_TYPE:
                raise MalformedAssertionError(f"credential type {response.credential_type!r}")

            record = self._credentials.get_by_credential_id(response.credential_id)
            if record is None or record.subject_id != subject_id:
                raise NotFoundError("credential not registered for this subject")
            if not protocol.bytes_equal(response.raw_id, response.credential_id):
                raise MalformedAssertionError("credential_id and raw_id differ")
            self._issuer.authorize_entity(subject_id, scope_entity_id)

            if scope_entity_id is not None and record.bound_entity_id != scope_entity_id:
                raise NotAuthorizedForEntityError(
                    f"credential bound to {record.bound_entity_id!r}, requested for {scope_entity_id!r}"
                )

            popped = True
            self._issuer.consume(
                subject_id,
                CeremonyKind.AUTHENTICATION,
                claimed_challenge,
                scope_entity_id=scope_entity_id,
                now=now,
            )

            client_data = protocol.parse_client_data(response.client_data, MalformedAssertionError)
            protocol.check_client_data(
                client_data,
                expected_type=CLIENT_DATA_TYPE_GET,
                claimed_challenge=claimed_challenge,
                settings=settings,
                error_cls=MalformedAssertionError,
            )
            auth_data = protocol.parse_authenticator_data(response.authenticator_data, MalformedAssertionError)
            protocol.check_authenticator_data(auth_data, settings=settings, error_cls=MalformedAssertionError)

            if response.user_handle is not None and not protocol.bytes_equal(
                response.user_handle, user_handle_for(subject_id)
            ):
                raise MalformedAssertionError("user handle does not belong to the subject")

            protocol.verify_signature(
                record.public_key,
                bytes(response.authenticator_data) + client_data.hash,
                response.signature,
            )

            new_count = int(auth_data.counter)
            if record.sign_count != 0 and new_count <= record.sign_count:
                raise PossibleCloneDetectedError(f"counter {new_count} not above stored {record.sign_count}")

            if not self._credentials.update_sign_count(
                record.credential_id, expected=record.sign_count, new=new_count, used_at=now
            ):
                raise PossibleCloneDetectedError("counter advanced concurrently by another assertion")
        except CeremonyError as e:
            if not popped:
                self._issuer.discard(subject_id)
            if isinstance(e, PossibleCloneDetectedError) and record is not None:
                self._credentials.flag_for_review(record.credential_id, reason=str(e), flagged_at=now)
            log = logger.warning if e.security_event else logger.info
            log("assertion rejected subject=%s scope=%s code=%s: %s", subject_id, scope_entity_id, e.code, e)
            raise

        logger.info("assertion verified subject=%s scope=%s counter=%d", subject_id, scope_entity_id, new_count)
        return True
