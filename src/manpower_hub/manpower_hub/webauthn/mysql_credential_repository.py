from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from mysql.connector import errorcode
from mysql.connector.errors import IntegrityError

from ..core.exceptions import DuplicateCredentialError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_bytes
from .model import CredentialRecord
from .repository import CredentialRepository

_COLUMNS = """
    subject_id, credential_id, public_key, sign_count, bound_entity_id,
    aaguid, attestation_format, created_at, last_used_at, flagged_at, flag_reason
"""


def _to_record(r: dict) -> CredentialRecord:
    return CredentialRecord(
        subject_id=str(r["subject_id"]),
        credential_id=normalize_mysql_bytes(r["credential_id"]),
        public_key=normalize_mysql_bytes(r["public_key"]),
        sign_count=int(r.get("sign_count") or 0),
        bound_entity_id=r.get("bound_entity_id"),
        aaguid=normalize_mysql_bytes(r.get("aaguid")),
        attestation_format=r.get("attestation_format") or "none",
        created_at=r.get("created_at"),
        last_used_at=r.get("last_used_at"),
        flagged_at=r.get("flagged_at"),
        flag_reason=r.get("flag_reason"),
    )


class MySQLCredentialRepository(CredentialRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, record: CredentialRecord) -> None:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO webauthn_credentials(
                        subject_id, credential_id, public_key, sign_count, bound_entity_id,
                        aaguid, attestation_format, created_at
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        record.subject_id,
                        record.credential_id,
                        record.public_key,
                        int(record.sign_count),
                        record.bound_entity_id,
                        record.aaguid,
                        record.attestation_format,
                        record.created_at,
                    ),
                )
        except IntegrityError as e:
            if e.errno == errorcode.ER_DUP_ENTRY:
                raise DuplicateCredentialError("credential id already registered") from e
            raise

    def get_by_credential_id(self, credential_id: bytes) -> Optional[CredentialRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM webauthn_credentials WHERE credential_id=%s",
                (bytes(credential_id),),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def list_for_subject(self, subject_id: str) -> Sequence[CredentialRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM webauthn_credentials
                WHERE subject_id=%s
                ORDER BY created_at ASC, id ASC
                """,
                (subject_id,),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def update_sign_count(self, credential_id: bytes, *, expected: int, new: int, used_at: datetime) -> bool:
        # The WHERE on the old value makes this a compare-and-swap: of two
        # concurrent verifications read against the same counter only one matches.
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE webauthn_credentials
                SET sign_count=%s, last_used_at=%s
                WHERE credential_id=%s AND sign_count=%s
                """,
                (int(new), used_at, bytes(credential_id), int(expected)),
            )
            return cur.rowcount > 0

    def flag_for_review(self, credential_id: bytes, *, reason: str, flagged_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE webauthn_credentials
                SET flagged_at=%s, flag_reason=%s
                WHERE credential_id=%s
                """,
                (flagged_at, reason[:255], bytes(credential_id)),
            )
            return cur.rowcount > 0
