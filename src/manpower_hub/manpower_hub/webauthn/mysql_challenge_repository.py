from __future__ import annotations

from typing import Optional

from ..core.enums import CeremonyKind
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, normalize_mysql_bytes
from .model import PendingChallenge
from .repository import ChallengeRepository


class MySQLChallengeRepository(ChallengeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def put(self, pending: PendingChallenge) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                REPLACE INTO webauthn_challenges(subject_id, ceremony_kind, challenge, scope_entity_id, issued_at)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (
                    pending.subject_id,
                    pending.kind.value,
                    pending.challenge,
                    pending.scope_entity_id,
                    pending.issued_at,
                ),
            )

    def pop(self, subject_id: str) -> Optional[PendingChallenge]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT subject_id, ceremony_kind, challenge, scope_entity_id, issued_at
                FROM webauthn_challenges
                WHERE subject_id=%s
                FOR UPDATE
                """,
                (subject_id,),
            )
            r = fetchone(cur)
            if not r:
                return None
            cur.execute("DELETE FROM webauthn_challenges WHERE subject_id=%s", (subject_id,))
            return PendingChallenge(
                subject_id=str(r["subject_id"]),
                kind=CeremonyKind(r["ceremony_kind"]),
                challenge=normalize_mysql_bytes(r["challenge"]),
                issued_at=r["issued_at"],
                scope_entity_id=r.get("scope_entity_id"),
            )

    def discard(self, subject_id: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM webauthn_challenges WHERE subject_id=%s", (subject_id,))
