from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from typing import Optional

from .attendance.factory import AttendanceStrategyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceService
from .common.datetime_utils import parse_clock_time
from .core.constants import DEFAULT_TIME_IN_LATE_THRESHOLD
from .database.connection import DBConfig, DatabaseConnection
from .employees.mysql_employee_repository import MySQLEmployeeRepository
from .users.mysql_user_repository import MySQLUserRepository
from .webauthn.assertion_service import AssertionVerifier
from .webauthn.challenge_service import ChallengeIssuer
from .webauthn.mysql_challenge_repository import MySQLChallengeRepository
from .webauthn.mysql_credential_repository import MySQLCredentialRepository
from .webauthn.registration_service import RegistrationVerifier
from .webauthn.settings import WebAuthnSettings


@dataclass(frozen=True)
class Container:
    challenge_issuer: ChallengeIssuer
    registration_verifier: RegistrationVerifier
    assertion_verifier: AssertionVerifier
    attendance_service: AttendanceService

    conn: Optional[DatabaseConnection] = None


def build_services(
    *,
    users,
    employees,
    credentials,
    challenges,
    attendance,
    webauthn_settings: WebAuthnSettings,
    late_threshold: time,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Wire services over any repository implementations (MySQL or in-memory)."""
    challenge_issuer = ChallengeIssuer(users, employees, credentials, challenges, webauthn_settings)
    return Container(
        challenge_issuer=challenge_issuer,
        registration_verifier=RegistrationVerifier(challenge_issuer, credentials),
        assertion_verifier=AssertionVerifier(challenge_issuer, credentials),
        attendance_service=AttendanceService(
            attendance,
            employees,
            strategy_factory=AttendanceStrategyFactory(late_threshold=late_threshold),
        ),
        conn=conn,
    )


def build_container(
    *,
    db_config: dict,
    webauthn_settings: WebAuthnSettings,
    late_threshold: str = DEFAULT_TIME_IN_LATE_THRESHOLD,
) -> Container:
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
    )
    conn = DatabaseConnection.get_instance(config)

    return build_services(
        users=MySQLUserRepository(conn),
        employees=MySQLEmployeeRepository(conn),
        credentials=MySQLCredentialRepository(conn),
        challenges=MySQLChallengeRepository(conn),
        attendance=MySQLAttendanceRepository(conn),
        webauthn_settings=webauthn_settings,
        late_threshold=parse_clock_time(late_threshold),
        conn=conn,
    )
