from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Optional
from urllib.parse import urlsplit

import pytest

from src.manpower_hub.manpower_hub.attendance.model import AttendanceRecord
from src.manpower_hub.manpower_hub.client.authenticator import GetAssertionRequest, MakeCredentialRequest
from src.manpower_hub.manpower_hub.client.http import CeremonyApi
from src.manpower_hub.manpower_hub.client.soft_authenticator import SoftwareAuthenticator
from src.manpower_hub.manpower_hub.common.datetime_utils import parse_clock_time
from src.manpower_hub.manpower_hub.common.encoding import b64url_decode
from src.manpower_hub.manpower_hub.container import build_services
from src.manpower_hub.manpower_hub.core.constants import CREDENTIAL_TYPE
from src.manpower_hub.manpower_hub.core.enums import AttendanceStatus, EmployeeStatus, Role
from src.manpower_hub.manpower_hub.core.exceptions import DuplicateCredentialError
from src.manpower_hub.manpower_hub.employees.model import Employee
from src.manpower_hub.manpower_hub.users.model import User
from src.manpower_hub.manpower_hub.webauthn.model import AssertionResponse, CredentialRecord, RegistrationResponse
from src.manpower_hub.manpower_hub.webauthn.settings import WebAuthnSettings

ORIGIN = "http://localhost:5000"
RP_ID = "localhost"


@dataclass
class InMemoryUsers:
    users_by_id: dict[str, User]

    def get_by_id(self, user_id: str) -> Optional[User]:
        return self.users_by_id.get(user_id)


@dataclass
class InMemoryEmployees:
    employees_by_id: dict[str, Employee]

    def get_by_id(self, employee_id: str) -> Optional[Employee]:
        return self.employees_by_id.get(employee_id)


class InMemoryCredentials:
    def __init__(self):
        self._by_id: dict[bytes, CredentialRecord] = {}
        self._lock = threading.Lock()

    def create(self, record: CredentialRecord) -> None:
        with self._lock:
            if record.credential_id in self._by_id:
                raise DuplicateCredentialError("credential id already registered")
            self._by_id[record.credential_id] = record

    def get_by_credential_id(self, credential_id: bytes) -> Optional[CredentialRecord]:
        return self._by_id.get(bytes(credential_id))

    def list_for_subject(self, subject_id: str):
        return [r for r in self._by_id.values() if r.subject_id == subject_id]

    def update_sign_count(self, credential_id: bytes, *, expected: int, new: int, used_at: datetime) -> bool:
        with self._lock:
            rec = self._by_id.get(bytes(credential_id))
            if rec is None or rec.sign_count != expected:
                return False
            self._by_id[rec.credential_id] = replace(rec, sign_count=new, last_used_at=used_at)
            return True

    def flag_for_review(self, credential_id: bytes, *, reason: str, flagged_at: datetime) -> bool:
        with self._lock:
            rec = self._by_id.get(bytes(credential_id))
            if rec is None:
                return False
            self._by_id[rec.credential_id] = replace(rec, flagged_at=flagged_at, flag_reason=reason)
            return True


class InMemoryChallenges:
    def __init__(self):
        self.slots = {}
        self._lock = threading.Lock()

    def put(self, pending) -> None:
        with self._lock:
            self.slots[pending.subject_id] = pending

    def pop(self, subject_id: str):
        with self._lock:
            return self.slots.pop(subject_id, None)

    def discard(self, subject_id: str) -> None:
        with self._lock:
            self.slots.pop(subject_id, None)


class InMemoryAttendance:
    def __init__(self):
        self.by_employee_date: dict[tuple[str, date], AttendanceRecord] = {}
        self._id = 0

    def get_for_employee_and_date(self, employee_id: str, work_date: date) -> Optional[AttendanceRecord]:
        return self.by_employee_date.get((employee_id, work_date))

    def create_time_in(self, *, employee_id: str, work_date: date, check_in: datetime, status: AttendanceStatus) -> int:
        self._id += 1
        self.by_employee_date[(employee_id, work_date)] = AttendanceRecord(
            attendance_id=self._id,
            employee_id=employee_id,
            work_date=work_date,
            check_in=check_in,
            check_out=None,
            status=status,
        )
        return self._id

    def update_time_out(self, *, attendance_id: int, check_out: datetime, status: AttendanceStatus) -> bool:
        for key, rec in self.by_employee_date.items():
            if rec.attendance_id == attendance_id and rec.check_out is None:
                self.by_employee_date[key] = replace(rec, check_out=check_out, status=status)
                return True
        return False


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 3, 2, 8, 15, 0)


@pytest.fixture
def settings() -> WebAuthnSettings:
    return WebAuthnSettings(rp_id=RP_ID, rp_name="Manpower Hub", origin=ORIGIN)


@pytest.fixture
def users() -> InMemoryUsers:
    return InMemoryUsers(
        {
            "u1": User(user_id="u1", email="maria@example.com", full_name="Maria Santos", role=Role.EMPLOYEE),
            "u2": User(user_id="u2", email="jose@example.com", full_name="Jose Cruz", role=Role.EMPLOYEE),
            "off": User(user_id="off", email="off@example.com", full_name=None, role=Role.EMPLOYEE, is_active=False),
        }
    )


@pytest.fixture
def employees() -> InMemoryEmployees:
    return InMemoryEmployees(
        {
            "EMP-A": Employee(employee_id="EMP-A", full_name="Maria Santos", user_id="u1", email=None, dept_id=1),
            "EMP-B": Employee(employee_id="EMP-B", full_name="Jose Cruz", user_id="u2", email=None, dept_id=1),
            "EMP-C": Employee(employee_id="EMP-C", full_name="Maria Santos", user_id="u1", email=None, dept_id=2),
            "EMP-X": Employee(
                employee_id="EMP-X",
                full_name="Former Staff",
                user_id="u2",
                email=None,
                dept_id=None,
                status=EmployeeStatus.INACTIVE,
            ),
        }
    )


@pytest.fixture
def credentials() -> InMemoryCredentials:
    return InMemoryCredentials()


@pytest.fixture
def challenges() -> InMemoryChallenges:
    return InMemoryChallenges()


@pytest.fixture
def attendance_repo() -> InMemoryAttendance:
    return InMemoryAttendance()


@pytest.fixture
def container(users, employees, credentials, challenges, attendance_repo, settings):
    return build_services(
        users=users,
        employees=employees,
        credentials=credentials,
        challenges=challenges,
        attendance=attendance_repo,
        webauthn_settings=settings,
        late_threshold=parse_clock_time("08:30:00"),
    )


@pytest.fixture
def issuer(container):
    return container.challenge_issuer


@pytest.fixture
def authenticator() -> SoftwareAuthenticator:
    return SoftwareAuthenticator()


class Ceremonies:
    """Runs issuer -> software authenticator -> verifier in-process."""

    def __init__(self, container, authenticator: SoftwareAuthenticator, now: datetime):
        self.container = container
        self.authenticator = authenticator
        self.now = now

    def attestation(self, subject_id, scope=None, *, origin=ORIGIN, rp_id=None, now=None):
        opts = self.container.challenge_issuer.registration_options(subject_id, scope, now=now or self.now)
        challenge = b64url_decode(opts["challenge"])
        result = self.authenticator.make_credential(
            MakeCredentialRequest(
                rp_id=rp_id or opts["rp"]["id"],
                rp_name=opts["rp"]["name"],
                origin=origin,
                challenge=challenge,
                user_handle=b64url_decode(opts["user"]["id"]),
                user_name=opts["user"]["name"],
                user_display_name=opts["user"]["displayName"],
                algorithms=tuple(p["alg"] for p in opts["pubKeyCredParams"]),
                require_user_verification=False,
            )
        )
        response = RegistrationResponse(
            credential_id=result.credential_id,
            raw_id=result.credential_id,
            credential_type=CREDENTIAL_TYPE,
            attestation_object=result.attestation_object,
            client_data=result.client_data,
        )
        return response, challenge

    def register(self, subject_id, scope=None, *, now=None) -> CredentialRecord:
        response, challenge = self.attestation(subject_id, scope, now=now)
        return self.container.registration_verifier.verify_registration(
            subject_id, response, challenge, scope, now=now or self.now
        )

    def assertion(self, subject_id, scope=None, *, origin=ORIGIN, now=None):
        opts = self.container.challenge_issuer.authentication_options(subject_id, scope, now=now or self.now)
        challenge = b64url_decode(opts["challenge"])
        result = self.authenticator.get_assertion(
            GetAssertionRequest(
                rp_id=opts["rp_id"],
                origin=origin,
                challenge=challenge,
                allow_credentials=tuple(b64url_decode(c["id"]) for c in opts["allow_credentials"]),
                require_user_verification=False,
            )
        )
        response = AssertionResponse(
            credential_id=result.credential_id,
            raw_id=result.credential_id,
            credential_type=CREDENTIAL_TYPE,
            authenticator_data=result.authenticator_data,
            client_data=result.client_data,
            signature=result.signature,
            user_handle=result.user_handle,
        )
        return response, challenge

    def verify(self, subject_id, response, challenge, scope=None, *, now=None) -> bool:
        return self.container.assertion_verifier.verify_assertion(
            subject_id, response, challenge, scope, now=now or self.now
        )


@pytest.fixture
def ceremonies(container, authenticator, fixed_now) -> Ceremonies:
    return Ceremonies(container, authenticator, fixed_now)


class _FlaskResponse:
    """Just enough of ``requests.Response`` for ``CeremonyApi``."""

    def __init__(self, resp):
        self.status_code = resp.status_code
        self.reason = resp.status
        self._body = resp.get_json(silent=True)

    def json(self):
        if self._body is None:
            raise ValueError("no JSON body")
        return self._body


class FlaskSession:
    """Routes ``CeremonyApi`` calls into a Flask test client."""

    def __init__(self, client):
        self._client = client

    def post(self, url, json=None, timeout=None):
        return _FlaskResponse(self._client.post(urlsplit(url).path, json=json))


@pytest.fixture
def app(container, monkeypatch):
    from src.manpower_hub.manpower_hub.main import create_app

    monkeypatch.setenv("APP_ENV", "testing")
    return create_app(container)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def flask_session(client) -> FlaskSession:
    return FlaskSession(client)


@pytest.fixture
def api(flask_session) -> CeremonyApi:
    return CeremonyApi(ORIGIN, session=flask_session)
