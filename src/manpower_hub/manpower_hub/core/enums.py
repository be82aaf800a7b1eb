from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Account role of a principal."""

    ADMIN = "admin"
    EMPLOYEE = "employee"


class EmployeeStatus(str, Enum):
    ACTIVE = "Active"
    PENDING = "Pending"
    INACTIVE = "Inactive"


class AttendanceStatus(str, Enum):
    """Normalized attendance status stored in the database."""

    PRESENT = "PRESENT"
    LATE = "LATE"
    ABSENT = "ABSENT"


class CeremonyKind(str, Enum):
    """Which WebAuthn ceremony a pending challenge belongs to."""

    REGISTRATION = "registration"
    AUTHENTICATION = "authentication"


class UserVerification(str, Enum):
    REQUIRED = "required"
    PREFERRED = "preferred"
    DISCOURAGED = "discouraged"
