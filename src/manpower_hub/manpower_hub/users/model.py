from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: an account (the subject of biometric ceremonies).

    Plain data object, no DB access in here.
    """

    user_id: str
    email: str
    full_name: Optional[str]
    role: Role
    is_active: bool = True

    @property
    def display_name(self) -> str:
        return self.full_name or self.email
