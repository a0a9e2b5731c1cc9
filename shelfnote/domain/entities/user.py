"""Domain entity representing a library user."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

ROLE_ADMIN = "admin"
ROLE_MEMBER = "member"


@dataclass
class User:
    """Core attributes of a user that the notification core relies on."""

    id: UUID
    name: str
    email: str
    role: str
    created_at: datetime
    is_active: bool = True
    deleted: bool = False

    def has_role(self, alias: str) -> bool:
        """Return ``True`` when the user's role matches ``alias``."""

        return self.role.lower() == alias.lower()

    def is_admin(self) -> bool:
        """Return ``True`` when the user is an administrator."""

        return self.has_role(ROLE_ADMIN)
