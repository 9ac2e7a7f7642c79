from __future__ import annotations

from dataclasses import dataclass

ROLE_ADMIN = "admin"
ROLE_ACCOUNTANT = "accountant"
ROLE_SALE = "sale"
ROLE_WAREHOUSE = "warehouse"
ROLES = (ROLE_ADMIN, ROLE_ACCOUNTANT, ROLE_SALE, ROLE_WAREHOUSE)


@dataclass(frozen=True)
class Actor:
    """Acting user resolved by the upstream authentication layer."""
    user_id: str | None
    role: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


SYSTEM_ACTOR = Actor(user_id=None, role=ROLE_ADMIN)
