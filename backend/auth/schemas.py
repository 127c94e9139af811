"""Auth Pydantic schemas — the authenticated actor seen by the engine."""

from __future__ import annotations

import uuid

from pydantic import BaseModel, ConfigDict

from backend.common.constants import PERMISSIONS, UserRole


class Actor(BaseModel):
    """Identity and role of the caller, decoded from the access token.

    Employee profiles are owned by another service; the leave engine only
    needs the id and the role.
    """

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID
    role: UserRole = UserRole.employee

    def has_permission(self, permission: str) -> bool:
        return permission in PERMISSIONS.get(self.role, [])
