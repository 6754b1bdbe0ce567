"""Authentication-related Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel

from lien_recovery.db.enums import ADMIN_ROLES, Role


class TokenPayload(BaseModel):
    """Decoded JWT payload structure."""
    sub: UUID  # user_id
    role: str
    token_version: int


class Actor(BaseModel):
    """
    Resolved identity of the caller.

    The record engines never authenticate; they branch on `role` and
    compare `identity` against record fields (provider matching).
    """
    user_id: UUID
    role: Role
    full_name: str | None = None
    username: str | None = None

    @property
    def identity(self) -> str:
        return (self.full_name or self.username or "").strip()

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES
