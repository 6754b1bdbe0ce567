"""Pydantic schemas for user references."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict


class UserRef(BaseModel):
    """Human-readable pointer to a user, embedded in record responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    full_name: str | None = None
