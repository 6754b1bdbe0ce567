"""SQLAlchemy ORM models for users and counters."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import BigInteger, Boolean, Integer, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from lien_recovery.db.base import Base
from lien_recovery.db.enums import Role
from lien_recovery.db.types import utcnow


class User(Base):
    """
    A staff member or provider account.

    Only identity and role matter to the case engine; credentials are
    managed by the identity provider.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    username: Mapped[str] = mapped_column(String(150), unique=True, index=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    role: Mapped[str] = mapped_column(
        String(30), nullable=False, server_default=text(f"'{Role.COLLECTOR.value}'")
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("TRUE")
    )
    # Bumped to revoke every outstanding session token
    token_version: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1, server_default=text("1")
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    @property
    def display_name(self) -> str:
        return self.full_name or self.username


class RecordCounter(Base):
    """
    Named monotonic counter for sequential identifiers (reference ids).

    Incremented with INSERT...ON CONFLICT so concurrent writers never
    draw the same value.
    """

    __tablename__ = "record_counters"

    name: Mapped[str] = mapped_column(String(50), primary_key=True)
    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)
