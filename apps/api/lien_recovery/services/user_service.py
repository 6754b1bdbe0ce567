"""User lookups for the record engines (identity is owned elsewhere)."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lien_recovery.core.constants import UNASSIGNED
from lien_recovery.db.enums import Role
from lien_recovery.db.models import User
from lien_recovery.services.errors import (
    ConflictError,
    InvalidArgumentError,
    NotFoundError,
    parse_uuid,
)

logger = logging.getLogger(__name__)


def list_users_by_role(db: Session, role: Role) -> list[User]:
    """
    Active users holding a role, in enumeration order.

    Ordered by creation time then id; the payment-redeemer hand-off
    breaks load ties by this order.
    """
    return list(
        db.scalars(
            select(User)
            .where(User.role == role.value, User.is_active.is_(True))
            .order_by(User.created_at, User.id)
        ).all()
    )


def create_user(
    db: Session,
    *,
    username: str,
    full_name: str,
    email: str,
    role: Role | str,
) -> User:
    role_value = role.value if isinstance(role, Role) else role
    if not Role.has_value(role_value):
        raise InvalidArgumentError(f"Unknown role '{role_value}'")

    user = User(
        username=username.strip().lower(),
        full_name=full_name.strip(),
        email=email.strip().lower(),
        role=role_value,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(f"User '{username}' already exists") from None
    db.refresh(user)
    logger.info("User created", extra={"user_id": str(user.id), "role": role_value})
    return user


def resolve_collector(db: Session, collector_id: str | UUID | None) -> User | None:
    """
    Resolve an assignment target.

    None or the "unassigned" sentinel clears the assignment. Otherwise the
    id must name an existing collector.
    """
    if collector_id is None or collector_id == UNASSIGNED:
        return None
    user = db.get(User, parse_uuid(collector_id, "collector id"))
    if user is None:
        raise NotFoundError("Collector not found")
    if user.role != Role.COLLECTOR.value:
        raise InvalidArgumentError("Assigned user must have the collector role")
    return user
