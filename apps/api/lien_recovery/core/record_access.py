"""Record access control - centralized permission checks for single-record operations.

Access rules:
- Admin / Super Admin and back-office staff: every record
- Collector: records assigned to them, or records they have commented on
- Payment Redeemer: records in their payment queue
- Provider: only records filed under their own name (trimmed, case-insensitive)

Mutations (update, comment, assign) by a Provider additionally require the
provider-name match; an empty provider identity never matches.
"""

from __future__ import annotations

from typing import Iterable, TypeVar

from lien_recovery.db.enums import REDACTED_COMMENT_STATUSES, Role
from lien_recovery.db.models import Record
from lien_recovery.schemas.auth import Actor
from lien_recovery.services.errors import ForbiddenError
from lien_recovery.utils.normalization import identities_match

T = TypeVar("T")

# Roles that never see payment details on the timeline
PAYMENT_REDACTED_ROLES = frozenset(
    {Role.COLLECTOR, Role.HEARING_REPRESENTATIVE, Role.PROVIDER}
)

_REDACTED_STATUS_VALUES = frozenset(status.value for status in REDACTED_COMMENT_STATUSES)


def _status_value(comment) -> str:
    status = comment.status
    return status.value if hasattr(status, "value") else status


def visible_comments(comments: Iterable[T], role: Role | str) -> list[T]:
    """
    Filter a timeline for the caller's role.

    Read-time redaction only; storage keeps every comment.
    """
    role_value = role.value if hasattr(role, "value") else role
    if role_value not in {r.value for r in PAYMENT_REDACTED_ROLES}:
        return list(comments)
    return [c for c in comments if _status_value(c) not in _REDACTED_STATUS_VALUES]


def check_provider_ownership(record: Record, actor: Actor) -> None:
    """Providers may only touch records filed under their own name."""
    if actor.role != Role.PROVIDER:
        return
    if not actor.identity:
        raise ForbiddenError("Provider identity is not set")
    if not identities_match(actor.identity, record.provider):
        raise ForbiddenError("You can only access records for your own provider")


def check_record_access(record: Record, actor: Actor) -> None:
    """
    Check if the actor can read this record.

    Raises:
        ForbiddenError: if access denied
    """
    if actor.role == Role.PROVIDER:
        check_provider_ownership(record, actor)
        return

    if actor.role == Role.COLLECTOR:
        if record.assigned_collector_id == actor.user_id:
            return
        if any(c.author_id == actor.user_id for c in record.comments):
            return
        raise ForbiddenError("Record is not assigned to you")

    if actor.role == Role.PAYMENT_REDEEMER:
        if record.assigned_payment_redeemer_id == actor.user_id:
            return
        raise ForbiddenError("Record is not in your payment queue")

