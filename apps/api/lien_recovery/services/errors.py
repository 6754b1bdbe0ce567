"""Service-layer exceptions shared by the record engines."""

from __future__ import annotations

from uuid import UUID


class RecordServiceError(Exception):
    """Base exception for record service errors."""

    pass


class InvalidArgumentError(RecordServiceError):
    """Malformed id, missing required field, bad enum value or oversized attachment."""

    pass


class ForbiddenError(RecordServiceError):
    """Role or ownership violation."""

    pass


class NotFoundError(RecordServiceError):
    """Referenced record or user does not exist."""

    pass


class ConflictError(RecordServiceError):
    """Unique constraint collision that survived the internal retry."""

    pass


def parse_uuid(value: str | UUID, label: str = "id") -> UUID:
    """Parse a UUID or raise InvalidArgumentError naming the offending field."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        raise InvalidArgumentError(f"Invalid {label}: {value}") from None


def parse_uuids(values: list[str | UUID], label: str = "id") -> list[UUID]:
    return [parse_uuid(value, label) for value in values]
