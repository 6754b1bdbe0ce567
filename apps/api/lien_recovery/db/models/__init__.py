"""SQLAlchemy ORM models."""

from lien_recovery.db.models.auth import RecordCounter, User
from lien_recovery.db.models.records import Record, RecordAssignmentHistory, RecordComment

__all__ = [
    "Record",
    "RecordAssignmentHistory",
    "RecordComment",
    "RecordCounter",
    "User",
]
