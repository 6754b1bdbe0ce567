"""Pydantic schemas for timeline comments."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from lien_recovery.db.enums import CommentStatus
from lien_recovery.schemas.user import UserRef
from lien_recovery.utils.business_time import parse_hhmm


class CheckCopy(BaseModel):
    """Scanned check attached to a payment_received comment."""

    file_name: str = Field(..., max_length=255)
    mime_type: str = Field(..., max_length=100)
    base64: str = ""


class CommentCreate(BaseModel):
    """Request schema for adding a comment to a record's timeline."""

    text: str = Field(..., min_length=1, max_length=10000)
    status: CommentStatus
    scheduled_date: date | None = None
    scheduled_time: str | None = None
    offer_amount: Decimal | None = None

    # Payment received details
    check_number: str | None = Field(None, max_length=100)
    check_date: date | None = None
    check_amount: Decimal | None = None
    check_copy: CheckCopy | None = None

    @field_validator("text")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Comment text cannot be blank")
        return v

    @field_validator("scheduled_time")
    @classmethod
    def validate_scheduled_time(cls, v: str | None) -> str | None:
        """Wall-clock "HH:MM" (24h) in the business time zone."""
        if v is None or v.strip() == "":
            return None
        parsed = parse_hhmm(v)  # Raises ValueError on invalid
        return parsed.strftime("%H:%M")


class CommentUpdate(BaseModel):
    is_completed: bool


class CommentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    text: str
    status: CommentStatus
    author: UserRef | None = None
    scheduled_date: date | None = None
    scheduled_time: str | None = None
    offer_amount: Decimal | None = None

    check_number: str | None = None
    check_date: date | None = None
    check_amount: Decimal | None = None
    check_copy: dict[str, Any] | None = None

    is_completed: bool = False
    completed_at: datetime | None = None

    is_from_merged_record: bool = False
    source_record_id: UUID | None = None
    source_comment_id: UUID | None = None
    source_record_snapshot: dict[str, Any] | None = None
    merged_at: datetime | None = None

    created_at: datetime
    updated_at: datetime
