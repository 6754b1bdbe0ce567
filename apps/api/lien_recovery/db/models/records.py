"""SQLAlchemy ORM models for collection records and their timelines."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
    text as sa_text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lien_recovery.db.base import Base
from lien_recovery.db.enums import DocumentFlag
from lien_recovery.db.types import utcnow

if TYPE_CHECKING:
    from lien_recovery.db.models.auth import User


class Record(Base):
    """
    One patient/claim case worked by the collections team.

    Two independent work queues hang off a record: the collector queue
    (assigned_collector_id, with an append-only history) and the
    payment-redeemer queue entered on a "waiting for payment" comment.
    """

    __tablename__ = "records"
    __table_args__ = (
        Index("idx_records_provider_pt_name", "provider", "pt_name"),
        Index("idx_records_collector_assigned", "assigned_collector_id", "assigned_at"),
        Index(
            "idx_records_redeemer_assigned",
            "assigned_payment_redeemer_id",
            "payment_assigned_at",
        ),
        Index("idx_records_hearing_date", "hearing_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # Nullable so legacy rows can exist before backfill; never updated once set
    reference_id: Mapped[str | None] = mapped_column(String(20), unique=True, nullable=True)

    # Patient information
    provider: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    rendering_facility: Mapped[str | None] = mapped_column(String(255), nullable=True)
    tax_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    pt_name: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    dob: Mapped[date | None] = mapped_column(Date, nullable=True)
    ssn: Mapped[str | None] = mapped_column(String(20), nullable=True)
    employer: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Repeatable entries: [{"value": "..."}], dense and order-preserving
    doi: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    adj_number: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    claim_no: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    # Billing
    bill: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    paid: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    outstanding: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    fds: Mapped[date | None] = mapped_column(Date, nullable=True)
    lds: Mapped[date | None] = mapped_column(Date, nullable=True)
    sol_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Document flags
    ledger: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DocumentFlag.NOT_REQUIRED.value
    )
    hcf: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DocumentFlag.NOT_REQUIRED.value
    )
    invoice: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DocumentFlag.NOT_REQUIRED.value
    )
    signin_sheet: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DocumentFlag.NOT_REQUIRED.value
    )

    # Insurance / adjuster / defense
    insurance: Mapped[str | None] = mapped_column(String(255), nullable=True)
    adjuster: Mapped[str | None] = mapped_column(String(255), nullable=True)
    adjuster_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    adjuster_fax: Mapped[str | None] = mapped_column(String(50), nullable=True)
    adjuster_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    defense_attorney: Mapped[str | None] = mapped_column(String(255), nullable=True)
    defense_attorney_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    defense_attorney_fax: Mapped[str | None] = mapped_column(String(50), nullable=True)
    defense_attorney_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Case & hearing information
    hearing_status: Mapped[str | None] = mapped_column(String(100), nullable=True)
    hearing_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    hearing_time: Mapped[str | None] = mapped_column(String(2), nullable=True)
    judge_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    court_room_link: Mapped[str | None] = mapped_column(Text, nullable=True)
    judge_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    access_code: Mapped[str | None] = mapped_column(String(100), nullable=True)
    board_location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    lien_status: Mapped[str | None] = mapped_column(String(30), index=True, nullable=True)
    case_status: Mapped[str | None] = mapped_column(String(50), index=True, nullable=True)
    case_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    cr_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    dor_filed_by: Mapped[str | None] = mapped_column(String(30), nullable=True)
    status_4903_8: Mapped[str | None] = mapped_column(String(3), nullable=True)
    pmr_status: Mapped[str | None] = mapped_column(String(3), nullable=True)
    judge_order_status: Mapped[str | None] = mapped_column(String(10), nullable=True)

    # Collector queue
    assigned_collector_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    assigned_at: Mapped[datetime | None] = mapped_column(nullable=True)
    assigned_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    # Payment-redeemer queue
    assigned_payment_redeemer_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    payment_assigned_at: Mapped[datetime | None] = mapped_column(nullable=True)
    payment_assigned_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    record_created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    assigned_collector: Mapped["User | None"] = relationship(
        foreign_keys=[assigned_collector_id]
    )
    assigned_by: Mapped["User | None"] = relationship(foreign_keys=[assigned_by_id])
    assigned_payment_redeemer: Mapped["User | None"] = relationship(
        foreign_keys=[assigned_payment_redeemer_id]
    )
    payment_assigned_by: Mapped["User | None"] = relationship(
        foreign_keys=[payment_assigned_by_id]
    )
    comments: Mapped[list["RecordComment"]] = relationship(
        back_populates="record",
        order_by="RecordComment.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    assignment_history: Mapped[list["RecordAssignmentHistory"]] = relationship(
        back_populates="record",
        order_by="RecordAssignmentHistory.id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def adj_number_values(self) -> list[str]:
        return [entry.get("value") for entry in self.adj_number or [] if entry.get("value")]

    @property
    def top_comment(self) -> "RecordComment | None":
        """The head of the timeline (lowest position)."""
        return self.comments[0] if self.comments else None


class RecordComment(Base):
    """
    One timeline entry on a record.

    Ordered by `position` ascending; new comments take min(position) - 1
    so they land at the head. A comment with a scheduled_date that is not
    completed is an open follow-up.

    Comments copied from a merged duplicate keep the original author,
    timestamps and schedule, plus write-once provenance fields.
    """

    __tablename__ = "record_comments"
    __table_args__ = (
        Index("idx_record_comments_position", "record_id", "position"),
        Index("idx_record_comments_open", "record_id", "is_completed", "scheduled_date"),
        Index("idx_record_comments_author", "author_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    record_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("records.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    text: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False)
    author_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    # Follow-up schedule: calendar date + "HH:MM" wall-clock in the business zone
    scheduled_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    scheduled_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    offer_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    # Payment received details
    check_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    check_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    check_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    check_copy: Mapped[dict[str, Any] | None] = mapped_column(
        JSON, nullable=True, comment="{file_name, mime_type, base64}"
    )

    is_completed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=sa_text("FALSE")
    )
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Merge provenance (write-once)
    is_from_merged_record: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=sa_text("FALSE")
    )
    # Source record is deleted after the merge, so no FK
    source_record_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    source_comment_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    source_record_snapshot: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    merged_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)

    record: Mapped["Record"] = relationship(back_populates="comments")
    author: Mapped["User | None"] = relationship()

    @property
    def is_open(self) -> bool:
        return not self.is_completed and self.scheduled_date is not None

    @property
    def merge_key(self) -> str | None:
        if self.source_record_id is None or self.source_comment_id is None:
            return None
        return f"{self.source_record_id}:{self.source_comment_id}"


class RecordAssignmentHistory(Base):
    """Append-only audit trail of collector reassignments."""

    __tablename__ = "record_assignment_history"
    __table_args__ = (Index("idx_assignment_history_record", "record_id", "assigned_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    record_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("records.id", ondelete="CASCADE"), nullable=False
    )
    from_collector_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    to_collector_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    assigned_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    assigned_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    record: Mapped["Record"] = relationship(back_populates="assignment_history")
    from_collector: Mapped["User | None"] = relationship(foreign_keys=[from_collector_id])
    to_collector: Mapped["User | None"] = relationship(foreign_keys=[to_collector_id])
    assigned_by: Mapped["User | None"] = relationship(foreign_keys=[assigned_by_id])
