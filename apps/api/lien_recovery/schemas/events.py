"""Pydantic schemas for calendar events and notifications."""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel

from lien_recovery.schemas.user import UserRef

NotificationKind = Literal["upcoming", "active", "overdue", "assignment"]


class ScheduledEvent(BaseModel):
    """Latest open follow-up of one record, projected for the calendar."""

    record_id: UUID
    comment_id: UUID
    reference_id: str | None = None
    pt_name: str
    text: str
    status: str
    scheduled_date: date
    scheduled_time: str | None = None
    scheduled_at: datetime
    offer_amount: Decimal | None = None
    author: UserRef | None = None
    assigned_collector: UserRef | None = None
    created_at: datetime


class Notification(BaseModel):
    record_id: UUID
    comment_id: UUID | None = None
    pt_name: str
    text: str
    status: str
    scheduled_date: date
    scheduled_time: str | None = None
    scheduled_at: datetime
    author: UserRef | None = None
    assigned_collector: UserRef | None = None
    kind: NotificationKind
    is_overdue: bool = False
    is_assignment: bool = False


class OverdueEvent(BaseModel):
    record_id: UUID
    comment_id: UUID
    reference_id: str | None = None
    provider: str
    pt_name: str
    text: str
    status: str
    scheduled_date: date
    scheduled_time: str | None = None
    deadline: datetime
    author: UserRef | None = None
    assigned_collector: UserRef | None = None


class HearingEvent(BaseModel):
    record_id: UUID
    reference_id: str | None = None
    provider: str
    pt_name: str
    adj_number: list[str] = []
    case_status: str | None = None
    hearing_status: str | None = None
    hearing_date: date
    hearing_time: str | None = None
    judge_name: str | None = None
    court_room_link: str | None = None
    judge_phone: str | None = None
    access_code: str | None = None
    board_location: str | None = None
    pmr_status: str | None = None
    dor_filed_by: str | None = None
    status_4903_8: str | None = None
    judge_order_status: str | None = None
    assigned_collector: UserRef | None = None
    last_comment_author: UserRef | None = None
