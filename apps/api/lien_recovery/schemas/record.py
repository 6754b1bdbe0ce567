"""Pydantic schemas for records."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from lien_recovery.db.enums import (
    CaseStatus,
    DocumentFlag,
    DorFiledBy,
    HearingTime,
    JudgeOrderStatus,
    LienStatus,
    YesNo,
)
from lien_recovery.schemas.comment import CommentRead
from lien_recovery.schemas.user import UserRef


class EntryValue(BaseModel):
    """One slot of a repeatable entry list (claim no, adjuster no, DOI)."""

    model_config = ConfigDict(from_attributes=True)

    value: str = Field(..., min_length=1, max_length=255)

    @field_validator("value")
    @classmethod
    def strip_value(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Entry value cannot be blank")
        return v


def _blank_to_none(v):
    if isinstance(v, str) and v.strip() == "":
        return None
    return v


class RecordFields(BaseModel):
    """Editable descriptive fields shared by create and update payloads."""

    rendering_facility: str | None = Field(None, max_length=255)
    tax_id: str | None = Field(None, max_length=50)
    dob: date | None = None
    ssn: str | None = Field(None, max_length=20)
    employer: str | None = Field(None, max_length=255)

    doi: list[EntryValue] | None = None
    adj_number: list[EntryValue] | None = None
    claim_no: list[EntryValue] | None = None

    bill: Decimal | None = None
    paid: Decimal | None = None
    fds: date | None = None
    lds: date | None = None
    sol_date: date | None = None

    ledger: DocumentFlag | None = None
    hcf: DocumentFlag | None = None
    invoice: DocumentFlag | None = None
    signin_sheet: DocumentFlag | None = None

    insurance: str | None = Field(None, max_length=255)
    adjuster: str | None = Field(None, max_length=255)
    adjuster_phone: str | None = Field(None, max_length=50)
    adjuster_fax: str | None = Field(None, max_length=50)
    adjuster_email: str | None = Field(None, max_length=255)
    defense_attorney: str | None = Field(None, max_length=255)
    defense_attorney_phone: str | None = Field(None, max_length=50)
    defense_attorney_fax: str | None = Field(None, max_length=50)
    defense_attorney_email: str | None = Field(None, max_length=255)

    hearing_status: str | None = Field(None, max_length=100)
    hearing_date: date | None = None
    hearing_time: HearingTime | None = None
    judge_name: str | None = Field(None, max_length=255)
    court_room_link: str | None = None
    judge_phone: str | None = Field(None, max_length=50)
    access_code: str | None = Field(None, max_length=100)
    board_location: str | None = Field(None, max_length=255)
    lien_status: LienStatus | None = None
    case_status: CaseStatus | None = None
    case_date: date | None = None
    cr_amount: Decimal | None = None
    dor_filed_by: DorFiledBy | None = None
    status_4903_8: YesNo | None = None
    pmr_status: YesNo | None = None
    judge_order_status: JudgeOrderStatus | None = None

    @field_validator(
        "lien_status",
        "case_status",
        "hearing_time",
        "dor_filed_by",
        "status_4903_8",
        "pmr_status",
        "judge_order_status",
        mode="before",
    )
    @classmethod
    def empty_enum_is_none(cls, v):
        """Spreadsheets and forms send "" for an unset dropdown."""
        return _blank_to_none(v)


class RecordCreate(RecordFields):
    """Request schema for creating a record."""

    provider: str = Field(..., min_length=1, max_length=255)
    pt_name: str = Field(..., min_length=1, max_length=255)
    # Optional pre-assignment (bulk import)
    assigned_collector_id: UUID | None = None

    @field_validator("provider", "pt_name")
    @classmethod
    def strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Value cannot be blank")
        return v


class RecordUpdate(RecordFields):
    """Request schema for updating a record (partial)."""

    provider: str | None = Field(None, min_length=1, max_length=255)
    pt_name: str | None = Field(None, min_length=1, max_length=255)

    @field_validator("provider", "pt_name")
    @classmethod
    def strip_optional(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("Value cannot be blank")
        return v


class AssignRequest(BaseModel):
    """Collector id, or "unassigned" to clear the queue assignment."""

    collector_id: str = Field(..., min_length=1)


class ReassignManyRequest(BaseModel):
    record_ids: list[str] = Field(..., min_length=1, max_length=500)
    collector_id: str = Field(..., min_length=1)


class DeleteManyRequest(BaseModel):
    record_ids: list[str] = Field(..., min_length=1, max_length=500)


class BulkResult(BaseModel):
    modified_count: int = 0
    deleted_count: int = 0


class AssignmentHistoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    from_collector: UserRef | None = None
    to_collector: UserRef | None = None
    assigned_by: UserRef | None = None
    assigned_at: datetime


class RecordRead(RecordFields):
    """Full record response, timeline included."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    reference_id: str | None = None
    provider: str
    pt_name: str
    outstanding: Decimal | None = None
    ledger: DocumentFlag = DocumentFlag.NOT_REQUIRED
    hcf: DocumentFlag = DocumentFlag.NOT_REQUIRED
    invoice: DocumentFlag = DocumentFlag.NOT_REQUIRED
    signin_sheet: DocumentFlag = DocumentFlag.NOT_REQUIRED
    doi: list[EntryValue] = []
    adj_number: list[EntryValue] = []
    claim_no: list[EntryValue] = []

    assigned_collector: UserRef | None = None
    assigned_at: datetime | None = None
    assigned_by: UserRef | None = None
    assignment_history: list[AssignmentHistoryRead] = []

    assigned_payment_redeemer: UserRef | None = None
    payment_assigned_at: datetime | None = None
    payment_assigned_by: UserRef | None = None

    comments: list[CommentRead] = []
    # Set for the "history" listing: newest comment by the caller
    last_comment_date: datetime | None = None

    record_created_at: datetime
    created_at: datetime
    updated_at: datetime


class RecordListResponse(BaseModel):
    """Paginated record list."""

    items: list[RecordRead]
    total: int
    page: int
    per_page: int
    pages: int


class AssignmentSummaryItem(BaseModel):
    record_id: UUID
    reference_id: str | None = None
    provider: str
    pt_name: str
    assigned_collector: UserRef | None = None
    assigned_by: UserRef | None = None
    assigned_at: datetime | None = None
    history: list[AssignmentHistoryRead] = []


class ProviderStatusCount(BaseModel):
    status: str
    count: int


class ProviderSummary(BaseModel):
    provider: str
    statuses: list[ProviderStatusCount]
    total_count: int
