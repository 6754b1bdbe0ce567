"""CSV and Excel import service for bulk record creation.

Features:
- .csv (UTF-8, BOM tolerated) and .xlsx (first worksheet) uploads
- Declarative header -> field resolution (one FIELD_SPECS table)
- Currency, date and enum canonicalization per column
- Repeatable columns (claimNo.1, adjNumber.2, doi.3 ...) compacted into lists
- Per-row failures reported without aborting the batch
"""

from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable
from uuid import UUID
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from pydantic import ValidationError
from sqlalchemy.orm import Session

from lien_recovery.db.enums import (
    CaseStatus,
    DocumentFlag,
    DorFiledBy,
    HearingTime,
    JudgeOrderStatus,
    LienStatus,
    YesNo,
)
from lien_recovery.schemas.auth import Actor
from lien_recovery.schemas.imports import ImportFailure, ImportResult
from lien_recovery.schemas.record import RecordCreate
from lien_recovery.services import record_service
from lien_recovery.services.errors import InvalidArgumentError, RecordServiceError
from lien_recovery.utils.currency import parse_currency
from lien_recovery.utils.normalization import clean_text, normalize_header, to_entries

logger = logging.getLogger(__name__)


# =============================================================================
# Value parsers
# =============================================================================

DATE_FORMATS: list[str] = [
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%m-%d-%Y",
    "%m/%d/%y",
    "%m-%d-%y",
]


def parse_text(value: str) -> str | None:
    return clean_text(value)


def parse_date(value: str) -> date | None:
    """Accept ISO dates, US month/day/year, and ISO datetimes."""
    text = clean_text(value)
    if text is None:
        return None
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        raise ValueError(f"Unrecognized date '{text}'") from None


def parse_amount(value: str):
    return parse_currency(value)


def enum_parser(enum_cls: type[Enum]) -> Callable[[str], str | None]:
    """Canonicalize a value against an enum, case-insensitively.

    Unknown values pass through unchanged so validation reports them.
    """
    lookup = {member.value.lower(): member.value for member in enum_cls}

    def parse(value: str) -> str | None:
        text = clean_text(value)
        if text is None:
            return None
        return lookup.get(text.lower(), text)

    return parse


@dataclass(frozen=True)
class FieldSpec:
    field: str
    parse: Callable[[str], Any]


def _spec(field: str, parse: Callable[[str], Any] = parse_text) -> FieldSpec:
    return FieldSpec(field=field, parse=parse)


# Normalized header (lower-case, no whitespace) -> field
FIELD_SPECS: dict[str, FieldSpec] = {
    "provider": _spec("provider"),
    "renderingfacility": _spec("rendering_facility"),
    "taxid": _spec("tax_id"),
    "ptname": _spec("pt_name"),
    "dob": _spec("dob", parse_date),
    "ssn": _spec("ssn"),
    "employer": _spec("employer"),
    "insurance": _spec("insurance"),
    "bill": _spec("bill", parse_amount),
    "paid": _spec("paid", parse_amount),
    "fds": _spec("fds", parse_date),
    "lds": _spec("lds", parse_date),
    "ledger": _spec("ledger", enum_parser(DocumentFlag)),
    "hcf": _spec("hcf", enum_parser(DocumentFlag)),
    "invoice": _spec("invoice", enum_parser(DocumentFlag)),
    "signinsheet": _spec("signin_sheet", enum_parser(DocumentFlag)),
    "soldate": _spec("sol_date", parse_date),
    "hearingstatus": _spec("hearing_status"),
    "hearingdate": _spec("hearing_date", parse_date),
    "hearingtime": _spec("hearing_time", enum_parser(HearingTime)),
    "judgename": _spec("judge_name"),
    "courtroomlink": _spec("court_room_link"),
    "judgephone": _spec("judge_phone"),
    "accescode": _spec("access_code"),
    "accesscode": _spec("access_code"),
    "boardlocation": _spec("board_location"),
    "lienstatus": _spec("lien_status", enum_parser(LienStatus)),
    "casestatus": _spec("case_status", enum_parser(CaseStatus)),
    "casedate": _spec("case_date", parse_date),
    "cramount": _spec("cr_amount", parse_amount),
    "dorfiledby": _spec("dor_filed_by", enum_parser(DorFiledBy)),
    "status4903_8": _spec("status_4903_8", enum_parser(YesNo)),
    "pmrstatus": _spec("pmr_status", enum_parser(YesNo)),
    "judgeorderstatus": _spec("judge_order_status", enum_parser(JudgeOrderStatus)),
    "adjuster": _spec("adjuster"),
    "adjusterphone": _spec("adjuster_phone"),
    "adjusterfax": _spec("adjuster_fax"),
    "adjusteremail": _spec("adjuster_email"),
    "defenseattorney": _spec("defense_attorney"),
    "defenseattorneyphone": _spec("defense_attorney_phone"),
    "defenseattorneyfax": _spec("defense_attorney_fax"),
    "defenseattorneyemail": _spec("defense_attorney_email"),
}

# "claimno.2" -> ("claim_no", slot 1)
REPEATABLE_FIELDS = {
    "claimno": "claim_no",
    "adjnumber": "adj_number",
    "doi": "doi",
}
_REPEATABLE_RE = re.compile(r"^(claimno|adjnumber|doi)\.(\d+)$")


@dataclass(frozen=True)
class ColumnTarget:
    field: str
    parse: Callable[[str], Any] | None = None
    slot: int | None = None


def resolve_columns(headers: list[str]) -> dict[int, ColumnTarget]:
    """
    Map column indices to record fields in a single pass.

    Headers are trimmed, stripped of inner whitespace and compared
    case-insensitively. Unknown columns are ignored.
    """
    mapping: dict[int, ColumnTarget] = {}
    for index, header in enumerate(headers):
        normalized = normalize_header(header)
        if not normalized:
            continue
        repeatable = _REPEATABLE_RE.match(normalized)
        if repeatable:
            slot = int(repeatable.group(2)) - 1
            if slot >= 0:
                mapping[index] = ColumnTarget(
                    field=REPEATABLE_FIELDS[repeatable.group(1)], slot=slot
                )
            continue
        spec = FIELD_SPECS.get(normalized)
        if spec is not None:
            mapping[index] = ColumnTarget(field=spec.field, parse=spec.parse)
    return mapping


# =============================================================================
# CSV Parsing
# =============================================================================


def parse_csv_file(file_content: bytes | str) -> tuple[list[str], list[list[str]]]:
    """
    Parse CSV content into headers and rows.

    Returns:
        (headers, rows)
    """
    if isinstance(file_content, bytes):
        file_content = file_content.decode("utf-8-sig")  # Handle BOM

    reader = csv.reader(io.StringIO(file_content))
    rows = list(reader)

    if not rows:
        return [], []

    return rows[0], rows[1:]


def _cell_to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        if value.time() == datetime.min.time():
            return value.date().isoformat()
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def parse_xlsx_file(file_content: bytes) -> tuple[list[str], list[list[str]]]:
    """
    Parse the first worksheet of an .xlsx workbook into headers and rows.

    Cells are rendered as text so both upload formats share one parsing
    pass: dates as ISO strings, whole-number floats without a trailing .0.

    Raises:
        InvalidArgumentError: content is not a readable workbook
    """
    try:
        workbook = load_workbook(io.BytesIO(file_content), read_only=True, data_only=True)
    except (BadZipFile, InvalidFileException) as e:
        raise InvalidArgumentError("File is not a valid .xlsx workbook") from e

    try:
        rows = [
            [_cell_to_text(cell) for cell in row]
            for row in workbook.worksheets[0].iter_rows(values_only=True)
        ]
    finally:
        workbook.close()

    if not rows:
        return [], []

    return rows[0], rows[1:]


def row_to_values(row: list[str], columns: dict[int, ColumnTarget]) -> dict[str, Any]:
    """
    Convert one CSV row into RecordCreate keyword arguments.

    Raises:
        ValueError: a cell could not be parsed for its column
    """
    values: dict[str, Any] = {}
    slots: dict[str, dict[int, str]] = {field: {} for field in REPEATABLE_FIELDS.values()}

    for index, target in columns.items():
        if index >= len(row):
            continue
        raw = row[index]
        if target.slot is not None:
            text = clean_text(raw)
            if text:
                slots[target.field][target.slot] = text
            continue
        parsed = target.parse(raw)
        if parsed is not None:
            values[target.field] = parsed

    for field, filled in slots.items():
        values[field] = to_entries(filled[slot] for slot in sorted(filled))
    return values


# =============================================================================
# Import Execution
# =============================================================================


def import_records(
    db: Session,
    file_content: bytes | str,
    actor: Actor | None = None,
    collector_id: UUID | None = None,
    file_format: str = "csv",
) -> ImportResult:
    """
    Create one record per row with a patient name.

    `file_format` is "csv" or "xlsx". Rows without a patient name are
    skipped. Rows that fail parsing, validation or creation are reported
    with their 1-indexed row number (header is row 1) and never abort the
    batch.
    """
    result = ImportResult()

    if file_format == "xlsx":
        if isinstance(file_content, str):
            raise InvalidArgumentError("Workbook content must be bytes")
        headers, rows = parse_xlsx_file(file_content)
    elif file_format == "csv":
        headers, rows = parse_csv_file(file_content)
    else:
        raise InvalidArgumentError(f"Unsupported import format '{file_format}'")
    if not headers:
        return result

    columns = resolve_columns(headers)

    for row_number, row in enumerate(rows, start=2):
        if not any(cell.strip() for cell in row):
            continue
        try:
            values = row_to_values(row, columns)
        except ValueError as e:
            result.failed.append(ImportFailure(row_number=row_number, error=str(e)))
            continue

        if not values.get("pt_name"):
            result.skipped += 1
            continue

        if collector_id is not None:
            values["assigned_collector_id"] = collector_id

        try:
            data = RecordCreate(**values)
        except ValidationError as e:
            errors = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            result.failed.append(ImportFailure(row_number=row_number, error=errors))
            continue

        try:
            record_service.create_record(db, data, actor)
            result.created += 1
        except RecordServiceError as e:
            db.rollback()
            logger.warning(
                "Import row failed",
                extra={"row_number": row_number, "error": str(e)},
            )
            result.failed.append(ImportFailure(row_number=row_number, error=str(e)))

    logger.info(
        "Import finished",
        extra={
            "created": result.created,
            "skipped": result.skipped,
            "failed": len(result.failed),
        },
    )
    return result
