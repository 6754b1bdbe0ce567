"""Tests for CSV and workbook record import."""
import io
from datetime import date, datetime
from decimal import Decimal

import pytest
from openpyxl import Workbook
from sqlalchemy import select

from lien_recovery.db.models import Record
from lien_recovery.services import import_service
from lien_recovery.services.errors import InvalidArgumentError
from lien_recovery.services.import_service import parse_date, parse_xlsx_file, resolve_columns

from conftest import as_actor

CSV = (
    "Provider,PT Name,Bill,Paid,Claim No.1,Claim No.2,Adj Number.1,DOB,Lien Status,Outstanding,Mystery\n"
    'Acme Clinic,Jane Roe,"$1,250.50",250,,CLM-2,ADJ-1,01/02/1980,out of sol,999,x\n'
    "Acme Clinic,,100,,,,,,,,\n"
    "Acme Clinic,John Doe,100,,,,,not-a-date,,,\n"
    ",,,,,,,,,,\n"
    "Acme Clinic,Ann Lee,,,,,,,Pending,,\n"
)


def _records(db) -> dict[str, Record]:
    return {r.pt_name: r for r in db.scalars(select(Record)).all()}


def test_resolve_columns_normalizes_headers():
    columns = resolve_columns([" PT  Name ", "claimNo.2", "Signin Sheet", "Unknown", "Acces Code"])

    assert columns[0].field == "pt_name"
    assert (columns[1].field, columns[1].slot) == ("claim_no", 1)
    assert columns[2].field == "signin_sheet"
    assert 3 not in columns
    assert columns[4].field == "access_code"


def test_parse_date_formats():
    assert parse_date("2024-03-01") == date(2024, 3, 1)
    assert parse_date("3/1/2024") == date(2024, 3, 1)
    assert parse_date("03-01-24") == date(2024, 3, 1)
    assert parse_date("2024-03-01T10:00:00Z") == date(2024, 3, 1)
    assert parse_date("  ") is None


def test_import_reports_per_row(db, admin):
    result = import_service.import_records(db, CSV.encode("utf-8-sig"), as_actor(admin))

    assert result.created == 1
    assert result.skipped == 1
    failed = {f.row_number: f.error for f in result.failed}
    assert set(failed) == {4, 6}
    assert "not-a-date" in failed[4]
    assert "lien_status" in failed[6]

    record = _records(db)["Jane Roe"]
    assert record.reference_id == "REF-0000001"
    assert record.bill == Decimal("1250.50")
    # Derived, never taken from the sheet
    assert record.outstanding == Decimal("1000.50")
    assert record.claim_no == [{"value": "CLM-2"}]
    assert record.adj_number == [{"value": "ADJ-1"}]
    assert record.dob == date(1980, 1, 2)
    assert record.lien_status == "Out of SOL"
    assert record.assigned_collector_id is None


def test_import_preassigns_collector(db, admin, collector):
    csv_text = "Provider,PT Name\nAcme Clinic,Jane Roe\nAcme Clinic,John Doe\n"

    result = import_service.import_records(db, csv_text, as_actor(admin), collector_id=collector.id)

    assert result.created == 2
    for record in _records(db).values():
        assert record.assigned_collector_id == collector.id
        assert len(record.assignment_history) == 1
        assert record.assignment_history[0].assigned_by_id == admin.id


def test_import_with_non_collector_target_fails_rows(db, admin, redeemer):
    csv_text = "Provider,PT Name\nAcme Clinic,Jane Roe\n"

    result = import_service.import_records(db, csv_text, as_actor(admin), collector_id=redeemer.id)

    assert result.created == 0
    assert [f.row_number for f in result.failed] == [2]


def test_empty_file(db):
    result = import_service.import_records(db, b"")

    assert result.created == result.skipped == 0
    assert result.failed == []


def _workbook_bytes(*rows) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(list(row))
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def test_parse_xlsx_renders_cells_as_text():
    content = _workbook_bytes(
        ("Provider", "PT Name", "Bill", "DOB", "Claim No.1"),
        ("Acme Clinic", "Jane Roe", 1250.5, datetime(1980, 1, 2), 12345.0),
        ("Acme Clinic", None, None, None, None),
    )

    headers, rows = parse_xlsx_file(content)

    assert headers == ["Provider", "PT Name", "Bill", "DOB", "Claim No.1"]
    assert rows[0] == ["Acme Clinic", "Jane Roe", "1250.5", "1980-01-02", "12345"]
    assert rows[1][:2] == ["Acme Clinic", ""]


def test_import_from_workbook(db, admin):
    content = _workbook_bytes(
        ("Provider", "PT Name", "Bill", "Paid", "DOB", "Adj Number.1", "Adj Number.2"),
        ("Acme Clinic", "Jane Roe", 1250.5, 250, datetime(1980, 1, 2), "ADJ-1", "ADJ-2"),
        ("Acme Clinic", None, 100, None, None, None, None),
    )

    result = import_service.import_records(db, content, as_actor(admin), file_format="xlsx")

    assert result.created == 1
    assert result.skipped == 1
    assert result.failed == []
    record = _records(db)["Jane Roe"]
    assert record.bill == Decimal("1250.50")
    assert record.outstanding == Decimal("1000.50")
    assert record.dob == date(1980, 1, 2)
    assert record.adj_number == [{"value": "ADJ-1"}, {"value": "ADJ-2"}]


def test_unreadable_workbook_is_rejected(db):
    with pytest.raises(InvalidArgumentError):
        import_service.import_records(db, b"Provider,PT Name\n", file_format="xlsx")


def test_unknown_format_is_rejected(db):
    with pytest.raises(InvalidArgumentError):
        import_service.import_records(db, b"", file_format="ods")
