"""Tests for the provider case-status dashboard."""
import pytest

from lien_recovery.services import summary_service
from lien_recovery.services.summary_service import standardize_case_status

from conftest import as_actor


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("C & R (GRANTED)", "C & R (GRANTED)"),
        ("c&r granted", "C & R (GRANTED)"),
        ("CIC PENDING", "CIC PENDING"),
        ("cic - pending review", "CIC PENDING"),
        ("SETTLED", "SETTLED"),
        ("ADR CASE - SETTED AND PAID ADR", "OTHER"),
        (None, "OTHER"),
        ("", "OTHER"),
    ],
)
def test_standardize_case_status(raw, expected):
    assert standardize_case_status(raw) == expected


@pytest.fixture
def dashboard(make_record, collector):
    make_record("Acme Clinic", "A1", case_status="C & R (GRANTED)", assigned_collector_id=collector.id)
    make_record("Acme Clinic", "A2", case_status="C & R (GRANTED)")
    make_record("Acme Clinic", "A3", case_status="SETTLED")
    make_record("Acme Clinic", "A4", lien_status="Out of SOL")
    make_record("Acme Clinic", "A5", case_status="ORDER OF DISMISAAL OF CASE")
    make_record("Beta Clinic", "B1", case_status="CIC PENDING", assigned_collector_id=collector.id)
    make_record("Gamma Clinic", "G1")


def _by_provider(summary) -> dict[str, dict[str, int]]:
    return {item.provider: {s.status: s.count for s in item.statuses} for item in summary}


def test_admin_summary(db, dashboard, admin):
    summary = summary_service.get_provider_summary(db, as_actor(admin))

    assert [item.provider for item in summary] == ["Acme Clinic", "Beta Clinic"]
    assert _by_provider(summary) == {
        "Acme Clinic": {"C & R (GRANTED)": 2, "SETTLED": 1, "OUT OF SOL": 1},
        "Beta Clinic": {"CIC PENDING": 1},
    }
    assert summary[0].total_count == 4
    assert [s.status for s in summary[0].statuses] == ["C & R (GRANTED)", "SETTLED", "OUT OF SOL"]


def test_collector_summary_counts_own_queue(db, dashboard, collector):
    summary = summary_service.get_provider_summary(db, as_actor(collector))

    assert _by_provider(summary) == {
        "Acme Clinic": {"C & R (GRANTED)": 1},
        "Beta Clinic": {"CIC PENDING": 1},
    }


def test_provider_summary_counts_own_records(db, dashboard, provider_user):
    summary = summary_service.get_provider_summary(db, as_actor(provider_user))

    assert [item.provider for item in summary] == ["Acme Clinic"]
    assert summary[0].total_count == 4
