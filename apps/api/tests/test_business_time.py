"""Tests for Pacific wall-clock conversions and money parsing."""
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from lien_recovery.db.enums import CommentStatus
from lien_recovery.schemas.comment import CommentCreate
from lien_recovery.utils.business_time import (
    business_date,
    end_of_business_day,
    format_business_hhmm,
    parse_hhmm,
    start_of_business_day,
    to_business_instant,
)
from lien_recovery.utils.currency import compute_outstanding, parse_currency


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestBusinessInstant:
    def test_standard_time(self):
        assert to_business_instant(date(2024, 1, 15), "09:00") == utc(2024, 1, 15, 17, 0)

    def test_daylight_time(self):
        assert to_business_instant(date(2024, 7, 1), "09:00") == utc(2024, 7, 1, 16, 0)

    def test_spring_forward_gap_uses_pre_transition_offset(self):
        # 02:30 does not exist on 2024-03-10 in Los Angeles
        assert to_business_instant(date(2024, 3, 10), "02:30") == utc(2024, 3, 10, 10, 30)

    def test_date_only_is_midnight(self):
        assert to_business_instant(date(2024, 7, 1)) == utc(2024, 7, 1, 7, 0)
        assert start_of_business_day(date(2024, 1, 15)) == utc(2024, 1, 15, 8, 0)

    def test_end_of_business_day(self):
        assert end_of_business_day(date(2024, 1, 15)) == utc(2024, 1, 16, 7, 59, 59, 999000)

    def test_round_trip_to_local(self):
        instant = utc(2024, 7, 1, 6, 30)
        assert business_date(instant) == date(2024, 6, 30)
        assert format_business_hhmm(instant) == "23:30"


class TestParseHHMM:
    @pytest.mark.parametrize("value", ["25:00", "9:00", "12:60", "noon", ""])
    def test_rejects_malformed(self, value):
        with pytest.raises(ValueError):
            parse_hhmm(value)

    def test_accepts_24_hour_clock(self):
        assert parse_hhmm("23:59").hour == 23
        assert parse_hhmm(" 07:05 ").minute == 5

    def test_comment_schema_validates_time(self):
        with pytest.raises(ValidationError):
            CommentCreate(text="call", status=CommentStatus.CALLBACK, scheduled_time="9am")

        blank = CommentCreate(text="call", status=CommentStatus.CALLBACK, scheduled_time="")
        assert blank.scheduled_time is None


class TestCurrency:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("$1,250.50", Decimal("1250.50")),
            (" 300 ", Decimal("300")),
            ("(300)", Decimal("-300")),
            ("€ 12", Decimal("12")),
            (42, Decimal("42")),
        ],
    )
    def test_parses_currency_like_values(self, raw, expected):
        assert parse_currency(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "  ", "n/a", "12abc"])
    def test_unparseable_is_none(self, raw):
        assert parse_currency(raw) is None

    def test_outstanding(self):
        assert compute_outstanding(Decimal("100"), Decimal("40")) == Decimal("60")
        assert compute_outstanding(Decimal("100"), None) == Decimal("100")
        assert compute_outstanding(None, Decimal("40")) is None
