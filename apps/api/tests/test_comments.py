"""Tests for the timeline engine: prepend, auto-complete, role gates and queue hand-off."""
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from lien_recovery.core.config import settings
from lien_recovery.db.enums import CommentStatus
from lien_recovery.schemas.comment import CheckCopy, CommentCreate, CommentUpdate
from lien_recovery.services import comment_service, record_query_service, record_service
from lien_recovery.services.errors import (
    ForbiddenError,
    InvalidArgumentError,
    NotFoundError,
)

from conftest import as_actor

T0 = datetime(2024, 6, 3, 16, 0, tzinfo=timezone.utc)


def comment(status: CommentStatus = CommentStatus.CALLBACK, text: str = "Called adjuster", **kwargs):
    return CommentCreate(text=text, status=status, **kwargs)


def payment(**overrides) -> CommentCreate:
    values = dict(
        check_number="10045",
        check_date=date(2024, 6, 1),
        check_amount=Decimal("450.00"),
        check_copy=CheckCopy(file_name="check.pdf", mime_type="application/pdf", base64="QUJDRA=="),
    )
    values.update(overrides)
    return comment(CommentStatus.PAYMENT_RECEIVED, "Check arrived", **values)


class TestPrepend:
    def test_newest_comment_is_head(self, db, make_record, admin):
        record = make_record()
        actor = as_actor(admin)

        comment_service.add_comment(db, record.id, comment(text="first"), actor, now=T0)
        updated = comment_service.add_comment(
            db, record.id, comment(text="second"), actor, now=T0 + timedelta(minutes=5)
        )

        assert [c.text for c in updated.comments] == ["second", "first"]
        assert updated.top_comment.text == "second"
        assert updated.comments[0].author_id == admin.id

    def test_new_comment_auto_completes_open_follow_ups(self, db, make_record, admin):
        record = make_record()
        actor = as_actor(admin)
        comment_service.add_comment(
            db,
            record.id,
            comment(scheduled_date=date(2024, 6, 4), scheduled_time="10:00"),
            actor,
            now=T0,
        )

        later = T0 + timedelta(hours=2)
        updated = comment_service.add_comment(
            db, record.id, comment(CommentStatus.SPOKE_TO, "Spoke to adjuster"), actor, now=later
        )

        previous = updated.comments[1]
        assert previous.is_completed is True
        assert previous.completed_at == later
        assert updated.comments[0].is_completed is False

    def test_time_without_date_is_rejected(self, db, make_record, admin):
        record = make_record()
        with pytest.raises(InvalidArgumentError):
            comment_service.add_comment(
                db, record.id, comment(scheduled_time="10:00"), as_actor(admin), now=T0
            )

    def test_unknown_record(self, db, admin):
        with pytest.raises(NotFoundError):
            comment_service.add_comment(
                db, "7b0e7f36-8a0e-4b43-9d9a-6a4a2f1c9d11", comment(), as_actor(admin)
            )
        with pytest.raises(InvalidArgumentError):
            comment_service.add_comment(db, "not-a-uuid", comment(), as_actor(admin))


class TestRoleGates:
    def test_only_admins_close(self, db, make_record, admin, super_admin, collector):
        record = make_record()

        with pytest.raises(ForbiddenError):
            comment_service.add_comment(
                db, record.id, comment(CommentStatus.CLOSED, "Done"), as_actor(collector)
            )

        comment_service.add_comment(db, record.id, comment(CommentStatus.CLOSED, "Done"), as_actor(admin))
        updated = comment_service.add_comment(
            db, record.id, comment(CommentStatus.CLOSED, "Done again"), as_actor(super_admin)
        )
        assert updated.top_comment.status == CommentStatus.CLOSED.value

    def test_only_payment_redeemer_records_payment(self, db, make_record, admin, redeemer):
        record = make_record()

        with pytest.raises(ForbiddenError):
            comment_service.add_comment(db, record.id, payment(), as_actor(admin))

        updated = comment_service.add_comment(db, record.id, payment(), as_actor(redeemer), now=T0)
        head = updated.top_comment
        assert head.check_number == "10045"
        assert head.check_amount == Decimal("450.00")
        assert head.check_copy["file_name"] == "check.pdf"

    @pytest.mark.parametrize(
        "overrides,message",
        [
            ({"check_number": "  "}, "Check Number"),
            ({"check_date": None}, "Check Date"),
            ({"check_amount": Decimal("0")}, "Check Amount"),
            ({"check_copy": None}, "Copy of Check"),
        ],
    )
    def test_payment_details_required(self, db, make_record, redeemer, overrides, message):
        record = make_record()
        with pytest.raises(InvalidArgumentError, match=message):
            comment_service.add_comment(db, record.id, payment(**overrides), as_actor(redeemer))

        db.expire_all()
        assert record_service.get_record(db, record.id).comments == []

    def test_check_copy_size_limit(self, db, make_record, redeemer, monkeypatch):
        monkeypatch.setattr(settings, "CHECK_COPY_MAX_BYTES", 30)
        record = make_record()
        oversized = CheckCopy(file_name="big.png", mime_type="image/png", base64="A" * 80)

        with pytest.raises(InvalidArgumentError, match="too large"):
            comment_service.add_comment(
                db, record.id, payment(check_copy=oversized), as_actor(redeemer)
            )


class TestRedaction:
    def test_payment_comments_hidden_from_collectors_and_providers(
        self, db, make_record, admin, collector, provider_user, hearing_rep, redeemer
    ):
        record = make_record(assigned_collector_id=collector.id)
        comment_service.add_comment(db, record.id, comment(text="call"), as_actor(collector), now=T0)
        record = comment_service.add_comment(
            db, record.id, payment(), as_actor(redeemer), now=T0 + timedelta(minutes=1)
        )

        for user in (collector, provider_user, hearing_rep):
            read = record_query_service.to_record_read(record, as_actor(user))
            assert [c.text for c in read.comments] == ["call"]

        for user in (admin, redeemer):
            read = record_query_service.to_record_read(record, as_actor(user))
            assert len(read.comments) == 2

        # Storage keeps both
        assert len(record_service.get_record(db, record.id).comments) == 2


class TestPaymentQueue:
    def test_wfp_goes_to_least_loaded_redeemer(self, db, make_record, admin, redeemer, redeemer_2):
        actor = as_actor(admin)
        first, second, third = (make_record(pt_name=name) for name in ("A", "B", "C"))

        first = comment_service.add_comment(db, first.id, comment(CommentStatus.WFP), actor, now=T0)
        second = comment_service.add_comment(db, second.id, comment(CommentStatus.WFP), actor, now=T0)
        third = comment_service.add_comment(db, third.id, comment(CommentStatus.WFP), actor, now=T0)

        # Tie goes to the first enumerated redeemer
        assert first.assigned_payment_redeemer_id == redeemer.id
        assert second.assigned_payment_redeemer_id == redeemer_2.id
        assert third.assigned_payment_redeemer_id == redeemer.id
        assert first.payment_assigned_at == T0
        assert first.payment_assigned_by_id == admin.id

    def test_completed_wfp_heads_do_not_count_as_load(
        self, db, make_record, admin, redeemer, redeemer_2
    ):
        actor = as_actor(admin)
        first = make_record(pt_name="A")
        first = comment_service.add_comment(db, first.id, comment(CommentStatus.WFP), actor, now=T0)
        comment_service.update_comment(
            db, first.id, first.top_comment.id, CommentUpdate(is_completed=True), actor, now=T0
        )

        second = make_record(pt_name="B")
        second = comment_service.add_comment(db, second.id, comment(CommentStatus.WFP), actor, now=T0)
        assert second.assigned_payment_redeemer_id == redeemer.id

    def test_payment_received_and_closed_leave_the_queue(self, db, make_record, admin, redeemer):
        record = make_record()
        record = comment_service.add_comment(
            db, record.id, comment(CommentStatus.WFP), as_actor(admin), now=T0
        )
        assert record.assigned_payment_redeemer_id == redeemer.id

        record = comment_service.add_comment(db, record.id, payment(), as_actor(redeemer), now=T0)
        assert record.assigned_payment_redeemer_id is None
        assert record.payment_assigned_at is None

        record = comment_service.add_comment(
            db, record.id, comment(CommentStatus.WFP), as_actor(admin), now=T0
        )
        assert record.assigned_payment_redeemer_id == redeemer.id
        record = comment_service.add_comment(
            db, record.id, comment(CommentStatus.CLOSED, "Closed"), as_actor(admin), now=T0
        )
        assert record.assigned_payment_redeemer_id is None

    def test_wfp_without_redeemers_still_posts(self, db, make_record, admin):
        record = make_record()
        record = comment_service.add_comment(
            db, record.id, comment(CommentStatus.WFP), as_actor(admin), now=T0
        )
        assert record.top_comment.status == CommentStatus.WFP.value
        assert record.assigned_payment_redeemer_id is None


class TestUpdateComment:
    def test_toggle_completion(self, db, make_record, admin):
        actor = as_actor(admin)
        record = make_record()
        record = comment_service.add_comment(
            db, record.id, comment(scheduled_date=date(2024, 6, 5)), actor, now=T0
        )
        comment_id = record.top_comment.id

        done_at = T0 + timedelta(hours=1)
        record = comment_service.update_comment(
            db, record.id, comment_id, CommentUpdate(is_completed=True), actor, now=done_at
        )
        assert record.top_comment.is_completed is True
        assert record.top_comment.completed_at == done_at

        record = comment_service.update_comment(
            db, record.id, comment_id, CommentUpdate(is_completed=False), actor
        )
        assert record.top_comment.is_completed is False

    def test_unknown_comment(self, db, make_record, admin):
        record = make_record()
        with pytest.raises(NotFoundError):
            comment_service.update_comment(
                db,
                record.id,
                "7b0e7f36-8a0e-4b43-9d9a-6a4a2f1c9d11",
                CommentUpdate(is_completed=True),
                as_actor(admin),
            )


def test_wfp_load_stays_balanced(db, make_record, admin, redeemer, redeemer_2):
    actor = as_actor(admin)
    assigned = []
    for i in range(7):
        record = make_record(pt_name=f"Patient {i}")
        record = comment_service.add_comment(
            db, record.id, comment(CommentStatus.WFP), actor, now=T0 + timedelta(minutes=i)
        )
        assigned.append(record.assigned_payment_redeemer_id)

    assert abs(assigned.count(redeemer.id) - assigned.count(redeemer_2.id)) <= 1
