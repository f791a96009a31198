"""Unit tests for the completion ledger and daily ceiling."""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from skillcoach import usage
from skillcoach.errors import UsageCapped, ValidationFailed
from skillcoach.identity import RoleInfo
from skillcoach.models import ProgressEvent
from skillcoach.settings import settings


NOW = datetime(2026, 3, 10, 15, 30, tzinfo=timezone.utc)


def _event(db, user_id, created_at, n):
    db.add(ProgressEvent(
        user_id=user_id,
        niche_key="trading",
        client_completion_id=f"{user_id}-{n}",
        created_at=created_at,
    ))
    db.commit()


def test_start_of_today_utc():
    local = datetime(2026, 3, 10, 1, 0, tzinfo=timezone(timedelta(hours=5)))

    assert usage.start_of_today_utc(local) == datetime(2026, 3, 9, tzinfo=timezone.utc)
    assert usage.start_of_today_utc(NOW) == datetime(2026, 3, 10, tzinfo=timezone.utc)


def test_ceiling_for():
    assert usage.ceiling_for("free") == 2
    assert usage.ceiling_for("pro") is None


def test_resolve_plan():
    assert usage.resolve_plan("free") == "free"
    assert usage.resolve_plan("pro") == "pro"
    assert usage.resolve_plan("free", RoleInfo(is_owner=True, is_admin_or_creator=True)) == "pro"
    assert usage.resolve_plan("free", RoleInfo(is_admin_or_creator=True)) == "free"


def test_operator_owner_is_pro_without_experience():
    with patch.object(settings, "owner_user_ids", "op_1"):
        assert usage.resolve_plan("free", None, user_id="op_1") == "pro"
        assert usage.resolve_plan("free", None, user_id="someone") == "free"


class TestUsedToday:
    def test_counts_since_midnight_utc(self, db):
        midnight = datetime(2026, 3, 10, tzinfo=timezone.utc)
        _event(db, "u1", midnight - timedelta(seconds=1), 1)
        _event(db, "u1", midnight, 2)
        _event(db, "u1", NOW - timedelta(minutes=5), 3)
        _event(db, "u2", NOW - timedelta(minutes=5), 4)

        assert usage.used_today(db, "u1", NOW) == 2

    def test_free_user_capped_after_two(self, db):
        _event(db, "u1", NOW - timedelta(hours=2), 1)
        _event(db, "u1", NOW - timedelta(hours=1), 2)

        status = usage.usage_status(db, "u1", "free", NOW)

        assert status == {"plan": "free", "limit": 2, "used": 2, "remaining": 0, "capped": True}
        with pytest.raises(UsageCapped) as exc:
            usage.ensure_can_generate(db, "u1", "free", NOW)
        assert exc.value.details["completedToday"] == 2

    def test_free_user_with_one_left(self, db):
        _event(db, "u1", NOW - timedelta(hours=1), 1)

        status = usage.ensure_can_generate(db, "u1", "free", NOW)

        assert status["remaining"] == 1
        assert status["capped"] is False

    def test_pro_user_unlimited(self, db):
        for n in range(5):
            _event(db, "u1", NOW - timedelta(minutes=n + 1), n)

        status = usage.usage_status(db, "u1", "pro", NOW)

        assert status["limit"] is None
        assert status["used"] == 5
        assert status["remaining"] is None
        assert status["capped"] is False


class TestRecordCompletion:
    def test_idempotent_on_client_id(self, db):
        first = usage.record_completion(db, "u1", "trading", "c-1")
        second = usage.record_completion(db, "u1", "trading", "c-1")
        third = usage.record_completion(db, "u1", "trading", "c-2")

        assert (first, second, third) == (1, 1, 2)
        assert db.query(ProgressEvent).count() == 2

    def test_custom_counts_per_text(self, db):
        usage.record_completion(db, "u1", "custom", "c-1", custom_niche="Chess")
        total = usage.record_completion(db, "u1", "custom", "c-2", custom_niche="Knitting")

        assert total == 1

    def test_custom_requires_text(self, db):
        with pytest.raises(ValidationFailed):
            usage.record_completion(db, "u1", "custom", "c-1")

    def test_requires_client_id(self, db):
        with pytest.raises(ValidationFailed):
            usage.record_completion(db, "u1", "trading", " ")

    def test_recorded_events_count_today(self, db):
        usage.record_completion(db, "u1", "trading", "c-1")

        assert usage.used_today(db, "u1") == 1


class TestProgressSummary:
    def test_count_and_last_completion(self, db):
        _event(db, "u1", NOW - timedelta(days=2), 1)
        _event(db, "u1", NOW, 2)
        _event(db, "u2", NOW + timedelta(hours=1), 3)

        summary = usage.progress_summary(db, "u1", "Trading")

        assert summary["niche"] == "trading"
        assert summary["totalCompletedInNiche"] == 2
        assert datetime.fromisoformat(summary["lastCompletedAt"]) == NOW

    def test_empty_niche(self, db):
        summary = usage.progress_summary(db, "u1", "fitness")

        assert summary["totalCompletedInNiche"] == 0
        assert summary["lastCompletedAt"] is None

    def test_custom_scoped_to_text(self, db):
        usage.record_completion(db, "u1", "custom", "c-1", custom_niche="Chess")
        usage.record_completion(db, "u1", "custom", "c-2", custom_niche="Knitting")

        assert usage.progress_summary(db, "u1", "custom", "Chess")["totalCompletedInNiche"] == 1

    def test_custom_requires_text(self, db):
        with pytest.raises(ValidationFailed):
            usage.progress_summary(db, "u1", "custom", "  ")

    def test_niche_required(self, db):
        with pytest.raises(ValidationFailed):
            usage.progress_summary(db, "u1", "")
