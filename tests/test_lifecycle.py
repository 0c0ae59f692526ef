"""Tests for balance/services/lifecycle_service.py

The lifecycle manager owns the pending -> done/skipped -> pending state
machine. Every completion writes exactly one log entry; undo inside the
grace window removes it again.
"""

from datetime import timedelta

import pytest

from balance.models import Rating, TaskStatus


def _item(plan, category_id):
    return next(item for item in plan.items if item.category_id == category_id)


# ─────────────────────────────────────────────────────────────────────────────
# Completion Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestComplete:
    """Tests for completing tasks."""

    def test_complete_marks_done_and_logs(self, store, lifecycle, today_plan, clock):
        item = _item(today_plan, "exercise")

        receipt = lifecycle.complete(clock.today(), item.id, "good", 30)

        updated = store.find_item(clock.today(), item.id)
        assert updated.status is TaskStatus.DONE
        assert updated.rating is Rating.GOOD
        assert updated.minutes == 30
        assert len(store.logs) == 1
        entry = store.logs[0]
        assert entry.id == receipt.log_entry_id
        assert (entry.pillar_id, entry.category_id, entry.minutes) == ("health", "exercise", 30)
        assert entry.rating is Rating.GOOD

    def test_minutes_default_to_window_length(self, store, lifecycle, today_plan, clock):
        item = _item(today_plan, "deep-work")

        receipt = lifecycle.complete(clock.today(), item.id, Rating.WIN)

        assert receipt.minutes == 120

    def test_minutes_zero_for_untimed_task(self, store, lifecycle, generator, clock):
        store.add_category("health", "Hydrate")
        store.day_plans.clear()
        plan = generator.generate(clock.today())
        item = next(i for i in plan.items if i.title == "Hydrate")

        receipt = lifecycle.complete(clock.today(), item.id, "win")

        assert receipt.minutes == 0

    def test_overnight_window_wraps(self, store, lifecycle, generator, clock):
        store.add_category("health", "Sleep", default_start="23:00", default_end="07:00")
        store.day_plans.clear()
        plan = generator.generate(clock.today())
        item = next(i for i in plan.items if i.title == "Sleep")

        receipt = lifecycle.complete(clock.today(), item.id, "good")

        assert receipt.minutes == 480

    def test_skip_rating_marks_skipped(self, store, lifecycle, today_plan, clock):
        item = _item(today_plan, "meditation")

        lifecycle.complete(clock.today(), item.id, "skip")

        assert store.find_item(clock.today(), item.id).status is TaskStatus.SKIPPED
        assert store.logs[0].weight == 0.0

    def test_legacy_numeric_rating_is_accepted(self, store, lifecycle, today_plan, clock):
        item = _item(today_plan, "meditation")

        receipt = lifecycle.complete(clock.today(), item.id, 4)

        assert receipt.rating is Rating.GOOD

    def test_unknown_rating_is_rejected(self, store, lifecycle, today_plan, clock):
        item = _item(today_plan, "meditation")

        assert lifecycle.complete(clock.today(), item.id, "amazing") is None
        assert store.logs == []
        assert store.find_item(clock.today(), item.id).is_pending

    def test_missing_item_is_noop(self, store, lifecycle, today_plan, clock):
        assert lifecycle.complete(clock.today(), "no-such-id", "win") is None
        assert store.logs == []

    def test_missing_plan_is_noop(self, store, lifecycle, clock):
        assert lifecycle.complete(clock.today() + timedelta(days=3), "whatever", "win") is None

    def test_completing_twice_logs_once(self, store, lifecycle, today_plan, clock):
        item = _item(today_plan, "exercise")

        lifecycle.complete(clock.today(), item.id, "win")
        assert lifecycle.complete(clock.today(), item.id, "win") is None

        assert len(store.logs) == 1

    def test_timestamps_strictly_increase(self, store, lifecycle, today_plan, clock):
        for item in list(today_plan.items):
            lifecycle.complete(clock.today(), item.id, "win")

        timestamps = [entry.timestamp for entry in store.logs]
        assert timestamps == sorted(set(timestamps))


# ─────────────────────────────────────────────────────────────────────────────
# Undo Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestUndo:
    """Tests for undoing a completion inside the grace window."""

    def test_round_trip_restores_item(self, store, lifecycle, today_plan, clock):
        item = _item(today_plan, "exercise")
        before = item.to_dict()

        lifecycle.complete(clock.today(), item.id, "good", 30)
        assert lifecycle.undo(clock.today(), item.id) is True

        assert store.find_item(clock.today(), item.id).to_dict() == before
        assert store.logs == []

    def test_undo_after_window_is_refused(self, store, lifecycle, today_plan, clock):
        item = _item(today_plan, "exercise")
        lifecycle.complete(clock.today(), item.id, "good")

        clock.advance(seconds=6)

        assert lifecycle.undo(clock.today(), item.id) is False
        assert store.find_item(clock.today(), item.id).status is TaskStatus.DONE
        assert len(store.logs) == 1

    def test_receipt_deadline_uses_undo_window(self, lifecycle, today_plan, clock):
        item = _item(today_plan, "exercise")

        receipt = lifecycle.complete(clock.today(), item.id, "good")

        assert receipt.undo_deadline == clock.now() + timedelta(seconds=5)

    def test_explicit_deadline_overrides_window(self, store, lifecycle, today_plan, clock):
        item = _item(today_plan, "exercise")
        lifecycle.complete(clock.today(), item.id, "good")
        clock.advance(seconds=30)

        assert lifecycle.undo(clock.today(), item.id, deadline=clock.now() + timedelta(seconds=1))
        assert store.logs == []

    def test_undo_without_any_deadline_is_refused(self, store, lifecycle, today_plan, clock):
        item = _item(today_plan, "exercise")
        lifecycle.complete(clock.today(), item.id, "good")
        lifecycle.clear_receipts()

        assert lifecycle.undo(clock.today(), item.id) is False

    def test_undo_falls_back_to_latest_matching_log(self, store, lifecycle, today_plan, clock):
        item = _item(today_plan, "exercise")
        lifecycle.complete(clock.today(), item.id, "good")
        lifecycle.clear_receipts()

        assert lifecycle.undo(clock.today(), item.id, deadline=clock.now() + timedelta(seconds=5))
        assert store.logs == []

    def test_undo_pending_item_is_noop(self, lifecycle, today_plan, clock):
        item = _item(today_plan, "exercise")

        assert lifecycle.undo(clock.today(), item.id) is False

    def test_undo_missing_item_is_noop(self, lifecycle, today_plan, clock):
        assert lifecycle.undo(clock.today(), "no-such-id") is False


# ─────────────────────────────────────────────────────────────────────────────
# Ad-hoc Item Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestItemEditing:
    """Tests for adding, editing and deleting tasks in an existing plan."""

    def test_add_item(self, store, lifecycle, today_plan, clock):
        item = lifecycle.add_item(clock.today(), "Call mom", "relationships", "family-time", start="20:00")

        assert item is not None
        assert store.find_item(clock.today(), item.id) is item
        assert item.is_pending

    def test_add_item_requires_plan(self, lifecycle, clock):
        assert lifecycle.add_item(clock.today(), "Call mom", "relationships", "family-time") is None

    def test_add_item_requires_known_templates(self, lifecycle, today_plan, clock):
        assert lifecycle.add_item(clock.today(), "Call mom", "nope", "family-time") is None

    def test_add_item_rejects_bad_time(self, lifecycle, today_plan, clock):
        assert lifecycle.add_item(clock.today(), "Call", "relationships", "family-time", start="25:00") is None

    def test_update_item(self, store, lifecycle, today_plan, clock):
        item = _item(today_plan, "exercise")

        updated = lifecycle.update_item(clock.today(), item.id, start="07:30", title="Morning run")

        assert updated.start == "07:30"
        assert store.find_item(clock.today(), item.id).title == "Morning run"

    def test_update_cannot_change_status(self, store, lifecycle, today_plan, clock):
        item = _item(today_plan, "exercise")

        assert lifecycle.update_item(clock.today(), item.id, status="done") is None
        assert store.find_item(clock.today(), item.id).is_pending

    def test_delete_item(self, store, lifecycle, today_plan, clock):
        item = _item(today_plan, "exercise")

        removed = lifecycle.delete_item(clock.today(), item.id)

        assert removed.id == item.id
        assert store.find_item(clock.today(), item.id) is None

    @pytest.mark.parametrize("operation", ["update_item", "delete_item"])
    def test_missing_item_is_noop(self, lifecycle, today_plan, clock, operation):
        assert getattr(lifecycle, operation)(clock.today(), "no-such-id") is None


# ─────────────────────────────────────────────────────────────────────────────
# Receipt Retention
# ─────────────────────────────────────────────────────────────────────────────


class TestReceiptRetention:
    """Receipts are only kept while their undo window is open."""

    def test_expired_receipts_are_dropped_on_complete(self, lifecycle, today_plan, clock):
        meditation = _item(today_plan, "meditation")
        exercise = _item(today_plan, "exercise")
        deep_work = _item(today_plan, "deep-work")
        lifecycle.complete(clock.today(), meditation.id, "win")
        lifecycle.complete(clock.today(), exercise.id, "good")

        clock.advance(seconds=6)
        lifecycle.complete(clock.today(), deep_work.id, "bad")

        assert lifecycle.receipt_count == 1
        assert lifecycle.receipt_for(meditation.id) is None
        assert lifecycle.receipt_for(deep_work.id) is not None

    def test_expired_receipts_are_dropped_on_undo(self, lifecycle, today_plan, clock):
        exercise = _item(today_plan, "exercise")
        lifecycle.complete(clock.today(), exercise.id, "good")

        clock.advance(seconds=6)

        assert lifecycle.undo(clock.today(), exercise.id) is False
        assert lifecycle.receipt_count == 0

    def test_explicit_deadline_still_removes_recorded_entry(self, store, lifecycle, today_plan, clock):
        exercise = _item(today_plan, "exercise")
        lifecycle.complete(clock.today(), exercise.id, "good")

        clock.advance(seconds=6)

        assert lifecycle.undo(clock.today(), exercise.id, deadline=clock.now() + timedelta(seconds=10)) is True
        assert store.logs == []
        assert lifecycle.receipt_count == 0
