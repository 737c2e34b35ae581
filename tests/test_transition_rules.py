"""
Tests for the date-driven transition rules.

Tests cover:
- Each transition of the single-item state machine
- Boundary instants (inclusive start, exclusive completion)
- Terminal stability, idempotence, non-regression
- Rollup eligibility from child statuses
"""

from datetime import timedelta

import pytest

from taskflow.managers.transition_rules import is_rollup_complete, next_status
from taskflow.models.base import WorkStatus


class TestNextStatus:
    """Test next_status on a single task."""

    def test_pending_started_becomes_ongoing(self, mock_data, now):
        """Started an hour ago, due tomorrow."""
        task = mock_data.create_task(start=timedelta(hours=-1), completion=timedelta(days=1))
        assert next_status(task, now) == WorkStatus.ON_GOING

    def test_pending_not_started_stays_pending(self, mock_data, now):
        task = mock_data.create_task(start=timedelta(hours=1), completion=timedelta(days=1))
        assert next_status(task, now) == WorkStatus.PENDING

    def test_pending_overdue_skips_ongoing(self, mock_data, now):
        """Never started and already overdue goes straight to delayed."""
        task = mock_data.create_task(start=timedelta(days=-2), completion=timedelta(days=-1))
        assert next_status(task, now) == WorkStatus.DELAYED

    def test_ongoing_overdue_becomes_delayed(self, mock_data, now):
        task = mock_data.create_task(
            start=timedelta(days=-3),
            completion=timedelta(days=-1),
            status=WorkStatus.ON_GOING,
        )
        assert next_status(task, now) == WorkStatus.DELAYED

    def test_ongoing_within_schedule_unchanged(self, mock_data, now):
        task = mock_data.create_task(status=WorkStatus.ON_GOING)
        assert next_status(task, now) == WorkStatus.ON_GOING

    def test_delayed_stays_delayed(self, mock_data, now):
        task = mock_data.create_task(
            start=timedelta(days=-3),
            completion=timedelta(days=-1),
            status=WorkStatus.DELAYED,
        )
        assert next_status(task, now) == WorkStatus.DELAYED

    @pytest.mark.parametrize(
        "status", [WorkStatus.PENDING, WorkStatus.ON_GOING, WorkStatus.DELAYED]
    )
    def test_actual_completion_wins(self, mock_data, now, status):
        """An explicit completion instant overrides date inference."""
        task = mock_data.create_task(
            start=timedelta(days=-3),
            completion=timedelta(days=-1),
            status=status,
            actual_completion=now - timedelta(hours=2),
        )
        assert next_status(task, now) == WorkStatus.COMPLETED

    @pytest.mark.parametrize("status", [WorkStatus.COMPLETED, WorkStatus.CANCELLED])
    @pytest.mark.parametrize(
        "start,completion",
        [
            (timedelta(days=1), timedelta(days=2)),
            (timedelta(days=-1), timedelta(days=1)),
            (timedelta(days=-3), timedelta(days=-1)),
        ],
    )
    def test_terminal_statuses_never_change(self, mock_data, now, status, start, completion):
        task = mock_data.create_task(start=start, completion=completion, status=status)
        assert next_status(task, now) == status

    def test_does_not_modify_item(self, mock_data, now):
        task = mock_data.create_task(start=timedelta(days=-2), completion=timedelta(days=-1))
        next_status(task, now)
        assert task.status == WorkStatus.PENDING


class TestBoundaries:
    """Inclusive for entering a state, exclusive for leaving it."""

    def test_now_equal_to_start_enters_ongoing(self, mock_data, now):
        task = mock_data.create_task(start=timedelta(0), completion=timedelta(days=1))
        assert next_status(task, now) == WorkStatus.ON_GOING

    def test_now_equal_to_completion_is_still_ongoing(self, mock_data, now):
        task = mock_data.create_task(start=timedelta(days=-1), completion=timedelta(0))
        assert next_status(task, now) == WorkStatus.ON_GOING

    def test_just_after_completion_is_delayed(self, mock_data, now):
        task = mock_data.create_task(
            start=timedelta(days=-1),
            completion=timedelta(microseconds=-1),
            status=WorkStatus.ON_GOING,
        )
        assert next_status(task, now) == WorkStatus.DELAYED


class TestProperties:
    """Idempotence and monotonic progression."""

    def test_idempotent_for_same_now(self, mock_data, now):
        task = mock_data.create_task(start=timedelta(days=-2), completion=timedelta(days=-1))
        first = next_status(task, now)
        task.status = first
        assert next_status(task, now) == first
        assert next_status(task, now) == first

    def test_progression_never_moves_backward(self, mock_data, now):
        """Walking time forward only moves pending → onGoing → delayed."""
        order = [WorkStatus.PENDING, WorkStatus.ON_GOING, WorkStatus.DELAYED]
        task = mock_data.create_task(start=timedelta(hours=3), completion=timedelta(hours=9))

        seen = [task.status]
        for hour in range(0, 15):
            task.status = next_status(task, now + timedelta(hours=hour))
            seen.append(task.status)

        indexes = [order.index(status) for status in seen]
        assert indexes == sorted(indexes)
        assert seen[-1] == WorkStatus.DELAYED

    def test_delayed_does_not_return_to_ongoing_when_time_goes_back(self, mock_data, now):
        task = mock_data.create_task(
            start=timedelta(days=-1),
            completion=timedelta(days=1),
            status=WorkStatus.DELAYED,
        )
        assert next_status(task, now) == WorkStatus.DELAYED


class TestRollupEligibility:
    """Test is_rollup_complete."""

    def test_no_children_never_completes(self):
        assert is_rollup_complete([]) is False

    def test_all_completed(self):
        assert is_rollup_complete([WorkStatus.COMPLETED, WorkStatus.COMPLETED]) is True

    def test_completed_and_cancelled(self):
        assert is_rollup_complete([WorkStatus.COMPLETED, WorkStatus.CANCELLED]) is True

    def test_only_cancelled(self):
        assert is_rollup_complete([WorkStatus.CANCELLED, WorkStatus.CANCELLED]) is False

    @pytest.mark.parametrize(
        "other", [WorkStatus.PENDING, WorkStatus.ON_GOING, WorkStatus.DELAYED]
    )
    def test_any_open_child_blocks(self, other):
        assert is_rollup_complete([WorkStatus.COMPLETED, other]) is False

    def test_accepts_generator(self):
        assert is_rollup_complete(s for s in [WorkStatus.COMPLETED]) is True
