"""
Tests for per-project locking and concurrent engine operations.
"""
import threading
import time
from unittest.mock import patch

import pytest

from taskflow.exceptions import LockTimeoutError, StorageError
from taskflow.managers.lock_manager import ProjectLockManager
from taskflow.managers.propagation_engine import PropagationEngine
from taskflow.managers.storage_manager import StorageManager
from taskflow.models.files import ProjectFile


class TestProjectLockManager:
    """Test ProjectLockManager."""

    def test_same_project_same_lock(self):
        locks = ProjectLockManager()

        assert locks.lock_for("proj-1") is locks.lock_for("proj-1")
        assert locks.lock_for("proj-1") is not locks.lock_for("proj-2")

    def test_default_timeout(self):
        assert ProjectLockManager().timeout == 30.0

    def test_hold_marks_locked(self):
        locks = ProjectLockManager()

        with locks.hold("proj-1"):
            assert locks.is_locked("proj-1")
            assert not locks.is_locked("proj-2")
        assert not locks.is_locked("proj-1")

    def test_timeout_raises(self):
        locks = ProjectLockManager(timeout=0.05)
        errors = []

        def contender():
            try:
                with locks.hold("proj-1"):
                    pass
            except LockTimeoutError as e:
                errors.append(e)

        with locks.hold("proj-1"):
            thread = threading.Thread(target=contender)
            thread.start()
            thread.join()

        assert len(errors) == 1
        assert errors[0].project_id == "proj-1"
        assert "within 0.05s" in str(errors[0])

    def test_released_on_exception(self):
        locks = ProjectLockManager()

        with pytest.raises(RuntimeError):
            with locks.hold("proj-1"):
                raise RuntimeError("boom")

        assert not locks.is_locked("proj-1")


class TestFileLocks:
    """Managers sharing a lock directory exclude each other, as separate processes do."""

    def test_lock_file_created(self, tmp_path):
        locks = ProjectLockManager(lock_dir=tmp_path)

        with locks.hold("proj-1"):
            pass

        assert locks.lock_path("proj-1") == tmp_path / "proj-1.lock"
        assert (tmp_path / "proj-1.lock").exists()

    def test_no_lock_dir(self):
        assert ProjectLockManager().lock_path("proj-1") is None

    def test_engine_locks_in_projects_dir(self, storage):
        engine = PropagationEngine(storage)

        assert engine.locks.lock_path("proj-1") == storage.projects_dir / "proj-1.lock"

    def test_separate_managers_exclude_each_other(self, tmp_path):
        first = ProjectLockManager(lock_dir=tmp_path)
        second = ProjectLockManager(timeout=0.05, lock_dir=tmp_path)

        with first.hold("proj-1"):
            with pytest.raises(LockTimeoutError):
                with second.hold("proj-1"):
                    pass
            assert not second.is_locked("proj-1")

            with second.hold("proj-2"):
                pass

        with second.hold("proj-1"):
            pass

    def test_waits_for_release(self, tmp_path):
        first = ProjectLockManager(lock_dir=tmp_path)
        second = ProjectLockManager(timeout=5.0, lock_dir=tmp_path)
        acquired = threading.Event()

        def contender():
            with second.hold("proj-1"):
                acquired.set()

        with first.hold("proj-1"):
            thread = threading.Thread(target=contender)
            thread.start()
            time.sleep(0.1)
            assert not acquired.is_set()

        thread.join(timeout=5)
        assert acquired.is_set()


class TestConcurrentOperations:
    """Ticks and cascades on one project never interleave."""

    def test_busy_project_times_out(self, storage, clock, stored_subtree):
        engine = PropagationEngine(
            storage, clock=clock, locks=ProjectLockManager(timeout=0.05)
        )
        errors = []

        def tick():
            try:
                engine.tick("proj-1")
            except LockTimeoutError as e:
                errors.append(e)

        with engine.locks.hold("proj-1"):
            thread = threading.Thread(target=tick)
            thread.start()
            thread.join()

        assert len(errors) == 1

    def test_cancel_waits_for_running_tick(self, engine, stored_subtree, read_statuses):
        done = threading.Event()

        def cancel():
            engine.cancel_project("proj-1")
            done.set()

        with engine.locks.hold("proj-1"):
            thread = threading.Thread(target=cancel)
            thread.start()
            time.sleep(0.1)
            assert not done.is_set()
            assert read_statuses()["proj-1"] == "pending"

        thread.join(timeout=5)
        assert done.is_set()
        assert set(read_statuses().values()) == {"cancelled"}

    def test_tick_and_cancel_race_ends_cancelled(self, engine, stored_subtree, read_statuses):
        """Whichever runs first, the cancellation is never overwritten."""
        errors = []

        def run(operation):
            try:
                operation("proj-1")
            except Exception as e:
                errors.append(e)

        threads = [
            threading.Thread(target=run, args=(engine.tick,)),
            threading.Thread(target=run, args=(engine.cancel_project,)),
            threading.Thread(target=run, args=(engine.tick,)),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

        assert errors == []
        assert set(read_statuses().values()) == {"cancelled"}

    def test_other_projects_not_blocked(self, engine, storage, stored_subtree, mock_data):
        storage.save_project_subtree(
            ProjectFile(project=mock_data.create_project(uuid="proj-2"))
        )

        with engine.locks.hold("proj-1"):
            result = engine.tick("proj-2")

        assert result.changed


class TestSeparateEngines:
    """A scheduler and a CLI command each build their own engine on one data dir."""

    @staticmethod
    def paused_commit(storage, planned, resume):
        """Commit that signals once the tick has planned, then waits to proceed."""
        real_commit = storage.commit_status_changes

        def commit(*args, **kwargs):
            planned.set()
            resume.wait(timeout=5)
            return real_commit(*args, **kwargs)

        return commit

    def test_cancel_waits_for_tick_of_other_engine(
        self, storage, clock, stored_subtree, read_statuses
    ):
        ticker_storage = StorageManager(storage.data_dir)
        ticker = PropagationEngine(ticker_storage, clock=clock)
        canceller = PropagationEngine(StorageManager(storage.data_dir), clock=clock)
        planned, resume, cancelled = threading.Event(), threading.Event(), threading.Event()

        def cancel():
            canceller.cancel_project("proj-1")
            cancelled.set()

        commit = self.paused_commit(ticker_storage, planned, resume)
        with patch.object(ticker_storage, "commit_status_changes", side_effect=commit):
            tick_thread = threading.Thread(target=ticker.tick, args=("proj-1",))
            tick_thread.start()
            assert planned.wait(timeout=5)

            cancel_thread = threading.Thread(target=cancel)
            cancel_thread.start()
            time.sleep(0.1)
            assert not cancelled.is_set()

            resume.set()
            tick_thread.join(timeout=5)
            cancel_thread.join(timeout=5)

        assert cancelled.is_set()
        assert set(read_statuses().values()) == {"cancelled"}

    def test_stale_tick_does_not_overwrite_cancel(
        self, storage, clock, stored_subtree, read_statuses
    ):
        ticker_storage = StorageManager(storage.data_dir)
        ticker = PropagationEngine(ticker_storage, clock=clock, locks=ProjectLockManager())
        canceller = PropagationEngine(
            StorageManager(storage.data_dir), clock=clock, locks=ProjectLockManager()
        )
        planned, resume = threading.Event(), threading.Event()
        errors = []

        def tick():
            try:
                ticker.tick("proj-1")
            except StorageError as e:
                errors.append(e)

        commit = self.paused_commit(ticker_storage, planned, resume)
        with patch.object(ticker_storage, "commit_status_changes", side_effect=commit):
            thread = threading.Thread(target=tick)
            thread.start()
            assert planned.wait(timeout=5)

            canceller.cancel_project("proj-1")
            resume.set()
            thread.join(timeout=5)

        assert len(errors) == 1
        assert "stale items" in str(errors[0])
        assert set(read_statuses().values()) == {"cancelled"}
