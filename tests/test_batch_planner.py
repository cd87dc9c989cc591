"""
Tests for BatchBlockPlanner: sequential validation, per-block failures,
all-or-nothing commits and per-day locking.
"""

import threading

import pytest

from schedule_engine.collaborators import InMemoryScheduleStore
from schedule_engine.errors import InvalidInput
from schedule_engine.models import ProposedBlock
from schedule_engine.planning import BatchBlockPlanner, KeyedLock, PlannerMode
from schedule_engine.planning.batch_planner import (
    REASON_BATCH_ABORTED,
    REASON_EXISTING,
    REASON_IN_BATCH,
    REASON_INVERTED,
)
from tests.builders import MONDAY, block


def proposed(title, start, end, type="work"):
    return ProposedBlock(type=type, title=title, start_time=start, end_time=end)


class FailingStore(InMemoryScheduleStore):
    """Raises on create for selected titles, and optionally on delete."""

    def __init__(self, fail_titles=(), fail_deletes=False, **kwargs):
        super().__init__(**kwargs)
        self.fail_titles = set(fail_titles)
        self.fail_deletes = fail_deletes

    def create_block(self, date, block):
        if block.title in self.fail_titles:
            raise RuntimeError(f"write refused for {block.title}")
        return super().create_block(date, block)

    def delete_block(self, block_id):
        if self.fail_deletes:
            raise RuntimeError("delete refused")
        return super().delete_block(block_id)


@pytest.fixture
def store():
    return InMemoryScheduleStore()


class TestBestEffort:
    def test_overlapping_pair_in_batch(self, store):
        result = BatchBlockPlanner(store).plan(
            MONDAY, [proposed("Focus", "09:00", "10:00"), proposed("Review", "09:30", "10:30")]
        )
        assert [b.title for b in result.created] == ["Focus"]
        assert len(result.conflicts) == 1
        rejection = result.conflicts[0]
        assert rejection.block.title == "Review"
        assert rejection.reason == REASON_IN_BATCH
        assert rejection.conflicts_with == "Focus"
        assert result.total_requested == 2
        assert result.total_created == 1
        assert result.committed is True

    def test_conflict_with_existing_block(self):
        store = InMemoryScheduleStore([block("existing", "09:00", "10:00", title="Standup")])
        result = BatchBlockPlanner(store).plan(MONDAY, [proposed("Focus", "09:30", "10:30")])
        rejection = result.conflicts[0]
        assert rejection.reason == REASON_EXISTING
        assert rejection.conflicts_with == "Standup"
        assert rejection.conflicts_with_id == "existing"

    def test_inverted_and_malformed_times(self, store):
        result = BatchBlockPlanner(store).plan(
            MONDAY,
            [
                proposed("Backwards", "11:00", "10:00"),
                proposed("Bad clock", "25:00", "26:00"),
                proposed("Fine", "13:00", "14:00"),
            ],
        )
        assert [r.reason for r in result.conflicts][0] == REASON_INVERTED
        assert result.conflicts[1].reason.startswith("Invalid time format")
        assert [b.title for b in result.created] == ["Fine"]

    def test_raw_mappings_rejected_per_item(self, store):
        bad_type = {"type": "focus", "title": "Deep", "start_time": "11:00", "end_time": "12:00"}
        result = BatchBlockPlanner(store).plan(
            MONDAY,
            [
                {"type": "work", "title": "Focus", "start_time": "09:00", "end_time": "10:00"},
                bad_type,
                {"type": "work", "title": "No end", "start_time": "13:00"},
            ],
        )
        assert [b.title for b in result.created] == ["Focus"]
        assert [r.reason for r in result.conflicts] == [
            "Unknown block type: 'focus'",
            "Proposed block is missing: end_time",
        ]
        assert result.conflicts[0].block == bad_type
        assert result.to_dict()["conflicts"][1]["block"]["title"] == "No end"

    def test_unknown_type_is_invalid_input(self):
        with pytest.raises(InvalidInput):
            proposed("Deep", "09:00", "10:00", type="focus")

    def test_touching_blocks_accepted(self, store):
        result = BatchBlockPlanner(store).plan(
            MONDAY, [proposed("A", "10:00", "11:00"), proposed("B", "11:00", "12:00")]
        )
        assert result.total_created == 2
        assert result.conflicts == []

    def test_rejection_does_not_affect_later_blocks(self, store):
        batch = [
            proposed("A", "09:00", "10:00"),
            proposed("B", "09:30", "10:30"),
            proposed("C", "10:00", "11:00"),
        ]
        result = BatchBlockPlanner(store).plan(MONDAY, batch)
        # C touches A and would only have overlapped the rejected B
        assert [b.title for b in result.created] == ["A", "C"]
        assert [b.title for b in store.get_blocks_for_date(MONDAY)] == ["A", "C"]

    def test_write_failure_recorded_and_batch_continues(self):
        store = FailingStore(fail_titles={"Broken"})
        result = BatchBlockPlanner(store).plan(
            MONDAY, [proposed("Broken", "09:00", "10:00"), proposed("Works", "09:30", "10:30")]
        )
        assert result.conflicts[0].reason == "write refused for Broken"
        # The failed block was never accepted, so it does not block an overlapping one
        assert [b.title for b in result.created] == ["Works"]

    def test_empty_batch(self, store):
        result = BatchBlockPlanner(store).plan(MONDAY, [])
        assert result.total_requested == 0
        assert result.created == [] and result.conflicts == []

    def test_to_dict_includes_total_created(self, store):
        data = BatchBlockPlanner(store).plan(MONDAY, [proposed("A", "09:00", "10:00")]).to_dict()
        assert data["total_created"] == 1
        assert data["created"][0]["type"] == "work"


class TestAllOrNothing:
    def test_any_rejection_commits_nothing(self, store):
        planner = BatchBlockPlanner(store, mode=PlannerMode.ALL_OR_NOTHING)
        result = planner.plan(
            MONDAY,
            [
                proposed("A", "09:00", "10:00"),
                proposed("B", "09:30", "10:30"),
                proposed("C", "13:00", "14:00"),
            ],
        )
        assert result.committed is False
        assert result.created == []
        reasons = {r.block.title: r.reason for r in result.conflicts}
        assert reasons == {"B": REASON_IN_BATCH, "A": REASON_BATCH_ABORTED, "C": REASON_BATCH_ABORTED}
        assert store.get_blocks_for_date(MONDAY) == []

    def test_unparseable_mapping_aborts_batch(self, store):
        planner = BatchBlockPlanner(store, mode=PlannerMode.ALL_OR_NOTHING)
        result = planner.plan(
            MONDAY,
            [
                proposed("A", "09:00", "10:00"),
                {"type": "nap", "title": "Zzz", "start_time": "13:00", "end_time": "14:00"},
            ],
        )
        assert result.committed is False
        assert [r.reason for r in result.conflicts] == ["Unknown block type: 'nap'", REASON_BATCH_ABORTED]
        assert store.get_blocks_for_date(MONDAY) == []

    def test_clean_batch_commits(self, store):
        planner = BatchBlockPlanner(store, mode="all_or_nothing")
        result = planner.plan(MONDAY, [proposed("A", "09:00", "10:00"), proposed("B", "10:00", "11:00")])
        assert result.committed is True
        assert result.total_created == 2

    def test_mid_commit_failure_rolls_back(self):
        store = FailingStore(fail_titles={"B"})
        planner = BatchBlockPlanner(store, mode=PlannerMode.ALL_OR_NOTHING)
        result = planner.plan(MONDAY, [proposed("A", "09:00", "10:00"), proposed("B", "10:00", "11:00")])
        assert result.committed is False
        assert result.created == []
        assert result.conflicts[0].reason == "write refused for B"
        assert store.get_blocks_for_date(MONDAY) == []

    def test_failed_rollback_reports_leftovers(self):
        store = FailingStore(fail_titles={"B"}, fail_deletes=True)
        planner = BatchBlockPlanner(store, mode=PlannerMode.ALL_OR_NOTHING)
        result = planner.plan(MONDAY, [proposed("A", "09:00", "10:00"), proposed("B", "10:00", "11:00")])
        assert result.committed is False
        assert [b.title for b in result.created] == ["A"]
        assert [b.title for b in store.get_blocks_for_date(MONDAY)] == ["A"]


class TestLocking:
    def test_lock_exists_only_while_held(self):
        locks = KeyedLock()
        with locks.hold(("u-1", MONDAY)):
            with locks.hold(("u-1", "2025-03-04")):
                assert len(locks) == 2
            assert len(locks) == 1
        assert len(locks) == 0

    def test_sequential_days_leave_registry_empty(self, store):
        locks = KeyedLock()
        planner = BatchBlockPlanner(store, locks=locks)
        for day in ("2025-03-03", "2025-03-04", "2025-03-05"):
            planner.plan(day, [proposed("A", "09:00", "10:00")], user_id="u-1")
        for i in range(1000):
            with locks.hold(("u-1", f"d{i}")):
                pass
        assert len(locks) == 0

    def test_waiter_runs_after_holder_and_registry_drains(self):
        locks = KeyedLock()
        entered = threading.Event()
        order = []

        def waiter():
            entered.set()
            with locks.hold("k"):
                order.append("waiter")

        with locks.hold("k"):
            thread = threading.Thread(target=waiter)
            thread.start()
            entered.wait()
            order.append("holder")
        thread.join()

        assert order == ["holder", "waiter"]
        assert len(locks) == 0

    def test_concurrent_batches_never_double_book(self, store):
        planner = BatchBlockPlanner(store, locks=KeyedLock())
        barrier = threading.Barrier(8)
        results = []

        def worker(i):
            barrier.wait()
            results.append(planner.plan(MONDAY, [proposed(f"Slot {i}", "09:00", "10:00")], user_id="u-1"))

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sum(r.total_created for r in results) == 1
        assert len(store.get_blocks_for_date(MONDAY)) == 1

    def test_hold_releases_on_error(self):
        locks = KeyedLock()
        with pytest.raises(RuntimeError):
            with locks.hold("k"):
                raise RuntimeError("boom")
        with locks.hold("k"):
            pass
