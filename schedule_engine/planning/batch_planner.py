"""
Batch Block Planner - Validate and commit a set of proposed blocks.

Per block, in input order:
0. raw mappings are parsed first; a bad type or a missing field rejects
   that block only
1. reject if end <= start (or the times are malformed)
2. reject if it overlaps an existing block on the date
3. reject if it overlaps a block accepted earlier in this batch
4. otherwise commit through the schedule store

Modes:
- BEST_EFFORT (default): sequential commits; a rejection or a failed write
  never stops the rest of the batch
- ALL_OR_NOTHING: validate every block first and commit only if all pass;
  if a write still fails mid-commit, the blocks written so far are deleted

Overlap is strict here: blocks that only touch (10:00-11:00, 11:00-12:00)
are accepted.
"""

import logging
from collections.abc import Hashable, Mapping, Sequence
from enum import StrEnum

from schedule_engine.collaborators import ScheduleStore
from schedule_engine.errors import InvalidInput
from schedule_engine.models import BatchResult, ProposedBlock, RejectedBlock, ScheduleBlock, TimeInterval
from schedule_engine.planning.locks import KeyedLock
from schedule_engine.time_truth.interval_set import overlaps
from schedule_engine.timeutil import combine, parse_date

logger = logging.getLogger(__name__)

REASON_INVERTED = "End time must be after start time"
REASON_EXISTING = "Conflicts with existing block"
REASON_IN_BATCH = "Conflicts with another block in batch"
REASON_WRITE_FAILED = "Failed to create block"
REASON_BATCH_ABORTED = "Batch not committed: another block was rejected"


class PlannerMode(StrEnum):
    BEST_EFFORT = "best_effort"
    ALL_OR_NOTHING = "all_or_nothing"


class BatchBlockPlanner:
    """
    Validates proposed blocks against existing and in-flight blocks and
    commits the valid ones.

    Args:
        store: Schedule store that owns the blocks
        mode: BEST_EFFORT or ALL_OR_NOTHING
        locks: Optional KeyedLock; when given, plan() holds the (user, date) lock
    """

    def __init__(
        self,
        store: ScheduleStore,
        mode: PlannerMode = PlannerMode.BEST_EFFORT,
        locks: KeyedLock | None = None,
    ):
        self.store = store
        self.mode = PlannerMode(mode)
        self.locks = locks

    def plan(
        self, date: str, proposed: Sequence[ProposedBlock | Mapping], user_id: Hashable = None
    ) -> BatchResult:
        """
        Validate and commit a batch of blocks for one date.

        Args:
            date: ISO date for every block in the batch
            proposed: Blocks (or raw block mappings) in the order they should be considered
            user_id: Lock scope, together with the date

        Returns:
            BatchResult with created blocks and per-block rejections
        """
        day = parse_date(date).isoformat()
        if self.locks is None:
            return self._plan(day, proposed)
        with self.locks.hold((user_id, day)):
            return self._plan(day, proposed)

    def _plan(self, day: str, proposed: Sequence[ProposedBlock | Mapping]) -> BatchResult:
        existing = self.store.get_blocks_for_date(day)
        if self.mode == PlannerMode.ALL_OR_NOTHING:
            result = self._plan_all_or_nothing(day, proposed, existing)
        else:
            result = self._plan_best_effort(day, proposed, existing)

        logger.info(
            "Batch for %s (%s): %d/%d created, %d rejected",
            day,
            self.mode.value,
            result.total_created,
            result.total_requested,
            len(result.conflicts),
        )
        return result

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def check(
        self,
        day: str,
        block: ProposedBlock,
        existing: Sequence[ScheduleBlock],
        accepted: Sequence[tuple[ProposedBlock, TimeInterval]],
    ) -> tuple[TimeInterval | None, RejectedBlock | None]:
        """
        Validate one block.

        Returns:
            (interval, None) when the block may be committed, (None, rejection) otherwise
        """
        try:
            start = combine(day, block.start_time)
            end = combine(day, block.end_time)
        except InvalidInput as exc:
            return None, RejectedBlock(block=block, reason=str(exc))
        if end <= start:
            return None, RejectedBlock(block=block, reason=REASON_INVERTED)

        interval = TimeInterval(start, end)
        for other in existing:
            if overlaps(interval, other):
                return None, RejectedBlock(
                    block=block,
                    reason=REASON_EXISTING,
                    conflicts_with=other.title,
                    conflicts_with_id=other.id,
                )
        for other, other_interval in accepted:
            if overlaps(interval, other_interval):
                return None, RejectedBlock(block=block, reason=REASON_IN_BATCH, conflicts_with=other.title)
        return interval, None

    def parse(self, raw: ProposedBlock | Mapping) -> tuple[ProposedBlock | None, RejectedBlock | None]:
        """Accept a ProposedBlock as is; build one from a raw mapping or reject it."""
        if isinstance(raw, ProposedBlock):
            return raw, None
        try:
            return ProposedBlock.from_dict(raw), None
        except InvalidInput as exc:
            return None, RejectedBlock(block=dict(raw), reason=str(exc))

    def _write(self, day: str, block: ProposedBlock) -> tuple[ScheduleBlock | None, RejectedBlock | None]:
        try:
            return self.store.create_block(day, block), None
        except Exception as exc:
            # Write failure for this block only - record it and continue the batch
            logger.warning("Failed to create block %r on %s: %s", block.title, day, exc, exc_info=True)
            return None, RejectedBlock(block=block, reason=str(exc) or REASON_WRITE_FAILED)

    # -------------------------------------------------------------------------
    # Modes
    # -------------------------------------------------------------------------

    def _plan_best_effort(
        self, day: str, proposed: Sequence[ProposedBlock | Mapping], existing: Sequence[ScheduleBlock]
    ) -> BatchResult:
        result = BatchResult(date=day, total_requested=len(proposed))
        accepted: list[tuple[ProposedBlock, TimeInterval]] = []

        for raw in proposed:
            block, rejection = self.parse(raw)
            if rejection is None:
                interval, rejection = self.check(day, block, existing, accepted)
            if rejection is None:
                created, rejection = self._write(day, block)
            if rejection is not None:
                result.conflicts.append(rejection)
                continue
            accepted.append((block, interval))
            result.created.append(created)
        return result

    def _plan_all_or_nothing(
        self, day: str, proposed: Sequence[ProposedBlock | Mapping], existing: Sequence[ScheduleBlock]
    ) -> BatchResult:
        result = BatchResult(date=day, total_requested=len(proposed), committed=False)
        accepted: list[tuple[ProposedBlock, TimeInterval]] = []

        for raw in proposed:
            block, rejection = self.parse(raw)
            if rejection is None:
                interval, rejection = self.check(day, block, existing, accepted)
            if rejection is not None:
                result.conflicts.append(rejection)
            else:
                accepted.append((block, interval))

        if result.conflicts:
            for block, _ in accepted:
                result.conflicts.append(RejectedBlock(block=block, reason=REASON_BATCH_ABORTED))
            return result

        for block, _ in accepted:
            created, rejection = self._write(day, block)
            if rejection is not None:
                result.created = self._compensate(result.created)
                result.conflicts.append(rejection)
                return result
            result.created.append(created)

        result.committed = True
        return result

    def _compensate(self, created: list[ScheduleBlock]) -> list[ScheduleBlock]:
        """
        Delete blocks written earlier in an all-or-nothing batch that failed mid-commit.

        Returns:
            Blocks that could not be deleted and are still persisted
        """
        leftovers = []
        for block in reversed(created):
            try:
                self.store.delete_block(block.id)
            except Exception:
                logger.error("Failed to roll back block %s", block.id, exc_info=True)
                leftovers.append(block)
        return list(reversed(leftovers))
