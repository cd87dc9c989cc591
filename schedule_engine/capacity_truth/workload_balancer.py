"""
Workload Balancer - Cross-day load analysis for a week.

Tracks:
- Per-day load (blocks + timed events) against the work-hour target
- Week variance and a 0..100 balance score
- Move/split suggestions from a pluggable rebalancer

Invariants:
- 0 <= load_score <= 100
- 0 <= balance_score <= 100; 100 only when every day carries the same total
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Protocol

from schedule_engine.config import WorkloadConfig
from schedule_engine.errors import InvalidInput
from schedule_engine.models import (
    BalanceItem,
    BalanceSuggestion,
    BlockType,
    BusyItem,
    DayLoad,
    Level,
    Preferences,
    ScheduleBlock,
    SuggestionKind,
    _Serializable,
)
from schedule_engine.timeutil import daterange, is_weekend, parse_date, round_half_up, week_bounds

logger = logging.getLogger(__name__)


@dataclass
class BalanceReport(_Serializable):
    week_start: str
    target_minutes_per_day: int
    day_loads: list[DayLoad] = field(default_factory=list)
    statistics: dict = field(default_factory=dict)
    suggestions: list[BalanceSuggestion] = field(default_factory=list)


def day_load(
    day: str,
    blocks: Iterable[ScheduleBlock],
    events: Iterable[BusyItem],
    target_minutes: int,
) -> DayLoad:
    """
    Aggregate one day's load.

    Every block counts toward the total; only work/meeting/break blocks are
    broken out by type. Timed calendar events count as meetings.
    """
    total = work = meeting = breaks = count = 0

    for block in blocks:
        if not block.is_well_formed:
            logger.warning("Ignoring block %s with invalid time range in day load", block.id)
            continue
        duration = block.duration_minutes
        total += duration
        count += 1
        if block.type == BlockType.WORK:
            work += duration
        elif block.type == BlockType.MEETING:
            meeting += duration
        elif block.type == BlockType.BREAK:
            breaks += duration

    for event in events:
        total += event.duration_minutes
        meeting += event.duration_minutes
        count += 1

    return DayLoad(
        date=parse_date(day).isoformat(),
        total_minutes=total,
        work_minutes=work,
        meeting_minutes=meeting,
        break_minutes=breaks,
        load_score=max(0, min(100, round_half_up(total / target_minutes * 100))),
        item_count=count,
    )


def balance_statistics(day_loads: Sequence[DayLoad], config: WorkloadConfig) -> dict:
    """Average load, max variance percentage and balance score across the days."""
    totals = [d.total_minutes for d in day_loads]
    average = sum(totals) / len(totals) if totals else 0.0

    if average > 0:
        max_deviation = max(abs(t - average) for t in totals)
        variance_pct = max_deviation / average * 100
        balance = max(0, 100 - round_half_up(variance_pct))
        if max_deviation > 0 and balance == 100:
            # Rounding must not hide a real imbalance.
            balance = 99
    else:
        variance_pct = 0.0
        balance = 100

    return {
        "average_load_minutes": round_half_up(average),
        "average_load_hours": round_half_up(average / 60 * 10) / 10,
        "max_variance_percentage": round_half_up(variance_pct),
        "balance_score": balance,
        "overloaded_days": [d.date for d in day_loads if d.load_score > config.overloaded_threshold],
        "underloaded_days": [d.date for d in day_loads if d.load_score < config.underloaded_threshold],
    }


# =============================================================================
# REBALANCING
# =============================================================================


class Rebalancer(Protocol):
    """Produces balance suggestions from analyzed day loads."""

    def suggest(
        self,
        day_loads: Sequence[DayLoad],
        blocks_by_date: Mapping[str, Sequence[ScheduleBlock]],
    ) -> list[BalanceSuggestion]:
        ...


class GreedyRebalancer:
    """
    First-fit heuristic, not an optimizer.

    For every (overloaded, underloaded) pair, propose moving the first movable
    block of the overloaded day (work type, not fixed, at most
    `max_movable_minutes`). Separately, propose splitting every block of at
    least `split_threshold_minutes` on an overloaded day.
    """

    def __init__(self, config: WorkloadConfig | None = None):
        self.config = config or WorkloadConfig()

    def _movable(self, block: ScheduleBlock) -> bool:
        return (
            block.type == BlockType.WORK
            and not block.is_fixed
            and block.duration_minutes <= self.config.max_movable_minutes
        )

    def suggest(
        self,
        day_loads: Sequence[DayLoad],
        blocks_by_date: Mapping[str, Sequence[ScheduleBlock]],
    ) -> list[BalanceSuggestion]:
        over = [d for d in day_loads if d.load_score > self.config.overloaded_threshold]
        under = [d for d in day_loads if d.load_score < self.config.underloaded_threshold]

        suggestions = []
        for heavy in over:
            movable = [b for b in blocks_by_date.get(heavy.date, ()) if self._movable(b)]
            if not movable:
                continue
            block = movable[0]
            weekday = parse_date(heavy.date).strftime("%a")
            for light in under:
                suggestions.append(
                    BalanceSuggestion(
                        kind=SuggestionKind.MOVE,
                        from_date=heavy.date,
                        to_date=light.date,
                        item=_balance_item(block),
                        impact=f"Reduces {weekday} load by {round_half_up(block.duration_minutes / 60)} hours",
                        feasibility=Level.HIGH,
                    )
                )

        for heavy in over:
            for block in blocks_by_date.get(heavy.date, ()):
                if block.duration_minutes >= self.config.split_threshold_minutes:
                    suggestions.append(
                        BalanceSuggestion(
                            kind=SuggestionKind.SPLIT,
                            from_date=heavy.date,
                            to_date=heavy.date,
                            item=_balance_item(block),
                            impact="Improves focus and reduces fatigue",
                            feasibility=Level.MEDIUM,
                        )
                    )
        return suggestions


def _balance_item(block: ScheduleBlock) -> BalanceItem:
    return BalanceItem(
        id=block.id,
        title=block.title,
        duration_minutes=block.duration_minutes,
        type=block.type.value,
    )


# =============================================================================
# WEEK ANALYSIS
# =============================================================================


def week_days(week_start, include_weekends: bool = False) -> list[str]:
    """ISO dates of the Monday-based week containing `week_start`."""
    monday, sunday = week_bounds(week_start)
    return [d.isoformat() for d in daterange(monday, sunday) if include_weekends or not is_weekend(d)]


def analyze_week(
    week_start,
    blocks_by_date: Mapping[str, Sequence[ScheduleBlock]],
    events_by_date: Mapping[str, Sequence[BusyItem]],
    preferences: Preferences,
    include_weekends: bool = False,
    config: WorkloadConfig | None = None,
    rebalancer: Rebalancer | None = None,
) -> BalanceReport:
    """
    Analyze load across a week and propose rebalancing moves.

    Args:
        week_start: Any date in the week (snapped back to Monday)
        blocks_by_date: Schedule blocks keyed by ISO date
        events_by_date: Timed calendar events (as busy items) keyed by ISO date
        preferences: Source of the per-day target (work-hour span)
        include_weekends: Analyze Saturday and Sunday too
        config: Thresholds; defaults to WorkloadConfig()
        rebalancer: Suggestion strategy; defaults to GreedyRebalancer

    Raises:
        InvalidInput: If the work-hour span is empty
    """
    config = config or WorkloadConfig()
    rebalancer = rebalancer or GreedyRebalancer(config)

    target = preferences.target_minutes_per_day
    if target <= 0:
        raise InvalidInput(
            f"Work hours {preferences.work_start}-{preferences.work_end} leave no daily target"
        )

    days = week_days(week_start, include_weekends)
    blocks_by_date = {day: [b for b in blocks_by_date.get(day, ()) if b.is_well_formed] for day in days}
    loads = [day_load(day, blocks_by_date[day], events_by_date.get(day, ()), target) for day in days]
    stats = balance_statistics(loads, config)
    suggestions = rebalancer.suggest(loads, blocks_by_date)[: config.max_suggestions]

    logger.debug(
        "Week of %s: balance %d, %d overloaded, %d underloaded, %d suggestions",
        days[0] if days else week_start,
        stats["balance_score"],
        len(stats["overloaded_days"]),
        len(stats["underloaded_days"]),
        len(suggestions),
    )
    return BalanceReport(
        week_start=week_bounds(week_start)[0].isoformat(),
        target_minutes_per_day=target,
        day_loads=loads,
        statistics=stats,
        suggestions=suggestions,
    )
