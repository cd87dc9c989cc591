"""
Scheduling Service - Request-level entry point.

Each public operation:
1. opens a RequestContext (request id on every log line)
2. fetches blocks, events and preferences through the injected collaborators
3. runs one or more pure components
4. returns a structured result (dataclasses with to_dict())

Collaborator failures are raised once per request as CollaboratorFailure.
Partial data would produce misleading conflict and gap results, so nothing
is computed from an incomplete fetch. The only exception is the batch
planner, which records a failed write against the block that caused it.
"""

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import timedelta

from schedule_engine.capacity_truth import (
    BalanceReport,
    Rebalancer,
    UtilizationReport,
    analyze_utilization,
    analyze_week,
)
from schedule_engine.capacity_truth.workload_balancer import week_days
from schedule_engine.collaborators import AttendeeAvailability, CalendarProvider, PreferenceStore, ScheduleStore
from schedule_engine.config import SchedulingConfig, get_config
from schedule_engine.contracts import (
    validate_balance_report,
    validate_batch_result,
    validate_conflict_report,
    validate_gap_report,
    validate_meeting_search,
)
from schedule_engine.errors import CollaboratorFailure, InvalidInput, SchedulingError
from schedule_engine.models import (
    BatchResult,
    BusyItem,
    CalendarEvent,
    Conflict,
    Gap,
    Level,
    Preferences,
    ProposedBlock,
    ScheduleBlock,
    TaskCandidate,
    TaskMatch,
    TimeInterval,
    _Serializable,
)
from schedule_engine.observability import RequestContext
from schedule_engine.planning import BatchBlockPlanner, KeyedLock, ResolutionOption, suggest_resolutions
from schedule_engine.scoring import (
    ActivityCandidate,
    ActivityRequest,
    GapAssignment,
    MeetingRequest,
    MeetingSearchResult,
    SlotScorer,
)
from schedule_engine.time_truth import (
    BreakReport,
    ConflictDetector,
    FocusReport,
    SlotAvailability,
    analyze_breaks,
    calculate_focus_time,
    check_slot_availability,
    find_gaps,
    gap_statistics,
    summarize,
)
from schedule_engine.timeutil import combine, daterange, parse_date

logger = logging.getLogger(__name__)


@dataclass
class ConflictReport(_Serializable):
    date: str
    conflicts: list[Conflict] = field(default_factory=list)
    summary: dict = field(default_factory=dict)


@dataclass
class GapReport(_Serializable):
    date: str
    gaps: list[Gap] = field(default_factory=list)
    statistics: dict = field(default_factory=dict)


@dataclass
class ResolutionReport(_Serializable):
    conflict: Conflict
    options: list[ResolutionOption] = field(default_factory=list)


class SchedulingService:
    """
    Scheduling engine facade over injected collaborators.

    Args:
        schedule_store: Owner of schedule blocks
        calendar: External calendar provider
        preferences: Per-user time preferences
        availability: Optional free/busy source for other attendees
        config: Tunables; defaults to the process-wide config
        rebalancer: Week rebalancing strategy; defaults to the greedy one
        locks: Per (user, date) write locks shared across service instances
        calendar_id: Calendar to read events from
        validate_outputs: Check each report against its output contract before
            returning it. A mismatch raises pydantic.ValidationError.
    """

    def __init__(
        self,
        schedule_store: ScheduleStore,
        calendar: CalendarProvider,
        preferences: PreferenceStore,
        availability: AttendeeAvailability | None = None,
        config: SchedulingConfig | None = None,
        rebalancer: Rebalancer | None = None,
        locks: KeyedLock | None = None,
        calendar_id: str = "primary",
        validate_outputs: bool = False,
    ):
        self.schedule_store = schedule_store
        self.calendar = calendar
        self.preference_store = preferences
        self.config = config or get_config()
        self.rebalancer = rebalancer
        self.calendar_id = calendar_id
        self.validate_outputs = validate_outputs

        self.detector = ConflictDetector.from_config(self.config)
        self.scorer = SlotScorer.from_config(self.config, availability)
        self.planner = BatchBlockPlanner(
            schedule_store,
            mode=self.config.planner.mode,
            locks=locks or KeyedLock(),
        )

    # =========================================================================
    # Collaborator access
    # =========================================================================

    def _call(self, collaborator: str, operation: str, fn: Callable, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except SchedulingError:
            raise
        except Exception as exc:
            logger.error("%s.%s failed: %s", collaborator, operation, exc, exc_info=True)
            raise CollaboratorFailure(collaborator, operation, str(exc)) from exc

    def _checked(self, result: _Serializable, validator: Callable[[dict], object]):
        if self.validate_outputs:
            validator(result.to_dict())
        return result

    def get_preferences(self, user_id: str | None) -> Preferences:
        """User preferences, falling back to the configured work day."""
        prefs = self._call("preferences", "get", self.preference_store.get, user_id)
        if prefs is None:
            wd = self.config.work_day
            return Preferences(
                work_start=wd.work_start,
                work_end=wd.work_end,
                lunch_start=wd.lunch_start,
                lunch_duration_minutes=wd.lunch_duration_minutes,
            )
        if isinstance(prefs, Mapping):
            return Preferences.from_dict(prefs)
        return prefs

    def get_blocks(self, day: str) -> list[ScheduleBlock]:
        """Schedule blocks for a date. Malformed or inverted blocks are skipped with a warning."""
        blocks = self._call("schedule_store", "get_blocks_for_date", self.schedule_store.get_blocks_for_date, day)
        valid = []
        for block in blocks:
            if not block.is_well_formed:
                logger.warning(
                    "Skipping schedule block %s with invalid time range %s-%s",
                    block.id,
                    block.start_time,
                    block.end_time,
                )
                continue
            valid.append(block)
        return valid

    def get_events(self, day: str) -> list[BusyItem]:
        """
        Timed calendar events for a date, as busy items.

        All-day events and events without a valid time range do not occupy
        clock time and are skipped.
        """
        day_start = combine(day, "00:00")
        day_end = day_start + timedelta(days=1)
        events: list[CalendarEvent] = self._call(
            "calendar",
            "list_events",
            self.calendar.list_events,
            day_start,
            day_end,
            calendar_id=self.calendar_id,
        )

        items = []
        for event in events:
            if not event.is_timed:
                continue
            if event.end <= event.start:
                logger.warning("Skipping calendar event %s with inverted time range", event.id)
                continue
            if event.end <= day_start or event.start >= day_end:
                continue
            items.append(event.to_busy_item())
        return items

    def get_busy_items(self, day: str) -> tuple[list[ScheduleBlock], list[BusyItem]]:
        """(blocks, blocks + events as busy items) for a date."""
        blocks = self.get_blocks(day)
        events = self.get_events(day)
        return blocks, [b.to_busy_item() for b in blocks] + events

    # =========================================================================
    # Conflicts
    # =========================================================================

    def detect_conflicts(
        self, date: str, user_id: str | None = None, buffer_minutes: int | None = None
    ) -> ConflictReport:
        """Detect overlap, buffer, travel and preference conflicts for a date."""
        day = parse_date(date).isoformat()
        with RequestContext(user_id=user_id):
            prefs = self.get_preferences(user_id)
            _, items = self.get_busy_items(day)

            detector = self.detector
            if buffer_minutes is not None:
                detector = ConflictDetector(
                    buffer_minutes=buffer_minutes,
                    travel_buffer_minutes=self.detector.travel_buffer_minutes,
                    check_travel_time=self.detector.check_travel_time,
                )
            conflicts = detector.detect(items, prefs.protected_windows(day))
            report = ConflictReport(date=day, conflicts=conflicts, summary=summarize(conflicts))
            logger.info("Conflicts for %s: %s", day, report.summary)
            return self._checked(report, validate_conflict_report)

    def resolve_conflicts(self, date: str, user_id: str | None = None) -> list[ResolutionReport]:
        """Detect conflicts for a date and attach ranked resolution options to each."""
        report = self.detect_conflicts(date, user_id)
        buffer = self.config.conflicts.buffer_minutes
        return [ResolutionReport(c, suggest_resolutions(c, buffer)) for c in report.conflicts]

    # =========================================================================
    # Gaps and free time
    # =========================================================================

    def find_gaps(self, date: str, user_id: str | None = None, min_gap_minutes: int | None = None) -> GapReport:
        """Free gaps inside the user's work day, with aggregate statistics."""
        day = parse_date(date).isoformat()
        min_gap = self.config.gaps.min_gap_minutes if min_gap_minutes is None else min_gap_minutes
        with RequestContext(user_id=user_id):
            prefs = self.get_preferences(user_id)
            _, items = self.get_busy_items(day)
            work = prefs.work_window(day)
            gaps = find_gaps(work.start, work.end, items, min_gap)
            stats = gap_statistics(gaps, self.config.work_day.reference_day_minutes)
            logger.info("Gaps for %s: %d totaling %d min", day, len(gaps), stats["total_gap_minutes"])
            return self._checked(GapReport(date=day, gaps=gaps, statistics=stats), validate_gap_report)

    def check_availability(
        self,
        date: str,
        start_time: str,
        end_time: str,
        user_id: str | None = None,
        buffer_minutes: int = 0,
    ) -> SlotAvailability:
        day = parse_date(date).isoformat()
        with RequestContext(user_id=user_id):
            prefs = self.get_preferences(user_id)
            _, items = self.get_busy_items(day)
            result = check_slot_availability(day, start_time, end_time, items, prefs, buffer_minutes)
            logger.info("Availability %s %s-%s: %s", day, start_time, end_time, result.is_available)
            return result

    def focus_time(self, date: str, user_id: str | None = None, min_block_minutes: int | None = None) -> FocusReport:
        day = parse_date(date).isoformat()
        min_block = self.config.gaps.focus_min_block_minutes if min_block_minutes is None else min_block_minutes
        with RequestContext(user_id=user_id):
            prefs = self.get_preferences(user_id)
            _, items = self.get_busy_items(day)
            report = calculate_focus_time(day, prefs.work_window(day), items, min_block)
            logger.info("Focus time for %s: %d min", day, report.total_available_minutes)
            return report

    def utilization(self, date: str, user_id: str | None = None) -> UtilizationReport:
        day = parse_date(date).isoformat()
        with RequestContext(user_id=user_id):
            prefs = self.get_preferences(user_id)
            blocks = self.get_blocks(day)
            report = analyze_utilization(
                day, blocks, prefs.work_window(day), self.config.work_day.reference_day_minutes
            )
            logger.info("Utilization for %s: %d%%", day, report.utilization)
            return report

    def breaks(self, date: str, user_id: str | None = None) -> BreakReport:
        day = parse_date(date).isoformat()
        with RequestContext(user_id=user_id):
            prefs = self.get_preferences(user_id)
            blocks = self.get_blocks(day)
            events = self.get_events(day)
            report = analyze_breaks(day, blocks, events, prefs)
            logger.info("Break protection for %s: %d%%", day, report.protection_score)
            return report

    # =========================================================================
    # Slot scoring
    # =========================================================================

    def _busy_by_date(self, start_date: str, end_date: str) -> dict[str, list[BusyItem]]:
        busy = {}
        for day in daterange(start_date, end_date):
            _, items = self.get_busy_items(day.isoformat())
            busy[day.isoformat()] = items
        return busy

    def find_meeting_time(self, request: MeetingRequest, user_id: str | None = None) -> MeetingSearchResult:
        """Rank meeting windows across the request's date range."""
        if request.duration_minutes <= 0:
            raise InvalidInput("Meeting duration must be positive")
        if parse_date(request.end_date) < parse_date(request.start_date):
            raise InvalidInput("end_date must not be before start_date")
        with RequestContext(user_id=user_id):
            prefs = self.get_preferences(user_id)
            busy = self._busy_by_date(request.start_date, request.end_date)
            result = self.scorer.find_meeting_slots(request, busy, prefs)
            logger.info(
                "Meeting search: %d/%d viable slots", result.available_slots, result.total_slots_checked
            )
            return self._checked(result, validate_meeting_search)

    def find_best_time_slot(self, request: ActivityRequest, user_id: str | None = None) -> list[ActivityCandidate]:
        """Rank windows for an activity type (deep work, meetings, ...)."""
        if request.duration_minutes <= 0:
            raise InvalidInput("Activity duration must be positive")
        with RequestContext(user_id=user_id):
            prefs = self.get_preferences(user_id)
            busy = self._busy_by_date(request.start_date, request.end_date)
            candidates = self.scorer.find_activity_slots(request, busy, prefs)
            logger.info("Activity search (%s): %d candidates", request.activity_type.value, len(candidates))
            return candidates

    def find_tasks_for_slot(
        self,
        date: str,
        start_time: str,
        end_time: str,
        tasks: Iterable[TaskCandidate],
        energy_level: Level | None = None,
        context: str | None = None,
        exclude_ids: Iterable[str] = (),
    ) -> list[TaskMatch]:
        """Rank tasks for an explicit slot. Needs no collaborator data."""
        slot = TimeInterval(combine(date, start_time), combine(date, end_time))
        with RequestContext():
            matches = self.scorer.match_tasks_to_slot(slot, tasks, energy_level, context, exclude_ids)
            logger.info("Tasks for %s %s-%s: %d matches", date, start_time, end_time, len(matches))
            return matches

    def find_tasks_for_gaps(
        self,
        date: str,
        tasks: Sequence[TaskCandidate],
        user_id: str | None = None,
        context: str | None = None,
        exclude_ids: Iterable[str] = (),
    ) -> list[GapAssignment]:
        """Find the day's gaps, then rank tasks for each one."""
        day = parse_date(date).isoformat()
        with RequestContext(user_id=user_id):
            prefs = self.get_preferences(user_id)
            _, items = self.get_busy_items(day)
            work = prefs.work_window(day)
            gaps = find_gaps(work.start, work.end, items, self.config.gaps.min_gap_minutes)
            assignments = self.scorer.rank_tasks_for_gaps(gaps, tasks, context, exclude_ids)
            logger.info("Task fitting for %s: %d gaps", day, len(assignments))
            return assignments

    # =========================================================================
    # Workload
    # =========================================================================

    def balance_week(
        self, week_start: str, user_id: str | None = None, include_weekends: bool = False
    ) -> BalanceReport:
        """Per-day load for the Monday-based week, balance score and suggestions."""
        with RequestContext(user_id=user_id):
            prefs = self.get_preferences(user_id)
            blocks_by_date: dict[str, list[ScheduleBlock]] = {}
            events_by_date: dict[str, list[BusyItem]] = {}
            for day in week_days(week_start, include_weekends):
                blocks_by_date[day] = self.get_blocks(day)
                events_by_date[day] = self.get_events(day)

            report = analyze_week(
                week_start,
                blocks_by_date,
                events_by_date,
                prefs,
                include_weekends=include_weekends,
                config=self.config.workload,
                rebalancer=self.rebalancer,
            )
            logger.info(
                "Week of %s: balance score %d, %d suggestions",
                report.week_start,
                report.statistics["balance_score"],
                len(report.suggestions),
            )
            return self._checked(report, validate_balance_report)

    # =========================================================================
    # Batch planning
    # =========================================================================

    def batch_create_blocks(
        self,
        date: str,
        blocks: Sequence[ProposedBlock | Mapping],
        user_id: str | None = None,
    ) -> BatchResult:
        """
        Validate and create a batch of blocks for one date.

        Per-block problems (unknown types, missing fields, inverted times,
        overlaps, failed writes) are reported in the result. Only a failure
        to read the existing schedule fails the whole request.
        """
        day = parse_date(date).isoformat()
        with RequestContext(user_id=user_id):
            result = self._call("schedule_store", "get_blocks_for_date", self.planner.plan, day, list(blocks), user_id)
            return self._checked(result, validate_batch_result)
