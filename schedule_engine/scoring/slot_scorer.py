"""
Slot Scorer - Rank candidate time windows.

One scoring shape, score = base + sum(weighted factors), used by three
profiles:

- meeting placement: 30-minute grid over a date range, skipping lunch and
  weekends, checked against the user's busy items and (optionally) other
  attendees' availability
- task-to-slot fitting: free gaps are the candidates, tasks are ranked by
  duration fit, energy/complexity match, context keywords and priority
- activity placement: first fitting window of each free gap, scored for an
  activity type (deep work, meetings, ...)

Meeting and task scores are comparative and never clamped. Every result
carries the per-factor breakdown that produced it.

Attendee availability is tri-state. Without an availability source it is
`unknown`, which earns neither the all-available bonus nor a penalty.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum

from schedule_engine.collaborators import AttendeeAvailability
from schedule_engine.config import MeetingWeights, TaskWeights
from schedule_engine.errors import InvalidInput, UnresolvedDependency
from schedule_engine.models import (
    AttendeeStatus,
    BusyItem,
    BusySource,
    Gap,
    Level,
    Preferences,
    SlotCandidate,
    SlotFactors,
    TaskCandidate,
    TaskMatch,
    TimeInterval,
    _Serializable,
)
from schedule_engine.scoring.complexity import estimate_task_complexity
from schedule_engine.time_truth.gap_finder import complement
from schedule_engine.time_truth.interval_set import overlaps
from schedule_engine.timeutil import daterange, format_hhmm, is_weekend, minutes_between

logger = logging.getLogger(__name__)


def tally(base: float, contributions: Iterable[tuple[str, float]]) -> tuple[float, dict[str, float]]:
    """Sum a base score and named contributions; return (score, breakdown)."""
    breakdown = {"base": base}
    for name, value in contributions:
        breakdown[name] = breakdown.get(name, 0) + value
    return sum(breakdown.values()), breakdown


# =============================================================================
# MEETING PLACEMENT
# =============================================================================


@dataclass
class MeetingRequest(_Serializable):
    duration_minutes: int
    start_date: str
    end_date: str
    attendees: list[str] = field(default_factory=list)
    prefer_morning: bool = False
    prefer_afternoon: bool = False
    require_all_attendees: bool = True
    location: str | None = None


@dataclass
class MeetingSearchResult(_Serializable):
    top_slots: list[SlotCandidate]
    total_slots_checked: int
    available_slots: int

    @property
    def best_slot(self) -> SlotCandidate | None:
        return self.top_slots[0] if self.top_slots else None

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["best_slot"] = self.best_slot.to_dict() if self.best_slot else None
        return data


# =============================================================================
# TASK FITTING
# =============================================================================


@dataclass
class GapAssignment(_Serializable):
    gap: Gap
    energy_level: Level
    matches: list[TaskMatch]


# =============================================================================
# ACTIVITY PLACEMENT
# =============================================================================


class ActivityType(StrEnum):
    DEEP_WORK = "deep_work"
    MEETINGS = "meetings"
    CREATIVE = "creative"
    ADMINISTRATIVE = "administrative"
    LEARNING = "learning"


# (activity types, hour range [start, end), bonus) checked in order, first match wins
ACTIVITY_ENERGY_WINDOWS = (
    ((ActivityType.DEEP_WORK, ActivityType.CREATIVE), (9, 11), 30),
    ((ActivityType.DEEP_WORK, ActivityType.CREATIVE), (7, 9), 20),
    ((ActivityType.MEETINGS,), (14, 16), 25),
    ((ActivityType.ADMINISTRATIVE,), (13, 15), 20),
)
ACTIVITY_BASE = 50
ACTIVITY_PREFERENCE_BONUS = 15
ACTIVITY_CONSTRAINT_PENALTY = 50
ACTIVITY_QUIET_HOURS_BONUS = 10
ACTIVITY_TOP_K = 5
# Days with at least this many calendar events are skipped when avoiding meeting days
MEETING_HEAVY_DAY_EVENTS = 3


@dataclass
class ActivityRequest(_Serializable):
    activity_type: ActivityType
    duration_minutes: int
    start_date: str
    end_date: str
    must_be_after: str | None = None
    must_be_before: str | None = None
    prefer_morning: bool = False
    prefer_afternoon: bool = False
    avoid_meeting_days: bool = False

    def __post_init__(self):
        self.activity_type = ActivityType(self.activity_type)


@dataclass
class ActivityCandidate(_Serializable):
    date: str
    start: datetime
    end: datetime
    score: float
    breakdown: dict[str, float]
    reasons: list[str]

    @property
    def start_time(self) -> str:
        return format_hhmm(self.start)


# =============================================================================
# SCORER
# =============================================================================


class SlotScorer:
    """
    Scores candidate windows for meetings, tasks and activities.

    Args:
        meeting_weights: Meeting-placement weight profile
        task_weights: Task-to-slot weight profile
        availability: Optional source for other attendees' free/busy
        travel_buffer_minutes: Window around a slot checked for travel to/from other locations

    Raises:
        InvalidInput: If the meeting grid step is not positive
    """

    def __init__(
        self,
        meeting_weights: MeetingWeights | None = None,
        task_weights: TaskWeights | None = None,
        availability: AttendeeAvailability | None = None,
        travel_buffer_minutes: int = 30,
    ):
        self.meeting_weights = meeting_weights or MeetingWeights()
        if self.meeting_weights.grid_minutes <= 0:
            raise InvalidInput(f"Meeting grid must be positive, got {self.meeting_weights.grid_minutes} minutes")
        self.task_weights = task_weights or TaskWeights()
        self.availability = availability
        self.travel_buffer_minutes = travel_buffer_minutes

    @classmethod
    def from_config(cls, config, availability: AttendeeAvailability | None = None) -> "SlotScorer":
        return cls(
            meeting_weights=config.meeting_scoring,
            task_weights=config.task_scoring,
            availability=availability,
            travel_buffer_minutes=config.conflicts.travel_buffer_minutes,
        )

    # -------------------------------------------------------------------------
    # Meeting placement
    # -------------------------------------------------------------------------

    def candidate_windows(self, day, duration_minutes: int, preferences: Preferences) -> list[TimeInterval]:
        """
        Grid candidates for one day: from work start, each ending by lunch;
        from lunch end, each ending by work end.
        """
        step = timedelta(minutes=self.meeting_weights.grid_minutes)
        length = timedelta(minutes=duration_minutes)
        work = preferences.work_window(day)
        lunch = preferences.lunch_window(day)

        if lunch is None:
            ranges = [(work.start, work.end)]
        else:
            ranges = [(work.start, lunch.start), (lunch.end, work.end)]

        windows = []
        for range_start, range_end in ranges:
            slot_start = range_start
            while slot_start < range_end:
                slot_end = slot_start + length
                if slot_end <= range_end:
                    windows.append(TimeInterval(slot_start, slot_end))
                slot_start += step
        return windows

    def attendee_status(self, attendees: Sequence[str], window: TimeInterval) -> tuple[AttendeeStatus, int]:
        """
        Resolve other attendees' availability for a window.

        Returns:
            (status, number of attendees known to be unavailable)
        """
        if not attendees:
            return AttendeeStatus.AVAILABLE, 0
        if self.availability is None:
            return AttendeeStatus.UNKNOWN, 0

        answers = []
        for attendee in attendees:
            try:
                answers.append(self.availability.is_available(attendee, window.start, window.end))
            except UnresolvedDependency as exc:
                logger.info("Availability for %s unresolved: %s", attendee, exc)
                answers.append(None)
        unavailable = sum(1 for answer in answers if answer is False)
        if unavailable:
            return AttendeeStatus.UNAVAILABLE, unavailable
        if any(answer is None for answer in answers):
            return AttendeeStatus.UNKNOWN, 0
        return AttendeeStatus.AVAILABLE, 0

    def _travel_clear(self, window: TimeInterval, busy: Sequence[BusyItem], location: str | None) -> bool:
        reach = timedelta(minutes=self.travel_buffer_minutes)
        for item in busy:
            if not item.location or item.location == location:
                continue
            if window.start - reach < item.end <= window.start:
                return False
            if window.end <= item.start < window.end + reach:
                return False
        return True

    def score_meeting_factors(
        self,
        start: datetime,
        factors: SlotFactors,
        prefer_morning: bool = False,
        prefer_afternoon: bool = False,
    ) -> tuple[float, dict[str, float]]:
        """
        Fill the time-of-day factors on `factors` and compute the score.

        `factors.all_available`, `conflict_count` and `travel_time` must already be set.
        """
        w = self.meeting_weights
        hour = start.hour

        factors.preferred_time = (prefer_morning and hour < 12) or (prefer_afternoon and hour >= 13)
        factors.energy_alignment = 10 <= hour < 11 or 14 <= hour < 16
        factors.minimizes_disruption = hour in (9, 16)

        contributions = []
        if factors.all_available:
            contributions.append(("all_available", w.all_available_bonus))
        else:
            contributions.append(("conflicts", -w.conflict_penalty * factors.conflict_count))
        if factors.preferred_time:
            contributions.append(("preferred_time", w.preferred_time_bonus))
        if factors.energy_alignment:
            contributions.append(("energy_alignment", w.energy_alignment_bonus))
        if factors.minimizes_disruption:
            contributions.append(("minimizes_disruption", w.minimizes_disruption_bonus))
        if factors.travel_time and w.travel_time_bonus:
            contributions.append(("travel_time", w.travel_time_bonus))
        return tally(w.base, contributions)

    def score_meeting_slot(
        self, request: MeetingRequest, window: TimeInterval, busy: Sequence[BusyItem]
    ) -> SlotCandidate | None:
        """
        Score one window for a meeting request.

        Returns:
            The scored candidate, or None when require_all_attendees eliminates it
        """
        own_conflicts = sum(1 for item in busy if overlaps(item, window))
        if own_conflicts and request.require_all_attendees:
            return None

        status, unavailable = self.attendee_status(request.attendees, window)
        if status == AttendeeStatus.UNAVAILABLE and request.require_all_attendees:
            return None

        conflict_count = own_conflicts + unavailable
        factors = SlotFactors(
            all_available=conflict_count == 0 and status == AttendeeStatus.AVAILABLE,
            travel_time=self._travel_clear(window, busy, request.location),
            attendee_availability=status,
            conflict_count=conflict_count,
        )
        score, breakdown = self.score_meeting_factors(
            window.start, factors, request.prefer_morning, request.prefer_afternoon
        )
        return SlotCandidate(
            date=window.start.date().isoformat(),
            start=window.start,
            end=window.end,
            score=score,
            factors=factors,
            breakdown=breakdown,
        )

    def find_meeting_slots(
        self,
        request: MeetingRequest,
        busy_by_date: Mapping[str, Sequence[BusyItem]],
        preferences: Preferences,
    ) -> MeetingSearchResult:
        """
        Search a date range for the best meeting windows.

        Args:
            request: Duration, attendees, range and time preferences
            busy_by_date: The user's busy items (blocks and events) keyed by ISO date
            preferences: Work day and lunch window

        Returns:
            Top-K candidates by score, ties kept in chronological order
        """
        checked = 0
        scored: list[SlotCandidate] = []

        for day in daterange(request.start_date, request.end_date):
            if self.meeting_weights.skip_weekends and is_weekend(day):
                continue
            busy = busy_by_date.get(day.isoformat(), ())
            for window in self.candidate_windows(day, request.duration_minutes, preferences):
                checked += 1
                candidate = self.score_meeting_slot(request, window, busy)
                if candidate is not None:
                    scored.append(candidate)

        scored.sort(key=lambda c: -c.score)
        logger.debug(
            "Meeting search %s..%s: %d checked, %d viable",
            request.start_date,
            request.end_date,
            checked,
            len(scored),
        )
        return MeetingSearchResult(
            top_slots=scored[: self.meeting_weights.top_k],
            total_slots_checked=checked,
            available_slots=len(scored),
        )

    # -------------------------------------------------------------------------
    # Task-to-slot fitting
    # -------------------------------------------------------------------------

    def score_task(
        self,
        task: TaskCandidate,
        slot: TimeInterval,
        energy_level: Level | None = None,
        context: str | None = None,
    ) -> TaskMatch | None:
        """Score a task for a slot. Tasks longer than the slot are excluded (None)."""
        w = self.task_weights
        slot_minutes = minutes_between(slot.start, slot.end)
        estimate = task.estimated_minutes or 30
        if estimate > slot_minutes:
            return None

        contributions = []
        reasons = []

        ratio = estimate / slot_minutes
        if 0.8 <= ratio <= 1.0:
            contributions.append(("duration", w.perfect_fit_bonus))
            reasons.append("Perfect duration fit")
        elif ratio >= 0.5:
            contributions.append(("duration", w.good_fit_bonus))
            reasons.append("Good duration fit")
        else:
            contributions.append(("duration", w.short_task_bonus))
            reasons.append("Short task for slot")

        energy = 0.0
        if energy_level is not None:
            energy_level = Level(energy_level)
            complexity = estimate_task_complexity(task)
            if complexity == energy_level:
                energy = w.energy_match_bonus
                reasons.append(f"{complexity.value.capitalize()} complexity matches {energy_level.value} energy")
            elif {complexity, energy_level} == {Level.HIGH, Level.LOW}:
                energy = -w.energy_mismatch_penalty
                reasons.append("Energy mismatch")
        contributions.append(("energy", energy))

        matched = []
        if context:
            text = f"{task.title} {task.description or ''}".lower()
            tokens = dict.fromkeys(t for t in context.lower().split() if t)
            matched = [t for t in tokens if t in text]
            if matched:
                reasons.append(f"Matches context: {', '.join(matched)}")
        contributions.append(("context", w.context_token_bonus * len(matched)))

        priority = 0.0
        if task.priority == Level.HIGH:
            priority = w.high_priority_bonus
            reasons.append("High priority")
        elif task.priority == Level.MEDIUM:
            priority = w.medium_priority_bonus
            reasons.append("Medium priority")
        contributions.append(("priority", priority))

        breakdown = dict(contributions)
        score = sum(breakdown.values())
        return TaskMatch(
            task=task,
            slot_start=slot.start,
            slot_end=slot.end,
            score=score,
            breakdown=breakdown,
            reasons=reasons,
        )

    def match_tasks_to_slot(
        self,
        slot: TimeInterval,
        tasks: Iterable[TaskCandidate],
        energy_level: Level | None = None,
        context: str | None = None,
        exclude_ids: Iterable[str] = (),
        limit: int | None = None,
    ) -> list[TaskMatch]:
        """Rank tasks for one slot, best first; at most `limit` (default top_k) results."""
        excluded = set(exclude_ids)
        matches = []
        for task in tasks:
            if task.id in excluded:
                continue
            match = self.score_task(task, slot, energy_level, context)
            if match is not None:
                matches.append(match)
        matches.sort(key=lambda m: -m.score)
        return matches[: limit or self.task_weights.top_k]

    def rank_tasks_for_gaps(
        self,
        gaps: Iterable[Gap],
        tasks: Sequence[TaskCandidate],
        context: str | None = None,
        exclude_ids: Iterable[str] = (),
    ) -> list[GapAssignment]:
        """
        Rank tasks for each gap. A gap's quality stands in for the energy level
        expected during it.
        """
        excluded = set(exclude_ids)
        assignments = []
        for gap in gaps:
            slot = TimeInterval(gap.start, gap.end)
            matches = self.match_tasks_to_slot(slot, tasks, gap.quality, context, excluded)
            assignments.append(GapAssignment(gap=gap, energy_level=gap.quality, matches=matches))
        return assignments

    # -------------------------------------------------------------------------
    # Activity placement
    # -------------------------------------------------------------------------

    def score_activity_slot(self, request: ActivityRequest, window: TimeInterval) -> ActivityCandidate:
        """Score a window for an activity type. Clamped to 0..100."""
        hour = window.start.hour
        contributions = []

        energy = 0
        for types, (low, high), bonus in ACTIVITY_ENERGY_WINDOWS:
            if request.activity_type in types and low <= hour < high:
                energy = bonus
                break
        contributions.append(("energy_alignment", energy))

        preference = 0
        if (request.prefer_morning and hour < 12) or (request.prefer_afternoon and hour >= 12):
            preference = ACTIVITY_PREFERENCE_BONUS
        contributions.append(("preference_match", preference))

        start_hhmm = format_hhmm(window.start)
        end_hhmm = format_hhmm(window.end)
        penalty = 0
        if request.must_be_after and start_hhmm < request.must_be_after:
            penalty -= ACTIVITY_CONSTRAINT_PENALTY
        if request.must_be_before and end_hhmm > request.must_be_before:
            penalty -= ACTIVITY_CONSTRAINT_PENALTY
        contributions.append(("constraints", penalty))

        quiet = 0
        if request.activity_type == ActivityType.DEEP_WORK and (hour < 9 or hour > 16):
            quiet = ACTIVITY_QUIET_HOURS_BONUS
        contributions.append(("context_match", quiet))

        score, breakdown = tally(ACTIVITY_BASE, contributions)

        reasons = []
        if energy > 20:
            reasons.append("High energy alignment")
        if preference:
            reasons.append("Matches time preference")
        if hour < 10:
            reasons.append("Early morning focus")

        return ActivityCandidate(
            date=window.start.date().isoformat(),
            start=window.start,
            end=window.end,
            score=max(0, min(100, score)),
            breakdown=breakdown,
            reasons=reasons or ["Standard time slot"],
        )

    def find_activity_slots(
        self,
        request: ActivityRequest,
        busy_by_date: Mapping[str, Sequence[BusyItem]],
        preferences: Preferences,
    ) -> list[ActivityCandidate]:
        """
        Candidate = start of every free gap long enough for the activity, on weekdays.
        """
        length = timedelta(minutes=request.duration_minutes)
        candidates = []
        for day in daterange(request.start_date, request.end_date):
            if is_weekend(day):
                continue
            busy = list(busy_by_date.get(day.isoformat(), ()))
            if request.avoid_meeting_days:
                events = sum(1 for item in busy if item.source == BusySource.CALENDAR_EVENT)
                if events >= MEETING_HEAVY_DAY_EVENTS:
                    continue
            for free in complement(preferences.work_window(day), busy):
                if free.end - free.start >= length:
                    window = TimeInterval(free.start, free.start + length)
                    candidates.append(self.score_activity_slot(request, window))

        candidates.sort(key=lambda c: -c.score)
        return candidates[:ACTIVITY_TOP_K]

