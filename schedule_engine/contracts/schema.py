"""
Schema Module - Pydantic models for engine output shapes.

These models define the shape the display layer can rely on. Every result
the service produces serializes (via to_dict) into one of these contracts.

- Derived entities carry no ids of their own; referenced items always do
- Scores inside 0..100 where the engine guarantees it (load, balance)
- Meeting and task scores are unbounded and only compared, never normalized
"""

from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

SCHEMA_VERSION = "1.0.0"

Level = Literal["high", "medium", "low"]
HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


# =============================================================================
# SHARED
# =============================================================================


class BusyItemContract(BaseModel):
    """Snapshot of anything that occupies time."""

    id: str
    title: str
    start: str
    end: str
    source: Literal["schedule_block", "calendar_event", "preference_block"]
    location: str | None = None
    recurring: bool = False
    kind: str | None = None
    fixed: bool = False

    @model_validator(mode="after")
    def validate_range(self):
        if self.end <= self.start:
            raise ValueError(f"busy item {self.id} ends before it starts")
        return self


class ScheduleBlockContract(BaseModel):
    id: str
    type: Literal["work", "meeting", "email", "break", "blocked"]
    title: str
    date: str
    start_time: str = Field(pattern=HHMM_PATTERN)
    end_time: str = Field(pattern=HHMM_PATTERN)
    description: str | None = None
    assigned_task_ids: list[str] = Field(default_factory=list)
    metadata: dict = Field(default_factory=dict)


# =============================================================================
# CONFLICTS
# =============================================================================


class ConflictContract(BaseModel):
    type: Literal["time_overlap", "travel_time", "resource", "preference"]
    severity: Level
    items: list[BusyItemContract] = Field(min_length=2)
    description: str
    suggestions: list[str] = Field(default_factory=list)


class ConflictReportContract(BaseModel):
    """Conflicts for a day. No two conflicts share (type, item-id set)."""

    date: str
    conflicts: list[ConflictContract]
    summary: dict[str, int]

    @model_validator(mode="after")
    def validate_deduplicated(self):
        seen = set()
        for conflict in self.conflicts:
            key = (conflict.type, tuple(sorted(i.id for i in conflict.items)))
            if key in seen:
                raise ValueError(f"duplicate conflict {key}")
            seen.add(key)
        return self


# =============================================================================
# GAPS
# =============================================================================


class GapContract(BaseModel):
    start: str
    end: str
    duration_minutes: int = Field(gt=0)
    day_part: Literal["morning", "midday", "afternoon", "evening"]
    quality: Level
    suitable_for: list[str] = Field(min_length=1)


class GapStatisticsContract(BaseModel):
    total_gaps: int = Field(ge=0)
    total_gap_minutes: int = Field(ge=0)
    total_gap_hours: float = Field(ge=0)
    largest_gap_minutes: int = Field(ge=0)
    average_gap_minutes: int = Field(ge=0)
    utilization_percentage: int


class GapReportContract(BaseModel):
    """Gaps are chronological and never overlap."""

    date: str
    gaps: list[GapContract]
    statistics: GapStatisticsContract

    @model_validator(mode="after")
    def validate_ordering(self):
        for earlier, later in zip(self.gaps, self.gaps[1:]):
            if later.start < earlier.end:
                raise ValueError(f"gaps overlap or are out of order at {later.start}")
        if self.statistics.total_gaps != len(self.gaps):
            raise ValueError("statistics.total_gaps does not match gaps")
        return self


# =============================================================================
# SLOTS
# =============================================================================


class SlotFactorsContract(BaseModel):
    all_available: bool
    preferred_time: bool
    minimizes_disruption: bool
    energy_alignment: bool
    travel_time: bool
    attendee_availability: Literal["available", "unavailable", "unknown"]
    conflict_count: int = Field(ge=0)

    @model_validator(mode="after")
    def validate_unknown_is_not_available(self):
        """Unknown attendee availability must never be reported as all-available."""
        if self.all_available and self.attendee_availability != "available":
            raise ValueError("all_available requires attendee_availability == 'available'")
        return self


class SlotCandidateContract(BaseModel):
    date: str
    start: str
    end: str
    score: float
    factors: SlotFactorsContract
    breakdown: dict[str, float] = Field(min_length=1)

    @model_validator(mode="after")
    def validate_breakdown_sums(self):
        if abs(sum(self.breakdown.values()) - self.score) > 1e-6:
            raise ValueError("score does not equal the sum of its breakdown")
        return self


class MeetingSearchContract(BaseModel):
    top_slots: list[SlotCandidateContract]
    total_slots_checked: int = Field(ge=0)
    available_slots: int = Field(ge=0)
    best_slot: SlotCandidateContract | None = None

    @field_validator("top_slots")
    @classmethod
    def validate_sorted(cls, v):
        scores = [s.score for s in v]
        if scores != sorted(scores, reverse=True):
            raise ValueError("top_slots must be sorted by descending score")
        return v


# =============================================================================
# WORKLOAD
# =============================================================================


class DayLoadContract(BaseModel):
    date: str
    total_minutes: int = Field(ge=0)
    work_minutes: int = Field(ge=0)
    meeting_minutes: int = Field(ge=0)
    break_minutes: int = Field(ge=0)
    load_score: int = Field(ge=0, le=100)
    item_count: int = Field(ge=0)


class BalanceSuggestionContract(BaseModel):
    kind: Literal["move", "split"]
    from_date: str
    to_date: str
    item: dict
    impact: str
    feasibility: Level


class BalanceStatisticsContract(BaseModel):
    average_load_minutes: int = Field(ge=0)
    average_load_hours: float = Field(ge=0)
    max_variance_percentage: int = Field(ge=0)
    balance_score: int = Field(ge=0, le=100)
    overloaded_days: list[str]
    underloaded_days: list[str]


class BalanceReportContract(BaseModel):
    week_start: str
    target_minutes_per_day: int = Field(gt=0)
    day_loads: list[DayLoadContract]
    statistics: BalanceStatisticsContract
    suggestions: list[BalanceSuggestionContract]


# =============================================================================
# BATCH PLANNING
# =============================================================================


class RejectedBlockContract(BaseModel):
    """A rejected proposal. The block is echoed as given, malformed times included."""

    block: dict
    reason: str = Field(min_length=1)
    conflicts_with: str | None = None
    conflicts_with_id: str | None = None


class BatchResultContract(BaseModel):
    date: str
    created: list[ScheduleBlockContract]
    conflicts: list[RejectedBlockContract]
    total_requested: int = Field(ge=0)
    total_created: int = Field(ge=0)
    committed: bool

    @model_validator(mode="after")
    def validate_counts(self):
        if self.total_created != len(self.created):
            raise ValueError("total_created does not match created blocks")
        if len(self.created) + len(self.conflicts) > self.total_requested:
            raise ValueError("more outcomes than requested blocks")
        return self


# =============================================================================
# VALIDATION HELPERS
# =============================================================================


def validate_conflict_report(data: dict) -> ConflictReportContract:
    """
    Validate a conflict report.

    Raises:
        ValidationError: If the shape is invalid
    """
    return ConflictReportContract.model_validate(data)


def validate_gap_report(data: dict) -> GapReportContract:
    return GapReportContract.model_validate(data)


def validate_meeting_search(data: dict) -> MeetingSearchContract:
    return MeetingSearchContract.model_validate(data)


def validate_balance_report(data: dict) -> BalanceReportContract:
    return BalanceReportContract.model_validate(data)


def validate_batch_result(data: dict) -> BatchResultContract:
    return BatchResultContract.model_validate(data)

