"""Output contracts for the scheduling engine."""

from .schema import (
    SCHEMA_VERSION,
    BalanceReportContract,
    BatchResultContract,
    ConflictReportContract,
    GapReportContract,
    MeetingSearchContract,
    validate_balance_report,
    validate_batch_result,
    validate_conflict_report,
    validate_gap_report,
    validate_meeting_search,
)

__all__ = [
    "SCHEMA_VERSION",
    "BalanceReportContract",
    "BatchResultContract",
    "ConflictReportContract",
    "GapReportContract",
    "MeetingSearchContract",
    "validate_balance_report",
    "validate_batch_result",
    "validate_conflict_report",
    "validate_gap_report",
    "validate_meeting_search",
]
