"""
Capacity Truth Module

Tracks how much of the work day (and week) is spoken for.

Objects:
- DayLoad (per-day totals and load score)
- BalanceReport (week variance, balance score, suggestions)
- UtilizationReport (single-day efficiency)

Invariants:
- load_score and balance_score stay within 0..100
- Rebalancing is a heuristic behind the Rebalancer protocol
"""

from .utilization import UtilizationReport, analyze_utilization
from .workload_balancer import (
    BalanceReport,
    GreedyRebalancer,
    Rebalancer,
    analyze_week,
    balance_statistics,
    day_load,
    week_days,
)

__all__ = [
    "BalanceReport",
    "GreedyRebalancer",
    "Rebalancer",
    "UtilizationReport",
    "analyze_utilization",
    "analyze_week",
    "balance_statistics",
    "day_load",
    "week_days",
]
