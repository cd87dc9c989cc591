"""
Centralized configuration for the scheduling engine.

Loads config/scheduling.yaml (see paths.config_path for resolution). Falls
back to hardcoded defaults when the file is missing or unreadable. Scalar
overrides via environment variables where marked.
"""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path

import yaml

from schedule_engine import paths

logger = logging.getLogger(__name__)

# ============================================================
# Environment overrides
# ============================================================

ENV_OVERRIDES: dict[str, tuple[str, str, type]] = {
    "SCHEDULE_ENGINE_BUFFER_MINUTES": ("conflicts", "buffer_minutes", int),
    "SCHEDULE_ENGINE_TRAVEL_BUFFER_MINUTES": ("conflicts", "travel_buffer_minutes", int),
    "SCHEDULE_ENGINE_MIN_GAP_MINUTES": ("gaps", "min_gap_minutes", int),
    "SCHEDULE_ENGINE_PLANNER_MODE": ("planner", "mode", str),
    "SCHEDULE_ENGINE_WORK_START": ("work_day", "work_start", str),
    "SCHEDULE_ENGINE_WORK_END": ("work_day", "work_end", str),
}


# Keys that must be positive numbers; anything else falls back to the default
POSITIVE_KEYS: dict[str, tuple[str, ...]] = {
    "work_day": ("reference_day_minutes",),
    "meeting_scoring": ("grid_minutes", "top_k"),
    "task_scoring": ("top_k",),
}


# ============================================================
# Sections
# ============================================================


@dataclass
class WorkDayConfig:
    work_start: str = "09:00"
    work_end: str = "17:00"
    lunch_start: str = "12:00"
    lunch_duration_minutes: int = 60
    reference_day_minutes: int = 480


@dataclass
class ConflictConfig:
    buffer_minutes: int = 15
    travel_buffer_minutes: int = 30
    check_travel_time: bool = True


@dataclass
class GapConfig:
    min_gap_minutes: int = 30
    focus_min_block_minutes: int = 60


@dataclass
class MeetingWeights:
    base: float = 100
    all_available_bonus: float = 50
    conflict_penalty: float = 10
    preferred_time_bonus: float = 20
    energy_alignment_bonus: float = 15
    minimizes_disruption_bonus: float = 10
    travel_time_bonus: float = 0
    grid_minutes: int = 30
    top_k: int = 5
    skip_weekends: bool = True


@dataclass
class TaskWeights:
    perfect_fit_bonus: float = 40
    good_fit_bonus: float = 25
    short_task_bonus: float = 10
    energy_match_bonus: float = 30
    energy_mismatch_penalty: float = 10
    context_token_bonus: float = 10
    high_priority_bonus: float = 15
    medium_priority_bonus: float = 5
    top_k: int = 5


@dataclass
class WorkloadConfig:
    overloaded_threshold: int = 85
    underloaded_threshold: int = 60
    max_movable_minutes: int = 120
    split_threshold_minutes: int = 180
    max_suggestions: int = 5


@dataclass
class PlannerConfig:
    mode: str = "best_effort"


@dataclass
class SchedulingConfig:
    work_day: WorkDayConfig = field(default_factory=WorkDayConfig)
    conflicts: ConflictConfig = field(default_factory=ConflictConfig)
    gaps: GapConfig = field(default_factory=GapConfig)
    meeting_scoring: MeetingWeights = field(default_factory=MeetingWeights)
    task_scoring: TaskWeights = field(default_factory=TaskWeights)
    workload: WorkloadConfig = field(default_factory=WorkloadConfig)
    planner: PlannerConfig = field(default_factory=PlannerConfig)

    @classmethod
    def from_dict(cls, data: dict | None) -> "SchedulingConfig":
        """Build a config from a (possibly partial) dict. Unknown keys are ignored with a warning."""
        data = data or {}
        kwargs = {}
        for section in fields(cls):
            section_cls = section.default_factory
            raw = data.get(section.name) or {}
            if not isinstance(raw, dict):
                logger.warning("Config section %r is not a mapping, using defaults", section.name)
                raw = {}
            known = {f.name for f in fields(section_cls)}
            unknown = set(raw) - known
            if unknown:
                logger.warning("Ignoring unknown keys in %s: %s", section.name, sorted(unknown))
            values = {k: v for k, v in raw.items() if k in known}
            for key in POSITIVE_KEYS.get(section.name, ()):
                if key in values and not _is_positive(values[key]):
                    logger.warning(
                        "Config %s.%s must be a positive number, got %r; using default", section.name, key, values[key]
                    )
                    del values[key]
            kwargs[section.name] = section_cls(**values)
        return cls(**kwargs)


def _is_positive(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


def _load_yaml(config_path: Path) -> dict:
    """Load YAML config, return empty dict on failure."""
    if not config_path.exists():
        logger.warning("Scheduling config not found at %s, using defaults", config_path)
        return {}
    try:
        with open(config_path) as f:
            return yaml.safe_load(f) or {}
    except (yaml.YAMLError, OSError) as exc:
        logger.error("Failed to load scheduling config: %s", exc)
        return {}


def _apply_env_overrides(data: dict) -> dict:
    for env_var, (section, key, cast) in ENV_OVERRIDES.items():
        raw = os.environ.get(env_var)
        if raw is None:
            continue
        try:
            value = cast(raw)
        except ValueError:
            logger.warning("Ignoring %s=%r: expected %s", env_var, raw, cast.__name__)
            continue
        data.setdefault(section, {})
        if not isinstance(data[section], dict):
            data[section] = {}
        data[section][key] = value
    return data


def load_config(config_path: Path | None = None) -> SchedulingConfig:
    """Load configuration from YAML plus environment overrides."""
    path = config_path or paths.config_path()
    data = _apply_env_overrides(_load_yaml(path))
    return SchedulingConfig.from_dict(data)


_config: SchedulingConfig | None = None


def get_config() -> SchedulingConfig:
    """Get the process-wide default config (loaded on first use)."""
    global _config  # noqa: PLW0603
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Drop the cached config so the next get_config() reloads it."""
    global _config  # noqa: PLW0603
    _config = None
