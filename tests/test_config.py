"""
Tests for configuration loading: YAML file, defaults and env overrides.
"""

import logging

from schedule_engine import paths
from schedule_engine.config import SchedulingConfig, get_config, load_config, reset_config


def test_bundled_config_matches_defaults():
    assert load_config(paths.config_dir() / "scheduling.yaml") == SchedulingConfig()


def test_missing_file_falls_back_to_defaults(tmp_path, caplog):
    with caplog.at_level(logging.WARNING):
        config = load_config(tmp_path / "absent.yaml")
    assert config == SchedulingConfig()
    assert "not found" in caplog.text


def test_partial_file_overrides_only_given_keys(tmp_path):
    path = tmp_path / "scheduling.yaml"
    path.write_text("conflicts:\n  buffer_minutes: 5\nplanner:\n  mode: all_or_nothing\n")
    config = load_config(path)
    assert config.conflicts.buffer_minutes == 5
    assert config.conflicts.travel_buffer_minutes == 30
    assert config.planner.mode == "all_or_nothing"


def test_unknown_keys_ignored_with_warning(tmp_path, caplog):
    path = tmp_path / "scheduling.yaml"
    path.write_text("gaps:\n  min_gap_minutes: 45\n  shiny: true\nworkload: not-a-mapping\n")
    with caplog.at_level(logging.WARNING):
        config = load_config(path)
    assert config.gaps.min_gap_minutes == 45
    assert config.workload == SchedulingConfig().workload
    assert "shiny" in caplog.text


def test_invalid_yaml_falls_back(tmp_path, caplog):
    path = tmp_path / "scheduling.yaml"
    path.write_text("conflicts: [unclosed\n")
    with caplog.at_level(logging.ERROR):
        config = load_config(path)
    assert config == SchedulingConfig()


def test_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("SCHEDULE_ENGINE_BUFFER_MINUTES", "20")
    monkeypatch.setenv("SCHEDULE_ENGINE_WORK_START", "08:30")
    monkeypatch.setenv("SCHEDULE_ENGINE_MIN_GAP_MINUTES", "lots")
    config = load_config(tmp_path / "absent.yaml")
    assert config.conflicts.buffer_minutes == 20
    assert config.work_day.work_start == "08:30"
    assert config.gaps.min_gap_minutes == 30


def test_config_path_env_var(tmp_path, monkeypatch):
    path = tmp_path / "custom.yaml"
    path.write_text("gaps:\n  min_gap_minutes: 10\n")
    monkeypatch.setenv("SCHEDULE_ENGINE_CONFIG", str(path))
    assert paths.config_path() == path.resolve()
    assert load_config().gaps.min_gap_minutes == 10


def test_home_config_preferred_over_bundled(tmp_path, monkeypatch):
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "scheduling.yaml").write_text("gaps:\n  min_gap_minutes: 15\n")
    monkeypatch.setenv("SCHEDULE_ENGINE_HOME", str(tmp_path))
    assert load_config().gaps.min_gap_minutes == 15


def test_get_config_cached_until_reset():
    first = get_config()
    assert get_config() is first
    reset_config()
    assert get_config() is not first


def test_non_positive_grid_and_top_k_fall_back(tmp_path, caplog):
    path = tmp_path / "scheduling.yaml"
    path.write_text(
        "meeting_scoring:\n  grid_minutes: 0\n  top_k: -1\n  base: 90\n"
        "task_scoring:\n  top_k: 0\n"
        "work_day:\n  reference_day_minutes: '480'\n"
    )
    with caplog.at_level(logging.WARNING):
        config = load_config(path)
    defaults = SchedulingConfig()
    assert config.meeting_scoring.grid_minutes == defaults.meeting_scoring.grid_minutes
    assert config.meeting_scoring.top_k == defaults.meeting_scoring.top_k
    assert config.meeting_scoring.base == 90
    assert config.task_scoring.top_k == defaults.task_scoring.top_k
    assert config.work_day.reference_day_minutes == 480
    assert "grid_minutes must be a positive number" in caplog.text
