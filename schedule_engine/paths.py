from __future__ import annotations

import os
from pathlib import Path

APP_ENV_HOME = "SCHEDULE_ENGINE_HOME"
APP_ENV_CONFIG = "SCHEDULE_ENGINE_CONFIG"


def project_root() -> Path:
    """
    Repository/project root directory.
    Contains schedule_engine/, config/, tests/.
    """
    return Path(__file__).parent.parent.resolve()


def app_home() -> Path:
    """
    User-writable home for the scheduling engine.
    Override with SCHEDULE_ENGINE_HOME.
    """
    if os.environ.get(APP_ENV_HOME):
        return Path(os.environ[APP_ENV_HOME]).expanduser().resolve()
    return (Path.home() / ".schedule_engine").resolve()


def config_dir() -> Path:
    """Bundled configuration directory (config/ at the project root)."""
    return project_root() / "config"


def config_path() -> Path:
    """
    Canonical path of the scheduling config file.

    Resolution order:
    1. SCHEDULE_ENGINE_CONFIG env var (explicit override)
    2. $SCHEDULE_ENGINE_HOME/config/scheduling.yaml if it exists
    3. config/scheduling.yaml bundled with the project
    """
    if os.environ.get(APP_ENV_CONFIG):
        return Path(os.environ[APP_ENV_CONFIG]).expanduser().resolve()
    if os.environ.get(APP_ENV_HOME):
        user_config = app_home() / "config" / "scheduling.yaml"
        if user_config.exists():
            return user_config
    return config_dir() / "scheduling.yaml"
