"""
Configuration loader for the feature tracker.

Settings come from <project>/tracker.env (optional), then TRACKER_* environment
variables, which win. Bad numbers/booleans fall back to defaults with a
warning rather than failing the command.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from . import envparse
from .constants import (
    CONFIG_FILE,
    DEFAULT_FEATURE_LIST_FILE,
    DEFAULT_LOCK_TIMEOUT,
    DEFAULT_PROGRESS_CAP,
    DEFAULT_PROGRESS_FILE,
    STATE_DIR,
)

logger = logging.getLogger(__name__)

ENV_PREFIX = "TRACKER_"

KNOWN_KEYS = {
    "PROJECT_NAME",
    "PROGRESS_FILE",
    "FEATURE_LIST_FILE",
    "PROGRESS_CAP",
    "LOCK_TIMEOUT",
    "AUTO_SAVE",
    "STRICT_TRANSITIONS",
}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass
class TrackerConfig:
    """Resolved tracker settings for one project workspace."""
    project_dir: Path
    project_name: str
    progress_file: Path
    feature_list_file: Path
    progress_cap: int = DEFAULT_PROGRESS_CAP
    lock_timeout: int = DEFAULT_LOCK_TIMEOUT
    auto_save: bool = True
    strict_transitions: bool = False

    @property
    def state_dir(self) -> Path:
        """Directory for tracker-private files (lock file)."""
        return self.project_dir / STATE_DIR

    @property
    def lock_file(self) -> Path:
        return self.state_dir / "workspace.lock"


def _as_int(key: str, value: str | None, default: int, minimum: int = 1) -> int:
    if value is None or value == "":
        return default
    try:
        parsed = int(value)
    except ValueError:
        logger.warning(f"Invalid {key} '{value}', using default {default}")
        return default
    if parsed < minimum:
        logger.warning(f"{key}={parsed} is below {minimum}, using default {default}")
        return default
    return parsed


def _as_bool(key: str, value: str | None, default: bool) -> bool:
    if value is None or value == "":
        return default
    token = value.strip().lower()
    if token in _TRUE:
        return True
    if token in _FALSE:
        return False
    logger.warning(f"Invalid {key} '{value}', using default {default}")
    return default


def _resolve_path(project_dir: Path, value: str | None, default: str) -> Path:
    path = Path(value) if value else Path(default)
    if not path.is_absolute():
        path = project_dir / path
    return path


def load_tracker_config(project_dir: Path | str, environ: dict | None = None) -> TrackerConfig:
    """Load tracker.env (if any) plus TRACKER_* overrides into a TrackerConfig.

    Raises:
        ValueError: if tracker.env exists but is malformed
    """
    project_dir = Path(project_dir).resolve()
    environ = os.environ if environ is None else environ

    values = envparse.load_env(project_dir / CONFIG_FILE, required=False)
    unknown = set(values) - KNOWN_KEYS
    for key in sorted(unknown):
        logger.warning(f"Ignoring unknown key {key} in {project_dir / CONFIG_FILE}")

    for key in KNOWN_KEYS:
        override = environ.get(ENV_PREFIX + key)
        if override is not None:
            values[key] = override

    return TrackerConfig(
        project_dir=project_dir,
        project_name=values.get("PROJECT_NAME") or project_dir.name,
        progress_file=_resolve_path(project_dir, values.get("PROGRESS_FILE"), DEFAULT_PROGRESS_FILE),
        feature_list_file=_resolve_path(project_dir, values.get("FEATURE_LIST_FILE"), DEFAULT_FEATURE_LIST_FILE),
        progress_cap=_as_int("PROGRESS_CAP", values.get("PROGRESS_CAP"), DEFAULT_PROGRESS_CAP),
        lock_timeout=_as_int("LOCK_TIMEOUT", values.get("LOCK_TIMEOUT"), DEFAULT_LOCK_TIMEOUT, minimum=0),
        auto_save=_as_bool("AUTO_SAVE", values.get("AUTO_SAVE"), True),
        strict_transitions=_as_bool("STRICT_TRANSITIONS", values.get("STRICT_TRANSITIONS"), False),
    )
