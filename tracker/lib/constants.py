"""Shared constants for the feature tracker."""

import re

# Feature ids: feature-001, feature-002, ... (wider once past 999)
FEATURE_ID_PREFIX = "feature-"
FEATURE_ID_WIDTH = 3
FEATURE_ID_PATTERN = re.compile(r'^feature-(\d+)$')
FEATURE_ID_TOKEN = re.compile(r'\bfeature-\d+\b')

# Persisted schema versions
SCHEMA_VERSION = "2.0.0"
LEGACY_SCHEMA_VERSION = "1.0.0"

# Default artifact names, relative to the project directory
DEFAULT_PROGRESS_FILE = "claude-progress.txt"
DEFAULT_FEATURE_LIST_FILE = "feature-list.json"
CONFIG_FILE = "tracker.env"
STATE_DIR = ".tracker"

DEFAULT_PROGRESS_CAP = 1000
DEFAULT_LOCK_TIMEOUT = 30
DEFAULT_REPORT_PROGRESS_LIMIT = 100

KNOWN_CATEGORIES = (
    "functional",
    "ui",
    "performance",
    "security",
    "accessibility",
    "testing",
    "documentation",
    "infrastructure",
)
