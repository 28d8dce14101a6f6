"""Feature progress tracker.

Keeps a project's feature list (JSON) and progress log (text) in the project
directory, projects aggregate status from them and picks the next feature to
work on.

Public surface:
- Tracker: open/initialize a workspace, mutate features, read state
- FeatureSpec, Feature, FeatureList, ProgressEntry, ProjectState: data types
- Priority, FeatureStatus, Complexity, Health, ProgressAction: enums
- TrackerError and subclasses, StorageError: failures
"""

from tracker.lib.config import TrackerConfig, load_tracker_config
from tracker.lib.errors import (
    TrackerError,
    NotInitializedError,
    NotFoundError,
    ParseError,
    CycleDetectedError,
    InvalidUpdateError,
    InvalidTransition,
    StorageError,
    LockTimeout,
)
from tracker.store.models import (
    Complexity,
    Feature,
    FeatureList,
    FeatureSpec,
    FeatureStatus,
    Health,
    Priority,
    ProgressAction,
    ProgressEntry,
    ProjectState,
    TestResult,
)
from tracker.workflow.coordinator import Tracker

__version__ = "2.0.0"
