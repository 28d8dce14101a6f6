"""
Tracker: loads, mutates and saves the feature list and progress log together.

Every mutator runs to completion, including the save when auto_save is on,
before it returns, and re-projects ProjectState afterwards. The tracker is
either Uninitialized or Ready; only Ready carries a FeatureStore, so nothing
can reach the store before initialize()/load_all().

The two files are written one after the other, progress log first. Each
write is atomic on its own, but the pair is not: a crash between them leaves
the log one step ahead of the feature list. Saves take the advisory
workspace lock; use `with tracker.locked():` around a whole
load-modify-save sequence when other processes may write the same workspace.

Usage:
    from tracker.workflow.coordinator import Tracker

    tracker = Tracker.open(project_dir)
    fid = tracker.add_feature(FeatureSpec(description="Login form", priority="high"))
    tracker.update_feature(fid, {"status": "in_progress"})
    nxt = tracker.select_next()
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Union

from tracker.lib.config import TrackerConfig, load_tracker_config
from tracker.lib.constants import DEFAULT_REPORT_PROGRESS_LIMIT
from tracker.lib.errors import NotInitializedError
from tracker.store.features import FeatureStore
from tracker.store.fileio import ensure_dir, remove_file
from tracker.store.locking import workspace_lock
from tracker.store.migrations import MigrationReport
from tracker.store.models import (
    Feature,
    FeatureList,
    FeatureSpec,
    FeatureStatus,
    ProgressAction,
    ProgressEntry,
    ProjectState,
    TestResult,
    format_timestamp,
)
from tracker.store.progress import ProgressLog
from tracker.workflow import scheduler
from tracker.workflow.projector import format_status_summary, project

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Uninitialized:
    """Nothing loaded yet."""


@dataclass
class Ready:
    """Loaded workspace: store, log and the latest projection."""
    store: FeatureStore
    log: ProgressLog
    state: ProjectState


WorkspaceState = Union[Uninitialized, Ready]


class Tracker:
    """Persistence coordinator for one project workspace."""

    def __init__(self, config: TrackerConfig):
        self.config = config
        self.workspace: WorkspaceState = Uninitialized()
        self.last_migration: MigrationReport | None = None
        logger.debug(f"Tracker created for {config.project_dir}")

    @classmethod
    def open(cls, project_dir: Path | str, environ: dict | None = None) -> "Tracker":
        """Load config for project_dir and initialize."""
        tracker = cls(load_tracker_config(project_dir, environ))
        tracker.initialize()
        return tracker

    # ── lifecycle ───────────────────────────────────────────────────

    @property
    def is_initialized(self) -> bool:
        return isinstance(self.workspace, Ready)

    def _ready(self, operation: str) -> Ready:
        if isinstance(self.workspace, Ready):
            return self.workspace
        raise NotInitializedError(operation)

    def initialize(self) -> None:
        """
        Load the workspace, creating an empty one on first use.

        Raises:
            ParseError, CycleDetectedError: the feature list cannot be trusted
            StorageError: filesystem failure
        """
        if self.is_initialized:
            logger.warning("Tracker already initialized")
            return

        cfg = self.config
        ensure_dir(cfg.project_dir)
        has_features = cfg.feature_list_file.exists()
        has_progress = cfg.progress_file.exists()
        ready = self.load_all()

        if not has_features and not has_progress:
            ready.log.append(
                ProgressAction.INFO,
                "Project initialized",
                details={"projectName": ready.store.feature_list.project_name, "featureCount": 0},
            )
            logger.info(f"Initialized new feature workspace in {cfg.project_dir}")
        elif not has_features or not has_progress:
            missing = cfg.progress_file if has_features else cfg.feature_list_file
            logger.info(f"Creating missing {missing.name} in {cfg.project_dir}")

        if not (has_features and has_progress) and cfg.auto_save:
            self.save_all()

    def load_all(self) -> Ready:
        """
        Read both artifacts; a missing artifact becomes an empty one.

        Replaces whatever was loaded before.

        Raises:
            ParseError: feature list JSON/schema/version invalid
            CycleDetectedError: persisted dependencies contain a cycle
            StorageError: a file exists but cannot be read
        """
        cfg = self.config

        loaded = FeatureStore.load(cfg.feature_list_file, strict_transitions=cfg.strict_transitions)
        if loaded is None:
            logger.debug(f"No feature list at {cfg.feature_list_file}, starting empty")
            store = FeatureStore.create(cfg.project_name, strict_transitions=cfg.strict_transitions)
            self.last_migration = None
        else:
            store, self.last_migration = loaded
            if self.last_migration.migrated:
                logger.info(
                    f"Feature list migrated {self.last_migration.from_version} -> "
                    f"{self.last_migration.to_version} (saved on next write)"
                )

        log = ProgressLog.load(cfg.progress_file, cap=cfg.progress_cap)
        if log is None:
            logger.debug(f"No progress file at {cfg.progress_file}, starting empty")
            log = ProgressLog(cap=cfg.progress_cap)

        ready = Ready(store=store, log=log, state=project(store.feature_list))
        self.workspace = ready
        return ready

    def save_all(self) -> None:
        """
        Write progress log then feature list, then re-project.

        The feature document is validated before either file is touched.

        Raises:
            NotInitializedError: nothing loaded
            ParseError: the feature list would not pass the schema
            LockTimeout: another process holds the workspace lock
            StorageError: a write failed
        """
        ready = self._ready("saving")
        cfg = self.config
        with workspace_lock(cfg.lock_file, cfg.lock_timeout):
            content, saved_at = ready.store.render(cfg.feature_list_file)
            ensure_dir(cfg.project_dir)
            ready.log.save(cfg.progress_file)
            ready.store.write(cfg.feature_list_file, content, saved_at)
        ready.state = project(ready.store.feature_list)
        logger.debug(f"Saved workspace: {ready.state.progress_percentage}% complete")

    @contextmanager
    def locked(self, reload: bool = True):
        """Hold the workspace lock for a read-modify-write sequence.

        Reloads from disk after acquiring the lock (unless reload=False) so
        the caller mutates the latest persisted state.
        """
        with workspace_lock(self.config.lock_file, self.config.lock_timeout):
            if reload or not self.is_initialized:
                self.workspace = Uninitialized()
                self.initialize()
            yield self

    def reset_workspace(self) -> None:
        """Delete both artifacts and start over with an empty workspace."""
        cfg = self.config
        with workspace_lock(cfg.lock_file, cfg.lock_timeout):
            remove_file(cfg.progress_file)
            remove_file(cfg.feature_list_file)
            self.workspace = Uninitialized()
            logger.info(f"Reset feature workspace in {cfg.project_dir}")
            self.initialize()

    def _commit(self, ready: Ready) -> None:
        if self.config.auto_save:
            self.save_all()
        else:
            ready.state = project(ready.store.feature_list)

    # ── write path ──────────────────────────────────────────────────

    def add_feature(self, spec: FeatureSpec) -> str:
        """
        Register a new feature. Returns its id.

        Raises:
            NotInitializedError, InvalidUpdateError, CycleDetectedError,
            StorageError, LockTimeout
        """
        ready = self._ready("adding a feature")
        feature = ready.store.add_feature(spec)
        ready.log.append(
            ProgressAction.FEATURE_ADDED,
            f"Added {feature.id}: {feature.description}",
            feature_id=feature.id,
            details={"category": feature.category, "priority": feature.priority.value},
        )
        logger.info(f"Added feature {feature.id} - {feature.description}")
        self._commit(ready)
        return feature.id

    def update_feature(self, feature_id: str, updates: dict[str, Any]) -> Feature:
        """
        Merge a partial update into a feature. Returns the updated feature.

        Raises:
            NotInitializedError, NotFoundError, InvalidUpdateError,
            InvalidTransition, CycleDetectedError, StorageError, LockTimeout
        """
        ready = self._ready("updating a feature")
        old, new = ready.store.update_feature(feature_id, updates)

        if new.passes and not old.passes:
            action, verb = ProgressAction.FEATURE_COMPLETED, "Completed"
        elif new.status == FeatureStatus.IN_PROGRESS and old.status != FeatureStatus.IN_PROGRESS:
            action, verb = ProgressAction.FEATURE_STARTED, "Started"
        else:
            action, verb = ProgressAction.FEATURE_UPDATED, "Updated"

        ready.log.append(
            action,
            f"{verb} {feature_id}: {new.description}",
            feature_id=feature_id,
            details={
                "oldStatus": old.status.value,
                "newStatus": new.status.value,
                "passes": new.passes,
                "fields": sorted(updates),
            },
        )
        logger.info(f"Updated feature {feature_id} - status: {new.status.value}, passes: {new.passes}")
        self._commit(ready)
        return new

    def start_feature(self, feature_id: str) -> Feature:
        """Mark a feature in progress."""
        return self.update_feature(feature_id, {"status": FeatureStatus.IN_PROGRESS.value})

    def reset_feature(self, feature_id: str) -> Feature:
        """Back to pending and not passing, test results cleared, for a retry."""
        ready = self._ready("resetting a feature")
        old, new = ready.store.reset_feature(feature_id)
        ready.log.append(
            ProgressAction.FEATURE_RESET,
            f"Reset {feature_id}: {new.description}",
            feature_id=feature_id,
            details={"oldStatus": old.status.value, "oldPasses": old.passes},
        )
        logger.info(f"Reset feature {feature_id}")
        self._commit(ready)
        return new

    def record_test_result(self, feature_id: str, result: TestResult) -> Feature:
        """Cache a test run on the feature. `passes` is left to update_feature."""
        ready = self._ready("recording a test result")
        feature = ready.store.record_test_result(feature_id, result)
        action = ProgressAction.TEST_PASSED if result.passed else ProgressAction.TEST_FAILED
        outcome = "passed" if result.passed else "failed"
        description = f"Test {result.id} {outcome} for {feature_id}"
        if result.error:
            description += f": {result.error}"
        ready.log.append(
            action,
            description,
            feature_id=feature_id,
            details={"testId": result.id, "executionTime": result.execution_time},
        )
        self._commit(ready)
        return feature

    def log_event(
        self,
        action: ProgressAction,
        description: str,
        feature_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> ProgressEntry:
        """Append a collaborator event (commit created, error, note) to the log."""
        ready = self._ready("logging an event")
        entry = ready.log.append(action, description, feature_id=feature_id, details=details)
        if self.config.auto_save:
            self.save_all()
        return entry

    # ── read path ───────────────────────────────────────────────────

    def get_feature_list(self) -> FeatureList:
        """Snapshot of the feature list (the list object is a copy)."""
        feature_list = self._ready("reading the feature list").store.feature_list
        return replace(feature_list, features=list(feature_list.features))

    def list_features(self) -> list[Feature]:
        return self._ready("listing features").store.list_features()

    def get_feature(self, feature_id: str) -> Feature:
        return self._ready("reading a feature").store.get_feature(feature_id)

    def get_project_state(self) -> ProjectState:
        return self._ready("reading project state").state

    def get_progress_entries(self, limit: int | None = None) -> list[ProgressEntry]:
        return self._ready("reading progress").log.entries(limit)

    def select_next(self) -> Feature | None:
        return scheduler.select_next(self._ready("selecting the next feature").store.feature_list.features)

    def diagnose_stall(self) -> scheduler.StallReport | None:
        return scheduler.diagnose_stall(self._ready("diagnosing the schedule").store.feature_list.features)

    def status_summary(self) -> list[str]:
        """Human-readable status lines, including the next feature or why there is none."""
        ready = self._ready("summarizing status")
        features = ready.store.feature_list.features
        return format_status_summary(
            ready.state,
            scheduler.select_next(features),
            scheduler.diagnose_stall(features),
        )

    def generate_report(self, progress_limit: int = DEFAULT_REPORT_PROGRESS_LIMIT) -> dict[str, Any]:
        """Plain-dict report: summary, all features, recent progress."""
        ready = self._ready("generating a report")
        state = ready.state
        return {
            "summary": {
                "projectName": state.project_name,
                "progressPercentage": state.progress_percentage,
                "health": state.health.value,
                "totalFeatures": state.total_count,
                "completedFeatures": state.completed_count,
                "inProgressFeatures": state.in_progress_count,
                "blockedFeatures": state.blocked_count,
                "currentFocus": state.current_focus,
                "testPassRate": state.test_pass_rate,
                "lastUpdated": format_timestamp(state.last_updated),
            },
            "features": [f.to_dict() for f in ready.store.feature_list.features],
            "progress": [e.to_dict() for e in ready.log.entries(progress_limit)],
        }
