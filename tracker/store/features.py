"""
FeatureStore: the canonical feature collection and its JSON document.

A FeatureStore only exists once a feature list has been created or loaded;
there is no half-initialized store. Mutations replace Feature objects rather
than editing them, so a ProjectState built from an earlier snapshot never
changes underneath its reader.
"""

import json
import logging
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any

from tracker.lib.constants import (
    FEATURE_ID_PATTERN,
    FEATURE_ID_PREFIX,
    FEATURE_ID_WIDTH,
    SCHEMA_VERSION,
)
from tracker.lib.errors import InvalidUpdateError, NotFoundError, ParseError
from tracker.lib.validate import validate, validate_before_write, validate_definition
from tracker.store.fileio import atomic_write_text, read_text
from tracker.store.migrations import MigrationReport, migrate
from tracker.store.models import (
    Feature,
    FeatureList,
    FeatureSpec,
    FeatureStatus,
    TestResult,
    parse_complexity,
    parse_priority,
    parse_status,
    parse_timestamp,
    utcnow,
)
from tracker.workflow.fsm import check_transition
from tracker.workflow.graph import DependencyGraph

logger = logging.getLogger(__name__)

SCHEMA_NAME = "feature_list"

# Field names accepted by update_feature, with the camelCase spellings used
# on disk and by JS-side collaborators.
FIELD_ALIASES = {
    "relatedFiles": "related_files",
    "estimatedComplexity": "estimated_complexity",
    "testResults": "test_results",
}
UPDATABLE_FIELDS = {
    "description",
    "category",
    "priority",
    "status",
    "passes",
    "dependencies",
    "related_files",
    "steps",
    "estimated_complexity",
    "notes",
    "test_results",
}
IMMUTABLE_FIELDS = {"id", "created_at", "updated_at", "createdAt", "updatedAt"}


def format_feature_id(number: int) -> str:
    return f"{FEATURE_ID_PREFIX}{number:0{FEATURE_ID_WIDTH}d}"


def _string_list(field_name: str, value: Any) -> list[str]:
    if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple, set)):
        raise InvalidUpdateError(f"{field_name} must be a list of strings")
    return [str(v) for v in value]


def _coerce_update(field_name: str, value: Any) -> Any:
    """Validate and normalize one update value. Raises InvalidUpdateError."""
    try:
        if field_name == "priority":
            return parse_priority(value)
        if field_name == "status":
            return parse_status(value)
        if field_name == "estimated_complexity":
            return parse_complexity(value)
    except ValueError as e:
        raise InvalidUpdateError(str(e)) from None

    if field_name == "passes":
        if not isinstance(value, bool):
            raise InvalidUpdateError("passes must be a boolean")
        return value
    if field_name in ("dependencies", "related_files", "steps"):
        return _string_list(field_name, value)
    if field_name == "test_results":
        if not isinstance(value, (list, tuple)):
            raise InvalidUpdateError("test_results must be a list")
        results = []
        for item in value:
            if isinstance(item, TestResult):
                results.append(item)
            elif isinstance(item, dict):
                try:
                    results.append(TestResult.from_dict(item))
                except (KeyError, ValueError) as e:
                    raise InvalidUpdateError(f"Invalid test result: {e}") from None
            else:
                raise InvalidUpdateError("test_results items must be TestResult or dict")
        return results
    if not isinstance(value, str):
        raise InvalidUpdateError(f"{field_name} must be a string")
    return value


def _check_feature(feature: Feature) -> None:
    """Schema-check a candidate feature before it enters the list.

    Raises:
        InvalidUpdateError: the feature would not survive a save
    """
    try:
        validate_definition(feature.to_dict(), SCHEMA_NAME, "feature")
    except ParseError as e:
        raise InvalidUpdateError(f"Invalid feature {feature.id}: {e.message}") from None


class FeatureStore:
    """Owns the FeatureList and every change made to it."""

    def __init__(self, feature_list: FeatureList, strict_transitions: bool = False):
        self.feature_list = feature_list
        self.strict_transitions = strict_transitions

    # ── construction ────────────────────────────────────────────────

    @classmethod
    def create(cls, project_name: str, strict_transitions: bool = False) -> "FeatureStore":
        """Fresh, empty feature list."""
        now = utcnow()
        feature_list = FeatureList(
            project_name=project_name,
            features=[],
            created_at=now,
            updated_at=now,
            version=SCHEMA_VERSION,
            next_number=1,
        )
        return cls(feature_list, strict_transitions=strict_transitions)

    @classmethod
    def from_dict(
        cls,
        data: Any,
        source: Path | None = None,
        strict_transitions: bool = False,
    ) -> tuple["FeatureStore", MigrationReport]:
        """
        Build a store from a parsed JSON document.

        Migrates older versions, validates against the schema, recomputes the
        counters and checks the dependency graph.

        Raises:
            ParseError: malformed, unsupported or schema-invalid document
            CycleDetectedError: persisted dependencies contain a cycle
        """
        doc, report = migrate(data, source)
        for note in report.notes:
            logger.warning(f"Migration {report.from_version} -> {report.to_version}: {note}")

        validate(doc, SCHEMA_NAME, source)

        try:
            features = [Feature.from_dict(f) for f in doc["features"]]
            feature_list = FeatureList(
                project_name=doc["projectName"],
                features=features,
                created_at=_parse_doc_time(doc, "createdAt", source),
                updated_at=_parse_doc_time(doc, "updatedAt", source),
                version=doc["version"],
                next_number=doc["nextNumber"],
            )
        except ValueError as e:
            raise ParseError(source, f"Invalid feature data: {e}") from None

        seen: set[str] = set()
        for feature in features:
            if feature.id in seen:
                raise ParseError(source, f"Duplicate feature id {feature.id}")
            seen.add(feature.id)

        recomputed = feature_list.counters()
        for key, value in recomputed.items():
            stored = doc.get(key)
            if stored is not None and stored != value:
                logger.warning(
                    f"Stored {key}={stored} disagrees with features ({value}); using recomputed value"
                )

        store = cls(feature_list, strict_transitions=strict_transitions)
        store._bump_next_number()
        store.graph().check_acyclic()
        logger.debug(f"Loaded feature list: {len(features)} features")
        return store, report

    @classmethod
    def load(cls, path: Path, strict_transitions: bool = False) -> tuple["FeatureStore", MigrationReport] | None:
        """
        Read and parse the feature list file. Returns None if it does not exist.

        Raises:
            StorageError: the file exists but cannot be read
            ParseError: invalid JSON or schema
            CycleDetectedError: persisted dependencies contain a cycle
        """
        text = read_text(path)
        if text is None:
            return None
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ParseError(path, f"Invalid JSON: {e}") from None
        return cls.from_dict(data, source=path, strict_transitions=strict_transitions)

    # ── persistence ─────────────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        return self.feature_list.to_dict()

    def render(self, path: Path) -> tuple[str, datetime]:
        """Validated JSON text for a save happening now. The store is not touched.

        Returns:
            (file content, the updatedAt it carries)

        Raises:
            ParseError: the in-memory data would not pass the schema
        """
        saved_at = utcnow()
        data = replace(self.feature_list, updated_at=saved_at).to_dict()
        validate_before_write(data, SCHEMA_NAME, path)
        return json.dumps(data, indent=2, ensure_ascii=False) + "\n", saved_at

    def write(self, path: Path, content: str, saved_at: datetime) -> None:
        """Write content from render(); updated_at moves only once the file is on disk.

        Raises:
            StorageError: the write failed
        """
        atomic_write_text(path, content)
        self.feature_list.updated_at = saved_at
        logger.debug(f"Saved feature list: {len(self.feature_list.features)} features to {path}")

    def save(self, path: Path) -> None:
        """Validate and atomically write the feature list.

        Raises:
            ParseError: the in-memory data would not pass the schema
            StorageError: the write failed
        """
        content, saved_at = self.render(path)
        self.write(path, content, saved_at)

    # ── reads ───────────────────────────────────────────────────────

    def list_features(self) -> list[Feature]:
        return list(self.feature_list.features)

    def find_feature(self, feature_id: str) -> Feature | None:
        for feature in self.feature_list.features:
            if feature.id == feature_id:
                return feature
        return None

    def get_feature(self, feature_id: str) -> Feature:
        feature = self.find_feature(feature_id)
        if feature is None:
            raise NotFoundError(feature_id)
        return feature

    def graph(self) -> DependencyGraph:
        return DependencyGraph.from_features(self.feature_list.features)

    # ── mutations ───────────────────────────────────────────────────

    def add_feature(self, spec: FeatureSpec) -> Feature:
        """
        Register a new pending feature and return it.

        Raises:
            InvalidUpdateError: bad priority/complexity or list fields
            CycleDetectedError: the new feature would close a dependency cycle
        """
        try:
            priority = parse_priority(spec.priority)
            complexity = parse_complexity(spec.estimated_complexity)
        except ValueError as e:
            raise InvalidUpdateError(str(e)) from None
        dependencies = _string_list("dependencies", spec.dependencies)

        feature_id = self._allocate_id()
        self.graph().with_dependencies(feature_id, dependencies).check_acyclic()

        now = utcnow()
        feature = Feature(
            id=feature_id,
            description=spec.description,
            category=spec.category,
            priority=priority,
            status=FeatureStatus.PENDING,
            passes=False,
            dependencies=dependencies,
            created_at=now,
            updated_at=now,
            related_files=_string_list("related_files", spec.related_files),
            steps=_string_list("steps", spec.steps),
            estimated_complexity=complexity,
            notes=spec.notes,
        )
        _check_feature(feature)
        self.feature_list.features.append(feature)
        self.feature_list.next_number += 1
        return feature

    def update_feature(self, feature_id: str, updates: dict[str, Any]) -> tuple[Feature, Feature]:
        """
        Merge updates into a feature. Returns (old, new).

        Dependencies are not checked against existing ids; forward references
        are allowed. Nothing changes if any check fails.

        Raises:
            NotFoundError: unknown feature id
            InvalidUpdateError: unknown/immutable field or bad value
            InvalidTransition: strict mode and the status change is invalid
            CycleDetectedError: new dependencies would close a cycle
        """
        index, old = self._index_of(feature_id)

        changes: dict[str, Any] = {}
        for key, value in updates.items():
            if key in IMMUTABLE_FIELDS:
                raise InvalidUpdateError(f"Field '{key}' cannot be updated")
            name = FIELD_ALIASES.get(key, key)
            if name not in UPDATABLE_FIELDS:
                raise InvalidUpdateError(f"Unknown feature field '{key}'")
            changes[name] = _coerce_update(name, value)

        if "status" in changes:
            check_transition(
                feature_id, old.status.value, changes["status"].value, strict=self.strict_transitions
            )
        if "dependencies" in changes:
            self.graph().with_dependencies(feature_id, changes["dependencies"]).check_acyclic()

        new = replace(old, updated_at=utcnow(), **changes)
        _check_feature(new)
        self.feature_list.features[index] = new

        if new.status == FeatureStatus.IN_PROGRESS and self.feature_list.in_progress_count > 1:
            logger.warning(
                f"{self.feature_list.in_progress_count} features are in progress; "
                f"the first in list order is scheduled"
            )
        return old, new

    def reset_feature(self, feature_id: str) -> tuple[Feature, Feature]:
        """Back to pending/not passing with cached test results cleared."""
        return self.update_feature(feature_id, {
            "status": FeatureStatus.PENDING,
            "passes": False,
            "test_results": [],
        })

    def record_test_result(self, feature_id: str, result: TestResult) -> Feature:
        """Append a cached test result. Does not touch `passes`.

        Raises:
            NotFoundError: unknown feature id
            InvalidUpdateError: the result does not fit the schema
        """
        index, old = self._index_of(feature_id)
        new = replace(old, test_results=old.test_results + [result], updated_at=utcnow())
        _check_feature(new)
        self.feature_list.features[index] = new
        return new

    # ── internals ───────────────────────────────────────────────────

    def _index_of(self, feature_id: str) -> tuple[int, Feature]:
        for index, feature in enumerate(self.feature_list.features):
            if feature.id == feature_id:
                return index, feature
        raise NotFoundError(feature_id)

    def _allocate_id(self) -> str:
        """Next unused id. Skips over ids a hand-edited file already took."""
        existing = {f.id for f in self.feature_list.features}
        candidate = format_feature_id(self.feature_list.next_number)
        while candidate in existing:
            self.feature_list.next_number += 1
            candidate = format_feature_id(self.feature_list.next_number)
        return candidate

    def _bump_next_number(self) -> None:
        """Keep next_number above every numbered id in the list."""
        for feature in self.feature_list.features:
            match = FEATURE_ID_PATTERN.match(feature.id)
            if match and int(match.group(1)) >= self.feature_list.next_number:
                logger.warning(
                    f"nextNumber {self.feature_list.next_number} is behind {feature.id}; advancing"
                )
                self.feature_list.next_number = int(match.group(1)) + 1


def _parse_doc_time(doc: dict, key: str, source: Path | None) -> datetime:
    try:
        return parse_timestamp(doc[key])
    except ValueError as e:
        raise ParseError(source, f"Invalid {key} timestamp: {e}") from None
