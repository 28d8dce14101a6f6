"""
Data types for features, the feature list, progress entries and project state.

JSON field names are camelCase to match the on-disk format that other tools
(dashboard, source-control collaborator) already read. Python attributes are
snake_case.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping


class Priority(Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Scheduling rank, lower runs first."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    Priority.CRITICAL: 0,
    Priority.HIGH: 1,
    Priority.MEDIUM: 2,
    Priority.LOW: 3,
}


class FeatureStatus(Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    COMPLETED = "completed"


class Complexity(Enum):
    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"


class Health(Enum):
    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"


class ProgressAction(Enum):
    FEATURE_ADDED = "feature_added"
    FEATURE_STARTED = "feature_started"
    FEATURE_UPDATED = "feature_updated"
    FEATURE_COMPLETED = "feature_completed"
    FEATURE_RESET = "feature_reset"
    TEST_PASSED = "test_passed"
    TEST_FAILED = "test_failed"
    COMMIT_CREATED = "commit_created"
    ERROR_OCCURRED = "error_occurred"
    INFO = "info"


def _parse_enum(enum_cls, value, field_name: str):
    """Coerce a string (or member) to an enum member, ValueError otherwise."""
    if isinstance(value, enum_cls):
        return value
    for member in enum_cls:
        if member.value == value:
            return member
    allowed = ", ".join(m.value for m in enum_cls)
    raise ValueError(f"Invalid {field_name} '{value}' (expected one of: {allowed})")


def parse_priority(value) -> Priority:
    return _parse_enum(Priority, value, "priority")


def parse_status(value) -> FeatureStatus:
    return _parse_enum(FeatureStatus, value, "status")


def parse_complexity(value) -> Complexity:
    return _parse_enum(Complexity, value, "complexity")


def parse_action(value: str) -> ProgressAction | None:
    """Return the matching action, or None for unknown action strings."""
    for member in ProgressAction:
        if member.value == value:
            return member
    return None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """ISO-8601 with offset. Naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 string (Z suffix allowed). Naive values are taken as UTC.

    Raises:
        ValueError: if the string is not ISO-8601
    """
    token = value.strip()
    if token.endswith("Z"):
        token = token[:-1] + "+00:00"
    parsed = datetime.fromisoformat(token)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _dedupe(items) -> list[str]:
    seen: set[str] = set()
    result = []
    for item in items:
        item = str(item)
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


@dataclass
class TestResult:
    """One cached test run for a feature, as reported by the test runner."""
    __test__ = False  # not a pytest test class

    id: str
    passed: bool
    description: str = ""
    execution_time: float = 0.0  # seconds
    error: str | None = None
    screenshot_path: str | None = None
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "passed": self.passed,
            "executionTime": self.execution_time,
            "error": self.error,
            "screenshotPath": self.screenshot_path,
            "timestamp": format_timestamp(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TestResult":
        return cls(
            id=data["id"],
            passed=data["passed"],
            description=data.get("description", ""),
            execution_time=float(data.get("executionTime", 0.0)),
            error=data.get("error"),
            screenshot_path=data.get("screenshotPath"),
            timestamp=parse_timestamp(data["timestamp"]),
        )


@dataclass
class FeatureSpec:
    """What a collaborator supplies when registering a new feature."""
    description: str
    category: str = "functional"
    priority: Priority | str = Priority.MEDIUM
    dependencies: list[str] = field(default_factory=list)
    related_files: list[str] = field(default_factory=list)
    steps: list[str] = field(default_factory=list)
    estimated_complexity: Complexity | str = Complexity.MEDIUM
    notes: str = ""


@dataclass
class Feature:
    """A trackable unit of work.

    `passes` is the authoritative "done" signal; `status` may lag behind it
    (a feature can pass while still marked in_progress, and vice versa).
    """
    id: str
    description: str
    category: str
    priority: Priority
    status: FeatureStatus
    passes: bool
    dependencies: list[str]
    created_at: datetime
    updated_at: datetime
    related_files: list[str] = field(default_factory=list)
    steps: list[str] = field(default_factory=list)
    estimated_complexity: Complexity = Complexity.MEDIUM
    notes: str = ""
    test_results: list[TestResult] = field(default_factory=list)

    def __post_init__(self):
        self.dependencies = _dedupe(self.dependencies)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "category": self.category,
            "priority": self.priority.value,
            "status": self.status.value,
            "passes": self.passes,
            "dependencies": list(self.dependencies),
            "relatedFiles": list(self.related_files),
            "steps": list(self.steps),
            "estimatedComplexity": self.estimated_complexity.value,
            "notes": self.notes,
            "testResults": [r.to_dict() for r in self.test_results],
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Feature":
        """Build from a validated, migrated feature mapping."""
        return cls(
            id=data["id"],
            description=data["description"],
            category=data["category"],
            priority=parse_priority(data["priority"]),
            status=parse_status(data["status"]),
            passes=data["passes"],
            dependencies=data["dependencies"],
            created_at=parse_timestamp(data["createdAt"]),
            updated_at=parse_timestamp(data["updatedAt"]),
            related_files=list(data.get("relatedFiles", [])),
            steps=list(data.get("steps", [])),
            estimated_complexity=parse_complexity(data.get("estimatedComplexity", "medium")),
            notes=data.get("notes", ""),
            test_results=[TestResult.from_dict(r) for r in data.get("testResults", [])],
        )


@dataclass
class FeatureList:
    """The ordered feature collection plus document metadata.

    Counters are properties over `features`; they cannot be set, so they can
    never disagree with the data.
    """
    project_name: str
    features: list[Feature]
    created_at: datetime
    updated_at: datetime
    version: str
    next_number: int = 1

    @property
    def total_count(self) -> int:
        return len(self.features)

    @property
    def completed_count(self) -> int:
        return sum(1 for f in self.features if f.passes)

    @property
    def in_progress_count(self) -> int:
        return sum(1 for f in self.features if f.status == FeatureStatus.IN_PROGRESS)

    @property
    def blocked_count(self) -> int:
        return sum(1 for f in self.features if f.status == FeatureStatus.BLOCKED)

    def counters(self) -> dict[str, int]:
        return {
            "totalCount": self.total_count,
            "completedCount": self.completed_count,
            "inProgressCount": self.in_progress_count,
            "blockedCount": self.blocked_count,
        }

    def to_dict(self) -> dict[str, Any]:
        data = {
            "projectName": self.project_name,
            "version": self.version,
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
            "nextNumber": self.next_number,
            "features": [f.to_dict() for f in self.features],
        }
        data.update(self.counters())
        return data


@dataclass(frozen=True)
class ProgressEntry:
    """One line of the progress log. Immutable once appended."""
    timestamp: datetime
    action: ProgressAction
    description: str
    feature_id: str | None = None
    details: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # read-only view over a private copy
        object.__setattr__(self, "details", MappingProxyType(dict(self.details)))

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": format_timestamp(self.timestamp),
            "action": self.action.value,
            "featureId": self.feature_id,
            "description": self.description,
            "details": dict(self.details),
        }


@dataclass(frozen=True)
class ProjectState:
    """Read-only aggregate view, recomputed from a FeatureList snapshot."""
    project_name: str
    total_count: int
    completed_count: int
    in_progress_count: int
    blocked_count: int
    progress_percentage: int
    health: Health
    completed_features: tuple[Feature, ...]
    pending_features: tuple[Feature, ...]
    in_progress_features: tuple[Feature, ...]
    blocked_features: tuple[Feature, ...]
    current_focus: str | None
    test_pass_rate: float
    last_updated: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "projectName": self.project_name,
            "totalCount": self.total_count,
            "completedCount": self.completed_count,
            "inProgressCount": self.in_progress_count,
            "blockedCount": self.blocked_count,
            "progressPercentage": self.progress_percentage,
            "health": self.health.value,
            "completedFeatures": [f.id for f in self.completed_features],
            "pendingFeatures": [f.id for f in self.pending_features],
            "inProgressFeatures": [f.id for f in self.in_progress_features],
            "blockedFeatures": [f.id for f in self.blocked_features],
            "currentFocus": self.current_focus,
            "healthDetails": {"testPassRate": self.test_pass_rate},
            "lastUpdated": format_timestamp(self.last_updated),
        }
