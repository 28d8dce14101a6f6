"""
Explicit, versioned migrations for the feature-list document.

The current schema (2.0.0) requires every field; nothing is back-filled when
loading a current document, so a missing field there is corruption and fails
validation. Older documents (1.0.0, or no version at all) go through
migrate_1_to_2, which fills what the old writer could legitimately omit and
records every fill in the MigrationReport so the caller can log it.
"""

import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path

from tracker.lib.constants import FEATURE_ID_PATTERN, LEGACY_SCHEMA_VERSION, SCHEMA_VERSION
from tracker.lib.errors import ParseError

logger = logging.getLogger(__name__)


@dataclass
class MigrationReport:
    """What a load-time migration changed."""
    from_version: str
    to_version: str
    notes: list[str] = field(default_factory=list)

    @property
    def migrated(self) -> bool:
        return self.from_version != self.to_version


def detect_version(data: dict) -> str:
    """Version string of a document; unversioned documents predate 2.0.0."""
    version = data.get("version")
    if version is None:
        return LEGACY_SCHEMA_VERSION
    return str(version)


def _next_number(features: list) -> int:
    highest = 0
    for feature in features:
        match = FEATURE_ID_PATTERN.match(str(feature.get("id", "")))
        if match:
            highest = max(highest, int(match.group(1)))
    return highest + 1


def migrate_1_to_2(data: dict, report: MigrationReport, source: Path | None = None) -> dict:
    """Upgrade a 1.0.0 document in place (on a copy) to 2.0.0."""
    doc = copy.deepcopy(data)
    features = doc.get("features")
    if not isinstance(features, list):
        raise ParseError(source, "Invalid feature list: missing 'features' array")

    if not doc.get("projectName"):
        name = source.parent.name if source else "unnamed-project"
        doc["projectName"] = name
        report.notes.append(f"projectName missing, set to '{name}'")

    if not doc.get("createdAt"):
        if not doc.get("updatedAt"):
            raise ParseError(source, "Legacy feature list has neither createdAt nor updatedAt")
        doc["createdAt"] = doc["updatedAt"]
        report.notes.append("createdAt missing, copied from updatedAt")
    if not doc.get("updatedAt"):
        doc["updatedAt"] = doc["createdAt"]
        report.notes.append("updatedAt missing, copied from createdAt")

    defaults = {
        "dependencies": [],
        "relatedFiles": [],
        "steps": [],
        "notes": "",
        "testResults": [],
        "estimatedComplexity": "medium",
    }
    for index, feature in enumerate(features):
        if not isinstance(feature, dict):
            raise ParseError(source, f"Invalid feature at index {index}: expected an object")
        fid = feature.get("id", f"#{index}")

        for key, value in defaults.items():
            if key not in feature or feature[key] is None:
                feature[key] = copy.deepcopy(value)

        if not feature.get("createdAt"):
            feature["createdAt"] = doc["createdAt"]
            report.notes.append(f"{fid}: createdAt missing, using document createdAt")
        if not feature.get("updatedAt"):
            feature["updatedAt"] = feature["createdAt"]
            report.notes.append(f"{fid}: updatedAt missing, using createdAt")

        # 1.0.0 test results were stored without the feature list's strictness
        for result in feature["testResults"]:
            if isinstance(result, dict) and not result.get("timestamp"):
                result["timestamp"] = feature["updatedAt"]

    doc["nextNumber"] = _next_number(features)
    doc["version"] = SCHEMA_VERSION
    return doc


# version -> (next version, migration function)
MIGRATIONS = {
    LEGACY_SCHEMA_VERSION: (SCHEMA_VERSION, migrate_1_to_2),
}


def migrate(data: dict, source: Path | None = None) -> tuple[dict, MigrationReport]:
    """
    Bring a parsed document up to SCHEMA_VERSION.

    Returns:
        (migrated document, report). The input dict is not modified.

    Raises:
        ParseError: unknown version or an unrecoverable legacy document
    """
    if not isinstance(data, dict):
        raise ParseError(source, "Invalid feature list: top-level JSON value must be an object")

    start = detect_version(data)
    report = MigrationReport(from_version=start, to_version=start)
    version = start
    doc = data

    while version != SCHEMA_VERSION:
        step = MIGRATIONS.get(version)
        if step is None:
            raise ParseError(source, f"Unsupported feature list version '{version}'")
        target, func = step
        doc = func(doc, report, source)
        logger.debug(f"Migrated feature list {version} -> {target}")
        version = target

    report.to_version = version
    return doc, report
