"""
Next-feature selection.

Read-only: nothing here changes a feature. The rules, in order:

1. A feature already in progress wins (first in list order if several).
2. Otherwise pick from the eligible set: not passing, not blocked, and every
   dependency is an existing feature that passes. A dependency on an id that
   does not exist keeps the feature ineligible until that id appears and passes.
3. Lowest priority rank wins (critical, high, medium, low); ties go to the
   feature added first.

None means nothing is eligible. That is either "done" (every feature passes)
or a stall; diagnose_stall() says which and why.
"""

from dataclasses import dataclass, field
from typing import Sequence

from tracker.store.models import Feature, FeatureStatus
from tracker.workflow.graph import DependencyGraph


def _passing_ids(features: Sequence[Feature]) -> set[str]:
    return {f.id for f in features if f.passes}


def unmet_dependencies(feature: Feature, features: Sequence[Feature]) -> list[str]:
    """Dependency ids that are missing or not yet passing."""
    passing = _passing_ids(features)
    return [dep for dep in feature.dependencies if dep not in passing]


def eligible_features(features: Sequence[Feature]) -> list[Feature]:
    """Features that could be started now, in list order."""
    passing = _passing_ids(features)
    return [
        f for f in features
        if not f.passes
        and f.status != FeatureStatus.BLOCKED
        and all(dep in passing for dep in f.dependencies)
    ]


def select_next(features: Sequence[Feature]) -> Feature | None:
    """Return the feature to work on next, or None."""
    for feature in features:
        if feature.status == FeatureStatus.IN_PROGRESS:
            return feature

    candidates = eligible_features(features)
    if not candidates:
        return None
    # min() keeps the first of equal keys, so list order breaks ties
    return min(candidates, key=lambda f: f.priority.rank)


@dataclass
class StallReport:
    """Why select_next() returned None."""
    complete: bool
    blocked: list[str] = field(default_factory=list)
    # feature id -> dependency ids that do not exist
    missing_dependencies: dict[str, list[str]] = field(default_factory=dict)
    # feature id -> existing dependency ids that do not pass yet
    waiting_on: dict[str, list[str]] = field(default_factory=dict)

    @property
    def deadlocked(self) -> bool:
        return not self.complete


def diagnose_stall(features: Sequence[Feature]) -> StallReport | None:
    """
    Explain an empty schedule. Returns None when something is schedulable.
    """
    if select_next(features) is not None:
        return None

    known = {f.id for f in features}
    missing = DependencyGraph.from_features(features).missing()
    passing = _passing_ids(features)
    report = StallReport(complete=len(passing) == len(features))

    for feature in features:
        if feature.passes:
            continue
        if feature.status == FeatureStatus.BLOCKED:
            report.blocked.append(feature.id)
            continue
        waiting = [d for d in feature.dependencies if d in known and d not in passing]
        if feature.id in missing:
            report.missing_dependencies[feature.id] = missing[feature.id]
        if waiting:
            report.waiting_on[feature.id] = waiting
    return report
