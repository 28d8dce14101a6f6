"""
Project state projection.

project() is a pure function of a FeatureList snapshot. Nothing stores a
ProjectState as truth; the coordinator rebuilds it after every mutation.
"""

import math
from datetime import datetime

from tracker.store.models import (
    Feature,
    FeatureList,
    FeatureStatus,
    Health,
    ProjectState,
    utcnow,
)
from tracker.workflow.scheduler import StallReport

CRITICAL_BLOCKED_RATIO = 0.3
WARNING_BLOCKED_RATIO = 0.1


def progress_percentage(completed: int, total: int) -> int:
    """Rounded half-up; 0 for an empty project."""
    if total == 0:
        return 0
    return math.floor(100 * completed / total + 0.5)


def classify_health(blocked: int, total: int) -> Health:
    if total == 0:
        return Health.HEALTHY
    if blocked > total * CRITICAL_BLOCKED_RATIO:
        return Health.CRITICAL
    if blocked > total * WARNING_BLOCKED_RATIO:
        return Health.WARNING
    return Health.HEALTHY


def pass_rate(features) -> float:
    """Percentage of cached test results that passed (0.0 with none)."""
    results = [r for f in features for r in f.test_results]
    if not results:
        return 0.0
    return round(100 * sum(1 for r in results if r.passed) / len(results), 1)


def project(feature_list: FeatureList, now: datetime | None = None) -> ProjectState:
    features = tuple(feature_list.features)

    completed = tuple(f for f in features if f.passes)
    pending = tuple(f for f in features if not f.passes and f.status == FeatureStatus.PENDING)
    in_progress = tuple(f for f in features if f.status == FeatureStatus.IN_PROGRESS)
    blocked = tuple(f for f in features if f.status == FeatureStatus.BLOCKED)

    total = len(features)
    return ProjectState(
        project_name=feature_list.project_name,
        total_count=total,
        completed_count=len(completed),
        in_progress_count=len(in_progress),
        blocked_count=len(blocked),
        progress_percentage=progress_percentage(len(completed), total),
        health=classify_health(len(blocked), total),
        completed_features=completed,
        pending_features=pending,
        in_progress_features=in_progress,
        blocked_features=blocked,
        current_focus=in_progress[0].id if in_progress else None,
        test_pass_rate=pass_rate(features),
        last_updated=now or utcnow(),
    )


HEALTH_LABELS = {
    Health.HEALTHY: "healthy",
    Health.WARNING: "WARNING",
    Health.CRITICAL: "CRITICAL",
}


def format_status_summary(
    state: ProjectState,
    next_feature: Feature | None,
    stall: StallReport | None = None,
) -> list[str]:
    """Format project status as list of lines for display."""
    remaining = state.total_count - state.completed_count
    lines = [
        f"Project:        {state.project_name}",
        f"Progress:       {state.progress_percentage}%",
        f"Health:         {HEALTH_LABELS[state.health]}",
        "",
        f"  Total:        {state.total_count}",
        f"  Completed:    {state.completed_count}",
        f"  In progress:  {state.in_progress_count}",
        f"  Blocked:      {state.blocked_count}",
        f"  Remaining:    {remaining}",
    ]
    if state.test_pass_rate:
        lines.append(f"  Test pass:    {state.test_pass_rate}%")
    lines.append("")

    if next_feature is not None:
        lines.append(f"Next feature:   {next_feature.id} [{next_feature.priority.value}] {next_feature.description}")
    elif state.total_count == 0:
        lines.append("No features yet.")
    elif stall is None or stall.complete:
        lines.append("All features complete.")
    else:
        lines.append("No eligible feature: remaining work is blocked or waiting on dependencies.")
        if stall.blocked:
            lines.append(f"  Blocked:      {', '.join(stall.blocked)}")
        for fid, deps in stall.missing_dependencies.items():
            lines.append(f"  {fid} depends on unknown {', '.join(deps)}")
        for fid, deps in stall.waiting_on.items():
            lines.append(f"  {fid} waits on {', '.join(deps)}")
    return lines
