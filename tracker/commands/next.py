"""
ft next - Show the feature to work on next.

Exits 1 when nothing is schedulable but work remains (blocked features or
unmet dependencies), so scripts can tell "done" from "stuck".
"""

from tracker.lib.errors import InvalidTransition, LockTimeout, StorageError
from tracker.store.models import FeatureStatus
from tracker.workflow.coordinator import Tracker


def cmd_next(args, tracker: Tracker) -> int:
    feature = tracker.select_next()

    if feature is None:
        stall = tracker.diagnose_stall()
        if stall is None or stall.complete:
            print("All features complete." if tracker.list_features() else "No features yet.")
            return 0
        print("No eligible feature.")
        if stall.blocked:
            print(f"  Blocked: {', '.join(stall.blocked)}")
        for fid, deps in stall.missing_dependencies.items():
            print(f"  {fid} depends on unknown {', '.join(deps)}")
        for fid, deps in stall.waiting_on.items():
            print(f"  {fid} waits on {', '.join(deps)}")
        return 1

    if args.start and feature.status != FeatureStatus.IN_PROGRESS:
        try:
            with tracker.locked():
                feature = tracker.start_feature(feature.id)
        except (InvalidTransition, LockTimeout, StorageError) as e:
            print(f"ERROR: {e}")
            return 1

    print(f"{feature.id}  [{feature.priority.value}]  {feature.status.value}")
    print(f"  {feature.description}")
    if feature.dependencies:
        print(f"  Depends on: {', '.join(feature.dependencies)}")
    if feature.related_files:
        print(f"  Files:      {', '.join(feature.related_files)}")
    for i, step in enumerate(feature.steps, 1):
        print(f"  {i}. {step}")
    return 0
