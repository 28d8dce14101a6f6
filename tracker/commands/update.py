"""
ft update - Change a feature's status, passes flag or metadata.
"""

from tracker.lib.errors import (
    CycleDetectedError,
    InvalidTransition,
    InvalidUpdateError,
    LockTimeout,
    NotFoundError,
    StorageError,
)
from tracker.workflow.coordinator import Tracker


def cmd_update(args, tracker: Tracker) -> int:
    updates = {}
    if args.status is not None:
        updates["status"] = args.status
    if args.passes is not None:
        updates["passes"] = args.passes
    if args.priority is not None:
        updates["priority"] = args.priority
    if args.depends_on is not None:
        updates["dependencies"] = args.depends_on
    if args.notes is not None:
        updates["notes"] = args.notes

    if not updates and not args.files:
        print("ERROR: Nothing to update (use --status, --passes, --file, ...)")
        return 1

    try:
        with tracker.locked():
            if args.files:
                # --file adds to the existing list
                current = tracker.get_feature(args.id).related_files
                updates["related_files"] = current + [f for f in args.files if f not in current]
            feature = tracker.update_feature(args.id, updates)
    except (NotFoundError, InvalidUpdateError, InvalidTransition, CycleDetectedError) as e:
        print(f"ERROR: {e}")
        return 1
    except (LockTimeout, StorageError) as e:
        print(f"ERROR: {e}")
        return 1

    passes = "passes" if feature.passes else "not passing"
    print(f"Updated {feature.id}: {feature.status.value}, {passes}")
    return 0
