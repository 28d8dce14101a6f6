"""
ft reset - Put a feature back to pending for a retry.
"""

from tracker.lib.errors import LockTimeout, NotFoundError, StorageError
from tracker.workflow.coordinator import Tracker


def cmd_reset(args, tracker: Tracker) -> int:
    try:
        with tracker.locked():
            feature = tracker.reset_feature(args.id)
    except (NotFoundError, LockTimeout, StorageError) as e:
        print(f"ERROR: {e}")
        return 1

    print(f"Reset {feature.id}: pending, not passing, test results cleared")
    return 0
