"""
ft status - Show project progress, health and the next feature.
"""

import json

from tracker.workflow.coordinator import Tracker


def cmd_status(args, tracker: Tracker) -> int:
    """Print the status summary (or the project state as JSON)."""
    if args.json:
        print(json.dumps(tracker.get_project_state().to_dict(), indent=2))
        return 0

    for line in tracker.status_summary():
        print(line)
    return 0
