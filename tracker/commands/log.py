"""
ft log - Show recent progress entries, oldest first.
"""

from tracker.workflow.coordinator import Tracker


def cmd_log(args, tracker: Tracker) -> int:
    if args.limit <= 0:
        print(f"ERROR: --limit must be positive, got {args.limit}")
        return 1

    entries = tracker.get_progress_entries(args.limit)
    if not entries:
        print("No progress entries.")
        return 0

    for entry in entries:
        stamp = entry.timestamp.astimezone().strftime("%Y-%m-%d %H:%M:%S")
        print(f"{stamp}  {entry.action.value:<18} {entry.description}")
    return 0
