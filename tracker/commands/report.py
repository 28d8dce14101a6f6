"""
ft report - Dump summary, features and recent progress as JSON or YAML.
"""

import json

import yaml

from tracker.workflow.coordinator import Tracker


def cmd_report(args, tracker: Tracker) -> int:
    if args.progress_limit < 0:
        print(f"ERROR: --progress-limit must not be negative, got {args.progress_limit}")
        return 1

    report = tracker.generate_report(progress_limit=args.progress_limit)
    if args.format == "yaml":
        print(yaml.safe_dump(report, sort_keys=False, allow_unicode=True), end="")
    else:
        print(json.dumps(report, indent=2, ensure_ascii=False))
    return 0
