"""
ft add - Register a new feature.
"""

from tracker.lib.constants import KNOWN_CATEGORIES
from tracker.lib.errors import CycleDetectedError, InvalidUpdateError, LockTimeout, StorageError
from tracker.store.models import FeatureSpec
from tracker.workflow.coordinator import Tracker


def cmd_add(args, tracker: Tracker) -> int:
    if not args.description.strip():
        print("ERROR: Description must not be empty")
        return 1

    if args.category not in KNOWN_CATEGORIES:
        print(f"Note: '{args.category}' is not a standard category ({', '.join(KNOWN_CATEGORIES)})")

    spec = FeatureSpec(
        description=args.description.strip(),
        category=args.category,
        priority=args.priority,
        dependencies=args.depends_on,
        related_files=args.files,
        steps=args.steps,
        estimated_complexity=args.complexity,
        notes=args.notes,
    )
    try:
        # Reload under the lock so a concurrent writer's features are kept
        with tracker.locked():
            feature_id = tracker.add_feature(spec)
    except (InvalidUpdateError, CycleDetectedError, LockTimeout, StorageError) as e:
        print(f"ERROR: {e}")
        return 1

    print(f"Added {feature_id}: {spec.description}")
    known = {f.id for f in tracker.list_features()}
    unknown = [d for d in args.depends_on if d not in known]
    if unknown:
        print(f"  Warning: depends on unknown {', '.join(unknown)} (ineligible until they exist and pass)")
    return 0
