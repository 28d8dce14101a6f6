"""
ft init - Create the feature list and progress log for a project.
"""

from tracker.lib.config import TrackerConfig
from tracker.lib.errors import CycleDetectedError, LockTimeout, ParseError, StorageError
from tracker.workflow.coordinator import Tracker


def cmd_init(args, config: TrackerConfig) -> int:
    """Initialize the workspace, or report that it already exists."""
    if args.name:
        config.project_name = args.name

    existing = config.feature_list_file.exists()
    tracker = Tracker(config)
    try:
        if existing and args.force:
            tracker.reset_workspace()
            print(f"Reset workspace in {config.project_dir}")
        elif existing:
            tracker.initialize()
            state = tracker.get_project_state()
            print(f"Workspace already initialized: {state.project_name} ({state.total_count} features)")
            print("  Use --force to discard it and start over.")
            return 0
        else:
            tracker.initialize()
            print(f"Initialized feature tracker for '{config.project_name}'")
    except (ParseError, CycleDetectedError) as e:
        print(f"ERROR: {e}")
        print("  Fix the file by hand or use --force to discard it.")
        return 2
    except (StorageError, LockTimeout) as e:
        print(f"ERROR: {e}")
        return 1

    print(f"  Feature list:  {config.feature_list_file}")
    print(f"  Progress log:  {config.progress_file}")
    return 0
