#!/usr/bin/env python3
"""Feature tracker CLI entrypoint."""

import sys
import logging
import argparse
from pathlib import Path

from tracker.lib.config import load_tracker_config
from tracker.lib.errors import (
    CycleDetectedError,
    NotInitializedError,
    ParseError,
    StorageError,
)
from tracker.workflow.coordinator import Tracker
from tracker.commands import init as cmd_init_module
from tracker.commands import status as cmd_status_module
from tracker.commands import next as cmd_next_module
from tracker.commands import add as cmd_add_module
from tracker.commands import update as cmd_update_module
from tracker.commands import reset as cmd_reset_module
from tracker.commands import log as cmd_log_module
from tracker.commands import report as cmd_report_module

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_WORKSPACE = 2


def get_config(args):
    """Load tracker config for --project-dir (default: current directory)."""
    try:
        return load_tracker_config(Path(args.project_dir))
    except ValueError as e:
        # Malformed tracker.env
        print(f"ERROR: {e}")
        sys.exit(EXIT_WORKSPACE)


def get_tracker(args) -> Tracker:
    """Open an existing workspace. Exits 2 if there is none or it cannot be loaded."""
    config = get_config(args)
    if not config.feature_list_file.exists():
        print(f"ERROR: No feature list at {config.feature_list_file}")
        print("  Run 'ft init' first.")
        sys.exit(EXIT_WORKSPACE)

    tracker = Tracker(config)
    try:
        tracker.initialize()
    except (ParseError, CycleDetectedError, StorageError) as e:
        print(f"ERROR: {e}")
        sys.exit(EXIT_WORKSPACE)
    return tracker


def cmd_init(args):
    config = get_config(args)
    return cmd_init_module.cmd_init(args, config)


def cmd_status(args):
    return cmd_status_module.cmd_status(args, get_tracker(args))


def cmd_next(args):
    return cmd_next_module.cmd_next(args, get_tracker(args))


def cmd_add(args):
    return cmd_add_module.cmd_add(args, get_tracker(args))


def cmd_update(args):
    return cmd_update_module.cmd_update(args, get_tracker(args))


def cmd_reset(args):
    return cmd_reset_module.cmd_reset(args, get_tracker(args))


def cmd_log(args):
    return cmd_log_module.cmd_log(args, get_tracker(args))


def cmd_report(args):
    return cmd_report_module.cmd_report(args, get_tracker(args))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='ft', description='Feature progress tracker')
    parser.add_argument('--project-dir', '-C', default='.', help='Project directory (default: current)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    # ft init
    p_init = subparsers.add_parser('init', help='Create the feature list and progress log')
    p_init.add_argument('name', nargs='?', help='Project name (default: directory name)')
    p_init.add_argument('--force', action='store_true', help='Discard an existing workspace and start over')
    p_init.set_defaults(func=cmd_init)

    # ft status
    p_status = subparsers.add_parser('status', help='Show project progress and health')
    p_status.add_argument('--json', action='store_true', help='Print project state as JSON')
    p_status.set_defaults(func=cmd_status)

    # ft next
    p_next = subparsers.add_parser('next', help='Show the feature to work on next')
    p_next.add_argument('--start', action='store_true', help='Mark it in progress')
    p_next.set_defaults(func=cmd_next)

    # ft add
    p_add = subparsers.add_parser('add', help='Register a new feature')
    p_add.add_argument('description', help='What the feature does')
    p_add.add_argument('--category', '-c', default='functional', help='Category (default: functional)')
    p_add.add_argument('--priority', '-p', default='medium',
                       choices=['critical', 'high', 'medium', 'low'])
    p_add.add_argument('--depends-on', '-d', action='append', default=[], metavar='ID',
                       help='Dependency feature id (repeatable)')
    p_add.add_argument('--file', '-f', action='append', default=[], dest='files', metavar='PATH',
                       help='Related file (repeatable)')
    p_add.add_argument('--step', action='append', default=[], dest='steps', help='Verification step (repeatable)')
    p_add.add_argument('--complexity', default='medium', choices=['simple', 'medium', 'complex'])
    p_add.add_argument('--notes', default='', help='Free-form notes')
    p_add.set_defaults(func=cmd_add)

    # ft update
    p_update = subparsers.add_parser('update', help='Change a feature')
    p_update.add_argument('id', help='Feature id (e.g., feature-001)')
    p_update.add_argument('--status', '-s', choices=['pending', 'in_progress', 'blocked', 'completed'])
    p_update.add_argument('--passes', action='store_const', const=True, default=None,
                          help='Mark the feature as passing')
    p_update.add_argument('--no-passes', action='store_const', const=False, dest='passes',
                          help='Mark the feature as not passing')
    p_update.add_argument('--priority', '-p', choices=['critical', 'high', 'medium', 'low'])
    p_update.add_argument('--file', '-f', action='append', default=[], dest='files', metavar='PATH',
                          help='Add a related file (repeatable)')
    p_update.add_argument('--depends-on', '-d', action='append', default=None, metavar='ID',
                          help='Replace dependencies (repeatable)')
    p_update.add_argument('--notes', help='Replace notes')
    p_update.set_defaults(func=cmd_update)

    # ft reset
    p_reset = subparsers.add_parser('reset', help='Put a feature back to pending for a retry')
    p_reset.add_argument('id', help='Feature id')
    p_reset.set_defaults(func=cmd_reset)

    # ft log
    p_log = subparsers.add_parser('log', help='Show recent progress entries')
    p_log.add_argument('-n', '--limit', type=int, default=20, help='Number of entries (default: 20)')
    p_log.set_defaults(func=cmd_log)

    # ft report
    p_report = subparsers.add_parser('report', help='Full report: summary, features, progress')
    p_report.add_argument('--format', choices=['json', 'yaml'], default='json')
    p_report.add_argument('--progress-limit', type=int, default=100,
                          help='Progress entries to include (default: 100)')
    p_report.set_defaults(func=cmd_report)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    try:
        return args.func(args)
    except NotInitializedError as e:
        print(f"ERROR: {e}")
        return EXIT_WORKSPACE


if __name__ == '__main__':
    sys.exit(main())
