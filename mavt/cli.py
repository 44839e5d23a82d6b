# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Command-line interface for MAVT.

This module provides the main CLI entry point for the mavt tool, offering
commands for enrolling apps, checking for new versions, browsing history,
and running the background service.

Commands:

    track: Start tracking one or more apps by bundle ID
    untrack: Stop tracking an app and delete its history
    list: Show tracked apps and their current versions
    history: Show the version history of one app
    recent: Show updates detected within a time window
    search: Search the App Store
    check: Check all tracked apps once
    daemon: Run scheduled checks and the JSON API until interrupted

Example:
    Track an app:
        ```bash
        $ mavt track com.spotify.client
        ```

    Check for updates once:
        ```bash
        $ mavt check
        ```

    Show updates from the last week:
        ```bash
        $ mavt recent --since 7d
        ```

    Run the service:
        ```bash
        $ mavt daemon --config mavt.yaml
        ```

Exit Codes:

- 0: Success
- 1: Error (configuration, catalog, or storage failure)

Note:
    Every command accepts --config, --data-dir, -v/--verbose and -d/--debug.
    Settings are resolved by mavt.config.load_config(); --data-dir wins
    over everything else.
    Verbose mode shows full tracebacks on errors for debugging.

"""

from __future__ import annotations

import argparse
from dataclasses import replace
from importlib.metadata import version
from pathlib import Path
import signal
import sys

from mavt.catalog import AppStoreClient
from mavt.config import Settings, load_config, parse_duration
from mavt.exceptions import MAVTError
from mavt.logging import Logger, logger_for_level, set_global_logger
from mavt.models import VersionUpdate
from mavt.notifier import AppriseNotifier
from mavt.scheduler import Scheduler
from mavt.server import ApiServer
from mavt.store import RecordStore
from mavt.tracker import Tracker


def _format_time(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S %Z") if value else "never"


def _build(args: argparse.Namespace) -> tuple[Settings, Tracker, Logger]:
    """Resolve settings and wire up the tracker for a command."""
    settings = load_config(args.config)
    if args.data_dir:
        settings = replace(settings, data_dir=Path(args.data_dir))

    logger = logger_for_level(
        settings.log_level, verbose=args.verbose, debug=args.debug
    )
    set_global_logger(logger)

    tracker = Tracker(
        RecordStore(settings.data_dir, logger=logger),
        AppStoreClient(
            country=settings.country,
            timeout=settings.request_timeout,
            logger=logger,
        ),
        AppriseNotifier(settings.apprise_url, logger=logger),
        logger=logger,
    )
    return settings, tracker, logger


def _report_error(args: argparse.Namespace, err: Exception) -> int:
    print(f"Error: {err}")
    if args.verbose or args.debug:
        import traceback

        traceback.print_exc()
    return 1


def _enroll_configured(settings: Settings, tracker: Tracker, logger: Logger) -> None:
    """Track the configured apps that are not tracked yet.

    A configured app that cannot be tracked is logged and skipped.
    """
    for bundle_id in settings.apps:
        try:
            if tracker.store.load_app(bundle_id) is None:
                tracker.track_app(bundle_id)
        except MAVTError as err:
            logger.warning("CLI", f"Failed to track configured app {bundle_id}: {err}")


def _print_updates(updates: list[VersionUpdate], notes: bool = False) -> None:
    for update in updates:
        print(
            f"  {update.track_name}: {update.old_version} -> {update.new_version}"
            f"  ({_format_time(update.updated_at)})"
        )
        if notes and update.release_notes:
            for line in update.release_notes.splitlines():
                print(f"      {line}")


def cmd_track(args: argparse.Namespace) -> int:
    """Handler for 'mavt track' command.

    Looks up each bundle ID in the App Store and starts tracking it. Apps
    that are already tracked are refreshed; their history is untouched.

    Args:
        args: Parsed command-line arguments containing the bundle IDs.

    Returns:
        Exit code (0 if every app was tracked, 1 otherwise).

    """
    try:
        _, tracker, _ = _build(args)
    except MAVTError as err:
        return _report_error(args, err)

    failures = 0
    tracked = []
    for bundle_id in args.bundle_ids:
        try:
            tracked.append(tracker.track_app(bundle_id))
        except MAVTError as err:
            print(f"Error: {bundle_id}: {err}")
            failures += 1

    if tracked:
        print("=" * 70)
        print("TRACK RESULTS")
        print("=" * 70)
        for app in tracked:
            print(f"App Name:        {app.track_name}")
            print(f"Bundle ID:       {app.bundle_id}")
            print(f"Version:         {app.version}")
            print(f"First Seen:      {_format_time(app.first_discovered)}")
            print("-" * 70)
        print()
        print(f"[SUCCESS] Tracking {len(tracked)} app(s).")

    return 1 if failures else 0


def cmd_untrack(args: argparse.Namespace) -> int:
    """Handler for 'mavt untrack' command."""
    try:
        _, tracker, _ = _build(args)
        removed = tracker.remove_app(args.bundle_id)
    except MAVTError as err:
        return _report_error(args, err)

    if not removed:
        print(f"Error: App is not tracked: {args.bundle_id}")
        return 1
    print(f"[SUCCESS] Stopped tracking {args.bundle_id}.")
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    """Handler for 'mavt list' command.

    Prints every tracked app with its current version and the time it was
    last checked.
    """
    try:
        _, tracker, _ = _build(args)
        apps = tracker.get_tracked_apps()
    except MAVTError as err:
        return _report_error(args, err)

    if not apps:
        print("No apps tracked yet. Use 'mavt track <bundle_id>' to add one.")
        return 0

    print("=" * 70)
    print(f"TRACKED APPS ({len(apps)})")
    print("=" * 70)
    for app in apps:
        print(f"{app.track_name} ({app.bundle_id})")
        print(f"  Version:       {app.version}")
        if app.artist_name:
            print(f"  Developer:     {app.artist_name}")
        print(f"  Last Checked:  {_format_time(app.last_checked)}")
        print(f"  First Seen:    {_format_time(app.first_discovered)}")
    print("=" * 70)
    return 0


def cmd_history(args: argparse.Namespace) -> int:
    """Handler for 'mavt history' command."""
    try:
        _, tracker, _ = _build(args)
        updates = tracker.get_version_history(args.bundle_id)
    except MAVTError as err:
        return _report_error(args, err)

    if not updates:
        print(f"No version history for {args.bundle_id}.")
        return 0

    print("=" * 70)
    print(f"VERSION HISTORY: {args.bundle_id}")
    print("=" * 70)
    _print_updates(updates, notes=True)
    print("=" * 70)
    return 0


def cmd_recent(args: argparse.Namespace) -> int:
    """Handler for 'mavt recent' command.

    Shows updates across all apps detected within --since (default 24h),
    oldest first.
    """
    try:
        since = parse_duration(args.since)
        _, tracker, _ = _build(args)
        updates = tracker.get_recent_updates(since)
    except MAVTError as err:
        return _report_error(args, err)

    if not updates:
        print(f"No updates in the last {args.since}.")
        return 0

    print("=" * 70)
    print(f"UPDATES IN THE LAST {args.since} ({len(updates)})")
    print("=" * 70)
    _print_updates(updates)
    print("=" * 70)
    return 0


def cmd_search(args: argparse.Namespace) -> int:
    """Handler for 'mavt search' command."""
    try:
        _, tracker, _ = _build(args)
        results = tracker.search(args.term, args.limit)
    except MAVTError as err:
        return _report_error(args, err)

    if not results:
        print(f"No apps found for '{args.term}'.")
        return 0

    print("=" * 70)
    print(f"SEARCH RESULTS: {args.term}")
    print("=" * 70)
    for result in results:
        marker = " [tracked]" if result.tracked else ""
        print(f"{result.app.track_name}{marker}")
        print(f"  Bundle ID:  {result.app.bundle_id}")
        print(f"  Version:    {result.app.version}")
        if result.app.artist_name:
            print(f"  Developer:  {result.app.artist_name}")
    print("=" * 70)
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    """Handler for 'mavt check' command.

    Enrolls the configured apps, checks every tracked app once and prints
    the detected updates. Apps that fail to check are logged and skipped;
    they do not change the exit code.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 for success, 1 for configuration or storage failure).

    """
    try:
        settings, tracker, logger = _build(args)
        _enroll_configured(settings, tracker, logger)
        updates = tracker.check_for_updates()
    except MAVTError as err:
        return _report_error(args, err)

    if not updates:
        print("No updates found")
        return 0

    print("=" * 70)
    print(f"FOUND {len(updates)} UPDATE(S)")
    print("=" * 70)
    _print_updates(updates)
    print("=" * 70)
    return 0


def cmd_daemon(args: argparse.Namespace) -> int:
    """Handler for 'mavt daemon' command.

    Enrolls the configured apps, starts the JSON API in a background thread
    and runs the scheduler in the foreground until SIGINT or SIGTERM.

    Note:
        On a signal the app being checked is finished before exiting.

    """
    try:
        settings, tracker, logger = _build(args)
        _enroll_configured(settings, tracker, logger)
        tracked = len(tracker.get_tracked_apps())
    except MAVTError as err:
        return _report_error(args, err)

    server = None
    if not args.no_server:
        try:
            server = ApiServer(
                tracker, settings.server_host, settings.server_port, logger=logger
            )
        except OSError as err:
            return _report_error(args, err)
        server.start()

    scheduler = Scheduler(tracker, settings.check_interval, logger=logger)

    def _handle_signal(signum, frame):
        logger.info("DAEMON", f"Received signal {signum}, shutting down")
        scheduler.stop()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    logger.info(
        "DAEMON", f"Checking {tracked} app(s) every {settings.check_interval}"
    )
    try:
        scheduler.start()
        scheduler.wait()
    finally:
        scheduler.shutdown()
        if server is not None:
            server.shutdown()
    return 0


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML config file (default: $MAVT_CONFIG, if set)",
    )
    parser.add_argument(
        "--data-dir",
        default=None,
        help="Record store directory (default: from config or ./data)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show progress and high-level status updates",
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Show detailed debugging output (implies --verbose)",
    )


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the mavt CLI.

    This function is registered as the 'mavt' console script in pyproject.toml.
    """
    parser = argparse.ArgumentParser(
        prog="mavt",
        description="MAVT - Mobile App Version Tracker for the App Store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"mavt {version('mavt')}",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands",
        required=True,
    )

    # 'track' command
    parser_track = subparsers.add_parser(
        "track",
        help="Start tracking apps by bundle ID",
        description="Look up apps in the App Store and add them to tracking.",
    )
    parser_track.add_argument(
        "bundle_ids",
        nargs="+",
        metavar="bundle_id",
        help="Bundle ID, e.g. com.spotify.client",
    )
    _add_common_args(parser_track)
    parser_track.set_defaults(func=cmd_track)

    # 'untrack' command
    parser_untrack = subparsers.add_parser(
        "untrack",
        help="Stop tracking an app and delete its history",
    )
    parser_untrack.add_argument("bundle_id", help="Bundle ID to remove")
    _add_common_args(parser_untrack)
    parser_untrack.set_defaults(func=cmd_untrack)

    # 'list' command
    parser_list = subparsers.add_parser("list", help="Show tracked apps")
    _add_common_args(parser_list)
    parser_list.set_defaults(func=cmd_list)

    # 'history' command
    parser_history = subparsers.add_parser(
        "history", help="Show the version history of an app"
    )
    parser_history.add_argument("bundle_id", help="Bundle ID")
    _add_common_args(parser_history)
    parser_history.set_defaults(func=cmd_history)

    # 'recent' command
    parser_recent = subparsers.add_parser(
        "recent", help="Show updates detected within a time window"
    )
    parser_recent.add_argument(
        "--since",
        default="24h",
        help="Time window, e.g. 90m, 24h, 7d (default: 24h)",
    )
    _add_common_args(parser_recent)
    parser_recent.set_defaults(func=cmd_recent)

    # 'search' command
    parser_search = subparsers.add_parser("search", help="Search the App Store")
    parser_search.add_argument("term", help="Search term")
    parser_search.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Maximum results, 1-50 (default: 10)",
    )
    _add_common_args(parser_search)
    parser_search.set_defaults(func=cmd_search)

    # 'check' command
    parser_check = subparsers.add_parser(
        "check",
        help="Check all tracked apps for updates once",
        description="Enroll configured apps, check every tracked app and print new versions.",
    )
    _add_common_args(parser_check)
    parser_check.set_defaults(func=cmd_check)

    # 'daemon' command
    parser_daemon = subparsers.add_parser(
        "daemon",
        help="Run scheduled checks and the JSON API",
        description="Check for updates on the configured interval and serve the JSON API until interrupted.",
    )
    parser_daemon.add_argument(
        "--no-server",
        action="store_true",
        help="Do not start the JSON API server",
    )
    _add_common_args(parser_daemon)
    parser_daemon.set_defaults(func=cmd_daemon)

    # Parse and dispatch
    args = parser.parse_args(argv)

    exit_code = args.func(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
