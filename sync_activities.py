#!/usr/bin/env python3
"""
Command-line tool to sync Strava activities to a calendar.

Usage:
    python sync_activities.py                  # one incremental pass
    python sync_activities.py sync --activity-id 1234567890
    python sync_activities.py recover --days 7 # fill gaps from the last week
    python sync_activities.py check-calendar   # show which calendar will be used
    python sync_activities.py status
    python sync_activities.py reset-cursor     # next pass re-syncs everything
    python sync_activities.py watch            # poll every 15 minutes
    python sync_activities.py serve 8080       # publish .ics calendars

Run it from cron for unattended syncing, e.g.
    */15 * * * * cd /path/to/strava-calendar-sync && python3 sync_activities.py
"""

import argparse
import logging
import sys
from datetime import datetime, timezone

from strava_calendar import config
from strava_calendar.errors import StravaCalendarError
from strava_calendar.runner import (
    build_engine,
    build_provider,
    build_store,
    run_recovery,
    run_single,
    run_sync,
    watch,
)
from strava_calendar.server import run_server

logger = logging.getLogger('sync_activities')


def show_status(settings, store):
    """Print which settings are present without printing their values."""
    print("\n==== Strava Calendar Sync Status ====")
    print(f"State file: {settings.state_path}")
    for key in config.REQUIRED_SECRETS:
        print(f"{key} present: {bool(store.get(key))}")
    print(f"Calendar backend: {settings.calendar_backend}")
    print(f"Target calendar: {settings.calendar_name}")
    print(f"Last activity ID: {store.get_int(config.LAST_ACTIVITY_ID, 0)}")
    expires_at = store.get_int(config.EXPIRES_AT, 0)
    if expires_at:
        when = datetime.fromtimestamp(expires_at, timezone.utc).astimezone(settings.tz)
        print(f"Access token expires: {when:%Y-%m-%d %H:%M:%S %Z}")
    else:
        print("Access token expires: no token yet")


def check_calendar(settings, store):
    """List the available calendars and the one the sync would write to."""
    provider = build_provider(settings)
    calendars = provider.get_all_calendars()
    print("All available calendars:")
    for cal in calendars:
        print(f"- {cal.name} (ID: {cal.id})")
    calendar = build_engine(settings, store, provider).resolve_calendar()
    print(f"✓ Events will be created in: {calendar.name} (ID: {calendar.id})")


def reset_cursor(store, to=0):
    store.set(config.LAST_ACTIVITY_ID, to)
    print(f"✓ Last activity ID set to {to}")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Sync Strava activities to a calendar')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    sync_parser = subparsers.add_parser('sync', help='Create events for new activities (default)')
    sync_parser.add_argument('--activity-id', type=int,
                             help='Sync a single activity by id without moving the cursor')

    recover_parser = subparsers.add_parser('recover', help='Fill in missing events for a time window')
    window = recover_parser.add_mutually_exclusive_group()
    window.add_argument('--days', type=int, help='Look back this many days (default: RECOVER_DAYS or 7)')
    window.add_argument('--since', type=int, help='Unix timestamp to recover from')

    subparsers.add_parser('check-calendar', help='List calendars and show the sync target')
    subparsers.add_parser('status', help='Show configuration and sync state')

    reset_parser = subparsers.add_parser('reset-cursor', help='Set the last synced activity id')
    reset_parser.add_argument('--to', type=int, default=0, help='New cursor value (default: 0)')

    subparsers.add_parser('watch', help='Poll on a timer with a daily recovery pass')

    serve_parser = subparsers.add_parser('serve', help='Serve .ics calendars for subscription')
    serve_parser.add_argument('port', type=int, nargs='?', default=8080, help='Port (default: 8080)')

    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )
    command = args.command or 'sync'

    try:
        settings = config.get_settings()
        store = build_store(settings)

        if command == 'status':
            show_status(settings, store)
        elif command == 'reset-cursor':
            reset_cursor(store, args.to)
        elif command == 'check-calendar':
            check_calendar(settings, store)
        elif command == 'serve':
            run_server(settings.calendar_dir, args.port)
        elif command == 'watch':
            config.require_credentials(store)
            watch(settings, store, build_provider(settings, interactive=False))
        elif command == 'recover':
            config.require_credentials(store)
            provider = build_provider(settings, interactive=False)
            recovered = run_recovery(settings, store, provider, since=args.since, days=args.days)
            print(f"✓ Recovered {recovered} activities")
        elif getattr(args, 'activity_id', None):
            config.require_credentials(store)
            provider = build_provider(settings, interactive=False)
            if run_single(settings, store, provider, args.activity_id):
                print(f"✓ Created event for activity {args.activity_id}")
            else:
                print(f"✓ Activity {args.activity_id} was already on the calendar")
        else:
            config.require_credentials(store)
            provider = build_provider(settings, interactive=False)
            created = run_sync(settings, store, provider)
            print(f"✓ Created {created} new events")
    except StravaCalendarError as e:
        logger.error("Sync failed: %s", e)
        print(f"✗ {e}")
        return 1
    except KeyboardInterrupt:
        print("\n✓ Stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
