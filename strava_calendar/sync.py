"""
Mirror Strava activities onto a calendar.

Two passes share the same calendar lookup, event mapping and duplicate
check:

- sync_new_activities pages through the athlete's activities and creates
  events for every id above the stored cursor, then advances the cursor to
  the highest id it handled.
- recover_window asks Strava for everything after a timestamp and fills in
  missing events without touching the cursor.

Duplicates are detected by searching the activity's own time window for an
event whose description carries the "Strava ID: <id>" marker line.
"""

import logging
import time

from . import config
from .errors import CalendarAccessError, EventCreationError
from .events import activity_marker, activity_time_range, build_event_details
from .models import Activity
from .strava import StravaClient

logger = logging.getLogger(__name__)

DEFAULT_CALENDAR_NAME = 'Strava'
PER_PAGE = 30
RECOVERY_LIMIT = 100
CREATE_DELAY = 0.1


def has_marker(description, activity_id):
    marker = activity_marker(activity_id)
    return any(line.strip() == marker for line in (description or '').splitlines())


class SyncEngine:
    def __init__(self, store, provider, calendar_name=DEFAULT_CALENDAR_NAME,
                 per_page=PER_PAGE, max_pages=None, recovery_limit=RECOVERY_LIMIT,
                 create_delay=CREATE_DELAY, client_factory=StravaClient, sleep=time.sleep):
        self.store = store
        self.provider = provider
        self.calendar_name = calendar_name
        self.per_page = per_page
        self.max_pages = max_pages
        self.recovery_limit = recovery_limit
        self.create_delay = create_delay
        self.client_factory = client_factory
        self.sleep = sleep

    def resolve_calendar(self):
        """The calendar named ``calendar_name`` if there is one, else the provider's default."""
        calendar = None
        try:
            named = self.provider.get_calendars_by_name(self.calendar_name)
            if named:
                calendar = named[0]
                logger.info("Using %s calendar", self.calendar_name)
        except Exception as e:
            logger.warning("Falling back to default calendar: %s", e)

        if calendar is None:
            try:
                calendar = self.provider.get_default_calendar()
            except Exception as e:
                raise CalendarAccessError(f"Unable to access any calendar: {e}") from e
            if calendar is not None:
                logger.info("Using default calendar %r (%s calendar not found)",
                            calendar.name, self.calendar_name)

        if calendar is None:
            raise CalendarAccessError("Unable to access any calendar. Please check permissions.")
        return calendar

    def find_existing_events(self, calendar, activity):
        start, end = activity_time_range(activity)
        marker = activity_marker(activity.id)
        return [e for e in calendar.get_events(start, end, search=marker)
                if has_marker(e.description, activity.id)]

    def create_calendar_event(self, calendar, activity):
        """Create the event for ``activity`` unless one already exists.

        Returns True when an event was created, False when it was already there.
        """
        try:
            if self.find_existing_events(calendar, activity):
                logger.info("Event already exists for activity %s", activity.id)
                return False

            details = build_event_details(activity)
            calendar.create_event(
                details.title,
                details.start,
                details.end,
                description=details.description,
                location=details.location,
            )
        except EventCreationError:
            raise
        except Exception as e:
            raise EventCreationError(
                f"Failed to create event for activity {activity.id}: {e}", activity_id=activity.id
            ) from e

        logger.info("Created calendar event for activity %s - %s", activity.id, details.title)
        return True

    def _process(self, calendar, payload):
        """Create one activity's event; returns (activity id, created) or None on failure."""
        try:
            activity = Activity.from_json(payload)
            created = self.create_calendar_event(calendar, activity)
        except EventCreationError as e:
            raw_id = payload.get('id') if isinstance(payload, dict) else None
            logger.error("Skipping activity %s: %s", e.activity_id or raw_id, e)
            return None
        return activity.id, created

    def sync_new_activities(self, access_token):
        """Create events for activities newer than the cursor. Returns the number created."""
        calendar = self.resolve_calendar()
        client = self.client_factory(access_token)

        last_activity_id = self.store.get_int(config.LAST_ACTIVITY_ID, 0)
        logger.info("Fetching activities since ID: %s", last_activity_id)

        new_last_id = last_activity_id
        created_count = 0
        page = 1

        while True:
            if self.max_pages is not None and page > self.max_pages:
                logger.warning("Stopped after %s pages; remaining pages are left for the next pass",
                               self.max_pages)
                break

            activities = client.list_activities(page=page, per_page=self.per_page)
            if not activities:
                break

            # Pages arrive newest first
            for payload in reversed(activities):
                try:
                    activity_id = int(payload.get('id'))
                except (AttributeError, TypeError, ValueError):
                    logger.error("Skipping activity record without a usable id: %r", payload)
                    continue
                if activity_id <= last_activity_id:
                    continue

                result = self._process(calendar, payload)
                if result is None:
                    continue
                processed_id, created = result
                if created:
                    created_count += 1
                new_last_id = max(new_last_id, processed_id)

            page += 1
            if len(activities) < self.per_page:
                break

        if new_last_id > last_activity_id:
            self.store.set(config.LAST_ACTIVITY_ID, new_last_id)
            logger.info("Updated last activity ID to: %s", new_last_id)

        logger.info("Created %s new events", created_count)
        return created_count

    def recover_window(self, access_token, since_epoch_seconds):
        """Fill in events for every activity after ``since_epoch_seconds``. The cursor is left alone."""
        calendar = self.resolve_calendar()
        client = self.client_factory(access_token)

        activities = client.list_activities_after(since_epoch_seconds, per_page=self.recovery_limit)
        logger.info("Found %s activities after %s", len(activities), since_epoch_seconds)

        recovered = 0
        for payload in activities:
            result = self._process(calendar, payload)
            if result is None or not result[1]:
                continue
            recovered += 1
            logger.info("Recovered activity: %s", result[0])
            if self.create_delay:
                self.sleep(self.create_delay)

        logger.info("Recovery completed. Recovered %s activities.", recovered)
        return recovered

    def sync_activity(self, access_token, activity_id):
        """Mirror a single activity fetched by id. Returns True if an event was created."""
        calendar = self.resolve_calendar()
        client = self.client_factory(access_token)
        activity = client.get_activity(activity_id)
        return self.create_calendar_event(calendar, activity)
