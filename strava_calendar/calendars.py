"""
Calendar providers the sync can write to.

A provider finds calendars (by exact name, or its default one); a calendar
can search events in a time window and create new ones. The sync never
updates or deletes events.

IcsCalendarProvider keeps each calendar as an .ics file in a directory,
which the subscription server can publish. The Google Calendar provider
lives in gcal.py.
"""

import logging
import os
import re
import tempfile
import uuid
from dataclasses import dataclass
from datetime import date, datetime, time, timezone

import icalendar
import pytz

logger = logging.getLogger(__name__)

PRODID = '-//Strava Calendar Sync//strava-calendar-sync//EN'


@dataclass
class CalendarEvent:
    uid: str
    title: str
    start: datetime
    end: datetime
    description: str = ''
    location: str = ''


class Calendar:
    """One calendar the sync can read from and add events to."""

    id = None
    name = None

    def get_events(self, start, end, search=None):
        """Events overlapping [start, end] whose description contains ``search``."""
        raise NotImplementedError

    def create_event(self, title, start, end, description='', location=''):
        raise NotImplementedError


class CalendarProvider:
    def get_all_calendars(self):
        raise NotImplementedError

    def get_calendars_by_name(self, name):
        return [cal for cal in self.get_all_calendars() if cal.name == name]

    def get_default_calendar(self):
        raise NotImplementedError


def overlaps(event_start, event_end, window_start, window_end):
    """Inclusive overlap, so zero-length events and windows still match."""
    return event_start <= window_end and event_end >= window_start


def calendar_filename(name):
    slug = re.sub(r'[^A-Za-z0-9._-]+', '-', name).strip('-.') or 'calendar'
    return f"{slug}.ics"


class IcsCalendar(Calendar):
    def __init__(self, path, name, tz=pytz.utc):
        self.path = path
        self.name = name
        self.id = os.path.basename(path)
        self.tz = tz

    def _load(self):
        if not os.path.exists(self.path):
            return self._new_calendar()
        with open(self.path, 'rb') as f:
            return icalendar.Calendar.from_ical(f.read())

    def _new_calendar(self):
        cal = icalendar.Calendar()
        cal.add('prodid', PRODID)
        cal.add('version', '2.0')
        cal.add('x-wr-calname', self.name)
        cal.add('x-wr-timezone', self.tz.zone)
        cal.add('x-wr-caldesc', 'Activities synced from Strava')
        return cal

    def _save(self, cal):
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix='.ics.tmp')
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(cal.to_ical())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def ensure_exists(self):
        if not os.path.exists(self.path):
            self._save(self._new_calendar())
            logger.info("Created calendar %r at %s", self.name, self.path)

    def _as_datetime(self, value):
        if isinstance(value, datetime):
            if value.tzinfo is None:
                return self.tz.localize(value)
            return value
        if isinstance(value, date):
            # All-day events start at local midnight
            return self.tz.localize(datetime.combine(value, time.min))
        raise ValueError(f"Unsupported date value: {value!r}")

    def _to_event(self, component):
        start = self._as_datetime(component.get('dtstart').dt)
        dtend = component.get('dtend')
        end = self._as_datetime(dtend.dt) if dtend is not None else start
        return CalendarEvent(
            uid=str(component.get('uid', '')),
            title=str(component.get('summary', '')),
            start=start,
            end=end,
            description=str(component.get('description', '')),
            location=str(component.get('location', '')),
        )

    def events(self):
        return [self._to_event(c) for c in self._load().walk('VEVENT') if c.get('dtstart') is not None]

    def get_events(self, start, end, search=None):
        return [
            event for event in self.events()
            if overlaps(event.start, event.end, start, end)
            and (not search or search in event.description)
        ]

    def create_event(self, title, start, end, description='', location=''):
        cal = self._load()
        event = icalendar.Event()
        uid = f"{uuid.uuid4()}@strava-calendar-sync"
        event.add('uid', uid)
        event.add('dtstamp', datetime.now(timezone.utc))
        event.add('summary', title)
        event.add('dtstart', start.astimezone(self.tz))
        event.add('dtend', end.astimezone(self.tz))
        event.add('description', description)
        if location:
            event.add('location', location)
        event.add('status', 'CONFIRMED')
        cal.add_component(event)
        self._save(cal)
        return CalendarEvent(uid=uid, title=title, start=start, end=end,
                             description=description, location=location)


class IcsCalendarProvider(CalendarProvider):
    """Calendars stored as .ics files in one directory, named by X-WR-CALNAME."""

    def __init__(self, directory, default_name='Calendar', tz=pytz.utc):
        self.directory = directory
        self.default_name = default_name
        self.tz = tz

    def _read_name(self, path):
        with open(path, 'rb') as f:
            cal = icalendar.Calendar.from_ical(f.read())
        name = cal.get('x-wr-calname')
        return str(name) if name else os.path.splitext(os.path.basename(path))[0]

    def get_all_calendars(self):
        if not os.path.isdir(self.directory):
            return []
        calendars = []
        for filename in sorted(os.listdir(self.directory)):
            if not filename.endswith('.ics'):
                continue
            path = os.path.join(self.directory, filename)
            calendars.append(IcsCalendar(path, self._read_name(path), self.tz))
        return calendars

    def create_calendar(self, name):
        calendar = IcsCalendar(os.path.join(self.directory, calendar_filename(name)), name, self.tz)
        calendar.ensure_exists()
        return calendar

    def get_default_calendar(self):
        existing = self.get_calendars_by_name(self.default_name)
        if existing:
            return existing[0]
        return self.create_calendar(self.default_name)
