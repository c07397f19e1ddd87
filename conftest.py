# conftest.py
# Stand-ins for the Strava HTTP API and a calendar provider.

import json
from datetime import datetime, timedelta, timezone

import pytest

from strava_calendar.calendars import Calendar, CalendarEvent, CalendarProvider, overlaps
from strava_calendar.config import PropertyStore


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        if text is None:
            text = json.dumps(payload) if payload is not None else ''
        self.text = text

    def json(self):
        return json.loads(self.text)


class FakeSession:
    """Records requests and replays queued responses."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []
        self.closed = False

    def _next(self):
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def post(self, url, data=None, **kwargs):
        self.calls.append(('POST', url, data, kwargs))
        return self._next()

    def get(self, url, headers=None, params=None, **kwargs):
        self.calls.append(('GET', url, params, headers))
        return self._next()

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


class MemoryCalendar(Calendar):
    def __init__(self, name, calendar_id=None):
        self.name = name
        self.id = calendar_id or name
        self.events = []
        self.fail_for = set()
        self.searches = []

    def get_events(self, start, end, search=None):
        self.searches.append((start, end, search))
        return [e for e in self.events
                if overlaps(e.start, e.end, start, end) and (not search or search in e.description)]

    def create_event(self, title, start, end, description='', location=''):
        if any(f"Strava ID: {bad}" in description for bad in self.fail_for):
            raise RuntimeError("calendar rejected the event")
        event = CalendarEvent(uid=str(len(self.events) + 1), title=title, start=start, end=end,
                              description=description, location=location)
        self.events.append(event)
        return event


class MemoryProvider(CalendarProvider):
    def __init__(self, calendars=None, default=None):
        self.calendars = list(calendars or [])
        self.default = default

    def get_all_calendars(self):
        return list(self.calendars)

    def get_default_calendar(self):
        return self.default


BASE_TIME = datetime(2024, 3, 15, 7, 0, tzinfo=timezone.utc)


def make_activity(activity_id, **overrides):
    start = BASE_TIME + timedelta(hours=activity_id)
    activity = {
        'id': activity_id,
        'name': f'Morning Run {activity_id}',
        'type': 'Run',
        'start_date': start.strftime('%Y-%m-%dT%H:%M:%SZ'),
        'elapsed_time': 1800,
        'moving_time': 1700,
        'distance': 5000.0,
        'average_speed': 2.94,
        'total_elevation_gain': 12.4,
        'location_city': 'Nashville',
    }
    activity.update(overrides)
    return activity


class FakeStravaClient:
    """Serves activity pages like /athlete/activities: newest first."""

    def __init__(self, activities=None, pages=None, fail_on_page=None, always_full=False):
        self.activities = sorted(activities or [], key=lambda a: a['id'], reverse=True)
        self.pages = pages
        self.fail_on_page = fail_on_page
        self.always_full = always_full
        self.requested_pages = []
        self.after_calls = []

    def list_activities(self, page=1, per_page=30):
        from strava_calendar.errors import ActivityFetchError

        self.requested_pages.append(page)
        if self.fail_on_page == page:
            raise ActivityFetchError("Strava API error: 500 boom", status_code=500, body='boom')
        if self.always_full:
            return [make_activity(page * 1000 + i) for i in range(per_page, 0, -1)]
        if self.pages is not None:
            return self.pages[page - 1] if page <= len(self.pages) else []
        start = (page - 1) * per_page
        return self.activities[start:start + per_page]

    def list_activities_after(self, after, per_page=100):
        self.after_calls.append((after, per_page))
        return list(reversed(self.activities))[:per_page]

    def get_activity(self, activity_id):
        from strava_calendar.models import Activity

        for activity in self.activities:
            if activity['id'] == activity_id:
                return Activity.from_json(activity)
        raise KeyError(activity_id)


@pytest.fixture
def store():
    return PropertyStore(path=None, environ={
        'STRAVA_CLIENT_ID': '12345',
        'STRAVA_CLIENT_SECRET': 'shh',
        'STRAVA_REFRESH_TOKEN': 'refresh-0',
    })


@pytest.fixture
def strava_calendar():
    return MemoryCalendar('Strava', 'strava-cal')


@pytest.fixture
def provider(strava_calendar):
    return MemoryProvider([strava_calendar], default=MemoryCalendar('Personal', 'primary'))
