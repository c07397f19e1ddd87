"""
Google Calendar provider, through the Calendar API v3.
"""

import logging
import os
from datetime import timedelta

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build

from .calendars import Calendar, CalendarEvent, CalendarProvider
from .errors import ConfigurationError
from .models import parse_strava_datetime

logger = logging.getLogger(__name__)

SCOPES = ['https://www.googleapis.com/auth/calendar']

# Google's window is exclusive on both ends (event end > timeMin, event start < timeMax)
WINDOW_PADDING = timedelta(seconds=1)


def load_credentials(client_secrets_file, token_file, interactive=True):
    creds = None
    if token_file and os.path.exists(token_file):
        creds = Credentials.from_authorized_user_file(token_file, SCOPES)
    if not creds or not creds.valid:
        if creds and creds.expired and creds.refresh_token:
            creds.refresh(Request())
        elif interactive:
            flow = InstalledAppFlow.from_client_secrets_file(client_secrets_file, SCOPES)
            creds = flow.run_local_server(port=0)
        else:
            raise ConfigurationError(
                f"No valid Google credentials in {token_file}; run check-calendar once to authorize"
            )
        with open(token_file, 'w') as token:
            token.write(creds.to_json())
    return creds


def build_service(client_secrets_file, token_file, interactive=True):
    creds = load_credentials(client_secrets_file, token_file, interactive=interactive)
    return build('calendar', 'v3', credentials=creds, cache_discovery=False)


def _event_time(value):
    # All-day events only carry a date
    return parse_strava_datetime(value.get('dateTime') or value.get('date'))


class GoogleCalendar(Calendar):
    def __init__(self, service, calendar_id, name):
        self.service = service
        self.id = calendar_id
        self.name = name

    def get_events(self, start, end, search=None):
        time_min = start - WINDOW_PADDING
        time_max = end + WINDOW_PADDING
        events = []
        page_token = None
        while True:
            events_result = (
                self.service.events()
                .list(
                    calendarId=self.id,
                    timeMin=time_min.isoformat(),
                    timeMax=time_max.isoformat(),
                    q=search,
                    singleEvents=True,
                    showDeleted=False,
                    pageToken=page_token,
                )
                .execute()
            )
            for item in events_result.get('items', []):
                description = item.get('description') or ''
                if search and search not in description:
                    continue
                events.append(CalendarEvent(
                    uid=item.get('id', ''),
                    title=item.get('summary', ''),
                    start=_event_time(item.get('start', {})),
                    end=_event_time(item.get('end', {})),
                    description=description,
                    location=item.get('location') or '',
                ))
            page_token = events_result.get('nextPageToken')
            if not page_token:
                break
        return events

    def create_event(self, title, start, end, description='', location=''):
        body = {
            'summary': title,
            'description': description,
            'start': {'dateTime': start.isoformat()},
            'end': {'dateTime': end.isoformat()},
        }
        if location:
            body['location'] = location
        created = self.service.events().insert(calendarId=self.id, body=body).execute()
        logger.debug("Inserted Google event %s", created.get('id'))
        return CalendarEvent(uid=created.get('id', ''), title=title, start=start, end=end,
                             description=description, location=location)


class GoogleCalendarProvider(CalendarProvider):
    def __init__(self, service):
        self.service = service

    def _calendar(self, item):
        return GoogleCalendar(self.service, item['id'], item.get('summaryOverride') or item.get('summary', ''))

    def get_all_calendars(self):
        calendars = []
        page_token = None
        while True:
            result = self.service.calendarList().list(pageToken=page_token).execute()
            calendars.extend(self._calendar(item) for item in result.get('items', []))
            page_token = result.get('nextPageToken')
            if not page_token:
                break
        return calendars

    def get_default_calendar(self):
        return self._calendar(self.service.calendarList().get(calendarId='primary').execute())
