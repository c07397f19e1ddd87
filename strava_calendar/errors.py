"""
Exceptions raised while syncing Strava activities to a calendar.

Pass-level errors (configuration, authentication, calendar access, activity
fetch) abort the current pass. EventCreationError is per-activity: the sync
engine logs it and moves on to the next activity.
"""


class StravaCalendarError(Exception):
    """Base class for every error raised by strava_calendar."""


class ConfigurationError(StravaCalendarError):
    """A required setting or secret is missing or invalid."""


class AuthenticationError(StravaCalendarError):
    """The Strava token refresh exchange failed."""

    def __init__(self, message, status_code=None, body=None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class CalendarAccessError(StravaCalendarError):
    """No usable calendar could be resolved."""


class ActivityFetchError(StravaCalendarError):
    """The Strava activity endpoints returned an error."""

    def __init__(self, message, status_code=None, body=None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class EventCreationError(StravaCalendarError):
    """Creating the calendar event for one activity failed."""

    def __init__(self, message, activity_id=None):
        super().__init__(message)
        self.activity_id = activity_id


class InvalidActivityError(EventCreationError):
    """An activity record is missing a field needed to build its event."""
