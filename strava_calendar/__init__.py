"""
Mirror Strava activities onto a calendar.

This package provides:
- Strava OAuth token refresh with rotated refresh tokens persisted
- Incremental sync driven by the highest activity id already mirrored
- A recovery pass that fills gaps for a time window
- Calendar providers for .ics files (with a subscription server) and Google Calendar

Usage:
    python3 sync_activities.py sync
    python3 sync_activities.py recover --days 7
    python3 sync_activities.py watch
"""

from .config import PropertyStore, Settings, get_settings
from .errors import (
    ActivityFetchError,
    AuthenticationError,
    CalendarAccessError,
    ConfigurationError,
    EventCreationError,
    StravaCalendarError,
)
from .sync import SyncEngine
from .tokens import TokenManager

__all__ = [
    'PropertyStore', 'Settings', 'get_settings', 'SyncEngine', 'TokenManager',
    'StravaCalendarError', 'ConfigurationError', 'AuthenticationError',
    'CalendarAccessError', 'ActivityFetchError', 'EventCreationError',
]
__version__ = '1.0.0'
