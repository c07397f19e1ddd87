"""
Configuration and persisted state for the Strava calendar sync.

Secrets come from the environment (a .env file is loaded with python-dotenv).
Everything the sync writes back - the access token, its expiry, the rotated
refresh token and the activity cursor - lives in a small JSON file next to
the script, the same way the bridge kept .strava-tokens.json.
"""

import json
import os
import tempfile
from dataclasses import dataclass
from typing import Optional

import pytz
from dotenv import load_dotenv

from .errors import ConfigurationError

CLIENT_ID = 'STRAVA_CLIENT_ID'
CLIENT_SECRET = 'STRAVA_CLIENT_SECRET'
REFRESH_TOKEN = 'STRAVA_REFRESH_TOKEN'
ACCESS_TOKEN = 'STRAVA_ACCESS_TOKEN'
EXPIRES_AT = 'STRAVA_EXPIRES_AT'
LAST_ACTIVITY_ID = 'LAST_ACTIVITY_ID'

REQUIRED_SECRETS = (CLIENT_ID, CLIENT_SECRET, REFRESH_TOKEN)

DEFAULT_STATE_PATH = '.strava-sync.json'


class PropertyStore:
    """Key/value state backed by a JSON file.

    Reads fall back to the environment variable of the same name, so the
    secrets can live in .env while the values the sync rotates are written
    to the file. With ``path=None`` the state is kept in memory only.
    """

    def __init__(self, path=DEFAULT_STATE_PATH, environ=None):
        self.path = path
        self.environ = os.environ if environ is None else environ
        self._data = self._read()

    def _read(self):
        if not self.path or not os.path.isfile(self.path):
            return {}
        with open(self.path) as f:
            content = f.read().strip()
        if not content:
            return {}
        try:
            data = json.loads(content)
        except ValueError as e:
            raise ConfigurationError(f"State file {self.path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"State file {self.path} must contain a JSON object")
        return data

    def _write(self):
        if not self.path:
            return
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix='.strava-sync-', suffix='.tmp')
        try:
            with os.fdopen(fd, 'w') as f:
                json.dump(self._data, f, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def get(self, key, default=None):
        value = self._data.get(key)
        if value is None or value == '':
            value = self.environ.get(key)
        if value is None or value == '':
            return default
        return value

    def set(self, key, value):
        self.update({key: value})

    def update(self, values):
        """Write several keys in one file replacement."""
        for key, value in values.items():
            self._data[key] = None if value is None else str(value)
        self._write()

    def delete(self, key):
        if self._data.pop(key, None) is not None:
            self._write()

    def get_int(self, key, default=0):
        value = self.get(key)
        if value is None:
            return default
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"{key} must be an integer, got {value!r}") from e


def require_credentials(store):
    """Return (client_id, client_secret, refresh_token) or raise ConfigurationError."""
    missing = [key for key in REQUIRED_SECRETS if not store.get(key)]
    if missing:
        raise ConfigurationError(
            "Missing required settings: " + ', '.join(missing) +
            ". Set STRAVA_CLIENT_ID, STRAVA_CLIENT_SECRET and STRAVA_REFRESH_TOKEN "
            "in the environment or in .env."
        )
    return tuple(store.get(key) for key in REQUIRED_SECRETS)


@dataclass
class Settings:
    state_path: str = DEFAULT_STATE_PATH
    calendar_backend: str = 'ics'
    calendar_name: str = 'Strava'
    calendar_dir: str = 'calendars'
    default_calendar: Optional[str] = None  # .ics backend falls back to calendar_name
    timezone: str = 'UTC'
    google_client_secrets: str = 'credentials.json'
    google_token_file: str = 'token.json'
    per_page: int = 30
    max_pages: Optional[int] = None
    recovery_limit: int = 100
    create_delay: float = 0.1
    poll_minutes: int = 15
    backup_time: str = '08:00'
    recover_days: int = 7

    @property
    def tz(self):
        return pytz.timezone(self.timezone)


def _env_int(environ, key, default):
    value = environ.get(key)
    if value in (None, ''):
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(f"{key} must be an integer, got {value!r}") from e


def _env_float(environ, key, default):
    value = environ.get(key)
    if value in (None, ''):
        return default
    try:
        return float(value)
    except ValueError as e:
        raise ConfigurationError(f"{key} must be a number, got {value!r}") from e


def get_settings(environ=None, dotenv=True):
    """Build Settings from the environment, loading .env first."""
    if dotenv:
        load_dotenv()
    environ = os.environ if environ is None else environ

    backend = environ.get('CALENDAR_BACKEND', 'ics').lower()
    if backend not in ('ics', 'google'):
        raise ConfigurationError(f"CALENDAR_BACKEND must be 'ics' or 'google', got {backend!r}")

    timezone = environ.get('TIMEZONE', 'UTC')
    try:
        pytz.timezone(timezone)
    except pytz.UnknownTimeZoneError as e:
        raise ConfigurationError(f"Unknown TIMEZONE {timezone!r}") from e

    per_page = _env_int(environ, 'STRAVA_PER_PAGE', 30)
    if not 1 <= per_page <= 200:
        raise ConfigurationError("STRAVA_PER_PAGE must be between 1 and 200")  # Strava max is 200

    return Settings(
        state_path=environ.get('STRAVA_SYNC_STATE', DEFAULT_STATE_PATH),
        calendar_backend=backend,
        calendar_name=environ.get('STRAVA_CALENDAR_NAME', 'Strava'),
        calendar_dir=environ.get('CALENDAR_DIR', 'calendars'),
        default_calendar=environ.get('DEFAULT_CALENDAR') or None,
        timezone=timezone,
        google_client_secrets=environ.get('GOOGLE_CLIENT_SECRETS', 'credentials.json'),
        google_token_file=environ.get('GOOGLE_TOKEN_FILE', 'token.json'),
        per_page=per_page,
        max_pages=_env_int(environ, 'STRAVA_MAX_PAGES', None),
        recovery_limit=_env_int(environ, 'STRAVA_RECOVERY_LIMIT', 100),
        create_delay=_env_float(environ, 'STRAVA_CREATE_DELAY', 0.1),
        poll_minutes=_env_int(environ, 'POLL_MINUTES', 15),
        backup_time=environ.get('BACKUP_TIME', '08:00'),
        recover_days=_env_int(environ, 'RECOVER_DAYS', 7),
    )
