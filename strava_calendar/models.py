"""
Typed records for the Strava JSON payloads the sync reads.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from .errors import AuthenticationError, InvalidActivityError

DEFAULT_TOKEN_LIFETIME = 21600  # seconds; Strava access tokens last six hours


def parse_strava_datetime(value):
    """Parse Strava's ISO 8601 timestamps ('2024-03-15T10:00:00Z') into aware UTC datetimes."""
    if not value:
        return None
    parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _number(payload, key):
    value = payload.get(key)
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _text(payload, key):
    value = payload.get(key)
    if value is None:
        return None
    return str(value)


@dataclass
class Activity:
    id: int
    start_date: datetime
    name: Optional[str] = None
    type: Optional[str] = None
    elapsed_time: Optional[float] = None
    moving_time: Optional[float] = None
    distance: Optional[float] = None
    average_speed: Optional[float] = None
    total_elevation_gain: Optional[float] = None
    description: Optional[str] = None
    location_city: Optional[str] = None
    location_country: Optional[str] = None

    @classmethod
    def from_json(cls, payload):
        if not isinstance(payload, dict):
            raise InvalidActivityError(f"Activity record must be an object, got {type(payload).__name__}")

        raw_id = payload.get('id')
        try:
            activity_id = int(raw_id)
        except (TypeError, ValueError):
            raise InvalidActivityError(f"Activity record has no usable id: {raw_id!r}")

        try:
            start_date = parse_strava_datetime(payload.get('start_date'))
        except ValueError:
            start_date = None
        if start_date is None:
            raise InvalidActivityError(
                f"Activity {activity_id} has no usable start_date", activity_id=activity_id
            )

        return cls(
            id=activity_id,
            start_date=start_date,
            name=_text(payload, 'name'),
            type=_text(payload, 'type') or _text(payload, 'sport_type'),
            elapsed_time=_number(payload, 'elapsed_time'),
            moving_time=_number(payload, 'moving_time'),
            distance=_number(payload, 'distance'),
            average_speed=_number(payload, 'average_speed'),
            total_elevation_gain=_number(payload, 'total_elevation_gain'),
            description=_text(payload, 'description'),
            location_city=_text(payload, 'location_city'),
            location_country=_text(payload, 'location_country'),
        )


@dataclass
class TokenResponse:
    access_token: str
    refresh_token: Optional[str]
    expires_at: int

    @classmethod
    def from_json(cls, payload, now):
        if not isinstance(payload, dict) or not payload.get('access_token'):
            raise AuthenticationError("Token response did not include an access_token", body=payload)
        expires_at = payload.get('expires_at')
        try:
            expires_at = int(expires_at) if expires_at else int(now) + DEFAULT_TOKEN_LIFETIME
        except (TypeError, ValueError):
            expires_at = int(now) + DEFAULT_TOKEN_LIFETIME
        return cls(
            access_token=str(payload['access_token']),
            refresh_token=str(payload['refresh_token']) if payload.get('refresh_token') else None,
            expires_at=expires_at,
        )
