"""
Turn a Strava activity into the details of a calendar event.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from .formatting import format_distance, format_duration, format_elevation, format_speed

MARKER_LABEL = 'Strava ID'


def activity_marker(activity_id):
    """The text embedded in every event body; used to find events already synced."""
    return f"{MARKER_LABEL}: {activity_id}"


@dataclass
class EventDetails:
    title: str
    start: datetime
    end: datetime
    description: str
    location: str


def activity_time_range(activity):
    start = activity.start_date
    end = start + timedelta(seconds=activity.elapsed_time or 0)
    return start, end


def build_description(activity):
    lines = [
        activity_marker(activity.id),
        f"Type: {activity.type or 'Unknown'}",
        f"Distance: {format_distance(activity.distance or 0)}",
        f"Duration: {format_duration(activity.elapsed_time or 0)}",
        f"Moving Time: {format_duration(activity.moving_time or 0)}",
    ]
    if activity.average_speed:
        lines.append(f"Avg Speed: {format_speed(activity.average_speed)}")
    if activity.total_elevation_gain:
        lines.append(f"Elevation Gain: {format_elevation(activity.total_elevation_gain)}")
    if activity.description:
        lines.append('')
        lines.append(activity.description)
    return '\n'.join(lines)


def build_event_details(activity):
    start, end = activity_time_range(activity)
    return EventDetails(
        title=activity.name or activity.type or 'Activity',
        start=start,
        end=end,
        description=build_description(activity),
        location=activity.location_city or activity.location_country or '',
    )
