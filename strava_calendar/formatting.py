"""
Human-readable renderings of Strava's metric values for event descriptions.
"""

from decimal import Decimal, ROUND_HALF_UP


def round_half_up(value, places=0):
    """Round like a person would (0.5 goes up), using the float's shortest repr."""
    quantum = Decimal(1).scaleb(-places)
    return Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP)


def format_distance(meters):
    """12345 -> '12.35 km', 500 -> '500 m'."""
    meters = meters or 0
    km = meters / 1000
    if km >= 1:
        return f"{round_half_up(km, 2)} km"
    return f"{round_half_up(meters)} m"


def format_duration(seconds):
    """3723 -> '1h 2m 3s', 190 -> '3m 10s', 45 -> '45s'."""
    seconds = int(round_half_up(seconds or 0))
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60

    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def format_speed(meters_per_second):
    """Meters per second to km/h with one decimal."""
    return f"{round_half_up(meters_per_second * 3.6, 1)} km/h"


def format_elevation(meters):
    return f"{round_half_up(meters)}m"
