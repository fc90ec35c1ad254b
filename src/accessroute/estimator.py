"""Static travel-time estimates between adjacent stations."""

import math

# Earth radius in miles
EARTH_RADIUS_MILES = 3959.0

# Minutes per hop including dwell and acceleration
LOCAL_MINUTES_PER_STOP = 2.8
EXPRESS_MINUTES_PER_STOP = 2.0

# Average subway speed including stops, in miles per minute (~17 mph)
SUBWAY_SPEED_MILES_PER_MINUTE = 0.28

# Hops longer than this pick up extra signal/curve time
LONG_HOP_THRESHOLD_MILES = 0.5
LONG_HOP_MINUTES_PER_MILE = 0.5

# No hop is faster than this, however close the stations are
MIN_MINUTES_PER_HOP = 1.5


def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in miles."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_MILES * c


def estimate_travel_minutes(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
    is_express: bool = False,
) -> float:
    """
    Estimate the minutes a train takes between two adjacent stations.

    Takes the larger of a per-stop base time and the distance at average speed,
    adds overhead for long hops, and rounds to a tenth of a minute.

    Args:
        lat1, lon1: Coordinates of the first station.
        lat2, lon2: Coordinates of the second station.
        is_express: Whether the hop is run by express service.

    Returns:
        Minutes, never below MIN_MINUTES_PER_HOP.
    """
    distance = haversine_miles(lat1, lon1, lat2, lon2)

    base = EXPRESS_MINUTES_PER_STOP if is_express else LOCAL_MINUTES_PER_STOP
    minutes = max(base, distance / SUBWAY_SPEED_MILES_PER_MINUTE)

    if distance > LONG_HOP_THRESHOLD_MILES:
        minutes += (distance - LONG_HOP_THRESHOLD_MILES) * LONG_HOP_MINUTES_PER_MILE

    return max(MIN_MINUTES_PER_HOP, round(minutes, 1))
