# bustracker/eta.py - arrival time estimate for a bus record
import enum
import math

BASE_SPEED_KMH = 40
STOP_DELAY_MIN = 2


class Traffic(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


TRAFFIC_MULTIPLIER = {
    Traffic.LOW: 1.0,
    Traffic.MEDIUM: 0.75,
    Traffic.HIGH: 0.5,
}

# A record's estimated_time depends on exactly these fields.
ETA_INPUTS = ("distance", "traffic", "previous_stops")


def estimate(distance_km: float, traffic="low", previous_stops: int = 0) -> int:
    """
    Minutes until arrival.

    travel = distance / (40 km/h * traffic multiplier) * 60, plus 2 minutes
    per previous stop, rounded half-up to a whole minute.
    """
    if distance_km < 0:
        raise ValueError("distance must be >= 0")
    if previous_stops < 0:
        raise ValueError("previous_stops must be >= 0")
    multiplier = TRAFFIC_MULTIPLIER[Traffic(traffic)]

    # multiply first so half-minute results such as 4.5 stay exact
    travel_min = distance_km * 60 / (BASE_SPEED_KMH * multiplier)
    stop_delay = previous_stops * STOP_DELAY_MIN
    return int(math.floor(travel_min + stop_delay + 0.5))
