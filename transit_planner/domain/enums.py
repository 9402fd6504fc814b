"""Domain enumerations."""

import enum


class Direction(str, enum.Enum):
    OUTBOUND = "outbound"
    INBOUND = "inbound"


class BusStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class CoachType(str, enum.Enum):
    STANDARD = "standard"
    EXPRESS = "express"
    LUXURY = "luxury"


# Method tags written into every DistanceResult
OSRM_METHOD = "OSRM"
HAVERSINE_METHOD = "Haversine"
