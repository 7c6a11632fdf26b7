"""
Hazard and coordinate primitives shared by every engine component.
"""

from dataclasses import dataclass
from enum import StrEnum


class HazardType(StrEnum):
    """The closed set of supported perils."""

    FLOOD = "flood"
    WILDFIRE = "wildfire"
    HEAT = "heat"
    TORNADO = "tornado"
    HURRICANE = "hurricane"
    EARTHQUAKE = "earthquake"
    DROUGHT = "drought"


# Canonical order used for "all" and for output fields
ALL_HAZARD_TYPES: tuple[HazardType, ...] = (
    HazardType.FLOOD,
    HazardType.WILDFIRE,
    HazardType.HEAT,
    HazardType.TORNADO,
    HazardType.HURRICANE,
    HazardType.EARTHQUAKE,
    HazardType.DROUGHT,
)


@dataclass(frozen=True)
class Coordinate:
    """A validated WGS84 point. Construct through validate_coordinate()."""

    latitude: float
    longitude: float

    def rounded(self, precision: int = 6) -> tuple[str, str]:
        """Fixed-precision string form used for cache keys."""
        # + 0.0 folds -0.0 into 0.0 so both sides of the equator share a key
        lat = round(self.latitude, precision) + 0.0
        lon = round(self.longitude, precision) + 0.0
        return f"{lat:.{precision}f}", f"{lon:.{precision}f}"

    def to_dict(self) -> dict:
        return {"latitude": self.latitude, "longitude": self.longitude}
