"""
Input validation: coordinate bounds and hazard-type selection.

Runs before any cache lookup or provider call. Failures are fatal,
non-retryable ValidationErrors naming the offending field.
"""

import math
from collections.abc import Iterable
from typing import Union

from hazardcast.exceptions import ValidationError
from hazardcast.schemas.hazards import ALL_HAZARD_TYPES, Coordinate, HazardType

LATITUDE_RANGE: tuple[float, float] = (-90.0, 90.0)
LONGITUDE_RANGE: tuple[float, float] = (-180.0, 180.0)

HazardSelection = Union[str, Iterable[Union[str, HazardType]], None]


def _check_axis(name: str, value: object, bounds: tuple[float, float]) -> float:
    # bool is an int subclass; True is not a latitude
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(
            f"{name} must be a number",
            field=name,
            details={"value": repr(value)},
        )
    value = float(value)
    if not math.isfinite(value):
        raise ValidationError(f"{name} must be finite", field=name, details={"value": value})
    low, high = bounds
    if not low <= value <= high:
        raise ValidationError(
            f"{name} must be between {low:g} and {high:g}",
            field=name,
            details={"value": value, "min": low, "max": high},
        )
    return value


def validate_coordinate(latitude: object, longitude: object) -> Coordinate:
    """Validate raw latitude/longitude and return an immutable Coordinate."""
    return Coordinate(
        latitude=_check_axis("latitude", latitude, LATITUDE_RANGE),
        longitude=_check_axis("longitude", longitude, LONGITUDE_RANGE),
    )


def normalize_hazard_types(hazard_types: HazardSelection = "all") -> tuple[HazardType, ...]:
    """
    Resolve a caller's hazard selection to a canonical, de-duplicated tuple.

    Accepts "all"/None, a comma-separated string, or an iterable of names or
    HazardType members. Output follows ALL_HAZARD_TYPES order.
    """
    if hazard_types is None:
        return ALL_HAZARD_TYPES

    if isinstance(hazard_types, str):
        if hazard_types.strip().lower() == "all":
            return ALL_HAZARD_TYPES
        names = hazard_types.split(",")
    elif isinstance(hazard_types, Iterable):
        names = list(hazard_types)
    else:
        raise ValidationError(
            "hazard_types must be \"all\", a comma-separated string or a list of names",
            field="hazard_types",
            details={"value": repr(hazard_types)},
        )

    selected: set[HazardType] = set()
    unknown: list[str] = []
    for name in names:
        key = str(name.value if isinstance(name, HazardType) else name).strip().lower()
        if not key:
            continue
        try:
            selected.add(HazardType(key))
        except ValueError:
            unknown.append(key)

    if unknown:
        raise ValidationError(
            f"Unsupported hazard types: {', '.join(sorted(unknown))}",
            field="hazard_types",
            details={"unknown": sorted(unknown), "supported": [h.value for h in ALL_HAZARD_TYPES]},
        )
    if not selected:
        raise ValidationError("At least one hazard type is required", field="hazard_types")

    return tuple(h for h in ALL_HAZARD_TYPES if h in selected)
