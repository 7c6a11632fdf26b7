"""
FEMA National Risk Index client.

Free, authoritative government source. NRI reports qualitative ratings per
hazard; they are mapped to percentile-style values at this boundary so the
engine sees a 0-100 scale.
"""

from collections.abc import Sequence
from typing import Any, Optional

from hazardcast.clients.base import HTTPHazardClient
from hazardcast.config import Settings, settings as default_settings
from hazardcast.schemas.hazards import HazardType

RATING_SCORES: dict[str, Optional[int]] = {
    "VERY_LOW": 10,
    "RELATIVELY_LOW": 25,
    "RELATIVELY_MODERATE": 50,
    "RELATIVELY_HIGH": 75,
    "VERY_HIGH": 90,
    "NOT_MAPPED": None,
}

# NRI attribute holding each hazard's rating
RATING_FIELDS: dict[HazardType, str] = {
    HazardType.FLOOD: "CFLD_RATNG",
    HazardType.WILDFIRE: "WFIR_RATNG",
    HazardType.HURRICANE: "HRCN_RATNG",
    HazardType.TORNADO: "TRND_RATNG",
    HazardType.EARTHQUAKE: "ERQK_RATNG",
    HazardType.DROUGHT: "DRGT_RATNG",
}


def rating_to_score(rating: Any) -> Optional[int]:
    """'Relatively High' / 'RELATIVELY_HIGH' -> 75; unknown -> None."""
    if not isinstance(rating, str):
        return None
    key = rating.strip().upper().replace(" ", "_").replace("-", "_")
    return RATING_SCORES.get(key)


class FEMAClient(HTTPHazardClient):
    """National Risk Index geopoint lookup."""

    source_name = "fema"
    requests_per_second = 10.0

    def __init__(self, settings: Optional[Settings] = None, **kwargs):
        settings = settings or default_settings
        super().__init__(
            base_url=settings.fema_base_url,
            api_key=settings.fema_api_key,
            settings=settings,
            **kwargs,
        )

    def request_path(self, latitude: float, longitude: float) -> tuple[str, dict[str, Any]]:
        return "/nationalriskindex/geopoint", {
            "lat": latitude,
            "lng": longitude,
            "format": "json",
        }

    def parse_risks(
        self,
        payload: Any,
        hazard_types: Sequence[HazardType],
    ) -> dict[str, dict[str, Optional[float]]]:
        features = payload.get("features") if isinstance(payload, dict) else None
        properties: dict = {}
        if features:
            properties = features[0].get("properties") or {}

        risks = {}
        for hazard in hazard_types:
            field_name = RATING_FIELDS.get(hazard)
            score = rating_to_score(properties.get(field_name)) if field_name else None
            risks[hazard.value] = {"score": score}
        return risks
