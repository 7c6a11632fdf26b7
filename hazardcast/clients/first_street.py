"""
First Street Foundation client (premium).

Scores are returned in First Street's native 1-10 bands; the engine's
normalizer rescales them.
"""

from collections.abc import Sequence
from typing import Any, Optional

from hazardcast.clients.base import HTTPHazardClient
from hazardcast.config import Settings, settings as default_settings
from hazardcast.schemas.hazards import HazardType

COVERED_HAZARDS: frozenset[HazardType] = frozenset(
    {HazardType.FLOOD, HazardType.WILDFIRE, HazardType.HEAT}
)


class FirstStreetClient(HTTPHazardClient):
    """Location risk lookup, Bearer-authenticated."""

    source_name = "first_street"
    requests_per_second = 10.0

    def __init__(self, settings: Optional[Settings] = None, **kwargs):
        settings = settings or default_settings
        super().__init__(
            base_url=settings.first_street_base_url,
            api_key=settings.first_street_api_key,
            settings=settings,
            **kwargs,
        )

    def default_headers(self) -> dict[str, str]:
        headers = super().default_headers()
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def request_path(self, latitude: float, longitude: float) -> tuple[str, dict[str, Any]]:
        return f"/location/{latitude}/{longitude}", {}

    def parse_risks(
        self,
        payload: Any,
        hazard_types: Sequence[HazardType],
    ) -> dict[str, dict[str, Optional[float]]]:
        payload = payload if isinstance(payload, dict) else {}
        risks = {}
        for hazard in hazard_types:
            if hazard not in COVERED_HAZARDS:
                continue
            section = payload.get(hazard.value) or {}
            score = section.get("risk_score") if isinstance(section, dict) else None
            if isinstance(score, bool) or not isinstance(score, (int, float)):
                score = None
            risks[hazard.value] = {"score": score}
        return risks
