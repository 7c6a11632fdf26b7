"""
Provider client bindings.

All clients include:
- Async HTTP with httpx
- Per-instance self-throttling
- Retry with backoff for transient failures
- Response caching
"""

from typing import Optional

from hazardcast.clients.base import HazardDataClient, HTTPHazardClient, parse_retry_after
from hazardcast.clients.fema import FEMAClient
from hazardcast.clients.first_street import FirstStreetClient
from hazardcast.config import Settings, settings as default_settings


def build_default_clients(settings: Optional[Settings] = None) -> dict[str, HazardDataClient]:
    """Clients for every source that has a binding in this package."""
    settings = settings or default_settings
    return {
        "fema": FEMAClient(settings=settings),
        "first_street": FirstStreetClient(settings=settings),
    }


__all__ = [
    "FEMAClient",
    "FirstStreetClient",
    "HTTPHazardClient",
    "HazardDataClient",
    "build_default_clients",
    "parse_retry_after",
]
