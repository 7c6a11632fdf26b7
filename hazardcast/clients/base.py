"""
Uniform hazard-data client contract and HTTP base.

Every provider binding satisfies HazardDataClient: given a coordinate and
the hazards it should cover, return

    {"risks": {hazard: {"score": number | None}},
     "api_calls": int, "cache_hits": int, "cache_misses": int}

or raise an error carrying ``retryable`` (and ``status`` where relevant).

HTTPHazardClient provides the shared mechanics: httpx transport, a
per-instance response cache, self-throttling, retry with backoff for
transient failures, and HTTP error translation. Subclasses only build
the request and parse the provider's payload.
"""

import json
import time
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from email.utils import parsedate_to_datetime
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Protocol, runtime_checkable

import httpx
import structlog

from hazardcast.config import Settings, settings as default_settings
from hazardcast.exceptions import ExternalSourceError, RateLimitError
from hazardcast.schemas.hazards import HazardType
from hazardcast.services.cache import InMemoryResultCache
from hazardcast.services.resilience import RequestThrottle, retry_with_backoff

logger = structlog.get_logger(__name__)


@runtime_checkable
class HazardDataClient(Protocol):
    """The only capability the engine needs from a provider."""

    async def get_risk_data(
        self,
        latitude: float,
        longitude: float,
        hazard_types: Sequence[HazardType],
        options: Optional[Mapping[str, Any]] = None,
    ) -> Mapping[str, Any]:
        ...


def parse_retry_after(value: Optional[str], now: Optional[datetime] = None) -> Optional[float]:
    """Retry-After header (delta-seconds or HTTP-date) to seconds."""
    if not value:
        return None
    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return max(0.0, (when - now).total_seconds())


class HTTPHazardClient(ABC):
    """
    Base class for HTTP provider bindings.

    Usage:
        async with FEMAClient() as client:
            data = await client.get_risk_data(29.76, -95.37, [HazardType.FLOOD])
    """

    source_name: str = "unknown"
    requests_per_second: float = 10.0
    user_agent: str = "HazardCast/1.0"

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        throttle: Optional[RequestThrottle] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings or default_settings
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None
        self._throttle = throttle or RequestThrottle(
            self.requests_per_second, name=self.source_name,
        )
        self._response_cache = InMemoryResultCache(
            ttl_seconds=self.settings.client_response_cache_ttl_seconds,
            max_entries=self.settings.client_response_cache_max_entries,
            eviction_batch=max(1, self.settings.client_response_cache_max_entries // 10),
            clock=clock,
        )

    async def __aenter__(self) -> "HTTPHazardClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False

    async def connect(self) -> None:
        """Initialize the HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.settings.client_timeout_seconds),
                headers=self.default_headers(),
                transport=self._transport,
                follow_redirects=True,
            )
            logger.debug("client_connected", source=self.source_name, base_url=self.base_url)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
            logger.debug("client_closed", source=self.source_name)

    def default_headers(self) -> dict[str, str]:
        return {"User-Agent": self.user_agent, "Accept": "application/json"}

    # ========================================================================
    # SUBCLASS HOOKS
    # ========================================================================

    @abstractmethod
    def request_path(self, latitude: float, longitude: float) -> tuple[str, dict[str, Any]]:
        """Path and query parameters for a coordinate lookup."""

    @abstractmethod
    def parse_risks(
        self,
        payload: Any,
        hazard_types: Sequence[HazardType],
    ) -> dict[str, dict[str, Optional[float]]]:
        """Map the provider payload to {hazard: {"score": raw}}."""

    # ========================================================================
    # CONTRACT
    # ========================================================================

    async def get_risk_data(
        self,
        latitude: float,
        longitude: float,
        hazard_types: Sequence[HazardType],
        options: Optional[Mapping[str, Any]] = None,
    ) -> dict[str, Any]:
        """Fetch and parse hazard scores for one coordinate."""
        options = options or {}
        path, params = self.request_path(latitude, longitude)
        payload, from_cache = await self._fetch_json(
            path, params, bypass_cache=bool(options.get("force_refresh")),
        )
        risks = self.parse_risks(payload, hazard_types)
        return {
            "risks": {h.value: risks.get(h.value, {"score": None}) for h in hazard_types},
            "api_calls": 0 if from_cache else 1,
            "cache_hits": 1 if from_cache else 0,
            "cache_misses": 0 if from_cache else 1,
        }

    # ========================================================================
    # HTTP MECHANICS
    # ========================================================================

    def _cache_key(self, path: str, params: Mapping[str, Any]) -> str:
        return f"{path}?{json.dumps(params, sort_keys=True, default=str)}"

    async def _fetch_json(
        self,
        path: str,
        params: Mapping[str, Any],
        bypass_cache: bool = False,
    ) -> tuple[Any, bool]:
        key = self._cache_key(path, params)
        if not bypass_cache:
            entry = await self._response_cache.get(key)
            if entry is not None:
                logger.debug("client_cache_hit", source=self.source_name, path=path)
                return entry.value, True

        payload = await retry_with_backoff(
            lambda: self._request_once(path, params),
            max_retries=self.settings.client_max_retries,
            base_delay=self.settings.client_retry_base_delay,
            max_delay=self.settings.client_retry_max_delay,
            retry_on=(ExternalSourceError,),
            should_retry=lambda exc: getattr(exc, "retryable", False),
            operation_name=f"{self.source_name}_request",
        )
        await self._response_cache.set(key, payload)
        return payload, False

    async def _request_once(self, path: str, params: Mapping[str, Any]) -> Any:
        await self.connect()
        await self._throttle.wait()

        try:
            response = await self._http_client.get(path, params=dict(params))
        except httpx.TimeoutException as exc:
            raise ExternalSourceError(
                self.source_name, f"request timed out: {exc}", retryable=True,
            ) from exc
        except httpx.TransportError as exc:
            raise ExternalSourceError(
                self.source_name, f"network error: {exc}", retryable=True,
            ) from exc

        if response.status_code == 429:
            raise RateLimitError(
                self.source_name,
                retry_after_seconds=parse_retry_after(response.headers.get("Retry-After")),
            )
        if response.status_code >= 400:
            raise ExternalSourceError(
                self.source_name,
                f"HTTP {response.status_code}",
                status=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise ExternalSourceError(
                self.source_name, "invalid JSON response", retryable=False,
                status=response.status_code,
            ) from exc
