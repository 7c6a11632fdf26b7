"""
Source Registry — static configuration for each hazard-data provider.

A capability declares which hazards a source covers, how much its score
counts (trust weight), how much it adds to confidence, and the native
scale of its scores. Trust ordering: authoritative > premium-modeled >
secondary government.
"""

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Optional

from hazardcast.engine.normalizer import ScoreScale
from hazardcast.schemas.hazards import HazardType

SKIP_NO_RELEVANT_RISKS = "no_relevant_risks"
SKIP_PREMIUM_NOT_CONFIGURED = "premium_not_configured"

# Fallbacks for sources the registry does not know about
UNKNOWN_SOURCE_TRUST_WEIGHT: float = 0.1
UNKNOWN_SOURCE_CONFIDENCE_INCREMENT: float = 0.05


@dataclass(frozen=True)
class SourceCapability:
    """Static description of one provider."""

    name: str
    hazards: frozenset[HazardType]
    trust_weight: float
    confidence_increment: float = UNKNOWN_SOURCE_CONFIDENCE_INCREMENT
    scale: ScoreScale = ScoreScale.PERCENTILE
    hazard_scales: Mapping[HazardType, ScoreScale] = field(default_factory=dict, hash=False)
    required: bool = False
    premium: bool = False
    priority: int = 100

    def __post_init__(self):
        if not 0.0 <= self.trust_weight <= 1.0:
            raise ValueError(f"trust_weight for {self.name} must be in [0, 1], got {self.trust_weight}")
        if self.confidence_increment < 0:
            raise ValueError(f"confidence_increment for {self.name} must be >= 0")
        object.__setattr__(self, "hazards", frozenset(HazardType(h) for h in self.hazards))

    def scale_for(self, hazard: HazardType) -> ScoreScale:
        return self.hazard_scales.get(hazard, self.scale)

    def relevant_hazards(self, requested: Iterable[HazardType]) -> tuple[HazardType, ...]:
        return tuple(h for h in requested if h in self.hazards)


@dataclass(frozen=True)
class SourcePlan:
    """Eligibility decision for one source on one request."""

    capability: SourceCapability
    relevant_hazards: tuple[HazardType, ...]
    skip_reason: Optional[str] = None

    @property
    def name(self) -> str:
        return self.capability.name

    @property
    def skipped(self) -> bool:
        return self.skip_reason is not None


DEFAULT_SOURCES: tuple[SourceCapability, ...] = (
    SourceCapability(
        name="fema",
        hazards=frozenset({
            HazardType.FLOOD, HazardType.WILDFIRE, HazardType.HURRICANE,
            HazardType.TORNADO, HazardType.EARTHQUAKE, HazardType.DROUGHT,
        }),
        trust_weight=0.40,       # Authoritative government source
        confidence_increment=0.40,
        required=True,
        priority=1,
    ),
    SourceCapability(
        name="noaa",
        hazards=frozenset({HazardType.HEAT, HazardType.DROUGHT, HazardType.HURRICANE}),
        trust_weight=0.10,
        confidence_increment=0.10,
        hazard_scales={HazardType.HEAT: ScoreScale.TEMPERATURE_ANOMALY},
        priority=2,
    ),
    SourceCapability(
        name="usgs",
        hazards=frozenset({HazardType.EARTHQUAKE}),
        trust_weight=0.05,
        confidence_increment=0.05,
        priority=3,
    ),
    SourceCapability(
        name="climate_check",
        hazards=frozenset({HazardType.FLOOD, HazardType.WILDFIRE, HazardType.HEAT}),
        trust_weight=0.15,
        confidence_increment=0.10,
        premium=True,
        priority=4,
    ),
    SourceCapability(
        name="first_street",
        hazards=frozenset({HazardType.FLOOD, HazardType.WILDFIRE, HazardType.HEAT}),
        trust_weight=0.30,       # Premium modeled source
        confidence_increment=0.20,
        scale=ScoreScale.DECILE,
        premium=True,
        priority=5,
    ),
)


class SourceRegistry:
    """Lookup and eligibility planning over a set of capabilities."""

    def __init__(self, sources: Optional[Iterable[SourceCapability]] = None):
        sources = DEFAULT_SOURCES if sources is None else tuple(sources)
        self._sources: dict[str, SourceCapability] = {}
        for capability in sorted(sources, key=lambda c: c.priority):
            if capability.name in self._sources:
                raise ValueError(f"Duplicate source: {capability.name}")
            self._sources[capability.name] = capability

    def __iter__(self) -> Iterator[SourceCapability]:
        return iter(self._sources.values())

    def __len__(self) -> int:
        return len(self._sources)

    def __contains__(self, name: object) -> bool:
        return name in self._sources

    def get(self, name: str) -> Optional[SourceCapability]:
        return self._sources.get(name)

    def names(self) -> list[str]:
        return list(self._sources)

    def required_sources(self) -> list[SourceCapability]:
        return [c for c in self if c.required]

    def restricted_to(self, names: Iterable[str]) -> "SourceRegistry":
        """A registry holding only the named sources."""
        keep = set(names)
        return SourceRegistry(c for c in self if c.name in keep)

    def trust_weight(self, name: str) -> float:
        capability = self.get(name)
        return capability.trust_weight if capability else UNKNOWN_SOURCE_TRUST_WEIGHT

    def confidence_increment(self, name: str) -> float:
        capability = self.get(name)
        return capability.confidence_increment if capability else UNKNOWN_SOURCE_CONFIDENCE_INCREMENT

    def plan(
        self,
        hazards: Iterable[HazardType],
        credentials: Mapping[str, str],
    ) -> list[SourcePlan]:
        """Decide, per source, whether it is called for this request."""
        hazards = tuple(hazards)
        plans = []
        for capability in self:
            relevant = capability.relevant_hazards(hazards)
            skip_reason = None
            if not relevant:
                skip_reason = SKIP_NO_RELEVANT_RISKS
            elif capability.premium and not credentials.get(capability.name):
                skip_reason = SKIP_PREMIUM_NOT_CONFIGURED
            plans.append(SourcePlan(capability, relevant, skip_reason))
        return plans


default_registry = SourceRegistry()
