"""Accident hotspot server — core internal data models.

These are plain dataclasses with no framework dependencies.
JSON request bodies are converted to/from these at the API boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class AccidentPoint:
    id: int
    lat: float
    lng: float
    severity: int = 1
    factors: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "lat": self.lat,
            "lng": self.lng,
            "severity": self.severity,
            "factors": list(self.factors),
        }


@dataclass(frozen=True)
class Centroid:
    lat: float
    lng: float


@dataclass(frozen=True)
class Hotspot:
    """A reported cluster of accidents.

    ``accident_count`` always equals ``len(members)``.
    """

    id: str
    centroid: Centroid
    accident_count: int
    average_severity: float
    contributing_factors: str
    members: tuple[AccidentPoint, ...] = ()

    @property
    def member_ids(self) -> frozenset[int]:
        return frozenset(p.id for p in self.members)

    @property
    def high_severity_count(self) -> int:
        return sum(1 for p in self.members if p.severity >= 4)

    def risk_request(self) -> RiskRequest:
        return RiskRequest(
            accident_count=self.accident_count,
            average_severity=self.average_severity,
            latitude=self.centroid.lat,
            longitude=self.centroid.lng,
            contributing_factors=self.contributing_factors,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "lat": self.centroid.lat,
            "lng": self.centroid.lng,
            "accidentCount": self.accident_count,
            "averageSeverity": self.average_severity,
            "contributingFactors": self.contributing_factors,
            "accidents": [p.to_dict() for p in self.members],
        }

    def to_geojson_feature(self) -> dict:
        return {
            "type": "Feature",
            "id": self.id,
            "geometry": {
                "type": "Point",
                "coordinates": [round(self.centroid.lng, 6), round(self.centroid.lat, 6)],
            },
            "properties": {
                "accidentCount": self.accident_count,
                "averageSeverity": self.average_severity,
                "contributingFactors": self.contributing_factors,
                "highSeverityCount": self.high_severity_count,
                "accidentIds": [p.id for p in self.members],
            },
        }


class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


@dataclass(frozen=True)
class RiskRequest:
    """What the risk classifier is told about one hotspot."""

    accident_count: int
    average_severity: float
    latitude: float
    longitude: float
    contributing_factors: str

    def to_dict(self) -> dict:
        return {
            "accidentCount": self.accident_count,
            "averageSeverity": self.average_severity,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "contributingFactors": self.contributing_factors,
        }


@dataclass(frozen=True)
class RiskAssessment:
    risk_level: RiskLevel
    explanation: str
    suggested_actions: str

    def to_dict(self) -> dict:
        return {
            "riskLevel": self.risk_level.value,
            "explanation": self.explanation,
            "suggestedActions": self.suggested_actions,
        }


@dataclass(frozen=True)
class AnnotatedHotspot:
    hotspot: Hotspot
    risk: RiskAssessment | None = None
    risk_error: str | None = None

    @property
    def risk_failed(self) -> bool:
        return self.risk is None and self.risk_error is not None

    def to_dict(self) -> dict:
        data = self.hotspot.to_dict()
        data["risk"] = self.risk.to_dict() if self.risk is not None else None
        data["riskError"] = self.risk_error
        data["riskRetryable"] = self.risk_failed
        return data


@dataclass
class ClusteringResult:
    """Hotspots of one run plus counters describing the run."""

    hotspots: list[Hotspot] = field(default_factory=list)
    points_total: int = 0
    points_clustered: int = 0
    clusters_found: int = 0
    clusters_discarded: int = 0
    distance_evaluations: int = 0

    def run_summary(self) -> dict:
        return {
            "points_total": self.points_total,
            "points_clustered": self.points_clustered,
            "clusters_found": self.clusters_found,
            "clusters_discarded": self.clusters_discarded,
            "hotspots_reported": len(self.hotspots),
            "distance_evaluations": self.distance_evaluations,
        }


@dataclass(frozen=True)
class Region:
    id: str
    name: str
    center_lat: float
    center_lng: float
    zoom: int
    accident_count: int

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "center": {"lat": self.center_lat, "lng": self.center_lng},
            "zoom": self.zoom,
            "accidentCount": self.accident_count,
        }
