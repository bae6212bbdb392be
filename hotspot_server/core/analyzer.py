"""Hotspot analyzer — runs clustering and risk annotation for API requests.

This is the core business logic. It depends on the RiskClassifier protocol,
not a concrete implementation. Each clustering run executes on its own worker
thread and owns all of its state.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from hotspot_server.core.clustering import ClusterMode, cluster_accidents, validate_parameters
from hotspot_server.core.errors import (
    ClassifierError,
    ClusteringCancelled,
    DatasetTooLargeError,
    InvalidParameterError,
)
from hotspot_server.core.models import AnnotatedHotspot, ClusteringResult
from hotspot_server.core.risk import annotate_hotspots, classify_request
from hotspot_server.core.stats import UPLOADED_REGION

if TYPE_CHECKING:
    from hotspot_server.classifier.base import RiskClassifier
    from hotspot_server.core.models import AccidentPoint, RiskAssessment, RiskRequest
    from hotspot_server.core.stats import ServerStats

log = structlog.get_logger()


@dataclass
class AnalysisReport:
    result: ClusteringResult
    hotspots: list[AnnotatedHotspot] = field(default_factory=list)
    duration_ms: float = 0.0

    def to_dict(self) -> dict:
        run = self.result.run_summary()
        run["duration_ms"] = round(self.duration_ms, 1)
        return {
            "hotspots": [h.to_dict() for h in self.hotspots],
            "total": len(self.hotspots),
            "run": run,
        }


class HotspotAnalyzer:
    """Runs clustering for API requests and optionally classifies the results."""

    def __init__(
        self,
        classifier: RiskClassifier,
        stats: ServerStats,
        *,
        max_points: int = 20_000,
        max_run_seconds: float = 30.0,
        classifier_timeout_seconds: float = 20.0,
        classifier_max_concurrency: int = 4,
    ) -> None:
        self._classifier = classifier
        self._stats = stats
        self._max_points = max_points
        self._max_run_seconds = max_run_seconds
        self._classifier_timeout = classifier_timeout_seconds
        self._classifier_concurrency = classifier_max_concurrency

    async def analyze(
        self,
        points: Sequence[AccidentPoint],
        epsilon_km: float,
        min_pts: int,
        *,
        region_id: str = UPLOADED_REGION,
        mode: ClusterMode = ClusterMode.EXPANDING,
        classify: bool = False,
    ) -> AnalysisReport:
        """Cluster ``points`` and return the reported hotspots.

        Raises InvalidParameterError (or DatasetTooLargeError) for rejected
        input and ClusteringCancelled when the run exceeds its deadline.
        """
        try:
            validate_parameters(epsilon_km, min_pts)
            if len(points) > self._max_points:
                raise DatasetTooLargeError(
                    f"{len(points)} points exceeds the limit of {self._max_points}"
                )
        except InvalidParameterError as e:
            self._stats.record_rejected()
            log.warning("analysis_rejected", region=region_id, error=str(e))
            raise

        started = time.monotonic()
        deadline = started + self._max_run_seconds

        def past_deadline() -> bool:
            return time.monotonic() > deadline

        try:
            result = await asyncio.to_thread(
                cluster_accidents, points, epsilon_km, min_pts,
                mode=mode, should_cancel=past_deadline,
            )
        except InvalidParameterError as e:
            self._stats.record_rejected()
            log.warning("analysis_rejected", region=region_id, error=str(e))
            raise
        except ClusteringCancelled:
            self._stats.record_cancelled()
            log.warning("analysis_timed_out", region=region_id, points=len(points),
                        max_run_seconds=self._max_run_seconds)
            raise

        duration_ms = (time.monotonic() - started) * 1000
        self._stats.record_run(
            region_id,
            points=result.points_total,
            clustered=result.points_clustered,
            hotspots=len(result.hotspots),
            discarded=result.clusters_discarded,
            distance_evaluations=result.distance_evaluations,
            duration_ms=duration_ms,
        )
        log.info("analysis_complete", region=region_id, points=result.points_total,
                 epsilon_km=epsilon_km, min_pts=min_pts, mode=ClusterMode(mode).value,
                 hotspots=len(result.hotspots), duration_ms=round(duration_ms, 1))

        if classify and result.hotspots:
            annotated = await annotate_hotspots(
                result.hotspots,
                self._classifier,
                timeout_seconds=self._classifier_timeout,
                max_concurrency=self._classifier_concurrency,
                stats=self._stats,
            )
        else:
            annotated = [AnnotatedHotspot(hotspot=h) for h in result.hotspots]

        return AnalysisReport(result=result, hotspots=annotated, duration_ms=duration_ms)

    async def assess(self, request: RiskRequest) -> RiskAssessment:
        """Classify a single hotspot. Raises ClassifierError on failure."""
        try:
            assessment = await classify_request(self._classifier, request,
                                                self._classifier_timeout)
        except ClassifierError as e:
            self._stats.record_classification(failed=True)
            log.warning("risk_assessment_failed", error=str(e))
            raise
        except Exception as e:
            self._stats.record_classification(failed=True)
            log.error("risk_assessment_crashed", exc_info=True)
            raise ClassifierError("classifier raised an unexpected error") from e
        self._stats.record_classification(failed=False)
        return assessment
