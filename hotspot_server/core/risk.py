"""Risk annotation — attaches a classifier verdict to each hotspot.

A classifier failure only affects the hotspot it was asked about: that
hotspot comes back with ``risk=None`` and an error message the UI can show
or retry.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import TYPE_CHECKING

import structlog

from hotspot_server.core.errors import ClassifierError
from hotspot_server.core.models import AnnotatedHotspot

if TYPE_CHECKING:
    from hotspot_server.classifier.base import RiskClassifier
    from hotspot_server.core.models import Hotspot, RiskAssessment, RiskRequest
    from hotspot_server.core.stats import ServerStats

log = structlog.get_logger()

CLASSIFIER_FAILED_MESSAGE = "Failed to get risk analysis from AI model."


async def classify_request(
    classifier: RiskClassifier,
    request: RiskRequest,
    timeout_seconds: float,
) -> RiskAssessment:
    """Run one classification with a timeout. Raises ClassifierError."""
    try:
        return await asyncio.wait_for(classifier.classify(request), timeout_seconds)
    except asyncio.TimeoutError as e:
        raise ClassifierError(f"classifier timed out after {timeout_seconds}s") from e


async def annotate_hotspots(
    hotspots: Sequence[Hotspot],
    classifier: RiskClassifier,
    *,
    timeout_seconds: float = 20.0,
    max_concurrency: int = 4,
    stats: ServerStats | None = None,
) -> list[AnnotatedHotspot]:
    """Classify every hotspot independently, keeping input order."""
    semaphore = asyncio.Semaphore(max(1, max_concurrency))

    async def annotate(hotspot: Hotspot) -> AnnotatedHotspot:
        async with semaphore:
            try:
                risk = await classify_request(classifier, hotspot.risk_request(),
                                              timeout_seconds)
            except ClassifierError as e:
                log.warning("classifier_failed", hotspot=hotspot.id, error=str(e))
                if stats is not None:
                    stats.record_classification(failed=True)
                return AnnotatedHotspot(hotspot=hotspot, risk_error=CLASSIFIER_FAILED_MESSAGE)
            except Exception:
                log.error("classifier_crashed", hotspot=hotspot.id, exc_info=True)
                if stats is not None:
                    stats.record_classification(failed=True)
                return AnnotatedHotspot(hotspot=hotspot, risk_error=CLASSIFIER_FAILED_MESSAGE)

        if stats is not None:
            stats.record_classification(failed=False)
        return AnnotatedHotspot(hotspot=hotspot, risk=risk)

    return list(await asyncio.gather(*(annotate(h) for h in hotspots)))
