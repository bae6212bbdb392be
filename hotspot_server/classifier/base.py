"""Risk classifier interface (port) for hotspot risk assessment."""

from __future__ import annotations

from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from hotspot_server.core.models import RiskAssessment, RiskRequest


class RiskClassifier(Protocol):
    """Port: classifies one hotspot as Low/Medium/High risk.

    Implementations raise ClassifierError when they cannot produce an answer.
    """

    async def classify(self, request: RiskRequest) -> RiskAssessment: ...

    async def aclose(self) -> None: ...
