"""Rule-based implementation of RiskClassifier. No network needed."""

from __future__ import annotations

from typing import TYPE_CHECKING

from hotspot_server.core.aggregation import FACTOR_SEPARATOR
from hotspot_server.core.models import RiskAssessment, RiskLevel

if TYPE_CHECKING:
    from hotspot_server.core.models import RiskRequest

HIGH_SEVERITY_AVG = 4.0
HIGH_ACCIDENT_COUNT = 15
MEDIUM_SEVERITY_AVG = 3.0
MEDIUM_ACCIDENT_COUNT = 8

# Mitigations per known contributing factor.
_FACTOR_ACTIONS = {
    "speeding": ("reduce speed limits", "install speed cameras"),
    "poor visibility": ("improve street lighting", "trim roadside vegetation"),
    "road design": ("review junction layout", "add traffic calming"),
    "distracted driving": ("run awareness campaigns", "add rumble strips"),
    "weather conditions": ("improve drainage", "add weather warning signs"),
    "traffic congestion": ("retime traffic signals", "add turning lanes"),
}
_DEFAULT_ACTIONS = ("improve signage", "increase police presence")


class RuleBasedRiskClassifier:
    """RiskClassifier that scores hotspots on size and mean severity."""

    def level_for(self, accident_count: int, average_severity: float) -> RiskLevel:
        if average_severity >= HIGH_SEVERITY_AVG or accident_count >= HIGH_ACCIDENT_COUNT:
            return RiskLevel.HIGH
        if average_severity >= MEDIUM_SEVERITY_AVG or accident_count >= MEDIUM_ACCIDENT_COUNT:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    async def classify(self, request: RiskRequest) -> RiskAssessment:
        level = self.level_for(request.accident_count, request.average_severity)
        factors = [f.strip() for f in request.contributing_factors.split(",") if f.strip()]

        actions: list[str] = []
        for factor in factors:
            for action in _FACTOR_ACTIONS.get(factor.lower(), ()):
                if action not in actions:
                    actions.append(action)
        if not actions or level is RiskLevel.HIGH:
            actions.extend(a for a in _DEFAULT_ACTIONS if a not in actions)

        explanation = (
            f"{request.accident_count} accidents with an average severity of "
            f"{request.average_severity:.2f} / 5 place this hotspot at {level.value} risk."
        )
        if factors:
            explanation += f" Recurring factors: {FACTOR_SEPARATOR.join(factors)}."

        return RiskAssessment(
            risk_level=level,
            explanation=explanation,
            suggested_actions=FACTOR_SEPARATOR.join(actions),
        )

    async def aclose(self) -> None:
        pass
