"""LLM-backed implementation of RiskClassifier.

Talks to any OpenAI-compatible chat completions endpoint and asks for a JSON
object with ``riskLevel``, ``explanation`` and ``suggestedActions``.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import httpx
import structlog

from hotspot_server.core.aggregation import FACTOR_SEPARATOR
from hotspot_server.core.errors import ClassifierError
from hotspot_server.core.models import RiskAssessment, RiskLevel

if TYPE_CHECKING:
    from hotspot_server.core.models import RiskRequest

log = structlog.get_logger()

_SYSTEM_PROMPT = (
    "You are an expert in traffic accident risk assessment. Given an accident "
    "hotspot (accident count, average severity on a 1-5 scale, location and "
    "contributing factors), classify its risk level as Low, Medium or High, "
    "explain the classification, and suggest concrete mitigation actions. "
    'Reply with a JSON object with the keys "riskLevel" (one of "Low", '
    '"Medium", "High"), "explanation" (string) and "suggestedActions" '
    "(comma-separated string)."
)


def _user_prompt(request: RiskRequest) -> str:
    return (
        f"Accident Count: {request.accident_count}\n"
        f"Average Severity: {request.average_severity}\n"
        f"Latitude: {request.latitude}\n"
        f"Longitude: {request.longitude}\n"
        f"Contributing Factors: {request.contributing_factors}"
    )


def parse_assessment(content: str) -> RiskAssessment:
    """Parse the model's JSON reply. Raises ClassifierError if unusable."""
    try:
        data = json.loads(content)
    except (json.JSONDecodeError, TypeError) as e:
        raise ClassifierError(f"classifier reply is not JSON: {e}") from e
    if not isinstance(data, dict):
        raise ClassifierError("classifier reply is not a JSON object")

    try:
        level = RiskLevel(str(data["riskLevel"]).strip().capitalize())
        explanation = str(data["explanation"])
        actions = data["suggestedActions"]
    except KeyError as e:
        raise ClassifierError(f"classifier reply is missing {e}") from e
    except ValueError as e:
        raise ClassifierError(f"unknown risk level {data.get('riskLevel')!r}") from e

    if isinstance(actions, list):
        actions = FACTOR_SEPARATOR.join(str(a) for a in actions)
    return RiskAssessment(
        risk_level=level,
        explanation=explanation,
        suggested_actions=str(actions),
    )


class LlmRiskClassifier:
    """RiskClassifier backed by a chat completions HTTP API."""

    def __init__(
        self,
        base_url: str,
        model: str,
        api_key: str = "",
        timeout_seconds: float = 20.0,
        temperature: float = 0.2,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"content-type": "application/json"}
        if api_key:
            headers["authorization"] = f"Bearer {api_key}"
        self._model = model
        self._temperature = temperature
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout_seconds,
            transport=transport,
        )

    async def classify(self, request: RiskRequest) -> RiskAssessment:
        payload = {
            "model": self._model,
            "temperature": self._temperature,
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "system", "content": _SYSTEM_PROMPT},
                {"role": "user", "content": _user_prompt(request)},
            ],
        }

        try:
            resp = await self._client.post("/chat/completions", json=payload)
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPStatusError as e:
            raise ClassifierError(f"classifier returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise ClassifierError(f"classifier unavailable: {e!r}") from e
        except json.JSONDecodeError as e:
            raise ClassifierError("classifier response is not JSON") from e

        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ClassifierError("classifier response has no message content") from e

        assessment = parse_assessment(content)
        log.debug("classifier_reply", model=self._model,
                  risk_level=assessment.risk_level.value)
        return assessment

    async def aclose(self) -> None:
        await self._client.aclose()
