"""Shared test fixtures."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

import hotspot_server.main as main_module
from hotspot_server.classifier.rule_based import RuleBasedRiskClassifier
from hotspot_server.config import AppConfig
from hotspot_server.core.models import AccidentPoint
from hotspot_server.core.stats import ServerStats


@pytest.fixture(autouse=True)
def _init_server():
    """Initialize server singletons for every test."""
    config = AppConfig()
    config.logging.level = "warning"

    stats = ServerStats(active_window_seconds=config.limits.active_window_seconds)
    analyzer = main_module.build_analyzer(config, RuleBasedRiskClassifier(), stats)

    # Patch module-level singletons
    main_module._config = config
    main_module._stats = stats
    main_module._analyzer = analyzer

    yield

    # Cleanup
    main_module._config = None
    main_module._stats = None
    main_module._analyzer = None


@pytest.fixture
async def client():
    from hotspot_server.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


def make_cluster(start_id: int, lat: float, lng: float, n: int,
                 severity: int = 2, factors: tuple[str, ...] = ("speeding",),
                 step_deg: float = 0.0002) -> list[AccidentPoint]:
    """``n`` accidents a few tens of meters apart, starting at (lat, lng)."""
    return [
        AccidentPoint(id=start_id + i, lat=lat + i * step_deg, lng=lng,
                      severity=severity, factors=factors)
        for i in range(n)
    ]


@pytest.fixture
def tight_five() -> list[AccidentPoint]:
    """5 accidents within 0.1 km of each other."""
    return make_cluster(0, 45.7640, 4.8350, 5)
