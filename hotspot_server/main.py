"""Accident hotspot server — main entry point.

This is the only file that knows about concrete implementations.
It wires together the core, classifier, and API layers.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from hotspot_server.api.hotspots import router as hotspots_router
from hotspot_server.api.monitoring import router as monitoring_router
from hotspot_server.classifier.base import RiskClassifier
from hotspot_server.classifier.llm import LlmRiskClassifier
from hotspot_server.classifier.rule_based import RuleBasedRiskClassifier
from hotspot_server.config import AppConfig, load_config
from hotspot_server.core.analyzer import HotspotAnalyzer
from hotspot_server.core.stats import ServerStats

log = structlog.get_logger()

# Module-level singletons (set during startup)
_analyzer: HotspotAnalyzer | None = None
_stats: ServerStats | None = None
_config: AppConfig | None = None


def get_analyzer() -> HotspotAnalyzer:
    assert _analyzer is not None, "Server not initialized"
    return _analyzer


def get_stats() -> ServerStats:
    assert _stats is not None, "Server not initialized"
    return _stats


def get_config() -> AppConfig:
    assert _config is not None, "Server not initialized"
    return _config


def _setup_logging(config: AppConfig) -> None:
    """Configure structlog based on the logging config."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if config.logging.format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(config.logging.level.upper()),
        ),
    )


def build_classifier(config: AppConfig) -> RiskClassifier:
    """Pick the risk classifier backend named in the config."""
    if config.classifier.backend == "llm":
        if not config.classifier.api_key:
            log.warning("classifier_api_key_missing", base_url=config.classifier.base_url)
        return LlmRiskClassifier(
            base_url=config.classifier.base_url,
            model=config.classifier.model,
            api_key=config.classifier.api_key,
            timeout_seconds=config.classifier.timeout_seconds,
        )
    return RuleBasedRiskClassifier()


def build_analyzer(config: AppConfig, classifier: RiskClassifier,
                   stats: ServerStats) -> HotspotAnalyzer:
    return HotspotAnalyzer(
        classifier,
        stats,
        max_points=config.limits.max_points,
        max_run_seconds=config.limits.max_run_seconds,
        classifier_timeout_seconds=config.classifier.timeout_seconds,
        classifier_max_concurrency=config.classifier.max_concurrency,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    global _analyzer, _stats, _config

    _config = load_config()
    _setup_logging(_config)

    log.info("server_starting",
             env=_config.server.env,
             classifier=_config.classifier.backend,
             max_points=_config.limits.max_points)

    # Create components
    _stats = ServerStats(active_window_seconds=_config.limits.active_window_seconds)
    classifier = build_classifier(_config)
    _analyzer = build_analyzer(_config, classifier, _stats)

    log.info("server_started",
             host=_config.server.host,
             port=_config.server.port)

    yield

    # Shutdown
    await classifier.aclose()
    log.info("server_stopped")


app = FastAPI(
    title="Accident Hotspots",
    description="Density-based accident hotspot detection",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(hotspots_router)
app.include_router(monitoring_router)
