"""Server configuration.

Loads from config.yaml if present, with environment variable overrides.
Environment variables use the pattern: HOTSPOT_<SECTION>_<KEY> (uppercase).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8000
    env: str = "dev"  # "dev" or "prod"


@dataclass
class ClusteringConfig:
    default_epsilon_km: float = 0.5
    default_min_pts: int = 5
    mode: str = "expanding"  # "expanding" or "simple"
    min_epsilon_km: float = 0.1
    max_epsilon_km: float = 2.0
    epsilon_step_km: float = 0.05
    min_min_pts: int = 2
    max_min_pts: int = 50


@dataclass
class LimitsConfig:
    max_points: int = 20_000
    max_run_seconds: float = 30.0
    max_synthetic_points: int = 5_000
    active_window_seconds: float = 600.0


@dataclass
class ClassifierConfig:
    backend: str = "rules"  # "rules" or "llm"
    base_url: str = "https://api.openai.com/v1"
    model: str = "gpt-4o-mini"
    api_key: str = ""
    timeout_seconds: float = 20.0
    max_concurrency: int = 4


@dataclass
class LoggingConfig:
    level: str = "info"
    format: str = "console"  # "console" or "json"


@dataclass
class AppConfig:
    server: ServerConfig = field(default_factory=ServerConfig)
    clustering: ClusteringConfig = field(default_factory=ClusteringConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


_SECTIONS = ("server", "clustering", "limits", "classifier", "logging")


def _apply_env_overrides(config: AppConfig) -> None:
    """Override config values from environment variables."""
    mapping = {
        "HOTSPOT_SERVER_HOST": lambda v: setattr(config.server, "host", v),
        "HOTSPOT_SERVER_PORT": lambda v: setattr(config.server, "port", int(v)),
        "HOTSPOT_SERVER_ENV": lambda v: setattr(config.server, "env", v),
        "HOTSPOT_CLUSTERING_EPSILON_KM": lambda v: setattr(config.clustering, "default_epsilon_km", float(v)),
        "HOTSPOT_CLUSTERING_MIN_PTS": lambda v: setattr(config.clustering, "default_min_pts", int(v)),
        "HOTSPOT_CLUSTERING_MODE": lambda v: setattr(config.clustering, "mode", v),
        "HOTSPOT_LIMITS_MAX_POINTS": lambda v: setattr(config.limits, "max_points", int(v)),
        "HOTSPOT_LIMITS_MAX_RUN_SECONDS": lambda v: setattr(config.limits, "max_run_seconds", float(v)),
        "HOTSPOT_LIMITS_ACTIVE_WINDOW": lambda v: setattr(config.limits, "active_window_seconds", float(v)),
        "HOTSPOT_CLASSIFIER_BACKEND": lambda v: setattr(config.classifier, "backend", v),
        "HOTSPOT_CLASSIFIER_BASE_URL": lambda v: setattr(config.classifier, "base_url", v),
        "HOTSPOT_CLASSIFIER_MODEL": lambda v: setattr(config.classifier, "model", v),
        "HOTSPOT_CLASSIFIER_API_KEY": lambda v: setattr(config.classifier, "api_key", v),
        "HOTSPOT_CLASSIFIER_TIMEOUT": lambda v: setattr(config.classifier, "timeout_seconds", float(v)),
        "HOTSPOT_LOG_LEVEL": lambda v: setattr(config.logging, "level", v),
        "HOTSPOT_LOG_FORMAT": lambda v: setattr(config.logging, "format", v),
    }
    for env_key, setter in mapping.items():
        val = os.environ.get(env_key)
        if val is not None:
            setter(val)


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load configuration from YAML file + environment overrides."""
    config = AppConfig()

    # Try to load YAML
    if config_path is None:
        config_path = Path("config.yaml")
    else:
        config_path = Path(config_path)

    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}

        for name in _SECTIONS:
            section = getattr(config, name)
            for k, v in (raw.get(name) or {}).items():
                if hasattr(section, k):
                    setattr(section, k, v)

    # Environment overrides always win
    _apply_env_overrides(config)
    return config
