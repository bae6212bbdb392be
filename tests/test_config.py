"""Tests for YAML configuration loading and environment overrides."""

from __future__ import annotations

from hotspot_server.config import AppConfig, load_config


def test_defaults_without_file(tmp_path):
    config = load_config(tmp_path / "missing.yaml")
    assert config == AppConfig()
    assert config.clustering.default_epsilon_km == 0.5
    assert config.clustering.default_min_pts == 5
    assert config.classifier.backend == "rules"


def test_yaml_sections(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "clustering:\n"
        "  default_epsilon_km: 0.3\n"
        "  mode: simple\n"
        "  not_a_setting: 1\n"
        "limits:\n"
        "  max_points: 500\n"
        "classifier:\n"
        "  backend: llm\n"
        "  model: small-model\n"
    )
    config = load_config(path)

    assert config.clustering.default_epsilon_km == 0.3
    assert config.clustering.mode == "simple"
    assert not hasattr(config.clustering, "not_a_setting")
    assert config.limits.max_points == 500
    assert config.classifier.backend == "llm"
    assert config.classifier.model == "small-model"
    assert config.server.port == 8000


def test_empty_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("")
    assert load_config(path) == AppConfig()


def test_env_overrides_win(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    path.write_text("clustering:\n  default_min_pts: 8\n")
    monkeypatch.setenv("HOTSPOT_CLUSTERING_MIN_PTS", "12")
    monkeypatch.setenv("HOTSPOT_CLASSIFIER_API_KEY", "k-123")
    monkeypatch.setenv("HOTSPOT_LIMITS_MAX_RUN_SECONDS", "2.5")

    config = load_config(path)
    assert config.clustering.default_min_pts == 12
    assert config.classifier.api_key == "k-123"
    assert config.limits.max_run_seconds == 2.5
