from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.schemas import AggregationPolicy, DisplayPolicy, FailurePolicy
from cli.config import load_config
from services.query import build_query_spec
from settings import get_settings


def test_defaults_without_environment(monkeypatch) -> None:
    for name in (
        "IOTAWATT_URL",
        "IOTAWATT_INPUTS",
        "IOTAWATT_INTERVAL",
        "IOTAWATT_AGGREGATION",
        "IOTAWATT_DISPLAY",
        "IOTAWATT_ON_FAILURE",
        "IOTAWATT_HTTP_TIMEOUT",
        "IOTAWATT_NAME",
        "IOTAWATT_CADENCE",
        "IOTAWATT_THRESHOLD",
        "IOTAWATT_LOOKBACK",
        "IOTAWATT_RESOLUTION",
        "IOTAWATT_CHART_ANIMATE",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = get_settings()

    assert settings.url == "http://iotawatt.local"
    assert settings.inputs == ()
    assert settings.interval == 2.0
    assert settings.aggregation == "fine"
    assert settings.display == "decimal"
    assert settings.on_failure == "continue"
    assert settings.http_timeout == 30.0
    assert settings.name == "iotawatt"
    assert settings.cadence == 20
    assert settings.threshold == 100.0
    assert settings.lookback == "1h"
    assert settings.resolution == "high"
    assert settings.chart_animate is None
    assert settings.log_level == "INFO"


def test_environment_overrides_apply(monkeypatch) -> None:
    monkeypatch.setenv("IOTAWATT_URL", "http://192.168.1.40/")
    monkeypatch.setenv("IOTAWATT_INPUTS", " main, solar ,,heat_pump")
    monkeypatch.setenv("IOTAWATT_INTERVAL", "5")
    monkeypatch.setenv("IOTAWATT_AGGREGATION", "COARSE")
    monkeypatch.setenv("IOTAWATT_DISPLAY", "split")
    monkeypatch.setenv("IOTAWATT_ON_FAILURE", "stop")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = get_settings()
    config = load_config()

    assert settings.inputs == ("main", "solar", "heat_pump")
    assert settings.log_level == "DEBUG"
    assert config.url == "http://192.168.1.40/"
    assert config.inputs == ("main", "solar", "heat_pump")
    assert config.interval == 5.0
    assert config.aggregation is AggregationPolicy.coarse
    assert config.display is DisplayPolicy.split
    assert config.on_failure is FailurePolicy.stop


def test_invalid_environment_values_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("IOTAWATT_INTERVAL", "-1")
    monkeypatch.setenv("IOTAWATT_HTTP_TIMEOUT", "soon")
    monkeypatch.setenv("IOTAWATT_AGGREGATION", "medium")

    settings = get_settings()

    assert settings.interval == 2.0
    assert settings.http_timeout == 30.0
    assert settings.aggregation == "fine"


def test_explicit_options_win_over_environment(monkeypatch) -> None:
    monkeypatch.setenv("IOTAWATT_INPUTS", "main")

    config = load_config(url="http://other", inputs=["grid"], interval=0.5, on_failure="stop")

    assert config.url == "http://other"
    assert config.inputs == ("grid",)
    assert config.interval == 0.5
    assert config.on_failure is FailurePolicy.stop


def test_invalid_options_raise_validation_error() -> None:
    with pytest.raises(ValidationError):
        load_config(url="http://device", aggregation="medium")
    with pytest.raises(ValidationError):
        load_config(url="http://device", interval=0)


def test_config_is_immutable() -> None:
    config = load_config(url="http://device", inputs=["main"])

    with pytest.raises(ValidationError):
        config.interval = 1.0  # type: ignore[misc]


def test_url_path_prefix_survives_into_query_url(monkeypatch) -> None:
    monkeypatch.setenv("IOTAWATT_URL", " http://host/iotawatt/ ")

    config = load_config(inputs=["main"])

    assert config.url == "http://host/iotawatt/"
    assert build_query_spec(config).url == "http://host/iotawatt/query"


def test_panel_tuning_reads_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("IOTAWATT_CADENCE", "60")
    monkeypatch.setenv("IOTAWATT_THRESHOLD", "250")
    monkeypatch.setenv("IOTAWATT_LOOKBACK", "30m")
    monkeypatch.setenv("IOTAWATT_RESOLUTION", "low")
    monkeypatch.setenv("IOTAWATT_CHART_ANIMATE", "false")

    config = load_config(url="http://device", inputs=["main"])
    spec = build_query_spec(config)

    assert config.cadence == 60
    assert config.threshold == 250.0
    assert config.chart_options == {"animate": False}
    assert ("begin", "s-30m") in spec.params()
    assert ("resolution", "low") in spec.params()


def test_invalid_panel_tuning_falls_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("IOTAWATT_CADENCE", "0")
    monkeypatch.setenv("IOTAWATT_THRESHOLD", "-5")
    monkeypatch.setenv("IOTAWATT_CHART_ANIMATE", "sometimes")

    config = load_config(url="http://device")

    assert config.cadence == 20
    assert config.threshold == 100.0
    assert config.chart_options is None


def test_explicit_panel_tuning_wins_over_environment(monkeypatch) -> None:
    monkeypatch.setenv("IOTAWATT_CADENCE", "60")
    monkeypatch.setenv("IOTAWATT_CHART_ANIMATE", "false")

    config = load_config(url="http://device", cadence=5, threshold=0, animate=True)

    assert config.cadence == 5
    assert config.threshold == 0.0
    assert config.chart_options == {"animate": True}
