from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple


_URL_ENV = "IOTAWATT_URL"
_INPUTS_ENV = "IOTAWATT_INPUTS"
_INTERVAL_ENV = "IOTAWATT_INTERVAL"
_AGGREGATION_ENV = "IOTAWATT_AGGREGATION"
_DISPLAY_ENV = "IOTAWATT_DISPLAY"
_ON_FAILURE_ENV = "IOTAWATT_ON_FAILURE"
_HTTP_TIMEOUT_ENV = "IOTAWATT_HTTP_TIMEOUT"
_NAME_ENV = "IOTAWATT_NAME"
_CADENCE_ENV = "IOTAWATT_CADENCE"
_THRESHOLD_ENV = "IOTAWATT_THRESHOLD"
_LOOKBACK_ENV = "IOTAWATT_LOOKBACK"
_RESOLUTION_ENV = "IOTAWATT_RESOLUTION"
_CHART_ANIMATE_ENV = "IOTAWATT_CHART_ANIMATE"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_AGGREGATION_CHOICES = ("fine", "coarse")
_DISPLAY_CHOICES = ("decimal", "split")
_ON_FAILURE_CHOICES = ("continue", "stop")


@dataclass(frozen=True)
class Settings:
    url: str
    inputs: Tuple[str, ...]
    interval: float
    aggregation: str
    display: str
    on_failure: str
    http_timeout: float
    name: str
    cadence: int
    threshold: float
    lookback: str
    resolution: str
    chart_animate: Optional[bool]
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_list_env(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    value = os.getenv(name)
    if value is None:
        return default
    items = tuple(item.strip() for item in value.split(","))
    return tuple(item for item in items if item)


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_non_negative_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        parsed = float(value.strip())
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


def _read_optional_bool(name: str) -> Optional[bool]:
    value = os.getenv(name)
    if value is None:
        return None
    candidate = value.strip().lower()
    if candidate in {"1", "true", "yes", "on"}:
        return True
    if candidate in {"0", "false", "no", "off"}:
        return False
    return None


def _read_choice_env(name: str, choices: Tuple[str, ...], default: str) -> str:
    candidate = _read_str_env(name, default).lower()
    return candidate if candidate in choices else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        url=_read_str_env(_URL_ENV, "http://iotawatt.local"),
        inputs=_read_list_env(_INPUTS_ENV, ()),
        interval=_read_positive_float(_INTERVAL_ENV, 2.0),
        aggregation=_read_choice_env(_AGGREGATION_ENV, _AGGREGATION_CHOICES, "fine"),
        display=_read_choice_env(_DISPLAY_ENV, _DISPLAY_CHOICES, "decimal"),
        on_failure=_read_choice_env(_ON_FAILURE_ENV, _ON_FAILURE_CHOICES, "continue"),
        http_timeout=_read_positive_float(_HTTP_TIMEOUT_ENV, 30.0),
        name=_read_str_env(_NAME_ENV, "iotawatt"),
        cadence=_read_positive_int(_CADENCE_ENV, 20),
        threshold=_read_non_negative_float(_THRESHOLD_ENV, 100.0),
        lookback=_read_str_env(_LOOKBACK_ENV, "1h"),
        resolution=_read_str_env(_RESOLUTION_ENV, "high"),
        chart_animate=_read_optional_bool(_CHART_ANIMATE_ENV),
        log_level=_read_log_level("INFO"),
    )

