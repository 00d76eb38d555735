"""Pydantic schemas for configuration and the display-surface payload."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AggregationPolicy(str, Enum):
    """How raw rows are reduced before they reach the display."""

    fine = "fine"
    coarse = "coarse"


class DisplayPolicy(str, Enum):
    """How the current total is presented."""

    decimal = "decimal"
    split = "split"


class FailurePolicy(str, Enum):
    """What the loop does after a failed tick."""

    continue_ = "continue"
    stop = "stop"


class ModuleConfig(BaseModel):
    """Immutable configuration for one panel instance."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(..., description="Base URL of the IoTaWatt device.")
    inputs: Tuple[str, ...] = Field(
        default=(), description="Input channel names, in plotting order."
    )
    interval: float = Field(default=2.0, gt=0, description="Seconds between polls.")
    aggregation: AggregationPolicy = AggregationPolicy.fine
    display: DisplayPolicy = DisplayPolicy.decimal
    on_failure: FailurePolicy = FailurePolicy.continue_
    cadence: int = Field(
        default=20, gt=0, description="Timestamp modulus kept by coarse aggregation."
    )
    threshold: float = Field(
        default=100.0, ge=0, description="Watts at which split display switches to kW."
    )
    resolution: str = "high"
    missing: str = "null"
    lookback: str = "1h"
    chart_options: Optional[Dict[str, Any]] = None

    @field_validator("inputs")
    @classmethod
    def _strip_inputs(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        stripped = tuple(item.strip() for item in value)
        if any(not item for item in stripped):
            raise ValueError("input names must not be empty")
        return stripped


class SeriesPayload(BaseModel):
    """One chart series as the display surface expects it."""

    data: List[Tuple[float, float]] = Field(default_factory=list)
