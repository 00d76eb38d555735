from __future__ import annotations

from typing import Optional, Sequence

from app.schemas import ModuleConfig
from settings import get_settings


def load_config(
    url: Optional[str] = None,
    inputs: Optional[Sequence[str]] = None,
    interval: Optional[float] = None,
    aggregation: Optional[str] = None,
    display: Optional[str] = None,
    on_failure: Optional[str] = None,
    cadence: Optional[int] = None,
    threshold: Optional[float] = None,
    lookback: Optional[str] = None,
    resolution: Optional[str] = None,
    animate: Optional[bool] = None,
) -> ModuleConfig:
    """Merge explicit options over the environment settings.

    The URL is kept as given apart from surrounding whitespace: a trailing
    slash decides whether ``query`` resolves under a path prefix.

    Raises ``pydantic.ValidationError`` when the merged values are invalid.
    """
    settings = get_settings()
    if animate is None:
        animate = settings.chart_animate
    return ModuleConfig(
        url=(url or settings.url).strip(),
        inputs=tuple(inputs) if inputs else settings.inputs,
        interval=interval if interval is not None else settings.interval,
        aggregation=aggregation or settings.aggregation,
        display=display or settings.display,
        on_failure=on_failure or settings.on_failure,
        cadence=cadence if cadence is not None else settings.cadence,
        threshold=threshold if threshold is not None else settings.threshold,
        lookback=lookback or settings.lookback,
        resolution=resolution or settings.resolution,
        chart_options={"animate": animate} if animate is not None else None,
    )
