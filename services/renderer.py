"""Display-surface mutations for one aggregated reading."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from app.schemas import DisplayPolicy
from app.ui import UI, JSONFragment
from logging_config import panel_extra
from models.records import AggregatedReading

logger = logging.getLogger(__name__)

SERIES_GLOBAL = "iotaWattSeries"
CHART_GLOBAL = "iotaWattChart"

WATT_CLASS = "watt"
KILOWATT_CLASS = "kilowatt"

_SET_TEXT = "document.querySelector($selector).innerText = $text"
_SET_SPLIT = (
    "(function (el) {"
    " el.querySelector('.whole').innerText = $whole;"
    " el.querySelector('.tenths').innerText = $tenths;"
    " el.classList.remove($inactive);"
    " el.classList.add($active);"
    " })(document.querySelector($selector))"
)
_SET_SERIES = SERIES_GLOBAL + " = $series"
_UPDATE_CHART = CHART_GLOBAL + ".update({series: " + SERIES_GLOBAL + "})"
_UPDATE_CHART_WITH_OPTIONS = (
    CHART_GLOBAL + ".update({series: " + SERIES_GLOBAL + "}, $options)"
)


def format_decimal(kilowatts: float) -> str:
    return f"{kilowatts:.1f}"


def split_value(watts: float, threshold: float) -> Tuple[str, str, str]:
    """Return ``(whole, tenths, unit_class)``, promoting to kW at ``threshold``."""
    if abs(watts) < threshold:
        value, unit_class = watts, WATT_CLASS
    else:
        value, unit_class = watts / 1000, KILOWATT_CLASS
    whole, _, tenths = f"{value:.1f}".partition(".")
    return whole, tenths, unit_class


class Renderer:
    """Pushes a reading into the panel as three independent script evaluations."""

    def __init__(
        self,
        ui: UI,
        instance_id: str,
        display: DisplayPolicy = DisplayPolicy.decimal,
        threshold: float = 100.0,
        chart_options: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.ui = ui
        self.instance_id = instance_id
        self.display = display
        self.threshold = threshold
        self.chart_options = dict(chart_options) if chart_options else None

    def render(self, reading: AggregatedReading, series_json: str) -> int:
        """Apply every mutation, returning how many of them failed."""
        steps: List[Tuple[str, Callable[[], Any]]] = [
            ("current", lambda: self._update_current(reading)),
            ("series", lambda: self._update_series(series_json)),
            ("chart", self._update_chart),
        ]
        failures = 0
        for stage, step in steps:
            try:
                step()
            except Exception as exc:  # noqa: BLE001 - one failed mutation must not block the rest
                failures += 1
                logger.error(
                    "Could not update %s: %s",
                    stage,
                    exc,
                    extra=panel_extra(self.instance_id, stage=stage),
                )
        return failures

    def _update_current(self, reading: AggregatedReading) -> None:
        selector = f"#{self.instance_id} .current"
        if self.display is DisplayPolicy.split:
            whole, tenths, active = split_value(reading.current_watts, self.threshold)
            inactive = WATT_CLASS if active == KILOWATT_CLASS else KILOWATT_CLASS
            self.ui.evaluate(
                _SET_SPLIT,
                selector=selector,
                whole=whole,
                tenths=tenths,
                active=active,
                inactive=inactive,
            )
            return
        self.ui.evaluate(
            _SET_TEXT,
            selector=f"{selector} .number",
            text=format_decimal(reading.current_kilowatts),
        )

    def _update_series(self, series_json: str) -> None:
        self.ui.evaluate(_SET_SERIES, series=JSONFragment(series_json))

    def _update_chart(self) -> None:
        if self.chart_options:
            self.ui.evaluate(_UPDATE_CHART_WITH_OPTIONS, options=self.chart_options)
            return
        self.ui.evaluate(_UPDATE_CHART)
