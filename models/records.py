"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

TIMESTAMP_CHANNEL = "time.utc.unix"

WATT = "W"
KILOWATT = "kW"

# One response row: index 0 is the unix timestamp, 1..N follow the inputs.
RawSample = Sequence[float]

SeriesPoint = Tuple[float, float]


@dataclass(slots=True)
class ChannelSeries:
    """Points plotted for a single configured input."""

    channel: str
    points: List[SeriesPoint] = field(default_factory=list)


@dataclass(slots=True)
class AggregatedReading:
    """The current total and per-channel series computed for one tick."""

    current: float
    unit: str
    series: List[ChannelSeries] = field(default_factory=list)

    @property
    def current_watts(self) -> float:
        return self.current * 1000 if self.unit == KILOWATT else self.current

    @property
    def current_kilowatts(self) -> float:
        return self.current if self.unit == KILOWATT else self.current / 1000
