"""Aggregation of raw device rows into a displayable reading."""

from __future__ import annotations

import json
from typing import List, Sequence

from pydantic import TypeAdapter, ValidationError

from app.schemas import AggregationPolicy, SeriesPayload
from models.records import KILOWATT, WATT, AggregatedReading, ChannelSeries, RawSample
from services.errors import EncodeError, RowShapeError

DEFAULT_CADENCE = 20

_PAYLOAD_ADAPTER: TypeAdapter[List[SeriesPayload]] = TypeAdapter(List[SeriesPayload])


class Aggregator:
    """Base strategy: validates row shape and builds empty series."""

    unit = WATT

    def __init__(self, channels: Sequence[str]) -> None:
        self.channels = tuple(channels)

    def aggregate(self, rows: Sequence[RawSample]) -> AggregatedReading:
        for index, row in enumerate(rows):
            self._check_shape(index, row)
        series = [ChannelSeries(channel=name) for name in self.channels]
        if not rows:
            return AggregatedReading(current=0.0, unit=self.unit, series=series)
        current = self._fill(rows, series)
        return AggregatedReading(current=current, unit=self.unit, series=series)

    def _fill(self, rows: Sequence[RawSample], series: List[ChannelSeries]) -> float:
        raise NotImplementedError

    def _check_shape(self, index: int, row: RawSample) -> None:
        expected = len(self.channels) + 1
        if len(row) != expected:
            raise RowShapeError(index, expected, len(row))


class CoarseAggregator(Aggregator):
    """Native watts, series thinned to timestamps on the cadence."""

    unit = WATT

    def __init__(self, channels: Sequence[str], cadence: int = DEFAULT_CADENCE) -> None:
        super().__init__(channels)
        if cadence <= 0:
            raise ValueError("cadence must be positive")
        self.cadence = cadence

    def _fill(self, rows: Sequence[RawSample], series: List[ChannelSeries]) -> float:
        for row in rows:
            timestamp = row[0]
            if timestamp % self.cadence != 0:
                continue
            for channel, value in zip(series, row[1:]):
                channel.points.append((timestamp, value))
        return sum(rows[-1][1:])


class FineAggregator(Aggregator):
    """Every row, converted to kilowatts."""

    unit = KILOWATT

    def _fill(self, rows: Sequence[RawSample], series: List[ChannelSeries]) -> float:
        current = 0.0
        for row in rows:
            timestamp = row[0]
            total = 0.0
            for channel, value in zip(series, row[1:]):
                kw = value / 1000
                channel.points.append((timestamp, kw))
                total += kw
            current = total
        return current


def build_aggregator(
    policy: AggregationPolicy,
    channels: Sequence[str],
    cadence: int = DEFAULT_CADENCE,
) -> Aggregator:
    if policy is AggregationPolicy.coarse:
        return CoarseAggregator(channels, cadence=cadence)
    return FineAggregator(channels)


def encode_series(reading: AggregatedReading) -> str:
    """Encode the series collection as the JSON array the chart consumes."""
    payload = [
        SeriesPayload(data=list(channel.points)).model_dump() for channel in reading.series
    ]
    try:
        return json.dumps(payload, allow_nan=False, separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        raise EncodeError(f"could not encode data: {exc}") from exc


def decode_series(text: str | bytes) -> List[SeriesPayload]:
    try:
        return _PAYLOAD_ADAPTER.validate_json(text)
    except ValidationError as exc:
        raise EncodeError(f"could not decode data: {exc.error_count()} invalid value(s)") from exc
