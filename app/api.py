"""HTTP routes of the device emulator used for local development."""

from __future__ import annotations

import math
import re
import time
from typing import List

from fastapi import APIRouter, HTTPException, Query, status

from models.records import TIMESTAMP_CHANNEL

router = APIRouter()

_RESOLUTION_STEPS = {"high": 5, "low": 60}
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}
_RELATIVE_TIME = re.compile(r"^s(?:-(\d+)([smhd]))?$")


def _parse_relative(value: str, now: int) -> int:
    match = _RELATIVE_TIME.match(value.strip())
    if match is None:
        raise ValueError(f"unsupported time {value!r}")
    amount, unit = match.groups()
    if amount is None:
        return now
    return now - int(amount) * _UNIT_SECONDS[unit]


def _parse_select(value: str) -> List[str]:
    candidate = value.strip()
    if not (candidate.startswith("[") and candidate.endswith("]")):
        raise ValueError("select must be a bracketed list")
    return [item.strip() for item in candidate[1:-1].split(",") if item.strip()]


def synthetic_watts(channel_index: int, timestamp: int) -> float:
    """Deterministic load curve for one emulated circuit."""
    base = 150.0 + 120.0 * channel_index
    swing = 0.5 * base * math.sin(timestamp / (300.0 + 60.0 * channel_index))
    return round(base + swing, 1)


def build_rows(channels: List[str], begin: int, end: int, step: int) -> List[List[float]]:
    first = -(-begin // step) * step
    rows: List[List[float]] = []
    for timestamp in range(first, end + 1, step):
        row = [float(timestamp)]
        row.extend(synthetic_watts(index, timestamp) for index in range(len(channels)))
        rows.append(row)
    return rows


@router.get(
    "/query",
    summary="Emulate the device query endpoint for the selected inputs.",
)
async def query(
    select: str = Query(..., description="Bracketed list of channels."),
    output_format: str = Query("json", alias="format"),
    resolution: str = Query("high"),
    missing: str = Query("null"),
    begin: str = Query("s-1h"),
    end: str = Query("s"),
    group: str = Query("auto"),
) -> List[List[float]]:
    if output_format != "json":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only json output is supported.",
        )
    try:
        channels = _parse_select(select)
        now = int(time.time())
        window_begin = _parse_relative(begin, now)
        window_end = _parse_relative(end, now)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    if not channels or channels[0] != TIMESTAMP_CHANNEL:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"select must start with {TIMESTAMP_CHANNEL}.",
        )
    step = _RESOLUTION_STEPS.get(resolution, _RESOLUTION_STEPS["high"])
    return build_rows(channels[1:], window_begin, window_end, step)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
