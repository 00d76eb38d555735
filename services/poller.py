"""HTTP access to the device's query endpoint."""

from __future__ import annotations

import logging
from typing import List, Optional

import httpx
from pydantic import ConfigDict, TypeAdapter, ValidationError

from logging_config import panel_extra
from models.records import RawSample
from services.errors import DecodeError, TransportError, UnexpectedStatusError
from services.query import QuerySpec

logger = logging.getLogger(__name__)

# Strict: numeric strings and booleans are not numbers, NaN is not JSON.
_ROWS_ADAPTER: TypeAdapter[List[List[Optional[float]]]] = TypeAdapter(
    List[List[Optional[float]]],
    config=ConfigDict(strict=True, allow_inf_nan=False),
)


def decode_rows(body: bytes) -> List[RawSample]:
    """Decode a JSON array of numeric arrays, reading ``null`` cells as zero."""
    try:
        rows = _ROWS_ADAPTER.validate_json(body)
    except ValidationError as exc:
        raise DecodeError(f"could not parse data: {exc.error_count()} invalid value(s)") from exc
    return [[0.0 if value is None else value for value in row] for row in rows]


class Poller:
    """Issues one GET per call; retries are left to the caller."""

    def __init__(self, client: httpx.Client, instance_id: str) -> None:
        self._client = client
        self.instance_id = instance_id

    def fetch(self, spec: QuerySpec) -> List[RawSample]:
        try:
            with self._client.stream("GET", spec.url, params=spec.params()) as response:
                if response.status_code != httpx.codes.OK:
                    raise UnexpectedStatusError(response.status_code)
                body = response.read()
        except httpx.HTTPError as exc:
            raise TransportError(f"request to {spec.url} failed: {exc}") from exc

        rows = decode_rows(body)
        logger.debug(
            "Fetched device rows",
            extra=panel_extra(self.instance_id, stage="fetch", row_count=len(rows)),
        )
        return rows
