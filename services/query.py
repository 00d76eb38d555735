"""Construction of the fixed device query."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

import httpx

from app.schemas import ModuleConfig
from models.records import TIMESTAMP_CHANNEL
from services.errors import ConfigurationError

QUERY_PATH = "query"


@dataclass(frozen=True)
class QuerySpec:
    """Request URL and parameters reused for every poll."""

    url: str
    resolution: str
    missing: str
    begin: str
    select: Tuple[str, ...]
    format: str = "json"
    end: str = "s"
    group: str = "auto"

    @property
    def channels(self) -> Tuple[str, ...]:
        """Input channels, without the leading timestamp column."""
        return self.select[1:]

    def params(self) -> List[Tuple[str, str]]:
        return [
            ("format", self.format),
            ("resolution", self.resolution),
            ("missing", self.missing),
            ("begin", self.begin),
            ("end", self.end),
            ("group", self.group),
            ("select", "[" + ",".join(self.select) + "]"),
        ]


def _parse_base_url(raw: str) -> httpx.URL:
    try:
        url = httpx.URL(raw.strip())
    except (httpx.InvalidURL, TypeError) as exc:
        raise ConfigurationError(f"could not parse url {raw!r}: {exc}") from exc
    if not url.is_absolute_url or not url.host:
        raise ConfigurationError(f"url {raw!r} must be absolute")
    return url


def build_query_spec(config: ModuleConfig) -> QuerySpec:
    """Resolve the query URL and freeze the parameter set for ``config``."""
    base = _parse_base_url(config.url)
    return QuerySpec(
        url=str(base.join(QUERY_PATH)),
        resolution=config.resolution,
        missing=config.missing,
        begin=f"s-{config.lookback}",
        select=(TIMESTAMP_CHANNEL, *config.inputs),
    )
