from __future__ import annotations

from typing import Any, Iterable

import typer

from models.records import AggregatedReading
from services.query import QuerySpec


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_reading(spec: QuerySpec, row_count: int, reading: AggregatedReading) -> None:
    echo_heading("Query")
    echo_key_values(
        [
            ("url", spec.url),
            ("select", ",".join(spec.select)),
            ("rows", row_count),
        ]
    )

    typer.echo()
    echo_heading("Current")
    echo_key_values([("total", f"{reading.current:.1f} {reading.unit}")])

    typer.echo()
    echo_heading("Series")
    if not reading.series:
        typer.echo("No inputs configured.")
        return
    for channel in reading.series:
        if channel.points:
            timestamp, value = channel.points[-1]
            typer.echo(
                f"  - {channel.channel}: {len(channel.points)} points,"
                f" last {value:.3f} {reading.unit} at {int(timestamp)}"
            )
        else:
            typer.echo(f"  - {channel.channel}: no points")
