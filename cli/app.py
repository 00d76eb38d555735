from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import httpx
import typer
from pydantic import ValidationError

from app.module import IotaWattModule, ModuleInfo
from app.schemas import ModuleConfig
from app.ui import ConsoleSurface
from cli.config import load_config
from cli.render import render_reading
from logging_config import configure_logging
from services.aggregator import build_aggregator
from services.errors import IotaWattError
from services.poller import Poller
from services.query import build_query_spec
from services.renderer import SERIES_GLOBAL
from settings import get_settings


@dataclass
class CLIState:
    config: ModuleConfig
    name: str


app = typer.Typer(
    help="Poll an IoTaWatt device and drive its dashboard panel.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def build_client() -> httpx.Client:
    return httpx.Client(timeout=get_settings().http_timeout)


def _echo_update(script: str) -> None:
    if script.startswith(SERIES_GLOBAL):
        typer.echo(f"{SERIES_GLOBAL} updated ({len(script)} bytes)")
        return
    typer.echo(script)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


def _fail(message: str) -> None:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


@app.callback()
def main(
    ctx: typer.Context,
    url: Optional[str] = typer.Option(
        None,
        "--url",
        "-u",
        help="Device base URL (defaults to IOTAWATT_URL env or http://iotawatt.local).",
    ),
    inputs: Optional[List[str]] = typer.Option(
        None,
        "--input",
        "-i",
        help="Input channel to plot; repeat for several (defaults to IOTAWATT_INPUTS).",
    ),
    interval: Optional[float] = typer.Option(
        None,
        "--interval",
        help="Seconds between polls.",
    ),
    aggregation: Optional[str] = typer.Option(
        None,
        "--aggregation",
        help="fine (every row, kW) or coarse (cadence-filtered, W).",
    ),
    display: Optional[str] = typer.Option(
        None,
        "--display",
        help="decimal or split presentation of the current total.",
    ),
    on_failure: Optional[str] = typer.Option(
        None,
        "--on-failure",
        help="continue or stop polling after a failed tick.",
    ),
    cadence: Optional[int] = typer.Option(
        None,
        "--cadence",
        help="Timestamp modulus kept by coarse aggregation.",
    ),
    threshold: Optional[float] = typer.Option(
        None,
        "--threshold",
        help="Watts at which split display switches to kW.",
    ),
    lookback: Optional[str] = typer.Option(
        None,
        "--lookback",
        help="Query window ending now, in device notation (e.g. 1h, 30m).",
    ),
    resolution: Optional[str] = typer.Option(
        None,
        "--resolution",
        help="Device query resolution (high or low).",
    ),
    animate: Optional[bool] = typer.Option(
        None,
        "--animate/--no-animate",
        help="Pass an animate option to chart updates.",
    ),
    name: Optional[str] = typer.Option(
        None,
        "--name",
        help="Panel instance identifier (defaults to IOTAWATT_NAME env).",
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level."),
) -> None:
    """Entry point for the CLI."""
    configure_logging(log_level.upper() if log_level else None)
    try:
        config = load_config(
            url=url,
            inputs=inputs,
            interval=interval,
            aggregation=aggregation,
            display=display,
            on_failure=on_failure,
            cadence=cadence,
            threshold=threshold,
            lookback=lookback,
            resolution=resolution,
            animate=animate,
        )
    except ValidationError as exc:
        raise typer.BadParameter(str(exc)) from exc
    ctx.obj = CLIState(config=config, name=name or get_settings().name)


@app.command("query")
def query_command(ctx: typer.Context) -> None:
    """Fetch the device once and print the aggregated reading."""
    state = _get_state(ctx)
    config = state.config
    client = build_client()
    try:
        spec = build_query_spec(config)
        rows = Poller(client, state.name).fetch(spec)
        aggregator = build_aggregator(config.aggregation, config.inputs, cadence=config.cadence)
        reading = aggregator.aggregate(rows)
    except IotaWattError as exc:
        _fail(f"Query failed: {exc}")
    finally:
        client.close()
    render_reading(spec, len(rows), reading)


@app.command("run")
def run_command(
    ctx: typer.Context,
    duration: Optional[float] = typer.Option(
        None,
        "--duration",
        help="Stop after this many seconds (runs until interrupted by default).",
    ),
) -> None:
    """Run the panel against a console surface that prints every update."""
    state = _get_state(ctx)
    surface = ConsoleSurface(on_evaluate=_echo_update)
    client = build_client()
    try:
        module = IotaWattModule.start(
            state.config, ModuleInfo(name=state.name), surface, client=client
        )
    except IotaWattError as exc:
        client.close()
        _fail(f"Could not start panel: {exc}")

    typer.echo(f"Polling {module.spec.url} every {state.config.interval}s ...")
    try:
        module.loop.join(duration)
    except KeyboardInterrupt:
        typer.echo("Stopping ...")
    finally:
        module.close()
        client.close()
    typer.secho(f"Stopped after {module.loop.ticks} tick(s).", fg=typer.colors.GREEN)
