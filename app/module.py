"""Panel module lifecycle: asset loading, wiring and shutdown."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from threading import Lock
from typing import Optional

import httpx
from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape

from app.schemas import ModuleConfig
from app.ui import UI
from logging_config import panel_extra
from services.aggregator import Aggregator, build_aggregator, encode_series
from services.errors import AssetError
from services.loop import PollLoop
from services.poller import Poller
from services.query import QuerySpec, build_query_spec
from services.renderer import Renderer
from settings import get_settings

logger = logging.getLogger(__name__)

ASSETS_DIR = Path(__file__).resolve().parent / "assets"
CSS_ASSET = "style.css"
HTML_ASSET = "index.html"


@dataclass(frozen=True)
class ModuleInfo:
    """Identity of one panel instance and where its assets live."""

    name: str
    path: Path = field(default=ASSETS_DIR)


class IotaWattModule:
    """A running panel; build it with :meth:`start`."""

    def __init__(
        self,
        info: ModuleInfo,
        config: ModuleConfig,
        ui: UI,
        spec: QuerySpec,
        client: httpx.Client,
        owns_client: bool,
    ) -> None:
        self.info = info
        self.config = config
        self.ui = ui
        self.spec = spec
        self.aggregator: Aggregator = build_aggregator(
            config.aggregation, config.inputs, cadence=config.cadence
        )
        self.renderer = Renderer(
            ui,
            info.name,
            display=config.display,
            threshold=config.threshold,
            chart_options=config.chart_options,
        )
        self._client = client
        self._owns_client = owns_client
        self._closed = False
        self._close_lock = Lock()
        poller = Poller(client, info.name)
        self.loop = PollLoop(
            info.name,
            fetch=partial(poller.fetch, spec),
            aggregate=self.aggregator.aggregate,
            encode=encode_series,
            render=self.renderer.render,
            interval=config.interval,
            on_failure=config.on_failure,
        )

    @classmethod
    def start(
        cls,
        config: ModuleConfig,
        info: ModuleInfo,
        ui: UI,
        client: Optional[httpx.Client] = None,
    ) -> "IotaWattModule":
        """Validate, load assets, then start polling in the background."""
        spec = build_query_spec(config)
        load_assets(ui, info, config)

        owns_client = client is None
        if client is None:
            client = httpx.Client(timeout=get_settings().http_timeout)
        module = cls(info, config, ui, spec, client, owns_client)
        module.loop.start()
        logger.info(
            "Panel module started",
            extra=panel_extra(info.name, state=module.loop.state.value),
        )
        return module

    def close(self, timeout: Optional[float] = None) -> None:
        """Stop polling and wait for the worker; repeated calls do nothing."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        self.loop.stop()
        if not self.loop.join(timeout):
            logger.warning(
                "Poll worker still running after close",
                extra=panel_extra(self.info.name, state=self.loop.state.value),
            )
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "IotaWattModule":
        return self

    def __exit__(self, *_exc_info: object) -> None:
        self.close()


def _read_asset(info: ModuleInfo, name: str) -> str:
    path = info.path / name
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise AssetError(f"could not read {name}: {exc}") from exc


def load_assets(ui: UI, info: ModuleInfo, config: ModuleConfig) -> None:
    """Load the stylesheet and markup, then run the panel's scripts."""
    css = _read_asset(info, CSS_ASSET)
    try:
        ui.load_css(css)
    except Exception as exc:  # noqa: BLE001 - host errors are opaque
        raise AssetError(f"could not load css: {exc}") from exc

    env = Environment(
        loader=FileSystemLoader(str(info.path)),
        autoescape=select_autoescape(["html"]),
    )
    try:
        html = env.get_template(HTML_ASSET).render(
            name=info.name,
            inputs=list(config.inputs),
            display=config.display.value,
        )
    except TemplateError as exc:
        raise AssetError(f"could not read html: {exc}") from exc

    try:
        ui.load_html(html)
        ui.evaluate("invokeModuleScripts($name)", name=info.name)
    except Exception as exc:  # noqa: BLE001 - host errors are opaque
        raise AssetError(f"could not load html: {exc}") from exc
