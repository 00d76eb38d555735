from __future__ import annotations

import json
import threading
import time
from typing import Iterator

import httpx
import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from app.module import IotaWattModule, ModuleInfo, load_assets
from app.schemas import AggregationPolicy, DisplayPolicy, ModuleConfig
from app.ui import ConsoleSurface
from services.errors import AssetError, ConfigurationError
from services.loop import LoopState


@pytest.fixture()
def device() -> Iterator[TestClient]:
    with TestClient(create_app()) as client:
        yield client


def _wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


def test_start_loads_assets_and_renders_readings(device: TestClient) -> None:
    surface = ConsoleSurface()
    config = ModuleConfig(url="http://testserver", inputs=("main", "solar"), interval=0.05)

    module = IotaWattModule.start(config, ModuleInfo(name="iotawatt"), surface, client=device)
    try:
        assert _wait_for(lambda: surface.last_script("iotaWattChart.update") is not None)
    finally:
        module.close()

    assert len(surface.css) == 1
    assert 'id="iotawatt"' in surface.html[0]
    assert surface.scripts[0] == 'invokeModuleScripts("iotawatt")'
    series_script = surface.last_script("iotaWattSeries = ")
    series = json.loads(series_script[len("iotaWattSeries = "):])
    assert len(series) == 2
    assert all(len(point) == 2 for entry in series for point in entry["data"])
    assert module.loop.state is LoopState.stopped


def test_coarse_split_configuration_uses_watts_and_cadence(device: TestClient) -> None:
    surface = ConsoleSurface()
    config = ModuleConfig(
        url="http://testserver",
        inputs=("main",),
        interval=0.05,
        aggregation=AggregationPolicy.coarse,
        display=DisplayPolicy.split,
    )

    with IotaWattModule.start(config, ModuleInfo(name="panel"), surface, client=device):
        assert _wait_for(lambda: surface.last_script("iotaWattSeries = ") is not None)

    series_script = surface.last_script("iotaWattSeries = ")
    series = json.loads(series_script[len("iotaWattSeries = "):])
    assert series[0]["data"]
    assert all(timestamp % 20 == 0 for timestamp, _ in series[0]["data"])
    assert '<span class="whole">' in surface.html[0]


def test_bad_url_prevents_start(recording_ui) -> None:
    config = ModuleConfig(url="not a url", inputs=("main",))

    with pytest.raises(ConfigurationError):
        IotaWattModule.start(config, ModuleInfo(name="iotawatt"), recording_ui)

    assert recording_ui.css == []


def test_missing_assets_prevent_start(recording_ui, tmp_path) -> None:
    config = ModuleConfig(url="http://device", inputs=("main",))

    with pytest.raises(AssetError):
        IotaWattModule.start(config, ModuleInfo(name="iotawatt", path=tmp_path), recording_ui)


def test_missing_html_template_is_an_asset_error(recording_ui, tmp_path) -> None:
    (tmp_path / "style.css").write_text(".iotawatt {}")
    config = ModuleConfig(url="http://device", inputs=("main",))

    with pytest.raises(AssetError):
        load_assets(recording_ui, ModuleInfo(name="iotawatt", path=tmp_path), config)

    assert recording_ui.css == [".iotawatt {}"]


def test_host_failure_during_html_load_is_an_asset_error(ui_factory) -> None:
    ui = ui_factory(fail_on="invokeModuleScripts")
    config = ModuleConfig(url="http://device", inputs=("main",))

    with pytest.raises(AssetError):
        load_assets(ui, ModuleInfo(name="iotawatt"), config)


def test_close_is_safe_to_call_twice() -> None:
    entered = threading.Event()
    release = threading.Event()

    def handler(request: httpx.Request) -> httpx.Response:
        entered.set()
        release.wait(timeout=5)
        return httpx.Response(200, json=[])

    client = httpx.Client(transport=httpx.MockTransport(handler))
    config = ModuleConfig(url="http://device", inputs=("main",), interval=10)
    module = IotaWattModule.start(config, ModuleInfo(name="iotawatt"), ConsoleSurface(), client=client)

    assert entered.wait(timeout=5)
    release.set()
    module.close(timeout=5)
    module.close(timeout=5)

    assert module.loop.state is LoopState.stopped
    assert module.loop.ticks == 1
    client.close()


def test_device_errors_keep_the_panel_polling() -> None:
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        if len(calls) == 1:
            return httpx.Response(500)
        return httpx.Response(200, json=[[100, 500], [120, 700]])

    surface = ConsoleSurface()
    client = httpx.Client(transport=httpx.MockTransport(handler))
    config = ModuleConfig(url="http://device", inputs=("main",), interval=0.02)

    with IotaWattModule.start(config, ModuleInfo(name="iotawatt"), surface, client=client):
        assert _wait_for(lambda: surface.last_script("document.querySelector") is not None)

    assert len(calls) >= 2
    assert surface.last_script("document.querySelector") == (
        'document.querySelector("#iotawatt .current .number").innerText = "0.7"'
    )
    client.close()
