from __future__ import annotations

import math

import pytest

from app.ui import ConsoleSurface, JSONFragment, render_script


def test_render_script_quotes_values_as_json_literals() -> None:
    script = render_script(
        "document.querySelector($selector).innerText = $text",
        selector="#iotawatt .current .number",
        text="1.2",
    )

    assert script == 'document.querySelector("#iotawatt .current .number").innerText = "1.2"'


def test_render_script_escapes_quotes_in_values() -> None:
    script = render_script("show($value)", value="it's \"quoted\"")

    assert script == 'show("it\'s \\"quoted\\"")'


def test_render_script_inserts_json_fragments_verbatim() -> None:
    script = render_script("series = $series", series=JSONFragment('[{"data":[]}]'))

    assert script == 'series = [{"data":[]}]'


def test_render_script_requires_every_placeholder() -> None:
    with pytest.raises(KeyError):
        render_script("show($missing)")


def test_render_script_rejects_non_finite_numbers() -> None:
    with pytest.raises(ValueError):
        render_script("show($value)", value=math.inf)


def test_console_surface_records_assets_and_scripts() -> None:
    seen: list[str] = []
    surface = ConsoleSurface(on_evaluate=seen.append)

    surface.load_css(".x {}")
    surface.load_html("<div></div>")
    surface.evaluate("a = $value", value=1)
    surface.evaluate("b = $value", value=2)
    surface.evaluate("a = $value", value=3)

    assert surface.css == [".x {}"]
    assert surface.html == ["<div></div>"]
    assert seen == ["a = 1", "b = 2", "a = 3"]
    assert surface.last_script("a =") == "a = 3"
    assert surface.last_script("c =") is None
