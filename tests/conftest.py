from __future__ import annotations

from typing import Any, Iterator, List, Optional

import pytest

from settings import get_settings


class RecordingUI:
    """Display surface double that can be told to fail specific scripts."""

    def __init__(self, fail_on: Optional[str] = None) -> None:
        self.fail_on = fail_on
        self.css: List[str] = []
        self.html: List[str] = []
        self.calls: List[tuple[str, dict[str, Any]]] = []

    def load_css(self, css: str) -> None:
        self.css.append(css)

    def load_html(self, html: str) -> None:
        self.html.append(html)

    def evaluate(self, script: str, **values: Any) -> None:
        self.calls.append((script, values))
        if self.fail_on is not None and self.fail_on in script:
            raise RuntimeError(f"evaluation failed for {self.fail_on}")


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def recording_ui() -> RecordingUI:
    return RecordingUI()


@pytest.fixture()
def ui_factory():
    return RecordingUI
