"""Display surface abstraction and an in-memory implementation."""

from __future__ import annotations

import json
import logging
from string import Template
from threading import Lock
from typing import Any, Callable, List, Optional, Protocol

logger = logging.getLogger(__name__)


class UI(Protocol):
    """The panel host: asset loading plus templated script evaluation."""

    def load_css(self, css: str) -> None: ...

    def load_html(self, html: str) -> None: ...

    def evaluate(self, script: str, **values: Any) -> Any: ...


class JSONFragment(str):
    """Already-encoded JSON that is inserted into a script verbatim."""


def _literal(value: Any) -> str:
    if isinstance(value, JSONFragment):
        return str(value)
    return json.dumps(value, allow_nan=False)


def render_script(script: str, **values: Any) -> str:
    """Substitute ``$name`` placeholders with JSON literals.

    Raises ``KeyError`` for a placeholder without a value and ``ValueError``
    for values that have no JSON literal.
    """
    literals = {key: _literal(value) for key, value in values.items()}
    return Template(script).substitute(literals)


class ConsoleSurface:
    """A display surface that records what it is asked to show."""

    def __init__(self, on_evaluate: Optional[Callable[[str], Any]] = None) -> None:
        self.on_evaluate = on_evaluate
        self.css: List[str] = []
        self.html: List[str] = []
        self.scripts: List[str] = []
        self._lock = Lock()

    def load_css(self, css: str) -> None:
        with self._lock:
            self.css.append(css)

    def load_html(self, html: str) -> None:
        with self._lock:
            self.html.append(html)

    def evaluate(self, script: str, **values: Any) -> Optional[Any]:
        rendered = render_script(script, **values)
        with self._lock:
            self.scripts.append(rendered)
        logger.debug("Evaluated script: %s", rendered)
        if self.on_evaluate is not None:
            self.on_evaluate(rendered)
        return None

    def last_script(self, prefix: str) -> Optional[str]:
        """Most recent evaluated script starting with ``prefix``."""
        with self._lock:
            for script in reversed(self.scripts):
                if script.startswith(prefix):
                    return script
        return None
