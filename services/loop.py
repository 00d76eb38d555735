"""Background worker that sequences fetch, aggregate and render."""

from __future__ import annotations

import logging
import time
from enum import Enum
from threading import Event, Lock, Thread
from typing import Callable, List, Optional

from app.schemas import FailurePolicy
from logging_config import panel_extra
from models.records import AggregatedReading, RawSample
from services.errors import AggregationError, PollError, UnexpectedStatusError

logger = logging.getLogger(__name__)

FetchFn = Callable[[], List[RawSample]]
AggregateFn = Callable[[List[RawSample]], AggregatedReading]
EncodeFn = Callable[[AggregatedReading], str]
RenderFn = Callable[[AggregatedReading, str], int]


class LoopState(str, Enum):
    idle = "idle"
    ticking = "ticking"
    stopped = "stopped"


class PollLoop:
    """Runs one tick immediately, then one per interval, on a single thread."""

    def __init__(
        self,
        instance_id: str,
        fetch: FetchFn,
        aggregate: AggregateFn,
        encode: EncodeFn,
        render: RenderFn,
        interval: float,
        on_failure: FailurePolicy = FailurePolicy.continue_,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.instance_id = instance_id
        self.interval = interval
        self.on_failure = on_failure
        self._fetch = fetch
        self._aggregate = aggregate
        self._encode = encode
        self._render = render
        self._clock = clock
        self._stop = Event()
        self._state = LoopState.idle
        self._state_lock = Lock()
        self._thread: Optional[Thread] = None
        self.ticks = 0

    @property
    def state(self) -> LoopState:
        with self._state_lock:
            return self._state

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    def start(self) -> None:
        with self._state_lock:
            if self._thread is not None:
                raise RuntimeError("poll loop already started")
            self._thread = Thread(
                target=self._run,
                name=f"iotawatt-{self.instance_id}",
                daemon=True,
            )
        self._thread.start()

    def stop(self) -> None:
        """Request cancellation; later calls are no-ops."""
        if self._stop.is_set():
            return
        self._stop.set()
        with self._state_lock:
            if self._thread is None:
                self._state = LoopState.stopped

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the worker to exit; returns whether it did."""
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def tick(self) -> bool:
        """Run a single fetch, aggregate and render pass; returns success."""
        try:
            rows = self._fetch()
        except UnexpectedStatusError as exc:
            self._log_failure("fetch", exc, status_code=exc.status_code)
            return False
        except PollError as exc:
            self._log_failure("fetch", exc)
            return False

        try:
            reading = self._aggregate(rows)
            payload = self._encode(reading)
        except AggregationError as exc:
            self._log_failure("aggregate", exc, row_count=len(rows))
            return False

        failures = self._render(reading, payload)
        if failures:
            logger.warning(
                "Rendered with failures",
                extra=panel_extra(self.instance_id, stage="render", failures=failures),
            )
        return True

    def _run(self) -> None:
        self._set_state(LoopState.ticking)
        next_fire = self._clock()
        try:
            while not self._stop.is_set():
                self.ticks += 1
                try:
                    ok = self.tick()
                except Exception:  # pragma: no cover - keeps the worker alive on bugs
                    logger.exception(
                        "Unexpected tick failure",
                        extra=panel_extra(self.instance_id, stage="tick"),
                    )
                    ok = False
                if not ok and self.on_failure is FailurePolicy.stop:
                    logger.error(
                        "Stopping after failed tick",
                        extra=panel_extra(self.instance_id, state=LoopState.stopped.value),
                    )
                    return
                next_fire = self._next_fire(next_fire)
                if self._stop.wait(max(0.0, next_fire - self._clock())):
                    return
        finally:
            self._set_state(LoopState.stopped)

    def _next_fire(self, previous: float) -> float:
        # Missed firings are dropped rather than run back to back.
        upcoming = previous + self.interval
        now = self._clock()
        if upcoming < now:
            skipped = int((now - upcoming) // self.interval) + 1
            upcoming += skipped * self.interval
        return upcoming

    def _set_state(self, state: LoopState) -> None:
        with self._state_lock:
            self._state = state
        logger.debug("Poll loop %s", state.value, extra=panel_extra(self.instance_id, state=state.value))

    def _log_failure(self, stage: str, exc: Exception, **fields: object) -> None:
        logger.error(
            "Could not complete %s: %s",
            stage,
            exc,
            extra=panel_extra(self.instance_id, stage=stage, **fields),
        )
