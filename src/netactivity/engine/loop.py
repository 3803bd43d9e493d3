from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from netactivity.core.config import AppConfig
from netactivity.core.exceptions import FatalLoopError, SampleError, WriteFailure
from netactivity.core.retry import backoff_delay
from netactivity.core.throttle import Throttle
from netactivity.engine.state import DaemonSnapshot, LoopState, SnapshotHolder, TickOutcome
from netactivity.publishing.publisher import AtomicPublisher
from netactivity.sampling.delta import activity_delta
from netactivity.sampling.sampler import Sampler

_ERROR_KINDS = ("InterfaceNotFound", "ReadFailure", "WriteFailure")


def _is_permission_error(exc: BaseException) -> bool:
    return isinstance(exc, PermissionError) or isinstance(exc.__cause__, PermissionError)


def run_tick(
    state: LoopState, sampler: Sampler, publisher: AtomicPublisher
) -> tuple[LoopState, TickOutcome]:
    """One Sampling -> Computing -> Publishing pass. Never raises for tick-level errors."""
    try:
        current = sampler.sample()
    except SampleError as exc:
        return state.failed(permission=_is_permission_error(exc)), TickOutcome(error=exc)

    value = activity_delta(state.previous, current)

    try:
        publisher.publish(value)
    except WriteFailure as exc:
        # The delta of this tick is dropped rather than folded into the next one
        return (
            state.failed(sample=current, permission=_is_permission_error(exc)),
            TickOutcome(value=value, error=exc),
        )

    return state.succeeded(current), TickOutcome(value=value, published=True)


def seed(sampler: Sampler, publisher: AtomicPublisher) -> tuple[LoopState, TickOutcome]:
    """Unconditioned first sample; publishes 0 so the record exists from the start."""
    return run_tick(LoopState(), sampler, publisher)


class ActivityDaemon:
    def __init__(
        self,
        *,
        config: AppConfig,
        sampler: Sampler,
        publisher: AtomicPublisher,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self.sampler = sampler
        self.publisher = publisher
        self.fatal_error: FatalLoopError | None = None
        self.crash_error: Exception | None = None

        self._clock = clock
        self._log = logging.getLogger("netactivity.loop")
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name="netactivity-loop", daemon=True)
        self._snapshot = SnapshotHolder(sampler.interface)
        self._throttle = Throttle(config.loop.error_log_throttle_seconds, clock=clock)
        self._last_status = clock()

    def start(self) -> None:
        if self._thread.is_alive():
            return
        self._thread.start()

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout=timeout)

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def request_stop(self) -> None:
        self._stop.set()

    def get_snapshot(self) -> DaemonSnapshot:
        return self._snapshot.get()

    def run_forever(self) -> LoopState:
        """Run in the calling thread until request_stop(). Raises FatalLoopError."""
        interval = float(self.config.loop.interval_seconds)
        self._snapshot.update(running=True)
        self._log.info(
            "sampling loop started",
            extra={
                "interface": self.sampler.interface,
                "record": str(self.publisher.target),
                "interval_s": interval,
            },
        )
        try:
            try:
                self.publisher.ensure_directory()
            except WriteFailure as exc:
                self._log.error(str(exc))

            state, outcome = seed(self.sampler, self.publisher)
            state = self._after_tick(LoopState(), state, outcome)
            next_deadline = self._clock() + interval

            while not self._stop.wait(self._sleep_for(state, next_deadline)):
                started = self._clock()
                new_state, outcome = run_tick(state, self.sampler, self.publisher)
                elapsed = self._clock() - started
                if elapsed > interval and self._throttle.allow("slow_tick"):
                    self._log.warning(
                        "slow tick", extra={"elapsed_ms": round(elapsed * 1000, 1)}
                    )
                state = self._after_tick(state, new_state, outcome)
                next_deadline = self._next_deadline(next_deadline)
                self._maybe_log_status()
            return state
        finally:
            self._snapshot.update(running=False)
            self._shutdown()

    # ----------------- internals -----------------

    def _run(self) -> None:
        try:
            self.run_forever()
        except FatalLoopError as exc:
            self.fatal_error = exc
        except Exception as exc:
            self._log.exception("sampling loop crashed")
            self.crash_error = exc

    def _sleep_for(self, state: LoopState, next_deadline: float) -> float:
        interval = float(self.config.loop.interval_seconds)
        if state.consecutive_failures:
            return backoff_delay(
                state.consecutive_failures,
                backoff_seconds=list(self.config.loop.backoff_seconds),
                default=interval,
            )
        return max(0.0, next_deadline - self._clock())

    def _next_deadline(self, previous_deadline: float) -> float:
        interval = float(self.config.loop.interval_seconds)
        now = self._clock()
        nxt = previous_deadline + interval
        if nxt <= now:
            # Fell behind (slow tick or backoff); resync instead of bursting
            nxt = now + interval
        return nxt

    def _after_tick(self, old: LoopState, new: LoopState, outcome: TickOutcome) -> LoopState:
        snap = self._snapshot.get()
        if outcome.published:
            if old.consecutive_failures:
                self._log.info(
                    "recovered", extra={"after_failures": old.consecutive_failures}
                )
                for kind in _ERROR_KINDS:
                    self._throttle.reset(kind)
            self._log.debug("published", extra={"value": outcome.value})
            self._snapshot.update(
                last_value=outcome.value,
                ticks=new.ticks,
                publishes=snap.publishes + 1,
                consecutive_failures=0,
            )
            return new

        error = outcome.error
        kind = type(error).__name__
        if self._throttle.allow(kind):
            self._log.warning(
                str(error),
                extra={"error_kind": kind, "consecutive_failures": new.consecutive_failures},
            )
        self._snapshot.update(
            ticks=new.ticks,
            failures=snap.failures + 1,
            consecutive_failures=new.consecutive_failures,
            last_error=str(error),
        )

        limit = int(self.config.loop.max_permission_failures)
        if new.consecutive_permission_failures >= limit:
            msg = f"permission denied on {new.consecutive_permission_failures} consecutive ticks: {error}"
            self._log.critical(msg)
            raise FatalLoopError(msg) from error
        return new

    def _maybe_log_status(self) -> None:
        now = self._clock()
        if now - self._last_status < float(self.config.loop.status_interval_seconds):
            return
        self._last_status = now
        snap = self._snapshot.get()
        self._log.info(
            "status",
            extra={
                "interface": snap.interface,
                "last_value": snap.last_value,
                "ticks": snap.ticks,
                "publishes": snap.publishes,
                "failures": snap.failures,
            },
        )

    def _shutdown(self) -> None:
        if self.config.publish.cleanup_on_exit:
            try:
                self.publisher.remove()
            except WriteFailure as exc:
                self._log.error(str(exc))
        self._log.info("sampling loop stopped")
