from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from typing import Any

from netactivity.sampling.sampler import CounterSample


@dataclass(frozen=True)
class LoopState:
    previous: CounterSample | None = None
    consecutive_failures: int = 0
    consecutive_permission_failures: int = 0
    ticks: int = 0

    def succeeded(self, sample: CounterSample) -> "LoopState":
        return LoopState(previous=sample, ticks=self.ticks + 1)

    def failed(self, *, sample: CounterSample | None = None, permission: bool = False) -> "LoopState":
        return replace(
            self,
            previous=sample if sample is not None else self.previous,
            consecutive_failures=self.consecutive_failures + 1,
            consecutive_permission_failures=(
                self.consecutive_permission_failures + 1 if permission else 0
            ),
            ticks=self.ticks + 1,
        )


@dataclass(frozen=True)
class TickOutcome:
    value: int | None = None
    published: bool = False
    error: Exception | None = None


@dataclass
class DaemonSnapshot:
    running: bool = False
    interface: str = ""
    last_value: int | None = None
    ticks: int = 0
    publishes: int = 0
    failures: int = 0
    consecutive_failures: int = 0
    last_error: str | None = None


class SnapshotHolder:
    def __init__(self, interface: str) -> None:
        self._lock = threading.Lock()
        self._snapshot = DaemonSnapshot(interface=interface)

    def get(self) -> DaemonSnapshot:
        with self._lock:
            return DaemonSnapshot(**self._snapshot.__dict__)

    def update(self, **kwargs: Any) -> None:
        with self._lock:
            for k, v in kwargs.items():
                setattr(self._snapshot, k, v)
