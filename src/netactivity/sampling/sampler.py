from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Protocol

import psutil

from netactivity.core.exceptions import InterfaceNotFound, ReadFailure

# Column offsets within the data part of a /proc/net/dev line
_RX_BYTES = 0
_TX_BYTES = 8
_MIN_FIELDS = 16


@dataclass(frozen=True)
class CounterSample:
    interface: str
    rx_bytes: int
    tx_bytes: int
    timestamp: float


class CounterSource(Protocol):
    def read_counters(self, interface: str | None = None) -> dict[str, tuple[int, int]]:
        ...


def parse_proc_net_dev(text: str, interface: str | None = None) -> dict[str, tuple[int, int]]:
    """
    Parse /proc/net/dev content into {interface: (rx_bytes, tx_bytes)}.

    The first two lines are column headers. Older kernels print
    `eth0:123 ...` with no space after the colon, so the split is on the
    colon rather than on whitespace.

    With `interface` given, malformed lines for other interfaces are
    skipped; only a bad line for that interface raises ReadFailure.
    """
    counters: dict[str, tuple[int, int]] = {}
    for lineno, line in enumerate(text.splitlines()):
        if lineno < 2 or not line.strip():
            continue
        name, sep, data = line.partition(":")
        name = name.strip()
        try:
            if not sep:
                raise ReadFailure(f"malformed statistics line {lineno + 1}: {line!r}")
            parts = data.split()
            if len(parts) < _MIN_FIELDS:
                raise ReadFailure(f"short statistics line for {name!r}")
            try:
                counters[name] = (int(parts[_RX_BYTES]), int(parts[_TX_BYTES]))
            except ValueError as exc:
                raise ReadFailure(f"non-numeric counters for {name!r}") from exc
        except ReadFailure:
            if interface is None or name == interface:
                raise
    return counters


class ProcNetDevSource:
    def __init__(self, path: str | Path = "/proc/net/dev") -> None:
        self.path = Path(path)

    def read_counters(self, interface: str | None = None) -> dict[str, tuple[int, int]]:
        try:
            text = self.path.read_text(encoding="ascii", errors="replace")
        except OSError as exc:
            raise ReadFailure(f"cannot read {self.path}: {exc}") from exc
        return parse_proc_net_dev(text, interface)


class PsutilSource:
    def read_counters(self, interface: str | None = None) -> dict[str, tuple[int, int]]:
        try:
            stats = psutil.net_io_counters(pernic=True, nowrap=False)
        except (OSError, RuntimeError, psutil.Error) as exc:
            raise ReadFailure(f"psutil net_io_counters failed: {exc}") from exc
        return {name: (int(s.bytes_recv), int(s.bytes_sent)) for name, s in stats.items()}


def build_source(name: str, stats_path: str | Path = "/proc/net/dev") -> CounterSource:
    if name == "procfs":
        return ProcNetDevSource(stats_path)
    if name == "psutil":
        return PsutilSource()
    raise ValueError(f"unknown counter source: {name}")


class Sampler:
    def __init__(
        self,
        interface: str,
        source: CounterSource,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.interface = interface
        self.source = source
        self._clock = clock

    def sample(self) -> CounterSample:
        counters = self.source.read_counters(self.interface)
        try:
            rx, tx = counters[self.interface]
        except KeyError:
            raise InterfaceNotFound(self.interface) from None
        return CounterSample(
            interface=self.interface,
            rx_bytes=rx,
            tx_bytes=tx,
            timestamp=self._clock(),
        )
