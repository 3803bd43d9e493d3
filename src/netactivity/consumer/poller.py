from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable

from netactivity.core.exceptions import ParseFailure

DEFAULT_THRESHOLD = 300


def read_activity(path: str | Path) -> int:
    try:
        raw = Path(path).read_text(encoding="ascii")
    except (OSError, UnicodeDecodeError) as exc:
        raise ParseFailure(f"cannot read {path}: {exc}") from exc
    text = raw.strip()
    if not text.isdigit():
        raise ParseFailure(f"not a non-negative integer: {raw!r}")
    return int(text)


def is_active(value: int, threshold: int = DEFAULT_THRESHOLD) -> bool:
    return value >= threshold


class ActivityPoller:
    """Reads the published record at its own cadence and derives active/inactive."""

    def __init__(
        self,
        path: str | Path,
        *,
        threshold: int = DEFAULT_THRESHOLD,
        interval: float = 0.1,
    ) -> None:
        self.path = Path(path)
        self.threshold = threshold
        self.interval = interval
        self.last_signal: bool | None = None
        self._log = logging.getLogger("netactivity.poller")

    def poll_once(self) -> bool | None:
        """None means no signal: the record is missing or malformed."""
        try:
            value = read_activity(self.path)
        except ParseFailure as exc:
            self._log.debug("no signal", extra={"reason": str(exc)})
            return None
        return is_active(value, self.threshold)

    def run(
        self,
        on_change: Callable[[bool], None],
        stop_event: threading.Event,
    ) -> None:
        while not stop_event.is_set():
            active = self.poll_once()
            if active is not None and active != self.last_signal:
                self.last_signal = active
                on_change(active)
            stop_event.wait(self.interval)
