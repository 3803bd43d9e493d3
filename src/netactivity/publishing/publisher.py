from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from netactivity.core.exceptions import WriteFailure


def format_record(value: int) -> str:
    if value < 0:
        raise ValueError(f"activity value must be non-negative, got {value}")
    return f"{int(value)}\n"


class AtomicPublisher:
    """
    Publishes the activity value as a one-line text file.

    Each publish writes a uniquely named temp file next to the target and
    renames it over the target, so a reader opening the path gets either the
    previous file or the new one, complete.
    """

    def __init__(self, target: str | Path, *, file_mode: int = 0o644, fsync: bool = False) -> None:
        self.target = Path(target)
        self.file_mode = file_mode
        self.fsync = fsync
        self._log = logging.getLogger("netactivity.publisher")

    def ensure_directory(self) -> None:
        try:
            self.target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise WriteFailure(f"cannot create {self.target.parent}: {exc}") from exc

    def publish(self, value: int) -> None:
        data = format_record(value).encode("ascii")
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.target.name}.", suffix=".tmp", dir=self.target.parent
            )
        except OSError as exc:
            raise WriteFailure(f"cannot create temp file in {self.target.parent}: {exc}") from exc

        try:
            try:
                view = memoryview(data)
                while view:
                    written = os.write(fd, view)
                    view = view[written:]
                if self.fsync:
                    os.fsync(fd)
                # mkstemp creates 0600; the reader runs as another user
                os.fchmod(fd, self.file_mode)
            finally:
                os.close(fd)
            os.replace(tmp_name, self.target)
        except OSError as exc:
            self._discard(tmp_name)
            raise WriteFailure(f"publish to {self.target} failed: {exc}") from exc

    def remove(self) -> None:
        try:
            self.target.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise WriteFailure(f"cannot remove {self.target}: {exc}") from exc

    def _discard(self, tmp_name: str) -> None:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        except OSError as exc:
            self._log.warning("stale temp file left behind", extra={"path": tmp_name, "error": str(exc)})
