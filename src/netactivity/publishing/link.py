from __future__ import annotations

import logging
import os
from pathlib import Path

from netactivity.core.exceptions import ConfigError

_log = logging.getLogger("netactivity.link")


def install_link(record: str | Path, link_path: str | Path, *, replace: bool = False) -> bool:
    """
    Expose the record inside another namespace (e.g. a web root) via a symlink.

    Returns True when a link was created or repointed, False when it already
    pointed at the record.
    """
    record = Path(record)
    link = Path(link_path)

    if link.is_symlink():
        if Path(os.readlink(link)) == record:
            return False
        if not replace:
            raise ConfigError(f"{link} already links to {os.readlink(link)}")
    elif link.exists():
        if not replace:
            raise ConfigError(f"{link} exists and is not a symlink")
        if link.is_dir():
            raise ConfigError(f"{link} is a directory")

    link.parent.mkdir(parents=True, exist_ok=True)
    tmp = link.with_name(f".{link.name}.{os.getpid()}.lnk")
    try:
        if tmp.is_symlink() or tmp.exists():
            tmp.unlink()
        os.symlink(record, tmp)
        os.replace(tmp, link)
    except OSError as exc:
        try:
            tmp.unlink()
        except OSError:
            pass
        raise ConfigError(f"cannot install link {link} -> {record}: {exc}") from exc

    _log.info("link installed", extra={"link": str(link), "record": str(record)})
    return True
