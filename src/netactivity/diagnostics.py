from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import psutil

from netactivity.core.config import AppConfig
from netactivity.core.exceptions import SampleError
from netactivity.sampling.sampler import Sampler, build_source

_MEMORY_FS = {"tmpfs", "ramfs"}

OK = "OK"
WARN = "WARN"
FAIL = "FAIL"


@dataclass(frozen=True)
class CheckResult:
    status: str
    message: str


def _mount_fstype(path: Path) -> str | None:
    """Filesystem type of the longest mountpoint containing path."""
    best: tuple[int, str] | None = None
    resolved = str(path.resolve())
    for part in psutil.disk_partitions(all=True):
        mp = part.mountpoint.rstrip("/") or "/"
        if resolved == mp or resolved.startswith(mp if mp == "/" else mp + "/"):
            if best is None or len(mp) > best[0]:
                best = (len(mp), part.fstype)
    return best[1] if best else None


def check_sampling(config: AppConfig) -> CheckResult:
    sc = config.sampling
    sampler = Sampler(sc.interface, build_source(sc.source, sc.stats_path))
    try:
        s = sampler.sample()
    except SampleError as exc:
        return CheckResult(FAIL, str(exc))
    return CheckResult(OK, f"{s.interface}: rx={s.rx_bytes} tx={s.tx_bytes}")


def check_publish_dir(config: AppConfig) -> list[CheckResult]:
    directory = Path(config.publish.path).parent
    if not directory.is_dir():
        return [CheckResult(FAIL, f"publish directory missing: {directory}")]
    if not os.access(directory, os.W_OK | os.X_OK):
        return [CheckResult(FAIL, f"publish directory not writable: {directory}")]
    out = [CheckResult(OK, f"publish directory writable: {directory}")]
    fstype = _mount_fstype(directory)
    if fstype in _MEMORY_FS:
        out.append(CheckResult(OK, f"{directory} is memory-backed ({fstype})"))
    else:
        out.append(CheckResult(WARN, f"{directory} is not memory-backed ({fstype or 'unknown'})"))
    return out


def check_link(config: AppConfig) -> CheckResult | None:
    if not config.link.path:
        return None
    link = Path(config.link.path)
    if not link.is_symlink():
        return CheckResult(FAIL, f"link missing: {link}")
    target = Path(os.readlink(link))
    if target != Path(config.publish.path):
        return CheckResult(FAIL, f"{link} points at {target}, expected {config.publish.path}")
    return CheckResult(OK, f"{link} -> {target}")


def run_checks(config: AppConfig) -> list[CheckResult]:
    results = [check_sampling(config)]
    results.extend(check_publish_dir(config))
    link = check_link(config)
    if link is not None:
        results.append(link)
    return results
