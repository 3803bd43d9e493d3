from __future__ import annotations

import logging
from pathlib import Path

import pytest

PROC_NET_DEV = """\
Inter-|   Receive                                                |  Transmit
 face |bytes    packets errs drop fifo frame compressed multicast|bytes    packets errs drop fifo colls carrier compressed
    lo:   91562     933    0    0    0     0          0         0    91562     933    0    0    0     0       0          0
  eth0: {eth0_rx}    4242    0    0    0     0          0        12  {eth0_tx}    2121    0    0    0     0       0          0
 wlan0:  815000    1900    0    3    0     0          0         0   402000    1700    0    0    0     0       0          0
"""


def proc_net_dev(eth0_rx: int = 1000, eth0_tx: int = 500) -> str:
    return PROC_NET_DEV.format(eth0_rx=eth0_rx, eth0_tx=eth0_tx)


@pytest.fixture
def stats_file(tmp_path: Path) -> Path:
    path = tmp_path / "net_dev"
    path.write_text(proc_net_dev(), encoding="ascii")
    return path


@pytest.fixture(autouse=True)
def _restore_logging(monkeypatch):
    for var in ("NETACTIVITY_INTERFACE", "NETACTIVITY_PUBLISH_PATH", "NETACTIVITY_LOG_LEVEL", "NETACTIVITY_FSYNC"):
        monkeypatch.delenv(var, raising=False)
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def make_net_dev():
    return proc_net_dev
