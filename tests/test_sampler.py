from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import psutil
import pytest

from netactivity.core.exceptions import InterfaceNotFound, ReadFailure
from netactivity.sampling.sampler import (
    ProcNetDevSource,
    PsutilSource,
    Sampler,
    build_source,
    parse_proc_net_dev,
)


def test_parse_skips_headers_and_reads_rx_tx(make_net_dev) -> None:
    counters = parse_proc_net_dev(make_net_dev(eth0_rx=1300, eth0_tx=620))
    assert counters["eth0"] == (1300, 620)
    assert counters["wlan0"] == (815000, 402000)
    assert counters["lo"] == (91562, 91562)
    assert "face" not in counters


def test_parse_compact_form_without_space_after_colon() -> None:
    text = "h1\nh2\n  eth1:123 1 0 0 0 0 0 0 456 1 0 0 0 0 0 0\n"
    assert parse_proc_net_dev(text) == {"eth1": (123, 456)}


def test_parse_malformed_line_is_read_failure() -> None:
    with pytest.raises(ReadFailure):
        parse_proc_net_dev("h1\nh2\n  eth0: 1 2 3\n")
    with pytest.raises(ReadFailure):
        parse_proc_net_dev("h1\nh2\n  eth0: x 1 0 0 0 0 0 0 4 1 0 0 0 0 0 0\n")


def test_sampler_reads_interface(stats_file: Path) -> None:
    sampler = Sampler("eth0", ProcNetDevSource(stats_file), clock=lambda: 42.0)
    s = sampler.sample()
    assert (s.interface, s.rx_bytes, s.tx_bytes, s.timestamp) == ("eth0", 1000, 500, 42.0)


def test_sampler_missing_interface(stats_file: Path) -> None:
    sampler = Sampler("wlan1", ProcNetDevSource(stats_file))
    with pytest.raises(InterfaceNotFound) as ei:
        sampler.sample()
    assert ei.value.interface == "wlan1"


def test_sampler_unreadable_source(tmp_path: Path) -> None:
    sampler = Sampler("eth0", ProcNetDevSource(tmp_path / "missing"))
    with pytest.raises(ReadFailure):
        sampler.sample()


def test_build_source() -> None:
    assert isinstance(build_source("procfs", "/x"), ProcNetDevSource)
    assert isinstance(build_source("psutil"), PsutilSource)
    with pytest.raises(ValueError):
        build_source("snmp")


def test_malformed_line_for_other_interface_is_skipped(make_net_dev) -> None:
    text = make_net_dev(eth0_rx=1300, eth0_tx=620) + "  veth9: garbage\nno colon here\n"
    assert parse_proc_net_dev(text, "eth0")["eth0"] == (1300, 620)
    with pytest.raises(ReadFailure):
        parse_proc_net_dev(text)


def test_malformed_line_for_sampled_interface_fails(tmp_path: Path) -> None:
    path = tmp_path / "net_dev"
    path.write_text("h1\nh2\n  eth0: 1 2 3\n  wlan0: 1 0 0 0 0 0 0 0 2 0 0 0 0 0 0 0\n", encoding="ascii")
    with pytest.raises(ReadFailure):
        Sampler("eth0", ProcNetDevSource(path)).sample()
    assert Sampler("wlan0", ProcNetDevSource(path)).sample().tx_bytes == 2


def test_psutil_source_maps_bytes(monkeypatch) -> None:
    calls: list[dict[str, object]] = []

    def _counters(**kwargs: object) -> dict[str, SimpleNamespace]:
        calls.append(kwargs)
        return {
            "eth0": SimpleNamespace(bytes_recv=1300, bytes_sent=620),
            "lo": SimpleNamespace(bytes_recv=5, bytes_sent=5),
        }

    monkeypatch.setattr(psutil, "net_io_counters", _counters)
    assert PsutilSource().read_counters() == {"eth0": (1300, 620), "lo": (5, 5)}
    assert calls == [{"pernic": True, "nowrap": False}]
    s = Sampler("eth0", PsutilSource(), clock=lambda: 1.0).sample()
    assert (s.rx_bytes, s.tx_bytes) == (1300, 620)


@pytest.mark.parametrize("error", [psutil.AccessDenied(), OSError("boom"), RuntimeError("boom")])
def test_psutil_errors_become_read_failure(monkeypatch, error: Exception) -> None:
    def _counters(**kwargs: object) -> dict[str, SimpleNamespace]:
        raise error

    monkeypatch.setattr(psutil, "net_io_counters", _counters)
    with pytest.raises(ReadFailure):
        PsutilSource().read_counters()
