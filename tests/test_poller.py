from __future__ import annotations

import threading
from pathlib import Path

import pytest

from netactivity.consumer.poller import ActivityPoller, is_active, read_activity
from netactivity.core.exceptions import ParseFailure


def test_read_activity(tmp_path: Path) -> None:
    rec = tmp_path / "rec"
    rec.write_text("420\n", encoding="ascii")
    assert read_activity(rec) == 420


@pytest.mark.parametrize("content", ["", "\n", "abc\n", "-5\n", "4 2\n", "1.5\n"])
def test_read_activity_rejects_malformed(tmp_path: Path, content: str) -> None:
    rec = tmp_path / "rec"
    rec.write_text(content, encoding="ascii")
    with pytest.raises(ParseFailure):
        read_activity(rec)


def test_read_activity_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ParseFailure):
        read_activity(tmp_path / "absent")


def test_threshold() -> None:
    assert is_active(420, 300) is True
    assert is_active(300, 300) is True
    assert is_active(15, 300) is False


def test_poll_once_no_signal_on_bad_record(tmp_path: Path) -> None:
    rec = tmp_path / "rec"
    poller = ActivityPoller(rec, threshold=300)
    assert poller.poll_once() is None
    rec.write_text("garbage", encoding="ascii")
    assert poller.poll_once() is None
    rec.write_text("301\n", encoding="ascii")
    assert poller.poll_once() is True


def test_run_reports_transitions_only(tmp_path: Path) -> None:
    rec = tmp_path / "rec"
    rec.write_text("500\n", encoding="ascii")
    poller = ActivityPoller(rec, threshold=300, interval=0.005)
    stop = threading.Event()
    seen: list[bool] = []

    def _on_change(active: bool) -> None:
        seen.append(active)
        if len(seen) == 1:
            rec.write_text("10\n", encoding="ascii")
        else:
            stop.set()

    t = threading.Thread(target=poller.run, args=(_on_change, stop))
    t.start()
    t.join(timeout=5)
    stop.set()

    assert seen == [True, False]
    assert poller.last_signal is False
