from __future__ import annotations

import os
from pathlib import Path

import pytest

from netactivity.core.exceptions import ConfigError
from netactivity.publishing.link import install_link


def test_install_link_is_idempotent(tmp_path: Path) -> None:
    record = tmp_path / "shm" / "net_activity"
    record.parent.mkdir()
    record.write_text("5\n", encoding="ascii")
    link = tmp_path / "www" / "app" / "net_activity"

    assert install_link(record, link) is True
    assert os.readlink(link) == str(record)
    assert link.read_text(encoding="ascii") == "5\n"
    assert install_link(record, link) is False


def test_link_may_dangle_until_first_publish(tmp_path: Path) -> None:
    link = tmp_path / "net_activity"
    install_link(tmp_path / "later", link)
    assert link.is_symlink()
    assert not link.exists()


def test_refuses_foreign_file_without_replace(tmp_path: Path) -> None:
    record = tmp_path / "rec"
    link = tmp_path / "link"
    link.write_text("other", encoding="utf-8")
    with pytest.raises(ConfigError):
        install_link(record, link)
    assert install_link(record, link, replace=True) is True
    assert os.readlink(link) == str(record)


def test_refuses_to_repoint_without_replace(tmp_path: Path) -> None:
    link = tmp_path / "link"
    install_link(tmp_path / "a", link)
    with pytest.raises(ConfigError):
        install_link(tmp_path / "b", link)
    install_link(tmp_path / "b", link, replace=True)
    assert os.readlink(link) == str(tmp_path / "b")
