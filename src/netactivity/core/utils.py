from __future__ import annotations

import json
import logging
import os
import platform
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Mapping

# Attributes every LogRecord carries; anything else came in through `extra=`
_STANDARD_RECORD_KEYS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime"}


def ensure_dir(path: str | Path) -> Path:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


class JsonFormatter(logging.Formatter):
    """One JSON object per line: ts, level, logger, msg, then the record's extras."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        payload.update(
            (k, v) for k, v in vars(record).items() if k not in _STANDARD_RECORD_KEYS
        )
        return json.dumps(payload, default=str, ensure_ascii=False, separators=(",", ":"))


def setup_logging(log_dir: str | None, level: str = "INFO", json_logs: bool = True) -> None:
    level_num = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level_num)
    root.handlers.clear()

    # Console (human); under systemd this lands in the journal
    console = logging.StreamHandler(stream=sys.stdout)
    console.setLevel(level_num)
    console.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(console)

    if not log_dir:
        return

    ensure_dir(log_dir)

    text_path = Path(log_dir) / "netactivity.log"
    text_handler = RotatingFileHandler(
        text_path, maxBytes=2_000_000, backupCount=3, encoding="utf-8"
    )
    text_handler.setLevel(level_num)
    text_handler.setFormatter(console.formatter)
    root.addHandler(text_handler)

    if json_logs:
        jsonl_path = Path(log_dir) / "netactivity.jsonl"
        json_handler = RotatingFileHandler(
            jsonl_path, maxBytes=5_000_000, backupCount=3, encoding="utf-8"
        )
        json_handler.setLevel(level_num)
        json_handler.setFormatter(JsonFormatter())
        root.addHandler(json_handler)


def env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def platform_summary() -> Mapping[str, Any]:
    return {
        "python": sys.version.split()[0],
        "platform": platform.platform(),
        "machine": platform.machine(),
    }
