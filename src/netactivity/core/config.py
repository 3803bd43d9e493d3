from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from netactivity.core.exceptions import ConfigError
from netactivity.core.utils import env_flag


class SamplingConfig(BaseModel):
    interface: str = "wlan0"
    source: Literal["procfs", "psutil"] = "procfs"
    stats_path: str = "/proc/net/dev"

    @field_validator("interface")
    @classmethod
    def _interface_name(cls, v: str) -> str:
        v = v.strip()
        if not v or "/" in v or ":" in v:
            raise ValueError(f"invalid interface name: {v!r}")
        return v


class LoopConfig(BaseModel):
    interval_seconds: float = 0.1
    backoff_seconds: list[float] = Field(default_factory=lambda: [0.1, 0.5, 1, 2, 5])
    max_permission_failures: int = 50
    status_interval_seconds: float = 60.0
    error_log_throttle_seconds: float = 30.0

    @field_validator("interval_seconds")
    @classmethod
    def _interval_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("interval_seconds must be > 0")
        return v

    @field_validator("max_permission_failures")
    @classmethod
    def _max_failures_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_permission_failures must be >= 1")
        return v


class PublishConfig(BaseModel):
    path: str = "/dev/shm/net_activity"
    file_mode: int = 0o644
    fsync: bool = False
    cleanup_on_exit: bool = False

    @field_validator("file_mode", mode="before")
    @classmethod
    def _octal_mode(cls, v: Any) -> int:
        # Integers are read as the octal digits written: 644 and 444 mean 0o644 and 0o444
        if isinstance(v, bool):
            raise ValueError("file_mode must be an octal mode")
        if isinstance(v, int):
            v = str(v)
        if not isinstance(v, str):
            raise ValueError("file_mode must be an octal mode")
        try:
            mode = int(v, 8)
        except ValueError as exc:
            raise ValueError(f"file_mode must be octal: {v!r}") from exc
        if not 0 <= mode <= 0o777:
            raise ValueError("file_mode must be within 0000..0777")
        return mode


class LinkConfig(BaseModel):
    path: str | None = None


class ConsumerConfig(BaseModel):
    threshold: int = 300
    poll_interval_seconds: float = 0.1

    @field_validator("threshold")
    @classmethod
    def _threshold_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("threshold must be >= 0")
        return v

    @field_validator("poll_interval_seconds")
    @classmethod
    def _poll_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("poll_interval_seconds must be > 0")
        return v


class LoggingConfig(BaseModel):
    level: str = "INFO"
    log_dir: str | None = None
    json_logs: bool = True


class AppConfig(BaseModel):
    sampling: SamplingConfig = Field(default_factory=SamplingConfig)
    loop: LoopConfig = Field(default_factory=LoopConfig)
    publish: PublishConfig = Field(default_factory=PublishConfig)
    link: LinkConfig = Field(default_factory=LinkConfig)
    consumer: ConsumerConfig = Field(default_factory=ConsumerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


_YAML_OCTAL = re.compile(r"[-+]?0[0-7_]+")

_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "NETACTIVITY_INTERFACE": ("sampling", "interface"),
    "NETACTIVITY_PUBLISH_PATH": ("publish", "path"),
    "NETACTIVITY_LOG_LEVEL": ("logging", "level"),
}


class _ConfigLoader(yaml.SafeLoader):
    pass


def _construct_int(loader: yaml.SafeLoader, node: yaml.ScalarNode) -> Any:
    text = loader.construct_scalar(node)
    # Keep YAML 1.1 octal literals (0644) as text so file_mode sees the digits
    if _YAML_OCTAL.fullmatch(text):
        return text.replace("_", "")
    return yaml.SafeLoader.construct_yaml_int(loader, node)


_ConfigLoader.add_constructor("tag:yaml.org,2002:int", _construct_int)


def load_yaml(path: Path) -> dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.load(f, Loader=_ConfigLoader) or {}
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed reading config yaml: {path}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config root must be a mapping: {path}")
    return data


def _env_dict() -> dict[str, Any]:
    out: dict[str, Any] = {}
    for var, (section, key) in _ENV_OVERRIDES.items():
        raw = os.getenv(var)
        if raw:
            out.setdefault(section, {})[key] = raw
    if os.getenv("NETACTIVITY_FSYNC") is not None:
        out.setdefault("publish", {})["fsync"] = env_flag("NETACTIVITY_FSYNC")
    return out


def load_config(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> AppConfig:
    """
    Precedence, lowest first: model defaults, YAML file, environment, CLI overrides.
    """
    load_dotenv(override=False)
    raw: dict[str, Any] = load_yaml(Path(config_path)) if config_path else {}
    raw = _deep_merge_dicts(raw, _env_dict())
    if overrides:
        raw = _deep_merge_dicts(raw, overrides)

    try:
        return AppConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc


def _deep_merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = dict(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = _deep_merge_dicts(out[k], v)
        else:
            out[k] = v
    return out
