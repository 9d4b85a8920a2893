from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from .table_source import DEFAULT_RETRIES, DEFAULT_TIMEOUT

CONFIG_ENV_VAR = "EXAMTRACK_CONFIG"
DEFAULT_SOURCE_URL = (
    "https://docs.google.com/spreadsheets/d/e/"
    "2PACX-1vSCpYHJ5EOeGyUg6sET_YJistgpIu867JnfTkKB4ybgnqt5FGvZErt0vzLu7dBNJMInZjsJIX71DnLN"
    "/pub?gid=0&single=true&output=csv"
)


@dataclass(frozen=True)
class TrackerConfig:
    source: str = DEFAULT_SOURCE_URL
    delimiter: str = ","
    timeout: float = DEFAULT_TIMEOUT
    retries: int = DEFAULT_RETRIES
    student_id: str = ""


def validate_config(config: TrackerConfig) -> TrackerConfig:
    if not config.source:
        raise RuntimeError("source must not be empty")
    if len(config.delimiter) != 1:
        raise RuntimeError(f"delimiter must be a single character, got {config.delimiter!r}")
    if config.timeout <= 0:
        raise RuntimeError(f"timeout must be > 0, got {config.timeout}")
    if config.retries < 1:
        raise RuntimeError(f"retries must be >= 1, got {config.retries}")
    return config


def config_from_mapping(data: dict[str, Any]) -> TrackerConfig:
    try:
        config = TrackerConfig(
            source=str(data.get("source") or DEFAULT_SOURCE_URL),
            delimiter=str(data.get("delimiter") or ","),
            timeout=float(data.get("timeout", DEFAULT_TIMEOUT)),
            retries=int(data.get("retries", DEFAULT_RETRIES)),
            student_id=str(data.get("student_id") or ""),
        )
    except (TypeError, ValueError) as error:
        raise RuntimeError(f"Invalid config value: {error}") from error
    return validate_config(config)


def load_tracker_config(path: Path) -> TrackerConfig:
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as error:
        raise RuntimeError(f"Config file not found: {path}") from error
    except tomllib.TOMLDecodeError as error:
        raise RuntimeError(f"Invalid TOML in {path}: {error}") from error
    return config_from_mapping(data)


def resolve_config_path(explicit: str | None) -> Path | None:
    if explicit:
        return Path(explicit)
    from_env = os.environ.get(CONFIG_ENV_VAR, "").strip()
    if from_env:
        return Path(from_env)
    return None


def apply_overrides(config: TrackerConfig, **overrides: Any) -> TrackerConfig:
    """Return *config* with every non-None override applied, then re-validated."""
    changes = {key: value for key, value in overrides.items() if value is not None}
    return validate_config(replace(config, **changes))
