"""Configuration loader: reads optional YAML config and merges with defaults."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

CONFIG_PATH = Path("~/.config/agentscope/config.yaml")

DEFAULTS = {
    "log_dir": "~/.openclaw/agents/main/sessions",
    "days": 7,
    "interval": 10,
    "export_days": 30,
    "export_format": "json",
    "log_level": "WARNING",
}

EXPORT_FORMATS = ("json", "csv")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ScopeConfig:
    log_dir: Path
    days: int
    interval: float
    export_days: int
    export_format: str
    log_level: str


def load_config(config_path: Path | None = None) -> ScopeConfig:
    """Load config from ~/.config/agentscope/config.yaml, merged with defaults.

    Expand ~ in paths. If no config file exists, return defaults (don't error).
    """
    if config_path is None:
        config_path = CONFIG_PATH

    config_path = Path(config_path).expanduser()

    merged = dict(DEFAULTS)

    if config_path.is_file():
        with open(config_path) as f:
            user_config = yaml.safe_load(f)
        if isinstance(user_config, dict):
            for key in DEFAULTS:
                if key in user_config:
                    merged[key] = user_config[key]

    export_format = str(merged["export_format"]).lower()
    if export_format not in EXPORT_FORMATS:
        raise ValueError(
            f"export_format must be one of {', '.join(EXPORT_FORMATS)}, got {export_format!r}"
        )

    log_level = str(merged["log_level"]).upper()
    if log_level not in LOG_LEVELS:
        raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {log_level!r}")

    return ScopeConfig(
        log_dir=Path(merged["log_dir"]).expanduser(),
        days=int(merged["days"]),
        interval=float(merged["interval"]),
        export_days=int(merged["export_days"]),
        export_format=export_format,
        log_level=log_level,
    )
