"""Configuration loading from YAML files."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from ..schemas.config import AppConfig, load_config


def read_config_file(path: str | Path) -> AppConfig:
    """Load and validate a YAML configuration file.

    An empty file yields the defaults.
    """
    with Path(path).open("r", encoding="utf-8") as handle:
        raw: Any = yaml.safe_load(handle)
    return load_config(raw if raw is not None else {})


__all__ = ["AppConfig", "read_config_file"]
