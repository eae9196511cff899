"""Project-level configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

CONFIG_FILENAME = "sheetcalc.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "default_rows": 30,
    "default_cols": 12,
    "logging_enabled": True,
    "logging_fsync": False,
    "logging_tail_bytes": 2_097_152,  # 2 MB
}


def load_project_config(project_dir: Path) -> dict[str, Any]:
    """Load project configuration from ``sheetcalc.yaml``, with defaults.

    Unknown keys are kept as-is so callers can carry their own settings.

    Args:
        project_dir: Root of the sheetcalc project.

    Returns:
        Merged configuration dict.

    Raises:
        ValueError: If the file is not valid YAML or not a mapping.
    """
    config = dict(DEFAULT_CONFIG)
    config_path = Path(project_dir) / CONFIG_FILENAME
    if config_path.exists():
        try:
            user_config = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid config file {config_path}: {exc}") from exc
        if not isinstance(user_config, dict):
            raise ValueError(
                f"Invalid config file {config_path}: expected a mapping, "
                f"got {type(user_config).__name__}"
            )
        config.update(user_config)
    return config
