"""Project directory configuration (``cellcalc.yaml``)."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from cellcalc.formulas.arguments import DEFAULT_MAX_DEPTH

CONFIG_FILENAME = "cellcalc.yaml"

DEFAULT_CONFIG = {
    "max_nesting_depth": DEFAULT_MAX_DEPTH,
    "logging_enabled": True,
    "logging_fsync": False,
    "logging_tail_bytes": 2_097_152,  # 2 MB
    "csv_delimiter": ",",
}


def load_project_config(project_dir: Path) -> dict[str, Any]:
    """Load project configuration from ``cellcalc.yaml``, with defaults.

    Args:
        project_dir: Directory that may contain ``cellcalc.yaml``.

    Returns:
        Merged configuration dict.  Unknown keys are kept as given.

    Raises:
        ValueError: If the file does not hold a YAML mapping.
    """
    config = dict(DEFAULT_CONFIG)
    config_path = Path(project_dir) / CONFIG_FILENAME
    if config_path.exists():
        user_config = yaml.safe_load(config_path.read_text()) or {}
        if not isinstance(user_config, dict):
            raise ValueError(f"{config_path} must contain a mapping, got {type(user_config).__name__}")
        config.update(user_config)
    return config
