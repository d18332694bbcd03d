"""YAML configuration loading for Nostalgia.

Used by [RelayPool.from_yaml()][nostalgia.core.pool.RelayPool.from_yaml],
[SessionConfig][nostalgia.core.session.SessionConfig] and
[BaseService.from_yaml()][nostalgia.core.base_service.BaseService.from_yaml].
Only ``yaml.safe_load`` is used, so YAML tags cannot instantiate Python
objects.

Examples:
    ```python
    from nostalgia.core.yaml import load_yaml

    config = load_yaml("config/nostalgia.yaml")
    ```
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from nostalgia.exceptions import ConfigurationError


def load_yaml(config_path: str | Path) -> dict[str, Any]:
    """Load a YAML mapping from *config_path*.

    Returns:
        The parsed mapping, or an empty dict for an empty file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigurationError: If the file is not valid YAML or its top level
            is not a mapping.

    Warning:
        The structure is not validated here. Callers pass the result to a
        Pydantic model such as
        [RelayPoolConfig][nostalgia.core.pool.RelayPoolConfig].
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Top level of {config_path} must be a mapping")
    return data
