"""
Configuration utilities for scratchformer.

Provides YAML configuration loading with validation.

Author: Oliver Perrin
Date: December 2025
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Union

import yaml


@dataclass
class Config:
    data: Dict[str, Any]

    def section(self, name: str) -> Dict[str, Any]:
        """Return a nested mapping, or an empty dict when the key is absent."""

        value = self.data.get(name, {})
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise ValueError(f"Configuration section '{name}' must be a mapping")
        return value


def load_yaml(path: Union[str, Path]) -> Config:
    with Path(path).open("r", encoding="utf-8") as handle:
        content = yaml.safe_load(handle)
    if not isinstance(content, dict):
        raise ValueError(f"YAML configuration '{path}' must contain a mapping at the root")
    return Config(data=content)
