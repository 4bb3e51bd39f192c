"""Loading of the engine's JSON configuration."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Union


def _as_text(key: str, value: object) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    raise ValueError(f"config value for {key!r} is not a scalar")


def load_engine_config(path: Union[str, Path] = Path("config/config.json")) -> dict[str, str]:
    """Read a flat JSON object and return its values as strings."""
    with open(path, encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, dict):
        raise ValueError("engine config must be a JSON object")
    return {key: _as_text(key, value) for key, value in data.items()}