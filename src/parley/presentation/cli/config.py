"""Per-user CLI display options."""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Dict, Union

ConfigValue = Union[str, int]

DEFAULT_CONFIG: Dict[str, ConfigValue] = {"text_display_mode": "instant", "line_width": 72}
_MIN_LINE_WIDTH = 40
_MAX_LINE_WIDTH = 160


def get_user_data_dir() -> Path:
    """Return the per-user data directory."""
    if os.name == "nt":
        base = os.environ.get("APPDATA")
        if base:
            return Path(base) / "Parley"
        return Path.home() / "Parley"
    return Path.home() / ".config" / "parley"


def get_default_config_path() -> Path:
    return get_user_data_dir() / "config.json"


def normalize_config(raw: Dict[str, object]) -> Dict[str, ConfigValue]:
    """Default unknown modes and clamp the wrap width."""
    mode = "step" if raw.get("text_display_mode") == "step" else "instant"
    width = raw.get("line_width")
    if isinstance(width, bool) or not isinstance(width, int):
        width = DEFAULT_CONFIG["line_width"]
    width = max(_MIN_LINE_WIDTH, min(_MAX_LINE_WIDTH, int(width)))
    return {"text_display_mode": mode, "line_width": width}


def load_config(path: Path | None = None) -> Dict[str, ConfigValue]:
    """Load options from disk, falling back to defaults for anything unreadable."""
    config_path = path or get_default_config_path()
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return dict(DEFAULT_CONFIG)
    if not isinstance(raw, dict):
        return dict(DEFAULT_CONFIG)
    return normalize_config(raw)


def save_config(config: Dict[str, ConfigValue], path: Path | None = None) -> None:
    config_path = path or get_default_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(normalize_config(dict(config)), indent=2, sort_keys=True), encoding="utf-8")
