"""Nova Configuration — compiler options and project-level .novarc.json support.

Options can be passed directly as a CompilerOptions, or loaded from the
nearest .novarc.json (or nova.config.json) found by walking up from a
start directory.

Example .novarc.json:
    {
      "module_name": "app",
      "strict": true,
      "legacy_wide_loads": false,
      "opt_level": 2
    }
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

from nova.errors import ConfigError


@dataclass
class CompilerOptions:
    """Options for one compilation."""
    # Name of the generated module
    module_name: str = "nova"
    # Reject statement kinds without a generation rule instead of skipping them
    strict: bool = True
    # Load every variable as a 64-bit value regardless of its slot width
    legacy_wide_loads: bool = False
    # Target machine optimization level, 0-3
    opt_level: int = 2
    # File name used in diagnostics
    filename: str = "<stdin>"


# ---------------------------------------------------------------------------
# Config file names (in priority order)
# ---------------------------------------------------------------------------

_CONFIG_FILES = [
    ".novarc.json",
    "nova.config.json",
]


def find_config(start_dir: str = ".") -> Optional[str]:
    """Find the nearest config file by walking up from start_dir."""
    current = os.path.abspath(start_dir)
    while True:
        for name in _CONFIG_FILES:
            path = os.path.join(current, name)
            if os.path.isfile(path):
                return path
        parent = os.path.dirname(current)
        if parent == current:
            break
        current = parent
    return None


def load_config(path: Optional[str] = None, start_dir: str = ".") -> CompilerOptions:
    """Load compiler options from a file.

    If no path is given, searches for a config file starting from start_dir.
    If no config file is found, returns defaults.
    """
    if path is None:
        path = find_config(start_dir)

    if path is None:
        return CompilerOptions()

    try:
        with open(path, "r") as f:
            data = json.load(f)
    except (IOError, OSError) as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in config file {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    return options_from_dict(data)


def options_from_dict(data: Dict[str, Any]) -> CompilerOptions:
    """Convert a parsed dict to CompilerOptions. Unknown keys are ignored."""
    options = CompilerOptions()
    known = {f.name for f in fields(CompilerOptions)}

    for key, value in data.items():
        if key not in known:
            continue
        if key in ("strict", "legacy_wide_loads"):
            if not isinstance(value, bool):
                raise ConfigError(f"'{key}' must be a boolean, got {value!r}")
        elif key == "opt_level":
            if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 3:
                raise ConfigError(f"'opt_level' must be an integer from 0 to 3, got {value!r}")
        elif not isinstance(value, str) or not value:
            raise ConfigError(f"'{key}' must be a non-empty string, got {value!r}")
        setattr(options, key, value)

    return options
