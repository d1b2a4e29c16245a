"""SOL-X Configuration — Project-level solx.yml support.

Loads configuration from solx.yml (or solx.yaml, .solxrc.yml, .solxrc.yaml,
.solxrc.json) in the project root or any parent directory.

Example solx.yml:
    program_id: Fg6PaFpoGXkYsidMpWTK6W2BeZ7FEfcYkg476zPFsLnS
    output: programs/counter/src/lib.rs
    parallel: true
    workers: 4
    format: pretty
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import yaml

from solx.codegen import DEFAULT_PROGRAM_ID
from solx.errors import ConfigError


BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"

FORMATS = ("pretty", "json")


@dataclass
class SolxConfig:
    """Project-level SOL-X configuration."""
    program_id: str = DEFAULT_PROGRAM_ID
    # Output path for a single compiled program
    output: str = "src/lib.rs"
    parallel: bool = False
    workers: int = 0  # 0 = auto (cpu_count)
    format: str = "pretty"  # "pretty", "json"


# ---------------------------------------------------------------------------
# Config file names (in priority order)
# ---------------------------------------------------------------------------

_CONFIG_FILES = [
    "solx.yml",
    "solx.yaml",
    ".solxrc.yml",
    ".solxrc.yaml",
    ".solxrc.json",
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


def load_config(path: Optional[str] = None, start_dir: str = ".") -> SolxConfig:
    """Load configuration from a file.

    If no path is given, searches for a config file starting from start_dir.
    If no config file is found, returns defaults. Unreadable or malformed
    files raise ConfigError.
    """
    if path is None:
        path = find_config(start_dir)

    if path is None:
        return SolxConfig()

    try:
        with open(path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        raise ConfigError(f"{path}: cannot read config: {e}") from e

    if path.endswith(".json"):
        try:
            data = json.loads(content) if content.strip() else {}
        except json.JSONDecodeError as e:
            raise ConfigError(f"{path}: invalid JSON: {e}") from e
    else:
        try:
            data = yaml.safe_load(content) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"{path}: invalid YAML: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at the top level")

    return _dict_to_config(data, path)


def is_valid_program_id(value: str) -> bool:
    return 32 <= len(value) <= 44 and all(ch in BASE58_ALPHABET for ch in value)


def _dict_to_config(data: Dict[str, Any], path: str = "<config>") -> SolxConfig:
    """Convert a parsed dict to SolxConfig."""
    config = SolxConfig()

    if "program_id" in data:
        program_id = str(data["program_id"])
        if not is_valid_program_id(program_id):
            raise ConfigError(f"{path}: program_id '{program_id}' is not a base58 address")
        config.program_id = program_id
    if "output" in data:
        config.output = str(data["output"])
    if "parallel" in data:
        if not isinstance(data["parallel"], bool):
            raise ConfigError(f"{path}: parallel must be true or false")
        config.parallel = data["parallel"]
    if "workers" in data:
        workers = data["workers"]
        if isinstance(workers, bool) or not isinstance(workers, int) or workers < 0:
            raise ConfigError(f"{path}: workers must be a non-negative integer")
        config.workers = workers
    if "format" in data:
        fmt = str(data["format"])
        if fmt not in FORMATS:
            raise ConfigError(f"{path}: format must be one of {', '.join(FORMATS)}")
        config.format = fmt

    return config
