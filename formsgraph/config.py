"""Configuration paths and analysis settings for FormsGraph."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(os.environ.get("FORMSGRAPH_HOME", str(Path.home() / ".formsgraph"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"
SUPPORTED_EXTENSIONS = {".pld", ".plb", ".pls", ".sql", ".pkb", ".pkg"}
FORM_EXTENSIONS = {".xml"}

# Analysis settings, loaded from ~/.formsgraph/config.toml (set via `formsgraph config set`)
from .config_manager import load_analysis_config  # noqa: E402

_analysis_config = load_analysis_config(CONFIG_FILE)

MAX_HIERARCHY_DEPTH = int(_analysis_config["max_hierarchy_depth"])
PRIORITY_LIMIT = int(_analysis_config["priority_limit"])
EFFORT_OVERHEAD = float(_analysis_config["effort_overhead"])
EXCERPT_LIMIT = int(_analysis_config["excerpt_limit"])
