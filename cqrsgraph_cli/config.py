"""Defaults and tunables for CQRS architecture analysis."""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILE_NAME = ".cqrsgraph.toml"
# Explicit config file location; otherwise CONFIG_FILE_NAME in the working directory.
CONFIG_FILE_ENV = "CQRSGRAPH_CONFIG"

DEFAULT_SRC_DIR = "src"
DEFAULT_OUT_DIR = "cqrs-analysis"
DEFAULT_FORMATS = ("mermaid",)

REPORT_FILE_NAME = "cqrs-analysis-report.md"
JSON_FILE_NAME = "cqrs-analysis.json"
DIAGRAM_BASENAME = "cqrs-diagram"
DIAGRAM_TITLE = "CQRS Architecture Diagram"

# A class is flagged as highly coupled above this many bus/handler edges.
HIGH_COUPLING_THRESHOLD = 5
# Share of the edge budget reserved for bus usages before handlers get the rest.
BUS_USAGE_SHARE = 0.5

SOURCE_SUFFIX = ".ts"
EXCLUDED_SUFFIXES = (
    ".d.ts",
    ".spec.ts",
    ".test.ts",
    ".mock.ts",
    ".fixture.ts",
    ".e2e-spec.ts",
)

SKIP_DIRS = {
    "node_modules", ".git", "dist", "build", "coverage",
    ".next", ".nx", ".turbo", ".cache", "tmp",
}


def default_config_path() -> Path:
    """Return the config file path honouring ``CQRSGRAPH_CONFIG``."""
    override = os.environ.get(CONFIG_FILE_ENV)
    if override:
        return Path(override).expanduser()
    return Path.cwd() / CONFIG_FILE_NAME
