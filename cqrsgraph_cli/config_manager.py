"""Configuration manager for CQRS Graph using TOML files."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import toml

from . import config
from .errors import ConfigError

SECTION = "analyzer"


@dataclass
class AnalyzerOptions:
    src_dir: str = config.DEFAULT_SRC_DIR
    out_dir: str = config.DEFAULT_OUT_DIR
    # 0 means no limit.
    max_edges: int = 0
    formats: List[str] = field(default_factory=lambda: list(config.DEFAULT_FORMATS))
    report: bool = True
    json: bool = False
    coupling_threshold: int = config.HIGH_COUPLING_THRESHOLD
    workers: int = 1

    def validate(self) -> "AnalyzerOptions":
        for name in ("src_dir", "out_dir"):
            _expect(name, getattr(self, name), str, "a string")
        for name in ("max_edges", "coupling_threshold", "workers"):
            value = getattr(self, name)
            if isinstance(value, bool):
                raise ConfigError(f"{name} must be an integer, got {value!r}")
            _expect(name, value, int, "an integer")
        for name in ("report", "json"):
            _expect(name, getattr(self, name), bool, "true or false")
        if not isinstance(self.formats, list) or not all(isinstance(f, str) for f in self.formats):
            raise ConfigError(f"formats must be a list of strings, got {self.formats!r}")

        if self.max_edges < 0:
            raise ConfigError(f"max_edges must be 0 or positive, got {self.max_edges}")
        if self.coupling_threshold < 1:
            raise ConfigError(
                f"coupling_threshold must be positive, got {self.coupling_threshold}"
            )
        if self.workers < 1:
            raise ConfigError(f"workers must be at least 1, got {self.workers}")
        return self


def _expect(name: str, value: Any, kind: type, label: str) -> None:
    if not isinstance(value, kind):
        raise ConfigError(f"{name} must be {label}, got {value!r}")

def load_full_config(path: Path) -> Dict[str, Any]:
    """Load the entire TOML config (all sections).

    A missing file yields an empty dict; a malformed one raises ``ConfigError``.
    """
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            return toml.load(f)
    except toml.TomlDecodeError as exc:
        raise ConfigError(f"Invalid config file {path}: {exc}") from exc


def load_options(path: Optional[Path] = None, **overrides: Any) -> AnalyzerOptions:
    """Build analyzer options from defaults, the ``[analyzer]`` section, and overrides.

    Args:
        path: Config file to read. Defaults to :func:`config.default_config_path`.
        **overrides: Values taking precedence over the file. ``None`` values
            are ignored so unset CLI options fall through.

    Returns:
        Validated :class:`AnalyzerOptions`.
    """
    path = path or config.default_config_path()
    section = load_full_config(path).get(SECTION, {})
    if not isinstance(section, dict):
        raise ConfigError(f"[{SECTION}] in {path} must be a table")

    known = set(AnalyzerOptions.__dataclass_fields__)
    unknown = set(section) - known
    if unknown:
        raise ConfigError(f"Unknown [{SECTION}] keys in {path}: {', '.join(sorted(unknown))}")

    values: Dict[str, Any] = dict(section)
    values.update({k: v for k, v in overrides.items() if v is not None})

    formats = values.get("formats")
    if isinstance(formats, str):
        values["formats"] = parse_formats(formats)

    try:
        options = AnalyzerOptions(**values)
    except TypeError as exc:
        raise ConfigError(str(exc)) from exc
    return options.validate()


def save_options(options: AnalyzerOptions, path: Optional[Path] = None) -> Path:
    """Write options to the ``[analyzer]`` section, preserving other sections."""
    path = path or config.default_config_path()
    full = load_full_config(path)
    full[SECTION] = asdict(options)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        toml.dump(full, f)
    return path


def parse_formats(raw: str) -> List[str]:
    """Split a comma-separated format list, dropping blanks."""
    return [part.strip().lower() for part in raw.split(",") if part.strip()]
