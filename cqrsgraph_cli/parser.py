"""TypeScript syntax trees via Tree-sitter, plus source-file discovery.

Tree-sitter produces a *concrete syntax tree* that preserves every token and
tolerates broken or incomplete syntax, so a half-edited service file still
yields the classes and calls that do parse.
"""

from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from . import config
from .errors import ParserUnavailableError
from .models import SourceUnit

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Language <-> file-extension mapping
# ---------------------------------------------------------------------------
LANGUAGE_MAP: Dict[str, str] = {
    ".ts": "typescript",
    ".tsx": "tsx",
}

# language -> (grammar module, function returning the Language capsule)
_GRAMMAR_MODULES: Dict[str, tuple] = {
    "typescript": ("tree_sitter_typescript", "language_typescript"),
    "tsx": ("tree_sitter_typescript", "language_tsx"),
}


class TypeScriptParser:
    """Thin wrapper around per-language Tree-sitter parsers.

    Instances are cheap but not thread-safe; create one per worker.
    """

    def __init__(self, languages: Optional[List[str]] = None) -> None:
        self._parsers: Dict[str, Any] = {}
        self._requested_languages = languages or ["typescript"]
        self._init_parsers()

    def _init_parsers(self) -> None:
        from tree_sitter import Language, Parser as TSParser

        for lang in self._requested_languages:
            spec = _GRAMMAR_MODULES.get(lang)
            if spec is None:
                logger.warning("No grammar module mapped for language '%s'", lang)
                continue
            mod_name, func_name = spec
            try:
                mod = importlib.import_module(mod_name)
                ts_lang = Language(getattr(mod, func_name)())
                self._parsers[lang] = TSParser(ts_lang)
                logger.debug("Loaded tree-sitter parser for %s", lang)
            except ImportError:
                logger.warning(
                    "Grammar package '%s' not installed for language '%s'. "
                    "Install with: pip install %s",
                    mod_name, lang, mod_name.replace("_", "-"),
                )
            except Exception as exc:
                logger.warning("Could not load tree-sitter grammar for %s: %s", lang, exc)

    def supports_language(self, language: str) -> bool:
        return language in self._parsers

    def supports(self, path: str) -> bool:
        lang = LANGUAGE_MAP.get(Path(path).suffix)
        return lang is not None and lang in self._parsers

    def parse(self, source: str, language: str = "typescript") -> Any:
        """Parse *source* and return the Tree-sitter tree."""
        parser = self._parsers.get(language)
        if parser is None:
            raise ParserUnavailableError(
                f"No tree-sitter grammar loaded for '{language}'. "
                "Install with: pip install tree-sitter-typescript"
            )
        return parser.parse(source.encode("utf-8"))

    def parse_unit(self, unit: SourceUnit) -> Any:
        language = LANGUAGE_MAP.get(Path(unit.path).suffix, "typescript")
        return self.parse(unit.text, language)


# ===================================================================
# Source discovery
# ===================================================================

def is_typescript_file(file_name: str) -> bool:
    """Return True for ``.ts`` sources that are not declarations, tests or fixtures."""
    if not file_name.endswith(config.SOURCE_SUFFIX):
        return False
    return not any(file_name.endswith(suffix) for suffix in config.EXCLUDED_SUFFIXES)


def find_typescript_files(root: Path) -> List[Path]:
    """Recursively collect analyzable TypeScript files under *root*, sorted."""
    files: List[Path] = []
    for file_path in sorted(root.rglob(f"*{config.SOURCE_SUFFIX}")):
        rel_parts = file_path.relative_to(root).parts
        if any(part in config.SKIP_DIRS for part in rel_parts[:-1]):
            continue
        if file_path.is_file() and is_typescript_file(file_path.name):
            files.append(file_path)
    return files


def load_source_units(paths: Iterable[Path]) -> List[SourceUnit]:
    """Read each path into a :class:`SourceUnit`; unreadable files are skipped."""
    units: List[SourceUnit] = []
    for path in paths:
        try:
            text = path.read_text(encoding="utf-8", errors="ignore")
        except OSError as exc:
            logger.warning("Failed to read %s: %s", path, exc)
            continue
        units.append(SourceUnit(path=str(path), text=text))
    return units
