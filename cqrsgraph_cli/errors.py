"""Exception types raised for configuration and programming mistakes.

Data conditions (unparseable files, odd node shapes) are never raised; they are
logged and skipped where they occur.
"""

from __future__ import annotations


class CQRSGraphError(Exception):
    """Base class for all errors raised by cqrsgraph_cli."""


class ConfigError(CQRSGraphError):
    """Invalid analyzer configuration (file or command-line values)."""


class ParserUnavailableError(CQRSGraphError):
    """No tree-sitter grammar could be loaded for the requested language."""


class UnsupportedDiagramError(CQRSGraphError):
    """A diagram format was requested that no generator implements."""

    def __init__(self, kind: str) -> None:
        super().__init__(f"Unsupported diagram generator type: {kind}")
        self.kind = kind
