"""Core data models shared by extraction, analysis and rendering layers."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

UNKNOWN = "Unknown"

BUS_TYPES = ("EventBus", "QueryBus", "CommandBus")
HANDLER_TYPES = ("QueryHandler", "CommandHandler", "EventsHandler")


class IssueSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Position:
    """One-based line / character pair, relative to its source unit."""

    line: int
    character: int


@dataclass(frozen=True)
class SourceUnit:
    path: str
    text: str


@dataclass(frozen=True)
class BusUsage:
    """A class sending a message of ``event_type`` through a bus."""

    source_file: str
    class_name: str
    method_name: Optional[str]
    bus_type: str
    event_type: str
    position: Position

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class HandlerDeclaration:
    """A class declaring itself a handler of ``event_type``."""

    source_file: str
    class_name: str
    handler_type: str
    event_type: str
    position: Position

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class AnalysisResult:
    bus_usages: List[BusUsage] = field(default_factory=list)
    handler_declarations: List[HandlerDeclaration] = field(default_factory=list)

    @property
    def total_edges(self) -> int:
        return len(self.bus_usages) + len(self.handler_declarations)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bus_usages": [u.to_dict() for u in self.bus_usages],
            "handler_declarations": [h.to_dict() for h in self.handler_declarations],
        }


@dataclass(frozen=True)
class ArchitectureIssue:
    type: str
    severity: IssueSeverity
    description: str
    elements: List[str]
    context: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "type": self.type,
            "severity": self.severity.value,
            "description": self.description,
            "elements": list(self.elements),
        }
        if self.context is not None:
            data["context"] = self.context
        return data


@dataclass(frozen=True)
class ArchitectureMetrics:
    total_classes: int = 0
    total_events: int = 0
    event_producers: int = 0
    event_consumers: int = 0
    dual_role_classes: int = 0
    orphan_events: int = 0
    orphan_handlers: int = 0
    average_connections: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ArchitectureAnalysisResult:
    issues: List[ArchitectureIssue]
    metrics: ArchitectureMetrics

    def issues_by_severity(self, severity: IssueSeverity) -> List[ArchitectureIssue]:
        return [i for i in self.issues if i.severity == severity]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "issues": [i.to_dict() for i in self.issues],
            "metrics": self.metrics.to_dict(),
        }
