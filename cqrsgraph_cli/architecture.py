"""Architecture diagnostics over the aggregated bus/handler edge set.

Class identity is the bare class name: two ``OrderService`` classes in
different files count as one node.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from . import config
from .models import (
    AnalysisResult,
    ArchitectureAnalysisResult,
    ArchitectureIssue,
    ArchitectureMetrics,
    IssueSeverity,
)


@dataclass
class ArchitectureGraph:
    """Derived indices; list-valued "sets" keep first-seen order."""

    bus_users: List[str] = field(default_factory=list)
    handler_classes: List[str] = field(default_factory=list)
    dual_role_classes: List[str] = field(default_factory=list)
    coupling: Dict[str, int] = field(default_factory=dict)
    high_coupling: List[Dict[str, object]] = field(default_factory=list)
    event_emitters: Dict[str, List[str]] = field(default_factory=dict)
    event_handlers: Dict[str, List[str]] = field(default_factory=dict)
    unhandled_events: List[str] = field(default_factory=list)
    orphan_handlers: List[str] = field(default_factory=list)
    event_types: List[str] = field(default_factory=list)
    average_connections: float = 0.0


def _unique(values) -> List[str]:
    return list(dict.fromkeys(values))


def build_graph(
    result: AnalysisResult,
    coupling_threshold: int = config.HIGH_COUPLING_THRESHOLD,
) -> ArchitectureGraph:
    graph = ArchitectureGraph()

    graph.bus_users = _unique(u.class_name for u in result.bus_usages)
    graph.handler_classes = _unique(h.class_name for h in result.handler_declarations)
    handler_set = set(graph.handler_classes)
    graph.dual_role_classes = [c for c in graph.bus_users if c in handler_set]

    for usage in result.bus_usages:
        graph.coupling[usage.class_name] = graph.coupling.get(usage.class_name, 0) + 1
    for handler in result.handler_declarations:
        graph.coupling[handler.class_name] = graph.coupling.get(handler.class_name, 0) + 1

    graph.high_coupling = [
        {"class_name": name, "connections": count}
        for name, count in graph.coupling.items()
        if count > coupling_threshold
    ]

    for usage in result.bus_usages:
        graph.event_emitters.setdefault(usage.event_type, []).append(usage.class_name)
    for handler in result.handler_declarations:
        graph.event_handlers.setdefault(handler.event_type, []).append(handler.class_name)

    graph.unhandled_events = [
        event for event in graph.event_emitters if not graph.event_handlers.get(event)
    ]
    graph.orphan_handlers = [
        event for event in graph.event_handlers if not graph.event_emitters.get(event)
    ]

    graph.event_types = _unique(
        [u.event_type for u in result.bus_usages]
        + [h.event_type for h in result.handler_declarations]
    )

    if graph.coupling:
        graph.average_connections = sum(graph.coupling.values()) / len(graph.coupling)
    return graph


def analyze_architecture(
    result: AnalysisResult,
    coupling_threshold: int = config.HIGH_COUPLING_THRESHOLD,
) -> ArchitectureAnalysisResult:
    """Compute metrics and flag CQRS anti-patterns for *result*.

    Issues are emitted in a fixed order (single-responsibility, coupling,
    unhandled events, orphan handlers), each only when it has elements.
    """
    graph = build_graph(result, coupling_threshold)
    issues: List[ArchitectureIssue] = []

    if graph.dual_role_classes:
        issues.append(ArchitectureIssue(
            type="SingleResponsibilityViolation",
            severity=IssueSeverity.WARNING,
            description=(
                "Classes that both produce and consume events may violate "
                "the Single Responsibility Principle"
            ),
            elements=list(graph.dual_role_classes),
        ))

    if graph.high_coupling:
        issues.append(ArchitectureIssue(
            type="HighCoupling",
            severity=IssueSeverity.WARNING,
            description="Classes with too many connections may be difficult to maintain and test",
            elements=[str(entry["class_name"]) for entry in graph.high_coupling],
            context=[dict(entry) for entry in graph.high_coupling],
        ))

    if graph.unhandled_events:
        issues.append(ArchitectureIssue(
            type="UnhandledEvents",
            severity=IssueSeverity.ERROR,
            description=(
                "Events that are produced but not handled may indicate "
                "incomplete implementation"
            ),
            elements=list(graph.unhandled_events),
            context=[
                {"event_type": event, "producers": list(graph.event_emitters.get(event, []))}
                for event in graph.unhandled_events
            ],
        ))

    if graph.orphan_handlers:
        issues.append(ArchitectureIssue(
            type="OrphanHandlers",
            severity=IssueSeverity.WARNING,
            description="Handlers for events that are not produced may be dead code",
            elements=list(graph.orphan_handlers),
            context=[
                {"event_type": event, "handlers": list(graph.event_handlers.get(event, []))}
                for event in graph.orphan_handlers
            ],
        ))

    metrics = ArchitectureMetrics(
        total_classes=len(graph.coupling),
        total_events=len(graph.event_types),
        event_producers=len(graph.bus_users),
        event_consumers=len(graph.handler_classes),
        dual_role_classes=len(graph.dual_role_classes),
        orphan_events=len(graph.unhandled_events),
        orphan_handlers=len(graph.orphan_handlers),
        average_connections=graph.average_connections,
    )
    return ArchitectureAnalysisResult(issues=issues, metrics=metrics)
