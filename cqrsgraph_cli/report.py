"""Markdown and JSON renderings of an architecture analysis."""

from __future__ import annotations

import json
from typing import List

from .models import AnalysisResult, ArchitectureAnalysisResult, ArchitectureIssue, IssueSeverity

RECOMMENDATIONS = [
    "**Single Responsibility Principle**: Classes should either produce events or handle them, not both.",
    "**Reduce Coupling**: Classes with many connections should be refactored into smaller, more focused components.",
    "**Complete Implementation**: Ensure all events have appropriate handlers.",
    "**Remove Dead Code**: Remove handlers for events that are not produced.",
    "**Consistent Naming**: Use consistent naming conventions for events, commands, and queries.",
]

_SEVERITY_SECTIONS = (
    (IssueSeverity.ERROR, "Errors"),
    (IssueSeverity.WARNING, "Warnings"),
    (IssueSeverity.INFO, "Information"),
)


def _issue_lines(issue: ArchitectureIssue) -> List[str]:
    lines = [f"#### {issue.type}", "", issue.description, "", "**Affected Elements:**", ""]
    lines.extend(f"- {element}" for element in issue.elements)
    lines.append("")
    return lines


def generate_markdown_report(analysis: ArchitectureAnalysisResult) -> str:
    metrics = analysis.metrics
    lines = [
        "# CQRS Architecture Analysis Report",
        "",
        "## Architecture Metrics",
        "",
        "| Metric | Value |",
        "| ------ | ----- |",
        f"| Total Classes | {metrics.total_classes} |",
        f"| Total Events/Commands/Queries | {metrics.total_events} |",
        f"| Event Producers | {metrics.event_producers} |",
        f"| Event Consumers | {metrics.event_consumers} |",
        f"| Classes with Dual Roles | {metrics.dual_role_classes} |",
        f"| Unhandled Events | {metrics.orphan_events} |",
        f"| Orphan Handlers | {metrics.orphan_handlers} |",
        f"| Average Connections per Class | {metrics.average_connections:.2f} |",
        "",
        "## Issues",
        "",
    ]

    if not analysis.issues:
        lines.extend(["No issues detected in the architecture.", ""])
    else:
        for severity, heading in _SEVERITY_SECTIONS:
            grouped = analysis.issues_by_severity(severity)
            if not grouped:
                continue
            lines.extend([f"### {heading}", ""])
            for issue in grouped:
                lines.extend(_issue_lines(issue))

    lines.extend(["## Recommendations", ""])
    lines.extend(f"{i}. {text}" for i, text in enumerate(RECOMMENDATIONS, 1))
    lines.append("")
    return "\n".join(lines)


def to_json(result: AnalysisResult, analysis: ArchitectureAnalysisResult) -> str:
    """Serialize edges, metrics and issues as indented JSON."""
    payload = {
        "edges": result.to_dict(),
        **analysis.to_dict(),
    }
    return json.dumps(payload, indent=2)
