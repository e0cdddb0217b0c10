"""Diagram exports of the bus/handler graph: Mermaid (with HTML/SVG) and DOT."""

from __future__ import annotations

import json
import logging
import re
import shutil
import subprocess
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Tuple

from . import config
from .aggregator import apply_edge_budget
from .errors import UnsupportedDiagramError
from .models import AnalysisResult

logger = logging.getLogger(__name__)

MERMAID_CDN = "https://cdn.jsdelivr.net/npm/mermaid@10.3.0/dist/mermaid.min.js"

STYLE_DEFS = {
    "producer": ("#d4e6f1", "#2874a6"),
    "consumer": ("#d5f5e3", "#1e8449"),
    "both": ("#e8daef", "#8e44ad"),
    "event": ("#fcf3cf", "#d4ac0d"),
}


@dataclass
class DiagramOptions:
    output_path: Path
    max_edges: int = 0
    include_legend: bool = True
    title: str = config.DIAGRAM_TITLE
    generate_html: bool = True
    generate_svg: bool = True
    theme: str = "default"


# ===================================================================
# Shared graph layout
# ===================================================================

@dataclass
class _Layout:
    class_nodes: Dict[str, str]
    class_roles: Dict[str, str]
    event_nodes: Dict[str, str]
    edges: List[Tuple[str, str, str]]


def _layout(result: AnalysisResult) -> _Layout:
    """Assign stable node ids and roles; edges run class -> event -> handler."""
    bus_users = list(dict.fromkeys(u.class_name for u in result.bus_usages))
    handler_classes = list(dict.fromkeys(h.class_name for h in result.handler_declarations))

    class_nodes: Dict[str, str] = {}
    class_roles: Dict[str, str] = {}
    for name in dict.fromkeys(bus_users + handler_classes):
        class_nodes[name] = f"class_{len(class_nodes) + 1}"
        produces, consumes = name in bus_users, name in handler_classes
        class_roles[name] = "both" if produces and consumes else ("producer" if produces else "consumer")

    event_nodes: Dict[str, str] = {}
    for event in dict.fromkeys(
        [u.event_type for u in result.bus_usages]
        + [h.event_type for h in result.handler_declarations]
    ):
        event_nodes[event] = f"event_{len(event_nodes) + 1}"

    edges = [
        (class_nodes[u.class_name], event_nodes[u.event_type], u.bus_type)
        for u in result.bus_usages
    ]
    edges += [
        (event_nodes[h.event_type], class_nodes[h.class_name], h.handler_type)
        for h in result.handler_declarations
    ]
    return _Layout(class_nodes, class_roles, event_nodes, edges)


def _strip_quotes(text: str) -> str:
    return re.sub(r"['\"]", "", text)


def _esc(text: str) -> str:
    return text.replace('"', '\\"')


# ===================================================================
# Generators
# ===================================================================

class DiagramGenerator(ABC):
    """Base class: render an :class:`AnalysisResult` to a file."""

    name = ""
    description = ""
    extensions: Tuple[str, ...] = ()

    @abstractmethod
    def generate(self, result: AnalysisResult, options: DiagramOptions) -> Path:
        """Write the diagram and return the primary output path."""
        pass

    @staticmethod
    def _limit(result: AnalysisResult, options: DiagramOptions) -> AnalysisResult:
        return apply_edge_budget(result, options.max_edges)


class MermaidGenerator(DiagramGenerator):
    name = "Mermaid"
    description = "Generates diagrams using Mermaid.js syntax"
    extensions = (".mmd", ".html", ".svg")

    def generate(self, result: AnalysisResult, options: DiagramOptions) -> Path:
        result = self._limit(result, options)
        mermaid_path = options.output_path
        mermaid_path.parent.mkdir(parents=True, exist_ok=True)

        content = self.render(result, title=options.title, include_legend=options.include_legend)
        mermaid_path.write_text(content, encoding="utf-8")

        if options.generate_html:
            html_path = mermaid_path.with_suffix(".html")
            html_path.write_text(render_html(content, options.title, options.theme), encoding="utf-8")

        if options.generate_svg:
            self._render_svg(mermaid_path, mermaid_path.with_suffix(".svg"), options.theme)

        return mermaid_path

    def render(self, result: AnalysisResult, title: str, include_legend: bool = True) -> str:
        layout = _layout(result)
        lines = ["flowchart LR", f"  %% {title}", "", "  %% Classes"]
        for name, node_id in layout.class_nodes.items():
            lines.append(f'  {node_id}["{_strip_quotes(name)}"]')
            lines.append(f"  class {node_id} {layout.class_roles[name]}")

        lines.extend(["", "  %% Events/Commands/Queries"])
        for event, node_id in layout.event_nodes.items():
            lines.append(f'  {node_id}["{_strip_quotes(event)}"]')
            lines.append(f"  class {node_id} event")

        lines.extend(["", "  %% Relationships"])
        lines.extend(f"  {src} -->|{label}| {dst}" for src, dst, label in layout.edges)

        if include_legend:
            lines.extend([
                "",
                "  %% Legend",
                "  subgraph Legend",
                '    leg_producer["Producer"]',
                '    leg_consumer["Consumer"]',
                '    leg_both["Both"]',
                '    leg_event["Event/Command/Query"]',
                "  end",
            ])
            lines.extend(f"  class leg_{role} {role}" for role in STYLE_DEFS)

        lines.extend(["", "  %% Style definitions"])
        for role, (fill, stroke) in STYLE_DEFS.items():
            extra = ",style:rounded" if role == "event" else ""
            lines.append(f"  classDef {role} fill:{fill},stroke:{stroke},stroke-width:1px{extra}")
        return "\n".join(lines) + "\n"

    @staticmethod
    def _render_svg(mermaid_path: Path, svg_path: Path, theme: str) -> bool:
        """Render SVG through the Mermaid CLI (``mmdc``) when it is installed."""
        mmdc = shutil.which("mmdc")
        if mmdc is None:
            logger.info(
                "Mermaid CLI not detected; install @mermaid-js/mermaid-cli for SVG output, "
                "or open the HTML file to export the diagram."
            )
            return False

        mmdc_config = {
            "theme": theme,
            "maxTextSize": 500000,
            "maxEdges": 5000,
            "flowchart": {"useMaxWidth": False, "htmlLabels": True, "curve": "linear"},
        }
        with tempfile.TemporaryDirectory() as tmp:
            config_path = Path(tmp) / "mermaid-config.json"
            config_path.write_text(json.dumps(mmdc_config), encoding="utf-8")
            try:
                subprocess.run(
                    [mmdc, "-i", str(mermaid_path), "-o", str(svg_path),
                     "-t", theme, "-b", "transparent", "-c", str(config_path)],
                    check=True, capture_output=True, timeout=120,
                )
            except (subprocess.CalledProcessError, subprocess.TimeoutExpired, OSError) as exc:
                logger.warning("Mermaid CLI could not render SVG: %s", exc)
                return False
        logger.info("SVG file written to %s", svg_path)
        return True


class DotGenerator(DiagramGenerator):
    name = "Graphviz DOT"
    description = "Generates Graphviz DOT graphs"
    extensions = (".dot",)

    def generate(self, result: AnalysisResult, options: DiagramOptions) -> Path:
        result = self._limit(result, options)
        options.output_path.parent.mkdir(parents=True, exist_ok=True)
        options.output_path.write_text(self.render(result, options.title), encoding="utf-8")
        return options.output_path

    def render(self, result: AnalysisResult, title: str = config.DIAGRAM_TITLE) -> str:
        layout = _layout(result)
        lines = ["digraph CQRS {", "  rankdir=LR;", f'  label="{_esc(title)}";']
        for name, node_id in layout.class_nodes.items():
            fill, stroke = STYLE_DEFS[layout.class_roles[name]]
            lines.append(
                f'  "{node_id}" [label="{_esc(name)}", shape=box, style=filled, '
                f'fillcolor="{fill}", color="{stroke}"];'
            )
        fill, stroke = STYLE_DEFS["event"]
        for event, node_id in layout.event_nodes.items():
            lines.append(
                f'  "{node_id}" [label="{_esc(event)}", shape=ellipse, style=filled, '
                f'fillcolor="{fill}", color="{stroke}"];'
            )
        for src, dst, label in layout.edges:
            lines.append(f'  "{src}" -> "{dst}" [label="{_esc(label)}"];')
        lines.append("}")
        return "\n".join(lines) + "\n"


def render_html(mermaid_content: str, title: str, theme: str = "default") -> str:
    """Standalone HTML page embedding the Mermaid diagram."""
    return f"""<!doctype html>
<html>
<head>
  <meta charset="utf-8" />
  <title>{title}</title>
  <script src="{MERMAID_CDN}"></script>
  <style>
    body {{ font-family: Arial, sans-serif; margin: 0; padding: 20px; }}
    #diagram {{ width: 100%; overflow: auto; }}
    .mermaid {{ display: flex; justify-content: center; }}
  </style>
</head>
<body>
  <h1>{title}</h1>
  <div id="diagram">
    <pre class="mermaid">
{mermaid_content}
    </pre>
  </div>
  <script>
    mermaid.initialize({{
      startOnLoad: true,
      theme: '{theme}',
      flowchart: {{ useMaxWidth: false, htmlLabels: true, curve: 'linear' }},
      maxTextSize: 500000,
      maxEdges: 5000
    }});
  </script>
</body>
</html>
"""


_GENERATORS = {
    "mermaid": MermaidGenerator,
    "dot": DotGenerator,
}


def create_diagram_generator(kind: str) -> DiagramGenerator:
    """Return the generator registered for *kind* (case-insensitive)."""
    generator_cls = _GENERATORS.get(kind.strip().lower())
    if generator_cls is None:
        raise UnsupportedDiagramError(kind)
    return generator_cls()
