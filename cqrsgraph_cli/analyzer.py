"""End-to-end pipeline: discover, extract, budget, analyze, and write outputs."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from . import config
from .aggregator import apply_edge_budget, collect
from .architecture import analyze_architecture
from .config_manager import AnalyzerOptions
from .diagrams import DiagramGenerator, DiagramOptions, create_diagram_generator
from .models import AnalysisResult, ArchitectureAnalysisResult
from .parser import find_typescript_files, load_source_units
from .report import generate_markdown_report, to_json

logger = logging.getLogger(__name__)


@dataclass
class AnalysisRun:
    result: AnalysisResult
    architecture: ArchitectureAnalysisResult
    output_files: List[Path] = field(default_factory=list)


class CQRSAnalyzer:
    """Coordinates discovery, extraction, analysis and rendering."""

    def __init__(self, options: Optional[AnalyzerOptions] = None, base_dir: Optional[Path] = None):
        self.options = (options or AnalyzerOptions()).validate()
        self.base_dir = base_dir or Path.cwd()

    @property
    def src_dir(self) -> Path:
        return (self.base_dir / self.options.src_dir).resolve()

    @property
    def out_dir(self) -> Path:
        return (self.base_dir / self.options.out_dir).resolve()

    def extract(self) -> AnalysisResult:
        """Discover and extract sources, then apply the edge budget."""
        src_dir = self.src_dir
        if not src_dir.is_dir():
            raise FileNotFoundError(f"Source directory not found: {src_dir}")

        files = find_typescript_files(src_dir)
        logger.info("Found %d TypeScript files to analyze.", len(files))

        result = collect(load_source_units(files), workers=self.options.workers)
        logger.info("Total number of edges in the diagram: %d", result.total_edges)
        return apply_edge_budget(result, self.options.max_edges)

    def analyze(self) -> AnalysisRun:
        # Resolve generators first so an unknown format fails before any output.
        generators = [create_diagram_generator(kind) for kind in self.options.formats]

        result = self.extract()
        architecture = analyze_architecture(result, self.options.coupling_threshold)
        run = AnalysisRun(result=result, architecture=architecture)

        out_dir = self.out_dir
        out_dir.mkdir(parents=True, exist_ok=True)

        if self.options.report:
            report_path = out_dir / config.REPORT_FILE_NAME
            report_path.write_text(generate_markdown_report(architecture), encoding="utf-8")
            run.output_files.append(report_path)
            logger.info("Analysis report written to %s", report_path)

        if self.options.json:
            json_path = out_dir / config.JSON_FILE_NAME
            json_path.write_text(to_json(result, architecture), encoding="utf-8")
            run.output_files.append(json_path)
            logger.info("JSON results written to %s", json_path)

        for generator in generators:
            path = self._write_diagram(generator, result, out_dir)
            if path is not None:
                run.output_files.append(path)

        logger.info("CQRS analysis completed.")
        return run

    def _write_diagram(
        self, generator: DiagramGenerator, result: AnalysisResult, out_dir: Path,
    ) -> Optional[Path]:
        options = DiagramOptions(
            output_path=out_dir / f"{config.DIAGRAM_BASENAME}{generator.extensions[0]}",
            max_edges=self.options.max_edges,
        )
        try:
            path = generator.generate(result, options)
        except OSError as exc:
            logger.error("Error generating %s diagram: %s", generator.name, exc)
            return None
        logger.info("%s diagram generated at %s", generator.name, path)
        return path
