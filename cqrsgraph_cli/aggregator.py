"""Merge per-unit extraction results and enforce the edge budget."""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, List, Sequence

from . import config
from .extractor import analyze_source
from .models import AnalysisResult, SourceUnit
from .parser import TypeScriptParser

logger = logging.getLogger(__name__)


def aggregate(results: Iterable[AnalysisResult]) -> AnalysisResult:
    """Concatenate unit results, preserving the order they are given in."""
    merged = AnalysisResult()
    for result in results:
        merged.bus_usages.extend(result.bus_usages)
        merged.handler_declarations.extend(result.handler_declarations)
    return merged


def apply_edge_budget(
    result: AnalysisResult,
    max_edges: int,
    bus_share: float = config.BUS_USAGE_SHARE,
) -> AnalysisResult:
    """Truncate *result* to at most *max_edges* edges by prefix take.

    Bus usages are cut first to ``floor(max_edges * bus_share)`` when they
    exceed that share; handler declarations then get whatever budget is left.
    A non-positive budget means unlimited. The input is not modified.
    """
    bus_usages = list(result.bus_usages)
    handlers = list(result.handler_declarations)
    if max_edges <= 0 or len(bus_usages) + len(handlers) <= max_edges:
        return AnalysisResult(bus_usages=bus_usages, handler_declarations=handlers)

    bus_budget = max_edges * bus_share
    if len(bus_usages) > bus_budget:
        bus_usages = bus_usages[:math.floor(bus_budget)]

    remaining = max_edges - len(bus_usages)
    if remaining > 0 and len(handlers) > remaining:
        handlers = handlers[:remaining]

    logger.info(
        "Limited edges to budget %d: %d bus usages, %d handler declarations",
        max_edges, len(bus_usages), len(handlers),
    )
    return AnalysisResult(bus_usages=bus_usages, handler_declarations=handlers)


def collect(
    units: Sequence[SourceUnit],
    parser_factory: Callable[[], TypeScriptParser] = TypeScriptParser,
    workers: int = 1,
) -> AnalysisResult:
    """Extract every unit and fold the results in input order.

    With ``workers > 1`` units are extracted on a thread pool, one parser per
    task; ``Executor.map`` yields in submission order, so the aggregate does
    not depend on completion order.
    """
    if workers <= 1:
        parser = parser_factory()
        per_unit: List[AnalysisResult] = [analyze_source(unit, parser) for unit in units]
    else:
        def _run(unit: SourceUnit) -> AnalysisResult:
            return analyze_source(unit, parser_factory())

        with ThreadPoolExecutor(max_workers=workers) as pool:
            per_unit = list(pool.map(_run, units))

    result = aggregate(per_unit)
    logger.info(
        "Found %d bus usages and %d handler declarations in %d files",
        len(result.bus_usages), len(result.handler_declarations), len(units),
    )
    return result
