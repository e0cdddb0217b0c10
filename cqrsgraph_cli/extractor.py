"""CQRS pattern extraction over Tree-sitter TypeScript syntax trees.

Two kinds of edges come out of a single source unit:

- **Bus usages**: ``<receiver>.publish|execute|dispatch(...)`` calls whose
  receiver name looks like an event/query/command bus.
- **Handler declarations**: classes decorated with ``@QueryHandler(...)``,
  ``@CommandHandler(...)`` or ``@EventsHandler(...)``.

Both are name heuristics. Nothing here resolves imports or checks that a
"bus" really is a bus; the rules below are the whole inference.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterator, List, Optional

from .errors import CQRSGraphError
from .models import (
    HANDLER_TYPES,
    UNKNOWN,
    AnalysisResult,
    BusUsage,
    HandlerDeclaration,
    Position,
    SourceUnit,
)

logger = logging.getLogger(__name__)

DISPATCH_METHODS = frozenset({"publish", "execute", "dispatch"})

# Ordered rule table: first match wins.
BUS_TYPE_RULES = (
    (("event", "bus"), "EventBus"),
    (("query", "bus"), "QueryBus"),
    (("command", "bus"), "CommandBus"),
)

HANDLER_DECORATOR_RE = re.compile(r"@(QueryHandler|CommandHandler|EventsHandler)\s*\(([^)]*)\)")
_TOKEN_RE = re.compile(r"[A-Za-z0-9_]+")

CLASS_NODE_TYPES = ("class_declaration", "abstract_class_declaration")


def _text(node: Any) -> str:
    return node.text.decode("utf-8")


# ===================================================================
# Per-unit context
# ===================================================================

@dataclass
class ExtractionContext:
    """Per-unit accumulator plus ancestor lookups for the node being visited."""

    source_file: str
    source: bytes
    bus_usages: List[BusUsage] = field(default_factory=list)
    handler_declarations: List[HandlerDeclaration] = field(default_factory=list)

    def enclosing_class(self, node: Any) -> Optional[str]:
        """Name of the innermost named class declaration containing *node*."""
        current = node
        while current is not None:
            if current.type in CLASS_NODE_TYPES:
                name = current.child_by_field_name("name")
                if name is not None:
                    return _text(name)
            current = current.parent
        return None

    def enclosing_method(self, node: Any) -> Optional[str]:
        """Name of the innermost method containing *node*.

        Constructors and get/set accessors are not methods. The first method
        found decides: a computed or private name yields ``None``.
        """
        current = node
        while current is not None:
            if current.type == "method_definition" and _is_plain_method(current):
                name = current.child_by_field_name("name")
                if name is not None:
                    return _text(name) if name.type == "property_identifier" else None
            current = current.parent
        return None

    def position_of(self, node: Any) -> Position:
        """One-based line and character of *node*'s first token."""
        start = node.start_byte
        line_start = self.source.rfind(b"\n", 0, start) + 1
        column = len(self.source[line_start:start].decode("utf-8", errors="replace"))
        return Position(line=node.start_point[0] + 1, character=column + 1)

    def result(self) -> AnalysisResult:
        return AnalysisResult(
            bus_usages=list(self.bus_usages),
            handler_declarations=list(self.handler_declarations),
        )


def _is_plain_method(node: Any) -> bool:
    name = node.child_by_field_name("name")
    if name is not None and _text(name) == "constructor":
        return False
    return not any(child.type in ("get", "set") for child in node.children)


# ===================================================================
# Traversal
# ===================================================================

def walk(root: Any) -> Iterator[Any]:
    """Yield every node below (and including) *root* in pre-order."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def extract_unit(source_file: str, tree: Any, source: str) -> AnalysisResult:
    """Extract bus usages and handler declarations from one parsed unit."""
    ctx = ExtractionContext(source_file=source_file, source=source.encode("utf-8"))
    if tree.root_node.has_error:
        logger.debug("Syntax errors in %s; extracting from the parseable parts", source_file)

    for node in walk(tree.root_node):
        if node.type == "call_expression":
            usage = extract_bus_usage(node, ctx)
            if usage is not None:
                ctx.bus_usages.append(usage)
        elif node.type in CLASS_NODE_TYPES:
            ctx.handler_declarations.extend(extract_handlers(node, ctx))

    return ctx.result()


def analyze_source(unit: SourceUnit, parser: Any) -> AnalysisResult:
    """Parse and extract a unit; any failure is logged and yields no edges.

    Configuration errors such as a missing grammar propagate.
    """
    try:
        tree = parser.parse_unit(unit)
        return extract_unit(unit.path, tree, unit.text)
    except CQRSGraphError:
        raise
    except Exception as exc:
        logger.warning("Error analyzing file %s: %s", unit.path, exc)
        return AnalysisResult()


# ===================================================================
# Bus usages
# ===================================================================

def determine_bus_type(object_name: str) -> Optional[str]:
    lower_name = object_name.lower()
    for needles, bus_type in BUS_TYPE_RULES:
        if all(needle in lower_name for needle in needles):
            return bus_type
    return None


def receiver_name(expr: Any) -> str:
    """Identify a bus receiver: identifier text or rightmost property name."""
    if expr.type == "identifier":
        return _text(expr)
    if expr.type == "member_expression":
        prop = expr.child_by_field_name("property")
        if prop is not None and prop.type == "property_identifier":
            return _text(prop)
    return ""


def _first_argument(call: Any) -> Optional[Any]:
    args = call.child_by_field_name("arguments")
    if args is None or args.type != "arguments":
        return None
    for child in args.named_children:
        if child.type != "comment":
            return child
    return None


def event_type_from_arguments(call: Any) -> str:
    """Infer a message type from the first call argument, or ``"Unknown"``."""
    arg = _first_argument(call)
    if arg is None:
        return UNKNOWN
    if arg.type == "new_expression":
        ctor = arg.child_by_field_name("constructor")
        if ctor is not None and ctor.type == "identifier":
            return _text(ctor)
    elif arg.type == "identifier":
        return _text(arg)
    elif arg.type == "member_expression":
        prop = arg.child_by_field_name("property")
        if prop is not None and prop.type == "property_identifier":
            return _text(prop)
    return UNKNOWN


def infer_event_type(call: Any) -> str:
    """Explicit generic argument verbatim, else :func:`event_type_from_arguments`."""
    type_args = call.child_by_field_name("type_arguments")
    if type_args is not None:
        for child in type_args.named_children:
            if child.type != "comment":
                return _text(child)
    return event_type_from_arguments(call)


def extract_bus_usage(call: Any, ctx: ExtractionContext) -> Optional[BusUsage]:
    args = call.child_by_field_name("arguments")
    if args is None or args.type != "arguments":
        return None

    callee = call.child_by_field_name("function")
    if callee is None or callee.type != "member_expression":
        return None

    prop = callee.child_by_field_name("property")
    if prop is None or prop.type != "property_identifier":
        return None
    if _text(prop) not in DISPATCH_METHODS:
        return None

    receiver = callee.child_by_field_name("object")
    bus_type = determine_bus_type(receiver_name(receiver) if receiver is not None else "")
    if bus_type is None:
        return None

    return BusUsage(
        source_file=ctx.source_file,
        class_name=ctx.enclosing_class(call) or UNKNOWN,
        method_name=ctx.enclosing_method(call),
        bus_type=bus_type,
        event_type=infer_event_type(call),
        position=ctx.position_of(call),
    )


# ===================================================================
# Handler declarations
# ===================================================================

def declaration_node(class_node: Any) -> Any:
    """The node spanning a class with its decorators and modifiers.

    ``@X() export class Y`` attaches the decorators to the export statement,
    so an exported class is represented by its parent.
    """
    parent = class_node.parent
    if parent is not None and parent.type == "export_statement":
        return parent
    return class_node


def detect_handlers_lexical(
    class_name: str, class_node: Any, ctx: ExtractionContext,
) -> List[HandlerDeclaration]:
    """Scan the class's source text for handler decorators, one edge per match."""
    decl = declaration_node(class_node)
    text = ctx.source[decl.start_byte:decl.end_byte].decode("utf-8", errors="replace")
    position = ctx.position_of(decl)

    found: List[HandlerDeclaration] = []
    for match in HANDLER_DECORATOR_RE.finditer(text):
        token = _TOKEN_RE.search(match.group(2).strip())
        found.append(HandlerDeclaration(
            source_file=ctx.source_file,
            class_name=class_name,
            handler_type=match.group(1),
            event_type=token.group(0) if token else UNKNOWN,
            position=position,
        ))
    return found


def _decorators(class_node: Any) -> List[Any]:
    decorators = list(class_node.children_by_field_name("decorator"))
    decl = declaration_node(class_node)
    if decl is not class_node:
        decorators = list(decl.children_by_field_name("decorator")) + decorators
    return decorators


def detect_handlers_structural(
    class_name: str, class_node: Any, ctx: ExtractionContext,
) -> List[HandlerDeclaration]:
    """Read handler decorators from the tree's decorator list."""
    position = ctx.position_of(declaration_node(class_node))
    found: List[HandlerDeclaration] = []
    for decorator in _decorators(class_node):
        expr = next((c for c in decorator.named_children if c.type != "comment"), None)
        if expr is None or expr.type != "call_expression":
            continue
        callee = expr.child_by_field_name("function")
        if callee is None or callee.type != "identifier":
            continue
        name = _text(callee)
        if name not in HANDLER_TYPES:
            continue
        found.append(HandlerDeclaration(
            source_file=ctx.source_file,
            class_name=class_name,
            handler_type=name,
            event_type=event_type_from_arguments(expr),
            position=position,
        ))
    return found


def reconcile_handlers(
    lexical: List[HandlerDeclaration],
    structural: List[HandlerDeclaration],
) -> List[HandlerDeclaration]:
    """Merge both detections; structural edges are dropped when their
    ``(class_name, handler_type)`` pair is already present.

    Event types are not compared, so the lexical reading wins any disagreement.
    """
    merged = list(lexical)
    seen = {(h.class_name, h.handler_type) for h in lexical}
    for handler in structural:
        key = (handler.class_name, handler.handler_type)
        if key in seen:
            continue
        seen.add(key)
        merged.append(handler)
    return merged


def extract_handlers(class_node: Any, ctx: ExtractionContext) -> List[HandlerDeclaration]:
    name_node = class_node.child_by_field_name("name")
    if name_node is None:
        return []
    class_name = _text(name_node)

    lexical = detect_handlers_lexical(class_name, class_node, ctx)
    try:
        structural = detect_handlers_structural(class_name, class_node, ctx)
    except Exception as exc:
        logger.debug(
            "Using lexical decorator detection only for %s in %s: %s",
            class_name, ctx.source_file, exc,
        )
        structural = []
    return reconcile_handlers(lexical, structural)
