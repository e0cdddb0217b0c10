"""Tests for the architecture graph analyzer."""

import pytest

from cqrsgraph_cli.architecture import analyze_architecture, build_graph
from cqrsgraph_cli.models import AnalysisResult, IssueSeverity


def _issue(analysis, issue_type):
    return next((i for i in analysis.issues if i.type == issue_type), None)


def test_empty_result_has_no_issues():
    analysis = analyze_architecture(AnalysisResult())

    assert analysis.issues == []
    assert analysis.metrics.total_classes == 0
    assert analysis.metrics.total_events == 0
    assert analysis.metrics.average_connections == 0


def test_dispatch_and_handler_pair_is_balanced(extract, order_service_code, order_handler_code):
    """A command dispatched in one unit and handled in another."""
    service = extract(order_service_code)
    handler = extract(order_handler_code)
    result = AnalysisResult(
        bus_usages=service.bus_usages + handler.bus_usages,
        handler_declarations=service.handler_declarations + handler.handler_declarations,
    )

    graph = build_graph(result)
    analysis = analyze_architecture(result)

    assert graph.unhandled_events == []
    assert graph.orphan_handlers == []
    assert analysis.issues == []
    assert analysis.metrics.total_classes == 2
    assert analysis.metrics.total_events == 1
    assert analysis.metrics.average_connections == 1.0


def test_unhandled_event_is_an_error(make_usage):
    result = AnalysisResult(bus_usages=[make_usage("OrderService", "ShipOrderCommand")])

    analysis = analyze_architecture(result)

    issue = _issue(analysis, "UnhandledEvents")
    assert issue.severity == IssueSeverity.ERROR
    assert issue.elements == ["ShipOrderCommand"]
    assert issue.context == [{"event_type": "ShipOrderCommand", "producers": ["OrderService"]}]
    assert analysis.metrics.orphan_events == 1


def test_orphan_handler_is_a_warning(make_handler):
    result = AnalysisResult(handler_declarations=[
        make_handler("LegacyHandler", "OrderCancelled", handler_type="EventsHandler"),
    ])

    analysis = analyze_architecture(result)

    issue = _issue(analysis, "OrphanHandlers")
    assert issue.severity == IssueSeverity.WARNING
    assert issue.elements == ["OrderCancelled"]
    assert issue.context == [{"event_type": "OrderCancelled", "handlers": ["LegacyHandler"]}]
    assert analysis.metrics.orphan_handlers == 1


def test_dual_role_class(make_usage, make_handler):
    result = AnalysisResult(
        bus_usages=[make_usage("Saga", "Ship"), make_usage("Api", "Create")],
        handler_declarations=[make_handler("Saga", "Create"), make_handler("Shipper", "Ship")],
    )

    graph = build_graph(result)
    analysis = analyze_architecture(result)

    assert graph.dual_role_classes == ["Saga"]
    issue = _issue(analysis, "SingleResponsibilityViolation")
    assert issue.severity == IssueSeverity.WARNING
    assert issue.elements == ["Saga"]
    assert issue.context is None
    assert analysis.metrics.dual_role_classes == 1
    assert analysis.metrics.event_producers == 2
    assert analysis.metrics.event_consumers == 2


class TestCoupling:
    """Coupling counts and the high-coupling threshold."""

    def test_six_connections_flagged_five_not(self, make_usage, make_handler):
        usages = [make_usage("Busy", f"E{i}") for i in range(4)]
        usages += [make_usage("Edge", f"F{i}") for i in range(5)]
        handlers = [make_handler("Busy", f"E{i}", handler_type="EventsHandler") for i in range(2)]
        result = AnalysisResult(bus_usages=usages, handler_declarations=handlers)

        graph = build_graph(result)
        analysis = analyze_architecture(result)

        assert graph.coupling == {"Busy": 6, "Edge": 5}
        assert graph.high_coupling == [{"class_name": "Busy", "connections": 6}]
        issue = _issue(analysis, "HighCoupling")
        assert issue.elements == ["Busy"]
        assert issue.context == [{"class_name": "Busy", "connections": 6}]

    def test_threshold_is_configurable(self, make_usage):
        result = AnalysisResult(bus_usages=[make_usage("Svc", f"E{i}") for i in range(3)])

        assert _issue(analyze_architecture(result), "HighCoupling") is None
        assert _issue(analyze_architecture(result, coupling_threshold=2), "HighCoupling") is not None

    def test_average_connections_is_not_rounded(self, make_usage, make_handler):
        result = AnalysisResult(
            bus_usages=[make_usage("A", "X"), make_usage("A", "Y")],
            handler_declarations=[make_handler("B", "X"), make_handler("C", "Y")],
        )
        assert analyze_architecture(result).metrics.average_connections == pytest.approx(4 / 3)

    def test_same_name_in_different_files_is_one_class(self, make_usage):
        result = AnalysisResult(bus_usages=[
            make_usage("Service", "A", source_file="a/service.ts"),
            make_usage("Service", "B", source_file="b/service.ts"),
        ])
        assert build_graph(result).coupling == {"Service": 2}


def test_issue_order_is_fixed(make_usage, make_handler):
    usages = [make_usage("Hub", f"E{i}") for i in range(6)]
    handlers = [make_handler("Hub", "Other"), make_handler("Sink", "Nobody")]
    analysis = analyze_architecture(AnalysisResult(bus_usages=usages, handler_declarations=handlers))

    assert [i.type for i in analysis.issues] == [
        "SingleResponsibilityViolation",
        "HighCoupling",
        "UnhandledEvents",
        "OrphanHandlers",
    ]


def test_emitters_keep_duplicates_in_insertion_order(make_usage):
    result = AnalysisResult(bus_usages=[
        make_usage("B", "E"), make_usage("A", "E"), make_usage("B", "E"),
    ])
    assert build_graph(result).event_emitters == {"E": ["B", "A", "B"]}


def test_unhandled_and_orphan_sets_are_disjoint(make_usage, make_handler):
    result = AnalysisResult(
        bus_usages=[make_usage("P", "Shared"), make_usage("P", "OnlyOut")],
        handler_declarations=[make_handler("H", "Shared"), make_handler("H", "OnlyIn")],
    )
    graph = build_graph(result)

    assert graph.unhandled_events == ["OnlyOut"]
    assert graph.orphan_handlers == ["OnlyIn"]
    assert not set(graph.unhandled_events) & set(graph.orphan_handlers)
    for event in graph.unhandled_events:
        assert graph.event_emitters[event]
        assert not graph.event_handlers.get(event)


def test_metrics_count_distinct_events_across_both_kinds(make_usage, make_handler):
    result = AnalysisResult(
        bus_usages=[make_usage("P", "A"), make_usage("P", "B")],
        handler_declarations=[make_handler("H", "B"), make_handler("H", "C")],
    )
    metrics = analyze_architecture(result).metrics

    assert metrics.total_events == 3
    assert metrics.total_classes == 2
