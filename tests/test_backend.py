"""
Backend Integration Tests
=========================

The public build operation: validation before computation, private copies
of the input, determinism, and what each build records.
"""

import pytest

from laf import (
    ArgumentationBackend,
    BackendConfig,
    ConfigurationError,
    ConvergenceError,
    EdgeKind,
    ErrorCode,
    Fact,
    InferenceConfig,
    OperationTable,
    ProgramContext,
    Rule,
    UnsupportedOperatorError,
    build,
)
from laf.contracts.events import AuditEventType
from laf.observability import ObservabilityConfig

from tests.fixtures import (
    scenario_aggregation,
    scenario_conflict,
    scenario_defeasible,
    scenario_rederivation,
    scenario_support,
    scenario_symbolic,
    single_label,
)


def labels(graph):
    return sorted((n.label, n.attributes, n.delta_attributes) for n in graph.nodes)


class TestScenarios:

    def test_support(self):
        graph = build(*scenario_support())

        (buy,) = graph.nodes_labeled("buy(houseA)")
        assert buy.attributes == ("0.6",)
        sources = {e.source for e in graph.edges if e.target == buy.id}
        assert {graph.node(s).label for s in sources} == {
            "buy(X) :- goodArea(X), cheap(X)", "goodArea(houseA)", "cheap(houseA)"
        }
        assert {e.kind for e in graph.edges} == {EdgeKind.SUPPORT}

    def test_aggregation(self):
        graph = build(*scenario_aggregation())

        (buy,) = graph.nodes_labeled("buy(houseA)")
        assert buy.attributes == ("0.6",)

    def test_conflict(self):
        graph = build(*scenario_conflict())

        (p,) = graph.nodes_labeled("p(a)")
        (not_p,) = graph.nodes_labeled("~p(a)")
        assert float(p.delta_attributes[0]) == pytest.approx(0.4)
        assert not_p.delta_attributes == ("0.0",)
        assert p.attributes == ("0.7",)
        assert len(graph.edges_of_kind(EdgeKind.CONFLICT)) == 2

    def test_symbolic(self):
        graph = build(*scenario_symbolic())
        (styled,) = graph.nodes_labeled("styled(car)")
        assert styled.attributes == ("red blue",)

    @pytest.mark.parametrize("operations", [None, OperationTable()])
    def test_missing_operations_rejected_before_computation(self, operations):
        # label vectors are deliberately invalid: validation must stop earlier
        facts = [Fact("p", "a")]
        rules = [Rule("q", (), None)]

        with pytest.raises(ConfigurationError) as exc_info:
            build(facts, rules, operations)
        assert exc_info.value.code == ErrorCode.MISSING_OPERATIONS


class TestValidation:

    def test_fact_dimension_mismatch(self):
        facts = [Fact("p", "a", ["0.5", "0.5"])]
        with pytest.raises(ConfigurationError) as exc_info:
            build(facts, [], single_label())
        assert exc_info.value.code == ErrorCode.DIMENSION_MISMATCH
        assert ("piece", "p(a)") in exc_info.value.error.context

    def test_rule_dimension_mismatch(self):
        facts = [Fact("p", "a", ["0.5"])]
        rules = [Rule("q", ("p",), [])]
        with pytest.raises(ConfigurationError) as exc_info:
            build(facts, rules, single_label())
        assert exc_info.value.code == ErrorCode.DIMENSION_MISMATCH

    def test_empty_rule_body(self):
        rules = [Rule("q", (), ["1.0"])]
        with pytest.raises(ConfigurationError) as exc_info:
            build([], rules, single_label())
        assert exc_info.value.code == ErrorCode.EMPTY_RULE_BODY

    def test_unsupported_operator_aborts_build(self):
        facts, rules, _ = scenario_symbolic()
        with pytest.raises(UnsupportedOperatorError):
            build(facts, rules, single_label(support="Concat"))

    def test_pass_limit_from_config(self):
        config = BackendConfig(inference=InferenceConfig(max_passes=1))
        with pytest.raises(ConvergenceError):
            build(*scenario_support(), config=config)


class TestIsolation:

    def test_inputs_are_not_mutated(self):
        facts, rules, operations = scenario_conflict()
        build(facts, rules, operations)

        assert [f.delta_attributes for f in facts] == [("0.7",), ("0.3",)]

    def test_same_inputs_build_twice(self):
        program = scenario_rederivation()
        backend = ArgumentationBackend()

        first = backend.build(*program)
        second = backend.build(*program)
        assert first.to_dict() == second.to_dict()

    def test_idempotent_labels_and_edge_kinds(self):
        program = scenario_defeasible()
        first, second = build(*program), build(*program)

        assert labels(first) == labels(second)
        assert sorted(e.kind.value for e in first.edges) == sorted(e.kind.value for e in second.edges)

    def test_build_context(self):
        facts, rules, operations = scenario_support()
        context = ProgramContext()
        context.load_program(facts, rules)
        context.load_operations(operations)

        assert ArgumentationBackend().build_context(context).to_dict() == build(*scenario_support()).to_dict()


class TestObservability:

    def test_metrics_after_build(self):
        backend = ArgumentationBackend()
        backend.build(*scenario_rederivation())
        metrics = backend.get_metrics()

        assert metrics.get_latest("inference_passes").value == 3.0
        assert metrics.get_latest("facts_derived_total").value == 3.0
        assert metrics.get_latest("aggregations_total").value == 1.0
        assert metrics.get_latest("conflicts_total").value == 0.0
        assert metrics.get_latest("graph_nodes").value == 7.0
        assert metrics.get_latest("build_duration_ms").value >= 0.0
        edge_points = {dict(p.labels)["kind"]: p.value for p in metrics.get_metric("graph_edges")}
        assert edge_points == {"SUPPORT": 6.0, "AGGREGATION": 0.0, "CONFLICT": 0.0}
        assert backend.last_stats.detachments == 1

    def test_lineage_after_build(self):
        backend = ArgumentationBackend()
        backend.build(*scenario_support())
        lineage = backend.get_lineage()

        assert lineage.get("F3").parent_ids == ("R1", "F1", "F2")
        assert lineage.get("F3").entity_type == "fact"
        assert lineage.get("R1").parent_ids == ()

    def test_lineage_is_replaced_per_build(self):
        backend = ArgumentationBackend()
        backend.build(*scenario_support())
        backend.build(*scenario_conflict())

        assert backend.get_lineage().get("R1") is None
        assert backend.get_lineage().get("F1").parent_ids == ()

    def test_audit_log_after_build(self):
        backend = ArgumentationBackend()
        backend.build(*scenario_support())

        inference = backend.get_audit_log(layers=["inference"])
        engine = backend.get_audit_log(layers=["engine"])
        assert [e.event_type for e in inference] == [AuditEventType.DERIVATION]
        assert [e.event_type for e in engine] == [AuditEventType.BUILD]

    def test_failed_build_is_audited(self):
        backend = ArgumentationBackend()
        with pytest.raises(ConfigurationError):
            backend.build([], [], None)

        (failure,) = backend.get_audit_log(layers=["engine"])
        assert failure.event_type == AuditEventType.ERROR
        assert failure.entity_id == "MISSING_OPERATIONS"
        assert ("outcome", "failure") in failure.metadata
        assert backend.last_stats is None

    def test_repeated_builds_stay_bounded(self):
        config = BackendConfig(observability=ObservabilityConfig(max_entries=5))
        backend = ArgumentationBackend(config)
        for _ in range(6):
            backend.build(*scenario_support())

        assert len(backend.get_audit_log(layers=["inference"])) == 5
        assert len(backend.get_audit_log(layers=["engine"])) == 5
        assert len(backend.get_metrics().get_metric("graph_edges")) == 5
        assert len(backend.get_metrics().get_metric("graph_nodes")) == 5

    def test_audit_report(self):
        backend = ArgumentationBackend()
        backend.build(*scenario_aggregation())

        report = backend.get_audit_report()
        assert report["by_event_type"]["derivation"] == 1
        assert report["by_event_type"]["aggregation"] == 1
        assert report["by_event_type"]["build"] == 1
