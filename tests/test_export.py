"""
Graph Exporter Tests
====================

Identifier assignment, node payloads and edge classification.
"""

from laf.contracts.graph import EdgeKind, NodeKind
from laf.contracts.knowledge import ArgumentativeGraph, ConflictPair, Fact, NodeRef, Rule
from laf.core import InferenceEngine
from laf.export import GraphExporter

from tests.fixtures import scenario_aggregation, scenario_conflict, scenario_support


def export(program):
    facts, rules, operations = program
    return GraphExporter().export(InferenceEngine(facts, rules, operations).build_graph())


def edge_tuples(graph):
    return [(e.source, e.target, e.kind) for e in graph.edges]


class TestIdentifiers:

    def test_support_scenario_ids(self):
        graph = export(scenario_support())

        assert [(n.id, n.label) for n in graph.nodes] == [
            ("R1", "buy(X) :- goodArea(X), cheap(X)"),
            ("F1", "goodArea(houseA)"),
            ("F2", "cheap(houseA)"),
            ("F3", "buy(houseA)"),
        ]
        assert edge_tuples(graph) == [
            ("R1", "F3", EdgeKind.SUPPORT),
            ("F1", "F3", EdgeKind.SUPPORT),
            ("F2", "F3", EdgeKind.SUPPORT),
        ]

    def test_fact_and_rule_counters_are_independent(self):
        graph = export(scenario_aggregation())

        assert [n.id for n in graph.nodes] == ["R1", "F1", "R2", "F2", "F3"]
        assert [n.kind for n in graph.nodes] == [
            NodeKind.RULE, NodeKind.FACT, NodeKind.RULE, NodeKind.FACT, NodeKind.FACT
        ]

    def test_every_parent_precedes_every_child(self):
        graph = export(scenario_aggregation())

        assert [n.label for n in graph.nodes] == [
            "buy(X) :- goodArea(X)",
            "goodArea(houseA)",
            "buy(X) :- cheap(X)",
            "cheap(houseA)",
            "buy(houseA)",
        ]

    def test_ids_are_deterministic(self):
        assert export(scenario_aggregation()).to_dict() == export(scenario_aggregation()).to_dict()


class TestNodes:

    def test_fact_payload(self):
        graph = export(scenario_support())
        node = graph.node("F3")

        assert node.kind == NodeKind.FACT
        assert node.attributes == ("0.6",)
        assert node.delta_attributes == ("0.6",)

    def test_rule_payload(self):
        graph = export(scenario_support())
        assert graph.node("R1").attributes == ("1.0",)

    def test_to_dict_shape(self):
        data = export(scenario_support()).to_dict()

        assert data["nodes"][3] == {
            "id": "F3",
            "label": "buy(houseA)",
            "kind": "FACT",
            "attributes": ["0.6"],
            "deltaAttributes": ["0.6"],
        }
        assert data["edges"][0] == {"from": "R1", "to": "F3", "kind": "SUPPORT"}


class TestEdgeClassification:

    def setup_method(self):
        self.rule = NodeRef.rule(0)
        self.p = NodeRef.fact(0)
        self.q = NodeRef.fact(1)
        self.r = NodeRef.fact(2)
        self.pieces = {
            self.rule: Rule("q", ("p",), ["1.0"]),
            self.p: Fact("p", "a", ["0.5"]),
            self.q: Fact("q", "a", ["0.5"]),
            self.r: Fact("r", "a", ["0.7"]),
        }

    def test_all_fact_parents_yield_aggregation(self):
        graph = GraphExporter().export(ArgumentativeGraph(
            pieces=self.pieces,
            edges={
                self.rule: [self.q],
                self.p: [self.q, self.r],
                self.q: [self.r],
            }
        ))

        assert [(n.id, n.label) for n in graph.nodes] == [
            ("R1", "q(X) :- p(X)"),
            ("F1", "p(a)"),
            ("F2", "q(a)"),
            ("F3", "r(a)"),
        ]
        assert edge_tuples(graph) == [
            ("R1", "F2", EdgeKind.SUPPORT),
            ("F1", "F2", EdgeKind.SUPPORT),
            ("F1", "F3", EdgeKind.AGGREGATION),
            ("F2", "F3", EdgeKind.AGGREGATION),
        ]

    def test_one_rule_parent_makes_every_edge_support(self):
        graph = GraphExporter().export(ArgumentativeGraph(
            pieces=self.pieces,
            edges={
                self.p: [self.r],
                self.q: [self.r],
                self.rule: [self.r],
            }
        ))

        assert {kind for _, _, kind in edge_tuples(graph)} == {EdgeKind.SUPPORT}

    def test_conflict_edges_in_both_directions(self):
        graph = export(scenario_conflict())

        assert [n.label for n in graph.nodes] == ["~p(a)", "p(a)"]
        assert edge_tuples(graph) == [
            ("F1", "F2", EdgeKind.CONFLICT),
            ("F2", "F1", EdgeKind.CONFLICT),
        ]

    def test_conflict_members_come_after_derivation_nodes(self):
        graph = GraphExporter().export(ArgumentativeGraph(
            pieces=self.pieces,
            edges={self.rule: [self.q]},
            conflicts=[ConflictPair(negated=self.r, positive=self.p)]
        ))

        assert [(n.id, n.label) for n in graph.nodes] == [
            ("R1", "q(X) :- p(X)"),
            ("F1", "q(a)"),
            ("F2", "r(a)"),
            ("F3", "p(a)"),
        ]
        assert len(graph.edges_of_kind(EdgeKind.CONFLICT)) == 2

    def test_unknown_nodes_are_skipped(self):
        missing = NodeRef.fact(99)
        graph = GraphExporter().export(ArgumentativeGraph(
            pieces=self.pieces,
            edges={self.p: [missing, self.q]},
            conflicts=[ConflictPair(negated=missing, positive=self.r)]
        ))

        assert [n.label for n in graph.nodes] == ["p(a)", "q(a)", "r(a)"]
        assert edge_tuples(graph) == [("F1", "F2", EdgeKind.AGGREGATION)]

    def test_empty_graph(self):
        graph = GraphExporter().export(ArgumentativeGraph())
        assert graph.nodes == ()
        assert graph.edges == ()
