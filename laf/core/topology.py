"""
Topology Engine
===============

Structural analysis of exported argumentation graphs.

STRUCTURE ONLY:
===============
This engine computes TOPOLOGY (shape), not STRENGTH (judgment). Label values
are carried as node data for inspection but never drive any metric.

ALLOWED:
- Node / edge counts per kind
- Weakly connected components
- Cycle detection on the derivation subgraph
- Ancestor walks (which pieces a fact was derived from)

FORBIDDEN:
- Centrality measures (PageRank, Betweenness) - implies ranking
- Any scoring built from label values
"""

from __future__ import annotations
from typing import Dict, List, Optional, Set
from dataclasses import dataclass, field
import networkx as nx

from ..contracts.graph import EdgeKind, Graph, NodeKind


DERIVATION_KINDS = (EdgeKind.SUPPORT, EdgeKind.AGGREGATION)


@dataclass(frozen=True)
class GraphMetrics:
    """Immutable structural metrics for an exported graph."""
    node_count: int
    edge_count: int
    fact_count: int
    rule_count: int
    edges_by_kind: Dict[str, int] = field(default_factory=dict)
    connected_components_count: int = 0
    derivation_is_acyclic: bool = True

    def to_dict(self) -> Dict[str, object]:
        return {
            "nodeCount": self.node_count,
            "edgeCount": self.edge_count,
            "factCount": self.fact_count,
            "ruleCount": self.rule_count,
            "edgesByKind": dict(self.edges_by_kind),
            "connectedComponents": self.connected_components_count,
            "derivationIsAcyclic": self.derivation_is_acyclic,
        }


class GraphTopology:
    """
    Structural view over an exported Graph.

    Wraps a networkx MultiDiGraph so parallel edges of different kinds
    (e.g. a CONFLICT pair next to a SUPPORT edge) are all kept.
    """

    def __init__(self, graph: Optional[Graph] = None):
        self._graph = nx.MultiDiGraph()
        if graph is not None:
            self.build_graph(graph)

    def build_graph(self, graph: Graph) -> None:
        """
        Build from an exported graph.

        Replaces internal graph state.
        """
        self._graph = nx.MultiDiGraph()

        for node in graph.nodes:
            self._graph.add_node(
                node.id,
                label=node.label,
                kind=node.kind.value,
                attributes=node.attributes
            )

        for edge in graph.edges:
            self._graph.add_edge(edge.source, edge.target, kind=edge.kind.value)

    def derivation_subgraph(self) -> nx.DiGraph:
        """SUPPORT and AGGREGATION edges only, collapsed to a simple digraph."""
        derivation = nx.DiGraph()
        derivation.add_nodes_from(self._graph.nodes(data=True))
        kinds = {kind.value for kind in DERIVATION_KINDS}
        for source, target, kind in self._graph.edges(data="kind"):
            if kind in kinds:
                derivation.add_edge(source, target)
        return derivation

    def compute_metrics(self) -> GraphMetrics:
        """Compute purely structural metrics."""
        if not self._graph:
            return GraphMetrics(0, 0, 0, 0)

        edges_by_kind: Dict[str, int] = {kind.value: 0 for kind in EdgeKind}
        for _, _, kind in self._graph.edges(data="kind"):
            edges_by_kind[kind] += 1

        kinds = [data for _, data in self._graph.nodes(data="kind")]

        return GraphMetrics(
            node_count=self._graph.number_of_nodes(),
            edge_count=self._graph.number_of_edges(),
            fact_count=kinds.count(NodeKind.FACT.value),
            rule_count=kinds.count(NodeKind.RULE.value),
            edges_by_kind=edges_by_kind,
            connected_components_count=nx.number_weakly_connected_components(self._graph),
            derivation_is_acyclic=nx.is_directed_acyclic_graph(self.derivation_subgraph())
        )

    def get_connected_components(self) -> List[Set[str]]:
        """Weakly connected components, as sets of node ids."""
        if not self._graph:
            return []
        return [set(c) for c in nx.weakly_connected_components(self._graph)]

    def derivation_ancestors(self, node_id: str) -> Set[str]:
        """Every node the given node was derived from, conflicts ignored."""
        derivation = self.derivation_subgraph()
        if node_id not in derivation:
            raise KeyError(node_id)
        return set(nx.ancestors(derivation, node_id))

    def clear(self):
        self._graph.clear()
