"""
Graph Exporter

RESPONSIBILITY: Turn the engine's edge map and conflict pairs into typed
nodes and edges with identifiers
ALLOWED INPUTS: ArgumentativeGraph
OUTPUTS: Graph (immutable GraphNode / GraphEdge records)

WHAT THIS LAYER MUST NOT DO:
============================
- Mutate the ArgumentativeGraph or any knowledge piece
- Run inference or recompute labels
- Reorder nodes (identifiers follow first-encounter order)

EDGE CLASSIFICATION:
====================
The kind of a derivation edge depends on every parent of its child, not
only on the edge's own parent:
- any Rule parent                 -> SUPPORT
- non-empty, all parents Facts    -> AGGREGATION
- otherwise                       -> SUPPORT
Each conflict pair yields two CONFLICT edges, one per direction.
"""

from __future__ import annotations
from typing import Dict, List

from ..contracts.graph import EdgeKind, Graph, GraphEdge, GraphNode, NodeKind
from ..contracts.knowledge import ArgumentativeGraph, KnowledgePiece, NodeRef


FACT_PREFIX = "F"
RULE_PREFIX = "R"


class GraphExporter:
    """Exports one ArgumentativeGraph; stateless between calls."""

    def export(self, graph: ArgumentativeGraph) -> Graph:
        order = self._collect_nodes(graph)
        ids = self._assign_ids(order)

        nodes = tuple(
            self._node(ids[ref], graph.pieces[ref])
            for ref in order
        )

        parents = self._parents_by_child(graph)
        edges: List[GraphEdge] = []

        for parent, children in graph.edges.items():
            for child in children:
                if parent not in ids or child not in ids:
                    continue
                edges.append(GraphEdge(
                    source=ids[parent],
                    target=ids[child],
                    kind=self._classify(parents.get(child, []))
                ))

        for pair in graph.conflicts:
            if pair.negated not in ids or pair.positive not in ids:
                continue
            edges.append(GraphEdge(ids[pair.negated], ids[pair.positive], EdgeKind.CONFLICT))
            edges.append(GraphEdge(ids[pair.positive], ids[pair.negated], EdgeKind.CONFLICT))

        return Graph(nodes=nodes, edges=tuple(edges))

    # =========================================================================
    # NODES
    # =========================================================================

    @staticmethod
    def _collect_nodes(graph: ArgumentativeGraph) -> List[NodeRef]:
        """All keys, then all children, then conflict members; first encounter wins."""
        seen: Dict[NodeRef, None] = dict.fromkeys(graph.edges)
        for children in graph.edges.values():
            for child in children:
                seen.setdefault(child)
        for pair in graph.conflicts:
            seen.setdefault(pair.negated)
            seen.setdefault(pair.positive)
        return [ref for ref in seen if ref in graph.pieces]

    @staticmethod
    def _assign_ids(order: List[NodeRef]) -> Dict[NodeRef, str]:
        ids: Dict[NodeRef, str] = {}
        facts = rules = 0
        for ref in order:
            if ref.is_rule:
                rules += 1
                ids[ref] = f"{RULE_PREFIX}{rules}"
            else:
                facts += 1
                ids[ref] = f"{FACT_PREFIX}{facts}"
        return ids

    @staticmethod
    def _node(node_id: str, piece: KnowledgePiece) -> GraphNode:
        return GraphNode(
            id=node_id,
            label=piece.label,
            kind=piece.kind,
            attributes=tuple(piece.attributes or ()),
            delta_attributes=tuple(piece.delta_attributes or ())
        )

    # =========================================================================
    # EDGES
    # =========================================================================

    @staticmethod
    def _parents_by_child(graph: ArgumentativeGraph) -> Dict[NodeRef, List[NodeRef]]:
        parents: Dict[NodeRef, List[NodeRef]] = {}
        for parent, children in graph.edges.items():
            for child in children:
                parents.setdefault(child, []).append(parent)
        return parents

    @staticmethod
    def _classify(parents: List[NodeRef]) -> EdgeKind:
        if any(parent.kind == NodeKind.RULE for parent in parents):
            return EdgeKind.SUPPORT
        if parents:
            return EdgeKind.AGGREGATION
        return EdgeKind.SUPPORT
