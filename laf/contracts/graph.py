"""
Exported Graph Contracts

Immutable node and edge records produced by the graph exporter. These are
the only graph types that leave the core; identifiers (F1, R1, ...) are
assigned here, never inside the inference engine.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Tuple


class NodeKind(Enum):
    """Tag of the knowledge-piece variant."""
    FACT = "FACT"
    RULE = "RULE"


class EdgeKind(Enum):
    """Classification of exported edges."""
    SUPPORT = "SUPPORT"
    AGGREGATION = "AGGREGATION"
    CONFLICT = "CONFLICT"


@dataclass(frozen=True)
class GraphNode:
    """Immutable exported node."""
    id: str
    label: str
    kind: NodeKind
    attributes: Tuple[str, ...] = field(default_factory=tuple)
    delta_attributes: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "kind": self.kind.value,
            "attributes": list(self.attributes),
            "deltaAttributes": list(self.delta_attributes),
        }


@dataclass(frozen=True)
class GraphEdge:
    """Immutable exported edge between two node identifiers."""
    source: str
    target: str
    kind: EdgeKind

    def to_dict(self) -> Dict[str, Any]:
        return {"from": self.source, "to": self.target, "kind": self.kind.value}


@dataclass(frozen=True)
class Graph:
    """
    Exported argumentation graph.

    Nodes keep first-seen order; edges keep derivation order followed by
    conflict edges.
    """
    nodes: Tuple[GraphNode, ...] = field(default_factory=tuple)
    edges: Tuple[GraphEdge, ...] = field(default_factory=tuple)

    def node(self, node_id: str) -> GraphNode:
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise KeyError(node_id)

    def nodes_labeled(self, label: str) -> List[GraphNode]:
        return [node for node in self.nodes if node.label == label]

    def edges_of_kind(self, kind: EdgeKind) -> List[GraphEdge]:
        return [edge for edge in self.edges if edge.kind == kind]

    def iter_facts(self) -> Iterator[GraphNode]:
        return (node for node in self.nodes if node.kind == NodeKind.FACT)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
        }
