"""
Knowledge Model Contracts

Facts, rules and the per-label operation table, plus the internal graph the
inference engine hands to the exporter.

IDENTITY:
=========
- Logical identity of a Fact is (name, argument), see Fact.key
- Graph identity is a NodeRef handed out by the engine's arena; two Facts
  with the same key are still distinct graph nodes
- Fact and Rule compare by instance, never by value
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import ClassVar, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from .graph import NodeKind


LabelVector = Tuple[str, ...]

NEGATION_MARKER = "~"


def as_label_vector(values: Optional[Iterable[object]]) -> Optional[LabelVector]:
    """Render any sequence of label values as a tuple of strings."""
    if values is None:
        return None
    return tuple(str(value) for value in values)


# =============================================================================
# KNOWLEDGE PIECES (tagged variant: Fact | Rule)
# =============================================================================

@dataclass(eq=False)
class Fact:
    """
    Atomic statement name(argument) with a label vector.

    attributes holds the labels as produced or assigned; delta_attributes
    holds the labels after conflict weakening and equals attributes until
    conflict resolution runs.
    """
    name: str
    argument: str
    attributes: Optional[LabelVector] = None
    delta_attributes: Optional[LabelVector] = None

    kind: ClassVar[NodeKind] = NodeKind.FACT

    def __post_init__(self):
        self.attributes = as_label_vector(self.attributes)
        if self.delta_attributes is None:
            self.delta_attributes = self.attributes
        else:
            self.delta_attributes = as_label_vector(self.delta_attributes)

    @property
    def key(self) -> Tuple[str, str]:
        return (self.name, self.argument)

    @property
    def is_negated(self) -> bool:
        return NEGATION_MARKER in self.name

    @property
    def positive_name(self) -> str:
        return self.name.replace(NEGATION_MARKER, "")

    @property
    def label(self) -> str:
        return f"{self.name}({self.argument})"

    def set_attributes(self, attributes: Sequence[str]):
        self.attributes = as_label_vector(attributes)
        self.delta_attributes = self.attributes

    def clone(self) -> Fact:
        return Fact(self.name, self.argument, self.attributes, self.delta_attributes)

    def __str__(self) -> str:
        return f"{self.label}. {list(self.attributes or ())} {list(self.delta_attributes or ())}"


@dataclass(eq=False)
class Rule:
    """
    Rule head :- body1, body2, ... over a single shared variable.
    The label vector is the rule's own weight.
    """
    head: str
    body: Tuple[str, ...]
    attributes: Optional[LabelVector] = None
    delta_attributes: Optional[LabelVector] = None

    kind: ClassVar[NodeKind] = NodeKind.RULE

    def __post_init__(self):
        self.body = tuple(self.body)
        self.attributes = as_label_vector(self.attributes)
        if self.delta_attributes is None:
            self.delta_attributes = self.attributes
        else:
            self.delta_attributes = as_label_vector(self.delta_attributes)

    @property
    def label(self) -> str:
        body = ", ".join(f"{literal}(X)" for literal in self.body)
        return f"{self.head}(X) :- {body}"

    def set_attributes(self, attributes: Sequence[str]):
        self.attributes = as_label_vector(attributes)
        self.delta_attributes = self.attributes

    def clone(self) -> Rule:
        return Rule(self.head, self.body, self.attributes, self.delta_attributes)

    def __str__(self) -> str:
        return f"{self.label}. {list(self.attributes or ())} {list(self.delta_attributes or ())}"


KnowledgePiece = Union[Fact, Rule]


@dataclass(frozen=True)
class NodeRef:
    """Handle of a knowledge piece inside one engine run."""
    kind: NodeKind
    index: int

    @staticmethod
    def fact(index: int) -> NodeRef:
        return NodeRef(NodeKind.FACT, index)

    @staticmethod
    def rule(index: int) -> NodeRef:
        return NodeRef(NodeKind.RULE, index)

    @property
    def is_fact(self) -> bool:
        return self.kind == NodeKind.FACT

    @property
    def is_rule(self) -> bool:
        return self.kind == NodeKind.RULE


# =============================================================================
# OPERATION TABLE
# =============================================================================

@dataclass(frozen=True)
class OperationSet:
    """Support, aggregation and conflict expressions for one label dimension."""
    support: str
    aggregation: str
    conflict: str
    label_name: Optional[str] = None


@dataclass(frozen=True)
class OperationTable:
    """Ordered operation sets; position i governs label dimension i."""
    operations: Tuple[OperationSet, ...] = field(default_factory=tuple)

    @staticmethod
    def of(*operations: OperationSet) -> OperationTable:
        return OperationTable(operations=tuple(operations))

    @property
    def dimensions(self) -> int:
        return len(self.operations)

    @property
    def is_empty(self) -> bool:
        return not self.operations

    def __len__(self) -> int:
        return len(self.operations)

    def __iter__(self) -> Iterator[OperationSet]:
        return iter(self.operations)

    def __getitem__(self, index: int) -> OperationSet:
        return self.operations[index]


# =============================================================================
# INTERNAL GRAPH (engine output, exporter input)
# =============================================================================

@dataclass(frozen=True)
class ConflictPair:
    """A negated fact and the fact it contradicts (negated first)."""
    negated: NodeRef
    positive: NodeRef


@dataclass
class ArgumentativeGraph:
    """
    Edge map from parent pieces to the child Facts they produced or fed,
    plus the conflict pairs found after the fixed point.
    """
    pieces: Dict[NodeRef, KnowledgePiece] = field(default_factory=dict)
    edges: Dict[NodeRef, List[NodeRef]] = field(default_factory=dict)
    conflicts: List[ConflictPair] = field(default_factory=list)

    def piece(self, ref: NodeRef) -> Optional[KnowledgePiece]:
        return self.pieces.get(ref)

    def parents_of(self, child: NodeRef) -> List[NodeRef]:
        return [parent for parent, children in self.edges.items() if child in children]

    def facts(self) -> List[Fact]:
        """Facts that appear as graph nodes (keys, children or conflicts)."""
        seen: Dict[NodeRef, None] = {}
        for parent, children in self.edges.items():
            seen.setdefault(parent)
            for child in children:
                seen.setdefault(child)
        for pair in self.conflicts:
            seen.setdefault(pair.negated)
            seen.setdefault(pair.positive)
        return [self.pieces[ref] for ref in seen if ref.is_fact and ref in self.pieces]


# =============================================================================
# PROGRAM CONTEXT (explicit replacement for a "current program" global)
# =============================================================================

@dataclass
class ProgramContext:
    """The program a caller has loaded: facts, rules and operation table."""
    facts: List[Fact] = field(default_factory=list)
    rules: List[Rule] = field(default_factory=list)
    operations: Optional[OperationTable] = None

    def load_program(self, facts: Sequence[Fact], rules: Sequence[Rule]):
        self.facts = list(facts)
        self.rules = list(rules)

    def load_operations(self, operations: Optional[OperationTable]):
        self.operations = operations
