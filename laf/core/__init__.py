"""
Inference Engine

RESPONSIBILITY: Fixed-point rule firing, support/aggregation of labels,
conflict detection between a fact and its negation
ALLOWED INPUTS: Facts, Rules, OperationTable
OUTPUTS: ArgumentativeGraph (edge map + conflict pairs)

WHAT THIS LAYER MUST NOT DO:
============================
- Assign exported identifiers or classify edges (exporter's job)
- Return a partial graph when a computation fails
- Share state between runs (every engine owns its arena)

IDENTITY MODEL:
===============
Every Fact and Rule is registered in a FactArena and addressed by a NodeRef.
The edge map is keyed by NodeRef, so graph identity never depends on label
values. Derivation and aggregation decisions use the logical key
(name, argument) through a separate index of live facts. Input facts that
share a key are aggregated into one canonical fact before the first pass.

AGGREGATION REBUILD:
====================
When a derivation hits an existing logical fact, a new canonical Fact is
created and the graph is rebuilt around it:
1. Edges into any superseded instance are redirected to the canonical fact
2. Superseded instances stop being graph keys
3. Facts derived (transitively) from a superseded instance are detached:
   removed from the graph and the live list, and the rules that produced
   them may fire again so they are re-derived from the canonical labels
4. Parents left without children are dropped
The walk in step 3 is an explicit worklist over NodeRefs.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set, Tuple
import hashlib

from ..contracts.base import ConvergenceError, Timestamp
from ..contracts.events import AuditLogEntry, AuditEventType
from ..contracts.knowledge import (
    ArgumentativeGraph, ConflictPair, Fact, KnowledgePiece, LabelVector,
    NodeRef, OperationTable, Rule
)
from ..algebra import LabelAlgebra


FactKey = Tuple[str, str]


@dataclass
class InferenceConfig:
    """Configuration for the inference engine."""
    max_passes: int = 10_000


@dataclass
class InferenceStats:
    """Counters of one engine run."""
    passes: int = 0
    derivations: int = 0
    aggregations: int = 0
    detachments: int = 0
    conflicts: int = 0


# =============================================================================
# FACT ARENA
# =============================================================================

class FactArena:
    """
    Owns every knowledge piece of one engine run.

    Each Fact and Rule gets a unique integer index at registration; the
    returned NodeRef is the only identity the graph uses.
    """

    def __init__(self):
        self._facts: List[Fact] = []
        self._rules: List[Rule] = []

    def add_fact(self, fact: Fact) -> NodeRef:
        self._facts.append(fact)
        return NodeRef.fact(len(self._facts) - 1)

    def create_fact(self, name: str, argument: str, attributes: LabelVector) -> NodeRef:
        return self.add_fact(Fact(name, argument, attributes))

    def add_rule(self, rule: Rule) -> NodeRef:
        self._rules.append(rule)
        return NodeRef.rule(len(self._rules) - 1)

    def fact(self, ref: NodeRef) -> Fact:
        return self._facts[ref.index]

    def rule(self, ref: NodeRef) -> Rule:
        return self._rules[ref.index]

    def get(self, ref: NodeRef) -> KnowledgePiece:
        return self.fact(ref) if ref.is_fact else self.rule(ref)

    def pieces(self) -> Dict[NodeRef, KnowledgePiece]:
        pieces: Dict[NodeRef, KnowledgePiece] = {}
        for index, rule in enumerate(self._rules):
            pieces[NodeRef.rule(index)] = rule
        for index, fact in enumerate(self._facts):
            pieces[NodeRef.fact(index)] = fact
        return pieces


# =============================================================================
# INFERENCE ENGINE
# =============================================================================

class InferenceEngine:
    """
    Forward-chaining engine over a labeled program.

    The engine takes ownership of the Fact and Rule instances it is given:
    derived labels and conflict deltas are written into them. Callers that
    need their inputs untouched pass clones (ArgumentationBackend does).
    """

    def __init__(
        self,
        facts: Sequence[Fact],
        rules: Sequence[Rule],
        operations: OperationTable,
        config: Optional[InferenceConfig] = None,
        algebra: Optional[LabelAlgebra] = None
    ):
        self._config = config or InferenceConfig()
        self._algebra = algebra or LabelAlgebra(operations)
        self._arena = FactArena()

        self._stats = InferenceStats()
        self._audit_log: List[AuditLogEntry] = []
        self._graph: Optional[ArgumentativeGraph] = None

        self._live: List[NodeRef] = []
        self._index: Dict[FactKey, List[NodeRef]] = {}
        grouped: Dict[FactKey, List[NodeRef]] = {}
        for fact in facts:
            grouped.setdefault(fact.key, []).append(self._arena.add_fact(fact))
        for refs in grouped.values():
            if len(refs) == 1:
                self._make_live(refs[0])
            else:
                self._merge_inputs(refs)
        self._inputs: Set[NodeRef] = set(self._live)
        self._rules: List[NodeRef] = [self._arena.add_rule(rule) for rule in rules]

        self._edges: Dict[NodeRef, List[NodeRef]] = {}
        self._fired: Set[Tuple[NodeRef, str]] = set()
        self._absorbed: Dict[FactKey, List[NodeRef]] = {}
        self._conflicts: List[ConflictPair] = []

    # =========================================================================
    # PUBLIC INTERFACE
    # =========================================================================

    def build_graph(self) -> ArgumentativeGraph:
        """
        Fire rules until a full pass changes nothing, then resolve conflicts.

        Raises ConvergenceError if the fixed point is not reached within
        config.max_passes passes.
        """
        if self._graph is not None:
            return self._graph

        arguments = list(dict.fromkeys(self._arena.fact(ref).argument for ref in self._live))

        changed = True
        while changed:
            if self._stats.passes >= self._config.max_passes:
                raise ConvergenceError(
                    f"No fixed point after {self._config.max_passes} passes",
                    max_passes=self._config.max_passes
                )
            self._stats.passes += 1
            changed = False

            for argument in arguments:
                for rule_ref in self._rules:
                    if self._fire(rule_ref, argument):
                        changed = True

        self._resolve_conflicts()

        self._graph = ArgumentativeGraph(
            pieces=self._arena.pieces(),
            edges={parent: list(children) for parent, children in self._edges.items()},
            conflicts=list(self._conflicts)
        )
        return self._graph

    @property
    def facts(self) -> List[Fact]:
        """Live facts, in the order they became live."""
        return [self._arena.fact(ref) for ref in self._live]

    @property
    def stats(self) -> InferenceStats:
        return self._stats

    def get_audit_log(self) -> List[AuditLogEntry]:
        return list(self._audit_log)

    # =========================================================================
    # RULE FIRING
    # =========================================================================

    def _fire(self, rule_ref: NodeRef, argument: str) -> bool:
        """Fire rule for argument if its body holds and it has not fired yet."""
        if (rule_ref, argument) in self._fired:
            return False

        rule = self._arena.rule(rule_ref)
        premises = self._match_body(rule, argument)
        if premises is None:
            return False

        self._fired.add((rule_ref, argument))
        key = (rule.head, argument)

        if self._exists(key):
            self._aggregate(rule_ref, premises, key)
        else:
            ref = self._derive(rule_ref, premises, key)
            self._make_live(ref)
            self._stats.derivations += 1
            self._audit(AuditEventType.DERIVATION, "derive", ref)
        return True

    def _match_body(self, rule: Rule, argument: str) -> Optional[List[NodeRef]]:
        """
        Premises for rule at argument, or None if some literal is unmatched.
        Every live fact matching a literal is a premise.
        """
        premises: List[NodeRef] = []
        for literal in rule.body:
            matches = self._index.get((literal, argument))
            if not matches:
                return None
            premises.extend(matches)
        return premises

    def _exists(self, key: FactKey) -> bool:
        return bool(self._index.get(key)) or bool(self._graph_occurrences(key))

    def _derive(self, rule_ref: NodeRef, premises: List[NodeRef], key: FactKey) -> NodeRef:
        """Create the fact produced by rule and wire its support edges."""
        rule = self._arena.rule(rule_ref)
        labels = self._algebra.support(
            [self._arena.fact(premise).attributes for premise in premises],
            rule.attributes
        )
        ref = self._arena.create_fact(key[0], key[1], labels)

        self._add_edge(rule_ref, ref)
        for premise in premises:
            self._add_edge(premise, ref)
        return ref

    # =========================================================================
    # AGGREGATION
    # =========================================================================

    def _aggregate(self, rule_ref: NodeRef, premises: List[NodeRef], key: FactKey):
        """Merge a new derivation of key with the instances that already exist."""
        previous = list(self._index.get(key, ()))
        if not previous:
            previous = self._graph_occurrences(key)

        candidate = self._derive(rule_ref, premises, key)
        merged = self._algebra.aggregate(
            [self._arena.fact(ref).attributes for ref in [candidate] + previous]
        )
        canonical = self._arena.create_fact(key[0], key[1], merged)

        for ref in previous:
            if ref in self._inputs:
                self._absorbed.setdefault(key, []).append(ref)
            self._retire(ref)
        self._make_live(canonical)

        self._rebuild(key, canonical)

        self._stats.aggregations += 1
        self._audit(
            AuditEventType.AGGREGATION, "aggregate", canonical,
            merged_instances=str(len(previous) + 1)
        )

    def _merge_inputs(self, refs: List[NodeRef]):
        """Collapse input facts sharing one logical key into a single live fact."""
        first = self._arena.fact(refs[0])
        merged = self._algebra.aggregate([self._arena.fact(ref).attributes for ref in refs])
        canonical = self._arena.create_fact(first.name, first.argument, merged)
        self._make_live(canonical)

        self._stats.aggregations += 1
        self._audit(
            AuditEventType.AGGREGATION, "merge_inputs", canonical,
            merged_instances=str(len(refs))
        )

    def _rebuild(self, key: FactKey, canonical: NodeRef):
        """Redirect the graph to canonical and detach stale derivations."""
        stale: Dict[NodeRef, None] = {}
        for ref in self._graph_nodes():
            if ref.is_fact and ref != canonical and self._arena.fact(ref).key == key:
                stale[ref] = None

        doomed = self._descendants(stale, canonical)
        producers = {
            ref: [parent for parent in self._parents(ref) if parent.is_rule]
            for ref in doomed
        }

        for parent in list(self._edges):
            if parent in stale or parent in doomed:
                del self._edges[parent]
                continue

            children: List[NodeRef] = []
            redirected = False
            for child in self._edges[parent]:
                if child in stale:
                    if not redirected:
                        children.append(canonical)
                        redirected = True
                elif child not in doomed:
                    children.append(child)

            if children:
                self._edges[parent] = children
            else:
                del self._edges[parent]

        for ref in doomed:
            self._detach(ref, producers[ref])

    def _descendants(self, stale: Dict[NodeRef, None], canonical: NodeRef) -> Dict[NodeRef, None]:
        """Facts reachable from a stale key, via an explicit worklist."""
        doomed: Dict[NodeRef, None] = {}
        work = [child for ref in stale for child in self._edges.get(ref, ())]
        work.reverse()

        while work:
            ref = work.pop()
            if ref in stale or ref == canonical or ref in doomed:
                continue
            doomed[ref] = None
            work.extend(reversed(self._edges.get(ref, ())))
        return doomed

    def _detach(self, ref: NodeRef, producers: List[NodeRef]):
        """Drop a stale derivation so its producing rules can fire again."""
        fact = self._arena.fact(ref)
        for rule_ref in producers:
            self._fired.discard((rule_ref, fact.argument))

        self._retire(ref)
        for restored in self._absorbed.pop(fact.key, ()):
            self._make_live(restored)

        self._stats.detachments += 1
        self._audit(AuditEventType.DETACHMENT, "detach", ref)

    # =========================================================================
    # CONFLICT RESOLUTION
    # =========================================================================

    def _resolve_conflicts(self):
        """Weaken every fact that holds together with its explicit negation."""
        negated = [ref for ref in self._live if self._arena.fact(ref).is_negated]

        for negated_ref in negated:
            nf = self._arena.fact(negated_ref)
            for ref in list(self._live):
                fact = self._arena.fact(ref)
                if fact.name != nf.positive_name or fact.argument != nf.argument:
                    continue

                negated_delta = self._algebra.attack(nf.attributes, fact.attributes)
                positive_delta = self._algebra.attack(fact.attributes, nf.attributes)
                nf.delta_attributes = negated_delta
                fact.delta_attributes = positive_delta

                self._conflicts.append(ConflictPair(negated=negated_ref, positive=ref))
                self._stats.conflicts += 1
                self._audit(
                    AuditEventType.CONFLICT, "attack", negated_ref,
                    attacked=fact.label
                )

    # =========================================================================
    # GRAPH AND LIVE-LIST BOOKKEEPING
    # =========================================================================

    def _add_edge(self, parent: NodeRef, child: NodeRef):
        self._edges.setdefault(parent, []).append(child)

    def _parents(self, child: NodeRef) -> List[NodeRef]:
        return [parent for parent, children in self._edges.items() if child in children]

    def _graph_nodes(self) -> List[NodeRef]:
        nodes: Dict[NodeRef, None] = {}
        for parent, children in self._edges.items():
            nodes.setdefault(parent)
            for child in children:
                nodes.setdefault(child)
        return list(nodes)

    def _graph_occurrences(self, key: FactKey) -> List[NodeRef]:
        return [
            ref for ref in self._graph_nodes()
            if ref.is_fact and self._arena.fact(ref).key == key
        ]

    def _make_live(self, ref: NodeRef):
        self._live.append(ref)
        self._index.setdefault(self._arena.fact(ref).key, []).append(ref)

    def _retire(self, ref: NodeRef):
        if ref in self._live:
            self._live.remove(ref)
        key = self._arena.fact(ref).key
        instances = self._index.get(key)
        if instances and ref in instances:
            instances.remove(ref)
            if not instances:
                del self._index[key]

    def _audit(self, event_type: AuditEventType, action: str, ref: NodeRef, **metadata: str):
        fact = self._arena.fact(ref)
        sequence = len(self._audit_log)
        entry_id = hashlib.sha256(
            f"inference_{action}|{sequence}|{fact.label}".encode()
        ).hexdigest()[:16]

        self._audit_log.append(AuditLogEntry(
            entry_id=f"audit_{entry_id}",
            event_type=event_type,
            timestamp=Timestamp.now(),
            layer="inference",
            action=action,
            entity_id=fact.label,
            entity_type="fact",
            metadata=(("labels", " | ".join(fact.attributes or ())),) + tuple(metadata.items())
        ))
