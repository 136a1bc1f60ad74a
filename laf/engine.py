"""
Engine Orchestration Module

This module provides the public build operation and coordinates the
inference, export and observability layers.

DESIGN PRINCIPLES:
==================
1. Configuration errors are rejected before any computation
2. Every build owns private copies of its facts and rules
3. All builds are traceable through observability
4. A failed build propagates its error; no partial graph is returned
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence
import time

from .contracts.base import ConfigurationError, ErrorCode, LafError
from .contracts.events import AuditEventType
from .contracts.graph import EdgeKind, Graph
from .contracts.knowledge import Fact, OperationTable, ProgramContext, Rule
from .core import InferenceConfig, InferenceEngine, InferenceStats
from .export import GraphExporter
from .observability import ObservabilityConfig, ObservabilityEngine


@dataclass
class BackendConfig:
    """Unified configuration for the argumentation backend."""
    inference: Optional[InferenceConfig] = None
    observability: Optional[ObservabilityConfig] = None

    def __post_init__(self):
        self.inference = self.inference or InferenceConfig()
        self.observability = self.observability or ObservabilityConfig()


class ArgumentationBackend:
    """
    Unified backend for labeled argumentation graphs.

    LAYER FLOW:
    ===========
    1. Validation: operation table, label dimensions, rule bodies
    2. Inference: Facts + Rules -> ArgumentativeGraph
    3. Export: ArgumentativeGraph -> Graph
    4. Observability: records audit entries, metrics and lineage

    NO LAYER BYPASSES THIS FLOW.
    """

    def __init__(self, config: Optional[BackendConfig] = None):
        self._config = config or BackendConfig()
        self._exporter = GraphExporter()
        self._observability = ObservabilityEngine(self._config.observability)
        self._last_stats: Optional[InferenceStats] = None

    # =========================================================================
    # BUILD INTERFACE
    # =========================================================================

    def build(
        self,
        facts: Sequence[Fact],
        rules: Sequence[Rule],
        operations: Optional[OperationTable]
    ) -> Graph:
        """
        Derive to a fixed point, resolve conflicts and export the graph.

        The given facts and rules are never mutated.

        Raises:
            ConfigurationError: missing operation table, label vectors that
                do not match it, or a rule without body literals
            UnsupportedOperatorError: a symbolic operator other than
                Union / Intersection applies to a non-numeric dimension
            ExpressionEvaluationError: a numeric formula failed to evaluate
            ConvergenceError: no fixed point within the pass limit
        """
        started = time.perf_counter()
        try:
            self.validate(facts, rules, operations)

            engine = InferenceEngine(
                [fact.clone() for fact in facts],
                [rule.clone() for rule in rules],
                operations,
                config=self._config.inference
            )
            try:
                internal = engine.build_graph()
            finally:
                for entry in engine.get_audit_log():
                    self._observability.collect_audit(entry)

            graph = self._exporter.export(internal)
        except LafError as e:
            self._observability.log_audit(
                action="build",
                entity_id=e.code.name,
                outcome="failure",
                details=str(e),
                event_type=AuditEventType.ERROR
            )
            raise

        duration_ms = (time.perf_counter() - started) * 1000.0
        self._last_stats = engine.stats
        self._record(graph, engine.stats, duration_ms)
        return graph

    def build_context(self, context: ProgramContext) -> Graph:
        """Build from a loaded program."""
        return self.build(context.facts, context.rules, context.operations)

    @staticmethod
    def validate(
        facts: Sequence[Fact],
        rules: Sequence[Rule],
        operations: Optional[OperationTable]
    ):
        """Reject a program that cannot be evaluated against the operation table."""
        if operations is None or operations.is_empty:
            raise ConfigurationError(
                "No label operations configured",
                code=ErrorCode.MISSING_OPERATIONS
            )

        dimensions = operations.dimensions
        for piece in list(facts) + list(rules):
            size = len(piece.attributes) if piece.attributes is not None else 0
            if size != dimensions:
                raise ConfigurationError(
                    f"{piece.label} has {size} labels, expected {dimensions}",
                    code=ErrorCode.DIMENSION_MISMATCH,
                    piece=piece.label
                )

        for rule in rules:
            if not rule.body:
                raise ConfigurationError(
                    f"Rule for {rule.head!r} has an empty body",
                    code=ErrorCode.EMPTY_RULE_BODY,
                    head=rule.head
                )

    # =========================================================================
    # OBSERVABILITY INTERFACE
    # =========================================================================

    def _record(self, graph: Graph, stats: InferenceStats, duration_ms: float):
        obs = self._observability

        obs.collect_metric("inference_passes", float(stats.passes))
        obs.collect_metric("facts_derived_total", float(stats.derivations))
        obs.collect_metric("aggregations_total", float(stats.aggregations))
        obs.collect_metric("conflicts_total", float(stats.conflicts))
        obs.collect_metric("build_duration_ms", duration_ms)
        obs.collect_metric("graph_nodes", float(len(graph.nodes)))
        for kind in EdgeKind:
            obs.collect_metric(
                "graph_edges",
                float(len(graph.edges_of_kind(kind))),
                {"kind": kind.value}
            )

        parents: Dict[str, List[str]] = {}
        for edge in graph.edges:
            if edge.kind != EdgeKind.CONFLICT:
                parents.setdefault(edge.target, []).append(edge.source)

        obs.reset_lineage()
        for node in graph.nodes:
            obs.record_lineage(
                entity_id=node.id,
                entity_type=node.kind.value.lower(),
                parent_ids=parents.get(node.id),
                metadata={"label": node.label}
            )

        obs.log_audit(
            action="build",
            outcome="success",
            details=f"{len(graph.nodes)} nodes, {len(graph.edges)} edges, {stats.passes} passes",
            event_type=AuditEventType.BUILD
        )

    def get_audit_log(self, layers: Optional[List[str]] = None) -> List:
        return self._observability.get_unified_log(layers=layers)

    def get_audit_report(self) -> Dict:
        return self._observability.generate_audit_report()

    def get_metrics(self):
        return self._observability.get_metrics()

    def get_lineage(self):
        return self._observability.get_lineage()

    @property
    def last_stats(self) -> Optional[InferenceStats]:
        """Counters of the last successful build."""
        return self._last_stats

    @property
    def observability_layer(self) -> ObservabilityEngine:
        return self._observability


def build(
    facts: Sequence[Fact],
    rules: Sequence[Rule],
    operations: Optional[OperationTable],
    config: Optional[BackendConfig] = None
) -> Graph:
    """One-shot build with a fresh backend."""
    return ArgumentationBackend(config).build(facts, rules, operations)
