"""
Observability & Audit Layer

RESPONSIBILITY: Audit log, metrics, derivation lineage
ALLOWED INPUTS: Audit entries and measurements from other layers
OUTPUTS: AuditLog, Metrics, Lineage

WHAT THIS LAYER MUST NOT DO:
============================
- Modify inference behavior
- Filter or interpret events (only record them)
- Make decisions based on logged data
- Hold references to engine state (it receives immutable records)

BOUNDARY ENFORCEMENT:
=====================
- Receives immutable AuditLogEntry / MetricPoint records
- NEVER modifies events or system state
- Provides read-only access to logs, metrics and lineage
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional, Tuple
from enum import Enum
import hashlib
import itertools

# ONLY import from contracts - never from other layers' implementations
from ..contracts.base import Timestamp, TimeRange
from ..contracts.events import AuditLogEntry, AuditEventType, MetricPoint


LAYERS = ("inference", "engine", "api")


# =============================================================================
# LOG COLLECTORS (One per layer)
# =============================================================================

class LogCollector:
    """
    Append-only collector of audit entries for one layer.
    When max_entries is set the oldest entries are evicted first.
    """

    def __init__(self, layer_name: str, max_entries: Optional[int] = None):
        self._layer_name = layer_name
        self._entries: Deque[AuditLogEntry] = deque(maxlen=max_entries)

    def collect(self, entry: AuditLogEntry):
        self._entries.append(entry)

    def get_entries(
        self,
        time_range: Optional[TimeRange] = None,
        event_type: Optional[AuditEventType] = None
    ) -> List[AuditLogEntry]:
        """Get entries, optionally filtered."""
        entries = self._entries

        if time_range:
            entries = [e for e in entries if time_range.contains(e.timestamp)]

        if event_type:
            entries = [e for e in entries if e.event_type == event_type]

        return list(entries)

    @property
    def layer_name(self) -> str:
        return self._layer_name

    @property
    def entry_count(self) -> int:
        return len(self._entries)


# =============================================================================
# METRICS COLLECTOR
# =============================================================================

class MetricType(Enum):
    """Types of metrics collected."""
    COUNTER = "counter"
    GAUGE = "gauge"
    TIMING = "timing"


@dataclass
class MetricDefinition:
    """Definition of a metric to collect."""
    name: str
    metric_type: MetricType
    description: str
    labels: Tuple[str, ...] = field(default_factory=tuple)


class MetricsCollector:
    """
    Append-only time series of metric points, at most max_points per metric.
    """

    def __init__(self, max_points: Optional[int] = None):
        self._max_points = max_points
        self._metrics: Dict[str, Deque[MetricPoint]] = {}
        self._definitions: Dict[str, MetricDefinition] = {}
        self._register_default_metrics()

    def _register_default_metrics(self):
        defaults = [
            MetricDefinition(
                name="inference_passes",
                metric_type=MetricType.GAUGE,
                description="Fixed-point passes of the last build"
            ),
            MetricDefinition(
                name="facts_derived_total",
                metric_type=MetricType.COUNTER,
                description="Facts derived without aggregation"
            ),
            MetricDefinition(
                name="aggregations_total",
                metric_type=MetricType.COUNTER,
                description="Derivations merged into an existing logical fact"
            ),
            MetricDefinition(
                name="conflicts_total",
                metric_type=MetricType.COUNTER,
                description="Fact / negation pairs attacked"
            ),
            MetricDefinition(
                name="build_duration_ms",
                metric_type=MetricType.TIMING,
                description="Inference plus export time in milliseconds"
            ),
            MetricDefinition(
                name="graph_nodes",
                metric_type=MetricType.GAUGE,
                description="Nodes of the exported graph"
            ),
            MetricDefinition(
                name="graph_edges",
                metric_type=MetricType.GAUGE,
                description="Edges of the exported graph",
                labels=("kind",)
            ),
        ]

        for definition in defaults:
            self.register_metric(definition)

    def register_metric(self, definition: MetricDefinition):
        self._definitions[definition.name] = definition
        if definition.name not in self._metrics:
            self._metrics[definition.name] = deque(maxlen=self._max_points)

    def definition(self, metric_name: str) -> Optional[MetricDefinition]:
        return self._definitions.get(metric_name)

    def record(
        self,
        metric_name: str,
        value: float,
        labels: Optional[Dict[str, str]] = None
    ):
        """Record a metric data point."""
        if metric_name not in self._metrics:
            self._metrics[metric_name] = deque(maxlen=self._max_points)

        label_tuple = tuple(sorted(labels.items())) if labels else ()

        self._metrics[metric_name].append(MetricPoint(
            metric_name=metric_name,
            value=value,
            timestamp=Timestamp.now(),
            labels=label_tuple
        ))

    def get_metric(
        self,
        metric_name: str,
        time_range: Optional[TimeRange] = None
    ) -> List[MetricPoint]:
        points = self._metrics.get(metric_name, [])

        if time_range:
            points = [p for p in points if time_range.contains(p.timestamp)]

        return list(points)

    def get_latest(self, metric_name: str) -> Optional[MetricPoint]:
        points = self._metrics.get(metric_name, [])
        return points[-1] if points else None

    def compute_aggregates(
        self,
        metric_name: str,
        time_range: Optional[TimeRange] = None
    ) -> Dict[str, float]:
        """Compute aggregate statistics for a metric."""
        points = self.get_metric(metric_name, time_range)

        if not points:
            return {}

        values = [p.value for p in points]

        return {
            'count': len(values),
            'sum': sum(values),
            'min': min(values),
            'max': max(values),
            'avg': sum(values) / len(values),
        }


# =============================================================================
# LINEAGE TRACKER
# =============================================================================

@dataclass(frozen=True)
class LineageNode:
    """Immutable node in the lineage graph."""
    entity_id: str
    entity_type: str
    timestamp: Timestamp
    parent_ids: Tuple[str, ...] = field(default_factory=tuple)
    metadata: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)


class LineageTracker:
    """
    Derivation lineage of exported nodes.

    Every derived fact can be traced back to the rules and facts it came
    from. Lineage is keyed by exported node id and is replaced on each
    build (ids are only stable within one graph).
    """

    def __init__(self):
        self._nodes: Dict[str, LineageNode] = {}
        self._children: Dict[str, List[str]] = {}

    def record_lineage(
        self,
        entity_id: str,
        entity_type: str,
        parent_ids: Optional[List[str]] = None,
        metadata: Optional[Dict[str, str]] = None
    ) -> LineageNode:
        node = LineageNode(
            entity_id=entity_id,
            entity_type=entity_type,
            timestamp=Timestamp.now(),
            parent_ids=tuple(parent_ids) if parent_ids else (),
            metadata=tuple(metadata.items()) if metadata else ()
        )

        self._nodes[entity_id] = node
        for parent_id in node.parent_ids:
            self._children.setdefault(parent_id, []).append(entity_id)

        return node

    def get(self, entity_id: str) -> Optional[LineageNode]:
        return self._nodes.get(entity_id)

    def get_ancestors(self, entity_id: str) -> List[LineageNode]:
        """All ancestors of an entity, nearest first."""
        ancestors: List[LineageNode] = []
        visited = set()

        node = self._nodes.get(entity_id)
        queue = deque(node.parent_ids if node else ())

        while queue:
            eid = queue.popleft()
            if eid in visited:
                continue
            visited.add(eid)

            parent = self._nodes.get(eid)
            if parent:
                ancestors.append(parent)
                queue.extend(parent.parent_ids)

        return ancestors

    def get_descendants(self, entity_id: str) -> List[LineageNode]:
        """All descendants of an entity, nearest first."""
        descendants: List[LineageNode] = []
        visited = set()
        queue = deque(self._children.get(entity_id, ()))

        while queue:
            eid = queue.popleft()
            if eid in visited:
                continue
            visited.add(eid)

            child = self._nodes.get(eid)
            if child:
                descendants.append(child)
                queue.extend(self._children.get(eid, ()))

        return descendants

    def clear(self):
        self._nodes.clear()
        self._children.clear()


# =============================================================================
# OBSERVABILITY ENGINE (Orchestrates all observability)
# =============================================================================

@dataclass
class ObservabilityConfig:
    """Configuration for observability engine."""
    enable_metrics: bool = True
    enable_lineage: bool = True
    # per layer log and per metric series
    max_entries: Optional[int] = 10_000


class ObservabilityEngine:
    """
    Central Observability Engine.

    BOUNDARY ENFORCEMENT:
    - ONLY observes, never modifies
    - Provides read-only access to collected data
    """

    def __init__(self, config: Optional[ObservabilityConfig] = None):
        self._config = config or ObservabilityConfig()
        self._sequence = itertools.count()

        self._collectors: Dict[str, LogCollector] = {
            layer: LogCollector(layer, self._config.max_entries) for layer in LAYERS
        }
        self._metrics = MetricsCollector(self._config.max_entries) if self._config.enable_metrics else None
        self._lineage = LineageTracker() if self._config.enable_lineage else None

    def collect_audit(self, entry: AuditLogEntry):
        """Collect an audit log entry from any layer."""
        collector = self._collectors.get(entry.layer)
        if collector is None:
            collector = self._collectors[entry.layer] = LogCollector(
                entry.layer, self._config.max_entries
            )
        collector.collect(entry)

    def log_audit(
        self,
        action: str,
        entity_id: Optional[str] = None,
        outcome: str = "success",
        details: str = "",
        layer: str = "engine",
        event_type: AuditEventType = AuditEventType.SYSTEM
    ):
        """Helper to log audit entry directly."""
        entry_id = hashlib.sha256(
            f"{layer}_{action}|{next(self._sequence)}|{Timestamp.now().value.timestamp()}".encode()
        ).hexdigest()[:16]

        self.collect_audit(AuditLogEntry(
            entry_id=f"audit_{entry_id}",
            event_type=event_type,
            timestamp=Timestamp.now(),
            layer=layer,
            action=action,
            entity_id=entity_id,
            metadata=(
                ("outcome", outcome),
                ("details", details)
            )
        ))

    def collect_metric(
        self,
        metric_name: str,
        value: float,
        labels: Optional[Dict[str, str]] = None
    ):
        if self._metrics:
            self._metrics.record(metric_name, value, labels)

    def record_lineage(
        self,
        entity_id: str,
        entity_type: str,
        parent_ids: Optional[List[str]] = None,
        metadata: Optional[Dict[str, str]] = None
    ):
        if self._lineage:
            self._lineage.record_lineage(
                entity_id=entity_id,
                entity_type=entity_type,
                parent_ids=parent_ids,
                metadata=metadata
            )

    def reset_lineage(self):
        if self._lineage:
            self._lineage.clear()

    def get_unified_log(
        self,
        time_range: Optional[TimeRange] = None,
        layers: Optional[List[str]] = None
    ) -> List[AuditLogEntry]:
        """Get unified log from all or specified layers, oldest first."""
        target_layers = layers or list(self._collectors.keys())

        all_entries = []
        for layer_name in target_layers:
            collector = self._collectors.get(layer_name)
            if collector:
                all_entries.extend(collector.get_entries(time_range=time_range))

        # stable sort keeps per-layer order for equal timestamps
        all_entries.sort(key=lambda e: e.timestamp.value)
        return all_entries

    def get_layer_log(
        self,
        layer_name: str,
        time_range: Optional[TimeRange] = None
    ) -> List[AuditLogEntry]:
        collector = self._collectors.get(layer_name)
        if not collector:
            return []
        return collector.get_entries(time_range=time_range)

    def get_metrics(self) -> Optional[MetricsCollector]:
        return self._metrics

    def get_lineage(self) -> Optional[LineageTracker]:
        return self._lineage

    def generate_audit_report(
        self,
        time_range: Optional[TimeRange] = None
    ) -> Dict:
        """Summarize the audit log by layer and event type."""
        entries = self.get_unified_log(time_range=time_range)

        by_layer: Dict[str, int] = {}
        by_type: Dict[str, int] = {}

        for entry in entries:
            by_layer[entry.layer] = by_layer.get(entry.layer, 0) + 1
            by_type[entry.event_type.value] = by_type.get(entry.event_type.value, 0) + 1

        return {
            'total_entries': len(entries),
            'by_layer': by_layer,
            'by_event_type': by_type,
            'time_range': {
                'start': entries[0].timestamp.to_iso() if entries else None,
                'end': entries[-1].timestamp.to_iso() if entries else None,
            },
            'generated_at': Timestamp.now().to_iso()
        }
