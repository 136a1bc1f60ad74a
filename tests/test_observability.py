"""
Observability Tests
===================

Collectors are append-only and only record what they are given.
"""

from datetime import timedelta

from laf.contracts.base import Timestamp, TimeRange
from laf.contracts.events import AuditEventType, AuditLogEntry
from laf.observability import (
    LineageTracker,
    LogCollector,
    MetricsCollector,
    ObservabilityConfig,
    ObservabilityEngine,
)


def entry(entry_id: str, event_type=AuditEventType.DERIVATION, layer="inference") -> AuditLogEntry:
    return AuditLogEntry(
        entry_id=entry_id,
        event_type=event_type,
        timestamp=Timestamp.now(),
        layer=layer,
        action="derive"
    )


class TestLogCollector:

    def test_collect_and_filter(self):
        collector = LogCollector("inference")
        collector.collect(entry("a"))
        collector.collect(entry("b", AuditEventType.AGGREGATION))

        assert collector.entry_count == 2
        assert [e.entry_id for e in collector.get_entries(event_type=AuditEventType.AGGREGATION)] == ["b"]

    def test_time_range_filter(self):
        collector = LogCollector("inference")
        collector.collect(entry("a"))

        now = Timestamp.now().value
        past = TimeRange(Timestamp(now - timedelta(days=2)), Timestamp(now - timedelta(days=1)))
        assert collector.get_entries(time_range=past) == []

    def test_entries_are_copies(self):
        collector = LogCollector("inference")
        collector.collect(entry("a"))
        collector.get_entries().clear()
        assert collector.entry_count == 1

    def test_oldest_entries_are_evicted(self):
        collector = LogCollector("inference", max_entries=2)
        for entry_id in ("a", "b", "c"):
            collector.collect(entry(entry_id))

        assert collector.entry_count == 2
        assert [e.entry_id for e in collector.get_entries()] == ["b", "c"]


class TestMetricsCollector:

    def test_default_metrics_are_registered(self):
        metrics = MetricsCollector()
        for name in ("inference_passes", "facts_derived_total", "aggregations_total",
                     "conflicts_total", "build_duration_ms", "graph_nodes", "graph_edges"):
            assert metrics.definition(name) is not None
            assert metrics.get_metric(name) == []

    def test_record_and_aggregate(self):
        metrics = MetricsCollector()
        metrics.record("inference_passes", 2.0)
        metrics.record("inference_passes", 4.0)

        assert metrics.get_latest("inference_passes").value == 4.0
        assert metrics.compute_aggregates("inference_passes") == {
            "count": 2, "sum": 6.0, "min": 2.0, "max": 4.0, "avg": 3.0
        }

    def test_labels_are_sorted(self):
        metrics = MetricsCollector()
        metrics.record("graph_edges", 1.0, {"kind": "SUPPORT", "build": "1"})
        assert metrics.get_latest("graph_edges").labels == (("build", "1"), ("kind", "SUPPORT"))

    def test_unknown_metric(self):
        metrics = MetricsCollector()
        assert metrics.get_latest("missing") is None
        assert metrics.compute_aggregates("missing") == {}

    def test_series_are_bounded(self):
        metrics = MetricsCollector(max_points=3)
        for value in range(5):
            metrics.record("graph_nodes", float(value))
        metrics.record("custom", 1.0)

        assert [p.value for p in metrics.get_metric("graph_nodes")] == [2.0, 3.0, 4.0]
        assert metrics.get_latest("graph_nodes").value == 4.0
        assert len(metrics.get_metric("custom")) == 1


class TestLineageTracker:

    def test_ancestors_and_descendants(self):
        lineage = LineageTracker()
        lineage.record_lineage("R1", "rule")
        lineage.record_lineage("F2", "fact")
        lineage.record_lineage("F1", "fact", parent_ids=["R1", "F2"])
        lineage.record_lineage("F3", "fact", parent_ids=["F1"])

        assert [n.entity_id for n in lineage.get_ancestors("F3")] == ["F1", "R1", "F2"]
        assert [n.entity_id for n in lineage.get_descendants("R1")] == ["F1", "F3"]

    def test_clear(self):
        lineage = LineageTracker()
        lineage.record_lineage("F1", "fact")
        lineage.clear()
        assert lineage.get("F1") is None


class TestObservabilityEngine:

    def test_log_audit_goes_to_layer(self):
        obs = ObservabilityEngine()
        obs.log_audit(action="build", details="ok", event_type=AuditEventType.BUILD)

        (logged,) = obs.get_layer_log("engine")
        assert logged.event_type == AuditEventType.BUILD
        assert ("details", "ok") in logged.metadata

    def test_unknown_layer_gets_a_collector(self):
        obs = ObservabilityEngine()
        obs.collect_audit(entry("a", layer="custom"))
        assert len(obs.get_layer_log("custom")) == 1

    def test_audit_report(self):
        obs = ObservabilityEngine()
        obs.collect_audit(entry("a"))
        obs.log_audit(action="build")

        report = obs.generate_audit_report()
        assert report["total_entries"] == 2
        assert report["by_layer"] == {"inference": 1, "engine": 1}

    def test_disabled_collectors(self):
        obs = ObservabilityEngine(ObservabilityConfig(enable_metrics=False, enable_lineage=False))
        obs.collect_metric("graph_nodes", 1.0)
        obs.record_lineage("F1", "fact")
        obs.reset_lineage()

        assert obs.get_metrics() is None
        assert obs.get_lineage() is None
