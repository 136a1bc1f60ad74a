"""
Labeled Argumentation Framework

This package derives a labeled argumentation graph from a program of facts
and rules. Layers communicate only through the contracts package, never
through shared mutable state.

LAYER STRUCTURE:
================

1. CONTRACTS (contracts/)
   - Knowledge model (Fact, Rule, operation table), exported graph types,
     errors and audit records
   - MUST NOT: Contain behavior beyond construction and validation

2. LABEL ALGEBRA (algebra/)
   - Responsibility: Evaluate support, aggregation and conflict per label
   - Allowed inputs: Label vectors and the operation table
   - Outputs: New label vectors
   - MUST NOT: Know about graphs, facts or rules

3. INFERENCE ENGINE (core/)
   - Responsibility: Fixed-point rule firing, aggregation, conflict detection
   - Allowed inputs: Facts, rules, operation table
   - Outputs: ArgumentativeGraph (internal edge map + conflict pairs)
   - MUST NOT: Assign identifiers or decide edge kinds

4. GRAPH EXPORTER (export/)
   - Responsibility: Typed nodes and kinded edges with stable identifiers
   - Allowed inputs: ArgumentativeGraph
   - Outputs: Graph
   - MUST NOT: Change labels or the graph structure

5. OBSERVABILITY (observability/)
   - Responsibility: Audit log, metrics, derivation lineage
   - MUST NOT: Modify system behavior

6. API (api/)
   - Responsibility: HTTP transport and DTO mapping
   - MUST NOT: Hold process-wide program state

CONSTRAINTS ENFORCED:
=====================
- Deterministic: identical inputs always produce identical graphs
- Explicit errors: configuration and operator errors abort the whole build
- No partial graphs: a build either completes or raises
"""

__version__ = "0.1.0"

from .contracts.base import (
    ErrorCode,
    Error,
    LafError,
    ConfigurationError,
    UnsupportedOperatorError,
    ExpressionEvaluationError,
    ConvergenceError,
)
from .contracts.knowledge import (
    Fact,
    Rule,
    OperationSet,
    OperationTable,
    ProgramContext,
)
from .contracts.graph import Graph, GraphNode, GraphEdge, NodeKind, EdgeKind
from .core import InferenceConfig
from .engine import ArgumentationBackend, BackendConfig, build

__all__ = [
    "__version__",
    "ErrorCode",
    "Error",
    "LafError",
    "ConfigurationError",
    "UnsupportedOperatorError",
    "ExpressionEvaluationError",
    "ConvergenceError",
    "Fact",
    "Rule",
    "OperationSet",
    "OperationTable",
    "ProgramContext",
    "Graph",
    "GraphNode",
    "GraphEdge",
    "NodeKind",
    "EdgeKind",
    "ArgumentationBackend",
    "BackendConfig",
    "InferenceConfig",
    "build",
]
