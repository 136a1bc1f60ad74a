"""
Label Algebra Layer

RESPONSIBILITY: Evaluate support, aggregation and conflict per label dimension
ALLOWED INPUTS: Label vectors, OperationTable
OUTPUTS: New label vectors (tuples of strings)

WHAT THIS LAYER MUST NOT DO:
============================
- Know about facts, rules or graph structure
- Swallow unsupported operators (they always raise)
"""

from .expression import ExpressionEvaluator, NonNumericExpressionError
from .labels import (
    LabelAlgebra,
    UNION,
    INTERSECTION,
    clamp,
    parse_number,
    ordered_union,
    ordered_intersection,
)

__all__ = [
    "ExpressionEvaluator",
    "NonNumericExpressionError",
    "LabelAlgebra",
    "UNION",
    "INTERSECTION",
    "clamp",
    "parse_number",
    "ordered_union",
    "ordered_intersection",
]
