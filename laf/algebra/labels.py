"""
Label Algebra

Applies the operation table to label vectors, one dimension at a time.

For every dimension the algebra first tries numeric evaluation: all values
must parse as numbers and the expression must be a numeric formula. The
result is clamped to [0.0, 1.0]. Otherwise the dimension is treated as a set
of whitespace-separated tokens and only the symbolic operators below are
accepted:

- support, aggregation: ``Union`` (ordered, duplicates dropped)
- conflict: ``Intersection`` (tokens of the first operand also present in
  the second, first operand's order)

Any other symbolic operator raises UnsupportedOperatorError.
"""

from __future__ import annotations
from typing import List, Optional, Sequence

from ..contracts.base import ConfigurationError, ErrorCode, UnsupportedOperatorError
from ..contracts.knowledge import LabelVector, OperationTable
from .expression import ExpressionEvaluator


UNION = "Union"
INTERSECTION = "Intersection"


def parse_number(value: Optional[str]) -> Optional[float]:
    """Numeric reading of a label value, None if it is symbolic."""
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def clamp(value: float) -> float:
    if value > 1.0:
        return 1.0
    if value < 0.0:
        return 0.0
    return value


def render(value: float) -> str:
    return repr(float(value))


def tokens(value: Optional[str]) -> List[str]:
    return value.split() if value else []


def ordered_union(values: Sequence[str]) -> str:
    merged = {}
    for value in values:
        for token in tokens(value):
            merged.setdefault(token)
    return " ".join(merged)


def ordered_intersection(first: str, second: str) -> str:
    other = set(tokens(second))
    common = {}
    for token in tokens(first):
        if token in other:
            common.setdefault(token)
    return " ".join(common)


class LabelAlgebra:
    """Support, aggregation and attack over label vectors."""

    def __init__(
        self,
        operations: OperationTable,
        evaluator: Optional[ExpressionEvaluator] = None
    ):
        self._operations = operations
        self._evaluator = evaluator or ExpressionEvaluator()

    @property
    def dimensions(self) -> int:
        return len(self._operations)

    def support(self, premises: Sequence[LabelVector], rule: LabelVector) -> LabelVector:
        """
        Labels of a freshly derived fact.

        Folds the support expression over the premises (in order) and then
        the rule's own labels.
        """
        operands = list(premises) + [rule]
        self._check_dimensions(operands)
        return tuple(
            self._fold(
                dimension,
                self._operations[dimension].support,
                [vector[dimension] for vector in operands],
                role="support"
            )
            for dimension in range(self.dimensions)
        )

    def aggregate(self, vectors: Sequence[LabelVector]) -> LabelVector:
        """Merge independent derivations of the same logical fact."""
        self._check_dimensions(vectors)
        return tuple(
            self._fold(
                dimension,
                self._operations[dimension].aggregation,
                [vector[dimension] for vector in vectors],
                role="aggregation"
            )
            for dimension in range(self.dimensions)
        )

    def attack(self, first: LabelVector, second: LabelVector) -> LabelVector:
        """Weakened labels of first when attacked by second."""
        self._check_dimensions([first, second])
        result = []
        for dimension in range(self.dimensions):
            expression = self._operations[dimension].conflict
            x = parse_number(first[dimension])
            y = parse_number(second[dimension])
            if x is not None and y is not None and self._evaluator.is_numeric(expression):
                result.append(render(clamp(self._evaluator.evaluate(expression, x, y))))
            elif self._is_keyword(expression, INTERSECTION):
                result.append(ordered_intersection(first[dimension], second[dimension]))
            else:
                raise self._unsupported(expression, dimension, "conflict")
        return tuple(result)

    def _fold(self, dimension: int, expression: str, values: List[str], role: str) -> str:
        numbers = [parse_number(value) for value in values]

        if None not in numbers and self._evaluator.is_numeric(expression):
            # fold starts at the first operand, not at 0.0
            accumulator = numbers[0]
            for number in numbers[1:]:
                accumulator = self._evaluator.evaluate(expression, accumulator, number)
            return render(clamp(accumulator))

        if self._is_keyword(expression, UNION):
            return ordered_union(values)

        raise self._unsupported(expression, dimension, role)

    def _check_dimensions(self, vectors: Sequence[LabelVector]):
        for vector in vectors:
            if vector is None or len(vector) != self.dimensions:
                raise ConfigurationError(
                    f"Label vector {vector} does not match the {self.dimensions} "
                    f"configured label dimensions",
                    code=ErrorCode.DIMENSION_MISMATCH
                )

    @staticmethod
    def _is_keyword(expression: Optional[str], keyword: str) -> bool:
        return expression is not None and expression.strip() == keyword

    @staticmethod
    def _unsupported(expression: str, dimension: int, role: str) -> UnsupportedOperatorError:
        return UnsupportedOperatorError(
            f"Unsupported {role} operator {expression!r} for symbolic label dimension {dimension}",
            operator=expression,
            dimension=dimension,
            role=role
        )
