"""
Numeric Expression Evaluator

Evaluates the two-variable (X, Y) formulas of an operation table, e.g.
``min(X,Y)``, ``X*Y``, ``X+Y-X*Y`` or ``X^2``. Expressions are parsed with
the ast module and evaluated against a whitelist of operators and functions;
nothing is ever passed to eval().

An expression that is not a numeric formula (for instance the symbolic
keywords ``Union`` or ``Intersection``) raises NonNumericExpressionError,
which callers use to switch to symbolic evaluation. A formula that parses
but fails while evaluating raises ExpressionEvaluationError.
"""

from __future__ import annotations
import ast
import math
import operator
from typing import Any, Callable, Dict

from ..contracts.base import ExpressionEvaluationError


class NonNumericExpressionError(ValueError):
    """The expression is not a numeric formula over X and Y."""


class ExpressionEvaluator:
    """Safe evaluator for binary label formulas."""

    VARIABLES = ("X", "Y")

    SAFE_FUNCTIONS: Dict[str, Callable[..., Any]] = {
        "min": min,
        "max": max,
        "abs": abs,
        "sqrt": math.sqrt,
        "cbrt": lambda value: math.copysign(abs(value) ** (1.0 / 3.0), value),
        "pow": pow,
        "exp": math.exp,
        "log": math.log,
        "log10": math.log10,
        "log2": math.log2,
        "floor": math.floor,
        "ceil": math.ceil,
        "sin": math.sin,
        "cos": math.cos,
        "tan": math.tan,
    }

    SAFE_CONSTANTS: Dict[str, float] = {
        "pi": math.pi,
        "e": math.e,
    }

    # ^ is the power operator in label formulas, as in most formula languages
    SAFE_BINARY_OPS: Dict[type, Callable[[Any, Any], Any]] = {
        ast.Add: operator.add,
        ast.Sub: operator.sub,
        ast.Mult: operator.mul,
        ast.Div: operator.truediv,
        ast.Mod: operator.mod,
        ast.Pow: operator.pow,
        ast.BitXor: operator.pow,
    }

    SAFE_UNARY_OPS: Dict[type, Callable[[Any], Any]] = {
        ast.USub: operator.neg,
        ast.UAdd: operator.pos,
    }

    def __init__(self):
        self._compiled: Dict[str, ast.expr] = {}

    def compile(self, expression: str) -> ast.expr:
        """
        Parse and validate an expression.

        Raises NonNumericExpressionError if it is not a numeric formula.
        """
        if expression is None:
            raise NonNumericExpressionError("Missing expression")

        cached = self._compiled.get(expression)
        if cached is not None:
            return cached

        try:
            tree = ast.parse(expression.strip(), mode="eval")
        except SyntaxError as e:
            raise NonNumericExpressionError(f"Not a numeric expression: {expression!r} ({e.msg})")

        self._validate(tree.body, expression)
        self._compiled[expression] = tree.body
        return tree.body

    def is_numeric(self, expression: str) -> bool:
        try:
            self.compile(expression)
        except NonNumericExpressionError:
            return False
        return True

    def evaluate(self, expression: str, x: float, y: float) -> float:
        """Evaluate expression with X=x and Y=y."""
        body = self.compile(expression)
        try:
            return float(self._eval_node(body, {"X": x, "Y": y}))
        except (ArithmeticError, ValueError, TypeError) as e:
            raise ExpressionEvaluationError(
                f"Cannot evaluate {expression!r} with X={x}, Y={y}: {e}",
                expression=expression
            ) from e

    def _validate(self, node: ast.AST, expression: str):
        """Reject anything outside the whitelist before evaluation."""
        if isinstance(node, ast.Constant):
            if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
                raise NonNumericExpressionError(f"Non-numeric constant in {expression!r}")
            return

        if isinstance(node, ast.Name):
            if node.id not in self.VARIABLES and node.id not in self.SAFE_CONSTANTS:
                raise NonNumericExpressionError(f"Unknown name {node.id!r} in {expression!r}")
            return

        if isinstance(node, ast.BinOp):
            if type(node.op) not in self.SAFE_BINARY_OPS:
                raise NonNumericExpressionError(f"Unsupported operator in {expression!r}")
            self._validate(node.left, expression)
            self._validate(node.right, expression)
            return

        if isinstance(node, ast.UnaryOp):
            if type(node.op) not in self.SAFE_UNARY_OPS:
                raise NonNumericExpressionError(f"Unsupported operator in {expression!r}")
            self._validate(node.operand, expression)
            return

        if isinstance(node, ast.Call):
            if not isinstance(node.func, ast.Name) or node.func.id not in self.SAFE_FUNCTIONS:
                raise NonNumericExpressionError(f"Unknown function in {expression!r}")
            if node.keywords:
                raise NonNumericExpressionError(f"Keyword arguments not allowed in {expression!r}")
            for arg in node.args:
                self._validate(arg, expression)
            return

        raise NonNumericExpressionError(
            f"Unsupported expression type {type(node).__name__} in {expression!r}"
        )

    def _eval_node(self, node: ast.AST, variables: Dict[str, float]) -> Any:
        if isinstance(node, ast.Constant):
            # float arithmetic only: int powers like 9**9**9 would never finish
            return float(node.value)

        if isinstance(node, ast.Name):
            if node.id in variables:
                return variables[node.id]
            return self.SAFE_CONSTANTS[node.id]

        if isinstance(node, ast.BinOp):
            left = self._eval_node(node.left, variables)
            right = self._eval_node(node.right, variables)
            return self.SAFE_BINARY_OPS[type(node.op)](left, right)

        if isinstance(node, ast.UnaryOp):
            operand = self._eval_node(node.operand, variables)
            return self.SAFE_UNARY_OPS[type(node.op)](operand)

        # ast.Call, checked by _validate
        args = [self._eval_node(arg, variables) for arg in node.args]
        return self.SAFE_FUNCTIONS[node.func.id](*args)
