"""
Base Contracts and Shared Types

These are the foundational types used across all layers: explicit error
codes, the immutable Error record, the exceptions that carry it, and UTC
timestamps for audit records.

BOUNDARY ENFORCEMENT:
=====================
- This module is READ-ONLY from all layers
- Layers may import types but MUST NOT modify this module
- Error and Timestamp are frozen dataclasses
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Tuple
from enum import Enum, auto


# =============================================================================
# ERROR STATES (Explicit, never silent)
# =============================================================================

class ErrorCode(Enum):
    """
    Explicit error codes for deterministic error handling.
    No silent fallbacks - every error state is enumerated.
    """
    # Configuration errors (rejected before computation)
    MISSING_OPERATIONS = auto()
    DIMENSION_MISMATCH = auto()
    EMPTY_RULE_BODY = auto()

    # Label algebra errors
    UNSUPPORTED_OPERATOR = auto()
    EXPRESSION_FAILED = auto()

    # Inference errors
    NON_CONVERGENCE = auto()


@dataclass(frozen=True)
class Error:
    """
    Immutable error representation with full context.
    Carried by every LafError so failures can be audited as data.
    """
    code: ErrorCode
    message: str
    timestamp: datetime
    context: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    @staticmethod
    def create(code: ErrorCode, message: str, **context: object) -> Error:
        return Error(
            code=code,
            message=message,
            timestamp=datetime.now(timezone.utc),
            context=tuple((key, str(value)) for key, value in context.items())
        )


# =============================================================================
# EXCEPTIONS (Errors propagate; a build never returns a partial graph)
# =============================================================================

class LafError(Exception):
    """Base class for every failure raised by the framework."""

    default_code = ErrorCode.EXPRESSION_FAILED

    def __init__(self, message: str, code: Optional[ErrorCode] = None, **context: object):
        super().__init__(message)
        self.error = Error.create(code or self.default_code, message, **context)

    @property
    def code(self) -> ErrorCode:
        return self.error.code


class ConfigurationError(LafError):
    """Program or operation table rejected before any computation."""
    default_code = ErrorCode.MISSING_OPERATIONS


class UnsupportedOperatorError(LafError):
    """A symbolic operator other than Union/Intersection was referenced."""
    default_code = ErrorCode.UNSUPPORTED_OPERATOR


class ExpressionEvaluationError(LafError):
    """A numeric expression parsed but could not be evaluated."""
    default_code = ErrorCode.EXPRESSION_FAILED


class ConvergenceError(LafError):
    """The fixed point was not reached within the configured pass limit."""
    default_code = ErrorCode.NON_CONVERGENCE


# =============================================================================
# TEMPORAL TYPES (Immutable, explicit semantics)
# =============================================================================

@dataclass(frozen=True)
class Timestamp:
    """
    Immutable timestamp with explicit semantics.
    All timestamps are UTC, never local time.
    """
    value: datetime

    def __post_init__(self):
        if self.value.tzinfo is None:
            object.__setattr__(self, 'value', self.value.replace(tzinfo=timezone.utc))

    @staticmethod
    def now() -> Timestamp:
        return Timestamp(value=datetime.now(timezone.utc))

    def to_iso(self) -> str:
        return self.value.isoformat()


@dataclass(frozen=True)
class TimeRange:
    """Immutable time range for audit queries."""
    start: Timestamp
    end: Timestamp

    def __post_init__(self):
        if self.start.value > self.end.value:
            raise ValueError("TimeRange start must be before or equal to end")

    def contains(self, timestamp: Timestamp) -> bool:
        return self.start.value <= timestamp.value <= self.end.value
