"""
Contracts Module

This module defines the explicit interfaces and data types that form the
contracts between layers. All inter-layer communication MUST use these
contracts. No layer may import implementation details from another layer.

DESIGN PRINCIPLES:
==================
1. Exported graph types and audit records are immutable (frozen dataclasses)
2. Facts and Rules keep fixed names/arguments; only their labels change
3. Every failure carries an explicit ErrorCode
4. Logical identity (name, argument) is separate from graph identity
"""
