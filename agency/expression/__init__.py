"""Dependency expressions - identifier checks, parsing and evaluation.

This module provides the creation-time validation pipeline:
- Identifier validation (charset and uniqueness)
- Expression parsing (rule table -> tokens and dependency ids)
- Evaluation (tokens + readiness -> bool, without eval)
"""

from agency.expression.evaluator import evaluate, split_operators
from agency.expression.identifier import validate_identifier
from agency.expression.parser import RULES, ParsedExpression, parse_expression

__all__ = [
    "RULES",
    "ParsedExpression",
    "evaluate",
    "parse_expression",
    "split_operators",
    "validate_identifier",
]
