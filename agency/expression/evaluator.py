"""Dependency expression evaluator.

Evaluates a tokenized expression against dependency readiness without
``eval``. Precedence is ``!`` over ``&&`` over ``||``; equal operators
associate left to right and parentheses override.
"""

from collections.abc import Callable, Iterable, Sequence

from agency.core.errors import (
    ExpressionSyntaxError,
    InvalidDependencyReference,
    UnknownDependencyError,
)
from agency.expression.parser import ID_CHARS

ReadinessLookup = Callable[[str], bool]

_AND = "&&"
_OR = "||"
_NOT = "!"
_OPEN = "("
_CLOSE = ")"


def split_operators(tokens: Sequence[str]) -> list[str]:
    """
    Expand operator runs into single operators.

    Example:
        >>> split_operators(["a", "||(", "b", ")"])
        ['a', '||', '(', 'b', ')']
    """
    lexemes: list[str] = []
    for token in tokens:
        if token and token[0] in ID_CHARS:
            lexemes.append(token)
            continue

        index = 0
        while index < len(token):
            char = token[index]
            if char in "&|":
                pair = token[index:index + 2]
                if pair not in (_AND, _OR):
                    raise ExpressionSyntaxError(f"single '{char}' in operator run '{token}'")
                lexemes.append(pair)
                index += 2
            elif char in (_NOT, _OPEN, _CLOSE):
                lexemes.append(char)
                index += 1
            else:
                raise ExpressionSyntaxError(f"unexpected character '{char}' in '{token}'")
    return lexemes


class _Evaluator:
    """Recursive-descent evaluation over lexemes with substituted values."""

    def __init__(self, lexemes: list[str], values: dict[str, bool]) -> None:
        self._lexemes = lexemes
        self._values = values
        self._pos = 0

    def evaluate(self) -> bool:
        result = self._disjunction()
        if self._pos != len(self._lexemes):
            raise ExpressionSyntaxError(
                f"unexpected '{self._lexemes[self._pos]}' at token {self._pos + 1}"
            )
        return result

    def _peek(self) -> str | None:
        if self._pos < len(self._lexemes):
            return self._lexemes[self._pos]
        return None

    def _take(self) -> str:
        lexeme = self._peek()
        if lexeme is None:
            raise ExpressionSyntaxError("unexpected end of expression")
        self._pos += 1
        return lexeme

    def _disjunction(self) -> bool:
        result = self._conjunction()
        while self._peek() == _OR:
            self._take()
            right = self._conjunction()
            result = result or right
        return result

    def _conjunction(self) -> bool:
        result = self._negation()
        while self._peek() == _AND:
            self._take()
            right = self._negation()
            result = result and right
        return result

    def _negation(self) -> bool:
        if self._peek() == _NOT:
            self._take()
            return not self._negation()
        return self._atom()

    def _atom(self) -> bool:
        lexeme = self._take()
        if lexeme == _OPEN:
            result = self._disjunction()
            if self._take() != _CLOSE:
                raise ExpressionSyntaxError("missing ')'")
            return result
        if lexeme in self._values:
            return self._values[lexeme]
        raise ExpressionSyntaxError(f"unexpected '{lexeme}'")


def evaluate(
    tokens: Sequence[str],
    dependency_ids: Iterable[str],
    ready: ReadinessLookup,
) -> bool:
    """
    Evaluate a tokenized dependency expression.

    Every dependency id is looked up once and its value is used for all
    of its occurrences.

    Args:
        tokens: Token sequence produced by ``parse_expression``.
        dependency_ids: Unique ids referenced by ``tokens``.
        ready: Readiness lookup; raises ``UnknownDependencyError`` for unknown ids.

    Returns:
        True when the expression is satisfied. Empty tokens are always satisfied.

    Raises:
        InvalidDependencyReference: If a referenced id is not registered.
        ExpressionSyntaxError: If the tokens are malformed.

    Example:
        >>> states = {"a": False, "b": True, "c": False}
        >>> evaluate(["a", "||(", "b", "&&!", "c", ")"], ["a", "b", "c"], states.__getitem__)
        True
    """
    if not tokens:
        return True

    values: dict[str, bool] = {}
    for dependency_id in dependency_ids:
        try:
            values[dependency_id] = bool(ready(dependency_id))
        except UnknownDependencyError as e:
            raise InvalidDependencyReference(dependency_id) from e

    return _Evaluator(split_operators(tokens), values).evaluate()
