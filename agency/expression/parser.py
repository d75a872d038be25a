"""Dependency expression parser.

Validates a boolean dependency expression such as ``"a&&(b||!c)"`` one
character at a time and splits it into tokens.

Each character is checked against a rule keyed by three pieces of context:

- position: ``1`` for the first character, ``n`` for any other;
- two back: ``&`` or ``|`` when the character before the previous one was
  that operator, ``?`` otherwise;
- one back: ``?`` before the first character, ``#`` after an identifier
  character, otherwise the previous character itself.

Example:
    parsing ``"a&&b"``

    - ``a`` uses ``1??``: identifier, ``(`` or ``!`` allowed
    - ``&`` uses ``n?#``: identifier, ``)``, ``&`` or ``|`` allowed
    - ``&`` uses ``n?&``: only ``&`` allowed (single ``&`` is invalid)
    - ``b`` uses ``n&&``: identifier, ``(`` or ``!`` allowed
"""

import string

from pydantic import BaseModel, ConfigDict, Field

from agency.core.errors import (
    ExpressionError,
    InvalidCharacter,
    InvalidTerminator,
    SelfDependency,
    UnclosedParenthesis,
    UnopenedParenthesis,
)

ID_CHARS = frozenset(string.ascii_letters + string.digits + "_")

_OPERAND_START = ID_CHARS | {"(", "!"}
_AFTER_OPERAND = ID_CHARS | {")", "&", "|"}
_AFTER_NOT = ID_CHARS | {"("}

RULES: dict[str, frozenset[str]] = {
    "1??": _OPERAND_START,
    "n?(": _OPERAND_START,
    "n?#": _AFTER_OPERAND,
    "n?!": _AFTER_NOT,
    "n?)": frozenset("&|)"),
    "n?&": frozenset("&"),
    "n?|": frozenset("|"),
    "n&&": _OPERAND_START,
    "n&#": _AFTER_OPERAND,
    "n&(": _OPERAND_START,
    "n&!": _AFTER_NOT,
    "n||": _OPERAND_START,
    "n|#": _AFTER_OPERAND,
    "n|(": _OPERAND_START,
    "n|!": _AFTER_NOT,
    "n|&": frozenset(),
    "n&|": frozenset(),
}


class ParsedExpression(BaseModel):
    """Validated dependency expression.

    Example:
        >>> parsed = parse_expression("a||(b&&!a)", "c")
        >>> parsed.tokens
        ['a', '||(', 'b', '&&!', 'a', ')']
        >>> parsed.dependency_ids
        ['a', 'b']
    """

    model_config = ConfigDict(frozen=True)

    expression: str = Field(
        default="",
        description="Expression with spaces removed",
    )
    tokens: list[str] = Field(
        default_factory=list,
        description="Identifier tokens and operator runs in source order",
    )
    dependency_ids: list[str] = Field(
        default_factory=list,
        description="Unique referenced task ids, first-seen order",
    )

    @property
    def is_empty(self) -> bool:
        """True when the task has no dependencies."""
        return not self.tokens


class _Tokenizer:
    """Groups characters into identifier and operator runs."""

    def __init__(self, owner_id: str | None) -> None:
        self.owner_id = owner_id
        self.tokens: list[str] = []
        self.identifiers: list[str] = []
        self._run = ""
        self._run_is_identifier = False

    def feed(self, char: str) -> None:
        is_identifier = char in ID_CHARS
        if self._run and is_identifier != self._run_is_identifier:
            self._flush()
        self._run += char
        self._run_is_identifier = is_identifier

    def close(self) -> None:
        if self._run:
            self._flush()

    def _flush(self) -> None:
        token = self._run
        self._run = ""
        if self._run_is_identifier:
            if token == self.owner_id:
                raise SelfDependency(token)
            self.identifiers.append(token)
        self.tokens.append(token)


def parse_expression(expression: str | None, owner_id: str | None = None) -> ParsedExpression:
    """
    Validate and tokenize a dependency expression.

    Args:
        expression: Raw expression; empty or ``None`` means no dependencies.
        owner_id: Id of the task that owns the expression.

    Returns:
        ParsedExpression with tokens and unique dependency ids.

    Raises:
        UnopenedParenthesis: On ``)`` with no open group.
        InvalidCharacter: On a character the rule table does not allow.
        InvalidTerminator: If the expression does not end on an identifier or ``)``.
        UnclosedParenthesis: If groups are left open at the end.
        SelfDependency: If ``owner_id`` appears as an identifier.

    Example:
        >>> parse_expression("id1 && id2", "id3").tokens
        ['id1', '&&', 'id2']
    """
    if expression is not None and not isinstance(expression, str):
        raise ExpressionError("expression must be a string")
    if not expression or not expression.strip():
        return ParsedExpression()

    text = expression.replace(" ", "")
    tokenizer = _Tokenizer(owner_id)
    two_back = "?"
    one_back = "?"
    depth = 0
    last = len(text) - 1

    for index, char in enumerate(text):
        if char == ")" and depth == 0:
            raise UnopenedParenthesis()

        key = ("1" if index == 0 else "n") + two_back + one_back
        if char not in RULES.get(key, frozenset()):
            raise InvalidCharacter(index + 1, char)

        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1

        if index == last:
            if char not in ID_CHARS and char != ")":
                raise InvalidTerminator()
            if depth != 0:
                raise UnclosedParenthesis()

        two_back = one_back if one_back in ("&", "|") else "?"
        one_back = "#" if char in ID_CHARS else char
        tokenizer.feed(char)

    tokenizer.close()

    return ParsedExpression(
        expression=text,
        tokens=tokenizer.tokens,
        dependency_ids=list(dict.fromkeys(tokenizer.identifiers)),
    )
