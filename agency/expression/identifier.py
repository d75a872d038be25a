"""Task identifier validation."""

import re
from collections.abc import Container

from agency.core.errors import DuplicateIdentifier, InvalidIdentifier

IDENTIFIER_PATTERN = re.compile(r"[A-Za-z0-9_]+")


def validate_identifier(candidate: object, registry: Container[str]) -> str:
    """
    Check a task id before it is registered.

    Args:
        candidate: Proposed task id.
        registry: Ids already in use (membership is exact and case-sensitive).

    Returns:
        The accepted id.

    Raises:
        InvalidIdentifier: If the id is not a non-empty ``[A-Za-z0-9_]+`` string.
        DuplicateIdentifier: If the id is already registered.

    Example:
        >>> validate_identifier("fetch_1", set())
        'fetch_1'
    """
    if (
        not isinstance(candidate, str)
        or not candidate.strip()
        or not IDENTIFIER_PATTERN.fullmatch(candidate)
    ):
        raise InvalidIdentifier(candidate)

    if candidate in registry:
        raise DuplicateIdentifier(candidate)

    return candidate
