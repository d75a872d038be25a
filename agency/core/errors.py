"""Exceptions raised by the agency scheduler.

Creation-time errors are never raised out of ``Agency.create_task``: they
are caught, stored on the task handle and journaled. Everything else is
raised to the caller.
"""


class AgencyError(Exception):
    """Base exception for agency errors."""

    code = "AgencyError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


# =============================================================================
# CREATION ERRORS
# =============================================================================


class CreationError(AgencyError):
    """A task failed validation at creation and is disabled."""

    code = "CreationError"


class InvalidIdentifier(CreationError):
    """Task id is empty or uses characters other than alphanumerics and underscore."""

    code = "InvalidIdentifier"

    def __init__(self, task_id: object) -> None:
        super().__init__(
            "failed id validation (please use alphanumeric characters and underscore)"
        )
        self.task_id = task_id


class DuplicateIdentifier(CreationError):
    """Task id is already registered."""

    code = "DuplicateIdentifier"

    def __init__(self, task_id: str) -> None:
        super().__init__(f"duplication of id '{task_id}' (use a different id)")
        self.task_id = task_id


class ExpressionError(CreationError):
    """Dependency expression failed validation."""

    code = "ExpressionError"

    def __init__(self, reason: str) -> None:
        super().__init__(f"failed dependency expression validation ({reason})")
        self.reason = reason


class InvalidCharacter(ExpressionError):
    """Character not allowed at its position."""

    code = "InvalidCharacter"

    def __init__(self, position: int, character: str) -> None:
        super().__init__(f"invalid character '{character}' at position {position}")
        self.position = position
        self.character = character


class UnopenedParenthesis(ExpressionError):
    """Closing parenthesis without a matching opening one."""

    code = "UnopenedParenthesis"

    def __init__(self) -> None:
        super().__init__("unopened parenthesis")


class UnclosedParenthesis(ExpressionError):
    """Expression ends with open parentheses."""

    code = "UnclosedParenthesis"

    def __init__(self) -> None:
        super().__init__("unclosed parenthesis")


class InvalidTerminator(ExpressionError):
    """Expression ends on an operator."""

    code = "InvalidTerminator"

    def __init__(self) -> None:
        super().__init__("invalid expression terminator")


class SelfDependency(ExpressionError):
    """Expression references the task that owns it."""

    code = "SelfDependency"

    def __init__(self, task_id: str) -> None:
        super().__init__(f"task self dependency on '{task_id}'")
        self.task_id = task_id


class InvalidWork(CreationError):
    """Work or completion handler is not callable."""

    code = "InvalidWork"

    def __init__(self, what: str) -> None:
        super().__init__(f"{what} definition failed (not callable)")
        self.what = what


# =============================================================================
# SCAN AND RUN ERRORS
# =============================================================================


class UnknownDependencyError(AgencyError):
    """Readiness lookup for an id that is not in the registry."""

    code = "UnknownDependency"

    def __init__(self, dependency_id: str) -> None:
        super().__init__(f"unknown dependency '{dependency_id}'")
        self.dependency_id = dependency_id


class InvalidDependencyReference(AgencyError):
    """Expression references a task that was never created."""

    code = "InvalidDependencyReference"

    def __init__(self, dependency_id: str) -> None:
        super().__init__(
            f"execution failed (invalid dependency task: {dependency_id})"
        )
        self.dependency_id = dependency_id


class ExpressionSyntaxError(AgencyError):
    """Token sequence handed to the evaluator is malformed."""

    code = "ExpressionSyntaxError"


class ExecutionFailure(AgencyError):
    """Work raised while running."""

    code = "ExecutionFailure"

    def __init__(self, task_id: str, cause: BaseException) -> None:
        super().__init__(f"failed to execute function: {cause}")
        self.task_id = task_id
        self.cause = cause


class TaskFrozenError(AgencyError):
    """Task configuration changed after dispatch."""

    code = "TaskFrozen"

    def __init__(self, task_id: str) -> None:
        super().__init__(f"task '{task_id}' was already dispatched and can no longer be configured")
        self.task_id = task_id
