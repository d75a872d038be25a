"""Task state machine and the two views the scheduler hands out.

``Task`` is internal. Callers configure it through a ``TaskHandle``; running
work talks back to the scheduler through a ``TaskContext``.
"""

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from loguru import logger

from agency.core.errors import (
    AgencyError,
    CreationError,
    ExecutionFailure,
    InvalidWork,
    TaskFrozenError,
)
from agency.expression.parser import ParsedExpression
from agency.journal import Journal, Severity
from agency.scheduling.models import DispatchRecord, TaskState, TaskSummary

if TYPE_CHECKING:
    from agency.scheduling.registry import TaskRegistry

Work = Callable[["TaskContext"], Any]
CompletionHandler = Callable[[BaseException | None, Any], Any]


class Task:
    """A unit of work gated by a dependency expression.

    State only moves forward: PENDING -> DISPATCHED -> COMPLETED.
    """

    def __init__(
        self,
        task_id: str,
        parsed: ParsedExpression | None = None,
        error: CreationError | None = None,
    ) -> None:
        parsed = parsed or ParsedExpression()
        self.id = task_id
        self.raw_expression = parsed.expression
        self.tokens = list(parsed.tokens)
        self.dependency_ids = list(parsed.dependency_ids)
        self.error = error
        self.enabled = error is None
        self.state = TaskState.PENDING
        self.result: Any = None
        self.failure: ExecutionFailure | None = None
        self.work: Work | None = None
        self.on_complete: CompletionHandler | None = None
        self.halt_on_failure = False
        self.deferred_dependency_check = False
        self.dispatch_count = 0
        self.record: DispatchRecord | None = None

    def __repr__(self) -> str:
        return f"Task(id={self.id!r}, state={self.state.value}, enabled={self.enabled})"

    @property
    def succeeded(self) -> bool | None:
        """Outcome of the work, None until completed."""
        if self.state is not TaskState.COMPLETED:
            return None
        return self.failure is None

    def disable(self, error: CreationError) -> None:
        """Permanently exclude the task from dispatch."""
        self.enabled = False
        self.error = error

    def mark_dispatched(self) -> DispatchRecord:
        """Move to DISPATCHED and freeze the configuration.

        Raises:
            AgencyError: If the task is not an enabled pending task.
        """
        if self.state is not TaskState.PENDING or not self.enabled:
            raise AgencyError(f"task '{self.id}' cannot be dispatched from state {self.state.value}")

        self.state = TaskState.DISPATCHED
        self.dispatch_count += 1
        self.record = DispatchRecord(
            task_id=self.id,
            work=self.work,
            on_complete=self.on_complete,
            halt_on_failure=self.halt_on_failure,
        )
        return self.record

    def mark_completed(self, result: Any, error: BaseException | None = None) -> None:
        """Move to COMPLETED and record the result or the error."""
        if self.state is not TaskState.DISPATCHED:
            raise AgencyError(f"task '{self.id}' cannot complete from state {self.state.value}")

        self.state = TaskState.COMPLETED
        if error is not None:
            self.result = error
            self.failure = ExecutionFailure(self.id, error)
        else:
            self.result = result

    def summary(self) -> TaskSummary:
        """Build the report entry for this task."""
        problem: AgencyError | None = self.error or self.failure
        return TaskSummary(
            id=self.id,
            state=self.state,
            enabled=self.enabled,
            succeeded=self.succeeded,
            result=None if self.result is None else repr(self.result),
            error=problem.message if problem else None,
            error_code=problem.code if problem else None,
        )


class TaskHandle:
    """
    Caller-facing view of a task for configuration before dispatch.

    Setters are ignored on disabled tasks and raise ``TaskFrozenError``
    once the task has been dispatched.

    Example:
        >>> handle = agency.create_task("id2", "id1")
        >>> handle.set_work(lambda ctx: ctx.get_value_of("id1") * 2)
        >>> handle.set_halt_on_failure(True)
    """

    def __init__(self, task: Task, journal: Journal) -> None:
        self._task = task
        self._journal = journal

    def __repr__(self) -> str:
        return f"TaskHandle({self._task!r})"

    @property
    def id(self) -> str:
        return self._task.id

    @property
    def enabled(self) -> bool:
        return self._task.enabled

    @property
    def error(self) -> CreationError | None:
        """Creation error that disabled the task, if any."""
        return self._task.error

    @property
    def state(self) -> TaskState:
        return self._task.state

    @property
    def result(self) -> Any:
        return self._task.result

    @property
    def failure(self) -> ExecutionFailure | None:
        return self._task.failure

    @property
    def tokens(self) -> list[str]:
        return list(self._task.tokens)

    @property
    def dependency_ids(self) -> list[str]:
        return list(self._task.dependency_ids)

    @property
    def dispatch_count(self) -> int:
        return self._task.dispatch_count

    def set_work(self, work: Work) -> None:
        """Set the function run when the task is dispatched.

        The function receives a ``TaskContext``. It may return an awaitable,
        in which case the task completes when the awaitable resolves.
        """
        if not self._configurable():
            return
        if not callable(work):
            self._reject(InvalidWork("function"))
            return
        self._task.work = work
        self._journal.log_creation_event(self.id, Severity.INFO, "function definition completed")

    def set_completion_handler(self, handler: CompletionHandler) -> None:
        """Set the handler called with ``(error, result)`` after the work ends."""
        if not self._configurable():
            return
        if not callable(handler):
            self._reject(InvalidWork("callback"))
            return
        self._task.on_complete = handler
        self._journal.log_creation_event(self.id, Severity.INFO, "callback definition completed")

    def set_halt_on_failure(self, flag: bool) -> None:
        """Stop the whole run if this task's work fails."""
        if self._configurable():
            self._task.halt_on_failure = bool(flag)

    def set_deferred_dependency_check(self, flag: bool) -> None:
        """Count dispatched dependencies as satisfied, not only completed ones."""
        if self._configurable():
            self._task.deferred_dependency_check = bool(flag)

    def _configurable(self) -> bool:
        if self._task.state is not TaskState.PENDING:
            raise TaskFrozenError(self.id)
        if not self._task.enabled:
            logger.debug(f"Ignoring configuration of disabled task {self.id}")
            return False
        return True

    def _reject(self, error: CreationError) -> None:
        self._task.disable(error)
        self._journal.log_creation_event(self.id, Severity.ERROR, error.message)


class TaskContext:
    """
    Scheduler view handed to running work.

    Only exposes what a task may know about its own dependencies.
    """

    def __init__(self, task: Task, registry: "TaskRegistry", journal: Journal) -> None:
        self._task = task
        self._registry = registry
        self._journal = journal

    @property
    def task_id(self) -> str:
        return self._task.id

    @property
    def dependency_ids(self) -> list[str]:
        return list(self._task.dependency_ids)

    def is_completed(self, dependency_id: str) -> bool:
        """True if ``dependency_id`` is a dependency that has completed."""
        if dependency_id not in self._task.dependency_ids:
            return False
        dependency = self._registry.get(dependency_id)
        return dependency is not None and dependency.state is TaskState.COMPLETED

    def get_value_of(self, dependency_id: str) -> Any:
        """
        Get the recorded result of a dependency.

        Args:
            dependency_id: Id referenced in this task's expression.

        Returns:
            The dependency's result (the exception if its work failed), or
            None if it is not a dependency or has no result yet.
        """
        if dependency_id not in self._task.dependency_ids:
            self._journal.log_execution_event(
                self.task_id,
                Severity.INFO,
                f"could not get value of task {dependency_id} (not a dependency)",
            )
            return None

        dependency = self._registry.get(dependency_id)
        if dependency is None:
            self._journal.log_execution_event(
                dependency_id, Severity.INFO, "result could not be retrieved"
            )
            return None
        return dependency.result
