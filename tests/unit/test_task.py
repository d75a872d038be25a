"""Unit tests for the task state machine, handles and registry."""

import pytest

from agency.core.errors import (
    AgencyError,
    DuplicateIdentifier,
    InvalidCharacter,
    InvalidIdentifier,
    InvalidWork,
    SelfDependency,
    TaskFrozenError,
)
from agency.expression import parse_expression
from agency.journal import Journal, JournalMode
from agency.scheduling import (
    DispatchRecord,
    Task,
    TaskContext,
    TaskHandle,
    TaskRegistry,
    TaskState,
)

# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def journal() -> Journal:
    """Create a buffering journal."""
    return Journal(JournalMode.LOG)


@pytest.fixture
def task() -> Task:
    """Create a task depending on id1 and id2."""
    return Task("id3", parse_expression("id1 && id2", "id3"))


# =============================================================================
# TASK STATE MACHINE
# =============================================================================


class TestTask:
    """Tests for Task transitions."""

    def test_initial_state(self, task: Task) -> None:
        """Test a new task is pending and enabled."""
        assert task.state is TaskState.PENDING
        assert task.enabled is True
        assert task.tokens == ["id1", "&&", "id2"]
        assert task.dependency_ids == ["id1", "id2"]
        assert task.raw_expression == "id1&&id2"
        assert task.succeeded is None
        assert task.dispatch_count == 0

    def test_dispatch_freezes_configuration(self, task: Task) -> None:
        """Test the dispatch record captures the configuration."""

        def work(ctx):
            return 1

        task.work = work
        task.halt_on_failure = True

        record = task.mark_dispatched()

        assert isinstance(record, DispatchRecord)
        assert task.state is TaskState.DISPATCHED
        assert task.dispatch_count == 1
        assert record.work is work
        assert record.halt_on_failure is True
        assert record.task_id == "id3"
        with pytest.raises(Exception):
            record.halt_on_failure = False  # type: ignore[misc]

    def test_dispatch_only_once(self, task: Task) -> None:
        """Test a second dispatch is refused."""
        task.mark_dispatched()

        with pytest.raises(AgencyError):
            task.mark_dispatched()
        assert task.dispatch_count == 1

    def test_disabled_task_cannot_dispatch(self) -> None:
        """Test dispatching a disabled task is refused."""
        disabled = Task("bad", error=InvalidCharacter(1, "&"))

        with pytest.raises(AgencyError):
            disabled.mark_dispatched()

    def test_complete_requires_dispatch(self, task: Task) -> None:
        """Test completing a pending task is refused."""
        with pytest.raises(AgencyError):
            task.mark_completed(1)

    def test_complete_with_value(self, task: Task) -> None:
        """Test a successful completion."""
        task.mark_dispatched()
        task.mark_completed(10)

        assert task.state is TaskState.COMPLETED
        assert task.result == 10
        assert task.succeeded is True
        assert task.failure is None

    def test_complete_with_error(self, task: Task) -> None:
        """Test a failed completion records the exception."""
        error = RuntimeError("boom")
        task.mark_dispatched()
        task.mark_completed(None, error)

        assert task.result is error
        assert task.succeeded is False
        assert task.failure.cause is error
        assert task.failure.code == "ExecutionFailure"

    def test_summary(self, task: Task) -> None:
        """Test the report entry."""
        task.mark_dispatched()
        task.mark_completed(None, ValueError("bad value"))

        summary = task.summary()

        assert summary.id == "id3"
        assert summary.state is TaskState.COMPLETED
        assert summary.succeeded is False
        assert summary.error == "failed to execute function: bad value"
        assert summary.error_code == "ExecutionFailure"

    def test_summary_of_disabled_task(self) -> None:
        """Test the creation error shows in the summary."""
        disabled = Task("x", error=SelfDependency("x"))

        summary = disabled.summary()

        assert summary.enabled is False
        assert summary.error_code == "SelfDependency"
        assert summary.succeeded is None


# =============================================================================
# TASK HANDLE
# =============================================================================


class TestTaskHandle:
    """Tests for TaskHandle configuration."""

    def test_set_work(self, task: Task, journal: Journal) -> None:
        """Test setting a callable work."""
        handle = TaskHandle(task, journal)

        def work(ctx):
            return None

        handle.set_work(work)

        assert task.work is work
        events = journal.record.creation_events["id3"]
        assert events[-1].event == "function definition completed"

    def test_set_non_callable_work_disables(self, task: Task, journal: Journal) -> None:
        """Test a non-callable work disables the task."""
        handle = TaskHandle(task, journal)

        handle.set_work("not a function")  # type: ignore[arg-type]

        assert handle.enabled is False
        assert isinstance(handle.error, InvalidWork)
        assert journal.record.creation_events["id3"][-1].type.value == "ERROR"

    def test_set_non_callable_handler_disables(self, task: Task, journal: Journal) -> None:
        """Test a non-callable completion handler disables the task."""
        handle = TaskHandle(task, journal)

        handle.set_completion_handler(42)  # type: ignore[arg-type]

        assert handle.enabled is False
        assert handle.error.what == "callback"

    def test_flags(self, task: Task, journal: Journal) -> None:
        """Test halt and deferred flags."""
        handle = TaskHandle(task, journal)

        handle.set_halt_on_failure(True)
        handle.set_deferred_dependency_check(True)

        assert task.halt_on_failure is True
        assert task.deferred_dependency_check is True

    def test_configuration_after_dispatch_raises(self, task: Task, journal: Journal) -> None:
        """Test setters refuse once dispatched."""
        handle = TaskHandle(task, journal)
        task.mark_dispatched()

        with pytest.raises(TaskFrozenError):
            handle.set_work(lambda ctx: None)
        with pytest.raises(TaskFrozenError):
            handle.set_halt_on_failure(True)

    def test_disabled_task_ignores_configuration(self, journal: Journal) -> None:
        """Test setters on a disabled task do nothing."""
        disabled = Task("x", error=SelfDependency("x"))
        handle = TaskHandle(disabled, journal)

        handle.set_work(lambda ctx: None)
        handle.set_halt_on_failure(True)

        assert disabled.work is None
        assert disabled.halt_on_failure is False
        assert isinstance(handle.error, SelfDependency)

    def test_read_only_views(self, task: Task, journal: Journal) -> None:
        """Test the handle exposes copies of tokens."""
        handle = TaskHandle(task, journal)

        handle.tokens.append("zzz")

        assert handle.tokens == ["id1", "&&", "id2"]
        assert handle.dependency_ids == ["id1", "id2"]
        assert handle.id == "id3"
        assert handle.state is TaskState.PENDING


# =============================================================================
# TASK CONTEXT
# =============================================================================


class TestTaskContext:
    """Tests for the view handed to running work."""

    def test_get_value_of_dependency(self, task: Task, journal: Journal) -> None:
        """Test reading a dependency result."""
        registry = TaskRegistry()
        dependency = Task("id1")
        dependency.mark_dispatched()
        dependency.mark_completed(10)
        registry.add(dependency)
        registry.add(task)

        context = TaskContext(task, registry, journal)

        assert context.get_value_of("id1") == 10
        assert context.is_completed("id1") is True
        assert context.task_id == "id3"

    def test_get_value_of_non_dependency(self, task: Task, journal: Journal) -> None:
        """Test ids outside the expression return None and are journaled."""
        registry = TaskRegistry()
        other = Task("id9")
        other.mark_dispatched()
        other.mark_completed("secret")
        registry.add(other)

        context = TaskContext(task, registry, journal)

        assert context.get_value_of("id9") is None
        assert context.is_completed("id9") is False
        events = journal.record.execution_events["id3"]
        assert "not a dependency" in events[-1].event

    def test_get_value_of_missing_result(self, task: Task, journal: Journal) -> None:
        """Test a dependency that has not produced a result yet."""
        registry = TaskRegistry()
        registry.add(Task("id1"))

        context = TaskContext(task, registry, journal)

        assert context.get_value_of("id1") is None
        assert context.get_value_of("id2") is None


# =============================================================================
# REGISTRY
# =============================================================================


class TestTaskRegistry:
    """Tests for TaskRegistry."""

    def test_preserves_creation_order(self) -> None:
        """Test iteration follows insertion order."""
        registry = TaskRegistry()
        for name in ["c", "a", "b"]:
            registry.add(Task(name))

        assert [t.id for t in registry] == ["c", "a", "b"]
        assert len(registry) == 3

    def test_unindexed_tasks_cannot_be_looked_up(self) -> None:
        """Test tasks rejected for their id are kept but not indexed."""
        registry = TaskRegistry()
        registry.add(Task("dup", error=DuplicateIdentifier("dup")), indexed=False)

        assert "dup" not in registry
        assert registry.get("dup") is None
        assert len(registry) == 1

    def test_pending_and_in_flight(self) -> None:
        """Test state filters."""
        registry = TaskRegistry()
        first, second = Task("a"), Task("b")
        registry.add(first)
        registry.add(second)
        registry.add(Task("bad id", error=InvalidIdentifier("bad id")), indexed=False)

        first.mark_dispatched()

        assert registry.in_flight() == [first]
        assert registry.pending() == [second]
