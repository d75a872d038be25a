"""Task registry - ordered task collection with unique ids."""

from collections.abc import Iterator

from agency.scheduling.models import TaskState
from agency.scheduling.task import Task


class TaskRegistry:
    """
    Tasks in creation order.

    Tasks rejected for an invalid or duplicate id are kept for reporting
    but are not indexed, so they can never be looked up as dependencies.

    Example:
        >>> registry = TaskRegistry()
        >>> registry.add(Task("id1"))
        >>> "id1" in registry
        True
    """

    def __init__(self) -> None:
        self._tasks: list[Task] = []
        self._index: dict[str, Task] = {}

    def add(self, task: Task, indexed: bool = True) -> None:
        """
        Append a task.

        Args:
            task: Task to add.
            indexed: Whether the task's id is registered for lookup.
        """
        self._tasks.append(task)
        if indexed:
            self._index[task.id] = task

    def get(self, task_id: str) -> Task | None:
        """Get an indexed task by id."""
        return self._index.get(task_id)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._index

    def __iter__(self) -> Iterator[Task]:
        return iter(list(self._tasks))

    def __len__(self) -> int:
        return len(self._tasks)

    def pending(self) -> list[Task]:
        """Enabled tasks that have not been dispatched."""
        return [t for t in self._tasks if t.enabled and t.state is TaskState.PENDING]

    def in_flight(self) -> list[Task]:
        """Tasks dispatched but not completed."""
        return [t for t in self._tasks if t.state is TaskState.DISPATCHED]
