"""Agency - dependency-gated task scheduler.

Tasks are registered with a boolean dependency expression over other task
ids. Each scan walks the registry in creation order and dispatches every
pending task whose expression is satisfied. Work runs on the next tick of
the event loop and every completion schedules another scan, until nothing
is in flight or a halt-on-failure task fails.
"""

import asyncio
import inspect
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from loguru import logger

from agency.core.config import Settings, get_settings
from agency.core.errors import (
    AgencyError,
    CreationError,
    InvalidDependencyReference,
    UnknownDependencyError,
)
from agency.expression import evaluate, parse_expression, validate_identifier
from agency.journal import Journal, JournalMode, Severity
from agency.scheduling.models import DispatchRecord, RunReport, TaskState
from agency.scheduling.registry import TaskRegistry
from agency.scheduling.task import Task, TaskContext, TaskHandle


class Agency:
    """
    Scheduler for one run of dependency-gated tasks.

    Example:
        >>> agency = Agency(mode="quiet")
        >>> agency.create_task("id1").set_work(lambda ctx: 10)
        >>> agency.create_task("id2", "id1").set_work(
        ...     lambda ctx: ctx.get_value_of("id1") + 1
        ... )
        >>> report = await agency.run()
        >>> report.completed_tasks
        ['id1', 'id2']
    """

    def __init__(
        self,
        mode: JournalMode | str | None = None,
        report_target: str | Path | None = None,
        settings: Settings | None = None,
        journal: Journal | None = None,
    ) -> None:
        """
        Initialize the scheduler.

        Args:
            mode: Journal mode; defaults to ``AGENCY_LOG_MODE``.
            report_target: Journal report file for log mode.
            settings: Optional settings override.
            journal: Optional journal; built from mode and settings if omitted.
        """
        self.settings = settings or get_settings()
        self.journal = journal or Journal(
            mode or self.settings.log_mode,
            report_dir=self.settings.report_dir,
        )
        self._report_target = report_target or self.settings.report_file
        self._registry = TaskRegistry()

        self._loop: asyncio.AbstractEventLoop | None = None
        self._finished: asyncio.Event | None = None
        self._idle: asyncio.Event | None = None
        self._futures: set[asyncio.Future] = set()
        self._running = False
        self._done = False
        self._halted_by: str | None = None
        self._started_at: datetime | None = None
        self._finished_at: datetime | None = None
        self._report_path: Path | None = None
        self._report: RunReport | None = None
        self.scans = 0

    @property
    def registry(self) -> TaskRegistry:
        return self._registry

    @property
    def halted(self) -> bool:
        return self._halted_by is not None

    def set_report_target(self, destination: str | Path | None) -> None:
        """Set the file the journal report is written to in log mode."""
        self._report_target = destination

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def create_task(self, task_id: str, expression: str | None = "") -> TaskHandle:
        """
        Create a task and register it.

        Validation failures never raise: the task is disabled, the error is
        journaled and exposed as ``handle.error``.

        Args:
            task_id: Unique id made of letters, digits and underscore.
            expression: Dependency expression, e.g. ``"id1 && (id2 || !id3)"``.

        Returns:
            TaskHandle used to configure the task.
        """
        name = str(task_id)
        self.journal.log_creation_event(name, Severity.INFO, "creation initialized")

        try:
            validate_identifier(task_id, self._registry)
        except CreationError as e:
            return self._register_disabled(Task(name, error=e), e, indexed=False)
        self.journal.log_creation_event(name, Severity.INFO, "id validation completed")

        try:
            parsed = parse_expression(expression, name)
        except CreationError as e:
            return self._register_disabled(Task(name, error=e), e, indexed=True)
        self.journal.log_creation_event(name, Severity.INFO, "dependency expression validated")

        task = Task(name, parsed)
        self._registry.add(task)
        self.journal.log_creation_event(name, Severity.INFO, "creation completed")
        logger.debug(f"Registered task {name} with dependencies {task.dependency_ids}")
        return TaskHandle(task, self.journal)

    def _register_disabled(self, task: Task, error: CreationError, indexed: bool) -> TaskHandle:
        self._registry.add(task, indexed=indexed)
        self.journal.log_creation_event(task.id, Severity.ERROR, error.message)
        logger.warning(f"Task {task.id} disabled: {error.code}")
        return TaskHandle(task, self.journal)

    # =========================================================================
    # RUN
    # =========================================================================

    async def run(self) -> RunReport:
        """
        Run all tasks until nothing more can be dispatched.

        Returns:
            RunReport built once in-flight tasks have settled.

        Raises:
            AgencyError: If the run is already in progress.
        """
        if self._report is not None:
            logger.warning("Run already finished, returning its report")
            return self._report
        if self._running:
            raise AgencyError("run already in progress")

        self._running = True
        self._loop = asyncio.get_running_loop()
        self._finished = asyncio.Event()
        self._idle = asyncio.Event()
        self._started_at = datetime.now(timezone.utc)
        logger.info(f"Starting run with {len(self._registry)} tasks")

        try:
            self._scan()
            await self._finished.wait()
            while self._registry.in_flight():
                self._idle.clear()
                await self._idle.wait()
        finally:
            self._running = False

        self._report = RunReport(
            halted=self.halted,
            halted_by=self._halted_by,
            started_at=self._started_at,
            finished_at=self._finished_at or datetime.now(timezone.utc),
            scans=self.scans,
            report_path=str(self._report_path) if self._report_path else None,
            tasks=[task.summary() for task in self._registry],
        )
        logger.info(
            f"Run complete: {len(self._report.completed_tasks)} succeeded, "
            f"{len(self._report.failed_tasks)} failed, "
            f"{len(self._report.pending_tasks)} never dispatched"
        )
        return self._report

    def _scan(self) -> None:
        """Dispatch every ready task, then check whether the run is over."""
        if self._done:
            return

        self.scans += 1
        logger.debug(f"Scan {self.scans}")

        for task in self._registry.pending():
            try:
                ready = self._is_ready(task)
            except InvalidDependencyReference as e:
                self.journal.log_execution_event(task.id, Severity.ERROR, e.message)
                continue

            if ready:
                self._dispatch(task)

        if not self._registry.in_flight():
            self._finish()

    def _is_ready(self, task: Task) -> bool:
        if not task.tokens:
            return True
        return evaluate(
            task.tokens,
            task.dependency_ids,
            lambda dependency_id: self._is_satisfied(dependency_id, task),
        )

    def _is_satisfied(self, dependency_id: str, dependent: Task) -> bool:
        dependency = self._registry.get(dependency_id)
        if dependency is None:
            raise UnknownDependencyError(dependency_id)
        if dependent.deferred_dependency_check:
            return dependency.state in (TaskState.DISPATCHED, TaskState.COMPLETED)
        return dependency.state is TaskState.COMPLETED

    def _dispatch(self, task: Task) -> None:
        record = task.mark_dispatched()
        logger.debug(f"Dispatched task {task.id}")
        self._loop.call_soon(self._execute, task, record)

    def _execute(self, task: Task, record: DispatchRecord) -> None:
        if record.work is None:
            self.journal.log_execution_event(task.id, Severity.INFO, "does not have a defined function")
            self._complete(task, record, None, None)
            return

        self.journal.log_execution_event(task.id, Severity.INFO, "began function execution")
        context = TaskContext(task, self._registry, self.journal)

        try:
            outcome = record.work(context)
        except Exception as e:
            self._complete(task, record, None, e)
            return

        if inspect.isawaitable(outcome):
            future = asyncio.ensure_future(outcome)
            self._futures.add(future)
            future.add_done_callback(lambda f: self._on_awaited(task, record, f))
            return

        self._complete(task, record, outcome, None)

    def _on_awaited(self, task: Task, record: DispatchRecord, future: asyncio.Future) -> None:
        self._futures.discard(future)
        if future.cancelled():
            self._complete(task, record, None, asyncio.CancelledError())
        elif future.exception() is not None:
            self._complete(task, record, None, future.exception())
        else:
            self._complete(task, record, future.result(), None)

    def _complete(
        self,
        task: Task,
        record: DispatchRecord,
        value: Any,
        error: BaseException | None,
    ) -> None:
        task.mark_completed(value, error)

        if error is None:
            self.journal.log_execution_event(task.id, Severity.INFO, "function executed without errors")
        else:
            self.journal.log_execution_event(
                task.id, Severity.ERROR, f"failed to execute function: {error}"
            )
            logger.warning(f"Task {task.id} failed: {error!r}")

        if record.on_complete is not None:
            try:
                if error is None:
                    record.on_complete(None, value)
                else:
                    record.on_complete(error, None)
            except Exception as e:
                self.journal.log_execution_event(
                    task.id, Severity.ERROR, f"completion handler failed: {e}"
                )
                logger.warning(f"Completion handler of task {task.id} failed: {e!r}")

        if error is not None and record.halt_on_failure and not self._done:
            self.journal.log_execution_event(
                task.id, Severity.ERROR, "error on execution halted agency execution"
            )
            self._halted_by = task.id
            logger.error(f"Run halted by failure of task {task.id}")
            self._finish()
        elif not self._done:
            self._loop.call_soon(self._scan)

        if not self._registry.in_flight() and self._idle is not None:
            self._idle.set()

    def _finish(self) -> None:
        """Fire the terminal report, once per run."""
        if self._done:
            return

        self._done = True
        self._finished_at = datetime.now(timezone.utc)
        try:
            self._report_path = self.journal.report(self._report_target)
        finally:
            logger.info(f"Run finished after {self.scans} scans")
            self._finished.set()
