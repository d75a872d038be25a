"""Task plans - JSON descriptions of a run for the command line.

Example plan::

    {
        "tasks": [
            {"id": "fetch", "work": "mypkg.jobs:fetch"},
            {"id": "parse", "expression": "fetch", "work": "mypkg.jobs:parse",
             "halt_on_failure": true}
        ]
    }
"""

import importlib
from collections.abc import Callable
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from agency.scheduling import Agency


class PlanTask(BaseModel):
    """One task of a plan."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Task id")
    expression: str = Field(default="", description="Dependency expression")
    work: str | None = Field(
        default=None,
        description="Work as 'module:callable', omitted for a placeholder",
    )
    on_complete: str | None = Field(
        default=None,
        description="Completion handler as 'module:callable'",
    )
    halt_on_failure: bool = False
    deferred_dependency_check: bool = False


class Plan(BaseModel):
    """A list of tasks in creation order."""

    model_config = ConfigDict(frozen=True)

    tasks: list[PlanTask] = Field(default_factory=list)

    @classmethod
    def load(cls, path: str | Path) -> "Plan":
        """Read a plan from a JSON file."""
        return cls.model_validate_json(Path(path).read_text(encoding="utf-8"))

    def build(self, agency: Agency) -> None:
        """Register every task of the plan on ``agency``."""
        for item in self.tasks:
            handle = agency.create_task(item.id, item.expression)
            if item.work:
                handle.set_work(resolve_callable(item.work))
            if item.on_complete:
                handle.set_completion_handler(resolve_callable(item.on_complete))
            handle.set_halt_on_failure(item.halt_on_failure)
            handle.set_deferred_dependency_check(item.deferred_dependency_check)


def resolve_callable(reference: str) -> Callable[..., Any]:
    """
    Import ``module:attribute`` and return the attribute.

    Raises:
        ValueError: If the reference has no ``:`` separator.
        ImportError: If the module cannot be imported.
        AttributeError: If the attribute does not exist.
    """
    module_name, sep, attribute = reference.partition(":")
    if not sep or not module_name or not attribute:
        raise ValueError(f"Expected 'module:callable', got '{reference}'")

    target: Any = importlib.import_module(module_name)
    for part in attribute.split("."):
        target = getattr(target, part)
    return target
