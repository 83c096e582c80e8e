"""
Operation report models.

One Operation subclass per kind. Every model is frozen: transforms
(separating and merging user functions) return new instances via
``model_copy``.

Reports serialize to the capture tool's camelCase JSON:

    operation.to_dict()
    {"lifeCycle": {"created": {"ns": ..., "ms": "..."}, ...},
     "createdAt": "at Test.<anonymous> (/app/read.js:12:6)",
     "open": {"id": 10, "triggerId": 1},
     ...
     "userFunctions": [...]}
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field

from fsprocessor.operations.functions import UserFunction, merge_user_functions
from fsprocessor.operations.timing import Duration


class LifeCycle(BaseModel):
    """When the operation started, ended, and how long it lived."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    created: Duration
    destroyed: Duration
    time_alive: Duration = Field(..., alias="timeAlive")


# =============================================================================
# Steps
# =============================================================================


class Step(BaseModel):
    """One activity's contribution to an operation."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    trigger_id: int = Field(..., alias="triggerId")
    activity: dict[str, Any] | None = Field(
        default=None,
        description="Raw activity, only when include_activities is set",
    )
    user_functions: list[UserFunction] | None = Field(default=None, alias="userFunctions")


class TimedStep(Step):
    """A read or write, with the time spent in its callback."""

    time_spent: Duration = Field(..., alias="timeSpent")


class ReadStreamInfo(Step):
    """Stream configuration pulled from a ReadStream tick."""

    path: str | None = None
    flags: str | int | None = None
    fd: int | None = None
    object_mode: bool | None = Field(default=None, alias="objectMode")
    high_water_mark: int | float | None = Field(default=None, alias="highWaterMark")
    pipes_count: int | None = Field(default=None, alias="pipesCount")
    default_encoding: str | None = Field(default=None, alias="defaultEncoding")
    encoding: str | None = None


class WriteStreamInfo(Step):
    """Stream configuration pulled from a WriteStream tick."""

    path: str | None = None
    flags: str | int | None = None
    fd: int | None = None
    mode: int | str | None = None


# =============================================================================
# Operations
# =============================================================================


class Operation(BaseModel):
    """
    Assembled report for one group.

    Subclasses declare their role fields in ``step_fields``, in report
    order. A role field holds a Step, a list of Steps, or None when the
    group had no usable activity for it.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    step_fields: ClassVar[tuple[str, ...]] = ()

    life_cycle: LifeCycle = Field(..., alias="lifeCycle")
    created_at: str | None = Field(
        default=None,
        alias="createdAt",
        description="Stack frame where the user started the operation",
    )
    user_functions: list[UserFunction] | None = Field(default=None, alias="userFunctions")

    def iter_steps(self) -> Iterator[tuple[str, Step]]:
        """(field name, step) pairs in report order."""
        for name in self.step_fields:
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, list):
                for step in value:
                    yield name, step
            else:
                yield name, value

    def step_ids(self) -> list[int]:
        return [step.id for _, step in self.iter_steps()]

    def separated(self) -> Operation:
        """Move every step's user functions onto the operation."""
        collected: list[UserFunction] = list(self.user_functions or [])
        update: dict[str, Any] = {}

        for name in self.step_fields:
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, list):
                update[name] = [self._strip(step, collected) for step in value]
            else:
                update[name] = self._strip(value, collected)

        update["user_functions"] = collected
        return self.model_copy(update=update)

    def merged(self) -> Operation:
        """Merge the operation's user functions by location."""
        if self.user_functions is None:
            return self
        return self.model_copy(update={
            "user_functions": merge_user_functions(self.user_functions),
        })

    @staticmethod
    def _strip(step: Step, collected: list[UserFunction]) -> Step:
        if step.user_functions is None:
            return step
        collected.extend(step.user_functions)
        return step.model_copy(update={"user_functions": None})

    def to_dict(self) -> dict[str, Any]:
        """Serialize in camelCase, leaving out unset fields."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ReadFileOperation(Operation):
    """fs.readFile: open, stat, read, close."""

    step_fields: ClassVar[tuple[str, ...]] = ("open", "stat", "read", "close")

    open: Step | None = None
    stat: Step | None = None
    read: Step | None = None
    close: Step | None = None


class ReadStreamOperation(Operation):
    """fs.createReadStream: open, stream tick, reads, close."""

    step_fields: ClassVar[tuple[str, ...]] = ("open", "stream", "reads", "close")

    open: Step | None = None
    stream: ReadStreamInfo | None = None
    reads: list[TimedStep] = Field(default_factory=list)
    close: Step | None = None


class WriteFileOperation(Operation):
    """fs.writeFile: open, writes, close."""

    step_fields: ClassVar[tuple[str, ...]] = ("open", "writes", "close")

    open: Step | None = None
    writes: list[TimedStep] = Field(default_factory=list)
    close: Step | None = None


class WriteStreamOperation(Operation):
    """fs.createWriteStream: open, stream tick, writes, close."""

    step_fields: ClassVar[tuple[str, ...]] = ("open", "stream", "writes", "close")

    open: Step | None = None
    stream: WriteStreamInfo | None = None
    writes: list[TimedStep] = Field(default_factory=list)
    close: Step | None = None
