"""
Pydantic model for a single captured activity.

An activity is one asynchronous unit of work recorded by the async-hooks
capture: its identity, the id of the activity that triggered it, its
resource type, the call stack at creation, and the timestamps of each
lifecycle phase (in nanoseconds).

Field names follow the capture's camelCase JSON; Python code uses the
snake_case attribute names.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

Phase = Literal["init", "before", "after", "destroy"]

Timestamp = int | float


class Activity(BaseModel):
    """
    One recorded asynchronous resource.

    Activities are write-once: the model is frozen and nothing in the
    engine mutates the lists or payload it carries.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="allow",
    )

    id: int = Field(..., description="Unique async id")
    trigger_id: int = Field(
        default=0,
        alias="triggerId",
        description="Id of the activity whose execution created this one",
    )
    type: str = Field(default="", description="Resource type, e.g. FSREQWRAP")
    init_stack: list[str] | None = Field(
        default=None,
        alias="initStack",
        description="Call sites at creation, innermost frame first",
    )

    init: list[Timestamp | None] | None = Field(default=None)
    before: list[Timestamp | None] | None = Field(default=None)
    after: list[Timestamp | None] | None = Field(default=None)
    destroy: list[Timestamp | None] | None = Field(default=None)

    resource: dict[str, Any] | None = Field(
        default=None,
        description="Kind-specific payload: context, args, functions",
    )

    def first(self, phase: Phase) -> Timestamp | None:
        """First timestamp of a lifecycle phase, or None when absent or null."""
        stamps = getattr(self, phase)
        if not stamps:
            return None
        return stamps[0]

    def frame(self, index: int) -> str | None:
        """Init stack frame at ``index``, or None when the stack is shorter."""
        if self.init_stack is None or index < 0 or index >= len(self.init_stack):
            return None
        return self.init_stack[index]

    def to_raw(self) -> dict[str, Any]:
        """Dump in the capture's own JSON shape."""
        return self.model_dump(by_alias=True, exclude_none=True)
