"""
Shared building blocks for turning a resolved group into an Operation.

Missing signals never raise here: absent timestamps become the zero
Duration, short stacks leave ``created_at`` unset, absent payloads yield
steps without user functions.
"""

from __future__ import annotations

from typing import Any

from fsprocessor.capture.models import Activity
from fsprocessor.operations.functions import unique_user_functions
from fsprocessor.operations.models import LifeCycle, Operation, Step, TimedStep
from fsprocessor.operations.timing import ZERO, Duration, first_stamp, pretty_ns


def life_cycle(open_activity: Activity | None, close_activity: Activity | None) -> LifeCycle:
    """
    Created from the open's init, destroyed from the close's destroy.

    ``time_alive`` is computed from the two ns values.
    """
    created = first_stamp(open_activity.init) if open_activity is not None else ZERO
    destroyed = first_stamp(close_activity.destroy) if close_activity is not None else ZERO
    return LifeCycle(
        created=created,
        destroyed=destroyed,
        time_alive=pretty_ns(destroyed.ns - created.ns),
    )


def created_at(activity: Activity | None, frame: int) -> str | None:
    """The open's stack frame naming the user call site, if captured."""
    if activity is None:
        return None
    return activity.frame(frame)


def resource_functions(activity: Activity) -> list[Any] | None:
    if not activity.resource:
        return None
    functions = activity.resource.get("functions")
    return functions if isinstance(functions, list) else None


def step_fields(
    activity: Activity,
    include_activity: bool,
    path_prefix: str | None = None,
) -> dict[str, Any]:
    """
    Common Step keyword arguments for ``activity``.

    When ``path_prefix`` is given the step carries the user functions
    found on the activity's resource.
    """
    fields: dict[str, Any] = {
        "id": activity.id,
        "trigger_id": activity.trigger_id,
    }
    if include_activity:
        fields["activity"] = activity.to_raw()
    if path_prefix is not None:
        fields["user_functions"] = unique_user_functions(
            resource_functions(activity), path_prefix=path_prefix
        )
    return fields


def make_step(
    activity: Activity,
    include_activity: bool,
    path_prefix: str | None = None,
) -> Step:
    return Step(**step_fields(activity, include_activity, path_prefix))


def time_spent(activity: Activity) -> Duration:
    """after[0] - before[0], or the zero Duration when either is missing."""
    before = activity.first("before")
    after = activity.first("after")
    if before is None or after is None:
        return ZERO
    return pretty_ns(after - before)


def make_timed_step(
    activity: Activity,
    include_activity: bool,
    path_prefix: str | None = None,
) -> TimedStep:
    return TimedStep(
        **step_fields(activity, include_activity, path_prefix),
        time_spent=time_spent(activity),
    )


def safe_val(value: Any) -> Any:
    """
    Unwrap the capture's ``{"val": ...}`` boxes.

    Boxed values return their ``val``, None stays None and anything else
    is returned unchanged.
    """
    if isinstance(value, dict):
        return value.get("val")
    return value


def finalize(operation: Operation, separate_functions: bool, merge_functions: bool) -> Operation:
    """Apply the separation and merge transforms as configured."""
    if not separate_functions:
        return operation
    separated = operation.separated()
    if not merge_functions:
        return separated
    return separated.merged()
