"""
fs.writeFile processor.

``fs.writeFile`` opens the file, writes until the buffer is flushed and
closes it, each request triggered by the previous one:

    open   at Object.fs.open    (frame 1: at Object.fs.writeFile)
    write  at Object.fs.write   (one or more)
    close  at Object.fs.close

Groups are the open's trigger chain up to the first close.
"""

from __future__ import annotations

from fsprocessor.capture.models import Activity
from fsprocessor.classify.models import Role
from fsprocessor.classify.signatures import WRITE_FILE
from fsprocessor.operations.assembly import created_at, life_cycle, make_step, make_timed_step
from fsprocessor.operations.models import Step, TimedStep, WriteFileOperation
from fsprocessor.processors.base import Groups, ProcessingContext, Processor
from fsprocessor.processors.registry import register_processor


@register_processor
class WriteFileProcessor(Processor):
    """Follows each writeFile open down its trigger chain to the close."""

    kind = WRITE_FILE
    version = "1.0.0"
    steps = 3
    description = "fs.writeFile: open, writes, close"

    min_chain_length = 2

    def resolve(self, context: ProcessingContext) -> Groups:
        return self.direct_chain_groups(context, min_length=self.min_chain_length)

    def assemble(self, anchor_id: int, group: frozenset[int], context: ProcessingContext) -> WriteFileOperation:
        include = context.include_activities
        roles = context.classification

        open_activity = context.store[anchor_id]
        close_activity: Activity | None = None
        writes: list[TimedStep] = []

        for activity in self.members(context, group):
            aid = activity.id
            if aid == anchor_id:
                continue
            if roles.has(self.kind, Role.CLOSE, aid):
                close_activity = activity
            elif roles.has(self.kind, Role.WRITE, aid):
                writes.append(
                    make_timed_step(activity, include, path_prefix=f"writes[{len(writes)}].resource")
                )

        close: Step | None = None
        if close_activity is not None:
            close = make_step(close_activity, include, path_prefix="close.resource")

        return WriteFileOperation(
            life_cycle=life_cycle(open_activity, close_activity),
            created_at=created_at(open_activity, self.kind_signatures.created_at_frame),
            open=make_step(open_activity, include, path_prefix="open.resource"),
            writes=writes,
            close=close,
        )
