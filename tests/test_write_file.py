"""Tests for the fs.writeFile processor."""

from __future__ import annotations

from fsprocessor.capture import Activity
from fsprocessor.classify import WRITE_FILE
from fsprocessor.config import Config
from fsprocessor.engine import Engine
from fsprocessor.processors import WriteFileProcessor
from fsprocessor.report import ProcessingReport

from factories import (
    WRITE_FILE_CLOSE_STACK,
    WRITE_FILE_OPEN_STACK,
    WRITE_FILE_WRITE_STACK,
    make_activity,
    make_function,
    make_store,
)


def run(*activities: Activity, **options) -> ProcessingReport:
    engine = Engine(processors=[WriteFileProcessor()], config=Config())
    return engine.process(make_store(*activities), **options)


def make_write_file(base: int = 10, writes: int = 1, callback: bool = False) -> list[Activity]:
    functions = [make_function(["context", "callback"], name="onwritten")] if callback else None
    resource = {"functions": functions} if functions else None

    activities = [make_activity(base, stack=WRITE_FILE_OPEN_STACK, resource=resource)]
    parent = base
    for n in range(writes):
        activity_id = base + 1 + n
        activities.append(make_activity(
            activity_id,
            parent,
            stack=WRITE_FILE_WRITE_STACK,
            before=[activity_id * 1000 + 100],
            after=[activity_id * 1000 + 350],
        ))
        parent = activity_id
    activities.append(make_activity(
        base + 1 + writes, parent, stack=WRITE_FILE_CLOSE_STACK, resource=resource
    ))
    return activities


# =============================================================================
# Grouping
# =============================================================================


class TestWriteFileGrouping:
    """Tests for resolving writeFile chains."""

    def test_open_write_close(self) -> None:
        report = run(*make_write_file())

        assert report.groups(WRITE_FILE) == {10: frozenset({10, 11, 12})}

    def test_several_writes(self) -> None:
        report = run(*make_write_file(writes=3))

        assert report.groups(WRITE_FILE) == {10: frozenset({10, 11, 12, 13, 14})}

    def test_no_close_yields_nothing(self) -> None:
        assert run(*make_write_file()[:-1]).groups(WRITE_FILE) == {}

    def test_independent_writes(self) -> None:
        report = run(*make_write_file(10), *make_write_file(20, writes=2))

        assert report.groups(WRITE_FILE) == {
            10: frozenset({10, 11, 12}),
            20: frozenset({20, 21, 22, 23}),
        }


# =============================================================================
# Assembly
# =============================================================================


class TestWriteFileAssembly:
    """Tests for the assembled WriteFileOperation."""

    def test_steps(self) -> None:
        operation = run(*make_write_file(writes=2)).operations(WRITE_FILE)[10]

        assert operation.open.id == 10
        assert [w.id for w in operation.writes] == [11, 12]
        assert operation.close.id == 13
        assert operation.writes[0].time_spent.ns == 250
        assert operation.created_at == WRITE_FILE_OPEN_STACK[2]

    def test_user_functions(self) -> None:
        operation = run(*make_write_file(callback=True)).operations(WRITE_FILE)[10]

        assert len(operation.user_functions) == 1
        assert operation.user_functions[0].property_paths == [
            "open.resource.context.callback",
            "close.resource.context.callback",
        ]

    def test_user_functions_unmerged(self) -> None:
        report = run(*make_write_file(callback=True), merge_functions=False)
        operation = report.operations(WRITE_FILE)[10]

        assert [fn.property_path for fn in operation.user_functions] == [
            "open.resource.context.callback",
            "close.resource.context.callback",
        ]
