"""
Tests for the fs.createWriteStream processor.

A read stream piped into a write stream (3 is the user's code and has no
record of its own):

    3 ── ws open:10
    └─── rs open:11 ── tick:12 ── read:13 ── ws write:14
                                   ├──────── read:15 ── ws close:19
                                   └──────── ws tick:16

The write stream's requests never form a chain from its open, so the
processor pieces the group together from sibling relations.
"""

from __future__ import annotations

from fsprocessor.capture import Activity
from fsprocessor.classify import WRITE_STREAM
from fsprocessor.config import Config
from fsprocessor.engine import Engine
from fsprocessor.processors import WriteStreamProcessor
from fsprocessor.report import ProcessingReport

from factories import (
    READ_STREAM_OPEN_STACK,
    READ_STREAM_READ_STACK,
    WRITE_STREAM_CLOSE_STACK,
    WRITE_STREAM_OPEN_STACK,
    WRITE_STREAM_WRITE_STACK,
    make_activity,
    make_store,
    read_stream_tick,
    write_stream_tick,
)


def run(*activities: Activity, **options) -> ProcessingReport:
    engine = Engine(processors=[WriteStreamProcessor()], config=Config())
    return engine.process(make_store(*activities), **options)


def make_pipe(parent: int = 3, base: int = 10) -> list[Activity]:
    """The piped scenario above with ids offset from ``base``."""
    return [
        make_activity(base, parent, stack=WRITE_STREAM_OPEN_STACK),
        make_activity(base + 1, parent, stack=READ_STREAM_OPEN_STACK),
        read_stream_tick(base + 2, base + 1),
        make_activity(base + 3, base + 2, stack=READ_STREAM_READ_STACK),
        make_activity(
            base + 4,
            base + 3,
            stack=WRITE_STREAM_WRITE_STACK,
            before=[(base + 4) * 1000 + 100],
            after=[(base + 4) * 1000 + 400],
        ),
        make_activity(base + 5, base + 3, stack=READ_STREAM_READ_STACK),
        write_stream_tick(base + 6, base + 3),
        make_activity(base + 9, base + 5, stack=WRITE_STREAM_CLOSE_STACK),
    ]


# =============================================================================
# Grouping
# =============================================================================


class TestWriteStreamGrouping:
    """Tests for the sibling-based resolver."""

    def test_piped_stream(self) -> None:
        report = run(*make_pipe())

        assert report.groups(WRITE_STREAM) == {10: frozenset({10, 14, 16, 19})}

    def test_open_immediately_before_first_write_wins(self) -> None:
        activities = [
            make_activity(5, 3, stack=WRITE_STREAM_OPEN_STACK),
            *make_pipe(),
            make_activity(20, 3, stack=WRITE_STREAM_OPEN_STACK),
        ]

        groups = run(*activities).groups(WRITE_STREAM)

        assert list(groups) == [10]
        assert 5 not in groups[10]
        assert 20 not in groups[10]

    def test_several_writes_and_opens_under_one_parent(self) -> None:
        activities = [
            make_activity(5, 3, stack=WRITE_STREAM_OPEN_STACK),
            *make_pipe(),
            make_activity(17, 15, stack=WRITE_STREAM_WRITE_STACK),
            make_activity(30, 3, stack=WRITE_STREAM_OPEN_STACK),
        ]

        report = run(*activities)

        assert report.groups(WRITE_STREAM) == {10: frozenset({10, 14, 16, 17, 19})}
        operation = report.operations(WRITE_STREAM)[10]
        assert [write.id for write in operation.writes] == [14, 17]
        assert operation.close.id == 19

    def test_no_open_before_the_write(self) -> None:
        activities = [a for a in make_pipe() if a.id != 10]
        activities.append(make_activity(20, 3, stack=WRITE_STREAM_OPEN_STACK))

        assert run(*activities).groups(WRITE_STREAM) == {}

    def test_close_without_writes(self) -> None:
        activities = [a for a in make_pipe() if a.id != 14]

        assert run(*activities).groups(WRITE_STREAM) == {}

    def test_missing_tick_still_groups(self) -> None:
        activities = [a for a in make_pipe() if a.id != 16]

        report = run(*activities)

        assert report.groups(WRITE_STREAM) == {10: frozenset({10, 14, 19})}
        assert report.operations(WRITE_STREAM)[10].stream is None

    def test_pipes_under_different_parents(self) -> None:
        report = run(*make_pipe(parent=3, base=10), *make_pipe(parent=30, base=40))

        assert report.groups(WRITE_STREAM) == {
            10: frozenset({10, 14, 16, 19}),
            40: frozenset({40, 44, 46, 49}),
        }

    def test_repeatable(self) -> None:
        activities = [*make_pipe(parent=3, base=10), *make_pipe(parent=30, base=40)]

        assert run(*activities).groups(WRITE_STREAM) == run(*activities).groups(WRITE_STREAM)


# =============================================================================
# Assembly
# =============================================================================


class TestWriteStreamAssembly:
    """Tests for the assembled WriteStreamOperation."""

    def test_steps(self) -> None:
        operation = run(*make_pipe()).operations(WRITE_STREAM)[10]

        assert operation.open.id == 10
        assert operation.stream.id == 16
        assert [w.id for w in operation.writes] == [14]
        assert operation.writes[0].time_spent.ns == 300
        assert operation.close.id == 19
        assert operation.created_at == WRITE_STREAM_OPEN_STACK[4]

    def test_stream_info(self) -> None:
        stream = run(*make_pipe()).operations(WRITE_STREAM)[10].stream

        assert stream.path == "/tmp/out.txt"
        assert stream.flags == "w"
        assert stream.fd == 12
        assert stream.mode == 438

    def test_life_cycle(self) -> None:
        cycle = run(*make_pipe()).operations(WRITE_STREAM)[10].life_cycle

        assert cycle.created.ns == 10_000
        assert cycle.destroyed.ns == 19_500
        assert cycle.time_alive.ns == 9_500

    def test_user_functions_from_tick(self) -> None:
        operation = run(*make_pipe()).operations(WRITE_STREAM)[10]

        assert [fn.display_name for fn in operation.user_functions] == ["onfinish"]
        assert operation.user_functions[0].property_paths == [
            "stream.resource.args[2]._events.finish",
        ]
