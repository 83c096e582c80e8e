"""
Nanosecond durations with a human-readable rendering.

Every timestamp or span in an operation report is a Duration: the raw
signed nanosecond value plus a rendering such as ``44.12ms`` or
``1m 3.2s``. The rendering is always derived from ``ns``.
"""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict, Field

NS_PER_MS = 1_000_000


class Duration(BaseModel):
    """A signed nanosecond value and its rendering."""

    model_config = ConfigDict(frozen=True)

    ns: int | float = Field(..., description="Nanoseconds")
    ms: str = Field(..., description="Rendering, e.g. '44.12ms'")

    @property
    def is_placeholder(self) -> bool:
        return self.ns == 0


def format_ms(ms: float) -> str:
    """
    Render milliseconds.

    Below one second: two decimals (``44.12ms``). From one second up:
    days, hours, minutes and seconds with one decimal, skipping zero
    units (``1h 2.5s``). Values are rounded to the displayed precision
    first, so ``59_960`` renders as ``1m``.
    """
    if ms == 0:
        return "0ms"
    if ms < 0:
        return "-" + format_ms(-ms)
    if round(ms, 2) < 1000:
        return f"{ms:.2f}ms"

    # Whole tenths of a second
    tenths = round(ms / 100)
    days, rest = divmod(tenths, 864_000)
    hours, rest = divmod(rest, 36_000)
    minutes, rest = divmod(rest, 600)

    parts: list[str] = []
    for value, unit in ((days, "d"), (hours, "h"), (minutes, "m")):
        if value:
            parts.append(f"{value}{unit}")
    if rest:
        seconds, fraction = divmod(rest, 10)
        parts.append(f"{seconds}.{fraction}s" if fraction else f"{seconds}s")
    return " ".join(parts)


def pretty_ns(ns: int | float) -> Duration:
    """Wrap a nanosecond value with its millisecond rendering."""
    return Duration(ns=ns, ms=format_ms(ns / NS_PER_MS))


ZERO = pretty_ns(0)


def first_stamp(stamps: Sequence[int | float | None] | None) -> Duration:
    """
    First timestamp of a lifecycle phase as a Duration.

    Missing or empty phases, or a null first stamp, yield the zero placeholder.
    """
    if not stamps or stamps[0] is None:
        return ZERO
    return pretty_ns(stamps[0])
