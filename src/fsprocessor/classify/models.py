"""
Role tags and the immutable classification result.

A classification partitions activity ids by operation kind and role. It
is computed once per process() call and only ever read afterwards;
processors filter it, they never write to it.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType


class Role(str, Enum):
    """Part an activity plays within one operation kind."""

    OPEN = "open"
    STAT = "stat"
    READ = "read"
    WRITE = "write"
    CLOSE = "close"
    TICK = "tick"


@dataclass(frozen=True)
class RoleTag:
    """One activity id tagged with a role for one operation kind."""

    activity_id: int
    kind: str
    role: Role


class Classification:
    """
    Kind -> role -> ids, frozen at construction.

    An id may carry tags for several kinds, and (rarely) for several
    roles of one kind when signatures overlap.
    """

    def __init__(self, tags: Mapping[str, Mapping[Role, frozenset[int]]]) -> None:
        self._tags = MappingProxyType({
            kind: MappingProxyType(dict(roles)) for kind, roles in tags.items()
        })

    def ids(self, kind: str, role: Role) -> frozenset[int]:
        """Ids tagged with ``role`` for ``kind``; empty for unknown kinds."""
        roles = self._tags.get(kind)
        if roles is None:
            return frozenset()
        return roles.get(role, frozenset())

    def has(self, kind: str, role: Role, activity_id: int) -> bool:
        return activity_id in self.ids(kind, role)

    def roles_of(self, kind: str, activity_id: int) -> frozenset[Role]:
        """All roles ``activity_id`` holds for ``kind``."""
        roles = self._tags.get(kind, {})
        return frozenset(role for role, ids in roles.items() if activity_id in ids)

    def kinds(self) -> list[str]:
        return list(self._tags)

    def tags(self) -> Iterator[RoleTag]:
        """Every tag, ordered by kind, role and id."""
        for kind, roles in self._tags.items():
            for role, ids in roles.items():
                for activity_id in sorted(ids):
                    yield RoleTag(activity_id=activity_id, kind=kind, role=role)

    def counts(self) -> dict[str, dict[str, int]]:
        """Tag counts per kind and role, for logging and reports."""
        return {
            kind: {role.value: len(ids) for role, ids in roles.items()}
            for kind, roles in self._tags.items()
        }

    def __repr__(self) -> str:
        return f"Classification({self.counts()})"
