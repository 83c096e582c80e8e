"""
Claim ledger: which activity ids processors have already consumed.

Exclusive claims are scoped to one kind. Once an id is in a finalized
group of a kind, no other group of that kind may take it. Ids of other
kinds are unaffected, so an activity can still be part of one readStream
group and one writeStream group.

Shared claims are kind-agnostic. Stream ticks carry state for both the
reading and the writing side of a pipe, so every kind may use them and
they are only recorded, never refused.

A ledger lives for one process() call.
"""

from __future__ import annotations

from collections.abc import Iterable


class ClaimLedger:
    """Kind-scoped exclusive claims plus one shared set."""

    def __init__(self) -> None:
        self._exclusive: dict[str, set[int]] = {}
        self._shared: set[int] = set()

    def is_claimed(self, kind: str, activity_id: int) -> bool:
        return activity_id in self._exclusive.get(kind, ())

    def unclaimed(self, kind: str, ids: Iterable[int]) -> list[int]:
        """``ids`` that ``kind`` has not claimed yet, order preserved."""
        taken = self._exclusive.get(kind, set())
        return [i for i in ids if i not in taken]

    def try_claim(self, kind: str, ids: Iterable[int]) -> bool:
        """
        Claim all of ``ids`` for ``kind``, or none of them.

        Returns False (and claims nothing) when any id is already taken.
        """
        wanted = set(ids)
        taken = self._exclusive.setdefault(kind, set())
        if wanted & taken:
            return False
        taken.update(wanted)
        return True

    def share(self, ids: Iterable[int]) -> None:
        """Record use of kind-agnostic ids."""
        self._shared.update(ids)

    def claimed(self, kind: str) -> frozenset[int]:
        return frozenset(self._exclusive.get(kind, ()))

    @property
    def shared(self) -> frozenset[int]:
        return frozenset(self._shared)

    def __repr__(self) -> str:
        counts = {kind: len(ids) for kind, ids in self._exclusive.items()}
        return f"ClaimLedger(exclusive={counts}, shared={len(self._shared)})"
