"""
Causal graph index over an ActivityStore.

Every activity points at the activity that triggered it. Inverting those
pointers gives a parent -> children tree that the processors query to
decide which activities belong together.

Trigger ids may reference activities that were never captured (the root
sentinel 0, or work created before capture started). Such ids are kept as
virtual parents: they have children but no Activity record.

Usage:
    graph = CausalGraph(store)
    chain = graph.descendants_until(open_id, lambda id, a: is_close(id))
    writes = graph.all_siblings(close_id, lambda id, a: id in write_ids)
    first_write = graph.oldest_id(writes)

Precondition: store order is non-decreasing by creation time.
``descendants_until`` walks in store order and silently misses children
that appear before their parent. The index logs a warning when the store
is out of order but does not reorder it.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Iterable

from fsprocessor.capture.models import Activity
from fsprocessor.capture.store import ActivityStore
from fsprocessor.exceptions import PreconditionError

logger = logging.getLogger(__name__)

Predicate = Callable[[int, Activity], bool]


class CausalGraph:
    """
    Parent -> children adjacency built once per process() call.

    The graph is never mutated after construction.
    """

    def __init__(self, store: ActivityStore) -> None:
        self.store = store
        self._children: dict[int, list[int]] = {}

        for activity in store.values():
            self._children.setdefault(activity.trigger_id, []).append(activity.id)

        if not store.is_chronological():
            logger.warning(
                "Activities are not ordered by init time; trigger chains may be incomplete"
            )

    # ── Structure ────────────────────────────────────────────────────────

    def children(self, activity_id: int) -> list[int]:
        """Direct children in store order."""
        return list(self._children.get(activity_id, ()))

    def parent(self, activity_id: int) -> int | None:
        activity = self.store.get(activity_id)
        if activity is None:
            return None
        return activity.trigger_id

    def ancestors(self, activity_id: int) -> list[int]:
        """
        Trigger ancestors, nearest first.

        The walk ends at the first id that has no Activity record (that
        virtual parent is included) or on a repeated id.
        """
        result: list[int] = []
        seen = {activity_id}
        current = self.store.get(activity_id)

        while current is not None:
            parent_id = current.trigger_id
            if parent_id in seen:
                logger.warning("Trigger cycle detected at activity %d", parent_id)
                break
            seen.add(parent_id)
            result.append(parent_id)
            current = self.store.get(parent_id)

        return result

    def descendants(self, activity_id: int) -> list[int]:
        """All transitive children, breadth first, excluding the root."""
        result: list[int] = []
        seen = {activity_id}
        queue = deque(self._children.get(activity_id, ()))
        while queue:
            child = queue.popleft()
            if child in seen:
                continue
            seen.add(child)
            result.append(child)
            queue.extend(self._children.get(child, ()))
        return result

    def nearest_common_ancestor(self, first_id: int, second_id: int) -> int | None:
        """
        The closest id that is an ancestor of (or equal to) both ids.

        Returns None when either id is unknown or the two never meet.
        """
        if first_id not in self.store or second_id not in self.store:
            return None
        first_line = [first_id, *self.ancestors(first_id)]
        second_line = {second_id, *self.ancestors(second_id)}
        for candidate in first_line:
            if candidate in second_line:
                return candidate
        return None

    # ── Chain queries ────────────────────────────────────────────────────

    def descendants_until(self, root_id: int, stop: Predicate) -> list[int]:
        """
        Root plus every id it transitively triggered, in store order.

        The walk ends at (and includes) the first collected id for which
        ``stop(id, activity)`` is true. Activities that are not part of the
        chain never end the walk. Returns an empty list for unknown roots.
        """
        root = self.store.get(root_id)
        if root is None:
            return []

        ids = [root_id]
        if stop(root_id, root):
            return ids

        members = {root_id}
        for activity_id in self.store.ids_after(root_id):
            activity = self.store[activity_id]
            if activity.trigger_id not in members:
                continue
            members.add(activity_id)
            ids.append(activity_id)
            if stop(activity_id, activity):
                break
        return ids

    # ── Sibling queries ──────────────────────────────────────────────────

    def all_siblings(self, anchor_id: int, match: Predicate) -> list[int]:
        """
        Matching ids that descend from any ancestor of ``anchor_id``.

        Nearer ancestors' subtrees are reported first. The anchor itself
        is never included. Unknown anchors yield an empty list.
        """
        if anchor_id not in self.store:
            return []

        result: list[int] = []
        visited: set[int] = set()
        for ancestor in self.ancestors(anchor_id):
            queue = deque(self._children.get(ancestor, ()))
            while queue:
                node = queue.popleft()
                if node in visited:
                    continue
                visited.add(node)
                if node != anchor_id and match(node, self.store[node]):
                    result.append(node)
                queue.extend(self._children.get(node, ()))
        return result

    def closest_sibling(self, anchor_id: int, match: Predicate) -> int | None:
        """
        The match that shares the nearest ancestor with ``anchor_id``.

        Ancestors are tried nearest first. Within one ancestor's subtree
        the shallowest match wins and equal depths resolve to the
        smallest id. Returns None when nothing matches.
        """
        if anchor_id not in self.store:
            return None

        visited: set[int] = set()
        for ancestor in self.ancestors(anchor_id):
            level = [c for c in self._children.get(ancestor, ()) if c not in visited]
            while level:
                visited.update(level)
                matches = [
                    node for node in level
                    if node != anchor_id and match(node, self.store[node])
                ]
                if matches:
                    return min(matches)
                level = [
                    child
                    for node in level
                    for child in self._children.get(node, ())
                    if child not in visited
                ]
        return None

    # ── Time ranking ─────────────────────────────────────────────────────

    def oldest_id(self, ids: Iterable[int]) -> int | None:
        """
        Id with the smallest init timestamp; ties go to the smallest id.

        Unknown ids and ids without an init timestamp are ignored.
        """
        ranked = self._ranked(ids)
        if not ranked:
            return None
        return min(ranked)[1]

    def immediately_before_id(self, ids: Iterable[int], reference_id: int) -> int | None:
        """
        The candidate initialized most recently before ``reference_id``.

        Candidates whose init exceeds the reference's init are skipped.
        Among the rest the largest init wins; ties go to the smallest id.

        Raises:
            PreconditionError: If ``reference_id`` is not in the store.
        """
        reference = self.store.get(reference_id)
        if reference is None:
            raise PreconditionError(
                f"Reference activity {reference_id} is not in the store",
                activity_id=reference_id,
            )

        base = reference.first("init")
        if base is None:
            return None

        eligible = [
            (stamp, aid)
            for stamp, aid in self._ranked(ids)
            if aid != reference_id and stamp <= base
        ]
        if not eligible:
            return None
        best = max(stamp for stamp, _ in eligible)
        return min(aid for stamp, aid in eligible if stamp == best)

    def _ranked(self, ids: Iterable[int]) -> list[tuple[float, int]]:
        ranked: list[tuple[float, int]] = []
        for aid in ids:
            activity = self.store.get(aid)
            if activity is None:
                continue
            stamp = activity.first("init")
            if stamp is None:
                continue
            ranked.append((stamp, aid))
        return ranked
