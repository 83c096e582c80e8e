"""
Pure role classification.

``classify`` tests every activity against every role signature of the
requested kinds and returns an immutable Classification. It has no
state and its result does not depend on store order.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from fsprocessor.capture.models import Activity
from fsprocessor.capture.store import ActivityStore
from fsprocessor.classify.models import Classification, Role
from fsprocessor.classify.signatures import DEFAULT_SIGNATURES, SignatureTable

logger = logging.getLogger(__name__)


def roles_for(activity: Activity, kind: str, table: SignatureTable = DEFAULT_SIGNATURES) -> frozenset[Role]:
    """Every role ``activity`` satisfies for ``kind``."""
    signatures = table.for_kind(kind)
    return frozenset(s.role for s in signatures.roles if s.matches(activity))


def classify(
    store: ActivityStore,
    table: SignatureTable = DEFAULT_SIGNATURES,
    kinds: Iterable[str] | None = None,
) -> Classification:
    """
    Tag every activity with the roles it plays for each kind.

    Args:
        store: Activities to classify.
        table: Signature table to classify with.
        kinds: Kinds to classify for. Defaults to every kind in ``table``.

    Returns:
        Classification: kind -> role -> frozenset of ids.
    """
    selected = list(kinds) if kinds is not None else list(table.kinds)
    tags: dict[str, dict[Role, frozenset[int]]] = {}

    for kind in selected:
        signatures = table.for_kind(kind)
        per_role: dict[Role, frozenset[int]] = {}
        for signature in signatures.roles:
            per_role[signature.role] = frozenset(
                aid for aid, activity in store.items() if signature.matches(activity)
            )
        tags[kind] = per_role

    classification = Classification(tags)
    logger.debug("Classified %d activities: %s", len(store), classification.counts())
    return classification
