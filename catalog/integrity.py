"""Delete guard for records that other records still point at."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Tuple

from catalog.derived import present
from catalog.exceptions import IntegrityBlocked
from catalog.models import Kind
from catalog.store import EntityStore

logger = logging.getLogger(__name__)

# (dependent kind, reference field) pairs for each kind
DEPENDENTS: Dict[Kind, List[Tuple[Kind, str]]] = {
    Kind.AUTHOR: [(Kind.BOOK, "author")],
    Kind.GENRE: [(Kind.BOOK, "genres")],
    Kind.BOOK: [(Kind.BOOK_INSTANCE, "book")],
    Kind.BOOK_INSTANCE: [],
}


class IntegrityGuard:
    """Looks up dependents before a delete and refuses it while any exist.

    The lookup and the delete are separate store calls, so a dependent
    created in between is not caught.
    """

    def __init__(self, store: EntityStore) -> None:
        self.store = store

    def dependents(self, kind: Kind, record_id: str) -> Dict[Kind, List[Dict[str, Any]]]:
        found: Dict[Kind, List[Dict[str, Any]]] = {}
        for dependent_kind, field in DEPENDENTS[kind]:
            found[dependent_kind] = self.store.find(dependent_kind, {field: record_id})
        return found

    def dependent_count(self, kind: Kind, record_id: str) -> int:
        return sum(
            self.store.count(dependent_kind, {field: record_id})
            for dependent_kind, field in DEPENDENTS[kind]
        )

    def check(self, kind: Kind, record_id: str) -> None:
        """Raise IntegrityBlocked if ``record_id`` still has dependents."""
        # TODO: replace with a single DELETE ... WHERE NOT EXISTS statement so the
        # check and the delete happen in one store call.
        if not DEPENDENTS[kind] or self.dependent_count(kind, record_id) == 0:
            return
        dependents = self.dependents(kind, record_id)
        logger.info(f"Delete of {kind.value} {record_id} blocked by dependents")
        raise IntegrityBlocked(
            kind.value,
            record_id,
            {k.plural: [present(k, d) for d in docs] for k, docs in dependents.items() if docs},
        )
