"""Catalog operations: the create/read/update/delete flows for every kind.

``Library`` ties the pieces together: inbound forms go through the
validators before any store write, outbound documents go through
``derived.present`` before they leave, and deletes pass the integrity
guard first.  No step holds a lock or a transaction across store calls.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from catalog.derived import canonical_url, list_url, present
from catalog.exceptions import NotFound
from catalog.integrity import IntegrityGuard
from catalog.models import MODELS, REFERENCES, Kind, Status
from catalog.store import EntityStore
from catalog.validators import FieldError, ValidationResult, validate

logger = logging.getLogger(__name__)

# Store options for list pages
LIST_OPTIONS: Dict[Kind, Dict[str, Any]] = {
    Kind.AUTHOR: {"sort": "family_name"},
    Kind.GENRE: {"sort": "name"},
    Kind.BOOK: {"sort": "title", "populate": ("author",)},
    Kind.BOOK_INSTANCE: {"populate": ("book",)},
}

DETAIL_POPULATE: Dict[Kind, tuple] = {
    Kind.AUTHOR: (),
    Kind.GENRE: (),
    Kind.BOOK: ("author", "genres"),
    Kind.BOOK_INSTANCE: ("book",),
}

REFERENCE_MESSAGES = {
    "author": "Author not found.",
    "genres": "Genre not found.",
    "book": "Book not found.",
}


class Library:
    """Manages the catalog records and their persistence."""

    def __init__(self, db_file: Optional[str] = None, store: Optional[EntityStore] = None) -> None:
        self.store = store or EntityStore(db_file)
        self.guard = IntegrityGuard(self.store)

    # ------------------------- Read flows ------------------------- #
    def summary(self) -> Dict[str, int]:
        """Record counts for the catalog home page."""
        return {
            "book_count": self.store.count(Kind.BOOK),
            "book_instance_count": self.store.count(Kind.BOOK_INSTANCE),
            "book_instance_available_count": self.store.count(
                Kind.BOOK_INSTANCE, {"status": Status.AVAILABLE.value}
            ),
            "author_count": self.store.count(Kind.AUTHOR),
            "genre_count": self.store.count(Kind.GENRE),
        }

    def list_records(self, kind: Kind) -> List[Dict[str, Any]]:
        docs = self.store.find(kind, **LIST_OPTIONS[kind])
        return [present(kind, doc) for doc in docs]

    def detail(self, kind: Kind, record_id: str) -> Dict[str, Any]:
        """Record with references resolved, plus the records that point at it."""
        doc = self.store.get_by_id(kind, record_id, populate=DETAIL_POPULATE[kind])
        payload: Dict[str, Any] = {kind.value: present(kind, doc)}
        if kind in (Kind.AUTHOR, Kind.GENRE):
            field = "author" if kind is Kind.AUTHOR else "genres"
            books = self.store.find(Kind.BOOK, {field: record_id}, sort="title")
            payload["books"] = [present(Kind.BOOK, b) for b in books]
        elif kind is Kind.BOOK:
            copies = self.store.find(Kind.BOOK_INSTANCE, {"book": record_id})
            payload["book_instances"] = [present(Kind.BOOK_INSTANCE, c) for c in copies]
        return payload

    # ------------------------- Create / update ------------------------- #
    def create_form(self, kind: Kind) -> Dict[str, Any]:
        """Reference lists needed to fill the selectable fields of a new form."""
        return self._form_context(kind)

    def create(self, kind: Kind, form: Dict[str, Any]) -> str:
        """Validate ``form`` and store a new record; returns its URL.

        Raises ValidationError with the sanitized values and the form context
        when any field is rejected.
        """
        result = self._validated(kind, form)
        if kind is Kind.GENRE:
            existing = self._genre_named(result.values["name"])
            if existing is not None:
                logger.info(f"Genre {result.values['name']!r} already exists as {existing['id']}")
                return canonical_url(kind, existing["id"])
        record = MODELS[kind](**result.values)
        record_id = self.store.create(kind, record.to_dict())
        logger.info(f"Created {kind.value} {record_id}")
        return canonical_url(kind, record_id)

    def update_form(self, kind: Kind, record_id: str) -> Dict[str, Any]:
        doc = self.store.get_by_id(kind, record_id)
        return {kind.value: present(kind, doc), **self._form_context(kind, doc.get("genres") or ())}

    def update(self, kind: Kind, record_id: str, form: Dict[str, Any]) -> str:
        """Replace a stored record with the validated ``form``; returns its URL."""
        self.store.get_by_id(kind, record_id)
        result = self._validated(kind, form)
        record = MODELS[kind](**result.values)
        self.store.update(kind, record_id, record.to_dict())
        logger.info(f"Updated {kind.value} {record_id}")
        return canonical_url(kind, record_id)

    # ------------------------- Delete ------------------------- #
    def delete_form(self, kind: Kind, record_id: str) -> Optional[Dict[str, Any]]:
        """Record and its dependents for the confirm page; None if already gone."""
        try:
            doc = self.store.get_by_id(kind, record_id, populate=DETAIL_POPULATE[kind])
        except NotFound:
            return None
        dependents = self.guard.dependents(kind, record_id)
        return {
            kind.value: present(kind, doc),
            "dependents": {
                k.plural: [present(k, d) for d in docs] for k, docs in dependents.items()
            },
        }

    def delete(self, kind: Kind, record_id: str) -> str:
        """Delete a record unless something references it; returns the list URL."""
        self.guard.check(kind, record_id)
        try:
            self.store.delete(kind, record_id)
            logger.info(f"Deleted {kind.value} {record_id}")
        except NotFound:
            logger.info(f"{kind.value} {record_id} was already deleted")
        return list_url(kind)

    def close(self) -> None:
        """Connections are opened per call, so there is nothing to release."""
        return None

    # ------------------------- Helpers ------------------------- #
    def _validated(self, kind: Kind, form: Dict[str, Any]) -> ValidationResult:
        result = validate(kind, form)
        self._check_references(kind, result)
        if not result.is_valid:
            logger.info(f"Rejected {kind.value} form: {[e.path for e in result.errors]}")
            result.raise_for_errors(self._form_context(kind, result.values.get("genres") or ()))
        return result

    def _check_references(self, kind: Kind, result: ValidationResult) -> None:
        """Add a field error for every reference that names a missing record."""
        failed = {e.path for e in result.errors}
        for field, target in REFERENCES[kind].items():
            if field in failed:
                continue
            value = result.values.get(field)
            ids = value if isinstance(value, list) else [value]
            missing = [i for i in ids if i and not self._exists(target, i)]
            if missing:
                result.errors.append(FieldError(field, REFERENCE_MESSAGES[field], value))

    def _exists(self, kind: Kind, record_id: str) -> bool:
        try:
            self.store.get_by_id(kind, record_id)
        except NotFound:
            return False
        return True

    def _genre_named(self, name: str) -> Optional[Dict[str, Any]]:
        for genre in self.store.find(Kind.GENRE):
            if genre.get("name", "").lower() == name.lower():
                return genre
        return None

    def _form_context(self, kind: Kind, selected_genres: Iterable[Any] = ()) -> Dict[str, Any]:
        if kind is Kind.BOOK:
            selected = {g.get("id") if isinstance(g, dict) else g for g in selected_genres}
            authors = self.store.find(Kind.AUTHOR, sort="family_name")
            genres = self.store.find(Kind.GENRE, sort="name")
            return {
                "authors": [present(Kind.AUTHOR, a) for a in authors],
                "genres": [{**present(Kind.GENRE, g), "checked": g["id"] in selected} for g in genres],
            }
        if kind is Kind.BOOK_INSTANCE:
            books = self.store.find(Kind.BOOK, projection=("title",), sort="title")
            return {
                "books": [
                    {"id": b["id"], "title": b.get("title", ""), "url": canonical_url(Kind.BOOK, b["id"])}
                    for b in books
                ],
            }
        return {}
