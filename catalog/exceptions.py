"""Errors raised by the catalog core.

Every error derives from ``CatalogError`` so callers can catch the whole
family at once.  ``ValidationError`` and ``IntegrityBlocked`` are recoverable
by the user (fix the form, remove the dependents); ``NotFound`` and
``StoreUnavailable`` are surfaced as-is and never retried.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class CatalogError(Exception):
    """Base class for catalog errors."""


class NotFound(CatalogError):
    def __init__(self, kind: str, record_id: str) -> None:
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} {record_id} not found")


class StoreUnavailable(CatalogError):
    """The backing store could not complete a call."""


class ValidationError(CatalogError):
    """One or more submitted fields were rejected.

    ``values`` holds the sanitized submission so the form can be shown again
    pre-filled, ``errors`` the ordered field violations and ``context`` any
    reference lists the form needs (e.g. all authors for a book form).
    """

    def __init__(self, errors: List[Any], values: Dict[str, Any], context: Optional[Dict[str, Any]] = None) -> None:
        self.errors = errors
        self.values = values
        self.context = context or {}
        fields = ", ".join(e.path for e in errors)
        super().__init__(f"Invalid fields: {fields}")


class IntegrityBlocked(CatalogError):
    """Delete refused because other records still reference the target."""

    def __init__(self, kind: str, record_id: str, dependents: Dict[str, List[Dict[str, Any]]]) -> None:
        self.kind = kind
        self.record_id = record_id
        self.dependents = dependents
        super().__init__(f"{kind} {record_id} has {self.count} dependent record(s)")

    @property
    def count(self) -> int:
        return sum(len(records) for records in self.dependents.values())
