"""Display values computed from stored record fields.

Nothing here is persisted or cached: every read recomputes names, URLs and
formatted dates from the fields the store returned.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional

from catalog.models import MODELS, REFERENCES, Author, BookInstance, Kind

MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
          "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def full_name(author: Author) -> str:
    """``"Family, First"``, or an empty string when either part is missing."""
    if author.first_name and author.family_name:
        return f"{author.family_name}, {author.first_name}"
    return ""


def canonical_url(kind: Kind, record_id: str) -> str:
    return f"/catalog/{kind.value}/{record_id}"


def list_url(kind: Kind) -> str:
    return f"/catalog/{kind.plural}"


def formatted_date(value: Optional[date], fallback: str = "") -> str:
    """Medium date such as ``Jan 5, 2024``; ``fallback`` when unset."""
    if value is None:
        return fallback
    return f"{MONTHS[value.month - 1]} {value.day}, {value.year}"


def lifespan(author: Author) -> str:
    born = formatted_date(author.date_of_birth)
    died = formatted_date(author.date_of_death, fallback="present")
    return f"{born} - {died}"


def date_picker_value(value: Optional[date]) -> Optional[str]:
    """``yyyy-mm-dd`` for pre-filling date inputs, or None."""
    return value.isoformat() if value else None


def _author_fields(author: Author) -> Dict[str, Any]:
    return {
        "name": full_name(author),
        "date_of_birth_formatted": formatted_date(author.date_of_birth),
        "date_of_death_formatted": formatted_date(author.date_of_death, fallback="present"),
        "lifespan": lifespan(author),
        "date_of_birth_datepicker": date_picker_value(author.date_of_birth),
        "date_of_death_datepicker": date_picker_value(author.date_of_death),
    }


def _instance_fields(instance: BookInstance) -> Dict[str, Any]:
    return {
        "due_back_formatted": formatted_date(instance.due_back),
        "due_back_datepicker": date_picker_value(instance.due_back),
    }


def present(kind: Kind, doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Build the outbound payload for a stored document.

    Stored fields come first, then the derived fields for ``kind``.  Reference
    fields that were populated by the store are presented recursively; plain
    ids are left as they are.
    """
    if doc is None:
        return None
    record = MODELS[kind].from_dict(doc)
    payload: Dict[str, Any] = {"id": record.id, **record.to_dict()}
    for field, target in REFERENCES[kind].items():
        value = doc.get(field)
        if isinstance(value, list):
            payload[field] = [present(target, v) if isinstance(v, dict) else v for v in value]
        elif isinstance(value, dict) or (value is None and field in doc):
            payload[field] = present(target, value)
    payload["url"] = canonical_url(kind, record.id)
    if kind is Kind.AUTHOR:
        payload.update(_author_fields(record))
    elif kind is Kind.BOOK_INSTANCE:
        payload.update(_instance_fields(record))
    return payload
