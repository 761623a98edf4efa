"""Data models for the library catalog.

Each record kind is a dataclass with ``to_dict``/``from_dict`` helpers that
convert between the typed record and the JSON document kept by the store.
Dates travel as ISO ``yyyy-mm-dd`` strings inside documents and as
``datetime.date`` on the models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional


class Kind(str, Enum):
    """Record kinds; the value doubles as the collection and URL segment."""
    AUTHOR = "author"
    GENRE = "genre"
    BOOK = "book"
    BOOK_INSTANCE = "bookinstance"

    @property
    def plural(self) -> str:
        return f"{self.value}s"


class Status(str, Enum):
    """Circulation status of a physical copy."""
    MAINTENANCE = "Maintenance"
    AVAILABLE = "Available"
    LOANED = "Loaned"
    RESERVED = "Reserved"


# Reference fields per kind and the kind they point at.
REFERENCES: Dict[Kind, Dict[str, Kind]] = {
    Kind.AUTHOR: {},
    Kind.GENRE: {},
    Kind.BOOK: {"author": Kind.AUTHOR, "genres": Kind.GENRE},
    Kind.BOOK_INSTANCE: {"book": Kind.BOOK},
}


def _ref_id(value: Any) -> Any:
    # Populated references arrive as nested documents
    if isinstance(value, dict):
        return value.get("id")
    return value


def _parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _format_date(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class Author:
    first_name: str
    family_name: str
    date_of_birth: Optional[date] = None
    date_of_death: Optional[date] = None
    id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "first_name": self.first_name,
            "family_name": self.family_name,
            "date_of_birth": _format_date(self.date_of_birth),
            "date_of_death": _format_date(self.date_of_death),
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Author":
        return Author(
            first_name=data.get("first_name") or "",
            family_name=data.get("family_name") or "",
            date_of_birth=_parse_date(data.get("date_of_birth")),
            date_of_death=_parse_date(data.get("date_of_death")),
            id=data.get("id"),
        )


@dataclass
class Genre:
    name: str
    id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name}

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Genre":
        return Genre(name=data.get("name") or "", id=data.get("id"))


@dataclass
class Book:
    title: str
    author: str
    summary: str = ""
    isbn: str = ""
    genres: List[str] = field(default_factory=list)
    id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "author": self.author,
            "summary": self.summary,
            "isbn": self.isbn,
            "genres": list(self.genres),
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Book":
        genres = [_ref_id(g) for g in data.get("genres") or [] if g is not None]
        return Book(
            title=data.get("title") or "",
            author=_ref_id(data.get("author")) or "",
            summary=data.get("summary") or "",
            isbn=data.get("isbn") or "",
            genres=genres,
            id=data.get("id"),
        )


@dataclass
class BookInstance:
    book: str
    imprint: str
    status: Status = Status.MAINTENANCE
    due_back: Optional[date] = None
    id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "book": self.book,
            "imprint": self.imprint,
            "status": self.status.value,
            "due_back": _format_date(self.due_back),
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "BookInstance":
        return BookInstance(
            book=_ref_id(data.get("book")) or "",
            imprint=data.get("imprint") or "",
            status=Status(data.get("status") or Status.MAINTENANCE.value),
            due_back=_parse_date(data.get("due_back")),
            id=data.get("id"),
        )


MODELS = {
    Kind.AUTHOR: Author,
    Kind.GENRE: Genre,
    Kind.BOOK: Book,
    Kind.BOOK_INSTANCE: BookInstance,
}
