from datetime import date

import pytest

from catalog.derived import (
    canonical_url,
    date_picker_value,
    formatted_date,
    full_name,
    lifespan,
    list_url,
    present,
)
from catalog.models import Author, Kind


@pytest.mark.parametrize("first,family,expected", [
    ("J.R.R.", "Tolkien", "Tolkien, J.R.R."),
    ("", "Tolkien", ""),
    ("J.R.R.", "", ""),
    ("", "", ""),
])
def test_full_name(first, family, expected):
    assert full_name(Author(first_name=first, family_name=family)) == expected


def test_urls():
    assert canonical_url(Kind.BOOK_INSTANCE, "abc") == "/catalog/bookinstance/abc"
    assert canonical_url(Kind.AUTHOR, "42") == "/catalog/author/42"
    assert list_url(Kind.GENRE) == "/catalog/genres"


def test_formatted_date_and_fallbacks():
    assert formatted_date(date(2024, 1, 5)) == "Jan 5, 2024"
    assert formatted_date(date(1973, 12, 31)) == "Dec 31, 1973"
    assert formatted_date(None) == ""
    assert formatted_date(None, fallback="present") == "present"


def test_lifespan_uses_per_field_fallbacks():
    living = Author("Ursula", "Le Guin", date_of_birth=date(1929, 10, 21))
    assert lifespan(living) == "Oct 21, 1929 - present"
    unknown = Author("Anon", "Ymous")
    assert lifespan(unknown) == " - present"
    dead = Author("J.R.R.", "Tolkien", date(1892, 1, 3), date(1973, 9, 2))
    assert lifespan(dead) == "Jan 3, 1892 - Sep 2, 1973"


def test_date_picker_value():
    assert date_picker_value(date(2024, 3, 5)) == "2024-03-05"
    assert date_picker_value(None) is None
    assert date_picker_value(date(999, 1, 5)) == "0999-01-05"


def test_present_author_adds_derived_fields():
    doc = {"id": "a1", "first_name": "J.R.R.", "family_name": "Tolkien", "date_of_birth": "1892-01-03", "date_of_death": None}
    payload = present(Kind.AUTHOR, doc)
    assert payload["name"] == "Tolkien, J.R.R."
    assert payload["url"] == "/catalog/author/a1"
    assert payload["date_of_birth_formatted"] == "Jan 3, 1892"
    assert payload["date_of_death_formatted"] == "present"
    assert payload["date_of_birth_datepicker"] == "1892-01-03"
    assert payload["date_of_death_datepicker"] is None
    # the input document is left alone
    assert "name" not in doc


def test_present_recurses_into_populated_references():
    doc = {
        "id": "b1",
        "title": "The Hobbit",
        "author": {"id": "a1", "first_name": "J.R.R.", "family_name": "Tolkien"},
        "genres": [{"id": "g1", "name": "Fantasy"}],
        "summary": "",
        "isbn": "",
    }
    payload = present(Kind.BOOK, doc)
    assert payload["author"]["name"] == "Tolkien, J.R.R."
    assert payload["genres"][0]["url"] == "/catalog/genre/g1"
    assert payload["url"] == "/catalog/book/b1"


def test_present_keeps_plain_reference_ids():
    doc = {"id": "c1", "book": "b1", "imprint": "Allen & Unwin", "status": "Loaned", "due_back": "2024-03-05"}
    payload = present(Kind.BOOK_INSTANCE, doc)
    assert payload["book"] == "b1"
    assert payload["status"] == "Loaned"
    assert payload["due_back_formatted"] == "Mar 5, 2024"
    assert payload["due_back_datepicker"] == "2024-03-05"


def test_present_dangling_reference_is_none():
    doc = {"id": "c1", "book": None, "imprint": "x", "status": "Available", "due_back": None}
    assert present(Kind.BOOK_INSTANCE, doc)["book"] is None
