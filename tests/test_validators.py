from datetime import date

import pytest

from catalog.exceptions import ValidationError
from catalog.models import Kind, Status
from catalog.validators import FieldRules, TextSanitizer, validate


def test_author_valid_form_is_trimmed():
    result = validate(Kind.AUTHOR, {"first_name": "  Ursula ", "family_name": " Le Guin", "date_of_birth": "1929-10-21"})
    assert result.is_valid
    assert result.values["first_name"] == "Ursula"
    assert result.values["family_name"] == "Le Guin"
    assert result.values["date_of_birth"] == date(1929, 10, 21)
    assert result.values["date_of_death"] is None


def test_author_missing_family_name_keeps_first_name():
    result = validate(Kind.AUTHOR, {"first_name": "Ursula", "family_name": "   "})
    assert [e.path for e in result.errors] == ["family_name"]
    assert result.errors[0].msg == "Family name must be specified."
    assert result.values["first_name"] == "Ursula"


def test_author_name_length_limit():
    result = validate(Kind.AUTHOR, {"first_name": "a" * 101, "family_name": "b" * 100})
    assert [e.path for e in result.errors] == ["first_name"]
    assert "100" in result.errors[0].msg


def test_author_invalid_date_is_echoed_back():
    result = validate(Kind.AUTHOR, {"first_name": "A", "family_name": "B", "date_of_death": " 1999-02-30 "})
    assert [e.path for e in result.errors] == ["date_of_death"]
    assert result.values["date_of_death"] == "1999-02-30"


def test_text_fields_are_escaped():
    result = validate(Kind.AUTHOR, {"first_name": "<b>Ann</b>", "family_name": "O'Hara & Co"})
    assert result.is_valid
    assert result.values["first_name"] == "&lt;b&gt;Ann&lt;&#x2F;b&gt;"
    assert result.values["family_name"] == "O&#x27;Hara &amp; Co"


def test_escape_character_set():
    assert TextSanitizer.escape('&<>"\'/\\`') == "&amp;&lt;&gt;&quot;&#x27;&#x2F;&#x5C;&#96;"


def test_all_violations_are_collected_in_field_order():
    result = validate(Kind.BOOK_INSTANCE, {})
    assert [e.path for e in result.errors] == ["book", "imprint", "status"]


@pytest.mark.parametrize("raw", ["Maintenance", "Available", "Loaned", "Reserved", "  Loaned  "])
def test_status_accepts_enum_literals(raw):
    result = validate(Kind.BOOK_INSTANCE, {"book": "b1", "imprint": "Penguin", "status": raw})
    assert result.is_valid
    assert result.values["status"] is Status(raw.strip())


@pytest.mark.parametrize("raw", ["Borrowed", "loaned", "AVAILABLE", "Loaned!", "Lo aned"])
def test_status_rejects_other_values(raw):
    result = validate(Kind.BOOK_INSTANCE, {"book": "b1", "imprint": "Penguin", "status": raw})
    assert [e.path for e in result.errors] == ["status"]
    assert result.errors[0].msg == "Invalid status value."


@pytest.mark.parametrize("raw", [None, "", "   "])
def test_missing_status_has_its_own_message(raw):
    result = validate(Kind.BOOK_INSTANCE, {"book": "b1", "imprint": "Penguin", "status": raw})
    assert [e.path for e in result.errors] == ["status"]
    assert result.errors[0].msg == "Status must be specified"


@pytest.mark.parametrize("raw,expected", [
    (None, None),
    ("", None),
    ("  ", None),
    ("2024-03-05", date(2024, 3, 5)),
    ("2024-03-05T23:30:00Z", date(2024, 3, 5)),
    ("2024-03-05T01:00:00+09:00", date(2024, 3, 5)),
])
def test_due_back_parsing(raw, expected):
    result = validate(Kind.BOOK_INSTANCE, {"book": "b1", "imprint": "Penguin", "status": "Available", "due_back": raw})
    assert result.is_valid
    assert result.values["due_back"] == expected


@pytest.mark.parametrize("raw", ["next week", "2024-13-01", "05/03/2024"])
def test_due_back_rejects_non_iso_dates(raw):
    result = validate(Kind.BOOK_INSTANCE, {"book": "b1", "imprint": "Penguin", "status": "Available", "due_back": raw})
    assert [e.path for e in result.errors] == ["due_back"]
    assert result.errors[0].msg == "Invalid date"


def test_book_genres_normalized_to_list():
    single = validate(Kind.BOOK, {"title": "T", "author": "a1", "genres": " g1 "})
    assert single.values["genres"] == ["g1"]
    absent = validate(Kind.BOOK, {"title": "T", "author": "a1"})
    assert absent.values["genres"] == []
    assert absent.values["summary"] == ""
    assert absent.values["isbn"] == ""


def test_book_requires_title_and_author():
    result = validate(Kind.BOOK, {"summary": "x"})
    assert [e.path for e in result.errors] == ["title", "author"]


def test_genre_requires_name():
    assert not validate(Kind.GENRE, {"name": " "}).is_valid
    assert validate(Kind.GENRE, {"name": "Fantasy"}).values == {"name": "Fantasy"}


def test_non_string_input_is_coerced():
    result = validate(Kind.GENRE, {"name": 1984})
    assert result.values["name"] == "1984"


@pytest.mark.parametrize("field, form", [
    ("title", {"title": ["x", "y"], "author": "a1"}),
    ("author", {"title": "T", "author": {"id": "a1"}}),
])
def test_scalar_fields_reject_lists_and_objects(field, form):
    result = validate(Kind.BOOK, form)
    assert [(e.path, e.msg) for e in result.errors] == [(field, "Invalid value.")]
    assert result.values[field] is None


def test_optional_scalar_field_rejects_list():
    result = validate(Kind.AUTHOR, {"first_name": "A", "family_name": "B", "date_of_birth": ["2000-01-01"]})
    assert [e.path for e in result.errors] == ["date_of_birth"]


def test_list_field_still_maps_elements():
    result = validate(Kind.BOOK, {"title": "T", "author": "a1", "genres": [" g1 ", "<g2>"]})
    assert result.is_valid
    assert result.values["genres"] == ["g1", "&lt;g2&gt;"]


def test_raise_for_errors_carries_display_values():
    result = validate(Kind.BOOK_INSTANCE, {"book": "b1", "imprint": "", "status": "Loaned", "due_back": "2024-01-02"})
    with pytest.raises(ValidationError) as excinfo:
        result.raise_for_errors({"books": []})
    err = excinfo.value
    assert [e.path for e in err.errors] == ["imprint"]
    assert err.values["status"] == "Loaned"
    assert err.values["due_back"] == "2024-01-02"
    assert err.context == {"books": []}


def test_field_rules_skip_validators_after_first_violation():
    rules = FieldRules("x").trim().required("missing").max_length(1, "too long").escape()
    value, error = rules.run("   ")
    assert value == ""
    assert error.msg == "missing"
