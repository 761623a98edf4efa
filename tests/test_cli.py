from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from catalog.main import app, parse_fields
from catalog.models import Kind

runner = CliRunner()


@pytest.fixture(autouse=True)
def plain_output(monkeypatch):
    monkeypatch.delenv("CATALOG_CLI_OUTPUT", raising=False)


def test_list_no_records(lib):
    result = runner.invoke(app, ["list", "author"])
    assert result.exit_code == 0
    assert "No authors in catalog." in result.stdout


def test_add_and_list_author(lib):
    result = runner.invoke(app, ["add", "author", "first_name=J.R.R.", "family_name=Tolkien", "date_of_birth=1892-01-03"])
    assert result.exit_code == 0
    assert "Created: /catalog/author/" in result.stdout

    result = runner.invoke(app, ["list", "author"])
    assert "Tolkien, J.R.R. (Jan 3, 1892 - present)" in result.stdout


def test_add_invalid_record_reports_errors(lib):
    result = runner.invoke(app, ["add", "bookinstance", "imprint=Penguin", "status=Borrowed"])
    assert result.exit_code == 1
    assert "Validation failed:" in result.stdout
    assert "book: Book must be specified" in result.stdout
    assert "status: Invalid status value." in result.stdout


def test_show_and_delete_blocked(lib, make):
    author_id = make(Kind.AUTHOR, first_name="J.R.R.", family_name="Tolkien")
    book_id = make(Kind.BOOK, title="The Hobbit", author=author_id)

    result = runner.invoke(app, ["show", "author", author_id])
    assert result.exit_code == 0
    assert "Tolkien, J.R.R." in result.stdout
    assert f"{book_id} - The Hobbit" in result.stdout

    result = runner.invoke(app, ["delete", "author", author_id])
    assert result.exit_code == 1
    assert "Cannot delete" in result.stdout
    assert book_id in result.stdout

    assert runner.invoke(app, ["delete", "book", book_id]).exit_code == 0
    result = runner.invoke(app, ["delete", "author", author_id])
    assert result.exit_code == 0
    assert f"author {author_id} has been removed." in result.stdout


def test_show_missing_record(lib):
    result = runner.invoke(app, ["show", "genre", "nope"])
    assert result.exit_code == 1
    assert "genre nope not found." in result.stdout


def test_update_record(lib, make):
    genre_id = make(Kind.GENRE, name="Fantasy")
    result = runner.invoke(app, ["update", "genre", genre_id, "name=High Fantasy"])
    assert result.exit_code == 0
    assert lib.detail(Kind.GENRE, genre_id)["genre"]["name"] == "High Fantasy"


def test_stats_json_output(lib, make):
    make(Kind.GENRE, name="Poetry")
    result = runner.invoke(app, ["--output", "json", "stats"])
    assert result.exit_code == 0
    assert '"genre_count": 1' in result.stdout


def test_parse_fields_collects_repeated_keys():
    assert parse_fields(["title=A=B", "genres=g1", "genres=g2"]) == {"title": "A=B", "genres": ["g1", "g2"]}


@patch("subprocess.run")
def test_serve_command(mock_subprocess_run, lib):
    result = runner.invoke(app, ["serve"])
    assert result.exit_code == 0
    assert "Starting API on" in result.stdout
    mock_subprocess_run.assert_called_once()
    args = mock_subprocess_run.call_args[0][0]
    assert "uvicorn" in args
    assert "catalog.api:app" in args
    assert "--reload" not in args
