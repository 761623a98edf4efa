import pytest

from catalog import database
from catalog.library import Library


@pytest.fixture
def db_file(tmp_path, monkeypatch):
    # Unique database per test; Library() without a path picks it up too
    path = str(tmp_path / "catalog_test.db")
    monkeypatch.setattr(database, "DATABASE_FILE", path)
    return path


@pytest.fixture
def lib(db_file):
    lib = Library(db_file=db_file)
    yield lib
    lib.close()


def record_id(url: str) -> str:
    return url.rsplit("/", 1)[-1]


@pytest.fixture
def make(lib):
    """Create a record through the validated path and return its id."""
    def _make(kind, **form):
        return record_id(lib.create(kind, form))
    return _make
