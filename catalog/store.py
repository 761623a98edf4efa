"""Document store for catalog records.

Records are kept as JSON documents, one SQLite table per kind.  The store
exposes plain CRUD + query primitives over ``dict`` documents and hides the
SQL underneath; every call opens its own connection, so each call is atomic
on its own and nothing spans calls.
"""

from __future__ import annotations

import json
import logging
import re
import sqlite3
import uuid
from functools import wraps
from typing import Any, Dict, Iterable, List, Optional, Sequence

from catalog.database import get_db_connection, initialize_database
from catalog.exceptions import NotFound, StoreUnavailable
from catalog.models import REFERENCES, Kind

logger = logging.getLogger(__name__)

_FIELD_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _store_call(func):
    """Translate SQLite failures into StoreUnavailable."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except sqlite3.Error as e:
            logger.error(f"Store call {func.__name__} failed: {e}")
            raise StoreUnavailable(str(e)) from e
    return wrapper


def _json_path(field: str) -> str:
    if not _FIELD_RE.match(field):
        raise ValueError(f"Invalid field name: {field!r}")
    return f"$.{field}"


def _where(filter: Optional[Dict[str, Any]]) -> tuple[str, list]:
    """Build a WHERE clause for an equality filter.

    ``json_each`` yields a single row for scalars and one row per element for
    arrays, so the same clause matches ``author == x`` and ``x in genres``.
    """
    if not filter:
        return "", []
    clauses = []
    params: list = []
    for field, value in filter.items():
        clauses.append("EXISTS (SELECT 1 FROM json_each(data, ?) WHERE value = ?)")
        params.extend([_json_path(field), value])
    return " WHERE " + " AND ".join(clauses), params


def _to_document(row: sqlite3.Row) -> Dict[str, Any]:
    doc = json.loads(row["data"])
    doc["id"] = row["id"]
    return doc


class EntityStore:
    """CRUD + query access to the four catalog collections."""

    def __init__(self, db_file: Optional[str] = None) -> None:
        self.db_file = db_file
        initialize_database(db_file)

    def _connect(self) -> sqlite3.Connection:
        return get_db_connection(self.db_file)

    # ------------------------- Writes ------------------------- #
    @_store_call
    def create(self, kind: Kind, fields: Dict[str, Any]) -> str:
        record_id = uuid.uuid4().hex
        payload = {k: v for k, v in fields.items() if k != "id"}
        conn = self._connect()
        try:
            conn.execute(
                f"INSERT INTO {kind.value} (id, data) VALUES (?, ?)",
                (record_id, json.dumps(payload, ensure_ascii=False)),
            )
            conn.commit()
        finally:
            conn.close()
        return record_id

    @_store_call
    def update(self, kind: Kind, record_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Replace the stored document for ``record_id`` with ``fields``."""
        payload = {k: v for k, v in fields.items() if k != "id"}
        conn = self._connect()
        try:
            cursor = conn.execute(
                f"UPDATE {kind.value} SET data = ? WHERE id = ?",
                (json.dumps(payload, ensure_ascii=False), record_id),
            )
            conn.commit()
            if cursor.rowcount == 0:
                raise NotFound(kind.value, record_id)
        finally:
            conn.close()
        return {**payload, "id": record_id}

    @_store_call
    def delete(self, kind: Kind, record_id: str) -> None:
        conn = self._connect()
        try:
            cursor = conn.execute(f"DELETE FROM {kind.value} WHERE id = ?", (record_id,))
            conn.commit()
            if cursor.rowcount == 0:
                raise NotFound(kind.value, record_id)
        finally:
            conn.close()

    # ------------------------- Reads ------------------------- #
    @_store_call
    def get_by_id(self, kind: Kind, record_id: str, populate: Sequence[str] = ()) -> Dict[str, Any]:
        conn = self._connect()
        try:
            row = conn.execute(
                f"SELECT id, data FROM {kind.value} WHERE id = ?", (record_id,)
            ).fetchone()
        finally:
            conn.close()
        if row is None:
            raise NotFound(kind.value, record_id)
        doc = _to_document(row)
        if populate:
            self._populate(kind, [doc], populate)
        return doc

    @_store_call
    def find(
        self,
        kind: Kind,
        filter: Optional[Dict[str, Any]] = None,
        projection: Optional[Iterable[str]] = None,
        populate: Sequence[str] = (),
        sort: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Return all documents of ``kind`` matching ``filter``.

        ``projection`` limits the returned fields (``id`` is always kept) and
        ``sort`` names a field to order by ascending.
        """
        where, params = _where(filter)
        order = ""
        if sort:
            order = " ORDER BY json_extract(data, ?) COLLATE NOCASE, id"
            params.append(_json_path(sort))
        conn = self._connect()
        try:
            rows = conn.execute(f"SELECT id, data FROM {kind.value}{where}{order}", params).fetchall()
        finally:
            conn.close()
        docs = [_to_document(row) for row in rows]
        if populate:
            self._populate(kind, docs, populate)
        if projection is not None:
            keep = set(projection) | {"id"}
            docs = [{k: v for k, v in doc.items() if k in keep} for doc in docs]
        return docs

    @_store_call
    def count(self, kind: Kind, filter: Optional[Dict[str, Any]] = None) -> int:
        where, params = _where(filter)
        conn = self._connect()
        try:
            return conn.execute(f"SELECT COUNT(*) FROM {kind.value}{where}", params).fetchone()[0]
        finally:
            conn.close()

    def _get_many(self, kind: Kind, ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        ids = list({i for i in ids if i})
        if not ids:
            return {}
        placeholders = ", ".join("?" for _ in ids)
        conn = self._connect()
        try:
            rows = conn.execute(
                f"SELECT id, data FROM {kind.value} WHERE id IN ({placeholders})", ids
            ).fetchall()
        finally:
            conn.close()
        return {row["id"]: _to_document(row) for row in rows}

    def _populate(self, kind: Kind, docs: List[Dict[str, Any]], fields: Sequence[str]) -> None:
        """Resolve reference fields in place, join-style."""
        refs = REFERENCES[kind]
        for field in fields:
            if field not in refs:
                raise ValueError(f"{kind.value}.{field} is not a reference field")
            target = refs[field]
            wanted: List[str] = []
            for doc in docs:
                value = doc.get(field)
                wanted.extend(value if isinstance(value, list) else [value])
            found = self._get_many(target, wanted)
            for doc in docs:
                value = doc.get(field)
                if isinstance(value, list):
                    # Dangling ids drop out of list references
                    doc[field] = [found[v] for v in value if v in found]
                else:
                    doc[field] = found.get(value)
