"""SQLite-backed document store.

Each collection is a table of ``(id, doc)`` rows where ``doc`` is the JSON
encoding of a flat record. References between entities are stored as foreign
ids, never as embedded copies. Every operation opens its own connection so
independent reads may run on separate threads.
"""

import json
import logging
import sqlite3
import threading
import uuid
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from catalog.errors import NotFoundError, StoreError

logger = logging.getLogger(__name__)

COLLECTIONS = ("authors", "genres", "books", "bookinstances")

SortSpec = Union[str, Sequence[Tuple[str, int]], None]

ASCENDING = 1
DESCENDING = -1


def _matches(doc: Dict[str, Any], filter_: Dict[str, Any]) -> bool:
    """Equality match; a list-valued field matches when it contains the value."""
    for key, expected in filter_.items():
        actual = doc.get(key)
        if isinstance(actual, list) and not isinstance(expected, list):
            if expected not in actual:
                return False
        elif actual != expected:
            return False
    return True


def _normalize_sort(sort: SortSpec) -> List[Tuple[str, int]]:
    if not sort:
        return []
    if isinstance(sort, str):
        if sort.startswith("-"):
            return [(sort[1:], DESCENDING)]
        return [(sort, ASCENDING)]
    return [(field, direction) for field, direction in sort]


def _sorted(docs: List[Dict[str, Any]], sort: SortSpec) -> List[Dict[str, Any]]:
    # Stable sorts applied last key first give a multi-key ordering.
    for field, direction in reversed(_normalize_sort(sort)):
        present = [d for d in docs if d.get(field) is not None]
        missing = [d for d in docs if d.get(field) is None]
        present.sort(key=lambda d: d[field], reverse=direction == DESCENDING)
        docs = present + missing
    return docs


class DocumentStore:
    """Holds the database location and hands out per-collection handles."""

    def __init__(self, db_file: str) -> None:
        self.db_file = db_file
        self._schema_ready = False
        self._schema_lock = threading.Lock()

    def get_connection(self) -> sqlite3.Connection:
        """Open a new connection, creating the collection tables on first use."""
        try:
            conn = sqlite3.connect(self.db_file)
            conn.row_factory = sqlite3.Row
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open document store {self.db_file}") from e
        if not self._schema_ready:
            with self._schema_lock:
                if not self._schema_ready:
                    self._create_tables(conn)
                    self._schema_ready = True
        return conn

    def _create_tables(self, conn: sqlite3.Connection) -> None:
        try:
            for name in COLLECTIONS:
                conn.execute(
                    f"CREATE TABLE IF NOT EXISTS {name} ("
                    "id TEXT PRIMARY KEY, "
                    "doc TEXT NOT NULL, "
                    "created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP)"
                )
            conn.commit()
        except sqlite3.Error as e:
            conn.close()
            raise StoreError("Cannot create collection tables") from e
        logger.debug(f"Document store ready at {self.db_file}")

    def initialize(self) -> None:
        """Create the collection tables if they do not exist yet."""
        self.get_connection().close()

    def collection(self, name: str) -> "Collection":
        if name not in COLLECTIONS:
            raise KeyError(f"Unknown collection: {name}")
        return Collection(self, name)

    @property
    def authors(self) -> "Collection":
        return self.collection("authors")

    @property
    def genres(self) -> "Collection":
        return self.collection("genres")

    @property
    def books(self) -> "Collection":
        return self.collection("books")

    @property
    def bookinstances(self) -> "Collection":
        return self.collection("bookinstances")


class Collection:
    """Find/insert/update/delete over one collection of JSON documents.

    Returned documents are plain dicts that always carry their ``id``.
    """

    def __init__(self, store: DocumentStore, name: str) -> None:
        self.store = store
        self.name = name

    def _execute(self, sql: str, params: Iterable[Any] = ()) -> List[sqlite3.Row]:
        conn = self.store.get_connection()
        try:
            cursor = conn.execute(sql, tuple(params))
            rows = cursor.fetchall()
            conn.commit()
            return rows
        except sqlite3.Error as e:
            raise StoreError(f"{self.name}: query failed") from e
        finally:
            conn.close()

    @staticmethod
    def _row_to_doc(row: sqlite3.Row) -> Dict[str, Any]:
        doc = json.loads(row["doc"])
        doc["id"] = row["id"]
        return doc

    def find(self, filter_: Optional[Dict[str, Any]] = None, sort: SortSpec = None) -> List[Dict[str, Any]]:
        rows = self._execute(f"SELECT id, doc FROM {self.name} ORDER BY created_at, rowid")
        docs = [self._row_to_doc(row) for row in rows]
        if filter_:
            docs = [d for d in docs if _matches(d, filter_)]
        return _sorted(docs, sort)

    def find_one(self, filter_: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        found = self.find(filter_)
        return found[0] if found else None

    def find_by_id(self, record_id: str) -> Optional[Dict[str, Any]]:
        rows = self._execute(f"SELECT id, doc FROM {self.name} WHERE id = ?", (record_id,))
        return self._row_to_doc(rows[0]) if rows else None

    def count(self, filter_: Optional[Dict[str, Any]] = None) -> int:
        if not filter_:
            rows = self._execute(f"SELECT COUNT(*) FROM {self.name}")
            return rows[0][0]
        return len(self.find(filter_))

    def insert(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        """Store a new document under a fresh id and return it with that id."""
        body = {k: v for k, v in doc.items() if k != "id"}
        record_id = uuid.uuid4().hex
        self._execute(
            f"INSERT INTO {self.name} (id, doc) VALUES (?, ?)",
            (record_id, json.dumps(body, ensure_ascii=False)),
        )
        logger.debug(f"{self.name}: inserted {record_id}")
        return {**body, "id": record_id}

    def update_by_id(self, record_id: str, doc: Dict[str, Any]) -> Dict[str, Any]:
        """Replace the whole document stored at ``record_id``."""
        body = {k: v for k, v in doc.items() if k != "id"}
        conn = self.store.get_connection()
        try:
            cursor = conn.execute(
                f"UPDATE {self.name} SET doc = ? WHERE id = ?",
                (json.dumps(body, ensure_ascii=False), record_id),
            )
            conn.commit()
            updated = cursor.rowcount
        except sqlite3.Error as e:
            raise StoreError(f"{self.name}: update failed") from e
        finally:
            conn.close()
        if not updated:
            raise NotFoundError(self.name, record_id)
        return {**body, "id": record_id}

    def delete_by_id(self, record_id: str) -> None:
        """Remove the document; deleting an absent id is a no-op."""
        self._execute(f"DELETE FROM {self.name} WHERE id = ?", (record_id,))
        logger.debug(f"{self.name}: deleted {record_id}")
