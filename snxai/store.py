"""
Document storage with in-memory and SQLite backends.

Documents are plain JSON objects addressed by (collection, doc_id), the same
shape the community platform keeps in its document database:

- studentProfiles/{userId}
- projects/{projectId}
- placementDrives/{driveId}
- placementAchievements/{achievementId}
- resources/{resourceId}
"""

import asyncio
import copy
import json
import logging
import os
import sqlite3
import threading
from typing import Any, Dict, List, Optional

from .config import settings

logger = logging.getLogger("snxai.store")

Document = Dict[str, Any]


class BaseStore:
    """Abstract base class for document storage backends."""

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        """
        Fetch one document.

        Returns:
            A copy of the document (with its ``id``), or None if missing
        """
        raise NotImplementedError

    def set(self, collection: str, doc_id: str, doc: Document) -> Document:
        """Create or replace a document."""
        raise NotImplementedError

    def update(self, collection: str, doc_id: str, fields: Document) -> Optional[Document]:
        """
        Shallow-merge ``fields`` into an existing document.

        Returns:
            The updated document, or None if it does not exist
        """
        current = self.get(collection, doc_id)
        if current is None:
            return None
        current.update(fields)
        current.pop("id", None)
        return self.set(collection, doc_id, current)

    def query(self, collection: str) -> List[Document]:
        """Return every document in a collection (copies, each with its ``id``)."""
        raise NotImplementedError

    # Async wrappers: the backend call runs in a worker thread

    async def get_async(self, collection: str, doc_id: str) -> Optional[Document]:
        return await asyncio.to_thread(self.get, collection, doc_id)

    async def update_async(self, collection: str, doc_id: str, fields: Document) -> Optional[Document]:
        return await asyncio.to_thread(self.update, collection, doc_id, fields)

    async def query_async(self, collection: str) -> List[Document]:
        return await asyncio.to_thread(self.query, collection)

    def load_seed(self, seed: Dict[str, Any]) -> int:
        """
        Load seed documents.

        Accepts ``{collection: {doc_id: doc}}`` or ``{collection: [doc_with_id, ...]}``.

        Returns:
            Number of documents written
        """
        count = 0
        for collection, docs in (seed or {}).items():
            if isinstance(docs, dict):
                items = list(docs.items())
            elif isinstance(docs, list):
                items = [(d.get("id"), d) for d in docs if isinstance(d, dict)]
            else:
                continue
            for doc_id, doc in items:
                if not doc_id or not isinstance(doc, dict):
                    continue
                body = {k: v for k, v in doc.items() if k != "id"}
                self.set(collection, str(doc_id), body)
                count += 1
        return count

    def health_check(self) -> bool:
        return True


class MemoryStore(BaseStore):
    """Process-local store. Suitable for development and tests."""

    def __init__(self) -> None:
        self._data: Dict[str, Dict[str, Document]] = {}
        self._lock = threading.Lock()

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        with self._lock:
            doc = self._data.get(collection, {}).get(doc_id)
            if doc is None:
                return None
            return {**copy.deepcopy(doc), "id": doc_id}

    def set(self, collection: str, doc_id: str, doc: Document) -> Document:
        body = {k: v for k, v in copy.deepcopy(doc).items() if k != "id"}
        with self._lock:
            self._data.setdefault(collection, {})[doc_id] = body
        return {**copy.deepcopy(body), "id": doc_id}

    def query(self, collection: str) -> List[Document]:
        with self._lock:
            docs = self._data.get(collection, {})
            return [{**copy.deepcopy(d), "id": doc_id} for doc_id, d in docs.items()]


class SQLiteStore(BaseStore):
    """
    SQLite-based document storage.

    One row per document, body kept as JSON text.
    Data is persisted to disk and survives restarts.
    """

    def __init__(self, path: str):
        self.path = path
        self._ensure_directory()
        self._init_db()

    def _ensure_directory(self) -> None:
        dir_path = os.path.dirname(self.path)
        if dir_path and not os.path.exists(dir_path):
            os.makedirs(dir_path, exist_ok=True)

    def _conn(self) -> sqlite3.Connection:
        return sqlite3.connect(self.path, check_same_thread=False)

    def _init_db(self) -> None:
        con = self._conn()
        try:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    collection TEXT NOT NULL,
                    doc_id TEXT NOT NULL,
                    body_json TEXT NOT NULL,
                    PRIMARY KEY (collection, doc_id)
                )
                """
            )
            con.commit()
        finally:
            con.close()

    @staticmethod
    def _decode(doc_id: str, body_json: str) -> Optional[Document]:
        try:
            body = json.loads(body_json)
        except json.JSONDecodeError:
            logger.warning("Corrupt document body for %s", doc_id)
            return None
        if not isinstance(body, dict):
            return None
        return {**body, "id": doc_id}

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        con = self._conn()
        try:
            row = con.execute(
                "SELECT body_json FROM documents WHERE collection=? AND doc_id=?",
                (collection, doc_id),
            ).fetchone()
        finally:
            con.close()
        if not row:
            return None
        return self._decode(doc_id, row[0])

    def set(self, collection: str, doc_id: str, doc: Document) -> Document:
        body = {k: v for k, v in doc.items() if k != "id"}
        con = self._conn()
        try:
            con.execute(
                """
                INSERT INTO documents (collection, doc_id, body_json)
                VALUES (?, ?, ?)
                ON CONFLICT(collection, doc_id) DO UPDATE SET
                    body_json=excluded.body_json
                """,
                (collection, doc_id, json.dumps(body, ensure_ascii=False)),
            )
            con.commit()
        finally:
            con.close()
        return {**body, "id": doc_id}

    def query(self, collection: str) -> List[Document]:
        con = self._conn()
        try:
            rows = con.execute(
                "SELECT doc_id, body_json FROM documents WHERE collection=?",
                (collection,),
            ).fetchall()
        finally:
            con.close()
        docs = [self._decode(doc_id, body) for doc_id, body in rows]
        return [d for d in docs if d is not None]

    def health_check(self) -> bool:
        try:
            con = self._conn()
            try:
                con.execute("SELECT 1").fetchone()
            finally:
                con.close()
            return True
        except sqlite3.Error:
            return False


_store: Optional[BaseStore] = None
_store_lock = threading.Lock()


def _build_store() -> BaseStore:
    if settings.STORE.lower() == "sqlite":
        store: BaseStore = SQLiteStore(settings.SQLITE_PATH)
    else:
        store = MemoryStore()

    if settings.SEED_PATH:
        with open(settings.SEED_PATH, "r", encoding="utf-8") as fh:
            count = store.load_seed(json.load(fh))
        logger.info("Loaded %d seed documents from %s", count, settings.SEED_PATH)
    return store


def get_store() -> BaseStore:
    """
    Get the configured storage backend (created once per process).

    Returns:
        MemoryStore or SQLiteStore based on STORE setting
    """
    global _store
    with _store_lock:
        if _store is None:
            _store = _build_store()
        return _store


def reset_store(store: Optional[BaseStore] = None) -> None:
    """Replace (or drop) the process store. Used by tests and startup."""
    global _store
    with _store_lock:
        _store = store
