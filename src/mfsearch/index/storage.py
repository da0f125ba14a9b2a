"""SQLite + FTS5 content store with float32 vector columns."""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence

import numpy as np

from mfsearch.errors import StoreQueryError
from mfsearch.models import Document, ModuleRecord, WorkflowRecord

LOGGER = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS documents (
        id INTEGER PRIMARY KEY,
        collection TEXT NOT NULL,
        path TEXT NOT NULL,
        kind TEXT,
        title TEXT,
        summary TEXT,
        body TEXT NOT NULL DEFAULT '',
        key_concepts TEXT,
        technical_level TEXT,
        purpose TEXT,
        embedding BLOB,
        created_at TEXT DEFAULT CURRENT_TIMESTAMP,
        UNIQUE(collection, path)
    )
    """,
    """
    CREATE VIRTUAL TABLE IF NOT EXISTS documents_fts
        USING fts5(title, summary, body, tokenize='porter unicode61')
    """,
    """
    CREATE TABLE IF NOT EXISTS modules (
        id INTEGER PRIMARY KEY,
        collection TEXT NOT NULL,
        path TEXT NOT NULL,
        relative_path TEXT,
        module_name TEXT NOT NULL,
        package_code TEXT,
        family TEXT,
        purpose TEXT,
        docstring TEXT,
        related_concepts TEXT,
        scenarios TEXT,
        embedding_text TEXT,
        source_code TEXT NOT NULL DEFAULT '',
        github_url TEXT,
        embedding BLOB,
        UNIQUE(collection, path)
    )
    """,
    """
    CREATE VIRTUAL TABLE IF NOT EXISTS modules_fts
        USING fts5(module_name, purpose, docstring, concepts, embedding_text,
                   tokenize='porter unicode61')
    """,
    """
    CREATE TABLE IF NOT EXISTS workflows (
        id INTEGER PRIMARY KEY,
        collection TEXT NOT NULL,
        path TEXT NOT NULL,
        title TEXT,
        description TEXT,
        complexity TEXT,
        workflow_type TEXT,
        packages_used TEXT,
        tags TEXT,
        purpose TEXT,
        use_cases TEXT,
        prerequisites TEXT,
        embedding_text TEXT,
        source_code TEXT NOT NULL DEFAULT '',
        embedding BLOB,
        UNIQUE(collection, path)
    )
    """,
    """
    CREATE VIRTUAL TABLE IF NOT EXISTS workflows_fts
        USING fts5(title, description, purpose, tags, embedding_text,
                   tokenize='porter unicode61')
    """,
    "CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents(collection)",
    "CREATE INDEX IF NOT EXISTS idx_modules_collection ON modules(collection)",
    "CREATE INDEX IF NOT EXISTS idx_workflows_collection ON workflows(collection)",
)

TABLES = ("documents", "modules", "workflows")

_FTS_COLUMNS = {
    "documents": "title, summary, body",
    "modules": "module_name, purpose, docstring, concepts, embedding_text",
    "workflows": "title, description, purpose, tags, embedding_text",
}


def encode_vector(vector: Optional[Sequence[float]]) -> Optional[sqlite3.Binary]:
    if vector is None:
        return None
    return sqlite3.Binary(np.asarray(vector, dtype="float32").tobytes())


def decode_vector(blob: bytes) -> np.ndarray:
    return np.frombuffer(blob, dtype="float32")


def encode_list(values: Sequence[str] | None) -> str:
    return json.dumps(list(values or []), ensure_ascii=True)


def decode_list(raw: Any) -> List[str]:
    if not raw:
        return []
    if isinstance(raw, list):
        return raw
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        return []
    return value if isinstance(value, list) else []


class ConnectionPool:
    """One SQLite connection per worker thread, shared across requests."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self._local = threading.local()
        self._lock = threading.Lock()
        self._connections: List[sqlite3.Connection] = []

    def get(self) -> sqlite3.Connection:
        conn = getattr(self._local, "conn", None)
        if conn is None:
            conn = sqlite3.connect(self.db_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=NORMAL;")
            self._local.conn = conn
            with self._lock:
                self._connections.append(conn)
        return conn

    def close_all(self) -> None:
        with self._lock:
            for conn in self._connections:
                conn.close()
            self._connections.clear()
        self._local = threading.local()


class SQLiteStore:
    """Persistence layer for documentation, module and workflow rows."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self._pool = ConnectionPool(self.db_path)
        self._ensure_schema()

    @property
    def connection(self) -> sqlite3.Connection:
        return self._pool.get()

    def close(self) -> None:
        self._pool.close_all()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        conn = self.connection
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def _ensure_schema(self) -> None:
        with self.transaction() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        """Run a read query, wrapping driver failures in ``StoreQueryError``."""
        try:
            return self.connection.execute(sql, tuple(params)).fetchall()
        except sqlite3.Error as exc:
            LOGGER.debug("Query failed: %s | params=%s", sql, params)
            raise StoreQueryError(f"Store query failed: {exc}") from exc

    def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[sqlite3.Row]:
        rows = self.fetch_all(sql, params)
        return rows[0] if rows else None

    def _replace_row(
        self,
        conn: sqlite3.Connection,
        table: str,
        collection: str,
        path: str,
        values: Dict[str, Any],
        fts_values: Sequence[str],
    ) -> tuple[int, str]:
        existing = conn.execute(
            f"SELECT id FROM {table} WHERE collection = ? AND path = ?", (collection, path)
        ).fetchone()
        if existing:
            conn.execute(f"DELETE FROM {table}_fts WHERE rowid = ?", (existing["id"],))
            conn.execute(f"DELETE FROM {table} WHERE id = ?", (existing["id"],))

        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        row_id = conn.execute(
            f"INSERT INTO {table}({columns}) VALUES ({placeholders})", tuple(values.values())
        ).lastrowid
        fts_placeholders = ", ".join("?" for _ in fts_values)
        conn.execute(
            f"INSERT INTO {table}_fts(rowid, {_FTS_COLUMNS[table]}) VALUES (?, {fts_placeholders})",
            (row_id, *fts_values),
        )
        return row_id, "updated" if existing else "inserted"

    def upsert_document(self, document: Document) -> str:
        values = {
            "collection": document.collection,
            "path": document.path,
            "kind": document.kind,
            "title": document.title,
            "summary": document.summary,
            "body": document.body,
            "key_concepts": encode_list(document.key_concepts),
            "technical_level": document.technical_level,
            "purpose": document.purpose,
            "embedding": encode_vector(document.embedding),
        }
        if document.created_at:
            values["created_at"] = document.created_at
        with self.transaction() as conn:
            _, status = self._replace_row(
                conn,
                "documents",
                document.collection,
                document.path,
                values,
                (document.title or "", document.summary or "", document.body or ""),
            )
        return status

    def upsert_module(self, module: ModuleRecord) -> str:
        values = {
            "collection": module.collection,
            "path": module.path,
            "relative_path": module.relative_path,
            "module_name": module.module_name,
            "package_code": module.package_code,
            "family": module.family,
            "purpose": module.purpose,
            "docstring": module.docstring,
            "related_concepts": encode_list(module.related_concepts),
            "scenarios": encode_list(module.scenarios),
            "embedding_text": module.embedding_text,
            "source_code": module.source_code,
            "github_url": module.github_url,
            "embedding": encode_vector(module.embedding),
        }
        concepts = " ".join(
            [module.package_code or "", *module.related_concepts, *module.scenarios]
        )
        with self.transaction() as conn:
            _, status = self._replace_row(
                conn,
                "modules",
                module.collection,
                module.path,
                values,
                (module.module_name, module.purpose, module.docstring, concepts, module.embedding_text),
            )
        return status

    def upsert_workflow(self, workflow: WorkflowRecord) -> str:
        values = {
            "collection": workflow.collection,
            "path": workflow.path,
            "title": workflow.title,
            "description": workflow.description,
            "complexity": workflow.complexity,
            "workflow_type": workflow.workflow_type,
            "packages_used": encode_list(workflow.packages_used),
            "tags": encode_list(workflow.tags),
            "purpose": workflow.purpose,
            "use_cases": encode_list(workflow.use_cases),
            "prerequisites": encode_list(workflow.prerequisites),
            "embedding_text": workflow.embedding_text,
            "source_code": workflow.source_code,
            "embedding": encode_vector(workflow.embedding),
        }
        tags = " ".join([*workflow.tags, *workflow.packages_used])
        with self.transaction() as conn:
            _, status = self._replace_row(
                conn,
                "workflows",
                workflow.collection,
                workflow.path,
                values,
                (workflow.title, workflow.description, workflow.purpose, tags, workflow.embedding_text),
            )
        return status

    def get_stats(self) -> Dict[str, Dict[str, int]]:
        """Row counts per table and collection."""
        stats: Dict[str, Dict[str, int]] = {}
        for table in TABLES:
            rows = self.fetch_all(
                f"SELECT collection, COUNT(*) AS n, COUNT(embedding) AS embedded "
                f"FROM {table} GROUP BY collection ORDER BY collection"
            )
            for row in rows:
                entry = stats.setdefault(row["collection"], {})
                entry[table] = int(row["n"])
                entry[f"{table}_embedded"] = int(row["embedded"])
        return stats
