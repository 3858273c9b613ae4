"""Durable document store backed by one SQLite file per workspace."""

import asyncio
import sqlite3
import threading
from pathlib import Path
from typing import Dict, List, Optional

from ..core.ids import check_workspace_address, filename_to_workspace, workspace_to_filename
from ..core.models import Document
from ..errors import InvalidWorkspaceAddressError, StoreError
from ..utils.logging import get_logger
from .base import DocumentStore, StoreFactory

logger = get_logger(__name__)


class SqliteDocumentStore(DocumentStore):
    """
    SQLite-backed store.

    The connection is shared by worker threads (blocking calls run via
    ``asyncio.to_thread``), so every use of it goes through ``_conn_lock``.
    """

    def __init__(self, workspace: str, db_path: Path, **kwargs) -> None:
        super().__init__(workspace, **kwargs)
        self.db_path = Path(db_path)
        self._conn_lock = threading.Lock()
        try:
            self.conn = sqlite3.connect(
                str(self.db_path), isolation_level="DEFERRED", check_same_thread=False
            )
            self.conn.execute("PRAGMA journal_mode = WAL")
            self.conn.execute("PRAGMA synchronous = NORMAL")
            self._init_schema()
        except sqlite3.Error as e:
            raise StoreError(f"Could not open {self.db_path}: {e}") from e

    def _init_schema(self) -> None:
        self.conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS config (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS docs (
                path TEXT NOT NULL,
                author TEXT NOT NULL,
                timestamp INTEGER NOT NULL,
                signature TEXT NOT NULL,
                doc_json TEXT NOT NULL,
                PRIMARY KEY (path, author)
            );

            CREATE INDEX IF NOT EXISTS idx_docs_path ON docs(path, timestamp);
            """
        )
        row = self.conn.execute("SELECT value FROM config WHERE key = 'workspace'").fetchone()
        if row is None:
            self.conn.execute(
                "INSERT INTO config (key, value) VALUES ('workspace', ?)", (self.workspace,)
            )
        elif row[0] != self.workspace:
            raise StoreError(f"{self.db_path} holds workspace {row[0]}, not {self.workspace}")
        self.conn.commit()

    def _select(self, path: Optional[str]) -> List[Document]:
        with self._conn_lock:
            if path is None:
                cur = self.conn.execute("SELECT doc_json FROM docs")
            else:
                cur = self.conn.execute("SELECT doc_json FROM docs WHERE path = ?", (path,))
            rows = cur.fetchall()
        return [Document.model_validate_json(doc_json) for (doc_json,) in rows]

    def _write(self, doc: Document) -> None:
        with self._conn_lock:
            self.conn.execute(
                """INSERT OR REPLACE INTO docs
                (path, author, timestamp, signature, doc_json)
                VALUES (?, ?, ?, ?, ?)""",
                (
                    doc.path,
                    doc.author,
                    doc.timestamp,
                    doc.signature,
                    doc.model_dump_json(by_alias=True),
                ),
            )
            self.conn.commit()

    async def _load_docs(self, path: Optional[str] = None) -> List[Document]:
        return await asyncio.to_thread(self._select, path)

    async def _upsert(self, doc: Document) -> None:
        await asyncio.to_thread(self._write, doc)

    def _close(self) -> None:
        with self._conn_lock:
            self.conn.close()

    async def close(self) -> None:
        await asyncio.to_thread(self._close)


def make_sqlite_factory(data_folder: Path) -> StoreFactory:
    """Build a store factory that keeps each workspace in ``data_folder``."""
    data_folder = Path(data_folder)

    async def create_sqlite_store(workspace: str) -> DocumentStore:
        # The address becomes a file name, so it must be validated first
        err = check_workspace_address(workspace)
        if err is not None:
            raise InvalidWorkspaceAddressError(err)
        db_path = workspace_to_filename(data_folder, workspace)
        logger.debug(f"Opening {db_path} for {workspace}")
        return await asyncio.to_thread(SqliteDocumentStore, workspace, db_path)

    return create_sqlite_store


def discover_workspaces(data_folder: Path) -> Dict[str, Path]:
    """Map each ``*.sqlite`` file in ``data_folder`` to its workspace address."""
    found: Dict[str, Path] = {}
    for db_path in sorted(Path(data_folder).glob("*.sqlite")):
        found[filename_to_workspace(db_path)] = db_path
    return found
