"""Base classes and interfaces for document stores."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, List, Optional

from ..core.models import AuthorKeypair, DocDraft, Document, IngestOutcome, IngestResult
from ..utils.logging import get_logger
from .documents import build_document
from .validation import FormatValidator, now_microseconds

logger = get_logger(__name__)


class DocumentStore(ABC):
    """Abstract base class for the documents and history of one workspace.

    Each author holds at most one document per path. Among the documents
    at a path the one with the newest ``(timestamp, signature)`` is the
    latest; the others make up the path's history.

    Subclasses provide the storage primitives; validation and the
    latest-wins bookkeeping live here. Writes to one store are serialized
    by ``_write_lock`` so that the compare-then-write step in ``ingest`` is
    atomic with respect to other writes to the same workspace.
    """

    def __init__(self, workspace: str, validator: Optional[FormatValidator] = None) -> None:
        self._workspace = workspace
        self.validator = validator or FormatValidator()
        self._write_lock = asyncio.Lock()

    @property
    def workspace(self) -> str:
        return self._workspace

    # -- storage primitives ------------------------------------------------

    @abstractmethod
    async def _load_docs(self, path: Optional[str] = None) -> List[Document]:
        """Return every stored document, or those at ``path``, in any order."""
        raise NotImplementedError

    @abstractmethod
    async def _upsert(self, doc: Document) -> None:
        """Store ``doc``, replacing the document its author had at the same path."""
        raise NotImplementedError

    @abstractmethod
    async def close(self) -> None:
        """Clean up resources."""
        raise NotImplementedError

    # -- contract ----------------------------------------------------------

    async def ingest(self, doc: Document) -> IngestResult:
        """Validate ``doc`` and store it if it is new.

        Returns ``rejected`` for invalid documents and for documents that are
        not newer than what the same author already has at that path.
        """
        async with self._write_lock:
            return await self._ingest_locked(doc)

    async def _ingest_locked(self, doc: Document) -> IngestResult:
        # Caller holds _write_lock
        now = now_microseconds()
        err = self.validator.check_document(doc, self.workspace, now=now)
        if err is not None:
            logger.debug(f"Rejected document at {doc.path!r} in {self.workspace}: {err}")
            return IngestResult(outcome=IngestOutcome.REJECTED, reason=err)

        existing = await self._load_docs(doc.path)
        same_author = [d for d in existing if d.author == doc.author]
        if same_author and doc.sort_key() <= same_author[0].sort_key():
            return IngestResult(
                outcome=IngestOutcome.REJECTED,
                reason="obsolete: same author already has a newer document at this path",
            )
        await self._upsert(doc)

        others = [d for d in existing if d.author != doc.author and not self.validator.is_expired(d, now)]
        is_latest = all(doc.sort_key() > d.sort_key() for d in others)
        outcome = IngestOutcome.ACCEPTED_LATEST if is_latest else IngestOutcome.ACCEPTED_STALE
        return IngestResult(outcome=outcome, document=doc)

    async def set(self, keypair: AuthorKeypair, draft: DocDraft) -> Document:
        """Write a document directly as ``keypair``.

        The timestamp is bumped past every document at the path so that the
        new document always wins. Choosing it and storing the document happen
        under the write lock, so concurrent calls cannot pick the same one.
        """
        async with self._write_lock:
            existing = await self._load_docs(draft.path)
            timestamp = now_microseconds()
            if existing:
                timestamp = max(timestamp, max(d.timestamp for d in existing) + 1)
            doc = build_document(keypair, self.workspace, draft, timestamp)
            result = await self._ingest_locked(doc)
        if not result.outcome.accepted:
            raise ValueError(f"Could not set document at {draft.path!r}: {result.reason}")
        return doc

    async def get_all_docs(self) -> List[Document]:
        """All stored documents, history included, by path then most recent first."""
        docs = self._live(await self._load_docs())
        docs.sort(key=lambda d: d.sort_key(), reverse=True)
        docs.sort(key=lambda d: d.path)
        return docs

    async def get_latest_docs(self) -> List[Document]:
        """The latest document at each path, sorted by path."""
        latest = {}
        for doc in await self.get_all_docs():
            latest.setdefault(doc.path, doc)
        return list(latest.values())

    async def get_all_docs_at_path(self, path: str) -> List[Document]:
        """History at ``path``, most recent first."""
        docs = self._live(await self._load_docs(path))
        docs.sort(key=lambda d: d.sort_key(), reverse=True)
        return docs

    def _live(self, docs: List[Document]) -> List[Document]:
        now = now_microseconds()
        return [d for d in docs if not self.validator.is_expired(d, now)]

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} workspace={self.workspace}>"


StoreFactory = Callable[[str], Awaitable[DocumentStore]]
