"""Volatile in-memory document store."""

from typing import Dict, List, Optional

from ..core.models import Document
from .base import DocumentStore


class MemoryDocumentStore(DocumentStore):
    """Keeps documents in a dict of path -> author -> document."""

    def __init__(self, workspace: str, **kwargs) -> None:
        super().__init__(workspace, **kwargs)
        self._docs: Dict[str, Dict[str, Document]] = {}

    async def _load_docs(self, path: Optional[str] = None) -> List[Document]:
        if path is not None:
            return list(self._docs.get(path, {}).values())
        return [doc for by_author in self._docs.values() for doc in by_author.values()]

    async def _upsert(self, doc: Document) -> None:
        self._docs.setdefault(doc.path, {})[doc.author] = doc

    async def close(self) -> None:
        self._docs.clear()


async def create_memory_store(workspace: str) -> DocumentStore:
    return MemoryDocumentStore(workspace)
