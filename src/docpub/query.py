"""Read-only queries against hosted workspaces.

None of these create a workspace: an unknown address raises
``WorkspaceNotFoundError``.
"""

from typing import List

from .core.models import Document
from .errors import WorkspaceNotFoundError
from .registry import WorkspaceRegistry
from .store.base import DocumentStore


class QueryAPI:
    """Listing and retrieval operations."""

    def __init__(self, registry: WorkspaceRegistry) -> None:
        self.registry = registry

    def _store(self, workspace: str) -> DocumentStore:
        store = self.registry.get(workspace)
        if store is None:
            raise WorkspaceNotFoundError(workspace)
        return store

    async def list_paths(self, workspace: str) -> List[str]:
        """Distinct paths of the latest documents, sorted."""
        docs = await self._store(workspace).get_latest_docs()
        return sorted({doc.path for doc in docs})

    async def list_documents(self, workspace: str) -> List[Document]:
        """Every stored document, history included, by path then most recent first."""
        return await self._store(workspace).get_all_docs()

    async def list_latest_documents(self, workspace: str) -> List[Document]:
        """The latest document at each path, sorted by path."""
        return await self._store(workspace).get_latest_docs()

    async def list_history(self, workspace: str, path: str) -> List[Document]:
        """All documents at ``path``, most recent first."""
        return await self._store(workspace).get_all_docs_at_path(path)
