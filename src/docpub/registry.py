"""Workspace registry.

The registry maps workspace addresses to the ``DocumentStore`` that holds
each workspace. It is the only owner of that map: stores are created on
demand by ``obtain`` and dropped by ``delete``.

Lookups of registered workspaces never wait. Creating and deleting a
workspace happen under a lock keyed by the workspace address, so that
concurrent requests racing to create the same new workspace end up with a
single store, while requests for different workspaces never contend.
"""

from __future__ import annotations

import asyncio
from typing import Dict, Iterable, List, Optional

from .core.ids import check_workspace_address
from .store.base import DocumentStore, StoreFactory
from .utils.logging import get_logger

logger = get_logger(__name__)


class WorkspaceRegistry:
    """Owner of the workspace -> store map."""

    def __init__(self, store_factory: StoreFactory) -> None:
        self._store_factory = store_factory
        self._stores: Dict[str, DocumentStore] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}
        self.stores_created = 0

    def get(self, workspace: str) -> Optional[DocumentStore]:
        """Return the registered store without creating anything."""
        return self._stores.get(workspace)

    async def obtain(self, workspace: str, create_if_absent: bool = False) -> Optional[DocumentStore]:
        """Return the store for ``workspace``, creating it if allowed.

        Args:
            workspace: Workspace address, e.g. ``+gardening.pals``
            create_if_absent: Build and register a new store when the
                workspace is not hosted yet

        Returns:
            The store, or None when the workspace is not hosted and could not
            (or may not) be created. Creation failures are logged, not raised.
        """
        store = self._stores.get(workspace)
        if store is not None or not create_if_absent:
            return store

        async with self._workspace_lock(workspace):
            # Another request may have created it while we waited
            store = self._stores.get(workspace)
            if store is not None:
                return store

            err = check_workspace_address(workspace)
            if err is not None:
                logger.warning(f"Refusing to create workspace: {err}")
                return None
            try:
                store = await self._store_factory(workspace)
            except Exception:
                logger.exception(f"Failed to create store for {workspace}")
                return None

            self._stores[workspace] = store
            self.stores_created += 1
            logger.info(f"Created workspace {workspace}")
            logger.debug(f"Now hosting {len(self._stores)} workspaces")
            return store

    async def delete(self, workspace: str) -> bool:
        """Forget ``workspace``. Deleting an unknown workspace is a no-op.

        Durable backends keep their data; a later permitted write or a
        restart may bring the workspace back.

        Returns:
            True if a workspace was removed
        """
        async with self._workspace_lock(workspace):
            store = self._stores.pop(workspace, None)
            if store is None:
                return False
            try:
                await store.close()
            except Exception:
                logger.exception(f"Error closing store for {workspace}")
            logger.info(f"Deleted workspace {workspace}")
            return True

    def list_workspaces(self) -> List[str]:
        """Registered workspace addresses in ascending order."""
        return sorted(self._stores)

    async def load_existing(self, workspaces: Iterable[str]) -> int:
        """Register stores for workspaces that already exist in the backend."""
        loaded = 0
        for workspace in workspaces:
            logger.debug(f"Loading existing workspace {workspace}")
            if await self.obtain(workspace, create_if_absent=True) is not None:
                loaded += 1
        logger.info(f"Loaded {loaded} existing workspaces")
        return loaded

    async def close(self) -> None:
        """Close every store and empty the registry."""
        for workspace in self.list_workspaces():
            await self.delete(workspace)

    def __contains__(self, workspace: str) -> bool:
        return workspace in self._stores

    def __len__(self) -> int:
        return len(self._stores)

    def _workspace_lock(self, workspace: str) -> "_KeyedLock":
        return _KeyedLock(self, workspace)


class _KeyedLock:
    """Async context manager holding the lock for one workspace address.

    Lock objects are dropped once no request holds or waits on them, so the
    lock table only grows with the number of workspaces being changed at
    the same moment.
    """

    def __init__(self, registry: WorkspaceRegistry, workspace: str) -> None:
        self.registry = registry
        self.workspace = workspace

    async def __aenter__(self) -> None:
        reg = self.registry
        lock = reg._locks.get(self.workspace)
        if lock is None:
            lock = reg._locks[self.workspace] = asyncio.Lock()
        reg._lock_users[self.workspace] = reg._lock_users.get(self.workspace, 0) + 1
        try:
            await lock.acquire()
        except BaseException:
            self._release_user()
            raise

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.registry._locks[self.workspace].release()
        self._release_user()

    def _release_user(self) -> None:
        reg = self.registry
        reg._lock_users[self.workspace] -= 1
        if reg._lock_users[self.workspace] == 0:
            del reg._lock_users[self.workspace]
            del reg._locks[self.workspace]
