"""Selection of the store backend from settings."""

from ..config.settings import Settings
from .base import StoreFactory
from .memory import create_memory_store
from .sqlite import make_sqlite_factory


def get_store_factory(settings: Settings) -> StoreFactory:
    """Return the factory that builds a new store for the configured backend."""
    if settings.storage_type == "memory":
        return create_memory_store
    if settings.storage_type == "sqlite":
        return make_sqlite_factory(settings.data_folder)
    raise ValueError(f"Unknown storage type: {settings.storage_type}")
