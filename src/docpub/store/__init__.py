"""Document stores.

A store owns the documents and history of one workspace. The pub core
only talks to the ``DocumentStore`` contract; ``MemoryDocumentStore`` and
``SqliteDocumentStore`` are the two backends shipped with it.
"""

from .base import DocumentStore, StoreFactory  # noqa: F401
from .memory import MemoryDocumentStore, create_memory_store  # noqa: F401
from .sqlite import SqliteDocumentStore, make_sqlite_factory, discover_workspaces  # noqa: F401
from .validation import FormatValidator  # noqa: F401
