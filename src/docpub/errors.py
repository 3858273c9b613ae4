"""Exception types raised by the pub core.

The API layer maps these onto HTTP statuses; none of them carries backend
detail that should reach a client.
"""


class PubError(Exception):
    """Base class for pub errors."""


class WorkspaceNotFoundError(PubError):
    """The workspace is not hosted, or could not be created."""

    def __init__(self, workspace: str) -> None:
        super().__init__(f"Workspace not found: {workspace}")
        self.workspace = workspace


class InvalidBatchError(PubError):
    """An upload body is not a JSON array of documents."""


class InvalidWorkspaceAddressError(PubError):
    """A workspace address does not have the expected shape."""


class StoreError(PubError):
    """A document store backend failed."""
