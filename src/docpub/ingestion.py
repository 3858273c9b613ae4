"""Batch ingestion of uploaded documents."""

from __future__ import annotations

from collections import Counter
from typing import Any, Dict, List

from pydantic import ValidationError

from .core.models import BatchSummary, Document, IngestOutcome
from .errors import InvalidBatchError, WorkspaceNotFoundError
from .registry import WorkspaceRegistry
from .utils.logging import get_logger

logger = get_logger(__name__)


class IngestionPipeline:
    """
    Apply an uploaded batch of documents to one workspace.

    Documents are ingested one at a time in the order they were sent, each
    awaited before the next starts, so the store sees a deterministic
    history. A rejected document never stops the batch.

    The workspace must already be registered: whether an upload may create
    a workspace is decided by the caller through ``WorkspaceRegistry.obtain``.
    """

    def __init__(self, registry: WorkspaceRegistry) -> None:
        self.registry = registry

    async def apply(self, workspace: str, documents: List[Any]) -> BatchSummary:
        """Ingest ``documents`` into ``workspace`` and tally the outcomes.

        Args:
            workspace: Address of a registered workspace
            documents: Decoded JSON array; entries that do not match the
                document schema are counted as ignored

        Returns:
            BatchSummary with ingested/ignored/total counts

        Raises:
            InvalidBatchError: ``documents`` is not a list
            WorkspaceNotFoundError: the workspace is not registered
        """
        if not isinstance(documents, list):
            raise InvalidBatchError("document batch must be a JSON array")
        store = self.registry.get(workspace)
        if store is None:
            raise WorkspaceNotFoundError(workspace)

        outcomes: Counter = Counter()
        for entry in documents:
            if isinstance(entry, dict):
                entry = _strip_local_fields(entry)
            try:
                doc = Document.model_validate(entry)
            except ValidationError as e:
                logger.debug(f"Malformed document in batch for {workspace}: {e.error_count()} errors")
                outcomes[IngestOutcome.REJECTED] += 1
                continue
            result = await store.ingest(doc)
            outcomes[result.outcome] += 1

        num_ingested = outcomes[IngestOutcome.ACCEPTED_LATEST] + outcomes[IngestOutcome.ACCEPTED_STALE]
        summary = BatchSummary(
            num_ingested=num_ingested,
            num_ignored=len(documents) - num_ingested,
            num_total=len(documents),
        )
        logger.info(
            f"Ingested {summary.num_ingested}/{summary.num_total} documents into {workspace}"
        )
        return summary


def _strip_local_fields(entry: Dict[str, Any]) -> Dict[str, Any]:
    """Drop ``_``-prefixed keys, which peers keep for local bookkeeping (e.g. ``_localIndex``)."""
    return {key: value for key, value in entry.items() if not key.startswith("_")}
