"""Document format validation.

``FormatValidator`` decides whether a schema-valid document may be stored
in a given workspace. It checks the format tag, addresses, path rules,
content hash and timestamp bounds. Signatures are only required to be
present; verifying them is left to a signature-aware store.
"""

from __future__ import annotations

import time
from typing import Optional

from ..core.ids import (
    author_can_write_to_path,
    check_author_address,
    check_path,
    check_workspace_address,
    hash_content,
    is_ephemeral_path,
)
from ..core.models import DOCUMENT_FORMAT, Document

MIN_TIMESTAMP = 10**13
MAX_TIMESTAMP = 2**53 - 2
# Clock skew tolerated for documents from the future
FUTURE_CUTOFF_MICROSECONDS = 10 * 60 * 1_000_000


def now_microseconds() -> int:
    return int(time.time() * 1_000_000)


class FormatValidator:
    """Validator for ``es.4`` documents."""

    format = DOCUMENT_FORMAT

    def check_document(self, doc: Document, workspace: str, now: Optional[int] = None) -> Optional[str]:
        """Return the reason ``doc`` is invalid for ``workspace``, or None if it is valid."""
        now = now_microseconds() if now is None else now
        if doc.format != self.format:
            return f"unsupported format {doc.format!r}"
        if doc.workspace != workspace:
            return f"document belongs to {doc.workspace!r}, not {workspace!r}"
        for err in (
            check_workspace_address(doc.workspace),
            check_author_address(doc.author),
            check_path(doc.path),
            self._check_timestamps(doc, now),
        ):
            if err is not None:
                return err
        if is_ephemeral_path(doc.path) != (doc.delete_after is not None):
            return "ephemeral paths (containing '!') require deleteAfter, and only they may set it"
        if not author_can_write_to_path(doc.author, doc.path):
            return "author does not have permission to write to this path"
        if not doc.signature:
            return "missing signature"
        if doc.content_hash != hash_content(doc.content):
            return "contentHash does not match content"
        return None

    def _check_timestamps(self, doc: Document, now: int) -> Optional[str]:
        if not MIN_TIMESTAMP <= doc.timestamp <= MAX_TIMESTAMP:
            return "timestamp out of range"
        if doc.timestamp > now + FUTURE_CUTOFF_MICROSECONDS:
            return "timestamp is too far in the future"
        if doc.delete_after is not None:
            if not MIN_TIMESTAMP <= doc.delete_after <= MAX_TIMESTAMP:
                return "deleteAfter out of range"
            if doc.delete_after <= now:
                return "document has already expired"
            if doc.delete_after <= doc.timestamp:
                return "deleteAfter must be later than timestamp"
        return None

    @staticmethod
    def is_expired(doc: Document, now: Optional[int] = None) -> bool:
        if doc.delete_after is None:
            return False
        now = now_microseconds() if now is None else now
        return doc.delete_after <= now
