"""Helpers for building documents from drafts."""

import hashlib

from ..core.ids import hash_content
from ..core.models import AuthorKeypair, DocDraft, Document


def placeholder_signature(keypair: AuthorKeypair, workspace: str, draft: DocDraft, timestamp: int) -> str:
    """Deterministic stand-in for a real signature over the document fields."""
    material = "\n".join(
        [
            draft.format,
            workspace,
            draft.path,
            hash_content(draft.content),
            keypair.address,
            str(timestamp),
            str(draft.delete_after),
            keypair.secret,
        ]
    )
    return "b" + hashlib.sha256(material.encode("utf-8")).hexdigest()


def build_document(keypair: AuthorKeypair, workspace: str, draft: DocDraft, timestamp: int) -> Document:
    return Document(
        format=draft.format,
        workspace=workspace,
        path=draft.path,
        content_hash=hash_content(draft.content),
        content=draft.content,
        author=keypair.address,
        timestamp=timestamp,
        signature=placeholder_signature(keypair, workspace, draft, timestamp),
        delete_after=draft.delete_after,
    )
