"""Shared fixtures: author identities and a document builder."""

from typing import Optional

import pytest

from docpub.core.models import AuthorKeypair, DocDraft, Document
from docpub.store.documents import build_document
from docpub.store.validation import now_microseconds

SUZY = AuthorKeypair(address="@suzy.b" + "a" * 52, secret="b" + "s" * 52)
FRED = AuthorKeypair(address="@fred.b" + "f" * 52, secret="b" + "q" * 52)


@pytest.fixture
def suzy() -> AuthorKeypair:
    return SUZY


@pytest.fixture
def fred() -> AuthorKeypair:
    return FRED


@pytest.fixture
def make_doc():
    """Return a function building a valid document for a workspace."""

    def _make(
        workspace: str,
        path: str,
        content: str,
        keypair: AuthorKeypair = SUZY,
        timestamp: Optional[int] = None,
        delete_after: Optional[int] = None,
    ) -> Document:
        ts = timestamp if timestamp is not None else now_microseconds()
        draft = DocDraft(path=path, content=content, delete_after=delete_after)
        return build_document(keypair, workspace, draft, ts)

    return _make
