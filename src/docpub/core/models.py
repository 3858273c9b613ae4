"""Core domain models for documents, authors and ingestion results."""

from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

DOCUMENT_FORMAT = "es.4"


class Document(BaseModel):
    """A single revision of content at a path, as exchanged with sync peers.

    Field names are snake_case in Python and camelCase on the wire.
    Types are checked strictly: a number where a string is expected (or
    the reverse) is a schema error, not something to coerce.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        strict=True,
        frozen=True,
    )

    format: str
    workspace: str
    path: str
    content_hash: str
    content: str
    author: str
    timestamp: int = Field(..., description="Microseconds since the epoch")
    signature: str
    delete_after: Optional[int] = None

    @field_validator("format", "workspace", "path", "content_hash", "content", "author", "signature")
    @classmethod
    def _require_utf8(cls, v: str) -> str:
        """Reject strings with lone surrogates; they cannot be hashed or stored."""
        try:
            v.encode("utf-8")
        except UnicodeEncodeError:
            raise ValueError("string is not valid UTF-8 text")
        return v

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)

    def sort_key(self) -> tuple:
        """Ordering used for latest-wins: newest timestamp, then greatest signature."""
        return (self.timestamp, self.signature)


class DocDraft(BaseModel):
    """The fields an author supplies when writing a document directly."""

    format: str = DOCUMENT_FORMAT
    path: str
    content: str
    delete_after: Optional[int] = None


class AuthorKeypair(BaseModel):
    """Author identity and its secret."""

    model_config = ConfigDict(frozen=True)

    address: str
    secret: str


class IngestOutcome(str, Enum):
    """What a store did with one incoming document."""

    ACCEPTED_LATEST = "accepted-latest"
    ACCEPTED_STALE = "accepted-stale"
    REJECTED = "rejected"

    @property
    def accepted(self) -> bool:
        return self is not IngestOutcome.REJECTED


class IngestResult(BaseModel):
    """Outcome of ``DocumentStore.ingest``."""

    outcome: IngestOutcome
    document: Optional[Document] = None
    reason: Optional[str] = None


class BatchSummary(BaseModel):
    """Tally of one upload batch, serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    num_ingested: int = Field(0, ge=0)
    num_ignored: int = Field(0, ge=0)
    num_total: int = Field(0, ge=0)

    @model_validator(mode="after")
    def _check_tally(self) -> "BatchSummary":
        if self.num_ingested + self.num_ignored != self.num_total:
            raise ValueError("num_ingested + num_ignored must equal num_total")
        return self
