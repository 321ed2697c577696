"""Document-related domain models."""

import hashlib
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

RESOURCE_SCHEME = "memory-bank://"


class DocumentKey(str, Enum):
    """The closed set of memory bank documents, in canonical order."""

    PROJECT_BRIEF = "projectbrief.md"
    PRODUCT_CONTEXT = "productContext.md"
    ACTIVE_CONTEXT = "activeContext.md"
    SYSTEM_PATTERNS = "systemPatterns.md"
    TECH_CONTEXT = "techContext.md"
    PROGRESS = "progress.md"

    @property
    def uri(self) -> str:
        return f"{RESOURCE_SCHEME}{self.value}"

    @classmethod
    def ordered(cls) -> list["DocumentKey"]:
        """All keys in the order every listing uses."""
        return list(cls)


def compute_checksum(content: str) -> str:
    """SHA-256 hex digest of the UTF-8 encoded content."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


class Document(BaseModel):
    """A committed memory bank document.

    Instances are frozen; the store swaps in a new instance on every commit so
    readers always see a consistent snapshot.
    """

    model_config = ConfigDict(frozen=True)

    key: DocumentKey
    content: str
    version: int = Field(ge=1)
    checksum: str
    size: int = Field(ge=0)
    created_at: datetime
    modified_at: datetime

    @classmethod
    def create(
        cls,
        key: DocumentKey,
        content: str,
        version: int = 1,
        created_at: datetime | None = None,
        modified_at: datetime | None = None,
    ) -> "Document":
        """Build a document with checksum and size derived from content."""
        now = datetime.now()
        return cls(
            key=key,
            content=content,
            version=version,
            checksum=compute_checksum(content),
            size=len(content.encode("utf-8")),
            created_at=created_at or now,
            modified_at=modified_at or now,
        )

    def revise(self, content: str) -> "Document":
        """Return the next version of this document holding ``content``."""
        return Document.create(
            self.key,
            content,
            version=self.version + 1,
            created_at=self.created_at,
        )

    @property
    def uri(self) -> str:
        return self.key.uri

    def metadata(self) -> dict:
        return {
            "createdAt": self.created_at.isoformat(),
            "modifiedAt": self.modified_at.isoformat(),
            "size": self.size,
            "checksum": self.checksum,
            "version": self.version,
        }


class DocumentChange(BaseModel):
    """Notification payload emitted after a committed write."""

    key: DocumentKey
    version: int
    checksum: str
    size: int
    timestamp: datetime = Field(default_factory=datetime.now)

    def to_event_payload(self) -> dict:
        return {
            "event": "documentUpdated",
            "uri": self.key.uri,
            "key": self.key.value,
            "version": self.version,
            "checksum": self.checksum,
            "size": self.size,
            "timestamp": self.timestamp.isoformat(),
        }


class IntegrityReport(BaseModel):
    """Outcome of an integrity check over all documents."""

    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        return {
            "isValid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


class SkippedEntry(BaseModel):
    """An import entry that was not applied."""

    key: str
    reason: str


class ImportReport(BaseModel):
    """Result of importing a snapshot."""

    imported: list[DocumentKey] = Field(default_factory=list)
    skipped: list[SkippedEntry] = Field(default_factory=list)
    backup_file: str | None = None


class StoreStatistics(BaseModel):
    """Aggregate figures over the committed documents."""

    total_documents: int = Field(ge=0)
    total_size: int = Field(ge=0)
    average_size: int = Field(ge=0)
    last_modified: datetime | None = None
    oldest_modified: datetime | None = None


__all__ = [
    "RESOURCE_SCHEME",
    "DocumentKey",
    "compute_checksum",
    "Document",
    "DocumentChange",
    "IntegrityReport",
    "SkippedEntry",
    "ImportReport",
    "StoreStatistics",
]
