"""Core domain models for the memory bank."""

from memory_bank_server.models.domain.documents import *

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
