"""Checksum-versioned store for the six memory bank documents."""

import asyncio
import json
import logging
import time
import weakref
from datetime import datetime
from pathlib import Path
from typing import Callable

from memory_bank_server import __version__
from memory_bank_server.core.errors import (
    MemoryBankError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from memory_bank_server.core.host import HostCapabilities
from memory_bank_server.core.metrics import PerformanceMetrics
from memory_bank_server.core.retry import retry_io
from memory_bank_server.core.security import AuditOutcome, SecurityGate
from memory_bank_server.core.templates import template_for
from memory_bank_server.models.domain import (
    Document,
    DocumentChange,
    DocumentKey,
    ImportReport,
    IntegrityReport,
    SkippedEntry,
    StoreStatistics,
    compute_checksum,
)

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("json", "markdown")

ChangeListener = Callable[[DocumentChange], None]


class DocumentStore:
    """Holds the fixed set of documents and persists them through the host.

    Writes to one key are serialized by a per-key lock and committed
    atomically: the file is replaced first, then the in-memory document.
    Readers never take a lock and always see the last committed
    :class:`Document`.
    """

    def __init__(
        self,
        host: HostCapabilities,
        gate: SecurityGate,
        directory: str | Path | None = None,
        platform_name: str = "python",
        metrics: PerformanceMetrics | None = None,
    ):
        if directory is None:
            workspace_root = host.get_workspace_root()
            if not workspace_root:
                raise StorageError("No workspace folder found")
            directory = Path(workspace_root) / "memory-bank"

        self.host = host
        self.gate = gate
        self.directory = Path(directory)
        self.platform_name = platform_name
        self.metrics = metrics or PerformanceMetrics()

        self._documents: dict[DocumentKey, Document] = {}
        self._locks = {key: asyncio.Lock() for key in DocumentKey}
        self._init_lock = asyncio.Lock()
        self._initialized = False
        self._listeners: list[ChangeListener] = []
        self._committing_tasks: "weakref.WeakSet[asyncio.Task]" = weakref.WeakSet()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Load every document from disk, seeding templates for missing ones.

        Safe to call more than once; later calls are no-ops.
        """
        async with self._init_lock:
            if self._initialized:
                return

            await self._ensure_directory()
            for key in DocumentKey.ordered():
                self._documents[key] = await self._load_or_seed(key)

            self._initialized = True
            logger.info(f"Memory bank initialized with {len(self._documents)} documents")
            self.host.notify("info", "Memory bank initialized")

    async def _ensure_directory(self) -> None:
        try:
            if not await self.host.file_exists(str(self.directory)):
                await self.host.create_directory(str(self.directory))
                logger.info(f"Created memory bank directory: {self.directory}")
        except OSError as e:
            self.gate.audit_log.record_failure("initialize", e, directory=str(self.directory))
            raise StorageError("Failed to initialize memory bank directory") from e

    async def _load_or_seed(self, key: DocumentKey) -> Document:
        path = self._path_for(key)
        try:
            if await self.host.file_exists(path):
                started = time.perf_counter()
                content = await retry_io(
                    lambda: self.host.read_file(path), f"Reading {key.value}"
                )
                self.metrics.record_file_operation("read", time.perf_counter() - started)
                validation = self.gate.validate_content(content)
                if not validation.is_valid:
                    logger.warning(
                        f"Content validation failed for {key.value}: {', '.join(validation.errors)}"
                    )
                    self.host.notify(
                        "warning", f"{key.value} contains unsafe content that was sanitized"
                    )
                    content = validation.sanitized_content or content
                return Document.create(key, content)

            content = template_for(key)
            await self._persist(key, content)
            logger.info(f"Created new memory bank document: {key.value}")
            return Document.create(key, content)

        except StorageError:
            raise
        except OSError as e:
            self.gate.audit_log.record_failure("load", e, path=path)
            raise StorageError(f"Failed to load memory bank document {key.value}") from e

    def _path_for(self, key: DocumentKey) -> str:
        return str(self.directory / key.value)

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise MemoryBankError("Memory bank is not initialized")

    @staticmethod
    def resolve_key(key: "str | DocumentKey") -> DocumentKey:
        """Map a raw key onto the closed enumeration.

        Raises:
            NotFoundError: Key is not one of the six documents
        """
        if isinstance(key, DocumentKey):
            return key
        try:
            return DocumentKey(key)
        except ValueError:
            raise NotFoundError(f"Document not found: {str(key)[:100]}") from None

    def get(self, key: "str | DocumentKey") -> Document:
        doc_key = self.resolve_key(key)
        self._require_initialized()
        return self._documents[doc_key]

    def list_documents(self) -> list[Document]:
        """All documents in canonical key order."""
        self._require_initialized()
        return [self._documents[key] for key in DocumentKey.ordered()]

    async def put(self, key: "str | DocumentKey", content: str) -> Document:
        """Authorize and commit new content for ``key``.

        Returns:
            The committed document, one version above its predecessor

        Raises:
            NotFoundError: Unknown key
            ValidationError: Content rejected by the gate
            SecurityError: Path or command rejected by the gate
            StorageError: Persisting failed after bounded retries
        """
        doc_key = self.resolve_key(key)
        self._require_initialized()

        async with self._locks[doc_key]:
            authorization = self.gate.authorize_operation(
                "write", doc_key.value, content=content
            )
            new_content = (
                authorization.sanitized_content
                if authorization.sanitized_content is not None
                else content
            )
            updated = self._documents[doc_key].revise(new_content)

            # The commit runs to completion even if the caller is cancelled,
            # and the lock stays held until it has settled.
            caller = asyncio.current_task()
            if caller is not None:
                self._committing_tasks.add(caller)
            commit = asyncio.ensure_future(self._commit(updated))
            try:
                return await asyncio.shield(commit)
            except asyncio.CancelledError:
                if not commit.done():
                    await asyncio.wait([commit])
                raise

    def started_commit(self, task: asyncio.Task) -> bool:
        """Whether ``task`` has begun persisting a write.

        Such a task must be allowed to finish: cancelling it no longer
        prevents the write.
        """
        return task in self._committing_tasks

    async def _commit(self, updated: Document) -> Document:
        await self._persist(updated.key, updated.content)
        self._documents[updated.key] = updated
        self.gate.audit_log.record(
            "write",
            updated.key.value,
            AuditOutcome.ALLOWED,
            f"committed version {updated.version}",
            stage="executed",
        )
        logger.info(f"Updated memory bank document: {updated.key.value} (v{updated.version})")
        self._emit(
            DocumentChange(
                key=updated.key,
                version=updated.version,
                checksum=updated.checksum,
                size=updated.size,
                timestamp=updated.modified_at,
            )
        )
        return updated

    async def _persist(self, key: DocumentKey, content: str) -> None:
        path = self._path_for(key)
        started = time.perf_counter()
        try:
            await retry_io(
                lambda: self.host.write_file(path, content),
                f"Writing {key.value}",
                recover=self._recover_directory,
            )
        except OSError as e:
            self.gate.audit_log.record_failure("write", e, path=path)
            raise StorageError(f"Failed to persist {key.value}") from e
        finally:
            self.metrics.record_file_operation("write", time.perf_counter() - started)

    async def _recover_directory(self, error: OSError) -> None:
        if isinstance(error, FileNotFoundError):
            await self.host.create_directory(str(self.directory))
            logger.info("Recreated missing memory bank directory")

    def add_listener(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, change: DocumentChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception as e:
                logger.error(f"Error in change listener: {e}", exc_info=True)

    def export_snapshot(
        self,
        format: str = "json",
        include_metadata: bool = False,
        include_audit: bool = False,
    ) -> str:
        """Serialize all documents.

        Args:
            format: ``json`` or ``markdown``
            include_metadata: Add version, checksum, size and timestamps
            include_audit: Append the audit log (JSON only)
        """
        if format not in EXPORT_FORMATS:
            raise ValidationError(f"Unsupported export format: {format}")

        documents = self.list_documents()
        exported_at = datetime.now().isoformat()

        if format == "markdown":
            return self._export_markdown(documents, exported_at, include_metadata)

        data = {
            "version": __version__,
            "timestamp": exported_at,
            "platform": self.platform_name,
            "documents": [],
        }
        for doc in documents:
            entry = {
                "key": doc.key.value,
                "content": doc.content,
                "lastUpdated": doc.modified_at.isoformat(),
            }
            if include_metadata:
                entry["metadata"] = doc.metadata()
            data["documents"].append(entry)

        if include_audit:
            data["audit"] = self.gate.audit_log.export()

        return json.dumps(data, indent=2, ensure_ascii=False)

    def _export_markdown(
        self, documents: list[Document], exported_at: str, include_metadata: bool
    ) -> str:
        parts = [
            "# Memory Bank Export\n\n",
            f"**Exported:** {exported_at}\n",
            f"**Platform:** {self.platform_name}\n",
            f"**Version:** {__version__}\n\n",
        ]
        for doc in documents:
            parts.append(f"## {doc.key.value}\n\n")
            parts.append(f"**Last Updated:** {doc.modified_at.isoformat()}\n\n")
            if include_metadata:
                parts.append(
                    f"**Document Version:** {doc.version} | **Checksum:** {doc.checksum}\n\n"
                )
            parts.append(f"{doc.content}\n\n---\n\n")
        return "".join(parts)

    async def import_snapshot(
        self,
        data: str,
        overwrite_existing: bool = False,
        validate_content: bool = True,
        create_backup: bool = False,
    ) -> ImportReport:
        """Apply a JSON snapshot produced by :meth:`export_snapshot`.

        Unknown keys are skipped, as are existing documents unless
        ``overwrite_existing``. With ``validate_content`` entries whose
        content fails validation are skipped; without it they go straight to
        :meth:`put`, whose gate rejection then aborts the import.
        """
        self._require_initialized()
        self.gate.authorize_operation(
            "import", args=(str(overwrite_existing), str(validate_content))
        )

        report = ImportReport()
        if create_backup:
            report.backup_file = await self._write_backup()

        try:
            payload = json.loads(data)
        except (TypeError, json.JSONDecodeError):
            raise ValidationError("Invalid JSON format in import data") from None

        entries = None
        if isinstance(payload, dict):
            # "files" is the layout written by the 1.x editor extension
            entries = payload.get("documents", payload.get("files"))
        if not isinstance(entries, list):
            raise ValidationError("Import data must contain a documents array")

        for entry in entries:
            if not isinstance(entry, dict):
                report.skipped.append(SkippedEntry(key="?", reason="invalid entry"))
                continue
            raw_key = entry.get("key", entry.get("type"))
            content = entry.get("content")
            if not isinstance(raw_key, str) or not isinstance(content, str):
                report.skipped.append(
                    SkippedEntry(key=str(raw_key)[:100], reason="invalid entry")
                )
                continue

            try:
                key = self.resolve_key(raw_key)
            except NotFoundError:
                logger.warning(f"Skipping unknown document key: {raw_key[:100]}")
                report.skipped.append(SkippedEntry(key=raw_key[:100], reason="unknown key"))
                continue

            if key in self._documents and not overwrite_existing:
                report.skipped.append(SkippedEntry(key=key.value, reason="exists"))
                continue

            if validate_content:
                validation = self.gate.validate_content(content)
                if not validation.is_valid:
                    logger.warning(f"Skipping document with invalid content: {key.value}")
                    report.skipped.append(
                        SkippedEntry(key=key.value, reason="invalid content")
                    )
                    continue

            await self.put(key, content)
            report.imported.append(key)

        logger.info(
            f"Import completed: {len(report.imported)} imported, {len(report.skipped)} skipped"
        )
        return report

    async def _write_backup(self) -> str:
        backup_name = f"backup-{datetime.now().strftime('%Y%m%dT%H%M%S%f')}.json"
        self.gate.authorize_operation("write", backup_name)
        backup = self.export_snapshot("json", include_metadata=True)
        path = str(self.directory / backup_name)
        try:
            await retry_io(
                lambda: self.host.write_file(path, backup),
                "Writing backup",
                recover=self._recover_directory,
            )
        except OSError as e:
            self.gate.audit_log.record_failure("backup", e, path=path)
            raise StorageError("Failed to write backup") from e
        logger.info(f"Created backup: {backup_name}")
        return backup_name

    async def validate_integrity(self) -> IntegrityReport:
        """Compare every committed document with its file on disk.

        A missing document or file is an error. A checksum mismatch is only a
        warning since a concurrent write can legitimately cause one.
        """
        report = IntegrityReport()

        for key in DocumentKey.ordered():
            doc = self._documents.get(key)
            if doc is None:
                report.errors.append(f"Missing required document: {key.value}")
                continue

            if compute_checksum(doc.content) != doc.checksum:
                report.warnings.append(f"Checksum mismatch for document: {key.value}")

            validation = self.gate.validate_content(doc.content)
            if not validation.is_valid:
                report.warnings.append(
                    f"Content validation issues in {key.value}: {', '.join(validation.errors)}"
                )

            path = self._path_for(key)
            try:
                if not await self.host.file_exists(path):
                    report.errors.append(f"Document missing from disk: {key.value}")
                    continue
                on_disk = await self.host.read_file(path)
            except OSError as e:
                self.gate.audit_log.record_failure("validate", e, path=path)
                report.errors.append(f"Could not read document from disk: {key.value}")
                continue

            if compute_checksum(on_disk) != doc.checksum:
                report.warnings.append(
                    f"On-disk content differs from committed version: {key.value}"
                )

        return report

    def statistics(self) -> StoreStatistics:
        documents = list(self._documents.values())
        if not documents:
            return StoreStatistics(total_documents=0, total_size=0, average_size=0)

        total_size = sum(doc.size for doc in documents)
        modified = [doc.modified_at for doc in documents]
        return StoreStatistics(
            total_documents=len(documents),
            total_size=total_size,
            average_size=round(total_size / len(documents)),
            last_modified=max(modified),
            oldest_modified=min(modified),
        )


__all__ = ["EXPORT_FORMATS", "ChangeListener", "DocumentStore"]
