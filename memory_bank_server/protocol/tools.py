"""Tool definitions and handlers exposed through ``tools/list`` and ``tools/call``."""

import json
import logging
from typing import Any, Awaitable, Callable, TypeVar

import mcp.types as types
import pydantic

from memory_bank_server.core.context import ServerContext
from memory_bank_server.core.errors import NotFoundError, ValidationError
from memory_bank_server.models.api import (
    DocumentStatus,
    ExportSnapshotArgs,
    NoArgs,
    StatusResponse,
    UpdateDocumentArgs,
)
from memory_bank_server.models.domain import DocumentKey

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)

TOOL_DEFINITIONS: list[types.Tool] = [
    types.Tool(
        name="get_status",
        description="Report whether the memory bank is initialized, with per-document versions, sizes and checksums.",
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
    types.Tool(
        name="update_document",
        description="Replace the content of one memory bank document. The content is validated and sanitized before it is written.",
        inputSchema={
            "type": "object",
            "properties": {
                "documentKey": {
                    "type": "string",
                    "enum": [key.value for key in DocumentKey.ordered()],
                    "description": "Document to update (e.g. 'activeContext.md')",
                },
                "content": {
                    "type": "string",
                    "description": "New markdown content for the document",
                },
            },
            "required": ["documentKey", "content"],
        },
    ),
    types.Tool(
        name="export_snapshot",
        description="Export every memory bank document as a single JSON or markdown snapshot.",
        inputSchema={
            "type": "object",
            "properties": {
                "format": {
                    "type": "string",
                    "enum": ["json", "markdown"],
                    "description": "Snapshot format",
                    "default": "json",
                },
                "includeMetadata": {
                    "type": "boolean",
                    "description": "Include version, checksum and timestamps per document",
                    "default": True,
                },
            },
            "required": [],
        },
    ),
    types.Tool(
        name="validate_integrity",
        description="Check that every document exists on disk and matches its committed checksum.",
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
]


def parse_arguments(model: type[ModelT], data: Any) -> ModelT:
    """Validate ``data`` against ``model``.

    Raises:
        ValidationError: With field locations only; input values are never echoed
    """
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        problems = [
            f"{'.'.join(str(part) for part in error['loc']) or 'arguments'}: {error['msg']}"
            for error in e.errors()
        ]
        raise ValidationError(f"Invalid arguments: {'; '.join(problems)}") from None


def tool_result(result: Any) -> dict:
    """Wrap a handler result as an MCP ``CallToolResult``."""
    if isinstance(result, str):
        text = result
    else:
        text = json.dumps(result, indent=2, ensure_ascii=False)
    call_result = types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        isError=False,
    )
    return call_result.model_dump(mode="json", by_alias=True, exclude_none=True)


class MemoryBankTools:
    """Handlers for the four memory bank tools."""

    def __init__(self, context: ServerContext):
        self.context = context
        self._handlers: dict[str, Callable[[dict], Awaitable[Any]]] = {
            "get_status": self.get_status,
            "update_document": self.update_document,
            "export_snapshot": self.export_snapshot,
            "validate_integrity": self.validate_integrity,
        }

    @staticmethod
    def definitions() -> list[dict]:
        return [
            tool.model_dump(mode="json", by_alias=True, exclude_none=True)
            for tool in TOOL_DEFINITIONS
        ]

    async def call(self, name: str, arguments: dict | None = None) -> dict:
        """Run tool ``name`` and wrap its result.

        Raises:
            NotFoundError: Unknown tool
        """
        handler = self._handlers.get(name)
        if handler is None:
            raise NotFoundError(f"Unknown tool: {name[:100]}")

        logger.debug(f"Calling tool: {name}")
        return tool_result(await handler(arguments or {}))

    async def get_status(self, arguments: dict) -> dict:
        parse_arguments(NoArgs, arguments)
        return self.status().model_dump(mode="json", by_alias=True)

    def status(self) -> StatusResponse:
        store = self.context.store
        self.context.gate.authorize_operation("status")

        documents = store.list_documents() if store.is_initialized else []
        stats = store.statistics()
        return StatusResponse(
            initialized=store.is_initialized,
            document_count=stats.total_documents,
            total_size=stats.total_size,
            average_size=stats.average_size,
            last_modified=stats.last_modified,
            open_connections=self.context.connections.count(),
            uptime_seconds=round(self.context.uptime(), 3),
            performance=self.context.metrics.report(),
            documents=[
                DocumentStatus(
                    key=doc.key.value,
                    uri=doc.uri,
                    version=doc.version,
                    size=doc.size,
                    checksum=doc.checksum,
                    modified_at=doc.modified_at,
                )
                for doc in documents
            ],
        )

    async def update_document(self, arguments: dict) -> dict:
        """Write new content for one document.

        Returns:
            Metadata of the committed document

        Raises:
            ValidationError: Bad arguments or rejected content
            NotFoundError: Unknown document key
        """
        args = parse_arguments(UpdateDocumentArgs, arguments)
        key = self.context.store.resolve_key(args.document_key)
        document = await self.context.store.put(key, args.content)
        return {
            "key": document.key.value,
            "uri": document.uri,
            "version": document.version,
            "checksum": document.checksum,
            "size": document.size,
            "modifiedAt": document.modified_at.isoformat(),
        }

    async def export_snapshot(self, arguments: dict) -> str:
        args = parse_arguments(ExportSnapshotArgs, arguments)
        self.context.gate.authorize_operation("export", args=(args.format,))
        return self.context.store.export_snapshot(
            args.format, include_metadata=args.include_metadata
        )

    async def validate_integrity(self, arguments: dict) -> dict:
        parse_arguments(NoArgs, arguments)
        self.context.gate.authorize_operation("validate")
        report = await self.context.store.validate_integrity()
        return report.to_dict()


__all__ = ["TOOL_DEFINITIONS", "MemoryBankTools", "parse_arguments", "tool_result"]
