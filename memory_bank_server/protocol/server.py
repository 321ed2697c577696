"""Message routing between streams, the security gate and the document store."""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable

from memory_bank_server.api.error_handlers import error_payload
from memory_bank_server.core.context import ServerContext
from memory_bank_server.core.errors import (
    CapacityError,
    MemoryBankError,
    MethodNotFoundError,
    NotFoundError,
    ProtocolError,
    ToolTimeoutError,
    ValidationError,
)
from memory_bank_server.core.metrics import PerformanceMetrics, RequestOutcome
from memory_bank_server.models.api import (
    Event,
    Message,
    MessageAck,
    MethodName,
    ReadResourceParams,
    ToolCallParams,
)
from memory_bank_server.models.domain import RESOURCE_SCHEME, DocumentChange, DocumentKey
from memory_bank_server.protocol.tools import MemoryBankTools, parse_arguments

logger = logging.getLogger(__name__)

DOCUMENT_MIME_TYPE = "text/markdown"

RESOURCE_DESCRIPTIONS = {
    DocumentKey.PROJECT_BRIEF: "Foundation document: core requirements and goals",
    DocumentKey.PRODUCT_CONTEXT: "Why the project exists and how it should work",
    DocumentKey.ACTIVE_CONTEXT: "Current work focus, recent changes and next steps",
    DocumentKey.SYSTEM_PATTERNS: "Architecture and key technical decisions",
    DocumentKey.TECH_CONTEXT: "Technologies, setup and constraints",
    DocumentKey.PROGRESS: "What works, what's left and known issues",
}

Handler = Callable[[dict], Awaitable[Any]]


class ProtocolServer:
    """Dispatches inbound messages and pushes correlated events to streams.

    Every message posted against a session runs as its own task, bounded by
    ``tool_timeout``. Results and errors are delivered on the session's
    stream with the message ``id``; document changes are broadcast to all
    streams.
    """

    def __init__(self, context: ServerContext):
        self.context = context
        self.tools = MemoryBankTools(context)
        self._tasks: set[asyncio.Task] = set()
        self._methods: dict[str, Handler] = {
            MethodName.RESOURCES_LIST.value: self.list_resources,
            MethodName.RESOURCES_READ.value: self.read_resource,
            MethodName.TOOLS_LIST.value: self.list_tools,
            MethodName.TOOLS_CALL.value: self.call_tool,
        }
        context.store.add_listener(self._on_document_change)

    @property
    def metrics(self) -> PerformanceMetrics:
        return self.context.metrics

    @property
    def pending(self) -> int:
        return len(self._tasks)

    @staticmethod
    def parse_message(payload: Any) -> Message:
        """Validate a raw message body.

        Raises:
            ProtocolError: Body is not a message object
        """
        if not isinstance(payload, dict):
            raise ProtocolError("Message body must be a JSON object")
        try:
            return parse_arguments(Message, payload)
        except ValidationError as e:
            raise ProtocolError(e.message.replace("Invalid arguments", "Invalid message")) from None

    @staticmethod
    def is_status_request(message: Message) -> bool:
        return (
            message.method == MethodName.TOOLS_CALL.value
            and message.params.get("name") == "get_status"
        )

    async def handle_post(self, session_id: str | None, payload: Any) -> MessageAck:
        """Acknowledge a posted message and schedule it.

        ``get_status`` is answered inline and needs no session.

        Raises:
            CapacityError: Server is shutting down
            ProtocolError: Malformed message
            NotFoundError: Unknown session
        """
        started = time.perf_counter()
        method = "unknown"
        try:
            if self.context.shutting_down:
                raise CapacityError("Server is shutting down")

            message = self.parse_message(payload)
            method = message.method

            if self.is_status_request(message):
                result = await self.dispatch(message)
                self.metrics.record_request(
                    method, time.perf_counter() - started, RequestOutcome.SUCCESS
                )
                return MessageAck(status="completed", id=message.id, result=result)

            connection = self.context.connections.get(session_id) if session_id else None
            if connection is None:
                raise NotFoundError("Unknown session")
        except MemoryBankError as e:
            self.metrics.record_request(
                method, time.perf_counter() - started, RequestOutcome.ERROR, e.code
            )
            raise

        connection.touch()
        self.submit(connection.id, message)
        return MessageAck(status="accepted", id=message.id)

    def submit(self, connection_id: str, message: Message) -> asyncio.Task:
        task = asyncio.create_task(self._run(connection_id, message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, connection_id: str, message: Message) -> None:
        started = time.perf_counter()
        task = asyncio.ensure_future(self.dispatch(message))
        try:
            result = await self._settle(task, message)
            event = Event.for_result(message.id, result)
            outcome = RequestOutcome.SUCCESS
        except ToolTimeoutError as e:
            event = Event.for_error(message.id, error_payload(e))
            outcome = RequestOutcome.TIMEOUT
        except Exception as e:
            event = Event.for_error(message.id, error_payload(e))
            outcome = RequestOutcome.ERROR

        self.metrics.record_request(
            message.method,
            time.perf_counter() - started,
            outcome,
            event.error.code if event.error else None,
        )
        if not self.context.connections.send(connection_id, event):
            logger.info(
                f"Discarding {event.type.value} for closed connection {connection_id}"
            )

    async def _settle(self, task: asyncio.Task, message: Message) -> Any:
        """Wait for ``task`` up to the tool timeout.

        A call that is still running at the deadline is abandoned and
        cancelled, unless it has already begun committing a write; that one is
        waited out so the caller gets the result of the write that landed.

        Raises:
            ToolTimeoutError: The call was abandoned before persisting anything
        """
        timeout = self.context.settings.tool_timeout
        try:
            done, _ = await asyncio.wait({task}, timeout=timeout)
        except asyncio.CancelledError:
            task.cancel()
            raise

        if not done:
            if self.context.store.started_commit(task):
                logger.info(
                    f"{message.method} (id={message.id}) passed {timeout}s while "
                    f"committing, waiting for the write to finish"
                )
                return await task

            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            logger.warning(f"{message.method} (id={message.id}) timed out after {timeout}s")
            raise ToolTimeoutError(f"No result within {timeout:g} seconds")

        return task.result()

    async def dispatch(self, message: Message) -> Any:
        """Route ``message`` through the method table.

        Raises:
            MethodNotFoundError: Method outside the table
        """
        handler = self._methods.get(message.method)
        if handler is None:
            raise MethodNotFoundError(f"Method not found: {message.method[:100]}")
        return await handler(message.params)

    async def list_resources(self, params: dict) -> dict:
        return {
            "resources": [
                {
                    "uri": key.uri,
                    "name": key.value,
                    "description": RESOURCE_DESCRIPTIONS[key],
                    "mimeType": DOCUMENT_MIME_TYPE,
                }
                for key in DocumentKey.ordered()
            ]
        }

    async def read_resource(self, params: dict) -> dict:
        """Return the content of ``memory-bank://<key>``.

        Raises:
            ValidationError: URI outside the memory-bank scheme
            NotFoundError: Unknown document key
        """
        uri = parse_arguments(ReadResourceParams, params).uri
        if not uri.startswith(RESOURCE_SCHEME):
            raise ValidationError(f"Unsupported resource URI scheme, expected {RESOURCE_SCHEME}")

        key = self.context.store.resolve_key(uri[len(RESOURCE_SCHEME):])
        self.context.gate.authorize_operation("read", key.value)
        document = self.context.store.get(key)
        return {
            "contents": [
                {"uri": document.uri, "mimeType": DOCUMENT_MIME_TYPE, "text": document.content}
            ]
        }

    async def list_tools(self, params: dict) -> dict:
        return {"tools": self.tools.definitions()}

    async def call_tool(self, params: dict) -> dict:
        call = parse_arguments(ToolCallParams, params)
        return await self.tools.call(call.name, call.arguments)

    def _on_document_change(self, change: DocumentChange) -> None:
        delivered = self.context.connections.broadcast(
            Event.notification(change.to_event_payload())
        )
        logger.debug(f"Notified {delivered} connections of {change.key.value} v{change.version}")

    async def drain(self) -> None:
        """Wait until every scheduled message has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self, grace_period: float = 5.0) -> None:
        """Stop accepting messages, let in-flight ones finish, close streams."""
        self.context.shutting_down = True
        if self._tasks:
            logger.info(f"Waiting for {len(self._tasks)} in-flight messages")
            _, still_running = await asyncio.wait(list(self._tasks), timeout=grace_period)
            for task in still_running:
                task.cancel()
            if still_running:
                await asyncio.gather(*still_running, return_exceptions=True)

        self.context.store.remove_listener(self._on_document_change)
        self.context.connections.close_all()


__all__ = ["DOCUMENT_MIME_TYPE", "ProtocolServer"]
