"""HTTP client for the memory bank server."""

import asyncio
import json
import logging
import uuid
from typing import Any, AsyncIterator, Awaitable, Callable, TypeVar

import httpx

from memory_bank_server.models.domain import RESOURCE_SCHEME

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BASE_URL = "http://127.0.0.1:7331"

# Failures that happen before a request reaches the server
CONNECT_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout)
TRANSIENT_ERRORS = (httpx.ConnectError, httpx.TimeoutException)


class MemoryBankClientError(Exception):
    """Raised when the server is unreachable or reports an error."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
        details: dict | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details or {}
        super().__init__(message)


async def iter_sse_events(lines: AsyncIterator[str]) -> AsyncIterator[tuple[str, str]]:
    """Group raw SSE lines into ``(event, data)`` pairs.

    Comment lines are ignored; multi-line ``data`` fields are joined with
    newlines.
    """
    event_name = "message"
    data_lines: list[str] = []
    async for line in lines:
        if not line:
            if data_lines:
                yield event_name, "\n".join(data_lines)
            event_name = "message"
            data_lines = []
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "event":
            event_name = value
        elif field == "data":
            data_lines.append(value)
    if data_lines:
        yield event_name, "\n".join(data_lines)


class MemoryBankClient:
    """Client for the health, status and streaming message endpoints."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        max_retries: int = 3,
        base_delay: float = 0.5,
        origin: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.origin = origin
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        headers = {"Origin": self.origin} if self.origin else {}
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=headers,
            transport=self.transport,
        )

    async def _with_retries(
        self,
        operation: Callable[[], Awaitable[T]],
        description: str,
        retry_on: tuple[type[Exception], ...] = TRANSIENT_ERRORS,
    ) -> T:
        for attempt in range(self.max_retries):
            try:
                return await operation()
            except retry_on as e:
                if attempt >= self.max_retries - 1:
                    raise MemoryBankClientError(
                        f"Cannot reach memory bank server at {self.base_url}: {e}"
                    ) from e
                delay = self.base_delay * (2**attempt)
                logger.warning(
                    f"{description} failed ({e}), retrying in {delay}s "
                    f"(attempt {attempt + 1}/{self.max_retries})"
                )
                await asyncio.sleep(delay)
            except httpx.HTTPError as e:
                raise MemoryBankClientError(f"{description} failed: {e}") from e

        raise AssertionError("unreachable")

    @staticmethod
    def _raise_for_error(response: httpx.Response) -> None:
        if response.status_code < 400:
            return
        try:
            error = response.json().get("error") or {}
        except ValueError:
            error = {}
        raise MemoryBankClientError(
            error.get("message") or f"HTTP {response.status_code}",
            status_code=response.status_code,
            code=error.get("code"),
            details=error.get("details"),
        )

    async def health(self) -> dict:
        """Fetch ``GET /health``."""

        async def request() -> dict:
            async with self._client() as client:
                response = await client.get("/health")
                self._raise_for_error(response)
                return response.json()

        return await self._with_retries(request, "Health check")

    async def health_check(self) -> bool:
        try:
            return (await self.health()).get("status") == "ok"
        except MemoryBankClientError:
            return False

    async def status(self) -> dict:
        """Run ``get_status`` over the synchronous path; no stream is opened."""
        message = {
            "method": "tools/call",
            "params": {"name": "get_status", "arguments": {}},
            "id": uuid.uuid4().hex,
        }

        async def request() -> dict:
            async with self._client() as client:
                response = await client.post("/messages", json=message)
                self._raise_for_error(response)
                return response.json()

        ack = await self._with_retries(request, "Status request")
        return json.loads(self.tool_text(ack["result"]))

    async def call(self, method: str, params: dict | None = None) -> Any:
        """Send one message over a fresh stream and wait for its result.

        Only failures before the message is posted are retried, so a write is
        never submitted twice.

        Raises:
            MemoryBankClientError: Server unreachable, message rejected, or
                an error event came back for this message
        """
        return await self._with_retries(
            lambda: self._call_once(method, params or {}),
            f"{method} call",
            retry_on=CONNECT_ERRORS,
        )

    async def _call_once(self, method: str, params: dict) -> Any:
        message_id = uuid.uuid4().hex
        async with self._client() as client:
            async with client.stream("GET", "/sse") as response:
                if response.status_code >= 400:
                    await response.aread()
                    self._raise_for_error(response)

                events = iter_sse_events(response.aiter_lines())
                endpoint = await self._read_endpoint(events)

                ack = await client.post(
                    endpoint, json={"method": method, "params": params, "id": message_id}
                )
                self._raise_for_error(ack)

                async for _, data in events:
                    try:
                        event = json.loads(data)
                    except ValueError:
                        logger.warning("Ignoring malformed event on stream")
                        continue
                    if event.get("id") != message_id:
                        continue
                    if event.get("type") == "error":
                        error = event.get("error") or {}
                        raise MemoryBankClientError(
                            error.get("message", "Unknown error"),
                            code=error.get("code"),
                            details=error.get("details"),
                        )
                    return event.get("result")

        raise MemoryBankClientError("Stream closed before a result arrived")

    @staticmethod
    async def _read_endpoint(events: AsyncIterator[tuple[str, str]]) -> str:
        async for event_name, data in events:
            if event_name == "endpoint":
                return data
        raise MemoryBankClientError("Stream closed before the endpoint event")

    @staticmethod
    def tool_text(result: dict) -> str:
        """Text of the first content block of a tool result."""
        for block in result.get("content", []):
            if block.get("type") == "text":
                return block["text"]
        raise MemoryBankClientError("Tool result has no text content")

    async def list_resources(self) -> list[dict]:
        return (await self.call("resources/list"))["resources"]

    async def read_document(self, key: str) -> str:
        uri = f"{RESOURCE_SCHEME}{key}"
        result = await self.call("resources/read", {"uri": uri})
        return result["contents"][0]["text"]

    async def list_tools(self) -> list[dict]:
        return (await self.call("tools/list"))["tools"]

    async def call_tool(self, name: str, arguments: dict | None = None) -> str:
        result = await self.call("tools/call", {"name": name, "arguments": arguments or {}})
        return self.tool_text(result)

    async def update_document(self, key: str, content: str) -> dict:
        text = await self.call_tool(
            "update_document", {"documentKey": key, "content": content}
        )
        return json.loads(text)

    async def export_snapshot(self, format: str = "json", include_metadata: bool = True) -> str:
        return await self.call_tool(
            "export_snapshot", {"format": format, "includeMetadata": include_metadata}
        )

    async def validate_integrity(self) -> dict:
        return json.loads(await self.call_tool("validate_integrity"))


__all__ = [
    "DEFAULT_BASE_URL",
    "MemoryBankClient",
    "MemoryBankClientError",
    "iter_sse_events",
]
