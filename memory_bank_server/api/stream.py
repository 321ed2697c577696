"""Event stream and command endpoints."""

import asyncio
import json
import logging
from typing import AsyncIterator

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse

from memory_bank_server.api.error_handlers import handle_api_errors
from memory_bank_server.core.context import ServerContext
from memory_bank_server.core.errors import ProtocolError
from memory_bank_server.core.sessions import Connection, ConnectionManager
from memory_bank_server.protocol.server import ProtocolServer

logger = logging.getLogger(__name__)
router = APIRouter()

KEEPALIVE_INTERVAL = 15.0


def get_context(request: Request) -> ServerContext:
    """Dependency to get the server context."""
    return request.app.state.context


def get_protocol_server(request: Request) -> ProtocolServer:
    """Dependency to get the protocol server."""
    return request.app.state.protocol_server


def format_sse(event: str, data: str) -> str:
    lines = "".join(f"data: {line}\n" for line in data.split("\n"))
    return f"event: {event}\n{lines}\n"


async def event_stream(
    connection: Connection, connections: ConnectionManager
) -> AsyncIterator[str]:
    """Yield the endpoint event, then queued events until the stream ends.

    The stream ends when the connection is closed, when the client goes away,
    or after ``idle_timeout`` without activity. The connection is
    unregistered in every case.
    """
    idle_timeout = connections.idle_timeout
    try:
        yield format_sse("endpoint", f"/messages?session_id={connection.id}")

        while True:
            try:
                event = await asyncio.wait_for(
                    connection.queue.get(), timeout=min(idle_timeout, KEEPALIVE_INTERVAL)
                )
            except asyncio.TimeoutError:
                if connection.idle_for() > idle_timeout:
                    logger.info(f"Closing idle connection: {connection.id}")
                    break
                yield ": keepalive\n\n"
                continue

            if event is None:
                break
            yield format_sse(event.type.value, json.dumps(event.to_wire(), ensure_ascii=False))
    finally:
        connections.disconnect(connection.id)


@router.get("/sse")
async def open_stream(request: Request, context: ServerContext = Depends(get_context)):
    """Open an event stream for this client."""
    connection = context.connections.connect(request.headers.get("origin"))
    return StreamingResponse(
        event_stream(connection, context.connections),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.post("/messages")
@handle_api_errors("post message")
async def post_message(
    request: Request,
    session_id: str | None = None,
    server: ProtocolServer = Depends(get_protocol_server),
):
    """Accept a command message; its result arrives on the session's stream."""
    try:
        payload = await request.json()
    except ValueError:
        raise ProtocolError("Message body is not valid JSON") from None

    ack = await server.handle_post(session_id, payload)
    return JSONResponse(content=ack.model_dump(mode="json", exclude_none=True))
