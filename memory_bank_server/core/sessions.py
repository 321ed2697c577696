"""Streaming connection registry with origin and capacity checks."""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field

from memory_bank_server.core.errors import CapacityError, SecurityError
from memory_bank_server.models.api import Event

logger = logging.getLogger(__name__)


@dataclass
class Connection:
    """One open event stream.

    The queue carries :class:`Event` objects; ``None`` marks the end of the
    stream.
    """

    id: str
    origin: str | None
    queue: asyncio.Queue
    opened_at: float = field(default_factory=time.monotonic)
    last_activity: float = field(default_factory=time.monotonic)
    closed: bool = False

    def touch(self, now: float | None = None) -> None:
        self.last_activity = now if now is not None else time.monotonic()

    def idle_for(self, now: float | None = None) -> float:
        return (now if now is not None else time.monotonic()) - self.last_activity

    def offer(self, event: Event) -> bool:
        """Queue ``event`` without waiting. False if the stream can't take it."""
        if self.closed:
            return False
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            return False
        return True

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self.queue.put_nowait(None)
        except asyncio.QueueFull:
            # Make room for the end-of-stream marker
            self.queue.get_nowait()
            self.queue.put_nowait(None)


class ConnectionManager:
    """Tracks open streams and fans events out to them.

    All methods are synchronous so that the capacity check and the insert in
    :meth:`connect` cannot interleave with another coroutine.
    """

    def __init__(
        self,
        allowed_origins: list[str] | None = None,
        allow_missing_origin: bool = True,
        max_connections: int = 20,
        idle_timeout: float = 300.0,
        queue_size: int = 100,
    ):
        self.allowed_origins = set(allowed_origins or [])
        self.allow_missing_origin = allow_missing_origin
        self.max_connections = max_connections
        self.idle_timeout = idle_timeout
        self.queue_size = queue_size
        self._connections: dict[str, Connection] = {}

    def is_origin_allowed(self, origin: str | None) -> bool:
        if not origin:
            return self.allow_missing_origin
        return origin in self.allowed_origins

    def connect(self, origin: str | None = None) -> Connection:
        """Register a new stream.

        Raises:
            SecurityError: Origin not on the allow-list
            CapacityError: Connection cap reached
        """
        if not self.is_origin_allowed(origin):
            logger.warning(f"Rejected connection from origin: {origin}")
            raise SecurityError("Origin not allowed")

        if len(self._connections) >= self.max_connections:
            logger.warning(
                f"Rejected connection: {len(self._connections)}/{self.max_connections} open"
            )
            raise CapacityError(
                "Too many open connections", {"max_connections": self.max_connections}
            )

        connection = Connection(
            id=uuid.uuid4().hex,
            origin=origin,
            queue=asyncio.Queue(maxsize=self.queue_size),
        )
        self._connections[connection.id] = connection
        logger.info(
            f"Connection opened: {connection.id} ({len(self._connections)} open)"
        )
        return connection

    def disconnect(self, connection_id: str) -> bool:
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            return False
        connection.close()
        logger.info(f"Connection closed: {connection_id} ({len(self._connections)} open)")
        return True

    def get(self, connection_id: str) -> Connection | None:
        return self._connections.get(connection_id)

    def count(self) -> int:
        return len(self._connections)

    def ids(self) -> list[str]:
        return list(self._connections)

    def send(self, connection_id: str, event: Event) -> bool:
        """Deliver ``event`` to one stream.

        A stream that cannot take the event is disconnected.
        """
        connection = self._connections.get(connection_id)
        if connection is None:
            return False
        if not connection.offer(event):
            logger.warning(f"Dropping connection {connection_id}: event queue full")
            self.disconnect(connection_id)
            return False
        return True

    def broadcast(self, event: Event) -> int:
        """Best-effort fan-out. Returns the number of streams reached."""
        delivered = 0
        for connection_id in self.ids():
            if self.send(connection_id, event):
                delivered += 1
        return delivered

    def reap_idle(self, now: float | None = None) -> list[str]:
        """Disconnect every stream idle for longer than ``idle_timeout``."""
        now = now if now is not None else time.monotonic()
        stale = [
            connection_id
            for connection_id, connection in self._connections.items()
            if connection.idle_for(now) > self.idle_timeout
        ]
        for connection_id in stale:
            logger.info(f"Reaping idle connection: {connection_id}")
            self.disconnect(connection_id)
        return stale

    def close_all(self) -> None:
        for connection_id in self.ids():
            self.disconnect(connection_id)


__all__ = ["Connection", "ConnectionManager"]
