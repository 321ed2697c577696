"""Explicit server context, built once at startup and passed to handlers."""

import time
from dataclasses import dataclass, field

from memory_bank_server.core.host import HostCapabilities, LocalFileHost
from memory_bank_server.core.metrics import PerformanceMetrics
from memory_bank_server.core.security import AuditLog, SecurityGate
from memory_bank_server.core.sessions import ConnectionManager
from memory_bank_server.core.store import DocumentStore
from memory_bank_server.models.config import ServerSettings


@dataclass
class ServerContext:
    settings: ServerSettings
    host: HostCapabilities
    gate: SecurityGate
    store: DocumentStore
    connections: ConnectionManager
    metrics: PerformanceMetrics = field(default_factory=PerformanceMetrics)
    started_at: float = field(default_factory=time.monotonic)
    shutting_down: bool = False

    @property
    def audit_log(self) -> AuditLog:
        return self.gate.audit_log

    def uptime(self) -> float:
        return time.monotonic() - self.started_at

    @classmethod
    def create(
        cls, settings: ServerSettings, host: HostCapabilities | None = None
    ) -> "ServerContext":
        """Wire up the gate, store, connections and metrics from ``settings``."""
        host = host or LocalFileHost(settings.workspace_root)
        directory = settings.memory_bank_dir
        gate = SecurityGate(settings.policy, directory)
        metrics = PerformanceMetrics()
        store = DocumentStore(
            host,
            gate,
            directory=directory,
            platform_name=settings.platform_name,
            metrics=metrics,
        )
        connections = ConnectionManager(
            allowed_origins=settings.allowed_origins,
            allow_missing_origin=settings.allow_missing_origin,
            max_connections=settings.max_connections,
            idle_timeout=settings.idle_timeout,
            queue_size=settings.event_queue_size,
        )
        return cls(
            settings=settings,
            host=host,
            gate=gate,
            store=store,
            connections=connections,
            metrics=metrics,
        )


__all__ = ["ServerContext"]
