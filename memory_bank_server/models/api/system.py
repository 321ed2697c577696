"""System and monitoring related API models."""

from datetime import datetime

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str
    platform: str
    timestamp: datetime


class DocumentStatus(BaseModel):
    """Per-document line of the status report."""

    key: str
    uri: str
    version: int
    size: int
    checksum: str
    modified_at: datetime = Field(serialization_alias="modifiedAt")


class RequestStatistics(BaseModel):
    """Outcome counts and latency of handled protocol requests."""

    total: int
    successful: int
    failed: int
    timed_out: int = Field(serialization_alias="timedOut")
    error_rate: float = Field(serialization_alias="errorRate")
    average_response_ms: float = Field(serialization_alias="averageResponseMs")
    errors_by_code: dict[str, int] = Field(serialization_alias="errorsByCode")


class FileOperationStatistics(BaseModel):
    count: int
    average_ms: float = Field(serialization_alias="averageMs")
    last_ms: float = Field(serialization_alias="lastMs")
    max_ms: float = Field(serialization_alias="maxMs")


class PerformanceReport(BaseModel):
    requests: RequestStatistics
    file_operations: dict[str, FileOperationStatistics] = Field(
        serialization_alias="fileOperations"
    )


class StatusResponse(BaseModel):
    """Result of the ``get_status`` tool."""

    initialized: bool
    document_count: int = Field(serialization_alias="documentCount")
    total_size: int = Field(serialization_alias="totalSize")
    average_size: int = Field(serialization_alias="averageSize")
    last_modified: datetime | None = Field(serialization_alias="lastModified")
    open_connections: int = Field(serialization_alias="openConnections")
    uptime_seconds: float = Field(serialization_alias="uptimeSeconds")
    documents: list[DocumentStatus]
    performance: PerformanceReport


__all__ = [
    "HealthResponse",
    "DocumentStatus",
    "RequestStatistics",
    "FileOperationStatistics",
    "PerformanceReport",
    "StatusResponse",
]
