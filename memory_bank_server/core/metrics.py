"""Request and file I/O counters surfaced through ``get_status``."""

import logging
from collections import Counter, deque
from dataclasses import dataclass
from enum import Enum

from memory_bank_server.models.api.system import (
    FileOperationStatistics,
    PerformanceReport,
    RequestStatistics,
)

logger = logging.getLogger(__name__)

RECENT_REQUESTS = 100


class RequestOutcome(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    TIMEOUT = "timeout"


@dataclass
class _OperationTimings:
    count: int = 0
    total: float = 0.0
    last: float = 0.0
    slowest: float = 0.0

    def add(self, duration: float) -> None:
        self.count += 1
        self.total += duration
        self.last = duration
        self.slowest = max(self.slowest, duration)


def _ms(seconds: float) -> float:
    return round(seconds * 1000, 3)


class PerformanceMetrics:
    """Rolling request latencies, outcome counts and per-operation I/O timings.

    Counters cover the whole server lifetime; the average response time
    covers only the most recent ``window`` requests.
    """

    def __init__(self, window: int = RECENT_REQUESTS):
        self._durations: deque[float] = deque(maxlen=window)
        self._outcomes: Counter[RequestOutcome] = Counter()
        self._errors_by_code: Counter[str] = Counter()
        self._file_operations: dict[str, _OperationTimings] = {}

    def record_request(
        self,
        method: str,
        duration: float,
        outcome: RequestOutcome,
        error_code: str | None = None,
    ) -> None:
        self._durations.append(duration)
        self._outcomes[outcome] += 1
        if error_code:
            self._errors_by_code[error_code] += 1
        if outcome is not RequestOutcome.SUCCESS:
            logger.debug(f"{method} finished with {outcome.value} in {_ms(duration)}ms")

    def record_file_operation(self, operation: str, duration: float) -> None:
        self._file_operations.setdefault(operation, _OperationTimings()).add(duration)

    @property
    def total_requests(self) -> int:
        return sum(self._outcomes.values())

    def report(self) -> PerformanceReport:
        total = self.total_requests
        failed = self._outcomes[RequestOutcome.ERROR] + self._outcomes[RequestOutcome.TIMEOUT]
        average = sum(self._durations) / len(self._durations) if self._durations else 0.0

        return PerformanceReport(
            requests=RequestStatistics(
                total=total,
                successful=self._outcomes[RequestOutcome.SUCCESS],
                failed=failed,
                timed_out=self._outcomes[RequestOutcome.TIMEOUT],
                error_rate=round(failed / total, 4) if total else 0.0,
                average_response_ms=_ms(average),
                errors_by_code=dict(self._errors_by_code),
            ),
            file_operations={
                operation: FileOperationStatistics(
                    count=timings.count,
                    average_ms=_ms(timings.total / timings.count),
                    last_ms=_ms(timings.last),
                    max_ms=_ms(timings.slowest),
                )
                for operation, timings in sorted(self._file_operations.items())
            },
        )


__all__ = ["PerformanceMetrics", "RequestOutcome"]
