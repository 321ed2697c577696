"""Bounded retry for disk operations."""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_ATTEMPTS = 3
BASE_DELAY = 0.05


async def retry_io(
    operation: Callable[[], Awaitable[T]],
    description: str,
    recover: Callable[[OSError], Awaitable[None]] | None = None,
    max_attempts: int = MAX_ATTEMPTS,
    base_delay: float = BASE_DELAY,
) -> T:
    """Run ``operation`` retrying on :class:`OSError` with exponential backoff.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt
        description: What is being done, for log messages
        recover: Optional hook run before the next attempt (e.g. recreate a
            missing directory). Failures inside it are logged and ignored.
        max_attempts: Total number of attempts
        base_delay: Delay before the second attempt; doubles each time

    Raises:
        OSError: The last error once every attempt has failed
    """
    for attempt in range(max_attempts):
        try:
            return await operation()
        except OSError as e:
            if attempt >= max_attempts - 1:
                logger.error(
                    f"{description} failed after {max_attempts} attempts: {e}"
                )
                raise

            delay = base_delay * (2**attempt)
            logger.warning(
                f"{description} failed, retrying in {delay}s (attempt {attempt + 1}/{max_attempts})"
            )
            if recover is not None:
                try:
                    await recover(e)
                except OSError as recovery_error:
                    logger.error(f"Recovery for {description} failed: {recovery_error}")
            await asyncio.sleep(delay)

    raise AssertionError("unreachable")


__all__ = ["MAX_ATTEMPTS", "BASE_DELAY", "retry_io"]
