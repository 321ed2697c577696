"""Host capability interface consumed by the core.

The editor integration layer implements :class:`HostCapabilities`; the core
never talks to an editor API directly. :class:`LocalFileHost` is the adapter
used when the server runs standalone.
"""

import asyncio
import logging
import os
import tempfile
from pathlib import Path
from typing import Literal, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

NotifyLevel = Literal["info", "warning", "error"]


@runtime_checkable
class HostCapabilities(Protocol):
    """Narrow set of host operations the core depends on."""

    async def read_file(self, path: str) -> str: ...

    async def write_file(self, path: str, content: str) -> None: ...

    async def file_exists(self, path: str) -> bool: ...

    async def create_directory(self, path: str) -> None: ...

    def get_workspace_root(self) -> str | None: ...

    def notify(self, level: NotifyLevel, message: str) -> None: ...


class LocalFileHost:
    """Host adapter backed by the local filesystem.

    Blocking file operations run in worker threads. Writes go to a temporary
    file in the target directory and are moved into place with
    :func:`os.replace`, so a reader never observes a half-written document.
    """

    def __init__(self, workspace_root: str | Path):
        self.workspace_root = Path(workspace_root)

    async def read_file(self, path: str) -> str:
        return await asyncio.to_thread(self._read, Path(path))

    async def write_file(self, path: str, content: str) -> None:
        await asyncio.to_thread(self._write_atomic, Path(path), content)

    async def file_exists(self, path: str) -> bool:
        return await asyncio.to_thread(Path(path).exists)

    async def create_directory(self, path: str) -> None:
        await asyncio.to_thread(Path(path).mkdir, parents=True, exist_ok=True)

    def get_workspace_root(self) -> str | None:
        return str(self.workspace_root)

    def notify(self, level: NotifyLevel, message: str) -> None:
        log_level = {
            "info": logging.INFO,
            "warning": logging.WARNING,
            "error": logging.ERROR,
        }.get(level, logging.INFO)
        logger.log(log_level, message)

    @staticmethod
    def _read(source: Path) -> str:
        with open(source, "r", encoding="utf-8", newline="") as f:
            return f.read()

    @staticmethod
    def _write_atomic(target: Path, content: str) -> None:
        fd, tmp_name = tempfile.mkstemp(
            dir=target.parent, prefix=f".{target.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, target)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise


__all__ = ["NotifyLevel", "HostCapabilities", "LocalFileHost"]
