"""Unit tests for the local filesystem host and retry helper."""

from unittest.mock import AsyncMock

import pytest

from memory_bank_server.core.host import HostCapabilities, LocalFileHost
from memory_bank_server.core.retry import retry_io


class TestLocalFileHost:
    """Test the bundled host adapter."""

    def test_implements_host_capabilities(self, tmp_path):
        host = LocalFileHost(tmp_path)
        assert isinstance(host, HostCapabilities)
        assert host.get_workspace_root() == str(tmp_path)

    @pytest.mark.asyncio
    async def test_write_then_read(self, tmp_path):
        host = LocalFileHost(tmp_path)
        path = str(tmp_path / "notes.md")

        await host.write_file(path, "# Notes\nünïcödé\r\n")

        assert await host.file_exists(path)
        assert await host.read_file(path) == "# Notes\nünïcödé\r\n"
        assert [p.name for p in tmp_path.iterdir()] == ["notes.md"]

    @pytest.mark.asyncio
    async def test_write_replaces_existing_file(self, tmp_path):
        host = LocalFileHost(tmp_path)
        path = tmp_path / "notes.md"
        path.write_text("old")

        await host.write_file(str(path), "new")

        assert path.read_text() == "new"

    @pytest.mark.asyncio
    async def test_write_into_missing_directory_fails(self, tmp_path):
        host = LocalFileHost(tmp_path)
        with pytest.raises(FileNotFoundError):
            await host.write_file(str(tmp_path / "missing" / "notes.md"), "x")

    @pytest.mark.asyncio
    async def test_create_directory(self, tmp_path):
        host = LocalFileHost(tmp_path)
        target = tmp_path / "a" / "b"

        await host.create_directory(str(target))
        await host.create_directory(str(target))

        assert target.is_dir()


class TestRetryIO:
    """Test bounded retries."""

    @pytest.mark.asyncio
    async def test_returns_first_success(self):
        operation = AsyncMock(side_effect=[OSError("busy"), "done"])
        recover = AsyncMock()

        result = await retry_io(operation, "Reading", recover=recover, base_delay=0)

        assert result == "done"
        assert operation.await_count == 2
        recover.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_reraises_after_max_attempts(self):
        operation = AsyncMock(side_effect=OSError("gone"))

        with pytest.raises(OSError, match="gone"):
            await retry_io(operation, "Writing", max_attempts=3, base_delay=0)

        assert operation.await_count == 3

    @pytest.mark.asyncio
    async def test_failing_recovery_does_not_abort_retries(self):
        operation = AsyncMock(side_effect=[OSError("busy"), "done"])
        recover = AsyncMock(side_effect=OSError("still broken"))

        assert await retry_io(operation, "Writing", recover=recover, base_delay=0) == "done"

    @pytest.mark.asyncio
    async def test_other_errors_are_not_retried(self):
        operation = AsyncMock(side_effect=ValueError("bad"))

        with pytest.raises(ValueError):
            await retry_io(operation, "Writing", base_delay=0)

        assert operation.await_count == 1
