"""Unit tests for the memory bank CLI."""

from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from memory_bank_server import __version__
from memory_bank_server.cli.main import cli
from memory_bank_server.protocol.client import MemoryBankClientError


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(f"workspace_root: {tmp_path}\nport: 7444\n")
    return path


class TestCli:
    """Test command wiring."""

    def setup_method(self):
        """Set up test fixtures."""
        self.runner = CliRunner()

    def test_version(self):
        result = self.runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_audit_passes_for_default_policy(self, config_file, tmp_path):
        report = tmp_path / "audit.md"
        result = self.runner.invoke(
            cli, ["--config", str(config_file), "audit", "--output", str(report)]
        )

        assert result.exit_code == 0
        assert "Security audit passed" in result.output
        assert report.read_text().startswith("# Security Audit Report")

    def test_health_uses_configured_port(self, config_file):
        with patch("memory_bank_server.cli.utils.MemoryBankClient") as client_cls:
            client_cls.return_value.health = AsyncMock(
                return_value={"status": "ok", "version": "2.0.0", "platform": "python"}
            )
            result = self.runner.invoke(cli, ["--config", str(config_file), "health"])

        assert result.exit_code == 0
        client_cls.assert_called_once_with(base_url="http://127.0.0.1:7444")
        assert "Server ok" in result.output

    def test_client_error_exits_nonzero(self, config_file):
        with patch("memory_bank_server.cli.utils.MemoryBankClient") as client_cls:
            client_cls.return_value.health = AsyncMock(
                side_effect=MemoryBankClientError("Cannot reach memory bank server")
            )
            result = self.runner.invoke(cli, ["--config", str(config_file), "health"])

        assert result.exit_code == 1
        assert "Cannot reach memory bank server" in result.output

    def test_export_writes_file(self, config_file, tmp_path):
        output = tmp_path / "snapshot.json"
        with patch("memory_bank_server.cli.utils.MemoryBankClient") as client_cls:
            client_cls.return_value.export_snapshot = AsyncMock(return_value='{"documents": []}')
            result = self.runner.invoke(
                cli, ["--config", str(config_file), "export", "--output", str(output)]
            )

        assert result.exit_code == 0
        assert output.read_text() == '{"documents": []}'
        client_cls.return_value.export_snapshot.assert_awaited_once_with(
            "json", include_metadata=True
        )

    def test_update_reads_file(self, config_file, tmp_path):
        source = tmp_path / "draft.md"
        source.write_text("# Progress\n")
        with patch("memory_bank_server.cli.utils.MemoryBankClient") as client_cls:
            client_cls.return_value.update_document = AsyncMock(
                return_value={"key": "progress.md", "version": 3}
            )
            result = self.runner.invoke(
                cli, ["--config", str(config_file), "update", "progress.md", str(source)]
            )

        assert result.exit_code == 0
        client_cls.return_value.update_document.assert_awaited_once_with(
            "progress.md", "# Progress\n"
        )
        assert "version 3" in result.output

    def test_read_rejects_unknown_key(self, config_file):
        result = self.runner.invoke(cli, ["--config", str(config_file), "read", "secrets.md"])
        assert result.exit_code == 2

    def test_validate_failure_exits_nonzero(self, config_file):
        with patch("memory_bank_server.cli.utils.MemoryBankClient") as client_cls:
            client_cls.return_value.validate_integrity = AsyncMock(
                return_value={
                    "isValid": False,
                    "errors": ["Document missing from disk: progress.md"],
                    "warnings": [],
                }
            )
            result = self.runner.invoke(cli, ["--config", str(config_file), "validate"])

        assert result.exit_code == 1
        assert "Document missing from disk" in result.output

    def test_resources_and_tools_are_listed(self, config_file):
        with patch("memory_bank_server.cli.utils.MemoryBankClient") as client_cls:
            client_cls.return_value.list_resources = AsyncMock(
                return_value=[{"uri": "memory-bank://progress.md", "description": "Progress"}]
            )
            client_cls.return_value.list_tools = AsyncMock(
                return_value=[{"name": "update_document", "description": "Write"}]
            )
            resources = self.runner.invoke(cli, ["--config", str(config_file), "resources"])
            tools = self.runner.invoke(cli, ["--config", str(config_file), "tools"])

        assert resources.exit_code == 0
        assert "memory-bank://progress.md" in resources.output
        assert tools.exit_code == 0
        assert "update_document" in tools.output

    def test_status_prints_request_metrics(self, config_file):
        status = {
            "initialized": True,
            "documentCount": 6,
            "totalSize": 600,
            "openConnections": 1,
            "documents": [],
            "performance": {
                "requests": {
                    "total": 4,
                    "errorRate": 0.25,
                    "timedOut": 1,
                    "averageResponseMs": 12.5,
                }
            },
        }
        with patch("memory_bank_server.cli.utils.MemoryBankClient") as client_cls:
            client_cls.return_value.status = AsyncMock(return_value=status)
            result = self.runner.invoke(cli, ["--config", str(config_file), "status"])

        assert result.exit_code == 0
        assert "4 requests, 25.0% failed (1 timed out)" in result.output
