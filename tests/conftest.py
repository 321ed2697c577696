"""Shared fixtures for memory bank tests."""

import pytest

from memory_bank_server.core.context import ServerContext
from memory_bank_server.models.config import ServerSettings


@pytest.fixture
def settings(tmp_path) -> ServerSettings:
    return ServerSettings(_env_file=None, workspace_root=tmp_path, tool_timeout=2.0)


@pytest.fixture
def context(settings) -> ServerContext:
    return ServerContext.create(settings)


@pytest.fixture
def memory_bank_dir(settings):
    return settings.memory_bank_dir
