"""Unit tests for message dispatch and event delivery."""

import asyncio
import json

import pytest

from memory_bank_server.core.errors import CapacityError, NotFoundError, ProtocolError
from memory_bank_server.models.config import ServerSettings
from memory_bank_server.core.context import ServerContext
from memory_bank_server.models.domain import DocumentKey
from memory_bank_server.protocol.server import ProtocolServer


def drain_events(connection) -> list[dict]:
    events = []
    while not connection.queue.empty():
        event = connection.queue.get_nowait()
        if event is not None:
            events.append(event.to_wire())
    return events


async def call(server: ProtocolServer, connection, method: str, params=None, id=1) -> list[dict]:
    await server.handle_post(
        connection.id, {"method": method, "params": params or {}, "id": id}
    )
    await server.drain()
    return drain_events(connection)


def response_for(events: list[dict], id) -> dict:
    return next(event for event in events if event.get("id") == id)


class TestProtocolServer:
    """Test routing over the method table."""

    @pytest.mark.asyncio
    async def test_resources_list(self, context):
        await context.store.initialize()
        server = ProtocolServer(context)
        connection = context.connections.connect()

        event = response_for(await call(server, connection, "resources/list"), 1)

        assert event["type"] == "result"
        uris = [r["uri"] for r in event["result"]["resources"]]
        assert uris[0] == "memory-bank://projectbrief.md"
        assert len(uris) == 6

    @pytest.mark.asyncio
    async def test_resources_read(self, context):
        await context.store.initialize()
        server = ProtocolServer(context)
        connection = context.connections.connect()

        event = response_for(
            await call(
                server, connection, "resources/read", {"uri": "memory-bank://progress.md"}
            ),
            1,
        )

        contents = event["result"]["contents"][0]
        assert contents["text"] == context.store.get("progress.md").content
        assert contents["mimeType"] == "text/markdown"

    @pytest.mark.asyncio
    async def test_resources_read_unknown_key(self, context):
        await context.store.initialize()
        server = ProtocolServer(context)
        connection = context.connections.connect()

        event = response_for(
            await call(
                server, connection, "resources/read", {"uri": "memory-bank://unknown.md"}
            ),
            1,
        )

        assert event["type"] == "error"
        assert event["error"]["code"] == "NOT_FOUND"
        assert event["error"]["type"] == "NotFoundError"

    @pytest.mark.asyncio
    async def test_resources_read_wrong_scheme(self, context):
        await context.store.initialize()
        server = ProtocolServer(context)
        connection = context.connections.connect()

        event = response_for(
            await call(server, connection, "resources/read", {"uri": "file:///etc/passwd"}),
            1,
        )

        assert event["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_tools_list(self, context):
        server = ProtocolServer(context)
        connection = context.connections.connect()

        event = response_for(await call(server, connection, "tools/list"), 1)

        names = [tool["name"] for tool in event["result"]["tools"]]
        assert names == [
            "get_status",
            "update_document",
            "export_snapshot",
            "validate_integrity",
        ]
        assert "inputSchema" in event["result"]["tools"][1]

    @pytest.mark.asyncio
    async def test_update_document_notifies_all_streams(self, context):
        await context.store.initialize()
        server = ProtocolServer(context)
        caller = context.connections.connect()
        watcher = context.connections.connect()

        events = await call(
            server,
            caller,
            "tools/call",
            {
                "name": "update_document",
                "arguments": {"documentKey": "activeContext.md", "content": "# Now"},
            },
            id="req-1",
        )

        result = response_for(events, "req-1")
        payload = json.loads(result["result"]["content"][0]["text"])
        assert payload["version"] == 2

        notifications = [e for e in drain_events(watcher) if e["type"] == "notification"]
        assert notifications[0]["result"]["event"] == "documentUpdated"
        assert notifications[0]["result"]["uri"] == "memory-bank://activeContext.md"
        assert any(e["type"] == "notification" for e in events)

    @pytest.mark.asyncio
    async def test_update_document_with_script_rejected_and_audited(self, context):
        await context.store.initialize()
        server = ProtocolServer(context)
        connection = context.connections.connect()

        events = await call(
            server,
            connection,
            "tools/call",
            {
                "name": "update_document",
                "arguments": {
                    "documentKey": "progress.md",
                    "content": "<script>steal()</script>",
                },
            },
        )

        event = response_for(events, 1)
        assert event["error"]["code"] == "VALIDATION_ERROR"
        assert context.store.get("progress.md").version == 1
        assert context.audit_log.denied()[0].target == "progress.md"
        assert not any(e["type"] == "notification" for e in events)

    @pytest.mark.asyncio
    async def test_invalid_tool_arguments(self, context):
        await context.store.initialize()
        server = ProtocolServer(context)
        connection = context.connections.connect()

        events = await call(
            server,
            connection,
            "tools/call",
            {"name": "update_document", "arguments": {"documentKey": "progress.md"}},
        )

        error = response_for(events, 1)["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert "content" in error["message"]

    @pytest.mark.asyncio
    async def test_unknown_tool(self, context):
        server = ProtocolServer(context)
        connection = context.connections.connect()

        events = await call(server, connection, "tools/call", {"name": "rm_rf"})

        assert response_for(events, 1)["error"]["code"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_unknown_method(self, context):
        server = ProtocolServer(context)
        connection = context.connections.connect()

        events = await call(server, connection, "prompts/list")

        error = response_for(events, 1)["error"]
        assert error["code"] == "METHOD_NOT_FOUND"
        assert error["type"] == "MethodNotFoundError"

    @pytest.mark.asyncio
    async def test_export_and_validate_tools(self, context):
        await context.store.initialize()
        server = ProtocolServer(context)
        connection = context.connections.connect()

        events = await call(
            server,
            connection,
            "tools/call",
            {"name": "export_snapshot", "arguments": {"format": "markdown"}},
            id="export",
        )
        text = response_for(events, "export")["result"]["content"][0]["text"]
        assert text.startswith("# Memory Bank Export")

        events = await call(
            server, connection, "tools/call", {"name": "validate_integrity"}, id="check"
        )
        report = json.loads(response_for(events, "check")["result"]["content"][0]["text"])
        assert report["isValid"] is True

    @pytest.mark.asyncio
    async def test_unexpected_error_is_generic(self, context):
        server = ProtocolServer(context)
        connection = context.connections.connect()

        async def broken(arguments):
            raise RuntimeError("/home/user/secret/path exploded")

        server.tools._handlers["validate_integrity"] = broken
        events = await call(server, connection, "tools/call", {"name": "validate_integrity"})

        error = response_for(events, 1)["error"]
        assert error == {
            "code": "INTERNAL_ERROR",
            "type": "InternalError",
            "message": "Internal server error",
            "details": {},
        }


class TestProtocolServerTimeouts:
    """Test per-call timeouts."""

    @pytest.mark.asyncio
    async def test_slow_call_times_out(self, tmp_path):
        settings = ServerSettings(_env_file=None, workspace_root=tmp_path, tool_timeout=0.05)
        context = ServerContext.create(settings)
        server = ProtocolServer(context)
        connection = context.connections.connect()

        async def slow(arguments):
            await asyncio.sleep(5)

        server.tools._handlers["validate_integrity"] = slow
        events = await call(server, connection, "tools/call", {"name": "validate_integrity"})

        error = response_for(events, 1)["error"]
        assert error["code"] == "TIMEOUT"
        assert error["type"] == "ToolTimeoutError"

    @pytest.mark.asyncio
    async def test_write_committing_past_deadline_reports_its_result(self, tmp_path):
        settings = ServerSettings(_env_file=None, workspace_root=tmp_path, tool_timeout=0.05)
        context = ServerContext.create(settings)
        await context.store.initialize()
        server = ProtocolServer(context)
        connection = context.connections.connect()
        write_file = context.host.write_file

        async def slow_write(path, content):
            await asyncio.sleep(0.3)
            await write_file(path, content)

        context.host.write_file = slow_write
        events = await call(
            server,
            connection,
            "tools/call",
            {"name": "update_document", "arguments": {"documentKey": "progress.md", "content": "# New"}},
        )

        response = response_for(events, 1)
        assert response["type"] == "result"
        assert json.loads(response["result"]["content"][0]["text"])["version"] == 2
        assert context.store.get("progress.md").content == "# New"
        assert context.metrics.report().requests.timed_out == 0

    @pytest.mark.asyncio
    async def test_write_abandoned_before_commit_changes_nothing(self, tmp_path):
        settings = ServerSettings(_env_file=None, workspace_root=tmp_path, tool_timeout=0.05)
        context = ServerContext.create(settings)
        await context.store.initialize()
        server = ProtocolServer(context)
        connection = context.connections.connect()
        before = context.store.get("progress.md")

        # Another writer holds the key past the deadline
        async with context.store._locks[DocumentKey.PROGRESS]:
            events = await call(
                server,
                connection,
                "tools/call",
                {"name": "update_document", "arguments": {"documentKey": "progress.md", "content": "# New"}},
            )

        error = response_for(events, 1)["error"]
        assert error["code"] == "TIMEOUT"
        assert context.store.get("progress.md") == before
        assert (context.store.directory / "progress.md").read_text() == before.content
        assert not any(event["type"] == "notification" for event in events)
        assert context.metrics.report().requests.timed_out == 1


class TestHandlePost:
    """Test message acknowledgement."""

    @pytest.mark.asyncio
    async def test_accepted_for_known_session(self, context):
        server = ProtocolServer(context)
        connection = context.connections.connect()

        ack = await server.handle_post(connection.id, {"method": "tools/list", "id": 7})
        await server.drain()

        assert ack.status == "accepted"
        assert ack.id == 7
        assert server.pending == 0

    @pytest.mark.asyncio
    async def test_unknown_session(self, context):
        server = ProtocolServer(context)
        with pytest.raises(NotFoundError):
            await server.handle_post("nope", {"method": "tools/list", "id": 1})

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [[], "text", {"params": {}}, {"method": ""}])
    async def test_malformed_message(self, context, payload):
        server = ProtocolServer(context)
        connection = context.connections.connect()
        with pytest.raises(ProtocolError):
            await server.handle_post(connection.id, payload)

    @pytest.mark.asyncio
    async def test_get_status_is_synchronous(self, context):
        await context.store.initialize()
        server = ProtocolServer(context)

        ack = await server.handle_post(
            None,
            {"method": "tools/call", "params": {"name": "get_status"}, "id": "s"},
        )

        assert ack.status == "completed"
        status = json.loads(ack.result["content"][0]["text"])
        assert status["initialized"] is True
        assert status["documentCount"] == 6
        assert status["documents"][0]["key"] == "projectbrief.md"

    @pytest.mark.asyncio
    async def test_rejected_while_shutting_down(self, context):
        server = ProtocolServer(context)
        connection = context.connections.connect()
        await server.shutdown()

        with pytest.raises(CapacityError):
            await server.handle_post(connection.id, {"method": "tools/list"})
        assert context.connections.count() == 0

    @pytest.mark.asyncio
    async def test_status_reports_request_and_io_metrics(self, context):
        await context.store.initialize()
        server = ProtocolServer(context)
        connection = context.connections.connect()
        await call(server, connection, "tools/list", id=1)
        await call(server, connection, "prompts/list", id=2)
        with pytest.raises(NotFoundError):
            await server.handle_post("nope", {"method": "tools/list", "id": 3})

        ack = await server.handle_post(
            None,
            {"method": "tools/call", "params": {"name": "get_status"}, "id": "s"},
        )

        performance = json.loads(ack.result["content"][0]["text"])["performance"]
        requests = performance["requests"]
        assert requests["total"] == 3
        assert requests["successful"] == 1
        assert requests["failed"] == 2
        assert requests["timedOut"] == 0
        assert requests["errorRate"] == pytest.approx(0.6667)
        assert requests["errorsByCode"] == {"METHOD_NOT_FOUND": 1, "NOT_FOUND": 1}
        assert performance["fileOperations"]["write"]["count"] == 6
