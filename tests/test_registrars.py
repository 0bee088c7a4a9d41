"""
Tests for the FastMCP tool registrars and server wiring.

Tools are registered on a recording app so they can be called as plain
functions. Argument validation is exercised through a real FastMCP
instance and an in-memory client.
"""

import asyncio
import json

import pytest
from fastmcp import Client, FastMCP
from fastmcp.exceptions import ToolError

from thoughtchain.config import ServerConfig
from thoughtchain.models import VERBS
from thoughtchain.server import ThinkingServer
from thoughtchain.services.registrars import SessionToolsRegistrar, ThinkingToolsRegistrar
from thoughtchain.services.registrars.base import ToolRegistrarBase


class RecordingApp:
    """Stands in for FastMCP: keeps the decorated functions by name."""

    def __init__(self):
        self.tools = {}

    def tool(self):
        def decorator(fn):
            self.tools[fn.__name__] = fn
            return fn
        return decorator


def call_tool(app, name, arguments):
    """Call a tool through the MCP client, returning the raw result."""
    async def run():
        async with Client(app) as client:
            return await client.call_tool(name, arguments, raise_on_error=False)
    return asyncio.run(run())


def payload_of(result):
    return json.loads(result.content[0].text)


@pytest.fixture
def tools(handler):
    app = RecordingApp()
    ThinkingToolsRegistrar(handler).register(app)
    SessionToolsRegistrar(handler).register(app)
    return app.tools


class TestRegistration:

    def test_every_verb_is_a_tool(self, tools):
        assert sorted(tools) == sorted(VERBS)

    def test_register_on_fastmcp(self, handler):
        app = FastMCP("test")
        ThinkingToolsRegistrar(handler).register(app)
        SessionToolsRegistrar(handler).register(app)

    def test_base_register_is_abstract(self, handler):
        with pytest.raises(NotImplementedError):
            ToolRegistrarBase(handler).register(RecordingApp())


class TestToolCalls:

    def test_success_returns_payload(self, tools):
        assert tools["think"]("first")["thought_number"] == 1
        assert tools["revise"]("again", 1)["revises_thought"] == 1

    def test_optional_arguments_default(self, tools):
        tools["think"]("a")
        tools["branch"]("alt", "x")
        assert tools["switch_branch"]()["active_branch_id"] is None
        assert tools["get_history"]()["total"] == 2

    def test_failure_raises_tool_error(self, tools):
        with pytest.raises(ToolError) as exc_info:
            tools["get_thought"](7)

        payload = json.loads(str(exc_info.value))
        assert payload["status"] == "failed"
        assert payload["error_type"] == "NotFoundError"

    def test_reset_false_raises(self, tools):
        with pytest.raises(ToolError):
            tools["reset"](False)

    def test_session_tools(self, tools):
        tools["think"]("a")
        saved = tools["session_save"]("named")
        assert tools["session_list"]()["sessions"][0]["id"] == saved["id"]
        assert tools["session_summary"](saved["id"])["truncated"] is False


class TestResponseSize:

    def test_large_history_truncated(self, handler):
        app = RecordingApp()
        ThinkingToolsRegistrar(handler, max_response_size=1500).register(app)
        for i in range(30):
            app.tools["think"](f"thought body {i} " * 5)

        result = app.tools["get_history"]()

        assert result["total"] == 30
        assert len(result["thoughts"]) < 30
        note = result["_truncated"]
        assert note["original_counts"] == {"thoughts": 30}
        assert note["returned_counts"] == {"thoughts": len(result["thoughts"])}
        assert note["max_response_size"] == 1500


class TestServer:

    @pytest.fixture
    def server(self):
        server = ThinkingServer(ServerConfig(
            db_path=":memory:", log_file=None, verbose_thought_logging=False
        ))
        yield server
        server.close()

    def test_persistent_store(self, server):
        assert server.store is not None
        assert server.store.db_path == ":memory:"
        assert server.handler.dispatch("think", {"thought": "a"})["thought_number"] == 1

    def test_unusable_path_means_memory_only(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        server = ThinkingServer(ServerConfig(
            db_path=str(blocker / "sub" / "thinking.db"), log_file=None,
            verbose_thought_logging=False,
        ))

        assert server.store is None
        assert server.session.memory_only
        result = server.handler.dispatch("session_list", {})
        assert result["error_type"] == "StateConflictError"

    def test_close_is_idempotent(self, server):
        server.close()
        server.close()
        assert server.store is None


class TestMcpArguments:

    @pytest.fixture
    def app(self, handler):
        app = FastMCP("test")
        ThinkingToolsRegistrar(handler).register(app)
        SessionToolsRegistrar(handler).register(app)
        return app

    @pytest.mark.parametrize("confirm", ["true", 1])
    def test_reset_confirm_must_be_boolean(self, app, handler, confirm):
        handler.dispatch("think", {"thought": "keep me"})

        result = call_tool(app, "reset", {"confirm": confirm})

        assert result.is_error
        assert handler.dispatch("get_history", {})["total"] == 1

    def test_reset_true(self, app, handler):
        handler.dispatch("think", {"thought": "a"})
        result = call_tool(app, "reset", {"confirm": True})

        assert not result.is_error
        assert handler.dispatch("get_history", {})["total"] == 0

    def test_numbers_not_coerced_from_strings(self, app, handler):
        handler.dispatch("think", {"thought": "a"})
        assert call_tool(app, "get_thought", {"thought_number": "1"}).is_error
        assert call_tool(app, "get_history", {"limit": "1"}).is_error
        assert call_tool(app, "session_list", {"limit": "5"}).is_error

    def test_snake_case_arguments(self, app, handler):
        handler.dispatch("think", {"thought": "a"})
        result = call_tool(app, "revise", {"thought": "b", "revises_thought": 1})
        assert payload_of(result)["revises_thought"] == 1

    def test_camel_case_arguments(self, app, handler):
        handler.dispatch("think", {"thought": "a"})

        revised = call_tool(app, "revise", {"thought": "b", "revisesThought": 1})
        assert not revised.is_error
        assert payload_of(revised)["revises_thought"] == 1

        call_tool(app, "branch", {"branchId": "alt", "reason": "try"})
        history = call_tool(app, "get_history", {"branchId": "alt"})
        assert payload_of(history)["branch_id"] == "alt"

        thought = call_tool(app, "get_thought", {"thoughtNumber": 3})
        assert payload_of(thought)["thought_number"] == 3

        drawn = call_tool(app, "visualize", {"format": "ascii", "showContent": True})
        assert ": a" in payload_of(drawn)["diagram"]

        saved = handler.dispatch("session_save", {"name": "named"})
        summary = call_tool(app, "session_summary", {"id": saved["id"], "maxLength": 500})
        assert not summary.is_error

    def test_failure_payload_in_error_result(self, app):
        result = call_tool(app, "get_thought", {"thought_number": 9})

        assert result.is_error
        assert payload_of(result)["error_type"] == "NotFoundError"

    def test_truncated_history_ends_at_latest_thought(self, handler):
        app = FastMCP("test")
        ThinkingToolsRegistrar(handler, max_response_size=1500).register(app)
        for i in range(10):
            handler.dispatch("think", {"thought": f"thought body {i} " * 20})

        result = call_tool(app, "get_history", {"limit": 5})

        body = payload_of(result)
        numbers = [t["thought_number"] for t in body["thoughts"]]
        assert "_truncated" in body
        assert 0 < len(numbers) < 5
        assert numbers[-1] == 10
        assert numbers == list(range(11 - len(numbers), 11))
