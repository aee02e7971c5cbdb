"""Tests for the Method Dispatcher."""
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from gitbridge_mcp.dispatcher import Dispatcher, canonicalize_tool_result
from gitbridge_mcp.models import ToolCallResult

ALL_TOOLS = {
    "search_repositories",
    "get_repository",
    "get_readme",
    "list_issues",
    "list_pull_requests",
    "create_issue",
    "analyze_repository",
}


def _rpc(method, params=None, request_id=1):
    body = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        body["params"] = params
    return body


def _assert_tool_content(result) -> None:
    assert isinstance(result["content"], list) and result["content"]
    for item in result["content"]:
        assert item["type"] == "text"
        assert isinstance(item["text"], str)
    assert isinstance(result["isError"], bool)


class TestCapabilityNegotiation:
    async def test_initialize(self, dispatcher) -> None:
        response = await dispatcher.dispatch(_rpc("initialize", {"protocolVersion": "2025-03-26"}))
        result = response["result"]
        assert result["protocolVersion"] == "2024-11-05"
        assert result["serverInfo"] == {"name": "Test MCP Server", "version": "9.9.9"}
        assert result["capabilities"] == {"tools": {"listChanged": False}}

    async def test_initialized_notification_acknowledged(self, dispatcher) -> None:
        response = await dispatcher.dispatch({"jsonrpc": "2.0", "method": "notifications/initialized"})
        assert response == {"jsonrpc": "2.0", "id": None, "result": {}}


class TestDiscovery:
    @pytest.mark.parametrize("method", ["rpc.discover", "schema", "tools/list"])
    async def test_discovery_methods_match_registry(self, dispatcher, method) -> None:
        response = await dispatcher.dispatch(_rpc(method))
        assert response["result"] == dispatcher.discovery()

    async def test_all_discovery_paths_list_same_tools(self, dispatcher) -> None:
        name_sets = []
        for method in ("rpc.discover", "schema", "tools/list"):
            response = await dispatcher.dispatch(_rpc(method))
            name_sets.append({t["name"] for t in response["result"]["tools"]})
        name_sets.append({t["name"] for t in dispatcher.discovery()["tools"]})
        assert all(names == ALL_TOOLS for names in name_sets)

    async def test_unknown_method_falls_back_to_discovery(self, dispatcher) -> None:
        response = await dispatcher.dispatch(_rpc("foo"))
        assert "error" not in response
        assert {f["name"] for f in response["result"]["functions"]} == ALL_TOOLS


class TestDirectInvocation:
    async def test_get_repository_example(self, dispatcher) -> None:
        response = await dispatcher.dispatch(
            _rpc("get_repository", {"owner": "facebook", "repo": "react"})
        )
        assert response == {
            "jsonrpc": "2.0",
            "id": 1,
            "result": {
                "content": [{"type": "text", "text": "{\n  \"name\": \"react\",\n  \"stars\": 1000\n}"}],
                "isError": False,
            },
        }

    async def test_missing_required_argument(self, dispatcher) -> None:
        response = await dispatcher.dispatch(_rpc("get_repository", {"owner": "facebook"}))
        assert response["error"]["code"] == -32602
        assert "repo" in response["error"]["message"]
        assert "result" not in response

    async def test_upstream_failure_is_content(self, dispatcher) -> None:
        response = await dispatcher.dispatch(_rpc("search_repositories", {"query": "mcp"}))
        result = response["result"]
        _assert_tool_content(result)
        assert result["isError"] is True
        assert result["content"][0]["text"] == "Error calling search_repositories: rate limited"


class TestWrappedInvocation:
    @pytest.mark.parametrize("method", ["tools/call", "tools/invoke", "call_tool"])
    async def test_wrapped_forms(self, dispatcher, method) -> None:
        response = await dispatcher.dispatch(
            _rpc(method, {"name": "get_readme", "arguments": {"owner": "facebook", "repo": "react"}})
        )
        assert response["result"] == {
            "content": [{"type": "text", "text": "# React\n"}],
            "isError": False,
        }

    async def test_wrapped_matches_direct(self, dispatcher) -> None:
        args = {"owner": "facebook", "repo": "react"}
        direct = await dispatcher.dispatch(_rpc("get_repository", args))
        wrapped = await dispatcher.dispatch(_rpc("tools/call", {"name": "get_repository", "arguments": args}))
        assert direct == wrapped

    async def test_unknown_tool(self, dispatcher) -> None:
        response = await dispatcher.dispatch(_rpc("tools/call", {"name": "drop_database", "arguments": {}}))
        assert response["error"]["code"] == -32601

    async def test_missing_name(self, dispatcher) -> None:
        response = await dispatcher.dispatch(_rpc("tools/call", {"arguments": {}}))
        assert response["error"]["code"] == -32602

    async def test_missing_required_argument_matches_direct_path(self, dispatcher) -> None:
        response = await dispatcher.dispatch(
            _rpc("tools/call", {"name": "get_repository", "arguments": {"owner": "facebook"}})
        )
        assert response["error"]["code"] == -32602

    async def test_absent_arguments_treated_as_empty(self, dispatcher) -> None:
        response = await dispatcher.dispatch(_rpc("tools/call", {"name": "get_repository"}))
        assert response["error"]["code"] == -32602
        assert "owner" in response["error"]["message"]

    async def test_tool_without_collaborator_still_well_formed(self, dispatcher) -> None:
        response = await dispatcher.dispatch(
            _rpc("tools/call", {"name": "list_issues", "arguments": {"owner": "a", "repo": "b"}})
        )
        _assert_tool_content(response["result"])
        assert response["result"]["isError"] is True

    async def test_validation_happens_before_upstream_call(self, registry, settings) -> None:
        invoker = MagicMock()
        invoker.invoke = AsyncMock()
        dispatcher = Dispatcher(registry, invoker, settings)
        await dispatcher.dispatch(_rpc("tools/call", {"name": "create_issue", "arguments": {"owner": "a"}}))
        invoker.invoke.assert_not_awaited()


class TestEnvelopeInvariants:
    @pytest.mark.parametrize("request_id", [1, 0, "abc-123", None, 3.5])
    async def test_id_echoed(self, dispatcher, request_id) -> None:
        for method in ("initialize", "tools/list", "get_repository", "foo"):
            response = await dispatcher.dispatch(
                _rpc(method, {"owner": "a", "repo": "b"}, request_id=request_id)
            )
            assert response["id"] == request_id

    async def test_id_echoed_on_error(self, dispatcher) -> None:
        response = await dispatcher.dispatch(_rpc("tools/call", {}, request_id="req-9"))
        assert response["id"] == "req-9"
        assert "error" in response

    async def test_omitted_id_echoed_as_null(self, dispatcher) -> None:
        response = await dispatcher.dispatch({"jsonrpc": "2.0", "method": "tools/list"})
        assert response["id"] is None

    async def test_invalid_request(self, dispatcher) -> None:
        response = await dispatcher.dispatch({"jsonrpc": "1.0", "id": 4, "method": "initialize"})
        assert response == {
            "jsonrpc": "2.0",
            "id": 4,
            "error": {"code": -32600, "message": 'Invalid Request: jsonrpc must be "2.0"'},
        }

    async def test_non_object_body(self, dispatcher) -> None:
        response = await dispatcher.dispatch([1, 2, 3])
        assert response["id"] is None
        assert response["error"]["code"] == -32600

    async def test_unexpected_exception_becomes_internal_error(self, registry, settings) -> None:
        invoker = MagicMock()
        invoker.invoke = AsyncMock(side_effect=RuntimeError("bug"))
        dispatcher = Dispatcher(registry, invoker, settings)
        response = await dispatcher.dispatch(_rpc("get_repository", {"owner": "a", "repo": "b"}))
        assert response["error"] == {"code": -32603, "message": "Internal error"}


class TestLegacyActions:
    async def test_legacy_matches_canonical(self, dispatcher) -> None:
        legacy = await dispatcher.dispatch(
            {"action_id": "get_repository", "parameters": {"owner": "facebook", "repo": "react"}}
        )
        canonical = await dispatcher.dispatch(
            {"jsonrpc": "2.0", "method": "get_repository", "params": {"owner": "facebook", "repo": "react"}}
        )
        assert json.dumps(legacy) == json.dumps(canonical)

    async def test_legacy_discovery(self, dispatcher) -> None:
        response = await dispatcher.dispatch({"action_id": "tools/list", "id": 2})
        assert response["id"] == 2
        assert response["result"] == dispatcher.discovery()

    async def test_legacy_validation_error(self, dispatcher) -> None:
        response = await dispatcher.dispatch({"action_id": "get_repository", "parameters": {}})
        assert response["error"]["code"] == -32602


class TestCanonicalize:
    def test_tool_call_result(self) -> None:
        assert canonicalize_tool_result(ToolCallResult.text("hi")) == {
            "content": [{"type": "text", "text": "hi"}],
            "isError": False,
        }

    def test_nested_under_result(self) -> None:
        nested = {"result": {"content": [{"type": "text", "text": "x"}], "isError": True}}
        assert canonicalize_tool_result(nested) == {
            "content": [{"type": "text", "text": "x"}],
            "isError": True,
        }

    def test_multiple_items_collapse(self) -> None:
        value = {"content": [{"type": "text", "text": "a"}, {"type": "text", "text": "b"}]}
        assert canonicalize_tool_result(value)["content"] == [{"type": "text", "text": "a\nb"}]

    def test_snake_case_error_flag_and_non_string_text(self) -> None:
        value = {"content": [{"type": "text", "text": {"k": 1}}], "is_error": True}
        assert canonicalize_tool_result(value) == {
            "content": [{"type": "text", "text": '{\n  "k": 1\n}'}],
            "isError": True,
        }

    def test_bare_values(self) -> None:
        assert canonicalize_tool_result("plain")["content"][0]["text"] == "plain"
        assert canonicalize_tool_result([1])["content"][0]["text"] == "[\n  1\n]"
        assert canonicalize_tool_result({"content": []})["content"] == [{"type": "text", "text": ""}]
