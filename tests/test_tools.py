"""Tests for the Tool Registry."""
import pytest

from gitbridge_mcp.errors import ErrorCodes, InvalidParams, MethodNotFound
from gitbridge_mcp.tools import DEFAULT_TOOLS, ToolRegistry, default_registry

EXPECTED_ORDER = (
    "search_repositories",
    "get_repository",
    "get_readme",
    "list_issues",
    "list_pull_requests",
    "create_issue",
    "analyze_repository",
)


class TestRegistryContents:
    def test_registration_order_is_stable(self, registry) -> None:
        assert registry.names() == EXPECTED_ORDER
        assert [d.name for d in registry.list()] == list(EXPECTED_ORDER)

    def test_default_registry_is_cached(self) -> None:
        assert default_registry() is default_registry()

    def test_duplicate_names_rejected(self) -> None:
        with pytest.raises(ValueError):
            ToolRegistry([DEFAULT_TOOLS[0], DEFAULT_TOOLS[0]])

    def test_get_unknown_returns_none(self, registry) -> None:
        assert registry.get("nope") is None
        assert "nope" not in registry
        assert "get_repository" in registry

    def test_descriptor_wire_shape(self, registry) -> None:
        wire = registry.get("get_repository").to_wire()
        assert set(wire) == {"name", "description", "inputSchema", "annotations"}
        assert wire["inputSchema"]["required"] == ["owner", "repo"]
        assert wire["annotations"] == {
            "title": "Get Repository",
            "readOnlyHint": True,
            "openWorldHint": True,
        }

    def test_only_create_issue_writes(self, registry) -> None:
        writers = [d.name for d in registry.list() if not d.annotations.read_only_hint]
        assert writers == ["create_issue"]

    def test_descriptors_are_immutable(self, registry) -> None:
        with pytest.raises(Exception):
            registry.get("get_repository").name = "other"


class TestValidate:
    def test_valid_arguments(self, registry) -> None:
        descriptor = registry.validate("get_repository", {"owner": "facebook", "repo": "react"})
        assert descriptor.name == "get_repository"

    def test_unknown_tool(self, registry) -> None:
        with pytest.raises(MethodNotFound) as exc_info:
            registry.validate("delete_everything", {})
        assert exc_info.value.code == ErrorCodes.METHOD_NOT_FOUND

    def test_first_missing_field_is_named(self, registry) -> None:
        with pytest.raises(InvalidParams) as exc_info:
            registry.validate("create_issue", {"repo": "react"})
        assert exc_info.value.code == ErrorCodes.INVALID_PARAMS
        assert "owner" in exc_info.value.message
        assert exc_info.value.data == {"tool": "create_issue", "missing": "owner"}

    def test_null_counts_as_missing(self, registry) -> None:
        with pytest.raises(InvalidParams) as exc_info:
            registry.validate("get_repository", {"owner": "facebook", "repo": None})
        assert "repo" in exc_info.value.message

    def test_non_object_arguments(self, registry) -> None:
        with pytest.raises(InvalidParams):
            registry.validate("get_repository", ["facebook", "react"])


class TestDiscoveryPayload:
    def test_tools_and_functions_agree(self, registry) -> None:
        payload = registry.discovery_payload({"name": "s", "version": "1"}, "2024-11-05")
        assert [t["name"] for t in payload["tools"]] == list(EXPECTED_ORDER)
        assert [f["name"] for f in payload["functions"]] == list(EXPECTED_ORDER)
        for tool, function in zip(payload["tools"], payload["functions"]):
            assert tool["description"] == function["description"]
            assert tool["inputSchema"] == function["parameters"]
        assert payload["serverInfo"] == {"name": "s", "version": "1"}
        assert payload["protocolVersion"] == "2024-11-05"
