"""Shared fixtures: a dispatcher wired to stub collaborators."""
from typing import Any, Dict

import pytest

from gitbridge_mcp.config import GatewaySettings
from gitbridge_mcp.dispatcher import Dispatcher
from gitbridge_mcp.invoker import UpstreamInvoker
from gitbridge_mcp.tools import default_registry


def _failing_search(args: Dict[str, Any]) -> Any:
    raise RuntimeError("rate limited")


STUB_HANDLERS = {
    "get_repository": lambda args: {"name": args["repo"], "stars": 1000},
    "get_readme": lambda args: "# React\n",
    "search_repositories": _failing_search,
}


@pytest.fixture
def settings() -> GatewaySettings:
    return GatewaySettings(
        server_name="Test MCP Server",
        server_version="9.9.9",
        protocol_version="2024-11-05",
        sse_catalog_delay=0.01,
        sse_keepalive_interval=0.01,
    )


@pytest.fixture
def registry():
    return default_registry()


@pytest.fixture
def invoker() -> UpstreamInvoker:
    return UpstreamInvoker(STUB_HANDLERS)


@pytest.fixture
def dispatcher(registry, invoker, settings) -> Dispatcher:
    return Dispatcher(registry, invoker, settings)
