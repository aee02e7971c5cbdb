"""
Tool Registry – the static catalog of callable tools.

Every discovery path (plain JSON GET, ``tools/list``/``rpc.discover``/
``schema`` and the SSE catalog frame) renders from the same registry, so the
advertised names, descriptions and schemas cannot drift apart.

Tools:
    search_repositories  – search GitHub repositories
    get_repository       – repository metadata
    get_readme           – decoded README contents
    list_issues          – issues (pull requests excluded)
    list_pull_requests   – pull requests
    create_issue         – open a new issue
    analyze_repository   – LLM-written analysis of a repository
"""
from functools import lru_cache
from typing import Any, Dict, Iterable, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .errors import InvalidParams, MethodNotFound


class ToolAnnotations(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str
    read_only_hint: bool = Field(default=True, alias="readOnlyHint")
    open_world_hint: bool = Field(default=True, alias="openWorldHint")


class ToolDescriptor(BaseModel):
    """A tool definition as advertised to clients."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    description: str
    input_schema: Dict[str, Any] = Field(alias="inputSchema")
    annotations: ToolAnnotations

    @property
    def required(self) -> Tuple[str, ...]:
        return tuple(self.input_schema.get("required", ()))

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)

    def to_function(self) -> Dict[str, Any]:
        """The older ``functions`` array entry shape."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.input_schema,
        }


class ToolRegistry:
    """Read-only, ordered collection of :class:`ToolDescriptor`."""

    def __init__(self, descriptors: Iterable[ToolDescriptor]):
        ordered = tuple(descriptors)
        by_name: Dict[str, ToolDescriptor] = {}
        for descriptor in ordered:
            if descriptor.name in by_name:
                raise ValueError(f"Duplicate tool name: {descriptor.name}")
            by_name[descriptor.name] = descriptor
        self._ordered = ordered
        self._by_name = by_name

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self._ordered)

    def list(self) -> Tuple[ToolDescriptor, ...]:
        return self._ordered

    def names(self) -> Tuple[str, ...]:
        return tuple(d.name for d in self._ordered)

    def get(self, name: str) -> Optional[ToolDescriptor]:
        return self._by_name.get(name)

    def validate(self, name: str, args: Any) -> ToolDescriptor:
        """
        Shallow argument check for a tool call.

        Args:
            name: Tool name.
            args: Argument object supplied by the client.

        Returns:
            The matching descriptor.

        Raises:
            MethodNotFound: the tool is not registered.
            InvalidParams: ``args`` is not an object, or a required field is
                absent or null (the first one in schema order is reported).
        """
        descriptor = self.get(name)
        if descriptor is None:
            raise MethodNotFound(name)
        if not isinstance(args, dict):
            raise InvalidParams(f"Invalid params for {name}: arguments must be an object")
        for field in descriptor.required:
            if args.get(field) is None:
                raise InvalidParams(
                    f"Missing required parameter: {field}",
                    data={"tool": name, "missing": field},
                )
        return descriptor

    def discovery_payload(self, server_info: Dict[str, Any], protocol_version: str) -> Dict[str, Any]:
        """The single discovery rendering shared by every entry point."""
        return {
            "serverInfo": dict(server_info),
            "protocolVersion": protocol_version,
            "tools": [d.to_wire() for d in self._ordered],
            "functions": [d.to_function() for d in self._ordered],
        }


# ═══════════════════════════════════════════════════════════════════════════
#  DEFAULT CATALOG
# ═══════════════════════════════════════════════════════════════════════════

_OWNER = {"type": "string", "description": "Repository owner (user or organization)"}
_REPO = {"type": "string", "description": "Repository name"}
_PER_PAGE = {
    "type": "integer",
    "description": "Number of results per page",
    "default": 10,
    "minimum": 1,
    "maximum": 100,
}


def _state(what: str) -> Dict[str, Any]:
    return {
        "type": "string",
        "enum": ["open", "closed", "all"],
        "description": f"{what} state",
        "default": "open",
    }


def _tool(name: str, title: str, description: str, properties: Dict[str, Any],
          required: Iterable[str], read_only: bool = True) -> ToolDescriptor:
    return ToolDescriptor(
        name=name,
        description=description,
        input_schema={
            "type": "object",
            "properties": properties,
            "required": list(required),
        },
        annotations=ToolAnnotations(title=title, read_only_hint=read_only, open_world_hint=True),
    )


DEFAULT_TOOLS = (
    _tool(
        "search_repositories",
        "Search Repositories",
        "Search for GitHub repositories",
        {
            "query": {"type": "string", "description": "Search query for GitHub repositories"},
            "sort": {
                "type": "string",
                "enum": ["stars", "forks", "updated"],
                "description": "Sort criteria",
                "default": "stars",
            },
            "order": {
                "type": "string",
                "enum": ["asc", "desc"],
                "description": "Sort order",
                "default": "desc",
            },
            "per_page": _PER_PAGE,
        },
        required=["query"],
    ),
    _tool(
        "get_repository",
        "Get Repository",
        "Get information about a specific GitHub repository",
        {"owner": _OWNER, "repo": _REPO},
        required=["owner", "repo"],
    ),
    _tool(
        "get_readme",
        "Get README",
        "Fetch the decoded README of a GitHub repository",
        {"owner": _OWNER, "repo": _REPO},
        required=["owner", "repo"],
    ),
    _tool(
        "list_issues",
        "List Issues",
        "List issues for a repository (pull requests excluded)",
        {"owner": _OWNER, "repo": _REPO, "state": _state("Issue"), "per_page": _PER_PAGE},
        required=["owner", "repo"],
    ),
    _tool(
        "list_pull_requests",
        "List Pull Requests",
        "List pull requests for a repository",
        {"owner": _OWNER, "repo": _REPO, "state": _state("Pull request"), "per_page": _PER_PAGE},
        required=["owner", "repo"],
    ),
    _tool(
        "create_issue",
        "Create Issue",
        "Create a new issue in a repository",
        {
            "owner": _OWNER,
            "repo": _REPO,
            "title": {"type": "string", "description": "Issue title"},
            "body": {"type": "string", "description": "Issue body content"},
            "labels": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Labels to add to the issue",
            },
        },
        required=["owner", "repo", "title"],
        read_only=False,
    ),
    _tool(
        "analyze_repository",
        "Analyze Repository",
        "Analyze a GitHub repository with an LLM (popularity, activity, stack, key metrics)",
        {
            "owner": _OWNER,
            "repo": _REPO,
            "prompt": {"type": "string", "description": "Optional analysis focus"},
        },
        required=["owner", "repo"],
    ),
)


@lru_cache()
def default_registry() -> ToolRegistry:
    """Return the process-wide registry built from :data:`DEFAULT_TOOLS`."""
    return ToolRegistry(DEFAULT_TOOLS)
