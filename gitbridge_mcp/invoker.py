"""
Upstream Invoker – runs one validated tool call against its collaborator and
turns whatever happens into a :class:`ToolCallResult`.

Collaborator exceptions never reach the wire: they become ``isError=True``
content naming the tool and the underlying failure.
"""
import asyncio
import json
import logging
import time
from typing import Any, Callable, Dict, Mapping, Optional

from . import analyzer
from . import github_client as gh
from .errors import UpstreamError
from .logger import log_tool_end, log_tool_start
from .models import ToolCallResult

logger = logging.getLogger(__name__)

Handler = Callable[[Dict[str, Any]], Any]


def serialize_result(value: Any) -> str:
    """Strings pass through verbatim; everything else is pretty-printed JSON."""
    if isinstance(value, str):
        return value
    return json.dumps(value, indent=2, default=str)


class UpstreamInvoker:
    """Maps tool names onto collaborator calls."""

    def __init__(self, handlers: Mapping[str, Handler]):
        self._handlers = dict(handlers)

    def has_handler(self, name: str) -> bool:
        return name in self._handlers

    async def invoke(self, name: str, args: Optional[Dict[str, Any]] = None) -> ToolCallResult:
        """
        Execute ``name`` with ``args`` in a worker thread.

        Args:
            name: Tool name, already validated against the registry.
            args: Argument object, already checked for required fields.

        Returns:
            A single-item text result; ``is_error`` is set on any failure.
        """
        args = args or {}
        handler = self._handlers.get(name)
        if handler is None:
            error = UpstreamError(name, "no collaborator is bound to this tool")
            logger.error(error.message)
            return ToolCallResult.text(error.message, is_error=True)

        log_tool_start(name, logger)
        start = time.time()
        try:
            value = await asyncio.to_thread(handler, args)
        except Exception as exc:
            duration_ms = (time.time() - start) * 1000
            error = UpstreamError(name, gh.describe_http_error(exc))
            logger.warning(error.message)
            log_tool_end(name, logger, success=False, duration_ms=duration_ms)
            return ToolCallResult.text(error.message, is_error=True)

        log_tool_end(name, logger, success=True, duration_ms=(time.time() - start) * 1000)
        return ToolCallResult.text(serialize_result(value), is_error=False)


# ═══════════════════════════════════════════════════════════════════════════
#  DEFAULT HANDLERS – one per registry tool
# ═══════════════════════════════════════════════════════════════════════════


def _search_repositories(args: Dict[str, Any]) -> Any:
    return gh.search_repositories(
        args["query"],
        sort=args.get("sort") or "stars",
        order=args.get("order") or "desc",
        per_page=args.get("per_page") or 10,
    )


def _get_repository(args: Dict[str, Any]) -> Any:
    return gh.get_repository(args["owner"], args["repo"])


def _get_readme(args: Dict[str, Any]) -> Any:
    return gh.get_readme(args["owner"], args["repo"])


def _list_issues(args: Dict[str, Any]) -> Any:
    return gh.list_issues(
        args["owner"],
        args["repo"],
        state=args.get("state") or "open",
        per_page=args.get("per_page") or 10,
    )


def _list_pull_requests(args: Dict[str, Any]) -> Any:
    return gh.list_pull_requests(
        args["owner"],
        args["repo"],
        state=args.get("state") or "open",
        per_page=args.get("per_page") or 10,
    )


def _create_issue(args: Dict[str, Any]) -> Any:
    return gh.create_issue(
        args["owner"],
        args["repo"],
        args["title"],
        body=args.get("body") or "",
        labels=args.get("labels"),
    )


def _analyze_repository(args: Dict[str, Any]) -> Any:
    return analyzer.analyze_repository(args["owner"], args["repo"], args.get("prompt"))


DEFAULT_HANDLERS: Dict[str, Handler] = {
    "search_repositories": _search_repositories,
    "get_repository": _get_repository,
    "get_readme": _get_readme,
    "list_issues": _list_issues,
    "list_pull_requests": _list_pull_requests,
    "create_issue": _create_issue,
    "analyze_repository": _analyze_repository,
}


def default_invoker() -> UpstreamInvoker:
    return UpstreamInvoker(DEFAULT_HANDLERS)
