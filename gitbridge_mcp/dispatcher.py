"""
Method Dispatcher – routes one decoded request to a single outbound envelope.

Categories, by ``method``:
    initialize                          – static capabilities / server info
    rpc.discover, schema, tools/list    – discovery payload from the registry
    tools/call, tools/invoke, call_tool – wrapped tool invocation
    <tool name>                         – direct tool invocation
    notifications/*                     – acknowledged with an empty result
    anything else                       – discovery payload (lenient fallback)

Legacy ``{action_id, parameters}`` bodies are translated by the codec and
then follow exactly the same routes.
"""
import logging
from typing import Any, Dict, Tuple

from .config import GatewaySettings
from .errors import ErrorCodes, InvalidParams, JsonRpcError
from .invoker import UpstreamInvoker, serialize_result
from .jsonrpc import (
    RpcRequest,
    decode_request,
    encode_error,
    encode_exception,
    encode_success,
    normalize_envelope,
    request_id_of,
)
from .models import ToolCallResult
from .tools import ToolRegistry

logger = logging.getLogger(__name__)

INITIALIZE_METHOD = "initialize"
DISCOVERY_METHODS = frozenset({"rpc.discover", "schema", "tools/list"})
WRAPPED_CALL_METHODS = frozenset({"tools/call", "tools/invoke", "call_tool"})
NOTIFICATION_PREFIX = "notifications/"


def _item_text(item: Any) -> str:
    if isinstance(item, dict) and "text" in item:
        text = item["text"]
        return text if isinstance(text, str) else serialize_result(text)
    if isinstance(item, str):
        return item
    return serialize_result(item)


def canonicalize_tool_result(value: Any) -> Dict[str, Any]:
    """
    Rebuild any tool outcome as ``{content: [{type: "text", text}], isError}``.

    Accepts a :class:`ToolCallResult`, an already-shaped dict (possibly nested
    one level under ``result`` or ``params``, possibly with several content
    items or snake_case ``is_error``), a bare string, or any JSON value.
    """
    if isinstance(value, ToolCallResult):
        value = value.to_wire()

    if isinstance(value, dict) and "content" not in value:
        for key in ("result", "params"):
            nested = value.get(key)
            if isinstance(nested, dict) and "content" in nested:
                value = nested
                break

    if isinstance(value, dict) and "content" in value:
        is_error = bool(value.get("isError", value.get("is_error", False)))
        content = value["content"]
        if not isinstance(content, list):
            content = [content]
        text = "\n".join(_item_text(item) for item in content)
        return ToolCallResult.text(text, is_error=is_error).to_wire()

    return ToolCallResult.text(serialize_result(value)).to_wire()


class Dispatcher:
    """Stateless per-request router over the JSON-RPC ``method``."""

    def __init__(self, registry: ToolRegistry, invoker: UpstreamInvoker, settings: GatewaySettings):
        self.registry = registry
        self.invoker = invoker
        self.settings = settings

    @property
    def server_info(self) -> Dict[str, str]:
        return {"name": self.settings.server_name, "version": self.settings.server_version}

    def discovery(self) -> Dict[str, Any]:
        """Discovery payload shared by every discovery path, SSE included."""
        return self.registry.discovery_payload(self.server_info, self.settings.protocol_version)

    def capabilities(self) -> Dict[str, Any]:
        return {
            "protocolVersion": self.settings.protocol_version,
            "capabilities": {"tools": {"listChanged": False}},
            "serverInfo": self.server_info,
            "instructions": (
                "Exposes GitHub repository search, metadata, README, issues and pull "
                "requests, plus LLM-powered repository analysis."
            ),
        }

    # ── Entry point ──────────────────────────────────────────────────────

    async def dispatch(self, body: Any) -> Dict[str, Any]:
        """
        Handle one parsed request body.

        Always returns a JSON-RPC envelope; validation failures become
        ``error`` envelopes carrying the request id.
        """
        try:
            request = decode_request(body)
        except JsonRpcError as exc:
            logger.info(f"Rejected request: {exc.message}")
            return normalize_envelope(encode_exception(request_id_of(body), exc))

        try:
            result = await self._route(request)
        except JsonRpcError as exc:
            logger.info(f"{request.method} failed with {exc.code}: {exc.message}")
            envelope = encode_exception(request.id, exc)
        except Exception:
            logger.exception(f"Unhandled error while dispatching {request.method}")
            envelope = encode_error(request.id, ErrorCodes.INTERNAL_ERROR, "Internal error")
        else:
            envelope = encode_success(request.id, result)

        return normalize_envelope(envelope)

    # ── Routing ──────────────────────────────────────────────────────────

    async def _route(self, request: RpcRequest) -> Any:
        method = request.method
        if request.legacy:
            logger.debug(f"Legacy action_id request for {method}")

        if method == INITIALIZE_METHOD:
            return self.capabilities()

        if method in DISCOVERY_METHODS:
            return self.discovery()

        if method.startswith(NOTIFICATION_PREFIX):
            logger.debug(f"Acknowledged notification {method}")
            return {}

        if method in WRAPPED_CALL_METHODS:
            name, arguments = self._unwrap_call(request.params)
            return await self._call_tool(name, arguments)

        if method in self.registry:
            return await self._call_tool(method, request.params)

        logger.info(f"Unknown method '{method}', answering with discovery payload")
        return self.discovery()

    @staticmethod
    def _unwrap_call(params: Dict[str, Any]) -> Tuple[str, Any]:
        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise InvalidParams("Invalid params: 'name' is required")
        arguments = params.get("arguments")
        return name, {} if arguments is None else arguments

    async def _call_tool(self, name: str, arguments: Any) -> Dict[str, Any]:
        # Raises MethodNotFound / InvalidParams before any upstream call
        self.registry.validate(name, arguments)
        result = await self.invoker.invoke(name, arguments)
        return canonicalize_tool_result(result)
