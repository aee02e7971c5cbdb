"""
JSON-RPC 2.0 envelope codec.

Builds success/error envelopes, decodes inbound requests (including the
legacy ``{action_id, parameters}`` body) and normalizes outbound envelopes so
that exactly one of ``result``/``error`` is present.
"""
import json
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict

from .errors import ErrorCodes, InvalidRequest, JsonRpcError

JSONRPC_VERSION = "2.0"

# Sentinel for "no id key at all", as opposed to an explicit null id
_MISSING = object()


class RpcRequest(BaseModel):
    """A decoded, validated inbound request."""

    model_config = ConfigDict(frozen=True)

    id: Any = None
    method: str
    params: Dict[str, Any] = {}
    has_id: bool = True
    legacy: bool = False

    @property
    def is_notification(self) -> bool:
        return not self.has_id


# ── Encoding ──────────────────────────────────────────────────────────────


def encode_success(request_id: Any, value: Any) -> Dict[str, Any]:
    """Envelope carrying ``result``; never has an ``error`` key."""
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": value}


def encode_error(
    request_id: Any,
    code: int = ErrorCodes.INTERNAL_ERROR,
    message: str = "Internal error",
    data: Any = None,
) -> Dict[str, Any]:
    """Envelope carrying ``error``; never has a ``result`` key."""
    error: Dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error}


def encode_exception(request_id: Any, exc: JsonRpcError) -> Dict[str, Any]:
    return encode_error(request_id, exc.code, exc.message, exc.data)


def format_sse_frame(method: str, params: Dict[str, Any]) -> str:
    """Render one SSE ``data:`` frame holding a JSON-RPC notification."""
    payload = {"jsonrpc": JSONRPC_VERSION, "method": method, "params": params}
    return f"data: {json.dumps(payload)}\n\n"


# ── Decoding ──────────────────────────────────────────────────────────────


def _translate_legacy(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Map ``{action_id, parameters}`` onto ``{jsonrpc, method, params}``."""
    translated = {k: v for k, v in raw.items() if k not in ("action_id", "parameters")}
    translated["jsonrpc"] = raw.get("jsonrpc", JSONRPC_VERSION)
    translated["method"] = raw["action_id"]
    translated["params"] = raw.get("parameters")
    return translated


def decode_request(raw: Any) -> RpcRequest:
    """
    Validate a parsed request body and return an :class:`RpcRequest`.

    Raises:
        InvalidRequest: body is not an object, ``jsonrpc`` is not "2.0",
            ``method`` is missing/empty, or ``params`` is not an object.
    """
    if not isinstance(raw, dict):
        raise InvalidRequest("Invalid Request: body must be a JSON object")

    legacy = "action_id" in raw and "method" not in raw
    if legacy:
        raw = _translate_legacy(raw)

    if raw.get("jsonrpc") != JSONRPC_VERSION:
        raise InvalidRequest('Invalid Request: jsonrpc must be "2.0"')

    method = raw.get("method")
    if not isinstance(method, str) or not method:
        raise InvalidRequest("Invalid Request: method is required")

    params = raw.get("params")
    if params is None:
        params = {}
    elif not isinstance(params, dict):
        raise InvalidRequest("Invalid Request: params must be an object")

    request_id = raw.get("id", _MISSING)
    return RpcRequest(
        id=None if request_id is _MISSING else request_id,
        method=method,
        params=params,
        has_id=request_id is not _MISSING,
        legacy=legacy,
    )


def request_id_of(raw: Any) -> Optional[Any]:
    """Best-effort id extraction for bodies that failed validation."""
    if isinstance(raw, dict):
        return raw.get("id")
    return None


# ── Outbound normalization ────────────────────────────────────────────────


def normalize_envelope(envelope: Dict[str, Any]) -> Dict[str, Any]:
    """
    Force an outbound envelope into strict JSON-RPC 2.0 shape.

    Older code paths answered with ``params`` instead of ``result``; that
    payload is moved to ``result``. If both ``result`` and ``error`` are
    present the error wins; if neither is, an empty result is used.
    """
    normalized: Dict[str, Any] = {
        "jsonrpc": JSONRPC_VERSION,
        "id": envelope.get("id"),
    }
    if envelope.get("error") is not None:
        normalized["error"] = envelope["error"]
    elif "result" in envelope:
        normalized["result"] = envelope["result"]
    elif "params" in envelope:
        normalized["result"] = envelope["params"]
    else:
        normalized["result"] = {}
    return normalized
