"""JSON-RPC error codes and the exceptions that carry them."""
from typing import Any, Dict, Optional


class ErrorCodes:
    """Standard JSON-RPC 2.0 codes plus the server-reserved range."""
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
    SERVER_ERROR_START = -32000
    SERVER_ERROR_END = -32099
    TIMEOUT = -32001
    UPSTREAM_ERROR = -32002


class JsonRpcError(Exception):
    """Base error for every failure that maps onto a JSON-RPC error object."""

    code = ErrorCodes.INTERNAL_ERROR
    default_message = "Internal error"

    def __init__(self, message: Optional[str] = None, data: Any = None, code: Optional[int] = None):
        self.message = message or self.default_message
        self.data = data
        if code is not None:
            self.code = code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


class ParseError(JsonRpcError):
    """Top-level request body is not valid JSON."""

    code = ErrorCodes.PARSE_ERROR
    default_message = "Parse error"


class InvalidRequest(JsonRpcError):
    """Body is JSON but not a valid JSON-RPC 2.0 request."""

    code = ErrorCodes.INVALID_REQUEST
    default_message = "Invalid Request"


class MethodNotFound(JsonRpcError):
    """Requested tool (or method, in strict contexts) does not exist."""

    code = ErrorCodes.METHOD_NOT_FOUND
    default_message = "Method not found"

    def __init__(self, method: str, data: Any = None):
        self.method = method
        super().__init__(f"Method not found: {method}", data=data)


class InvalidParams(JsonRpcError):
    """Tool arguments are missing or malformed."""

    code = ErrorCodes.INVALID_PARAMS
    default_message = "Invalid params"


class InternalError(JsonRpcError):
    code = ErrorCodes.INTERNAL_ERROR
    default_message = "Internal error"


class UpstreamError(JsonRpcError):
    """A GitHub or LLM collaborator call failed."""

    code = ErrorCodes.UPSTREAM_ERROR
    default_message = "Upstream error"

    def __init__(self, tool: str, detail: str = ""):
        self.tool = tool
        self.detail = detail
        message = f"Error calling {tool}" + (f": {detail}" if detail else "")
        super().__init__(message)
