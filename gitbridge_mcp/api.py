"""
GitBridge MCP gateway – FastAPI application.

MCP endpoint (for IDE / AI-assistant clients):
    GET  /mcp           - discovery JSON, or an SSE stream with
                          `Accept: text/event-stream`
    POST /mcp           - JSON-RPC 2.0 (or legacy action_id) requests
    GET  /mcp-sse       - deprecated, redirects to /mcp

Other endpoints:
    POST /analyze-repo  - LLM repository analysis (JSON-RPC style body)
    GET  /health
"""
import asyncio
import json
import logging
import os
import platform
import time
from datetime import datetime, timezone
from functools import lru_cache

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse, RedirectResponse, Response

from . import analyzer
from .config import settings
from .dispatcher import Dispatcher
from .errors import ErrorCodes, ParseError
from .invoker import default_invoker
from .jsonrpc import encode_error, encode_exception, encode_success
from .sse import SseSession, sse_response, wants_event_stream
from .tools import default_registry

logger = logging.getLogger(__name__)

_STARTED_AT = time.time()


@lru_cache()
def get_dispatcher() -> Dispatcher:
    """Process-wide dispatcher over the default registry and collaborators."""
    return Dispatcher(default_registry(), default_invoker(), settings)


# ---------------------------------------------------------------------------
# FastAPI App
# ---------------------------------------------------------------------------
app = FastAPI(
    title=settings.server_name,
    description="MCP gateway exposing GitHub repository data and LLM analysis",
    version=settings.server_version,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Accept", "User-Agent", "Origin", "Authorization"],
    expose_headers=["Content-Type", "Content-Length"],
)


# ---------------------------------------------------------------------------
# MCP endpoint
# ---------------------------------------------------------------------------
@app.get("/mcp")
async def mcp_discover(request: Request, dispatcher: Dispatcher = Depends(get_dispatcher)) -> Response:
    """Discovery over plain GET, or an SSE session for streaming clients."""
    if wants_event_stream(request.headers.get("accept")):
        session = SseSession(
            catalog=dispatcher.discovery,
            server_info=dispatcher.server_info,
            protocol_version=settings.protocol_version,
            catalog_delay=settings.sse_catalog_delay,
            keepalive_interval=settings.sse_keepalive_interval,
            is_disconnected=request.is_disconnected,
        )
        client = request.client.host if request.client else "unknown"
        logger.info(f"SSE session {session.session_id[:8]} opened for {client}")
        return sse_response(session)
    return JSONResponse(dispatcher.discovery())


@app.post("/mcp")
async def mcp_call(request: Request, dispatcher: Dispatcher = Depends(get_dispatcher)) -> JSONResponse:
    """Handle one JSON-RPC request; malformed JSON is the only HTTP-level error."""
    raw = await request.body()
    try:
        body = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        logger.warning(f"Malformed JSON body: {exc}")
        error = ParseError(data=str(exc))
        return JSONResponse(encode_exception(None, error), status_code=400)

    return JSONResponse(await dispatcher.dispatch(body))


@app.get("/mcp-sse")
def mcp_sse_redirect() -> RedirectResponse:
    """Deprecated: use /mcp with `Accept: text/event-stream` instead."""
    return RedirectResponse(url="/mcp", status_code=307)


# ---------------------------------------------------------------------------
# LLM analysis
# ---------------------------------------------------------------------------
@app.post("/analyze-repo")
async def analyze_repo(request: Request) -> JSONResponse:
    """
    Analyze a repository and summarize its recent open issues.

    The reply is always a JSON-RPC envelope; on success ``result`` is
    ``{repositoryAnalysis, issuesAnalysis}``.
    """
    raw = await request.body()
    try:
        body = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        logger.warning(f"Malformed analyze-repo body: {exc}")
        return JSONResponse(encode_exception(None, ParseError(data=str(exc))), status_code=400)

    if not isinstance(body, dict):
        body = {}
    request_id = body.get("id", "analyze_1")
    params = body.get("params")
    if params is None:
        params = {}
    if not isinstance(params, dict):
        return JSONResponse(encode_error(request_id, ErrorCodes.INVALID_PARAMS, "Invalid params: expected an object"))

    owner, repo, prompt = params.get("owner"), params.get("repo"), params.get("prompt")
    if not owner or not repo:
        return JSONResponse(encode_error(
            request_id,
            ErrorCodes.INVALID_PARAMS,
            "Missing required parameters: owner and repo",
        ))

    try:
        report = await asyncio.to_thread(analyzer.analyze_repository_report, owner, repo, prompt)
    except Exception as exc:
        logger.exception(f"Error analyzing {owner}/{repo}")
        return JSONResponse(encode_error(
            request_id,
            ErrorCodes.INTERNAL_ERROR,
            str(exc) or "Analysis failed",
        ))

    return JSONResponse(encode_success(request_id, report))


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@app.get("/health")
def health() -> JSONResponse:
    return JSONResponse(
        {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": int(time.time() - _STARTED_AT),
            "server": {
                "name": settings.server_name,
                "version": settings.server_version,
                "python": platform.python_version(),
                "platform": f"{platform.system()} ({platform.machine()})",
                "pid": os.getpid(),
            },
            "github_configured": bool(settings.github_token),
            "llm_configured": bool(settings.groq_api_key),
            "tools": list(default_registry().names()),
            "endpoints": {"mcp": "/mcp", "analyze": "/analyze-repo"},
        },
        headers={"X-Health-Check": "passed"},
    )
