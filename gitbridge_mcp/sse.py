"""
SSE Session Manager – one long-lived event stream per connection.

Lifecycle::

    HANDSHAKE ──open()──▶ STREAMING ──close()──▶ CLOSED

Frame order on every session: one ``status`` frame (ready), then one ``tools``
frame after ``catalog_delay`` seconds, then a ``ping`` frame every
``keepalive_interval`` seconds until the client goes away.
"""
import asyncio
import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional

from starlette.responses import StreamingResponse

from .jsonrpc import format_sse_frame
from .logger import SessionLogAdapter

logger = logging.getLogger(__name__)

EVENT_STREAM = "text/event-stream"

FRAME_STATUS = "status"
FRAME_TOOLS = "tools"
FRAME_PING = "ping"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class SessionState(str, Enum):
    HANDSHAKE = "handshake"
    STREAMING = "streaming"
    CLOSED = "closed"


def wants_event_stream(accept: Optional[str]) -> bool:
    """True when an ``Accept`` header asks for a server-sent event stream."""
    return bool(accept) and EVENT_STREAM in accept.lower()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SseSession:
    """
    Per-connection stream state.

    Holds the outbound frame queue, the single timer task that schedules the
    catalog push and keep-alive pings, and the per-session flags. Nothing is
    shared between sessions.
    """

    def __init__(
        self,
        catalog: Callable[[], Dict[str, Any]],
        server_info: Dict[str, Any],
        protocol_version: str,
        catalog_delay: float = 1.0,
        keepalive_interval: float = 30.0,
        is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
    ):
        self.session_id = uuid.uuid4().hex
        self.state = SessionState.HANDSHAKE
        self.catalog_sent = False
        self.first_ping_logged = False
        self.ping_count = 0

        self._catalog = catalog
        self._server_info = dict(server_info)
        self._protocol_version = protocol_version
        self._catalog_delay = catalog_delay
        self._keepalive_interval = keepalive_interval
        self._is_disconnected = is_disconnected
        self._queue: "asyncio.Queue[Optional[str]]" = asyncio.Queue()
        self._timer: Optional[asyncio.Task] = None
        self.log = SessionLogAdapter(logger, self.session_id)

    @property
    def closed(self) -> bool:
        return self.state is SessionState.CLOSED

    # ── State transitions ────────────────────────────────────────────────

    def open(self) -> None:
        """Send the ready frame and start the catalog/keep-alive timer."""
        if self.state is not SessionState.HANDSHAKE:
            return
        self._emit(FRAME_STATUS, {
            "status": "ready",
            "sessionId": self.session_id,
            "protocolVersion": self._protocol_version,
            "serverInfo": self._server_info,
            "timestamp": _now(),
        })
        self.state = SessionState.STREAMING
        self._timer = asyncio.get_running_loop().create_task(self._run_timer())
        self.log.info("streaming")

    def close(self, reason: str = "close") -> None:
        """Cancel the timer and drop unsent frames. Safe to call repeatedly."""
        if self.closed:
            return
        self.state = SessionState.CLOSED
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(None)
        self.log.info(f"closed ({reason}) after {self.ping_count} pings")

    # ── Frames ───────────────────────────────────────────────────────────

    def _emit(self, method: str, params: Dict[str, Any]) -> bool:
        if self.closed:
            return False
        self._queue.put_nowait(format_sse_frame(method, params))
        return True

    async def _run_timer(self) -> None:
        """Timer task body; a failure closes the session instead of stalling it."""
        try:
            await self._schedule()
        except asyncio.CancelledError:
            raise
        except Exception:
            self.log.exception("catalog/keep-alive timer failed")
            self.close("error")

    async def _schedule(self) -> None:
        await asyncio.sleep(self._catalog_delay)
        if self._emit(FRAME_TOOLS, self._catalog()):
            self.catalog_sent = True
            self.log.info("sent tool catalog")

        while not self.closed:
            await asyncio.sleep(self._keepalive_interval)
            self.ping_count += 1
            if not self._emit(FRAME_PING, {"timestamp": _now(), "count": self.ping_count}):
                break
            if not self.first_ping_logged:
                self.log.info("keep-alive running")
                self.first_ping_logged = True
            else:
                self.log.debug(f"ping #{self.ping_count}")

    async def frames(self) -> AsyncIterator[str]:
        """
        Yield encoded frames until the session closes.

        A disconnect is noticed either by cancellation of this iterator or by
        the ``is_disconnected`` probe before each write. The ``finally`` block
        makes disconnect, normal end and errors all release the timer the
        same way.
        """
        self.open()
        reason = "end"
        try:
            while True:
                frame = await self._queue.get()
                if frame is None:
                    break
                if self._is_disconnected is not None and await self._is_disconnected():
                    reason = "disconnect"
                    break
                yield frame
        except (asyncio.CancelledError, GeneratorExit):
            reason = "disconnect"
            raise
        except Exception:
            reason = "error"
            raise
        finally:
            self.close(reason)


def sse_response(session: SseSession) -> StreamingResponse:
    """Wrap a session in a streaming ``text/event-stream`` response."""
    return StreamingResponse(
        session.frames(),
        media_type=EVENT_STREAM,
        headers=dict(SSE_HEADERS),
    )
