"""
Logging configuration for the MCP gateway.

Console lines read `time │ level │ icon component │ [session] message`. SSE
sessions log through :class:`SessionLogAdapter` so every line of one stream
carries the same short session tag.
"""
import logging
import sys
from datetime import datetime
from typing import Any, MutableMapping, Optional, Tuple


class Colors:
    """ANSI color codes for terminal formatting."""
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    WHITE = "\033[37m"

    BRIGHT_RED = "\033[91m"
    BRIGHT_GREEN = "\033[92m"
    BRIGHT_YELLOW = "\033[93m"
    BRIGHT_BLUE = "\033[94m"
    BRIGHT_MAGENTA = "\033[95m"
    BRIGHT_CYAN = "\033[96m"


# Keyed by component, see GatewayFormatter.component_of
COMPONENT_ICONS = {
    "api": "🌐",
    "dispatcher": "🔀",
    "invoker": "🛠️",
    "sse": "📡",
    "github_client": "🐙",
    "analyzer": "🤖",
    "uvicorn": "🦄",
    "tool": "🔧",
    "default": "▶️",
}

PACKAGE_LOGGER = "gitbridge_mcp"

# Third-party loggers that are chatty at INFO/DEBUG
NOISY_LOGGERS: Tuple[str, ...] = ("httpx", "httpcore", "groq", "uvicorn.access")

COMPONENT_WIDTH = 13


class GatewayFormatter(logging.Formatter):
    """Colored single-line formatter with component icons and session tags."""

    LEVEL_FORMATS = {
        logging.DEBUG: (Colors.DIM, "DEBUG"),
        logging.INFO: (Colors.BRIGHT_CYAN, "INFO "),
        logging.WARNING: (Colors.BRIGHT_YELLOW, "WARN "),
        logging.ERROR: (Colors.BRIGHT_RED, "ERROR"),
        logging.CRITICAL: (Colors.BOLD + Colors.BRIGHT_RED, "CRIT "),
    }

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors and sys.stdout.isatty()

    @staticmethod
    def component_of(name: str) -> str:
        """
        Short component label for a logger name.

        Package loggers use their module name (``gitbridge_mcp.sse`` -> ``sse``);
        third-party loggers use their top-level package (``uvicorn.error`` ->
        ``uvicorn``).
        """
        if not name or name == "root":
            return "root"
        if name == PACKAGE_LOGGER or name.startswith(PACKAGE_LOGGER + "."):
            return name.rsplit(".", 1)[-1]
        return name.split(".", 1)[0]

    def format(self, record: logging.LogRecord) -> str:
        color, level_text = self.LEVEL_FORMATS.get(record.levelno, (Colors.WHITE, record.levelname[:5]))
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        component = self.component_of(record.name)
        icon = COMPONENT_ICONS.get(component, COMPONENT_ICONS["default"])

        message = record.getMessage()
        session = getattr(record, "session", None)

        if self.use_colors:
            if session:
                message = f"{Colors.BRIGHT_MAGENTA}[{session}]{Colors.RESET} {message}"
            parts = (
                f"{Colors.DIM}{timestamp}{Colors.RESET}",
                f"{color}{level_text}{Colors.RESET}",
                f"{icon} {Colors.BRIGHT_BLUE}{component:{COMPONENT_WIDTH}}{Colors.RESET}",
                message,
            )
            formatted = " │ ".join(parts)
        else:
            if session:
                message = f"[{session}] {message}"
            formatted = " | ".join((timestamp, level_text, f"{icon} {component:{COMPONENT_WIDTH}}", message))

        if record.exc_info:
            formatted += "\n" + self.formatException(record.exc_info)
        return formatted


class SessionLogAdapter(logging.LoggerAdapter):
    """Attaches a short SSE session tag to every record."""

    def __init__(self, logger: logging.Logger, session_id: str):
        super().__init__(logger, {"session": session_id[:8]})

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    use_colors: bool = True
) -> None:
    """
    Configure root logging for the gateway.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to a plain-text log file
        use_colors: Whether to use ANSI colors in console output
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    handlers = [(logging.StreamHandler(sys.stdout), use_colors)]
    if log_file:
        handlers.append((logging.FileHandler(log_file, encoding="utf-8"), False))

    for handler, colored in handlers:
        handler.setLevel(numeric_level)
        handler.setFormatter(GatewayFormatter(use_colors=colored))
        root_logger.addHandler(handler)

    # Third-party request logs stay at WARNING or above
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


# ============================================================================
# Tool call logging
# ============================================================================

def log_tool_start(tool_name: str, logger: logging.Logger) -> None:
    """Log entry into a tool call."""
    icon = COMPONENT_ICONS["tool"]
    if sys.stdout.isatty():
        logger.info(f"{icon}  {Colors.BRIGHT_GREEN}▶ CALL {tool_name}{Colors.RESET}")
    else:
        logger.info(f"{icon}  ▶ CALL {tool_name}")


def log_tool_end(
    tool_name: str,
    logger: logging.Logger,
    success: bool = True,
    duration_ms: Optional[float] = None,
) -> None:
    """Log exit from a tool call with its outcome and duration."""
    icon = COMPONENT_ICONS["tool"]
    status = "✓ DONE" if success else "✗ FAILED"
    duration_str = f" ({duration_ms:.0f}ms)" if duration_ms is not None else ""

    if sys.stdout.isatty():
        color = Colors.BRIGHT_GREEN if success else Colors.BRIGHT_RED
        logger.info(f"{icon}  {color}◀ {status}: {tool_name}{duration_str}{Colors.RESET}")
    else:
        logger.info(f"{icon}  ◀ {status}: {tool_name}{duration_str}")
