"""Entry-point for the GitBridge MCP gateway."""
import argparse
import logging

import uvicorn

from .config import settings
from .logger import setup_logging


def main():
    parser = argparse.ArgumentParser(description="GitBridge MCP gateway")
    parser.add_argument("--host", default=settings.host, help="Bind address")
    parser.add_argument("--port", type=int, default=settings.port, help="Bind port")
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
    )
    parser.add_argument("--log-file", default=settings.log_file, help="Optional log file path")
    args = parser.parse_args()

    setup_logging(level=args.log_level, log_file=args.log_file)

    from .api import app

    logging.info("Starting GitBridge MCP gateway on %s:%s", args.host, args.port)
    logging.info("Configure MCP clients with: http://%s:%s/mcp", args.host, args.port)
    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
        log_config=None,
    )


if __name__ == "__main__":
    main()
