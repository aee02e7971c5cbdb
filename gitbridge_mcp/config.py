"""Configuration for the GitBridge MCP gateway."""
import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Load .env from project root (one level above gitbridge_mcp/)
# Uses Path(__file__) so it works regardless of cwd.
# ---------------------------------------------------------------------------
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"

if _ENV_FILE.exists():
    load_dotenv(_ENV_FILE, override=False)


class GatewaySettings(BaseSettings):
    """Settings for the MCP gateway."""

    # GitHub upstream
    github_token: str = Field(default="", description="Bearer token sent to the GitHub API")
    github_api_base: str = Field(default="https://api.github.com")
    github_timeout: float = Field(default=30.0)

    # LLM (Groq)
    groq_api_key: str = Field(default="")
    groq_model: str = Field(default="llama-3.1-8b-instant")

    # Protocol metadata
    server_name: str = Field(default="GitHub MCP Server")
    server_version: str = Field(default="1.0.0")
    protocol_version: str = Field(default="2024-11-05")

    # HTTP server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=10001)

    # SSE session timing
    sse_catalog_delay: float = Field(
        default=1.0,
        description="Seconds between the ready frame and the tool catalog frame",
    )
    sse_keepalive_interval: float = Field(
        default=30.0,
        description="Seconds between keep-alive ping frames",
    )

    log_level: str = Field(default="INFO")
    log_file: Optional[str] = Field(default=None)

    class Config:
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


@lru_cache()
def get_settings() -> GatewaySettings:
    """Return a cached settings instance."""
    return GatewaySettings()


settings = get_settings()
