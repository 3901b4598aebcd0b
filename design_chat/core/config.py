import logging
import shlex
from pathlib import Path
from typing import List, Optional

from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


# Tools the Claude CLI may use during a design conversation
DESIGN_CHAT_TOOLS: List[str] = [
    "Read",
    "Glob",
    "Grep",
    "Edit",
    "Write",
    "WebSearch",
    "WebFetch",
    "LSP",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Service configuration
    SERVICE_NAME: str = "design-chat"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # MongoDB configuration
    MONGODB_URI: str = "mongodb://localhost:27017/design_chat"
    MONGODB_DB: Optional[str] = None  # Falls back to the database in MONGODB_URI

    # Claude CLI
    # The launcher is split with shlex, so it may carry its own arguments
    CLAUDE_CLI_COMMAND: str = "npx -y @anthropic-ai/claude-code"
    CLAUDE_ALLOWED_TOOLS: str = ",".join(DESIGN_CHAT_TOOLS)
    CLAUDE_PERMISSION_MODE: str = "bypassPermissions"
    AGENT_WORKING_DIRECTORY: Optional[str] = None  # Defaults to the user's home

    # Timeouts (seconds)
    LINE_READ_TIMEOUT_SECONDS: float = 120.0  # Max silence between two stdout lines
    CHAT_TIMEOUT_SECONDS: float = 120.0  # Whole run, non-streaming chat only

    # Streaming
    SSE_KEEPALIVE_SECONDS: int = 15
    STREAM_READ_LIMIT: int = 16 * 1024 * 1024  # stream-json lines can be large

    def get_cli_command(self) -> List[str]:
        """Split the configured CLI launcher into argv form."""
        command = shlex.split(self.CLAUDE_CLI_COMMAND)
        if not command:
            raise ValueError("CLAUDE_CLI_COMMAND is empty")
        return command

    def get_working_directory(self) -> str:
        """Directory the CLI runs in."""
        if self.AGENT_WORKING_DIRECTORY:
            return self.AGENT_WORKING_DIRECTORY
        return str(Path.home())


settings = Settings()
