"""Server configuration and logging setup."""

import logging
import sys
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import ExecutorConfig


class ServerConfig(BaseSettings):
    """Bike MCP server settings.

    All fields are environment-configurable with the ``BIKE_MCP_`` prefix,
    e.g. ``BIKE_MCP_SCRIPT_TIMEOUT=60``.
    """

    model_config = SettingsConfigDict(
        env_prefix="BIKE_MCP_",
        env_file=None,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = Field(default="Bike")
    osascript_path: str = Field(default="osascript")
    script_timeout: float = Field(default=30.0, gt=0, le=600)
    max_output_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    default_encoding: Literal["markup", "records"] = Field(default="markup")
    log_level: str = Field(default="INFO")

    def get_executor_config(self) -> ExecutorConfig:
        """Get the osascript configuration."""
        return ExecutorConfig(
            app_name=self.app_name,
            osascript_path=self.osascript_path,
            timeout=self.script_timeout,
            max_output_bytes=self.max_output_bytes,
        )


def setup_logging(level: str = "INFO") -> None:
    """Send log records to stderr; stdout carries the MCP stdio stream."""
    root = logging.getLogger()
    root.setLevel(level.upper())

    has_console = any(
        isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) is sys.stderr
        for h in root.handlers
    )
    if not has_console:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
        root.addHandler(handler)
