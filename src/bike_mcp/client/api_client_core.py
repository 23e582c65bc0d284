"""Bike client - core plumbing: logging, preconditions, execution, result mapping."""

import sys
from datetime import datetime
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import BaseModel, ValidationError

from ..models import (
    CommandResult,
    EmptyResultError,
    ExecutionFailureError,
    ExecutorConfig,
    HostUnreachableError,
    InvalidArgumentError,
    NoOpenDocumentError,
    summarize_validation_error,
)
from .scripts import BikeScripts

if TYPE_CHECKING:
    from .executor import ScriptExecutor

InputT = TypeVar("InputT", bound=BaseModel)


def log_event(message: str, component: str = "CLIENT") -> None:
    """Write one timestamped, component-tagged line to stderr."""
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    print(f"[{timestamp}] 🚲 [{component}] {message}", file=sys.stderr, flush=True)


def _log(message: str, component: str = "CLIENT") -> None:
    """Entry point for Bike client and osascript runner messages.

    stdout carries the MCP stdio stream, so payload activity (probes,
    osascript runs and their failures) goes to stderr, where the MCP host
    shows it verbatim next to the server's own ``logging`` output.
    """
    log_event(message, component)


class _ClientLogger:
    """Per-component logger used by BikeClient ("CLIENT") and the runner ("OSASCRIPT").

    Offers the ``logging.Logger`` method names this package calls. Every
    level except info prefixes its tag to the message.
    """

    _TAGS = {"info": "", "debug": "DEBUG: ", "warning": "WARNING: ", "error": "ERROR: "}

    def __init__(self, component: str = "CLIENT") -> None:
        self._component = component

    def _emit(self, level: str, msg: object) -> None:
        _log(f"{self._TAGS[level]}{msg}", self._component)

    def info(self, msg: object) -> None:
        self._emit("info", msg)

    def debug(self, msg: object) -> None:
        self._emit("debug", msg)

    def warning(self, msg: object) -> None:
        self._emit("warning", msg)

    def error(self, msg: object) -> None:
        self._emit("error", msg)


class BikeClientCore:
    """Core Bike client - precondition checks, execution and error mapping."""

    def __init__(self, config: ExecutorConfig | None = None, executor: "ScriptExecutor | None" = None):
        """Initialize the client.

        Args:
            config: osascript settings (timeout, output cap, app name)
            executor: async callable ``script -> CommandResult``; defaults to
                running osascript with ``config``
        """
        # Import here to avoid circular dependency
        from .executor import make_executor

        self.config = config or ExecutorConfig()
        self.scripts = BikeScripts(self.config.app_name)
        self._execute = executor or make_executor(self.config)
        self.logger = _ClientLogger()

    @staticmethod
    def _parse_input(model: type[InputT], **kwargs: Any) -> InputT:
        """Validate operation arguments, reporting failures as InvalidArgumentError."""
        try:
            return model(**kwargs)
        except ValidationError as err:
            raise InvalidArgumentError(summarize_validation_error(err)) from err

    async def _run(self, script: str) -> CommandResult:
        self.logger.debug(f"Running script ({len(script)} chars)")
        return await self._execute(script)

    async def _probe(self, script: str) -> bool:
        result = await self._run(script)
        return result.success and result.text == "true"

    async def is_running(self) -> bool:
        """True when the host application process exists."""
        return await self._probe(self.scripts.is_running())

    async def has_open_document(self) -> bool:
        return await self._probe(self.scripts.has_open_document())

    async def _ensure_running(self) -> None:
        if not await self.is_running():
            raise HostUnreachableError()

    async def _ensure_document(self) -> None:
        await self._ensure_running()
        if not await self.has_open_document():
            raise NoOpenDocumentError()

    async def _execute_text(self, script: str, action: str) -> str:
        """Run a payload once and return its text output.

        Raises:
            ExecutionFailureError: osascript failed; message carries the raw error
            EmptyResultError: osascript succeeded with no output
        """
        result = await self._run(script)
        if not result.success:
            self.logger.error(f"Failed to {action}: {result.error}")
            raise ExecutionFailureError(f"Failed to {action}: {result.error}")

        text = result.text
        if not text:
            self.logger.warning(f"{action}: no data returned")
            raise EmptyResultError()
        return text
