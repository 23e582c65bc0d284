"""osascript runner: script text in, CommandResult out."""

import asyncio
import json
from collections.abc import Awaitable, Callable

from ..models import CommandResult, ExecutorConfig, StructuredOutput, TextOutput
from .api_client_core import _ClientLogger

ScriptExecutor = Callable[[str], Awaitable[CommandResult]]

READ_CHUNK = 64 * 1024


class OutputLimitExceeded(Exception):
    """A pipe delivered more than the configured number of bytes."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Script output exceeded {limit} bytes")


def parse_output(raw: str) -> CommandResult:
    """Turn osascript stdout into a successful CommandResult.

    Output that starts with ``{`` or ``[`` is tried as JSON; anything that
    fails to parse, and everything else, comes back as trimmed text.
    """
    trimmed = raw.strip()
    if trimmed.startswith(("{", "[")):
        try:
            value = json.loads(trimmed)
        except json.JSONDecodeError:
            pass
        else:
            return CommandResult(success=True, data=StructuredOutput(value=value, text=trimmed))
    return CommandResult(success=True, data=TextOutput(text=trimmed))


async def _read_capped(stream: asyncio.StreamReader, limit: int) -> bytes:
    """Read a pipe to EOF, raising OutputLimitExceeded once it passes limit."""
    received = bytearray()
    while True:
        chunk = await stream.read(READ_CHUNK)
        if not chunk:
            return bytes(received)
        received.extend(chunk)
        if len(received) > limit:
            raise OutputLimitExceeded(limit)


async def _feed(stdin: asyncio.StreamWriter, data: bytes) -> None:
    try:
        stdin.write(data)
        await stdin.drain()
    except (BrokenPipeError, ConnectionResetError):
        # The child exited without reading its input; its exit status says why
        pass
    finally:
        stdin.close()


async def _exchange(proc: asyncio.subprocess.Process, script: str, limit: int) -> tuple[bytes, bytes]:
    """Feed the script and drain both pipes concurrently, then reap the child."""
    _, stdout, stderr = await asyncio.gather(
        _feed(proc.stdin, script.encode("utf-8")),
        _read_capped(proc.stdout, limit),
        _read_capped(proc.stderr, limit),
    )
    await proc.wait()
    return stdout, stderr


async def _terminate(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
    await proc.wait()


async def run_applescript(script: str, config: ExecutorConfig | None = None) -> CommandResult:
    """Run one AppleScript payload through osascript.

    The script is fed on stdin, so no shell quoting is involved. stdout and
    stderr are read incrementally under a single deadline; the child is
    killed as soon as either the deadline passes or a pipe exceeds
    ``max_output_bytes``. Never raises: non-zero exit, timeout, oversized
    output and a missing osascript all come back as
    ``CommandResult(success=False, error=...)``.
    """
    config = config or ExecutorConfig()
    logger = _ClientLogger("OSASCRIPT")

    try:
        proc = await asyncio.create_subprocess_exec(
            config.osascript_path,
            "-",
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        logger.error(f"Could not start {config.osascript_path}: {e}")
        return CommandResult(success=False, error=f"Could not start {config.osascript_path}: {e}")

    try:
        stdout, stderr = await asyncio.wait_for(
            _exchange(proc, script, config.max_output_bytes), timeout=config.timeout
        )
    except asyncio.TimeoutError:
        await _terminate(proc)
        logger.warning(f"osascript timed out after {config.timeout:g}s")
        return CommandResult(success=False, error=f"Script timed out after {config.timeout:g} seconds")
    except OutputLimitExceeded as e:
        await _terminate(proc)
        logger.warning(f"osascript killed: {e}")
        return CommandResult(success=False, error=str(e))

    if proc.returncode != 0:
        message = stderr.decode("utf-8", errors="replace").strip()
        if not message:
            message = f"osascript exited with status {proc.returncode}"
        logger.warning(f"osascript failed ({proc.returncode}): {message}")
        return CommandResult(success=False, error=message)

    return parse_output(stdout.decode("utf-8", errors="replace"))


def make_executor(config: ExecutorConfig) -> ScriptExecutor:
    """Bind a config into a single-argument executor."""

    async def execute(script: str) -> CommandResult:
        return await run_applescript(script, config)

    return execute
