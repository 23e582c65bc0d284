"""Tests for the osascript runner.

The runner is pointed at the Python interpreter instead of osascript: both
read a program from stdin when given ``-``.
"""

from __future__ import annotations

import asyncio
import sys

from bike_mcp.client.executor import make_executor, parse_output, run_applescript
from bike_mcp.models import ExecutorConfig, StructuredOutput, TextOutput


def python_config(**overrides) -> ExecutorConfig:
    return ExecutorConfig(osascript_path=sys.executable, **overrides)


def test_parse_json_object() -> None:
    result = parse_output('  {"a": 1, "b": [true, null]}\n')
    assert result.success
    assert isinstance(result.data, StructuredOutput)
    assert result.data.value == {"a": 1, "b": [True, None]}


def test_parse_json_list() -> None:
    result = parse_output("[1, 2, 3]")
    assert isinstance(result.data, StructuredOutput)
    assert result.data.value == [1, 2, 3]
    assert result.text == "[1, 2, 3]"


def test_parse_keeps_printed_json_text() -> None:
    result = parse_output("[1,2]\n")
    assert isinstance(result.data, StructuredOutput)
    assert result.data.value == [1, 2]
    assert result.text == "[1,2]"


def test_parse_broken_json_falls_back_to_text() -> None:
    result = parse_output("{theName:heading}\n")
    assert result.success
    assert isinstance(result.data, TextOutput)
    assert result.text == "{theName:heading}"


def test_parse_plain_text_is_trimmed() -> None:
    result = parse_output("\n  Created 2 row(s)\n")
    assert isinstance(result.data, TextOutput)
    assert result.text == "Created 2 row(s)"


def test_run_returns_stdout() -> None:
    result = asyncio.run(run_applescript('print("Deleted 2 row(s)")', python_config()))
    assert result.success
    assert result.text == "Deleted 2 row(s)"


def test_run_parses_json_stdout() -> None:
    script = 'import json; print(json.dumps({"rows": ["a", "b"]}))'
    result = asyncio.run(run_applescript(script, python_config()))
    assert result.success
    assert isinstance(result.data, StructuredOutput)
    assert result.data.value == {"rows": ["a", "b"]}


def test_run_passes_script_verbatim_on_stdin() -> None:
    # Quotes, backslashes and shell metacharacters must arrive untouched
    script = 'print("a \\\\ \\"b\\" $HOME `id` ;")'
    result = asyncio.run(run_applescript(script, python_config()))
    assert result.text == 'a \\ "b" $HOME `id` ;'


def test_run_nonzero_exit_reports_stderr() -> None:
    script = 'import sys; sys.stderr.write("execution error: Can\'t get row id \\"x\\". (-1728)\\n"); sys.exit(1)'
    result = asyncio.run(run_applescript(script, python_config()))
    assert not result.success
    assert result.error == 'execution error: Can\'t get row id "x". (-1728)'


def test_run_nonzero_exit_without_stderr() -> None:
    result = asyncio.run(run_applescript("import sys; sys.exit(3)", python_config()))
    assert not result.success
    assert result.error == "osascript exited with status 3"


def test_run_times_out() -> None:
    result = asyncio.run(run_applescript("import time; time.sleep(10)", python_config(timeout=0.5)))
    assert not result.success
    assert "timed out" in result.error


def test_run_rejects_oversized_output() -> None:
    result = asyncio.run(run_applescript('print("x" * 5000)', python_config(max_output_bytes=1000)))
    assert not result.success
    assert "exceeded 1000 bytes" in result.error


def test_run_missing_binary() -> None:
    config = ExecutorConfig(osascript_path="/nonexistent/osascript")
    result = asyncio.run(run_applescript("return 1", config))
    assert not result.success
    assert "Could not start /nonexistent/osascript" in result.error


def test_make_executor_binds_config() -> None:
    execute = make_executor(python_config())
    result = asyncio.run(execute("print(6 * 7)"))
    assert result.text == "42"


def test_run_stops_an_endless_writer_at_the_output_cap() -> None:
    script = 'import sys\nwhile True:\n    sys.stdout.write("x" * 100000)\n'
    config = python_config(timeout=20, max_output_bytes=1000)

    async def timed() -> tuple[float, object]:
        loop = asyncio.get_running_loop()
        started = loop.time()
        result = await run_applescript(script, config)
        return loop.time() - started, result

    elapsed, result = asyncio.run(timed())
    assert not result.success
    assert "exceeded 1000 bytes" in result.error
    assert elapsed < 10


def test_run_caps_output_before_the_script_finishes() -> None:
    script = 'import sys, time\nsys.stdout.write("x" * 400000)\nsys.stdout.flush()\ntime.sleep(10)\n'
    result = asyncio.run(run_applescript(script, python_config(timeout=5, max_output_bytes=1000)))
    assert not result.success
    assert "exceeded" in result.error


def test_run_caps_stderr_too() -> None:
    script = 'import sys\nwhile True:\n    sys.stderr.write("e" * 100000)\n'
    result = asyncio.run(run_applescript(script, python_config(timeout=20, max_output_bytes=1000)))
    assert not result.success
    assert "exceeded 1000 bytes" in result.error


def test_run_deadline_holds_for_a_steady_writer() -> None:
    script = 'import time\nwhile True:\n    print("tick", flush=True)\n    time.sleep(0.01)\n'
    result = asyncio.run(run_applescript(script, python_config(timeout=0.5)))
    assert not result.success
    assert "timed out" in result.error
