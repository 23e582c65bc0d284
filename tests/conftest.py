"""Shared fixtures: a fake osascript executor."""

from __future__ import annotations

import pytest

from bike_mcp.client import BikeClient
from bike_mcp.models import CommandResult, TextOutput


def ok(text: str) -> CommandResult:
    return CommandResult(success=True, data=TextOutput(text=text))


def fail(message: str) -> CommandResult:
    return CommandResult(success=False, error=message)


class FakeExecutor:
    """Stands in for osascript.

    Answers the running/open-document probes from flags and hands out queued
    responses for every other payload. Payloads are recorded in ``scripts``.
    """

    def __init__(self, responses=None, running: bool = True, document: bool = True) -> None:
        self.running = running
        self.document = document
        self.responses = list(responses or [])
        self.calls: list[str] = []
        self.scripts: list[str] = []

    async def __call__(self, script: str) -> CommandResult:
        self.calls.append(script)
        if 'tell application "System Events"' in script:
            return ok("true" if self.running else "false")
        if "(count of documents) > 0" in script:
            return ok("true" if self.document else "false")

        self.scripts.append(script)
        if self.responses:
            response = self.responses.pop(0)
            return response if isinstance(response, CommandResult) else ok(response)
        return ok("ok")


@pytest.fixture
def fake() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def client(fake: FakeExecutor) -> BikeClient:
    return BikeClient(executor=fake)
