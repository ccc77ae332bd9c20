from __future__ import annotations

from datetime import datetime, timezone
from typing import Sequence

import pytest

from core.dispatcher import Dispatcher
from core.gcloud import GcloudRunner
from core.models import ExecutionResult

FIXED_NOW = datetime(2024, 5, 1, 12, 30, 0, 123456, tzinfo=timezone.utc)


class FakeRunner(GcloudRunner):
    """GcloudRunner whose child processes are scripted.

    Responses are keyed by argv prefixes after the program name, e.g.
    ("asset", "list").  The longest matching prefix wins.  A response may be
    an ExecutionResult or an exception instance to raise.
    """

    def __init__(self) -> None:
        super().__init__(gcloud="gcloud")
        self.calls: list[tuple[str, ...]] = []
        self.responses: dict[tuple[str, ...], ExecutionResult | BaseException] = {
            ("--version",): ExecutionResult(0, "Google Cloud SDK 470.0.0\n"),
            ("auth", "list"): ExecutionResult(0, '[{"account": "dev@example.com", "status": "ACTIVE"}]'),
            ("config", "get-value", "project"): ExecutionResult(0, "my-project\n"),
        }
        self.default = ExecutionResult(0, "[]")

    def respond(self, prefix: Sequence[str], response: ExecutionResult | BaseException) -> None:
        self.responses[tuple(prefix)] = response

    async def execute(self, argv: Sequence[str]) -> ExecutionResult:
        argv = tuple(argv)
        self.calls.append(argv)
        args = argv[1:]
        best: tuple[str, ...] | None = None
        for prefix in self.responses:
            if args[: len(prefix)] == prefix and (best is None or len(prefix) > len(best)):
                best = prefix
        response = self.responses[best] if best is not None else self.default
        if isinstance(response, BaseException):
            raise response
        return response


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def dispatcher(fake_runner: FakeRunner) -> Dispatcher:
    return Dispatcher(fake_runner, clock=lambda: FIXED_NOW)
