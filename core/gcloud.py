# =============================================================================
# core/gcloud.py  —  Executor (run one gcloud command, parse its output)
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Runs an ExternalCommand as a child process and turns what it printed into
#   a CommandResult.  Also hosts the two startup probes (is gcloud installed?
#   is anyone logged in?) and the active-project lookup used at startup.
#
# EXECUTION RULES:
#   - One child process per call, awaited once.  No retries.
#   - stdout and stderr are read to completion into memory.
#   - stderr on a successful run is a WARNING, not a failure.  gcloud prints
#     update notices and "Listed 0 items." there all the time.
#   - Non-zero exit or failure to spawn → EXECUTION failure.
#   - JSON expected but not parseable → PARSE failure (same message shape).
#
# TIMEOUTS:
#   None by default: a hung gcloud hangs the call.  Set
#   GCP_ASSET_COMMAND_TIMEOUT to bound it (see core/config.py).
# =============================================================================

import asyncio
import json
import logging
from typing import Any, Optional, Sequence

from core.commands import ACTIONS, DEFAULT_GCLOUD
from core.models import (
    JSON_OUTPUT,
    CommandResult,
    ExecutionResult,
    ExternalCommand,
    FailureKind,
)

logger = logging.getLogger(__name__)

# What `gcloud config get-value project` prints when no project is configured
UNSET_PROJECT = "(unset)"


def failure_message(operation: str, cause: str) -> str:
    """Build "Failed to list assets (list_assets): <cause>"."""
    action = ACTIONS.get(operation, operation.replace("_", " "))
    return f"Failed to {action} ({operation}): {cause}"


def parse_json_output(stdout: str) -> Any:
    """Parse gcloud --format=json output.

    gcloud prints nothing at all for some empty listings, so blank output is
    an empty list rather than a parse error.
    """
    if not stdout.strip():
        return []
    return json.loads(stdout)


class GcloudRunner:
    """Spawns gcloud commands and interprets their results."""

    def __init__(self, gcloud: str = DEFAULT_GCLOUD, timeout: Optional[float] = None):
        self.gcloud = gcloud
        self.timeout = timeout

    async def execute(self, argv: Sequence[str]) -> ExecutionResult:
        """Run argv to completion and capture both streams.

        Raises:
            OSError: the program could not be started.
            asyncio.TimeoutError: the timeout expired (the child is killed).
        """
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), self.timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise
        return ExecutionResult(
            returncode=process.returncode,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )

    async def run(self, command: ExternalCommand) -> CommandResult:
        """Execute one command and parse its output.  Never raises."""
        operation = command.operation
        try:
            result = await self.execute(command.argv)
        except asyncio.TimeoutError:
            return self._failed(
                operation,
                FailureKind.EXECUTION,
                f"Command timed out after {self.timeout:g} seconds: {command.render()}",
            )
        except OSError as exc:
            return self._failed(
                operation,
                FailureKind.EXECUTION,
                f"Could not start {command.argv[0]}: {exc}",
            )

        if not result.ok:
            cause = f"Command failed with exit status {result.returncode}: {command.render()}"
            detail = (result.stderr or result.stdout).strip()
            if detail:
                cause = f"{cause}\n{detail}"
            return self._failed(operation, FailureKind.EXECUTION, cause)

        if result.stderr.strip():
            logger.warning("Warning: %s", result.stderr.strip())

        if command.output != JSON_OUTPUT:
            return CommandResult.success(operation, result.stdout.strip(), is_text=True)

        try:
            payload = parse_json_output(result.stdout)
        except json.JSONDecodeError as exc:
            return self._failed(
                operation,
                FailureKind.PARSE,
                f"gcloud output is not valid JSON: {exc}",
            )
        return CommandResult.success(operation, payload)

    def _failed(self, operation: str, kind: FailureKind, cause: str) -> CommandResult:
        message = failure_message(operation, cause)
        logger.error("Error executing gcloud command: %s", message)
        return CommandResult.failure(operation, kind, message)

    # =========================================================================
    # Startup probes
    # =========================================================================

    async def _probe(self, *args: str) -> Optional[ExecutionResult]:
        try:
            return await self.execute((self.gcloud, *args))
        except (OSError, asyncio.TimeoutError):
            return None

    async def check_installed(self) -> bool:
        """True if `gcloud --version` runs and exits 0."""
        result = await self._probe("--version")
        return result is not None and result.ok

    async def check_authenticated(self) -> bool:
        """True if `gcloud auth list` reports at least one credentialed account."""
        result = await self._probe("auth", "list", "--format=json")
        if result is None or not result.ok:
            return False
        try:
            accounts = parse_json_output(result.stdout)
        except json.JSONDecodeError:
            return False
        return isinstance(accounts, list) and len(accounts) > 0

    async def current_project(self) -> Optional[str]:
        """The active gcloud project, or None if unset or unreadable."""
        result = await self._probe("config", "get-value", "project")
        if result is None or not result.ok:
            return None
        project = result.stdout.strip()
        if not project or project == UNSET_PROJECT:
            return None
        return project
