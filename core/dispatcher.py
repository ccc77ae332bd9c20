# =============================================================================
# core/dispatcher.py  —  Request Dispatcher (tool call → response envelope)
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Receives (operation name, raw argument object), and:
#     1. resolves the OperationDescriptor          (unknown → error envelope)
#     2. validates the arguments against it        (invalid → error envelope)
#     3. builds the gcloud command                 (core/commands.py)
#     4. runs it and parses the output             (core/gcloud.py)
#     5. wraps the result in a ResponseEnvelope
#
# THE ONE RULE:
#   call() always returns.  Every failure, expected or not, becomes an
#   error-tagged envelope.  The MCP layer never sees an exception from here.
#
# STATE:
#   The Dispatcher holds the immutable operation table, the runner, and the
#   clock.  Nothing changes between calls, so concurrent calls are safe.
# =============================================================================

from functools import partial
import json
import logging
from typing import Any, Mapping, Optional

from core.commands import BUILDERS, Builder, Clock, build_list_assets, utc_now
from core.gcloud import GcloudRunner
from core.models import (
    CommandResult,
    FailureKind,
    OperationDescriptor,
    ResponseEnvelope,
)
from core.operations import OPERATIONS, input_schema, validate_arguments

logger = logging.getLogger(__name__)


class Dispatcher:
    """Composition root for tool calls: descriptor table + runner."""

    def __init__(
        self,
        runner: Optional[GcloudRunner] = None,
        operations: Optional[Mapping[str, OperationDescriptor]] = None,
        clock: Clock = utc_now,
    ):
        self.runner = runner or GcloudRunner()
        self.operations = dict(operations if operations is not None else OPERATIONS)
        self.clock = clock
        # Only list_assets reads the clock (for --snapshot-time)
        self.builders: dict[str, Builder] = {
            **BUILDERS,
            "list_assets": partial(build_list_assets, clock=clock),
        }

    def describe_operations(self) -> list[dict[str, Any]]:
        """Name, description and JSON input schema of every operation."""
        return [
            {
                "name": op.name,
                "description": op.description,
                "inputSchema": input_schema(op),
            }
            for op in self.operations.values()
        ]

    async def execute(self, name: str, arguments: Optional[Mapping[str, Any]]) -> CommandResult:
        """Validate, build and run one operation, returning the raw result."""
        operation = self.operations.get(name)
        builder = self.builders.get(name)
        if operation is None or builder is None:
            return CommandResult.failure(
                name, FailureKind.UNKNOWN_OPERATION, f"Unknown tool: {name}"
            )

        bundle, issues = validate_arguments(operation, arguments)
        if issues:
            details = json.dumps(issues)
            return CommandResult.failure(
                name, FailureKind.VALIDATION, f"Invalid arguments for {name}: {details}"
            )

        command = builder(bundle, gcloud=self.runner.gcloud)
        logger.debug("Running %s", command.render())
        return await self.runner.run(command)

    async def call(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> ResponseEnvelope:
        """Run one tool call and always return an envelope."""
        try:
            result = await self.execute(name, arguments)
        except Exception as exc:  # boundary: nothing escapes a tool call
            logger.exception("Unexpected failure in %s", name)
            return ResponseEnvelope.error(f"Unexpected failure in {name}: {exc}")

        if not result.ok:
            return ResponseEnvelope.error(result.message)
        if result.is_text:
            return ResponseEnvelope(result.payload)
        return ResponseEnvelope(json.dumps(result.payload, indent=2))
