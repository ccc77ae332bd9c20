# =============================================================================
# tools/mcp_server.py  —  FastMCP Tool Server (ALL tools in one place)
# =============================================================================
#
# WHAT THIS FILE DOES:
#   Exposes the six Cloud Asset Inventory operations as MCP tools.  Each tool
#   is a thin wrapper: it forwards its arguments to the Dispatcher in core/
#   and hands back the envelope text.  Tools are generated from the
#   operation table, so the advertised input schema is the one enforced.
#
# HOW IT WORKS (the flow):
#   1. The agent calls a tool by name via MCP (e.g., "list_assets")
#   2. FastMCP routes the call to the matching OperationTool below
#   3. The tool passes the raw arguments to Dispatcher.call(), which
#      validates them, builds the gcloud command, runs it and parses the
#      output
#   4. A success envelope is returned as text; an error envelope is raised
#      as a ToolError so the client sees isError=true with the message
#
# PRECONDITIONS:
#   Before tools are listed, GcloudPreconditions checks that gcloud is
#   installed and authenticated.  If either check fails the process exits
#   with status 1.  Nothing can be listed or called without gcloud.
#
# RUNNING THIS SERVER:
#     a) via the entry point:  python main.py
#     b) standalone:           python -m tools.mcp_server
#   Both speak MCP over stdio.
# =============================================================================

from contextlib import asynccontextmanager
import logging
import os
import sys
from typing import Any, Callable, NoReturn, Optional

from dotenv import load_dotenv
from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.server.middleware import Middleware, MiddlewareContext
from fastmcp.tools.tool import Tool, ToolResult
from pydantic import Field

from core.config import Settings
from core.dispatcher import Dispatcher
from core.gcloud import GcloudRunner

SERVER_NAME = "gcp-asset-inventory-server"

INSTALL_HINT = (
    "gcloud CLI is not installed. Please install it from "
    "https://cloud.google.com/sdk/docs/install"
)
AUTH_HINT = "Not authenticated with gcloud. Run 'gcloud auth login' first."

logger = logging.getLogger("mcp_server")

# =============================================================================
# Logging Setup
# =============================================================================
# We log to STDERR because stdin/stdout is the MCP transport.  A log line on
# stdout would corrupt the JSON-RPC stream.
#
# Colors (when enabled):
#   CYAN   → incoming tool calls with their parameters
#   GREEN  → responses
# =============================================================================
_CYAN = "\033[36m"
_GREEN = "\033[32m"
_RESET = "\033[0m"

_use_color = True

# Response log lines are cut here; asset listings can be megabytes
_MAX_LOGGED_RESPONSE = 500


def configure_logging(settings: Settings) -> None:
    global _use_color
    _use_color = settings.color_logs
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [MCP] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def _paint(color: str, text: str) -> str:
    return f"{color}{text}{_RESET}" if _use_color else text


def _log_request(tool_name: str, params: dict[str, Any]) -> None:
    """Log an incoming tool call with its parameters in CYAN."""
    param_str = ", ".join(f"{k}={v!r}" for k, v in params.items())
    logger.info(_paint(_CYAN, f"{tool_name} called with: {param_str}"))


def _log_response(tool_name: str, text: str, is_error: bool = False) -> None:
    """Log the (truncated) tool response in GREEN."""
    if len(text) > _MAX_LOGGED_RESPONSE:
        text = text[:_MAX_LOGGED_RESPONSE] + f"... ({len(text)} chars)"
    label = "error" if is_error else "response"
    logger.info(_paint(_GREEN, f"  ← {tool_name} {label}: {text}"))


# =============================================================================
# Precondition middleware
# =============================================================================
# Runs on every tools/list request, the same point at which the client first
# learns what the server can do.
# =============================================================================
class GcloudPreconditions(Middleware):
    """Exit the process unless gcloud is installed and authenticated."""

    def __init__(self, runner: GcloudRunner, exit_process: Callable[[int], Any] = os._exit):
        self.runner = runner
        self.exit_process = exit_process

    async def on_list_tools(self, context: MiddlewareContext, call_next):
        if not await self.runner.check_installed():
            self._fail(INSTALL_HINT)
        if not await self.runner.check_authenticated():
            self._fail(AUTH_HINT)
        return await call_next(context)

    def _fail(self, message: str) -> NoReturn:
        logger.critical(message)
        for handler in logging.getLogger().handlers:
            handler.flush()
        # We are inside the server's event loop; os._exit ends the process
        # without waiting for the transport tasks to unwind.
        self.exit_process(1)
        raise SystemExit(1)


async def announce_startup(runner: GcloudRunner) -> None:
    """Log readiness and the active gcloud project to stderr."""
    logger.info("GCP Asset Inventory MCP Server running on stdio")
    project = await runner.current_project()
    logger.info(f"Using default project: {project or 'Not set'}")


# =============================================================================
# OperationTool — one MCP tool per entry in the operation table
# =============================================================================
# FastMCP's own function tools validate arguments leniently against the
# Python signature ("10" becomes 10).  These tools advertise the operation's
# strict argument schema and hand the raw arguments to the Dispatcher, which
# validates them against the same model.  One validator, one schema.
# =============================================================================
class OperationTool(Tool):
    """An MCP tool that forwards its call to the Dispatcher."""

    dispatcher: Any = Field(exclude=True)

    @classmethod
    def from_description(cls, entry: dict[str, Any], dispatcher: Dispatcher) -> "OperationTool":
        """Build a tool from one Dispatcher.describe_operations() entry."""
        return cls(
            name=entry["name"],
            description=entry["description"],
            parameters=entry["inputSchema"],
            dispatcher=dispatcher,
        )

    async def run(self, arguments: dict[str, Any]) -> ToolResult:
        _log_request(self.name, arguments)
        envelope = await self.dispatcher.call(self.name, arguments)
        _log_response(self.name, envelope.text, envelope.is_error)
        if envelope.is_error:
            raise ToolError(envelope.text)
        return ToolResult(content=envelope.text)


# =============================================================================
# Server factory
# =============================================================================

def create_server(
    dispatcher: Optional[Dispatcher] = None,
    exit_process: Callable[[int], Any] = os._exit,
) -> FastMCP:
    """Build the FastMCP server with all six tools registered.

    Args:
        dispatcher: The Dispatcher that does the work.  Built from the
            environment (core/config.py) when omitted.
        exit_process: Called with 1 when a startup precondition fails.
    """
    if dispatcher is None:
        settings = Settings.from_env()
        dispatcher = Dispatcher(GcloudRunner(settings.gcloud_path, settings.command_timeout))
    runner = dispatcher.runner

    @asynccontextmanager
    async def lifespan(server: FastMCP):
        await announce_startup(runner)
        yield

    mcp = FastMCP(SERVER_NAME, lifespan=lifespan)
    mcp.add_middleware(GcloudPreconditions(runner, exit_process))

    for entry in dispatcher.describe_operations():
        mcp.add_tool(OperationTool.from_description(entry, dispatcher))

    return mcp


# =============================================================================
# Server entry point
# =============================================================================
# When run directly (python -m tools.mcp_server), start the MCP server on
# stdio.  main.py does the same with .env loading and exit-code handling.
# =============================================================================
if __name__ == "__main__":
    load_dotenv()
    configure_logging(Settings.from_env())
    create_server().run()
