# =============================================================================
# main.py  —  Entry Point for the GCP Asset Inventory MCP Server
# =============================================================================
#
# HOW TO RUN:
#   uv run python main.py
#
# Most of the time you don't run this by hand.  An MCP client (an agent
# framework, an IDE, Claude Desktop...) starts it as a subprocess and talks
# to it over stdin/stdout:
#
#   {
#     "command": "uv",
#     "args": ["run", "python", "/path/to/main.py"]
#   }
#
# WHAT HAPPENS:
#   1. Environment variables are loaded from .env (GCLOUD_PATH, etc.)
#   2. Logging is pointed at stderr (stdout belongs to the MCP protocol)
#   3. The FastMCP server is built (tools/mcp_server.py) and served on stdio
#   4. On startup it logs readiness and the active gcloud project
#
# EXIT CODES:
#   0  normal shutdown
#   1  gcloud missing or unauthenticated (when tools are listed), or the
#      server/transport failed to start
# =============================================================================

import logging
import sys

from dotenv import load_dotenv

# Load .env BEFORE reading settings: core/config.py reads os.environ.
load_dotenv()

from core.config import Settings
from core.dispatcher import Dispatcher
from core.gcloud import GcloudRunner
from tools.mcp_server import configure_logging, create_server


def main() -> int:
    """Build and serve the MCP server.  Returns the process exit code."""
    try:
        settings = Settings.from_env()
    except ValueError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 1

    configure_logging(settings)

    try:
        runner = GcloudRunner(settings.gcloud_path, settings.command_timeout)
        server = create_server(Dispatcher(runner))
        server.run(transport="stdio")
    except KeyboardInterrupt:
        return 0
    except Exception:
        logging.getLogger("mcp_server").exception("Error starting server")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
