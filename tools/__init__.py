# =============================================================================
# tools/__init__.py
# =============================================================================
# This package contains the FastMCP server.
#
# ARCHITECTURAL ROLE:
#   tools/ is the "translation layer" between MCP and core/.  It:
#     1. Registers one FastMCP tool per operation in core/operations.py
#     2. Forwards each call to core.dispatcher.Dispatcher
#     3. Turns error envelopes into ToolError (isError=true for the client)
#     4. Refuses to list tools unless gcloud is installed and authenticated
#
# WHAT TOOLS DO NOT DO:
#   - They do NOT build gcloud commands or parse output (that's core/)
#   - They do NOT validate arguments beyond what FastMCP derives from the
#     function signatures; the Dispatcher re-validates against the table
# =============================================================================
