# =============================================================================
# core/__init__.py
# =============================================================================
# This package contains ALL of the adapter logic: the operation table,
# argument validation, gcloud command construction, execution and output
# parsing.
#
# CRITICAL ARCHITECTURAL RULE:
#   Nothing in this package imports FastMCP or any other protocol framework.
#   Every module here is plain Python plus asyncio.  You can drive the
#   Dispatcher from a REPL with asyncio.run() and it behaves exactly as it
#   does behind the MCP server.
# =============================================================================
