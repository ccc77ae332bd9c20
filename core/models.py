# =============================================================================
# core/models.py  —  Data Models (the "nouns" of the system)
# =============================================================================
#
# These dataclasses define the *shape* of every value that flows through one
# tool call:
#
#   OperationDescriptor  →  what a tool is and which arguments it accepts
#   ExternalCommand      →  the gcloud command line built from those arguments
#   ExecutionResult      →  what the child process printed and how it exited
#   CommandResult        →  success-with-payload or failure-with-kind
#   ResponseEnvelope     →  what goes back to the MCP client
#
# Everything here is transient and per-call.  Nothing is cached, nothing is
# mutated after construction, and nothing imports FastMCP.
# =============================================================================

from dataclasses import dataclass
from enum import Enum
import shlex
from typing import Any, Optional

from pydantic import BaseModel


@dataclass(frozen=True)
class OperationDescriptor:
    """A supported tool: its name, what it does, and its argument schema.

    Descriptors are defined once at import time (core/operations.py) and
    never mutated.
    """

    name: str
    description: str
    arguments: type[BaseModel]         # Strict pydantic model of the arguments


# -----------------------------------------------------------------------------
# ExternalCommand — one gcloud invocation
# -----------------------------------------------------------------------------
# argv is handed to the child process as-is (no shell), so values never need
# quoting.  render() exists only for log lines.
# -----------------------------------------------------------------------------
JSON_OUTPUT = "json"
TEXT_OUTPUT = "text"


@dataclass(frozen=True)
class ExternalCommand:
    """An ordered gcloud command line plus the output format it produces."""

    operation: str                     # e.g. "list_assets"
    argv: tuple[str, ...]              # ("gcloud", "asset", "list", ...)
    output: str = JSON_OUTPUT          # JSON_OUTPUT or TEXT_OUTPUT

    def render(self) -> str:
        return " ".join(shlex.quote(token) for token in self.argv)


@dataclass(frozen=True)
class ExecutionResult:
    """Raw captured output of one finished child process."""

    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


# -----------------------------------------------------------------------------
# CommandResult — explicit success/failure value
# -----------------------------------------------------------------------------
# Builders and the runner never raise for expected failures.  They return a
# CommandResult, and the Dispatcher turns it into a ResponseEnvelope.
# -----------------------------------------------------------------------------
class FailureKind(str, Enum):
    UNKNOWN_OPERATION = "unknown_operation"
    VALIDATION = "validation"
    EXECUTION = "execution"
    PARSE = "parse"


@dataclass(frozen=True)
class CommandResult:
    """Outcome of running one operation."""

    operation: str
    ok: bool
    payload: Any = None
    kind: Optional[FailureKind] = None
    message: str = ""
    is_text: bool = False              # payload is plain text, not parsed JSON

    @classmethod
    def success(cls, operation: str, payload: Any, is_text: bool = False) -> "CommandResult":
        return cls(operation=operation, ok=True, payload=payload, is_text=is_text)

    @classmethod
    def failure(cls, operation: str, kind: FailureKind, message: str) -> "CommandResult":
        return cls(operation=operation, ok=False, kind=kind, message=message)


@dataclass(frozen=True)
class ResponseEnvelope:
    """What the MCP client receives: text plus an error flag."""

    text: str
    is_error: bool = False

    @classmethod
    def error(cls, message: str) -> "ResponseEnvelope":
        return cls(text=f"Error: {message}", is_error=True)

