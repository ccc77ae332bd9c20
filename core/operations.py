# =============================================================================
# core/operations.py  —  The Tool Table & Argument Models
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Declares the six supported operations as data: one OperationDescriptor
#   per tool, each pointing at a pydantic model of its arguments.
#
# ONE MODEL, TWO USES:
#   The same model validates raw MCP argument objects (validate_arguments)
#   and renders the JSON schema advertised on tools/list
#   (model_json_schema).  What a client is shown is exactly what is checked.
#
# STRICT:
#   Models are strict and forbid unknown keys.  "10" is not a page size and
#   "yes" is not a boolean; the client gets a validation error instead of a
#   silently coerced gcloud command.
#
# VALIDATION OUTPUT:
#   validate_arguments() never raises for bad input.  It returns the
#   defaulted argument bundle plus a list of issues.  An empty list means the
#   bundle is safe to hand to a command builder.
# =============================================================================

from datetime import datetime
import re
from typing import Annotated, Any, Literal, Mapping, Optional, get_args

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    WithJsonSchema,
)
from pydantic_core import PydanticCustomError

from core.models import OperationDescriptor

ContentType = Literal["RESOURCE", "IAM_POLICY", "ORG_POLICY", "OS_INVENTORY", "RELATIONSHIP"]

CONTENT_TYPES: tuple[str, ...] = get_args(ContentType)
DEFAULT_CONTENT_TYPE = "RESOURCE"
DEFAULT_PAGE_SIZE = 100

_PROJECT_DESCRIPTION = (
    "The Google Cloud project ID. If not provided, uses the default project from gcloud config"
)
_CONTENT_TYPE_DESCRIPTION = "Content type to include"
_PAGE_SIZE_DESCRIPTION = "Maximum number of results per page"


# =============================================================================
# RFC3339 date-times
# =============================================================================
# Full date, "T", full time, optional fraction, then "Z" or "+hh:mm".  No
# week dates, no basic-format offsets, no surrounding whitespace.
# =============================================================================
_RFC3339 = re.compile(
    r"(?P<date>[0-9]{4}-[0-9]{2}-[0-9]{2})[Tt]"
    r"(?P<time>[0-9]{2}:[0-9]{2}:[0-9]{2})(?:\.[0-9]+)?"
    r"(?:[Zz]|[+-](?P<offset_hours>[0-9]{2}):(?P<offset_minutes>[0-9]{2}))"
)


def is_rfc3339(value: str) -> bool:
    """Return True if value is an RFC3339 date-time with an explicit offset."""
    match = _RFC3339.fullmatch(value)
    if match is None:
        return False
    try:
        datetime.strptime(f"{match['date']} {match['time']}", "%Y-%m-%d %H:%M:%S")
    except ValueError:
        return False
    if match["offset_hours"] is not None:
        return int(match["offset_hours"]) < 24 and int(match["offset_minutes"]) < 60
    return True


def _check_rfc3339(value: str) -> str:
    if not is_rfc3339(value):
        raise PydanticCustomError("invalid_datetime", "Invalid RFC3339 date-time")
    return value


Rfc3339 = Annotated[
    str,
    AfterValidator(_check_rfc3339),
    WithJsonSchema({"type": "string", "format": "date-time"}),
]


# =============================================================================
# Argument models
# =============================================================================

class OperationArguments(BaseModel):
    """Arguments of an operation that takes none."""

    model_config = ConfigDict(strict=True, extra="forbid")


class ProjectArguments(OperationArguments):
    project: Optional[str] = Field(default=None, description=_PROJECT_DESCRIPTION)


class ListAssetsArguments(ProjectArguments):
    asset_types: Optional[list[str]] = Field(
        default=None,
        description="Filter assets by type (e.g., 'compute.googleapis.com/Instance')",
    )
    content_type: ContentType = Field(
        default=DEFAULT_CONTENT_TYPE, description=_CONTENT_TYPE_DESCRIPTION
    )
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, description=_PAGE_SIZE_DESCRIPTION)
    snapshot: bool = Field(
        default=False,
        description="Whether to return a snapshot in time or the latest state",
    )


class SearchAssetsArguments(ProjectArguments):
    query: str = Field(
        description="Query string following the Cloud Asset Inventory query syntax"
    )
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, description=_PAGE_SIZE_DESCRIPTION)


class GetAssetHistoryArguments(ProjectArguments):
    asset_name: str = Field(description="Full name of the asset")
    start_time: Optional[Rfc3339] = Field(
        default=None,
        description="Start time in RFC3339 format (e.g. '2022-01-01T00:00:00Z')",
    )
    end_time: Optional[Rfc3339] = Field(
        default=None,
        description="End time in RFC3339 format (e.g. '2022-01-02T00:00:00Z')",
    )
    content_type: ContentType = Field(
        default=DEFAULT_CONTENT_TYPE, description=_CONTENT_TYPE_DESCRIPTION
    )


# =============================================================================
# The operation table
# =============================================================================
# Order matters only for listing: tools are advertised in this order.
# =============================================================================
LIST_ASSETS = OperationDescriptor(
    name="list_assets",
    description=(
        "List assets in Google Cloud by type with optional filtering. "
        "Uses the gcloud asset list command."
    ),
    arguments=ListAssetsArguments,
)

SEARCH_ASSETS = OperationDescriptor(
    name="search_assets",
    description=(
        "Search for assets across your Google Cloud environment using a query string. "
        "Uses the gcloud asset search-all-resources command."
    ),
    arguments=SearchAssetsArguments,
)

GET_ASSET_HISTORY = OperationDescriptor(
    name="get_asset_history",
    description=(
        "Get the change history for a specific asset. "
        "Uses the gcloud asset get-history command."
    ),
    arguments=GetAssetHistoryArguments,
)

GET_PROJECTS = OperationDescriptor(
    name="get_projects",
    description=(
        "List all Google Cloud projects you have access to. "
        "Uses the gcloud projects list command."
    ),
    arguments=OperationArguments,
)

GET_SERVICES = OperationDescriptor(
    name="get_services",
    description=(
        "List enabled services/APIs in a Google Cloud project. "
        "Uses the gcloud services list command."
    ),
    arguments=ProjectArguments,
)

GET_CURRENT_PROJECT = OperationDescriptor(
    name="get_current_project",
    description="Get the currently configured default Google Cloud project from gcloud config.",
    arguments=OperationArguments,
)

OPERATIONS: dict[str, OperationDescriptor] = {
    op.name: op
    for op in (
        LIST_ASSETS,
        SEARCH_ASSETS,
        GET_ASSET_HISTORY,
        GET_PROJECTS,
        GET_SERVICES,
        GET_CURRENT_PROJECT,
    )
}


# =============================================================================
# Validation
# =============================================================================

def _issue(error: Mapping[str, Any]) -> dict[str, Any]:
    return {"path": list(error["loc"]), "code": error["type"], "message": error["msg"]}


def validate_arguments(
    operation: OperationDescriptor,
    arguments: Optional[Mapping[str, Any]],
) -> tuple[dict[str, Any], list[dict[str, Any]]]:
    """Validate a raw argument object against an operation's model.

    Args:
        operation: The descriptor to validate against.
        arguments: The raw object from the client.  None counts as {}, and
            keys whose value is None count as absent.

    Returns:
        (bundle, issues).  bundle holds every declared parameter: the
        supplied value, else its default, else None.  Each issue is
        {"path", "code", "message"}.  If issues is non-empty the bundle is
        empty and must not be used.
    """
    if arguments is None:
        arguments = {}
    if isinstance(arguments, Mapping):
        arguments = {key: value for key, value in arguments.items() if value is not None}
    try:
        parsed = operation.arguments.model_validate(arguments)
    except ValidationError as exc:
        return {}, [_issue(error) for error in exc.errors()]
    return parsed.model_dump(), []


def input_schema(operation: OperationDescriptor) -> dict[str, Any]:
    """The JSON Schema document advertised for an operation."""
    return operation.arguments.model_json_schema()
