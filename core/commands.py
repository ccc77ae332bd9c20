# =============================================================================
# core/commands.py  —  Command Builders (arguments → gcloud command line)
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   One pure function per operation.  Each takes a VALIDATED argument bundle
#   (see core/operations.py) and returns the ExternalCommand to run.
#
# TOKEN ORDER IS PART OF THE CONTRACT:
#   Flags are appended in a fixed order and only when they apply.  Tests
#   compare whole argv tuples, so reordering a flag is a behavior change.
#
# NO SHELL:
#   The argv tuple goes straight to the child process.  A query such as
#   'name:"my instance"' reaches gcloud as one token, untouched.
#
# THE ONE IMPURE INPUT:
#   list_assets(snapshot=True) stamps the current time.  Only
#   build_list_assets takes a clock, so tests can pin it.
# =============================================================================

from datetime import datetime, timezone
from typing import Any, Callable, Optional

from core.models import TEXT_OUTPUT, ExternalCommand

DEFAULT_GCLOUD = "gcloud"
JSON_FORMAT_FLAG = "--format=json"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def snapshot_timestamp(moment: datetime) -> str:
    """Format a moment as ISO-8601 UTC with millisecond precision and a Z suffix.

    e.g. 2024-05-01T12:30:00.123Z
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _project_flag(argv: list[str], bundle: dict[str, Any]) -> None:
    if bundle.get("project"):
        argv.append(f"--project={bundle['project']}")


def build_list_assets(
    bundle: dict[str, Any],
    gcloud: str = DEFAULT_GCLOUD,
    clock: Optional[Clock] = None,
) -> ExternalCommand:
    argv = [gcloud, "asset", "list"]
    _project_flag(argv, bundle)
    if bundle.get("asset_types"):
        argv.append("--asset-types=" + ",".join(bundle["asset_types"]))
    argv.append(f"--content-type={bundle['content_type']}")
    argv.append(f"--page-size={bundle['page_size']}")
    if bundle.get("snapshot"):
        moment = (clock or utc_now)()
        argv.append(f"--snapshot-time={snapshot_timestamp(moment)}")
    argv.append(JSON_FORMAT_FLAG)
    return ExternalCommand("list_assets", tuple(argv))


def build_search_assets(
    bundle: dict[str, Any],
    gcloud: str = DEFAULT_GCLOUD,
) -> ExternalCommand:
    argv = [gcloud, "asset", "search-all-resources", f"--query={bundle['query']}"]
    _project_flag(argv, bundle)
    argv.append(f"--page-size={bundle['page_size']}")
    argv.append(JSON_FORMAT_FLAG)
    return ExternalCommand("search_assets", tuple(argv))


def build_get_asset_history(
    bundle: dict[str, Any],
    gcloud: str = DEFAULT_GCLOUD,
) -> ExternalCommand:
    argv = [gcloud, "asset", "get-history", f"--asset-names={bundle['asset_name']}"]
    _project_flag(argv, bundle)
    if bundle.get("start_time"):
        argv.append(f"--start-time={bundle['start_time']}")
    if bundle.get("end_time"):
        argv.append(f"--end-time={bundle['end_time']}")
    argv.append(f"--content-type={bundle['content_type']}")
    argv.append(JSON_FORMAT_FLAG)
    return ExternalCommand("get_asset_history", tuple(argv))


def build_get_projects(
    bundle: dict[str, Any],
    gcloud: str = DEFAULT_GCLOUD,
) -> ExternalCommand:
    return ExternalCommand("get_projects", (gcloud, "projects", "list", JSON_FORMAT_FLAG))


def build_get_services(
    bundle: dict[str, Any],
    gcloud: str = DEFAULT_GCLOUD,
) -> ExternalCommand:
    argv = [gcloud, "services", "list"]
    _project_flag(argv, bundle)
    argv.append(JSON_FORMAT_FLAG)
    return ExternalCommand("get_services", tuple(argv))


def build_get_current_project(
    bundle: dict[str, Any],
    gcloud: str = DEFAULT_GCLOUD,
) -> ExternalCommand:
    return ExternalCommand(
        "get_current_project",
        (gcloud, "config", "get-value", "project"),
        output=TEXT_OUTPUT,
    )


Builder = Callable[..., ExternalCommand]

BUILDERS: dict[str, Builder] = {
    "list_assets": build_list_assets,
    "search_assets": build_search_assets,
    "get_asset_history": build_get_asset_history,
    "get_projects": build_get_projects,
    "get_services": build_get_services,
    "get_current_project": build_get_current_project,
}

# Wording used in failure messages: "Failed to <action>: <cause>"
ACTIONS: dict[str, str] = {
    "list_assets": "list assets",
    "search_assets": "search assets",
    "get_asset_history": "get asset history",
    "get_projects": "list projects",
    "get_services": "list services",
    "get_current_project": "get current project",
}
