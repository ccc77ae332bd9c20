from __future__ import annotations

import asyncio
import json
import logging

import pytest
from fastmcp import Client

from core.dispatcher import Dispatcher
from core.models import ExecutionResult
from core.operations import OPERATIONS
from tools.mcp_server import (
    AUTH_HINT,
    INSTALL_HINT,
    GcloudPreconditions,
    announce_startup,
    create_server,
)


class _Exited(Exception):
    pass


def _recording_exit(codes: list[int]):
    def exit_process(code: int) -> None:
        codes.append(code)
        raise _Exited(code)

    return exit_process


def _server(fake_runner, codes: list[int] | None = None):
    return create_server(Dispatcher(fake_runner), exit_process=_recording_exit(codes if codes is not None else []))


def _list_tools(server):
    async def go():
        async with Client(server) as client:
            return await client.list_tools()

    return asyncio.run(go())


def _call_tool(server, name: str, arguments: dict):
    async def go():
        async with Client(server) as client:
            return await client.call_tool_mcp(name, arguments)

    return asyncio.run(go())


def test_lists_the_six_tools_with_table_descriptions(fake_runner) -> None:
    tools = _list_tools(_server(fake_runner))

    assert {tool.name for tool in tools} == set(OPERATIONS)
    for tool in tools:
        assert tool.description == OPERATIONS[tool.name].description


def test_listed_schemas_are_the_operation_schemas(fake_runner) -> None:
    dispatcher = Dispatcher(fake_runner)
    tools = {tool.name: tool for tool in _list_tools(create_server(dispatcher, exit_process=_recording_exit([])))}

    for entry in dispatcher.describe_operations():
        assert tools[entry["name"]].inputSchema == entry["inputSchema"]

    page_size = tools["list_assets"].inputSchema["properties"]["page_size"]
    assert page_size["type"] == "integer"
    assert page_size["minimum"] == 1
    assert tools["list_assets"].inputSchema["additionalProperties"] is False


def test_listing_checks_gcloud_first(fake_runner) -> None:
    _list_tools(_server(fake_runner))

    version = ("gcloud", "--version")
    auth = ("gcloud", "auth", "list", "--format=json")
    assert version in fake_runner.calls
    assert auth in fake_runner.calls
    assert fake_runner.calls.index(version) < fake_runner.calls.index(auth)


def test_listing_without_gcloud_exits_with_status_1(fake_runner) -> None:
    fake_runner.respond(("--version",), FileNotFoundError(2, "No such file or directory", "gcloud"))
    codes: list[int] = []

    with pytest.raises(Exception):
        _list_tools(_server(fake_runner, codes))

    assert codes == [1]


def test_precondition_middleware_stops_before_listing(fake_runner, caplog) -> None:
    codes: list[int] = []
    listed: list[object] = []
    middleware = GcloudPreconditions(fake_runner, _recording_exit(codes))

    async def call_next(context):
        listed.append(context)
        return []

    fake_runner.respond(("--version",), ExecutionResult(127, "", "gcloud: command not found"))
    with caplog.at_level(logging.CRITICAL, logger="mcp_server"):
        with pytest.raises(_Exited):
            asyncio.run(middleware.on_list_tools(None, call_next))

    assert codes == [1]
    assert listed == []
    assert INSTALL_HINT in caplog.text


def test_precondition_middleware_requires_authentication(fake_runner, caplog) -> None:
    codes: list[int] = []
    middleware = GcloudPreconditions(fake_runner, _recording_exit(codes))

    async def call_next(context):
        return []

    fake_runner.respond(("auth", "list"), ExecutionResult(0, "[]"))
    with caplog.at_level(logging.CRITICAL, logger="mcp_server"):
        with pytest.raises(_Exited):
            asyncio.run(middleware.on_list_tools(None, call_next))

    assert codes == [1]
    assert AUTH_HINT in caplog.text


def test_precondition_middleware_passes_through_when_ready(fake_runner) -> None:
    middleware = GcloudPreconditions(fake_runner, _recording_exit([]))

    async def call_next(context):
        return ["tools"]

    assert asyncio.run(middleware.on_list_tools("ctx", call_next)) == ["tools"]


def test_call_tool_returns_gcloud_output(fake_runner) -> None:
    fake_runner.respond(("config", "get-value", "project"), ExecutionResult(0, "my-project\n"))

    result = _call_tool(_server(fake_runner), "get_current_project", {})

    assert not result.isError
    assert result.content[0].text == "my-project"


def test_call_tool_forwards_arguments(fake_runner) -> None:
    fake_runner.respond(("asset", "search-all-resources"), ExecutionResult(0, '[{"name": "vm-1"}]'))

    result = _call_tool(_server(fake_runner), "search_assets", {"query": "name:vm-1", "project": "p"})

    assert not result.isError
    assert (
        "gcloud", "asset", "search-all-resources",
        "--query=name:vm-1", "--project=p", "--page-size=100", "--format=json",
    ) in fake_runner.calls


def test_call_tool_failure_sets_is_error(fake_runner) -> None:
    fake_runner.respond(("asset", "list"), ExecutionResult(1, "", "ERROR: (gcloud.asset.list) PERMISSION_DENIED"))

    result = _call_tool(_server(fake_runner), "list_assets", {"project": "p"})

    assert result.isError
    assert "list_assets" in result.content[0].text
    assert "PERMISSION_DENIED" in result.content[0].text


def _assert_rejected(result, fake_runner, name: str) -> list[dict]:
    assert result.isError
    text = result.content[0].text
    assert text.startswith(f"Error: Invalid arguments for {name}: ")
    assert not any(argv[1:2] in (("asset",), ("projects",), ("services",)) for argv in fake_runner.calls)
    return json.loads(text.split(": ", 2)[2])


def test_call_tool_rejects_bad_content_type(fake_runner) -> None:
    result = _call_tool(_server(fake_runner), "list_assets", {"content_type": "FOO"})

    issues = _assert_rejected(result, fake_runner, "list_assets")
    assert issues[0]["path"] == ["content_type"]


def test_call_tool_does_not_coerce_strings(fake_runner) -> None:
    result = _call_tool(_server(fake_runner), "list_assets", {"snapshot": "yes", "page_size": "10"})

    issues = _assert_rejected(result, fake_runner, "list_assets")
    assert {issue["path"][0] for issue in issues} == {"snapshot", "page_size"}


def test_call_tool_enforces_page_size_minimum(fake_runner) -> None:
    result = _call_tool(_server(fake_runner), "search_assets", {"query": "name:vm-1", "page_size": 0})

    issues = _assert_rejected(result, fake_runner, "search_assets")
    assert issues[0]["code"] == "greater_than_equal"


def test_call_tool_rejects_unknown_arguments(fake_runner) -> None:
    result = _call_tool(_server(fake_runner), "get_services", {"projectId": "p"})

    issues = _assert_rejected(result, fake_runner, "get_services")
    assert issues[0]["path"] == ["projectId"]


def test_call_tool_requires_rfc3339_times(fake_runner) -> None:
    result = _call_tool(
        _server(fake_runner),
        "get_asset_history",
        {"asset_name": "//storage.googleapis.com/my-bucket", "start_time": "2022-W01-1T00:00:00+00:00"},
    )

    issues = _assert_rejected(result, fake_runner, "get_asset_history")
    assert issues[0]["code"] == "invalid_datetime"


def test_startup_announcement(fake_runner, caplog) -> None:
    with caplog.at_level(logging.INFO, logger="mcp_server"):
        asyncio.run(announce_startup(fake_runner))

    assert "GCP Asset Inventory MCP Server running on stdio" in caplog.text
    assert "Using default project: my-project" in caplog.text


def test_startup_announcement_without_project(fake_runner, caplog) -> None:
    fake_runner.respond(("config", "get-value", "project"), ExecutionResult(0, "(unset)\n"))

    with caplog.at_level(logging.INFO, logger="mcp_server"):
        asyncio.run(announce_startup(fake_runner))

    assert "Using default project: Not set" in caplog.text
