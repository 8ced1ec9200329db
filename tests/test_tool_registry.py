"""Tests for the tool registry and the default catalog."""

from __future__ import annotations

import pytest
from jsonschema import Draft7Validator

from deepcode.ai.tools.base import BaseTool, ToolResult
from deepcode.ai.tools.tool_registry import (
    TOOL_SCHEMAS,
    ParameterSchema,
    RegistrationError,
    ToolCategory,
    ToolRegistry,
    ToolSchema,
    build_default_registry,
)

EXPECTED_TOOLS = [
    "read_file",
    "write_file",
    "edit_file",
    "multi_edit_files",
    "list_directory",
    "search_files",
    "grep_search",
    "run_command",
    "get_diagnostics",
    "web_search",
    "fetch_webpage",
]


class _NoopRequest:
    @classmethod
    def from_args(cls, args):
        return cls()


class NoopTool(BaseTool):
    name = "noop"
    request_type = _NoopRequest

    async def execute(self, context, request) -> ToolResult:
        return ToolResult(success=True, output="")


def test_default_registry_lists_the_full_catalog() -> None:
    registry = build_default_registry()

    assert registry.list_tools() == EXPECTED_TOOLS
    assert [schema.name for schema in TOOL_SCHEMAS] == EXPECTED_TOOLS


@pytest.mark.parametrize("schema", TOOL_SCHEMAS, ids=lambda schema: schema.name)
def test_schemas_are_valid_json_schema(schema: ToolSchema) -> None:
    Draft7Validator.check_schema(schema.to_json_schema())
    assert schema.description


def test_edit_schema_requires_old_and_new_text() -> None:
    edit_schema = next(schema for schema in TOOL_SCHEMAS if schema.name == "edit_file").to_json_schema()

    items = edit_schema["properties"]["edits"]["items"]
    assert edit_schema["required"] == ["path", "edits"]
    assert items["required"] == ["oldText", "newText"]


def test_example_arguments_validate_against_schemas() -> None:
    schemas = {schema.name: schema.to_json_schema() for schema in TOOL_SCHEMAS}

    Draft7Validator(schemas["multi_edit_files"]).validate(
        {"files": [{"path": "a.ts", "edits": [{"oldText": "x", "newText": "y"}]}]}
    )
    errors = list(Draft7Validator(schemas["web_search"]).iter_errors({"query": "q", "maxResults": 50}))
    assert errors


def test_disabled_tools_are_hidden() -> None:
    registry = build_default_registry(disabled=["run_command", "web_search"])

    assert "run_command" not in registry.list_tools()
    assert registry.get_tool("run_command") is None
    assert not registry.has_tool("web_search")
    assert "run_command" in registry.list_tools(enabled_only=False)
    assert len(registry.to_openai_tools()) == 9
    assert registry.list_tools(category=ToolCategory.WEB) == ["fetch_webpage"]


def test_to_openai_tools_shape() -> None:
    [tool] = [entry for entry in build_default_registry().to_openai_tools() if entry["function"]["name"] == "read_file"]

    assert tool["type"] == "function"
    parameters = tool["function"]["parameters"]
    assert parameters["type"] == "object"
    assert parameters["required"] == ["path"]
    assert parameters["properties"]["startLine"] == {
        "type": "number",
        "description": "Starting line number (1-based, optional)",
    }


def test_list_tools_by_category() -> None:
    registry = build_default_registry()

    assert registry.list_tools(category=ToolCategory.WEB) == ["web_search", "fetch_webpage"]
    assert registry.list_tools(category=ToolCategory.WRITING) == ["write_file", "edit_file", "multi_edit_files"]


def test_register_rejects_mismatched_names() -> None:
    registry = ToolRegistry()

    with pytest.raises(RegistrationError):
        registry.register(NoopTool(), schema=ToolSchema(name="other", description="x"))


def test_register_rejects_invalid_parameter_schema() -> None:
    registry = ToolRegistry()
    schema = ToolSchema(name="noop", description="x", parameters=[ParameterSchema(name="a", type="not-a-type")])

    with pytest.raises(RegistrationError):
        registry.register(NoopTool(), schema=schema)


def test_to_openai_tools_filters_by_category() -> None:
    tools = build_default_registry().to_openai_tools(category=ToolCategory.SEARCH)

    assert [tool["function"]["name"] for tool in tools] == ["search_files", "grep_search"]
