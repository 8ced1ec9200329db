"""Tool registry for the agent's workspace tools.

This module provides a declarative registry: each tool is registered with a
schema that is exposed to the model as a JSON-schema function definition and
validated against the JSON-schema metaschema at registration time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Mapping, Sequence

from jsonschema import Draft7Validator
from jsonschema.exceptions import SchemaError

from .base import BaseTool

LOGGER = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Tool Categories
# -----------------------------------------------------------------------------


class ToolCategory(Enum):
    """Categories of agent tools."""

    NAVIGATION = auto()  # Reading and listing
    WRITING = auto()  # Creating and editing files
    SEARCH = auto()  # File and text search
    EXECUTION = auto()  # Shell commands
    DIAGNOSTICS = auto()  # Editor problems
    WEB = auto()  # Web search and fetch


# -----------------------------------------------------------------------------
# Tool Schema Types
# -----------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class ParameterSchema:
    """Schema for a single tool parameter.

    Attributes:
        name: Parameter name.
        type: JSON Schema type (string, number, boolean, object, array).
        description: Human-readable description.
        required: Whether the parameter is required.
        default: Default value if not provided.
        minimum: Minimum value for numbers.
        maximum: Maximum value for numbers.
        properties: Nested properties for object types.
        items: Schema for array items.
    """

    name: str
    type: str
    description: str = ""
    required: bool = False
    default: Any = None
    minimum: int | float | None = None
    maximum: int | float | None = None
    properties: Sequence["ParameterSchema"] | None = None
    items: "ParameterSchema | None" = None

    def to_json_schema(self) -> dict[str, Any]:
        """Convert to JSON Schema format."""
        schema: dict[str, Any] = {"type": self.type}
        if self.description:
            schema["description"] = self.description
        if self.default is not None:
            schema["default"] = self.default
        if self.minimum is not None:
            schema["minimum"] = self.minimum
        if self.maximum is not None:
            schema["maximum"] = self.maximum
        if self.properties:
            schema["properties"] = {param.name: param.to_json_schema() for param in self.properties}
            required = [param.name for param in self.properties if param.required]
            if required:
                schema["required"] = required
        if self.items:
            schema["items"] = self.items.to_json_schema()
        return schema


@dataclass(slots=True)
class ToolSchema:
    """Complete schema for a tool.

    Attributes:
        name: Tool name (identifier).
        description: Human-readable description shown to the model.
        parameters: List of parameters.
        category: Tool category for organization.
        mutates: Whether the tool modifies workspace files.
    """

    name: str
    description: str
    parameters: Sequence[ParameterSchema] = field(default_factory=list)
    category: ToolCategory = ToolCategory.NAVIGATION
    mutates: bool = False

    def to_json_schema(self) -> dict[str, Any]:
        """Convert to JSON Schema format for OpenAI function calling."""
        properties = {param.name: param.to_json_schema() for param in self.parameters}
        required = [param.name for param in self.parameters if param.required]
        return {"type": "object", "properties": properties, "required": required}

    def to_openai_tool(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.to_json_schema(),
            },
        }


# -----------------------------------------------------------------------------
# Tool Registration
# -----------------------------------------------------------------------------


@dataclass(slots=True)
class ToolRegistration:
    """A registered tool with its implementation and schema."""

    schema: ToolSchema
    impl: BaseTool
    enabled: bool = True

    @property
    def name(self) -> str:
        return self.schema.name


class RegistrationError(RuntimeError):
    """Raised when a tool cannot be registered."""


class ToolRegistry:
    """Registry for agent tools.

    Example:
        registry = ToolRegistry()
        registry.register(ReadFileTool(), schema=READ_FILE_SCHEMA)
        registry.to_openai_tools()
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolRegistration] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, tool: BaseTool, *, schema: ToolSchema, enabled: bool = True) -> None:
        """Register ``tool`` under ``schema.name``.

        Raises:
            RegistrationError: If the names disagree or the schema is not valid JSON schema.
        """
        if tool.name and tool.name != schema.name:
            raise RegistrationError(f"Tool {tool.name!r} registered under schema {schema.name!r}")
        try:
            Draft7Validator.check_schema(schema.to_json_schema())
        except SchemaError as exc:
            raise RegistrationError(f"Invalid parameter schema for {schema.name!r}: {exc.message}") from exc
        self._tools[schema.name] = ToolRegistration(schema=schema, impl=tool, enabled=enabled)
        LOGGER.debug("Registered tool: %s (category=%s)", schema.name, schema.category.name)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_tool(self, name: str) -> BaseTool | None:
        """Get a tool implementation by name, if enabled."""
        reg = self._tools.get(name)
        return reg.impl if reg and reg.enabled else None

    def has_tool(self, name: str) -> bool:
        reg = self._tools.get(name)
        return reg is not None and reg.enabled

    def list_tools(self, *, category: ToolCategory | None = None, enabled_only: bool = True) -> list[str]:
        """List registered tool names in registration order."""
        return [
            name
            for name, reg in self._tools.items()
            if (category is None or reg.schema.category is category) and (reg.enabled or not enabled_only)
        ]

    def get_all_schemas(self, *, category: ToolCategory | None = None, enabled_only: bool = True) -> list[ToolSchema]:
        return [
            self._tools[name].schema for name in self.list_tools(category=category, enabled_only=enabled_only)
        ]

    def to_openai_tools(
        self, *, category: ToolCategory | None = None, enabled_only: bool = True
    ) -> list[dict[str, Any]]:
        """Convert tools to OpenAI function calling format, optionally for one category."""
        schemas = self.get_all_schemas(category=category, enabled_only=enabled_only)
        return [schema.to_openai_tool() for schema in schemas]


# -----------------------------------------------------------------------------
# Schema Definitions
# -----------------------------------------------------------------------------

PATH_PARAM = ParameterSchema(
    name="path",
    type="string",
    description="Relative path to the file from workspace root",
    required=True,
)

EDIT_ITEM = ParameterSchema(
    name="edit",
    type="object",
    properties=[
        ParameterSchema(
            name="oldText",
            type="string",
            description="Exact text to find in the file (must be a verbatim substring). Empty to append.",
            required=True,
        ),
        ParameterSchema(name="newText", type="string", description="Text to replace oldText with", required=True),
    ],
)

READ_FILE_SCHEMA = ToolSchema(
    name="read_file",
    description=(
        "Read the contents of a file in the workspace. Returns content with line numbers. "
        "Use startLine/endLine for large files to read specific ranges. "
        "Always read files before editing to understand their full content."
    ),
    parameters=[
        PATH_PARAM,
        ParameterSchema(name="startLine", type="number", description="Starting line number (1-based, optional)"),
        ParameterSchema(name="endLine", type="number", description="Ending line number (1-based, inclusive, optional)"),
    ],
    category=ToolCategory.NAVIGATION,
)

WRITE_FILE_SCHEMA = ToolSchema(
    name="write_file",
    description=(
        "Create a new file or completely overwrite an existing file. "
        "Parent directories are created automatically. "
        "Use edit_file instead for making changes to existing files."
    ),
    parameters=[
        PATH_PARAM,
        ParameterSchema(name="content", type="string", description="The full content to write to the file", required=True),
    ],
    category=ToolCategory.WRITING,
    mutates=True,
)

EDIT_FILE_SCHEMA = ToolSchema(
    name="edit_file",
    description=(
        "Make surgical edits to an existing file using find-and-replace. "
        "Each edit specifies an exact substring to find (oldText) and its replacement (newText). "
        "oldText must be a VERBATIM character-for-character match from the file. "
        "Include enough surrounding context in oldText to make it unique. "
        "Prefer this over write_file for modifying existing files."
    ),
    parameters=[
        PATH_PARAM,
        ParameterSchema(
            name="edits",
            type="array",
            description="Array of find-and-replace edits to apply sequentially",
            required=True,
            items=EDIT_ITEM,
        ),
    ],
    category=ToolCategory.WRITING,
    mutates=True,
)

MULTI_EDIT_FILES_SCHEMA = ToolSchema(
    name="multi_edit_files",
    description=(
        "Make edits across MULTIPLE files in a single tool call. "
        "Each entry specifies a file path and an array of find-and-replace edits. "
        "Failed edits are reported but do not block others. "
        "After applying, diagnostics are automatically checked and included in the result."
    ),
    parameters=[
        ParameterSchema(
            name="files",
            type="array",
            description="Array of file edit operations",
            required=True,
            items=ParameterSchema(
                name="file",
                type="object",
                properties=[
                    PATH_PARAM,
                    ParameterSchema(
                        name="edits",
                        type="array",
                        description="Array of find-and-replace edits for this file",
                        required=True,
                        items=EDIT_ITEM,
                    ),
                ],
            ),
        ),
    ],
    category=ToolCategory.WRITING,
    mutates=True,
)

LIST_DIRECTORY_SCHEMA = ToolSchema(
    name="list_directory",
    description=(
        "List the contents of a directory. Returns file and folder names "
        "(folders end with /). Use this to understand project structure."
    ),
    parameters=[
        ParameterSchema(
            name="path",
            type="string",
            description='Relative path to the directory. Use "" or "." for workspace root.',
            required=True,
        ),
        ParameterSchema(name="recursive", type="boolean", description="List recursively up to 4 levels deep (default: false)"),
    ],
    category=ToolCategory.NAVIGATION,
)

SEARCH_FILES_SCHEMA = ToolSchema(
    name="search_files",
    description=(
        "Search for files matching a glob pattern. Returns matching file paths. "
        'Examples: "**/*.ts", "src/**/*.py", "**/package.json", "**/*test*"'
    ),
    parameters=[
        ParameterSchema(name="pattern", type="string", description="Glob pattern to search for", required=True),
        ParameterSchema(name="maxResults", type="number", description="Maximum results to return (default: 30)", minimum=1),
    ],
    category=ToolCategory.SEARCH,
)

GREP_SEARCH_SCHEMA = ToolSchema(
    name="grep_search",
    description=(
        "Search for text or regex patterns across workspace files. "
        "Returns matching lines with file paths and line numbers. "
        "Use this to find usages, references, definitions, or any text pattern."
    ),
    parameters=[
        ParameterSchema(name="query", type="string", description="Text or regex pattern to search for", required=True),
        ParameterSchema(name="isRegex", type="boolean", description="Whether the query is a regular expression (default: false)"),
        ParameterSchema(
            name="includePattern",
            type="string",
            description='Glob pattern to limit search scope (e.g., "**/*.ts", "src/**")',
        ),
        ParameterSchema(name="maxResults", type="number", description="Maximum results (default: 50)", minimum=1),
    ],
    category=ToolCategory.SEARCH,
)

RUN_COMMAND_SCHEMA = ToolSchema(
    name="run_command",
    description=(
        "Execute a shell command in the workspace directory. "
        "Use for builds, tests, linting, git operations, package management, etc. "
        "Returns stdout, stderr, and exit code."
    ),
    parameters=[
        ParameterSchema(name="command", type="string", description="The shell command to execute", required=True),
        ParameterSchema(name="timeout", type="number", description="Timeout in milliseconds (default: 30000)", minimum=1),
    ],
    category=ToolCategory.EXECUTION,
)

GET_DIAGNOSTICS_SCHEMA = ToolSchema(
    name="get_diagnostics",
    description=(
        "Get editor diagnostics (errors, warnings, info) for a specific file "
        "or the entire workspace. Use after edits to verify correctness."
    ),
    parameters=[
        ParameterSchema(
            name="path",
            type="string",
            description='Relative path to check. Omit or use "" for all workspace diagnostics.',
        ),
    ],
    category=ToolCategory.DIAGNOSTICS,
)

WEB_SEARCH_SCHEMA = ToolSchema(
    name="web_search",
    description=(
        "Search the web using DuckDuckGo. Returns relevant search result snippets. "
        "Use this to look up documentation, find solutions, research APIs, "
        "or get information not available in the workspace."
    ),
    parameters=[
        ParameterSchema(
            name="query",
            type="string",
            description="Search query; be specific and include library/framework names",
            required=True,
        ),
        ParameterSchema(
            name="maxResults",
            type="number",
            description="Maximum results to return (default: 5, max: 10)",
            minimum=1,
            maximum=10,
        ),
    ],
    category=ToolCategory.WEB,
)

FETCH_WEBPAGE_SCHEMA = ToolSchema(
    name="fetch_webpage",
    description=(
        "Fetch the text content of a URL. Strips HTML tags and returns readable text. "
        "Use this to read documentation pages, API references, READMEs, or any web page. "
        "Combine with web_search: search first, then fetch the most relevant URLs."
    ),
    parameters=[
        ParameterSchema(
            name="url",
            type="string",
            description="Full URL to fetch (must start with http:// or https://)",
            required=True,
        ),
        ParameterSchema(
            name="maxLength",
            type="number",
            description="Maximum characters to return (default: 15000)",
            minimum=1,
            maximum=50_000,
        ),
    ],
    category=ToolCategory.WEB,
)

TOOL_SCHEMAS: tuple[ToolSchema, ...] = (
    READ_FILE_SCHEMA,
    WRITE_FILE_SCHEMA,
    EDIT_FILE_SCHEMA,
    MULTI_EDIT_FILES_SCHEMA,
    LIST_DIRECTORY_SCHEMA,
    SEARCH_FILES_SCHEMA,
    GREP_SEARCH_SCHEMA,
    RUN_COMMAND_SCHEMA,
    GET_DIAGNOSTICS_SCHEMA,
    WEB_SEARCH_SCHEMA,
    FETCH_WEBPAGE_SCHEMA,
)


def build_default_registry(
    *,
    disabled: Sequence[str] = (),
    command_limits: Mapping[str, int] | None = None,
) -> ToolRegistry:
    """Create a registry holding the full workspace tool catalog.

    Args:
        disabled: Tool names to register but leave disabled.
        command_limits: Optional ``max_buffer``/``stdout_limit``/``stderr_limit``/``default_timeout_ms``
            overrides for ``run_command``.
    """
    from .command_tool import RunCommandTool
    from .file_tools import EditFileTool, MultiEditFilesTool, ReadFileTool, WriteFileTool
    from .search_tools import GetDiagnosticsTool, GrepSearchTool, ListDirectoryTool, SearchFilesTool
    from .web_tools import FetchWebpageTool, WebSearchTool

    implementations: dict[str, BaseTool] = {
        "read_file": ReadFileTool(),
        "write_file": WriteFileTool(),
        "edit_file": EditFileTool(),
        "multi_edit_files": MultiEditFilesTool(),
        "list_directory": ListDirectoryTool(),
        "search_files": SearchFilesTool(),
        "grep_search": GrepSearchTool(),
        "run_command": RunCommandTool(**dict(command_limits or {})),
        "get_diagnostics": GetDiagnosticsTool(),
        "web_search": WebSearchTool(),
        "fetch_webpage": FetchWebpageTool(),
    }
    registry = ToolRegistry()
    disabled_names = set(disabled)
    for schema in TOOL_SCHEMAS:
        registry.register(implementations[schema.name], schema=schema, enabled=schema.name not in disabled_names)
    return registry


__all__ = [
    "ToolCategory",
    "ParameterSchema",
    "ToolSchema",
    "ToolRegistration",
    "RegistrationError",
    "ToolRegistry",
    "TOOL_SCHEMAS",
    "build_default_registry",
]
