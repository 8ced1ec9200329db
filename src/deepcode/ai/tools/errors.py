"""Standardized error types for agent tools.

This module provides a hierarchy of error classes with consistent
JSON serialization for tool responses. Every error raised by a tool
handler is caught at the dispatcher boundary and rendered as a failed
:class:`~deepcode.ai.tools.base.ToolResult`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar


# -----------------------------------------------------------------------------
# Error Code Constants
# -----------------------------------------------------------------------------

class ErrorCode:
    """Constants for error codes used in tool responses."""

    # Path/file errors
    PATH_OUTSIDE_WORKSPACE = "path_outside_workspace"
    PATH_REQUIRED = "path_required"
    READ_FAILED = "read_failed"
    BINARY_FILE = "binary_file"

    # Patch errors
    PATCH_MISMATCH = "patch_mismatch"

    # Search errors
    PATTERN_INVALID = "pattern_invalid"

    # Process/network errors
    PROCESS_FAILED = "process_failed"
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"

    # General errors
    INTERNAL_ERROR = "internal_error"
    INVALID_PARAMETER = "invalid_parameter"
    MISSING_PARAMETER = "missing_parameter"
    UNKNOWN_TOOL = "unknown_tool"


# -----------------------------------------------------------------------------
# Base Error Class
# -----------------------------------------------------------------------------

@dataclass
class ToolError(Exception):
    """Base exception class for all tool errors.

    Attributes:
        error_code: Machine-readable error identifier.
        message: Human-readable error description.
        details: Additional structured error information.
        suggestion: Actionable guidance for recovery.
    """

    error_code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = ""

    severity: ClassVar[str] = "error"

    def __post_init__(self) -> None:
        Exception.__init__(self, self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary for JSON tool responses."""
        result: dict[str, Any] = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = dict(self.details)
        if self.suggestion:
            result["suggestion"] = self.suggestion
        return result

    def __str__(self) -> str:
        return self.message


# -----------------------------------------------------------------------------
# Path / File Errors
# -----------------------------------------------------------------------------

@dataclass
class PathError(ToolError):
    """Raised when a path is empty or resolves outside the workspace root."""

    error_code: str = field(default=ErrorCode.PATH_OUTSIDE_WORKSPACE)
    message: str = field(default="Path is outside the workspace")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = field(default='Use a workspace-relative path such as "src/index.ts"')

    path: str | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.path is not None:
            result["path"] = self.path
        return result


@dataclass
class ReadError(ToolError):
    """Raised when a file is missing or cannot be read."""

    error_code: str = field(default=ErrorCode.READ_FAILED)
    message: str = field(default="File could not be read")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = field(default="Check the path with list_directory or search_files")

    path: str | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.path is not None:
            result["path"] = self.path
        return result


@dataclass
class PatchMismatch(ToolError):
    """Describes a single edit whose ``old_text`` was not found.

    Patch mismatches are recorded per edit and reported in the tool output;
    they never abort the remaining edits of a batch.
    """

    error_code: str = field(default=ErrorCode.PATCH_MISMATCH)
    message: str = field(default="oldText was not found in the file")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = field(
        default="oldText must be an EXACT verbatim substring. Read the file again to get precise text."
    )

    snippet: str = field(default="")
    severity: ClassVar[str] = "warning"


# -----------------------------------------------------------------------------
# Parameter Errors
# -----------------------------------------------------------------------------

@dataclass
class MissingParameterError(ToolError):
    """Raised when a required argument is absent from a tool call."""

    error_code: str = field(default=ErrorCode.MISSING_PARAMETER)
    message: str = field(default="A required parameter is missing")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = field(default="")

    parameter: str | None = field(default=None)


@dataclass
class InvalidParameterError(ToolError):
    """Raised when an argument has a shape that cannot be coerced."""

    error_code: str = field(default=ErrorCode.INVALID_PARAMETER)
    message: str = field(default="A parameter has an invalid value")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = field(default="")

    parameter: str | None = field(default=None)


@dataclass
class PatternError(ToolError):
    """Raised when a search pattern cannot be compiled."""

    error_code: str = field(default=ErrorCode.PATTERN_INVALID)
    message: str = field(default="Invalid search pattern")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = field(default="Escape special characters or set isRegex to false")


# -----------------------------------------------------------------------------
# Process / Network Errors
# -----------------------------------------------------------------------------

@dataclass
class ProcessError(ToolError):
    """Raised when a subprocess cannot be spawned or exceeds its timeout."""

    error_code: str = field(default=ErrorCode.PROCESS_FAILED)
    message: str = field(default="Process failed")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = field(default="")

    command: str | None = field(default=None)
    timed_out: bool = field(default=False)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.command is not None:
            result["command"] = self.command
        if self.timed_out:
            result["timed_out"] = True
        return result


@dataclass
class NetworkError(ToolError):
    """Raised on non-2xx responses, timeouts, or malformed HTTP responses."""

    error_code: str = field(default=ErrorCode.NETWORK_ERROR)
    message: str = field(default="Request failed")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = field(default="")

    url: str | None = field(default=None)
    status_code: int | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.url is not None:
            result["url"] = self.url
        if self.status_code is not None:
            result["status_code"] = self.status_code
        return result


__all__ = [
    "ErrorCode",
    "ToolError",
    "PathError",
    "ReadError",
    "PatchMismatch",
    "MissingParameterError",
    "InvalidParameterError",
    "PatternError",
    "ProcessError",
    "NetworkError",
]
