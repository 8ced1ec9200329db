"""Base classes for agent tools.

This module provides the result containers, the runtime context handed to
every tool, and the abstract base class that standardizes how a tool turns
raw model arguments into a typed request and a :class:`ToolResult`.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Mapping, Protocol

from .diagnostics import DiagnosticsBridge
from .paths import PathResolver
from .workspace import WorkspaceFileSystem

if TYPE_CHECKING:
    from .command_tool import ProcessRunner
    from .web_tools import HttpFetcher

LOGGER = logging.getLogger(__name__)


class ViewOpener(Protocol):
    """Optional host hook that reveals a freshly written file in an editor view."""

    async def open(self, path: str) -> None:
        ...


@dataclass(slots=True, frozen=True)
class ChangedFile:
    """Record of a file mutated by a tool call.

    ``original_content`` is captured before the write and is the only channel
    the host has for undo and diff display.

    Attributes:
        rel_path: Workspace-relative path of the file.
        original_content: File text before the mutation ("" for new files).
        added: Number of lines added by the mutation.
        removed: Number of lines removed by the mutation.
    """

    rel_path: str
    original_content: str
    added: int = 0
    removed: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "relPath": self.rel_path,
            "originalContent": self.original_content,
            "added": self.added,
            "removed": self.removed,
        }


@dataclass(slots=True)
class ToolResult:
    """Standardized result container for tool execution.

    Attributes:
        success: Whether the tool completed successfully.
        output: Human/model-readable output text.
        changed_files: Files mutated by the call, in write order.
        partial: Set by batch edits when some edits applied and some missed.
    """

    success: bool
    output: str
    changed_files: list[ChangedFile] = field(default_factory=list)
    partial: bool = False

    @classmethod
    def failure(cls, output: str) -> "ToolResult":
        return cls(success=False, output=output)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the result for JSON responses."""
        data: dict[str, Any] = {"success": self.success, "output": self.output}
        if self.changed_files:
            data["changedFiles"] = [entry.to_dict() for entry in self.changed_files]
        return data


@dataclass(slots=True)
class ToolContext:
    """Runtime services provided to tool execution.

    Attributes:
        resolver: Sandboxes model-supplied paths to the workspace.
        file_system: Host file-system access.
        diagnostics: Polls the host diagnostics engine.
        process_runner: Runs shell commands (``run_command``, ``grep_search``).
        http_fetcher: Fetches web content (``web_search``, ``fetch_webpage``).
        view_opener: Optional post-write editor hook.
    """

    resolver: PathResolver
    file_system: WorkspaceFileSystem
    diagnostics: DiagnosticsBridge
    process_runner: "ProcessRunner | None" = None
    http_fetcher: "HttpFetcher | None" = None
    view_opener: ViewOpener | None = None

    @property
    def workspace_root(self) -> str:
        return self.resolver.root

    async def open_in_view(self, path: str) -> None:
        """Reveal ``path`` in the host editor; failures are logged and ignored."""

        if self.view_opener is None:
            return
        try:
            await self.view_opener.open(path)
        except Exception:
            LOGGER.debug("View opener failed for %s", path, exc_info=True)


class BaseTool(ABC):
    """Abstract base class for all agent tools.

    Subclasses declare:
    - ``name``: tool identifier exposed to the model
    - ``request_type``: typed request with a ``from_args`` constructor
    - ``mutates``: whether the tool writes workspace files
    - ``execute()``: the core tool logic

    Errors are raised as :class:`~deepcode.ai.tools.errors.ToolError`; the
    dispatcher turns them into failed results.
    """

    name: ClassVar[str] = ""
    request_type: ClassVar[Any] = None
    mutates: ClassVar[bool] = False
    # Batch mutators report diagnostics for several files under one header.
    batch_diagnostics: ClassVar[bool] = False

    def parse(self, args: Mapping[str, Any]) -> Any:
        """Resolve raw model arguments into the tool's typed request."""
        return self.request_type.from_args(args or {})

    async def run(self, context: ToolContext, args: Mapping[str, Any]) -> ToolResult:
        return await self.execute(context, self.parse(args))

    @abstractmethod
    async def execute(self, context: ToolContext, request: Any) -> ToolResult:
        """Execute the tool's core logic.

        Raises:
            ToolError: For expected error conditions.
            Exception: For unexpected errors (wrapped by the dispatcher).
        """
        ...


__all__ = ["ViewOpener", "ChangedFile", "ToolResult", "ToolContext", "BaseTool"]
