"""Tool dispatcher for model-issued tool calls.

Routes each call to its registered tool, normalizes its arguments, runs the
post-mutation diagnostics pass, and converts every failure into a failed
:class:`~deepcode.ai.tools.base.ToolResult`. :meth:`ToolDispatcher.execute`
never raises for tool-level problems.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, Sequence

from ..services import telemetry
from ..tools.base import BaseTool, ToolContext, ToolResult
from ..tools.errors import ToolError
from ..tools.tool_registry import ToolRegistry, build_default_registry

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ToolCall:
    """A single tool invocation requested by the model."""

    name: str
    args: Mapping[str, Any] = field(default_factory=dict)
    call_id: str | None = None


class DispatchListener(Protocol):
    """Callback protocol for dispatch events."""

    def on_tool_start(self, tool_name: str, arguments: Mapping[str, Any]) -> None:
        ...

    def on_tool_complete(self, tool_name: str, result: ToolResult) -> None:
        ...


def normalize_arguments(arguments: Any) -> dict[str, Any]:
    """Coerce raw call arguments (mapping, JSON text, or ``None``) to a dict."""

    if arguments is None:
        return {}
    if isinstance(arguments, Mapping):
        return dict(arguments)
    if isinstance(arguments, (str, bytes)):
        text = arguments.decode("utf-8", errors="replace") if isinstance(arguments, bytes) else arguments
        if not text.strip():
            return {}
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            LOGGER.debug("Tool arguments are not valid JSON: %.200s", text)
            return {}
        return dict(parsed) if isinstance(parsed, Mapping) else {}
    return {}


class ToolDispatcher:
    """Dispatches tool calls to registered implementations.

    Example:
        dispatcher = ToolDispatcher(context=context)
        result = await dispatcher.execute("read_file", {"path": "src/index.ts"})
    """

    def __init__(
        self,
        *,
        context: ToolContext,
        registry: ToolRegistry | None = None,
        listener: DispatchListener | None = None,
    ) -> None:
        self._context = context
        self._registry = registry or build_default_registry()
        self._listener = listener

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def context(self) -> ToolContext:
        return self._context

    def set_listener(self, listener: DispatchListener | None) -> None:
        self._listener = listener

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def execute(self, name: str, arguments: Any = None) -> ToolResult:
        """Execute one tool call and return its result; never raises for tool errors."""

        start = time.perf_counter()
        args = normalize_arguments(arguments)
        self._notify_start(name, args)

        tool = self._registry.get_tool(name)
        if tool is None:
            result = ToolResult.failure(f"Unknown tool: {name}")
        else:
            result = await self._run(tool, name, args)

        elapsed_ms = (time.perf_counter() - start) * 1000.0
        telemetry.emit(
            telemetry.TOOL_EXECUTED,
            {
                "tool": name,
                "success": result.success,
                "duration_ms": round(elapsed_ms, 3),
                "changed_files": len(result.changed_files),
                "output_chars": len(result.output),
            },
        )
        self._notify_complete(name, result)
        return result

    async def execute_batch(self, calls: Sequence[ToolCall | tuple[str, Any]]) -> list[ToolResult]:
        """Run the independent calls of one turn concurrently, preserving call order."""

        normalized = [call if isinstance(call, ToolCall) else ToolCall(call[0], call[1]) for call in calls]
        if not normalized:
            return []
        return list(await asyncio.gather(*(self.execute(call.name, call.args) for call in normalized)))

    async def _run(self, tool: BaseTool, name: str, args: dict[str, Any]) -> ToolResult:
        try:
            result = await tool.run(self._context, args)
            if tool.mutates and result.success and result.changed_files:
                result.output += await self._diagnostics_suffix(tool, result)
            return result
        except asyncio.CancelledError:
            raise
        except ToolError as exc:
            LOGGER.debug("Tool %s failed: %s", name, exc.to_dict())
            return ToolResult.failure(f'Tool "{name}" error: {exc.message}')
        except Exception as exc:
            LOGGER.exception("Tool %s failed unexpectedly", name)
            return ToolResult.failure(f'Tool "{name}" error: {exc}')

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    async def _diagnostics_suffix(self, tool: BaseTool, result: ToolResult) -> str:
        paths = [changed.rel_path for changed in result.changed_files]
        reports = await asyncio.gather(*(self._context.diagnostics.quick_check(path) for path in paths))
        found = [(path, report) for path, report in zip(paths, reports) if report]
        if not found:
            return ""
        if tool.batch_diagnostics:
            body = "\n".join(f"{path}:\n{report}" for path, report in found)
            return f"\n\n--- Auto-diagnostics ---\n{body}\nIf there are errors above, fix them now with another edit call."
        return "".join(
            f"\n\n--- Auto-diagnostics for {path} ---\n{report}"
            "\nIf there are errors above, fix them now with another edit_file call."
            for path, report in found
        )

    # ------------------------------------------------------------------
    # Listener
    # ------------------------------------------------------------------

    def _notify_start(self, name: str, args: Mapping[str, Any]) -> None:
        if self._listener:
            try:
                self._listener.on_tool_start(name, args)
            except Exception:
                LOGGER.debug("Listener on_tool_start failed", exc_info=True)

    def _notify_complete(self, name: str, result: ToolResult) -> None:
        if self._listener:
            try:
                self._listener.on_tool_complete(name, result)
            except Exception:
                LOGGER.debug("Listener on_tool_complete failed", exc_info=True)


__all__ = ["ToolCall", "DispatchListener", "normalize_arguments", "ToolDispatcher"]
