"""Per-conversation wiring of dispatcher, rolling context and prompt budget."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from ...services.settings import Settings
from ..services.context_compressor import ContextCompressor
from ..tools.arguments import COMMAND_KEYS, PATH_KEYS, PATTERN_KEYS, QUERY_KEYS, URL_KEYS, pick
from ..tools.base import ToolContext, ToolResult, ViewOpener
from ..tools.command_tool import AsyncProcessRunner, ProcessRunner
from ..tools.diagnostics import DiagnosticsBridge, DiagnosticsProvider
from ..tools.paths import PathResolver
from ..tools.tool_registry import build_default_registry
from ..tools.web_tools import HttpFetcher, HttpxFetcher
from ..tools.workspace import LocalFileSystem
from .budget_manager import BudgetComponents, BudgetResult, ContextBudget, HistoryTurn
from .rolling_context import OperationOutcome, RollingContext, Summarizer
from .tool_dispatcher import ToolCall, ToolDispatcher, normalize_arguments

LOGGER = logging.getLogger(__name__)

NOTES_CHARS = 200


class AgentSession:
    """One active conversation: tool calls, turns, and the budgeted prompt.

    Example:
        session = AgentSession(dispatcher=dispatcher, summarizer=client.summarize)
        result = await session.run_tool("read_file", {"path": "src/app.py"})
        prompt = session.build_prompt(SYSTEM_PROMPT, tool_results=result.output)
    """

    def __init__(
        self,
        *,
        dispatcher: ToolDispatcher,
        rolling_context: RollingContext | None = None,
        budget: ContextBudget | None = None,
        compressor: ContextCompressor | None = None,
        summarizer: Summarizer | None = None,
        skeleton_chars: int | None = None,
        agent_type: str = "orchestrator",
    ) -> None:
        self._dispatcher = dispatcher
        self._context = rolling_context or RollingContext()
        self._budget = budget or ContextBudget()
        self._compressor = compressor or ContextCompressor()
        self._summarizer = summarizer
        self._skeleton_chars = skeleton_chars
        self._agent_type = agent_type

    @property
    def dispatcher(self) -> ToolDispatcher:
        return self._dispatcher

    @property
    def rolling_context(self) -> RollingContext:
        return self._context

    @property
    def budget(self) -> ContextBudget:
        return self._budget

    # ------------------------------------------------------------------
    # Tools
    # ------------------------------------------------------------------

    async def run_tool(self, name: str, arguments: Any = None) -> ToolResult:
        args = normalize_arguments(arguments)
        result = await self._dispatcher.execute(name, args)
        self._log_tool(name, args, result)
        return result

    async def run_tools(self, calls: Sequence[ToolCall]) -> list[ToolResult]:
        """Run one turn's independent calls concurrently and log each outcome."""

        normalized = [ToolCall(call.name, normalize_arguments(call.args), call.call_id) for call in calls]
        results = await self._dispatcher.execute_batch(normalized)
        for call, result in zip(normalized, results):
            self._log_tool(call.name, call.args, result)
        return results

    def has_repeated_failure(self, action: str, threshold: int = 2) -> bool:
        return self._context.has_repeated_failure(action, threshold)

    def _log_tool(self, name: str, args: Mapping[str, Any], result: ToolResult) -> None:
        outcome: OperationOutcome
        if result.partial:
            outcome = "partial"
        elif result.success:
            outcome = "success"
        else:
            outcome = "failure"
        notes = result.output.strip().split("\n", 1)[0][:NOTES_CHARS] if result.output else ""
        self._context.record_operation(
            name,
            _describe_target(args),
            outcome,
            agent_type=self._agent_type,
            notes=notes,
        )

    # ------------------------------------------------------------------
    # Conversation
    # ------------------------------------------------------------------

    def add_turn(self, role: str, content: str) -> None:
        self._context.add_turn(role, content)

    async def after_turn(self) -> bool:
        """Summarize turns that fell out of the verbatim window, if a summarizer is set."""

        if self._summarizer is None:
            return False
        return await self._context.maybe_summarize(self._summarizer)

    def build_prompt(self, system_prompt: str, *, skeletons: str = "", tool_results: str = "") -> BudgetResult:
        if skeletons and self._skeleton_chars:
            skeletons = self._compressor.compress(skeletons, self._skeleton_chars)
        components = BudgetComponents(
            system_prompt=system_prompt,
            summary=self._context.build_context(),
            skeletons=skeletons,
            tool_results=tool_results,
            history=tuple(HistoryTurn(turn.role, turn.content) for turn in self._context.raw_turns),
        )
        result = self._budget.fit(components)
        if result.dropped:
            LOGGER.info("Context trimmed to %d tokens: %s", result.total_tokens, "; ".join(result.dropped))
            self._context.record_operation(
                "budget-trim",
                "context",
                "success",
                agent_type=self._agent_type,
                notes=f"Dropped: {', '.join(result.dropped)} ({result.total_tokens} tokens remaining)",
            )
        return result


def build_session(
    settings: Settings,
    workspace_root: str,
    *,
    summarizer: Summarizer | None = None,
    diagnostics_provider: DiagnosticsProvider | None = None,
    view_opener: ViewOpener | None = None,
    process_runner: ProcessRunner | None = None,
    http_fetcher: HttpFetcher | None = None,
) -> AgentSession:
    """Wire a session over the local file system using ``settings``."""

    resolver = PathResolver(workspace_root)
    context = ToolContext(
        resolver=resolver,
        file_system=LocalFileSystem(),
        diagnostics=DiagnosticsBridge(diagnostics_provider, resolver, delay=settings.tools.diagnostics_delay),
        process_runner=process_runner or AsyncProcessRunner(),
        http_fetcher=http_fetcher or HttpxFetcher(),
        view_opener=view_opener,
    )
    registry = build_default_registry(
        disabled=settings.tools.disabled_tools,
        command_limits={
            "max_buffer": settings.tools.command_max_buffer,
            "default_timeout_ms": settings.tools.command_timeout_ms,
        },
    )
    limits = settings.context
    return AgentSession(
        dispatcher=ToolDispatcher(context=context, registry=registry),
        rolling_context=RollingContext(keep_verbatim=limits.keep_verbatim, max_summary_chars=limits.max_summary_chars),
        budget=ContextBudget(max_tokens=limits.max_tokens, chars_per_token=limits.chars_per_token),
        summarizer=summarizer,
        skeleton_chars=limits.skeleton_chars,
    )


def _describe_target(args: Mapping[str, Any]) -> str:
    files = args.get("files")
    if isinstance(files, Sequence) and not isinstance(files, (str, bytes)):
        paths = [str(pick(entry, PATH_KEYS)) for entry in files if isinstance(entry, Mapping) and pick(entry, PATH_KEYS)]
        if paths:
            return ", ".join(paths)
    for keys in (PATH_KEYS, COMMAND_KEYS, QUERY_KEYS, URL_KEYS, PATTERN_KEYS):
        value = pick(args, keys)
        if value is not None:
            return str(value)
    return ""


__all__ = ["AgentSession", "build_session"]
