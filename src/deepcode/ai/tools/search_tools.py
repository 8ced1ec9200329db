"""Read-only workspace inspection tools: listings, file and text search, diagnostics."""

from __future__ import annotations

import logging
import os
import re

from .arguments import DiagnosticsRequest, GrepRequest, ListDirectoryRequest, SearchFilesRequest
from .base import BaseTool, ToolContext, ToolResult
from .command_tool import AsyncProcessRunner
from .errors import PatternError, ProcessError
from .workspace import DEFAULT_EXCLUDED_DIRS, FileType, decode_text, sort_directory_entries

LOGGER = logging.getLogger(__name__)

SEARCH_EXCLUDES = ("node_modules", ".git", "out", "dist")
RECURSIVE_DEPTH = 4
FALLBACK_FILE_LIMIT = 200
RG_TIMEOUT_SECONDS = 15.0
_RG_EXCLUDE_GLOBS = ("!node_modules", "!.git", "!out", "!dist", "!*.min.js", "!*.map")


class ListDirectoryTool(BaseTool):
    """Lists a directory, directories first, optionally four levels deep."""

    name = "list_directory"
    request_type = ListDirectoryRequest

    async def execute(self, context: ToolContext, request: ListDirectoryRequest) -> ToolResult:
        absolute = context.resolver.resolve(request.path)
        lines: list[str] = []
        await self._walk(context, absolute, "", RECURSIVE_DEPTH if request.recursive else 1, lines)
        if not lines:
            return ToolResult(success=True, output=f'Directory "{request.path}" is empty or does not exist.')
        return ToolResult(success=True, output=f"Directory: {request.path}\n\n" + "\n".join(lines))

    async def _walk(self, context: ToolContext, directory: str, prefix: str, depth: int, out: list[str]) -> None:
        if depth <= 0:
            return
        try:
            entries = await context.file_system.read_directory(directory)
        except OSError:
            LOGGER.debug("Could not list %s", directory, exc_info=True)
            return
        for name, kind in sort_directory_entries(entries):
            if name in DEFAULT_EXCLUDED_DIRS:
                continue
            is_dir = kind is FileType.DIRECTORY
            out.append(f"{prefix}{name}/" if is_dir else f"{prefix}{name}")
            if is_dir and depth > 1:
                await self._walk(context, os.path.join(directory, name), prefix + "  ", depth - 1, out)


class SearchFilesTool(BaseTool):
    """Finds workspace files by glob pattern."""

    name = "search_files"
    request_type = SearchFilesRequest

    async def execute(self, context: ToolContext, request: SearchFilesRequest) -> ToolResult:
        found = await context.file_system.find_files(
            context.workspace_root,
            request.pattern,
            exclude=SEARCH_EXCLUDES,
            limit=max(1, request.max_results),
        )
        paths = [context.resolver.relative(path) for path in found]
        if not paths:
            return ToolResult(success=True, output=f'No files found matching "{request.pattern}".')
        return ToolResult(success=True, output=f"Found {len(paths)} file(s):\n" + "\n".join(paths))


class GrepSearchTool(BaseTool):
    """Searches file contents with ripgrep, falling back to an in-process scan."""

    name = "grep_search"
    request_type = GrepRequest

    async def execute(self, context: ToolContext, request: GrepRequest) -> ToolResult:
        limit = max(1, request.max_results)
        runner = context.process_runner or AsyncProcessRunner()
        try:
            result = await runner.run(
                self._rg_args(request, limit),
                cwd=context.workspace_root,
                timeout=RG_TIMEOUT_SECONDS,
            )
        except ProcessError:
            LOGGER.debug("ripgrep unavailable; using in-process search", exc_info=True)
            return await self.fallback(context, request, limit)

        if result.exit_code not in (0, 1):
            LOGGER.debug("ripgrep exited with %s; using in-process search", result.exit_code)
            return await self.fallback(context, request, limit)
        matches = [line for line in result.stdout.split("\n") if line.strip()][:limit]
        return ToolResult(success=True, output=_format_matches(matches))

    @staticmethod
    def _rg_args(request: GrepRequest, limit: int) -> list[str]:
        args = ["rg", "--line-number", "--no-heading", "--color", "never", "--max-count", str(limit), "-i"]
        if not request.is_regex:
            args.append("--fixed-strings")
        if request.include_pattern:
            args.extend(["--glob", request.include_pattern])
        for glob in _RG_EXCLUDE_GLOBS:
            args.extend(["--glob", glob])
        args.extend(["--", request.query])
        return args

    async def fallback(self, context: ToolContext, request: GrepRequest, limit: int) -> ToolResult:
        """Case-insensitive literal or regex scan over a bounded file set."""

        matcher = _line_matcher(request)
        files = await context.file_system.find_files(
            context.workspace_root,
            request.include_pattern or "**/*",
            exclude=SEARCH_EXCLUDES,
            limit=FALLBACK_FILE_LIMIT,
        )
        matches: list[str] = []
        for path in files:
            if len(matches) >= limit:
                break
            try:
                text = decode_text(await context.file_system.read(path))
            except OSError:
                LOGGER.debug("Skipping unreadable file %s", path, exc_info=True)
                continue
            if "\0" in text:
                continue
            rel_path = context.resolver.relative(path)
            for number, line in enumerate(text.split("\n"), start=1):
                if len(matches) >= limit:
                    break
                if matcher(line):
                    matches.append(f"{rel_path}:{number}: {line.strip()}")
        return ToolResult(success=True, output=_format_matches(matches))


def _line_matcher(request: GrepRequest):
    if request.is_regex:
        try:
            pattern = re.compile(request.query, re.IGNORECASE)
        except re.error as exc:
            raise PatternError(message=f"Invalid regular expression {request.query!r}: {exc}") from exc
        return lambda line: pattern.search(line) is not None
    needle = request.query.lower()
    return lambda line: needle in line.lower()


def _format_matches(matches: list[str]) -> str:
    if not matches:
        return "No matches found."
    return f"Found {len(matches)} match(es):\n" + "\n".join(matches)


class GetDiagnosticsTool(BaseTool):
    """Lists host diagnostics for one file or the whole workspace."""

    name = "get_diagnostics"
    request_type = DiagnosticsRequest

    async def execute(self, context: ToolContext, request: DiagnosticsRequest) -> ToolResult:
        absolute = context.resolver.resolve(request.path) if request.path else None
        diagnostics = await context.diagnostics.fetch(absolute)
        return ToolResult(success=True, output=context.diagnostics.format_listing(diagnostics))


__all__ = [
    "ListDirectoryTool",
    "SearchFilesTool",
    "GrepSearchTool",
    "GetDiagnosticsTool",
]
