"""Tests for listing, file search, grep and diagnostics tools."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import pytest

from deepcode.ai.orchestration.tool_dispatcher import ToolDispatcher
from deepcode.ai.tools.command_tool import ProcessOutput
from deepcode.ai.tools.diagnostics import DiagnosticSeverity
from tests.helpers import FakeProcessRunner


def _dispatcher_with_runner(tool_context, *outputs) -> tuple[ToolDispatcher, FakeProcessRunner]:
    runner = FakeProcessRunner(*outputs)
    return ToolDispatcher(context=replace(tool_context, process_runner=runner)), runner


# =============================================================================
# list_directory
# =============================================================================


@pytest.mark.asyncio
async def test_list_directory_puts_directories_first(dispatcher: ToolDispatcher, workspace: Path) -> None:
    (workspace / "node_modules").mkdir()

    result = await dispatcher.execute("list_directory", {})

    assert result.success
    assert result.output == "Directory: .\n\nsrc/\nREADME.md"


@pytest.mark.asyncio
async def test_list_directory_recursive_indents(dispatcher: ToolDispatcher) -> None:
    result = await dispatcher.execute("list_directory", {"path": "", "recursive": "true"})

    assert result.output == "Directory: .\n\nsrc/\n  helper.ts\n  index.ts\nREADME.md"


@pytest.mark.asyncio
async def test_list_directory_missing(dispatcher: ToolDispatcher) -> None:
    result = await dispatcher.execute("list_directory", {"dirPath": "nope"})

    assert result.success
    assert result.output == 'Directory "nope" is empty or does not exist.'


# =============================================================================
# search_files
# =============================================================================


@pytest.mark.asyncio
async def test_search_files_by_glob(dispatcher: ToolDispatcher) -> None:
    result = await dispatcher.execute("search_files", {"pattern": "**/*.ts"})

    assert result.output == "Found 2 file(s):\nsrc/helper.ts\nsrc/index.ts"


@pytest.mark.asyncio
async def test_search_files_respects_limit_and_excludes(dispatcher: ToolDispatcher, workspace: Path) -> None:
    (workspace / "node_modules" / "lib").mkdir(parents=True)
    (workspace / "node_modules" / "lib" / "dep.ts").write_text("x", encoding="utf-8")

    limited = await dispatcher.execute("search_files", {"pattern": "**/*.ts", "maxResults": 1})
    unmatched = await dispatcher.execute("search_files", {"pattern": "**/*.rs"})

    assert limited.output == "Found 1 file(s):\nsrc/helper.ts"
    assert unmatched.output == 'No files found matching "**/*.rs".'


@pytest.mark.asyncio
async def test_search_files_requires_pattern(dispatcher: ToolDispatcher) -> None:
    result = await dispatcher.execute("search_files", {})

    assert not result.success
    assert '"pattern" argument is required' in result.output


# =============================================================================
# grep_search
# =============================================================================


@pytest.mark.asyncio
async def test_grep_uses_ripgrep_output(tool_context, workspace: Path) -> None:
    dispatcher, runner = _dispatcher_with_runner(
        tool_context, ProcessOutput(stdout="src/a.ts:1:foo\nsrc/b.ts:9:  foo()\n\n", stderr="", exit_code=0)
    )

    result = await dispatcher.execute("grep_search", {"query": "foo", "includePattern": "**/*.ts"})

    assert result.output == "Found 2 match(es):\nsrc/a.ts:1:foo\nsrc/b.ts:9:  foo()"
    [call] = runner.calls
    argv = call["command"]
    assert argv[0] == "rg"
    assert "--fixed-strings" in argv
    assert argv[-2:] == ["--", "foo"]
    assert ["--glob", "**/*.ts"] == argv[argv.index("**/*.ts") - 1 : argv.index("**/*.ts") + 1]
    assert call["cwd"] == str(workspace)


@pytest.mark.asyncio
async def test_grep_regex_omits_fixed_strings(tool_context) -> None:
    dispatcher, runner = _dispatcher_with_runner(tool_context, ProcessOutput(stdout="", stderr="", exit_code=1))

    result = await dispatcher.execute("grep_search", {"query": "fo+", "isRegex": True})

    assert result.output == "No matches found."
    assert "--fixed-strings" not in runner.calls[0]["command"]


@pytest.mark.asyncio
async def test_grep_falls_back_when_ripgrep_missing(dispatcher: ToolDispatcher) -> None:
    result = await dispatcher.execute("grep_search", {"query": "todo"})

    assert result.output == "Found 1 match(es):\nREADME.md:3: A TODO list lives here."


@pytest.mark.asyncio
async def test_grep_falls_back_on_ripgrep_error_exit(tool_context) -> None:
    dispatcher, _ = _dispatcher_with_runner(tool_context, ProcessOutput(stdout="", stderr="bad", exit_code=2))

    result = await dispatcher.execute("grep_search", {"query": "helper", "include": "**/*.ts"})

    assert result.output == (
        "Found 3 match(es):\n"
        "src/helper.ts:1: export function helper(value: number) {\n"
        "src/index.ts:1: import { helper } from './helper';\n"
        "src/index.ts:4: return helper(1);"
    )


@pytest.mark.asyncio
async def test_grep_fallback_regex_and_limit(dispatcher: ToolDispatcher) -> None:
    result = await dispatcher.execute("grep_search", {"query": r"^export\s", "isRegex": "yes", "maxResults": 1})

    assert result.output == "Found 1 match(es):\nsrc/helper.ts:1: export function helper(value: number) {"


@pytest.mark.asyncio
async def test_grep_fallback_invalid_regex_fails(dispatcher: ToolDispatcher) -> None:
    result = await dispatcher.execute("grep_search", {"query": "(", "isRegex": True})

    assert not result.success
    assert result.output.startswith('Tool "grep_search" error: Invalid regular expression')


# =============================================================================
# get_diagnostics
# =============================================================================


@pytest.mark.asyncio
async def test_get_diagnostics_empty(dispatcher: ToolDispatcher, diagnostics_provider) -> None:
    result = await dispatcher.execute("get_diagnostics", {})

    assert result.output == "No diagnostics (no errors or warnings)."
    assert diagnostics_provider.queries == [None]


@pytest.mark.asyncio
async def test_get_diagnostics_for_file(dispatcher: ToolDispatcher, diagnostics_provider, workspace: Path) -> None:
    target = str(workspace / "src" / "helper.ts")
    diagnostics_provider.add(target, 1, "Missing semicolon.", DiagnosticSeverity.WARNING)
    diagnostics_provider.add(str(workspace / "src" / "index.ts"), 0, "Other file.")

    result = await dispatcher.execute("get_diagnostics", {"path": "src/helper.ts"})

    assert result.output == "1 diagnostic(s):\nsrc/helper.ts:2:1: [WARN] Missing semicolon."
    assert diagnostics_provider.queries == [target]
