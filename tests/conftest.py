"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from deepcode.ai.orchestration.tool_dispatcher import ToolDispatcher
from deepcode.ai.services.telemetry import InMemoryTelemetrySink
from deepcode.ai.tools.base import ToolContext
from deepcode.ai.tools.diagnostics import DiagnosticsBridge
from deepcode.ai.tools.paths import PathResolver
from deepcode.ai.tools.workspace import LocalFileSystem
from tests.helpers import FakeDiagnosticsProvider, FakeHttpFetcher, FakeProcessRunner, RecordingViewOpener


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    root = tmp_path / "ws"
    (root / "src").mkdir(parents=True)
    (root / "src" / "index.ts").write_text(
        "import { helper } from './helper';\n\nexport function main() {\n  return helper(1);\n}\n",
        encoding="utf-8",
    )
    (root / "src" / "helper.ts").write_text(
        "export function helper(value: number) {\n  return value + 1;\n}\n",
        encoding="utf-8",
    )
    (root / "README.md").write_text("# Demo\n\nA TODO list lives here.\n", encoding="utf-8")
    return root


@pytest.fixture
def resolver(workspace: Path) -> PathResolver:
    return PathResolver(str(workspace))


@pytest.fixture
def diagnostics_provider() -> FakeDiagnosticsProvider:
    return FakeDiagnosticsProvider()


@pytest.fixture
def process_runner() -> FakeProcessRunner:
    return FakeProcessRunner()


@pytest.fixture
def http_fetcher() -> FakeHttpFetcher:
    return FakeHttpFetcher()


@pytest.fixture
def view_opener() -> RecordingViewOpener:
    return RecordingViewOpener()


@pytest.fixture
def tool_context(
    resolver: PathResolver,
    diagnostics_provider: FakeDiagnosticsProvider,
    process_runner: FakeProcessRunner,
    http_fetcher: FakeHttpFetcher,
    view_opener: RecordingViewOpener,
) -> ToolContext:
    return ToolContext(
        resolver=resolver,
        file_system=LocalFileSystem(),
        diagnostics=DiagnosticsBridge(diagnostics_provider, resolver, delay=0),
        process_runner=process_runner,
        http_fetcher=http_fetcher,
        view_opener=view_opener,
    )


@pytest.fixture
def dispatcher(tool_context: ToolContext) -> ToolDispatcher:
    return ToolDispatcher(context=tool_context)


@pytest.fixture
def telemetry_sink():
    sink = InMemoryTelemetrySink()
    yield sink
    sink.close()
