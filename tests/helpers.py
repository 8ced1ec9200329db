"""Shared test helpers and stub classes.

This module contains reusable fakes for the host services the tools depend
on. Import from here instead of duplicating these classes in test files.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from deepcode.ai.tools.command_tool import ProcessOutput
from deepcode.ai.tools.diagnostics import Diagnostic, DiagnosticSeverity
from deepcode.ai.tools.errors import NetworkError, ProcessError


class FakeDiagnosticsProvider:
    """Diagnostics keyed by absolute path; ``fail`` makes every query raise."""

    def __init__(self, diagnostics: Mapping[str, Sequence[Diagnostic]] | None = None) -> None:
        self.diagnostics: dict[str, list[Diagnostic]] = {k: list(v) for k, v in (diagnostics or {}).items()}
        self.fail = False
        self.queries: list[str | None] = []

    def add(self, path: str, line: int, message: str, severity: DiagnosticSeverity = DiagnosticSeverity.ERROR) -> None:
        self.diagnostics.setdefault(path, []).append(
            Diagnostic(path=path, line=line, character=0, severity=severity, message=message)
        )

    def get_diagnostics(self, path: str | None = None) -> list[Diagnostic]:
        self.queries.append(path)
        if self.fail:
            raise RuntimeError("diagnostics engine unavailable")
        if path is None:
            return [d for items in self.diagnostics.values() for d in items]
        return list(self.diagnostics.get(path, []))


class FakeProcessRunner:
    """Returns canned outputs in order, or raises when an entry is an exception."""

    def __init__(self, *outputs: ProcessOutput | Exception) -> None:
        self._outputs = list(outputs)
        self.calls: list[dict[str, Any]] = []

    async def run(self, command, *, cwd, timeout, shell=False, env=None, max_buffer=0) -> ProcessOutput:
        self.calls.append(
            {"command": command, "cwd": cwd, "timeout": timeout, "shell": shell, "env": env, "max_buffer": max_buffer}
        )
        if not self._outputs:
            raise ProcessError(message="no canned output", command=str(command))
        outcome = self._outputs.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeHttpFetcher:
    """Serves bodies by URL prefix; unknown URLs raise ``NetworkError``."""

    def __init__(self, pages: Mapping[str, str] | None = None) -> None:
        self.pages = dict(pages or {})
        self.requests: list[str] = []

    async def get(self, url: str, *, timeout: float = 15.0) -> str:
        self.requests.append(url)
        for prefix, body in self.pages.items():
            if url.startswith(prefix):
                return body
        raise NetworkError(message="HTTP 404", url=url, status_code=404)


class RecordingViewOpener:
    def __init__(self, *, fail: bool = False) -> None:
        self.opened: list[str] = []
        self.fail = fail

    async def open(self, path: str) -> None:
        self.opened.append(path)
        if self.fail:
            raise RuntimeError("editor closed")
