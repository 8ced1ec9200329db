"""Bridge between the editor's diagnostics engine and the agent tools."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Awaitable, Protocol, Sequence

from .paths import PathResolver

LOGGER = logging.getLogger(__name__)

QUICK_CHECK_DELAY = 0.5


class DiagnosticSeverity(IntEnum):
    """Severity levels, ordered the way editors report them."""

    ERROR = 0
    WARNING = 1
    INFORMATION = 2
    HINT = 3

    @property
    def label(self) -> str:
        if self is DiagnosticSeverity.ERROR:
            return "ERROR"
        if self is DiagnosticSeverity.WARNING:
            return "WARN"
        return "INFO"


@dataclass(slots=True, frozen=True)
class Diagnostic:
    """A single problem reported by the host.

    ``line`` and ``character`` are zero-based, as editors store them; they
    are rendered one-based.
    """

    path: str
    line: int
    character: int
    severity: DiagnosticSeverity
    message: str


class DiagnosticsProvider(Protocol):
    """Host diagnostics source, polled after edits.

    With ``path`` returns the diagnostics for that absolute path; without it,
    every diagnostic the host currently knows about. May be sync or async.
    """

    def get_diagnostics(self, path: str | None = None) -> Sequence[Diagnostic] | Awaitable[Sequence[Diagnostic]]:
        ...


class NullDiagnosticsProvider:
    """Provider used when no editor is attached."""

    def get_diagnostics(self, path: str | None = None) -> Sequence[Diagnostic]:
        return []


class DiagnosticsBridge:
    """Queries the host for diagnostics and renders them for the model."""

    def __init__(
        self,
        provider: DiagnosticsProvider | None,
        resolver: PathResolver,
        *,
        delay: float = QUICK_CHECK_DELAY,
    ) -> None:
        self._provider = provider or NullDiagnosticsProvider()
        self._resolver = resolver
        self._delay = max(0.0, delay)

    async def fetch(self, path: str | None = None) -> list[Diagnostic]:
        """Return diagnostics for ``path`` (absolute) or the whole workspace."""

        result = self._provider.get_diagnostics(path)
        if hasattr(result, "__await__"):
            result = await result
        return list(result or [])

    async def quick_check(self, path: str) -> str | None:
        """Return error/warning lines for ``path`` after a short settle delay.

        ``None`` means clean or unavailable. Never raises.
        """

        try:
            absolute = self._resolver.resolve(path)
            if self._delay:
                await asyncio.sleep(self._delay)
            diagnostics = await self.fetch(absolute)
        except asyncio.CancelledError:
            raise
        except Exception:
            LOGGER.debug("Quick diagnostics check failed for %s", path, exc_info=True)
            return None
        problems = [
            d for d in diagnostics if d.severity in (DiagnosticSeverity.ERROR, DiagnosticSeverity.WARNING)
        ]
        if not problems:
            return None
        return "\n".join(f"  Line {d.line + 1}: [{d.severity.label}] {d.message}" for d in problems)

    def format_listing(self, diagnostics: Sequence[Diagnostic]) -> str:
        """Render diagnostics as ``rel:line:col: [SEVERITY] message`` lines."""

        if not diagnostics:
            return "No diagnostics (no errors or warnings)."
        lines = [
            f"{self._resolver.relative(d.path)}:{d.line + 1}:{d.character + 1}: [{d.severity.label}] {d.message}"
            for d in diagnostics
        ]
        return f"{len(lines)} diagnostic(s):\n" + "\n".join(lines)


__all__ = [
    "QUICK_CHECK_DELAY",
    "DiagnosticSeverity",
    "Diagnostic",
    "DiagnosticsProvider",
    "NullDiagnosticsProvider",
    "DiagnosticsBridge",
]
