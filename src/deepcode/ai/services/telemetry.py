"""In-process telemetry events for the agent runtime."""

from __future__ import annotations

import logging
from collections import deque
from threading import Lock
from typing import Any, Callable, Mapping

LOGGER = logging.getLogger(__name__)

TOOL_EXECUTED = "tool_executed"
CONTEXT_BUDGET_FIT = "context_budget_fit"
CONTEXT_SUMMARIZED = "context_summarized"

_EVENT_LISTENERS: dict[str, list[Callable[[dict[str, Any]], None]]] = {}


def register_event_listener(event_name: str, callback: Callable[[dict[str, Any]], None]) -> None:
    """Register a callback invoked whenever :func:`emit` fires *event_name*."""

    if not event_name or callback is None:
        return
    listeners = _EVENT_LISTENERS.setdefault(event_name, [])
    if callback not in listeners:
        listeners.append(callback)


def unregister_event_listener(event_name: str, callback: Callable[[dict[str, Any]], None]) -> None:
    listeners = _EVENT_LISTENERS.get(event_name)
    if listeners and callback in listeners:
        listeners.remove(callback)


def emit(event_name: str, payload: Mapping[str, Any] | None = None) -> None:
    """Broadcast a structured telemetry event to in-process listeners."""

    if not event_name:
        return
    event_payload = {"event": event_name}
    if payload:
        event_payload.update(payload)
    listeners = list(_EVENT_LISTENERS.get(event_name, ()))
    for callback in listeners:
        try:
            callback(dict(event_payload))
        except Exception:  # pragma: no cover - listeners must not break emitters
            LOGGER.debug("Telemetry listener %s failed", callback, exc_info=True)
    LOGGER.debug("Telemetry emit %s: %s", event_name, event_payload)


class InMemoryTelemetrySink:
    """Ring-buffer listener for local inspection and tests."""

    def __init__(self, capacity: int = 200) -> None:
        self._buffer: deque[dict[str, Any]] = deque(maxlen=max(10, capacity))
        self._lock = Lock()
        self._subscriptions: list[str] = []

    def listen(self, *event_names: str) -> "InMemoryTelemetrySink":
        for name in event_names:
            register_event_listener(name, self.record)
            self._subscriptions.append(name)
        return self

    def close(self) -> None:
        for name in self._subscriptions:
            unregister_event_listener(name, self.record)
        self._subscriptions.clear()

    def record(self, payload: dict[str, Any]) -> None:
        with self._lock:
            self._buffer.append(payload)

    def tail(self, limit: int | None = None) -> list[dict[str, Any]]:
        with self._lock:
            events = list(self._buffer)
        if limit is None or limit >= len(events):
            return events
        return events[-limit:]

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffer)


__all__ = [
    "TOOL_EXECUTED",
    "CONTEXT_BUDGET_FIT",
    "CONTEXT_SUMMARIZED",
    "register_event_listener",
    "unregister_event_listener",
    "emit",
    "InMemoryTelemetrySink",
]
