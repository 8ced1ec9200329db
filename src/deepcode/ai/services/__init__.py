"""AI service helpers (telemetry, context compression)."""

from .context_compressor import ContextCompressor
from .telemetry import InMemoryTelemetrySink

__all__ = ["ContextCompressor", "InMemoryTelemetrySink"]
