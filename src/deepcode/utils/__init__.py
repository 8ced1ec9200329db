"""Process-level utilities."""
