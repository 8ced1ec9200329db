"""Shared AI helpers."""
