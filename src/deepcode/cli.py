"""Command-line entry point for inspecting and exercising the agent core."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Sequence

from .ai.orchestration.session import build_session
from .ai.services.context_compressor import ContextCompressor
from .ai.tools.tool_registry import ToolCategory, build_default_registry
from .services.settings import Settings, SettingsStore, parse_override, redact_secret
from .utils.logging import setup_logging

_LOGGER = logging.getLogger(__name__)


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point invoked by the ``deepcode`` console script."""

    parser = _build_parser()
    args = parser.parse_args(argv)

    level = logging.DEBUG if args.debug else None
    setup_logging(level, log_dir=args.log_dir, console=args.debug)

    settings_path = args.settings_path or os.environ.get("DEEPCODE_SETTINGS_PATH")
    store = SettingsStore(Path(settings_path).expanduser() if settings_path else None)
    try:
        overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        return 2
    settings = store.load(overrides=overrides or None)

    if args.command == "tools":
        return _cmd_tools(settings, args)
    if args.command == "run":
        return _cmd_run(settings, args)
    if args.command == "compress":
        return _cmd_compress(args, settings)
    if args.command == "settings":
        return _cmd_settings(settings, store)
    parser.print_help()
    return 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="deepcode",
        description="Inspect the tool catalog, run single tool calls, and preview context compression.",
    )
    parser.add_argument("--settings-path", metavar="PATH", help="Override the default ~/.deepcode/settings.json path.")
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override a setting for this run, e.g. context.max_tokens=32000 (repeatable).",
    )
    parser.add_argument("--log-dir", metavar="DIR", help="Directory for the rotating log file.")
    parser.add_argument("--debug", action="store_true", help="Log debug output to stderr.")

    commands = parser.add_subparsers(dest="command")
    tools = commands.add_parser("tools", help="Print the enabled tool catalog as OpenAI tool definitions.")
    tools.add_argument(
        "--category",
        choices=[category.name.lower() for category in ToolCategory],
        help="Only print tools in this category.",
    )

    run = commands.add_parser("run", help="Execute one tool call against a workspace.")
    run.add_argument("tool", help="Tool name, e.g. read_file.")
    run.add_argument("arguments", nargs="?", default="{}", help="Tool arguments as a JSON object.")
    run.add_argument("--workspace", metavar="DIR", help="Workspace root (defaults to settings or the current directory).")

    compress = commands.add_parser("compress", help="Print a file compressed to a character budget.")
    compress.add_argument("file", type=Path)
    compress.add_argument("--max-chars", type=int, default=None, help="Character budget (defaults to context.skeleton_chars).")

    commands.add_parser("settings", help="Print the effective settings with secrets redacted.")
    return parser


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for entry in items:
        key, value = parse_override(entry)
        overrides[key] = value
    return overrides


def _cmd_tools(settings: Settings, args: argparse.Namespace) -> int:
    registry = build_default_registry(disabled=settings.tools.disabled_tools)
    category = ToolCategory[args.category.upper()] if args.category else None
    print(json.dumps(registry.to_openai_tools(category=category), indent=2))
    return 0


def _cmd_run(settings: Settings, args: argparse.Namespace) -> int:
    workspace = args.workspace or settings.workspace_root or os.getcwd()
    try:
        arguments = json.loads(args.arguments) if args.arguments else {}
    except json.JSONDecodeError as exc:
        print(f"Tool arguments must be a JSON object: {exc}", file=sys.stderr)
        return 2
    if not isinstance(arguments, dict):
        print("Tool arguments must be a JSON object.", file=sys.stderr)
        return 2

    session = build_session(settings, workspace)
    _LOGGER.debug("Running %s in %s", args.tool, workspace)
    result = asyncio.run(session.run_tool(args.tool, arguments))
    print(result.output)
    return 0 if result.success else 1


def _cmd_compress(args: argparse.Namespace, settings: Settings) -> int:
    max_chars = args.max_chars if args.max_chars is not None else settings.context.skeleton_chars
    try:
        text = args.file.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        print(f"Could not read {args.file}: {exc}", file=sys.stderr)
        return 1
    sys.stdout.write(ContextCompressor().compress(text, max_chars))
    sys.stdout.write("\n")
    return 0


def _cmd_settings(settings: Settings, store: SettingsStore) -> int:
    payload = asdict(settings)
    payload["api_key"] = redact_secret(settings.api_key)
    print(json.dumps({"path": str(store.path), "settings": payload}, indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
