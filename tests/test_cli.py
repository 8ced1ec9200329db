"""Tests for the deepcode command-line entry point."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from deepcode.cli import main


@pytest.fixture
def base_args(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> list[str]:
    for name in ("DEEPCODE_API_KEY", "DEEPCODE_MODEL", "DEEPCODE_WORKSPACE", "DEEPCODE_SETTINGS_PATH"):
        monkeypatch.delenv(name, raising=False)
    return ["--log-dir", str(tmp_path / "logs"), "--settings-path", str(tmp_path / "settings.json")]


def test_tools_prints_catalog(base_args: list[str], capsys: pytest.CaptureFixture[str]) -> None:
    assert main([*base_args, "tools"]) == 0

    tools = json.loads(capsys.readouterr().out)
    assert len(tools) == 11
    assert tools[0]["function"]["name"] == "read_file"


def test_tools_respects_disabled_override(base_args: list[str], capsys: pytest.CaptureFixture[str]) -> None:
    assert main([*base_args, "--set", 'tools.disabled_tools=["run_command"]', "tools"]) == 0

    names = [tool["function"]["name"] for tool in json.loads(capsys.readouterr().out)]
    assert "run_command" not in names
    assert len(names) == 10


def test_tools_filters_by_category(base_args: list[str], capsys: pytest.CaptureFixture[str]) -> None:
    assert main([*base_args, "tools", "--category", "web"]) == 0

    names = [tool["function"]["name"] for tool in json.loads(capsys.readouterr().out)]
    assert names == ["web_search", "fetch_webpage"]


def test_run_executes_tool(base_args: list[str], workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = main([*base_args, "run", "read_file", '{"path": "src/helper.ts"}', "--workspace", str(workspace)])

    assert code == 0
    assert "   1 | export function helper(value: number) {" in capsys.readouterr().out


def test_run_reports_tool_failure(base_args: list[str], workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = main([*base_args, "run", "nope", "--workspace", str(workspace)])

    assert code == 1
    assert capsys.readouterr().out.strip() == "Unknown tool: nope"


@pytest.mark.parametrize("arguments", ["{broken", "[1, 2]"])
def test_run_rejects_bad_arguments(
    base_args: list[str], workspace: Path, arguments: str, capsys: pytest.CaptureFixture[str]
) -> None:
    assert main([*base_args, "run", "read_file", arguments, "--workspace", str(workspace)]) == 2
    assert "JSON object" in capsys.readouterr().err


def test_compress_uses_settings_budget(base_args: list[str], tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    source = tmp_path / "mod.ts"
    source.write_text("import a from 'b';\nfoo();", encoding="utf-8")

    assert main([*base_args, "--set", "context.skeleton_chars=10", "compress", str(source)]) == 0
    assert capsys.readouterr().out == "import a f\n"

    assert main([*base_args, "compress", str(source), "--max-chars", "1000"]) == 0
    assert capsys.readouterr().out == "import a from 'b';\nfoo();\n"


def test_compress_missing_file(base_args: list[str], tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main([*base_args, "compress", str(tmp_path / "absent.ts")]) == 1
    assert "Could not read" in capsys.readouterr().err


def test_settings_redacts_api_key(
    base_args: list[str], tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("DEEPCODE_API_KEY", "sk-secret-value")

    assert main([*base_args, "--set", "model=gpt-test", "settings"]) == 0

    output = capsys.readouterr().out
    payload = json.loads(output)
    assert payload["path"] == str(tmp_path / "settings.json")
    assert payload["settings"]["model"] == "gpt-test"
    assert payload["settings"]["api_key"] == "sk***********ue"
    assert "sk-secret-value" not in output


def test_invalid_override_exits_with_usage_error(base_args: list[str], capsys: pytest.CaptureFixture[str]) -> None:
    assert main([*base_args, "--set", "novalue", "tools"]) == 2
    assert "Invalid --set override" in capsys.readouterr().err


def test_missing_command_prints_help(base_args: list[str], capsys: pytest.CaptureFixture[str]) -> None:
    assert main(base_args) == 2
    assert "usage: deepcode" in capsys.readouterr().out
