"""Tests for logging setup and token estimation."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from deepcode.ai.utils.tokens import CHARS_PER_TOKEN, estimate_tokens
from deepcode.utils import logging as logging_utils


def test_setup_logging_creates_rotating_file(tmp_path: Path) -> None:
    log_dir = tmp_path / "logs"

    log_path = logging_utils.setup_logging(
        level=logging.INFO,
        log_dir=log_dir,
        console=False,
        force=True,
    )

    logger = logging.getLogger("deepcode.tests")
    logger.info("Logging smoke test")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert log_path == log_dir / "deepcode.log"
    assert logging_utils.get_log_path() == log_path
    assert "Logging smoke test" in log_path.read_text(encoding="utf-8")
    assert logging.getLogger("httpx").level == logging.WARNING


def test_setup_logging_honors_env_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DEEPCODE_LOG_DIR", str(tmp_path / "env-logs"))

    log_path = logging_utils.setup_logging(console=False, force=True)

    assert log_path.parent == tmp_path / "env-logs"


def test_setup_logging_level_from_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DEEPCODE_LOG_LEVEL", "debug")

    logging_utils.setup_logging(log_dir=tmp_path, console=False, force=True)

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("openai").level == logging.WARNING


def test_log_records_mask_api_keys(tmp_path: Path) -> None:
    log_path = logging_utils.setup_logging(level=logging.INFO, log_dir=tmp_path, console=False, force=True)

    logging.getLogger("deepcode.tests").info("Using key %s", "sk-abcd1234567890XYZ")
    for handler in logging.getLogger().handlers:
        handler.flush()

    contents = log_path.read_text(encoding="utf-8")
    assert "Using key sk-abcd…" in contents
    assert "1234567890XYZ" not in contents


def test_setup_logging_is_idempotent_without_force(tmp_path: Path) -> None:
    first = logging_utils.setup_logging(log_dir=tmp_path / "a", console=False, force=True)
    second = logging_utils.setup_logging(log_dir=tmp_path / "b", console=False)

    assert first == second


@pytest.mark.parametrize(
    ("text", "expected"),
    [("", 0), (None, 0), ("abc", 1), ("a" * 7, 2), ("a" * 8, 3)],
)
def test_estimate_tokens_rounds_up(text, expected) -> None:
    assert estimate_tokens(text) == expected


def test_estimate_tokens_custom_ratio() -> None:
    assert CHARS_PER_TOKEN == 3.5
    assert estimate_tokens("a" * 8, 4) == 2
    assert estimate_tokens("a" * 8, 0) == 3
