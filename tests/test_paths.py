"""Tests for workspace path sandboxing."""

from __future__ import annotations

import os

import pytest

from deepcode.ai.tools.errors import ErrorCode, PathError
from deepcode.ai.tools.paths import PathResolver


@pytest.fixture
def root(tmp_path) -> str:
    return str(tmp_path / "project")


@pytest.mark.parametrize("raw", ["src/index.ts", "./src/index.ts", "a/b/c.txt", "src", ".", "src/./x.py"])
def test_relative_paths_stay_inside_root(root: str, raw: str) -> None:
    resolver = PathResolver(root)

    resolved = resolver.resolve(raw)

    assert resolved == resolver.root or resolved.startswith(resolver.root + os.sep)


@pytest.mark.parametrize("raw", ["../outside.txt", "src/../../etc/passwd", "a/../../..", "../project-other/x"])
def test_escaping_traversal_is_rejected(root: str, raw: str) -> None:
    resolver = PathResolver(root)

    with pytest.raises(PathError) as excinfo:
        resolver.resolve(raw)

    assert excinfo.value.error_code == ErrorCode.PATH_OUTSIDE_WORKSPACE
    assert "outside the workspace" in excinfo.value.message


def test_traversal_that_stays_inside_is_allowed(root: str) -> None:
    resolver = PathResolver(root)

    assert resolver.resolve("src/lib/../index.ts") == os.path.join(resolver.root, "src", "index.ts")


def test_echoed_absolute_path_is_accepted(root: str) -> None:
    resolver = PathResolver(root)
    absolute = os.path.join(resolver.root, "src", "index.ts")

    assert resolver.resolve(absolute) == absolute


def test_absolute_path_outside_root_is_rejected(root: str) -> None:
    resolver = PathResolver(root)

    with pytest.raises(PathError):
        resolver.resolve("/etc/passwd")


def test_sibling_directory_sharing_prefix_is_rejected(root: str) -> None:
    resolver = PathResolver(root)

    with pytest.raises(PathError):
        resolver.resolve(resolver.root + "-other/secret.txt")


def test_file_uri_and_percent_encoding_are_decoded(root: str) -> None:
    resolver = PathResolver(root)
    expected = os.path.join(resolver.root, "my docs", "a.md")

    assert resolver.resolve("file://" + resolver.root + "/my%20docs/a.md") == expected
    assert resolver.resolve("my%20docs/a.md") == expected


def test_encoded_traversal_is_rejected(root: str) -> None:
    resolver = PathResolver(root)

    with pytest.raises(PathError):
        resolver.resolve("%2E%2E/secret")


@pytest.mark.parametrize("raw", ["", "   ", None])
def test_empty_path_names_expected_shape(root: str, raw) -> None:
    resolver = PathResolver(root)

    with pytest.raises(PathError) as excinfo:
        resolver.resolve(raw)

    assert excinfo.value.error_code == ErrorCode.PATH_REQUIRED
    assert '"src/index.ts"' in excinfo.value.message


def test_relative_renders_forward_slashes(root: str) -> None:
    resolver = PathResolver(root)

    assert resolver.relative(os.path.join(resolver.root, "src", "a.py")) == "src/a.py"
    assert resolver.relative(resolver.root) == "."
