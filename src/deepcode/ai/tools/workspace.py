"""Host file-system access used by the workspace tools.

The editor host owns the real file system; the core only needs the narrow
surface described by :class:`WorkspaceFileSystem`. :class:`LocalFileSystem`
implements it against the local disk, running blocking calls off the event
loop.
"""

from __future__ import annotations

import asyncio
import errno
import logging
import os
import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Protocol, Sequence

LOGGER = logging.getLogger(__name__)

BINARY_EXTENSIONS: frozenset[str] = frozenset(
    {
        "png", "jpg", "jpeg", "gif", "bmp", "ico", "svg", "webp", "avif",
        "mp3", "mp4", "wav", "ogg", "webm", "avi", "mov", "mkv",
        "zip", "gz", "tar", "bz2", "rar", "7z", "jar",
        "pdf", "doc", "docx", "xls", "xlsx", "ppt", "pptx",
        "ttf", "otf", "woff", "woff2", "eot",
        "exe", "dll", "so", "dylib", "bin", "dat", "db", "sqlite",
        "pyc", "class", "o", "obj", "wasm",
    }
)
DEFAULT_EXCLUDED_DIRS: frozenset[str] = frozenset(
    {
        "node_modules", ".git", "out", "dist", "__pycache__", ".next",
        "build", ".vscode-test", ".DS_Store", "coverage", ".nyc_output",
        ".cache", ".turbo", ".parcel-cache", ".deepcode",
    }
)
BINARY_SAMPLE_CHARS = 8192


class FileType(Enum):
    """Kinds of directory entries reported by the host."""

    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"
    UNKNOWN = "unknown"


@dataclass(slots=True, frozen=True)
class FileStat:
    """Subset of stat information used by the tools."""

    type: FileType
    size: int
    modified_at: float


class WorkspaceFileSystem(Protocol):
    """Async file-system surface supplied by the editor host."""

    async def read(self, path: str) -> bytes:
        ...

    async def write(self, path: str, data: bytes) -> None:
        ...

    async def stat(self, path: str) -> FileStat:
        ...

    async def create_directory(self, path: str) -> None:
        ...

    async def read_directory(self, path: str) -> list[tuple[str, FileType]]:
        ...

    async def find_files(
        self,
        root: str,
        pattern: str,
        *,
        exclude: Iterable[str] = DEFAULT_EXCLUDED_DIRS,
        limit: int = 200,
    ) -> list[str]:
        ...


class LocalFileSystem:
    """:class:`WorkspaceFileSystem` backed by the local disk."""

    async def read(self, path: str) -> bytes:
        return await asyncio.to_thread(Path(path).read_bytes)

    async def write(self, path: str, data: bytes) -> None:
        await asyncio.to_thread(_write_bytes, Path(path), data)

    async def stat(self, path: str) -> FileStat:
        return await asyncio.to_thread(_stat, Path(path))

    async def create_directory(self, path: str) -> None:
        await asyncio.to_thread(Path(path).mkdir, parents=True, exist_ok=True)

    async def read_directory(self, path: str) -> list[tuple[str, FileType]]:
        return await asyncio.to_thread(_read_directory, Path(path))

    async def find_files(
        self,
        root: str,
        pattern: str,
        *,
        exclude: Iterable[str] = DEFAULT_EXCLUDED_DIRS,
        limit: int = 200,
    ) -> list[str]:
        return await asyncio.to_thread(_find_files, root, pattern, frozenset(exclude), limit)


# -----------------------------------------------------------------------------
# Text helpers
# -----------------------------------------------------------------------------


def is_binary_path(path: str) -> bool:
    """Return ``True`` when the extension marks ``path`` as a binary format."""

    suffix = Path(path).suffix.lower().lstrip(".")
    return suffix in BINARY_EXTENSIONS


def looks_binary(text: str) -> bool:
    """Sample the head of decoded text for NUL or replacement characters."""

    sample = text[:BINARY_SAMPLE_CHARS]
    return "\0" in sample or "\ufffd" in sample


def decode_text(data: bytes) -> str:
    """Decode host bytes as UTF-8, substituting undecodable sequences."""

    text = data.decode("utf-8", errors="replace")
    return text[1:] if text.startswith("\ufeff") else text


def binary_placeholder(path: str) -> str:
    return f"[Binary file: {Path(path).name} - not readable as text]"


def glob_match(rel_path: str, pattern: str) -> bool:
    """Match a forward-slash relative path against a workspace glob.

    Supports ``**`` (any number of directories), ``*``, ``?`` and ``{a,b}``.
    """

    cleaned = pattern.strip()
    while cleaned.startswith("./"):
        cleaned = cleaned[2:]
    return _compile_glob(cleaned.lstrip("/") or "**/*").fullmatch(rel_path) is not None


@lru_cache(maxsize=128)
def _compile_glob(pattern: str) -> re.Pattern[str]:
    parts: list[str] = []
    index = 0
    length = len(pattern)
    while index < length:
        char = pattern[index]
        if pattern.startswith("**/", index):
            parts.append("(?:.*/)?")
            index += 3
            continue
        if pattern.startswith("**", index):
            parts.append(".*")
            index += 2
            continue
        if char == "*":
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        elif char == "{":
            close = pattern.find("}", index)
            if close == -1:
                parts.append(re.escape(char))
            else:
                options = pattern[index + 1 : close].split(",")
                parts.append("(?:" + "|".join(_compile_glob(opt).pattern for opt in options) + ")")
                index = close + 1
                continue
        else:
            parts.append(re.escape(char))
        index += 1
    return re.compile("".join(parts))


# -----------------------------------------------------------------------------
# Blocking implementations
# -----------------------------------------------------------------------------


def _write_bytes(path: Path, data: bytes) -> None:
    if path.is_dir():
        raise IsADirectoryError(errno.EISDIR, os.strerror(errno.EISDIR), str(path))
    tmp_path = path.with_name(f".{path.name}.tmp")
    try:
        tmp_path.write_bytes(data)
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def _stat(path: Path) -> FileStat:
    info = path.stat()
    if path.is_symlink():
        kind = FileType.SYMLINK
    elif path.is_dir():
        kind = FileType.DIRECTORY
    elif path.is_file():
        kind = FileType.FILE
    else:
        kind = FileType.UNKNOWN
    return FileStat(type=kind, size=info.st_size, modified_at=info.st_mtime)


def _read_directory(path: Path) -> list[tuple[str, FileType]]:
    entries: list[tuple[str, FileType]] = []
    with os.scandir(path) as iterator:
        for entry in iterator:
            if entry.is_dir(follow_symlinks=False):
                kind = FileType.DIRECTORY
            elif entry.is_symlink():
                kind = FileType.SYMLINK
            elif entry.is_file(follow_symlinks=False):
                kind = FileType.FILE
            else:
                kind = FileType.UNKNOWN
            entries.append((entry.name, kind))
    return entries


def _find_files(root: str, pattern: str, exclude: frozenset[str], limit: int) -> list[str]:
    matches: list[str] = []
    if limit <= 0:
        return matches
    for current, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(name for name in dirnames if name not in exclude)
        rel_dir = os.path.relpath(current, root)
        for filename in sorted(filenames):
            if filename in exclude:
                continue
            rel_path = filename if rel_dir == "." else f"{rel_dir}/{filename}".replace(os.sep, "/")
            if glob_match(rel_path, pattern):
                matches.append(os.path.join(current, filename))
                if len(matches) >= limit:
                    return matches
    return matches


def sort_directory_entries(entries: Sequence[tuple[str, FileType]]) -> list[tuple[str, FileType]]:
    """Directories first, then files, each alphabetically."""

    return sorted(entries, key=lambda item: (item[1] is not FileType.DIRECTORY, item[0]))


__all__ = [
    "BINARY_EXTENSIONS",
    "DEFAULT_EXCLUDED_DIRS",
    "FileType",
    "FileStat",
    "WorkspaceFileSystem",
    "LocalFileSystem",
    "is_binary_path",
    "looks_binary",
    "decode_text",
    "binary_placeholder",
    "glob_match",
    "sort_directory_entries",
]
