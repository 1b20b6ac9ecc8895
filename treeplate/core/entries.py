"""File tree entries before and after rendering."""

from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass, field
from typing import Callable, Literal

from .errors import UnsafePathError

EntryKind = Literal["file", "directory"]

_DRIVE_PATTERN = re.compile(r"^[A-Za-z]:")
_SEPARATORS = ("/", "\\")


def split_relative(name: str) -> tuple[str, ...]:
    """Split a relative path into segments, dropping empty and '.' parts.

    Raises:
        UnsafePathError: If the path is absolute or contains '..'
    """
    if name.startswith(_SEPARATORS) or _DRIVE_PATTERN.match(name):
        raise UnsafePathError(name, "absolute paths are not allowed")

    segments: list[str] = []
    for part in name.replace("\\", "/").split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            raise UnsafePathError(name, "path contains '..'")
        segments.append(part)
    return tuple(segments)


def check_segment(segment: str, entry_path: str) -> None:
    """Reject a rendered path segment that could leave its parent directory."""
    if segment in (".", ".."):
        raise UnsafePathError(entry_path, f"segment renders to {segment!r}")
    if any(sep in segment for sep in _SEPARATORS) or "\x00" in segment:
        raise UnsafePathError(
            entry_path, f"segment {segment!r} contains a path separator"
        )


@dataclass(frozen=True)
class VirtualEntry:
    """One file or directory of a resolved template source."""

    segments: tuple[str, ...]
    kind: EntryKind
    loader: Callable[[], bytes] | None = field(default=None, repr=False, compare=False)
    mode: int | None = None
    origin: str = ""

    @classmethod
    def from_bytes(
        cls, segments: tuple[str, ...], content: bytes, mode: int | None = None
    ) -> VirtualEntry:
        return cls(segments, "file", loader=lambda: content, mode=mode)

    @classmethod
    def directory(cls, segments: tuple[str, ...], mode: int | None = None) -> VirtualEntry:
        return cls(segments, "directory", mode=mode)

    @property
    def path(self) -> str:
        return "/".join(self.segments)

    @property
    def is_dir(self) -> bool:
        return self.kind == "directory"

    def read(self) -> bytes:
        """Return the file content, loading it on first use."""
        if self.is_dir or self.loader is None:
            return b""
        return self.loader()

    def relocated(self, segments: tuple[str, ...]) -> VirtualEntry:
        return dataclasses.replace(self, segments=segments)


@dataclass(frozen=True)
class RenderedEntry:
    """A template entry after path and content substitution."""

    segments: tuple[str, ...]
    kind: EntryKind
    content: bytes = field(default=b"", repr=False)
    mode: int | None = None
    source: str = ""
    binary: bool = False

    @property
    def path(self) -> str:
        return "/".join(self.segments)

    @property
    def is_dir(self) -> bool:
        return self.kind == "directory"
