"""In-memory view of a template source tree."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from ..core.entries import VirtualEntry, split_relative
from ..core.errors import ArchiveFormatError, TemplatePathNotFoundError, UnsafePathError


class VirtualTree:
    """Template entries keyed by their path segments.

    Parent directories missing from the input are synthesised, so every
    entry's ancestors are present. A later entry for the same path replaces
    the earlier one, matching tar extraction semantics.
    """

    def __init__(self, entries: Iterable[VirtualEntry] = (), origin: str = "") -> None:
        self.origin = origin
        self._entries: dict[tuple[str, ...], VirtualEntry] = {}
        for entry in entries:
            self.add(entry)

    def add(self, entry: VirtualEntry) -> None:
        for depth in range(1, len(entry.segments)):
            parent = entry.segments[:depth]
            existing = self._entries.get(parent)
            if existing is None:
                self._entries[parent] = VirtualEntry.directory(parent)
            elif not existing.is_dir:
                raise ArchiveFormatError(
                    f"'{existing.path}' is both a file and a directory"
                )

        existing = self._entries.get(entry.segments)
        if existing is not None and existing.is_dir != entry.is_dir:
            raise ArchiveFormatError(f"'{entry.path}' is both a file and a directory")
        self._entries[entry.segments] = entry

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, path: str) -> VirtualEntry | None:
        return self._entries.get(tuple(path.split("/")))

    def walk(self) -> Iterator[VirtualEntry]:
        """Yield entries depth-first, each directory before its children.

        Siblings come in name order, so the traversal is deterministic.
        """
        for key in sorted(self._entries):
            yield self._entries[key]

    def mount(self, subpath: str) -> VirtualTree:
        """Return the subtree rooted at ``subpath``.

        Raises:
            TemplatePathNotFoundError: If the subpath is missing, is a file or
                points outside the tree
        """
        try:
            prefix = split_relative(subpath.lstrip("/\\"))
        except UnsafePathError as exc:
            raise TemplatePathNotFoundError(
                subpath, "must be a relative path inside the source"
            ) from exc

        if not prefix:
            return self

        node = self._entries.get(prefix)
        if node is None:
            raise TemplatePathNotFoundError(subpath, "does not exist in the source")
        if not node.is_dir:
            raise TemplatePathNotFoundError(subpath, "is not a directory")

        depth = len(prefix)
        mounted = (
            entry.relocated(key[depth:])
            for key, entry in self._entries.items()
            if len(key) > depth and key[:depth] == prefix
        )
        return VirtualTree(mounted, origin=f"{self.origin}/{'/'.join(prefix)}")
