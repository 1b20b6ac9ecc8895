"""Write rendered entries to a directory or an archive."""

from __future__ import annotations

import dataclasses
import logging
import os
import tarfile
from pathlib import Path

from ..core.entries import RenderedEntry, check_segment
from ..core.errors import (
    ArchiveWriteError,
    DestinationExistsError,
    FilesystemError,
    UnsafePathError,
)
from ..core.models import ArchiveDestination, Destination, DirectoryDestination
from ..rendering.io import atomic_write_bytes, write_with
from ..sources import archive
from ..sources.archive import DEFAULT_FILE_MODE, is_archive_path

logger = logging.getLogger(__name__)


def parse_destination(path: Path | str, allow_overwrite: bool = False) -> Destination:
    """Classify a destination path as archive (.tar.gz) or directory."""
    if is_archive_path(path):
        return ArchiveDestination(path=Path(path))
    return DirectoryDestination(path=Path(path), allow_overwrite=allow_overwrite)


class WriteSink:
    """Receives rendered entries; use as a context manager."""

    def __init__(self, path: Path, preserve_mode: bool = False) -> None:
        self.path = path
        self.preserve_mode = preserve_mode

    def write_entry(self, entry: RenderedEntry) -> None:
        raise NotImplementedError

    def finalize(self) -> None:
        """Commit everything written so far."""

    def close(self) -> None:
        """Release resources; called on every exit path."""

    def __enter__(self) -> WriteSink:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @staticmethod
    def _check(entry: RenderedEntry) -> None:
        if not entry.segments:
            raise FilesystemError(entry.source or ".", "empty output path")
        for segment in entry.segments:
            check_segment(segment, entry.path)


class DirectorySink(WriteSink):
    """Writes files incrementally below a root directory.

    Existing files outside the rendered set are left untouched.
    """

    def __init__(
        self, destination: DirectoryDestination, preserve_mode: bool = False
    ) -> None:
        super().__init__(destination.path, preserve_mode)
        self.allow_overwrite = destination.allow_overwrite
        self._prepare_root()

    def _prepare_root(self) -> None:
        root = self.path
        if root.exists():
            if not root.is_dir():
                raise FilesystemError(root, "exists and is not a directory")
            try:
                non_empty = any(root.iterdir())
            except OSError as exc:
                raise FilesystemError(root, exc) from exc
            if non_empty and not self.allow_overwrite:
                raise DestinationExistsError(root)
            if non_empty:
                logger.info(f"Writing into existing directory {root}")

        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemError(root, exc) from exc

    def _resolve_target(self, entry: RenderedEntry) -> Path:
        target = self.path
        for segment in entry.segments:
            target = target / segment
            if target.is_symlink():
                raise UnsafePathError(
                    entry.path, "crosses a symbolic link in the destination"
                )
        return target

    def write_entry(self, entry: RenderedEntry) -> None:
        self._check(entry)
        target = self._resolve_target(entry)

        try:
            if entry.is_dir:
                target.mkdir(parents=True, exist_ok=True)
                if self.preserve_mode and entry.mode is not None:
                    os.chmod(target, entry.mode | 0o700)
                return

            if target.is_dir():
                raise FilesystemError(target, "a directory exists at this path")
            mode = DEFAULT_FILE_MODE
            if self.preserve_mode and entry.mode is not None:
                mode = entry.mode
            atomic_write_bytes(target, entry.content, mode=mode)
        except OSError as exc:
            raise FilesystemError(target, exc) from exc

        logger.debug(f"Wrote {target}")


class ArchiveSink(WriteSink):
    """Collects entries and encodes them into a .tar.gz on finalize.

    The archive is written to a temporary file and renamed into place, so a
    failed run never leaves a truncated archive behind.
    """

    def __init__(self, destination: ArchiveDestination, preserve_mode: bool = False) -> None:
        super().__init__(destination.path, preserve_mode)
        if self.path.is_dir():
            raise ArchiveWriteError(self.path, "a directory exists at this path")
        self._entries: list[RenderedEntry] = []

    def write_entry(self, entry: RenderedEntry) -> None:
        self._check(entry)
        if not self.preserve_mode:
            entry = dataclasses.replace(entry, mode=None)
        self._entries.append(entry)

    def finalize(self) -> None:
        try:
            write_with(self.path, lambda handle: archive.encode(self._entries, handle))
        except (OSError, tarfile.TarError) as exc:
            raise ArchiveWriteError(self.path, exc) from exc
        logger.debug(f"Packed {len(self._entries)} entries into {self.path}")

    def close(self) -> None:
        self._entries.clear()


def open_sink(destination: Destination, preserve_mode: bool = False) -> WriteSink:
    """Open the writer for a destination.

    Raises:
        DestinationExistsError: Directory exists, is non-empty, overwrite not allowed
        FilesystemError: Directory cannot be created
    """
    if isinstance(destination, DirectoryDestination):
        return DirectorySink(destination, preserve_mode)
    if isinstance(destination, ArchiveDestination):
        return ArchiveSink(destination, preserve_mode)
    raise TypeError(f"Unsupported destination: {destination!r}")
