"""Reading and writing gzip-compressed tar archives."""

from __future__ import annotations

import gzip
import io
import logging
import tarfile
import zlib
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import IO

from ..core.entries import RenderedEntry, VirtualEntry, split_relative
from ..core.errors import ArchiveFormatError, ArchiveTraversalError, UnsafePathError

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIXES = (".tar.gz", ".tgz")

DEFAULT_FILE_MODE = 0o644
DEFAULT_DIR_MODE = 0o755

_READ_ERRORS = (tarfile.TarError, OSError, EOFError, zlib.error)


def is_archive_path(path: Path | str) -> bool:
    """Return True when the path names a .tar.gz archive."""
    return str(path).lower().endswith(ARCHIVE_SUFFIXES)


def _member_to_entry(
    archive: tarfile.TarFile, member: tarfile.TarInfo, strip_components: int
) -> VirtualEntry | None:
    try:
        segments = split_relative(member.name)
    except UnsafePathError as exc:
        raise ArchiveTraversalError(member.name) from exc

    segments = segments[strip_components:]
    if not segments:
        return None

    mode = member.mode & 0o777
    if member.isdir():
        return VirtualEntry.directory(segments, mode=mode)
    if not member.isfile():
        logger.warning(f"Skipping unsupported archive member '{member.name}'")
        return None

    # Stream-mode members can only be read before advancing to the next one
    handle = archive.extractfile(member)
    content = handle.read() if handle is not None else b""
    return VirtualEntry.from_bytes(segments, content, mode=mode)


def decode_entries(
    stream: IO[bytes], strip_components: int = 0
) -> Iterator[VirtualEntry]:
    """Iterate over the entries of a .tar.gz stream.

    The archive is read in a single forward pass; the returned iterator is
    not restartable. File contents are read as each member is reached.

    Args:
        stream: Binary stream positioned at the start of the archive
        strip_components: Number of leading path segments to drop

    Yields:
        Virtual entries in archive order

    Raises:
        ArchiveFormatError: On corrupt or unsupported data
        ArchiveTraversalError: On members escaping the archive root
    """
    try:
        archive = tarfile.open(fileobj=stream, mode="r|gz")
    except _READ_ERRORS as exc:
        raise ArchiveFormatError(f"Cannot open archive: {exc}") from exc

    with archive:
        try:
            for member in archive:
                entry = _member_to_entry(archive, member, strip_components)
                if entry is not None:
                    yield entry
        except _READ_ERRORS as exc:
            raise ArchiveFormatError(f"Corrupt archive: {exc}") from exc


def encode(entries: Iterable[RenderedEntry], stream: IO[bytes]) -> int:
    """Write rendered entries as a .tar.gz archive.

    Entries are written in the order given. Timestamps and ownership are
    zeroed so identical input produces identical bytes.

    Args:
        entries: Rendered entries
        stream: Writable binary stream

    Returns:
        Number of members written
    """
    count = 0
    with gzip.GzipFile(filename="", fileobj=stream, mode="wb", mtime=0) as gz:
        with tarfile.open(fileobj=gz, mode="w", format=tarfile.GNU_FORMAT) as archive:
            for entry in entries:
                info = tarfile.TarInfo(entry.path)
                info.mtime = 0
                if entry.is_dir:
                    info.type = tarfile.DIRTYPE
                    info.mode = entry.mode if entry.mode is not None else DEFAULT_DIR_MODE
                    archive.addfile(info)
                else:
                    info.size = len(entry.content)
                    info.mode = entry.mode if entry.mode is not None else DEFAULT_FILE_MODE
                    archive.addfile(info, io.BytesIO(entry.content))
                count += 1
    return count
