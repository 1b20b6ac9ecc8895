"""Turn a source reference into a virtual template tree."""

from __future__ import annotations

import io
import logging
import os
import re
import stat
from collections.abc import Callable, Iterator
from pathlib import Path

import httpx

from ..core.entries import VirtualEntry
from ..core.errors import SourceNotFoundError, SourceReferenceError
from ..core.models import LocalArchive, LocalDirectory, RemoteRepository, SourceDescriptor
from ..settings import Settings
from .archive import decode_entries, is_archive_path
from .remote import fetcher_for, parse_remote_uri
from .tree import VirtualTree

logger = logging.getLogger(__name__)

_URI_PATTERN = re.compile(r"^([A-Za-z][A-Za-z0-9+.-]+)://")
_SKIPPED_DIRS = frozenset({".git"})

# Hosts wrap snapshots in a single root folder such as "project-ref-sha/"
REMOTE_STRIP_COMPONENTS = 1


def parse_source(reference: str) -> SourceDescriptor:
    """Classify a source reference.

    Args:
        reference: Directory path, .tar.gz path, or gitlab:// / github:// URI

    Returns:
        Source descriptor for the reference
    """
    if not reference:
        raise SourceReferenceError("Source reference must not be empty")
    if _URI_PATTERN.match(reference):
        return parse_remote_uri(reference)
    if is_archive_path(reference):
        return LocalArchive(path=Path(reference))
    return LocalDirectory(path=Path(reference))


def _file_loader(path: Path) -> Callable[[], bytes]:
    def load() -> bytes:
        try:
            return path.read_bytes()
        except OSError as exc:
            raise SourceNotFoundError(path, f"cannot be read: {exc}") from exc

    return load


def _iter_directory(root: Path) -> Iterator[VirtualEntry]:
    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        rel = current.relative_to(root).parts

        kept = []
        for name in sorted(dirnames):
            if name in _SKIPPED_DIRS:
                continue
            path = current / name
            if path.is_symlink():
                logger.warning(f"Skipping symlinked directory '{path}'")
                continue
            kept.append(name)
            yield VirtualEntry.directory(
                rel + (name,), mode=stat.S_IMODE(path.stat().st_mode)
            )
        dirnames[:] = kept

        for name in sorted(filenames):
            path = current / name
            try:
                mode = stat.S_IMODE(path.stat().st_mode)
            except OSError as exc:
                raise SourceNotFoundError(path, f"cannot be read: {exc}") from exc
            yield VirtualEntry(
                rel + (name,), "file", loader=_file_loader(path), mode=mode, origin=str(path)
            )


def read_directory(path: Path) -> VirtualTree:
    """List a template directory; file contents load on demand."""
    if not path.exists():
        raise SourceNotFoundError(path)
    if not path.is_dir():
        raise SourceNotFoundError(path, "is not a directory")
    return VirtualTree(_iter_directory(path), origin=str(path))


def read_archive(path: Path) -> VirtualTree:
    """Decode a local .tar.gz template without extracting it to disk."""
    if not path.is_file():
        raise SourceNotFoundError(path, "is not an archive file")
    try:
        handle = path.open("rb")
    except OSError as exc:
        raise SourceNotFoundError(path, f"cannot be opened: {exc}") from exc
    with handle:
        return VirtualTree(decode_entries(handle), origin=str(path))


def read_remote(
    repository: RemoteRepository,
    settings: Settings,
    client: httpx.Client | None = None,
) -> VirtualTree:
    """Download and decode a repository snapshot.

    Without a ref the provider's default branch is used.
    """
    data = fetcher_for(repository, settings, client).fetch(repository)
    entries = decode_entries(io.BytesIO(data), strip_components=REMOTE_STRIP_COMPONENTS)
    return VirtualTree(entries, origin=repository.display_name)


def resolve(
    descriptor: SourceDescriptor,
    subpath: str | None = None,
    *,
    settings: Settings | None = None,
    client: httpx.Client | None = None,
) -> VirtualTree:
    """Resolve a source descriptor into a virtual tree.

    Args:
        descriptor: Parsed source reference
        subpath: Optional directory inside the source used as template root
        settings: Remote access configuration (tokens, timeout)
        client: HTTP client used for remote sources instead of a fresh one

    Returns:
        Tree rooted at the template directory
    """
    if isinstance(descriptor, LocalDirectory):
        tree = read_directory(descriptor.path)
    elif isinstance(descriptor, LocalArchive):
        tree = read_archive(descriptor.path)
    elif isinstance(descriptor, RemoteRepository):
        tree = read_remote(descriptor, settings or Settings.model_construct(), client)
    else:
        raise SourceReferenceError(f"Unsupported source descriptor: {descriptor!r}")

    logger.info(f"Resolved {len(tree)} entries from {tree.origin}")

    if subpath:
        tree = tree.mount(subpath)
        logger.debug(f"Mounted template at '{subpath}' ({len(tree)} entries)")

    return tree
