"""File I/O operations for rendering."""

from __future__ import annotations

import os
import tempfile
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import IO


def ensure_parent(path: Path) -> None:
    """Ensure parent directories exist for the given path.

    Args:
        path: Path whose parent directories should be created
    """
    path.parent.mkdir(parents=True, exist_ok=True)


@contextmanager
def atomic_writer(path: Path, mode: int = 0o644) -> Iterator[IO[bytes]]:
    """Yield a temporary binary file that replaces ``path`` on success.

    The temporary file lives next to the target and is removed if the
    block raises.

    Args:
        path: Destination file path
        mode: File permissions (octal)
    """
    ensure_parent(path)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    try:
        with os.fdopen(fd, "wb") as tmp:
            yield tmp
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_name, path)
        os.chmod(path, mode)
    finally:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)


def atomic_write_bytes(path: Path, data: bytes, mode: int = 0o644) -> None:
    """Write bytes to a file atomically using a temporary file.

    Args:
        path: Destination file path
        data: Content to write
        mode: File permissions (octal)
    """
    with atomic_writer(path, mode) as handle:
        handle.write(data)


def write_with(path: Path, writer: Callable[[IO[bytes]], object], mode: int = 0o644) -> None:
    """Atomically produce ``path`` by handing a binary stream to ``writer``."""
    with atomic_writer(path, mode) as handle:
        writer(handle)
