"""Shared pytest fixtures for the treeplate test suite.

Provides:
- A small project template with its expected rendering
- Helpers writing template trees to disk and reading rendered output back
- A helper building .tar.gz archives independently of the codec under test
"""

from __future__ import annotations

import io
import tarfile
from collections.abc import Callable
from pathlib import Path

import pytest

TEMPLATE = {
    "README.md": "# {{ values.project_name }}\n\nA project by {{ values.author }}.",
    "src/main.py": 'print("Hello from {{ values.project_name }}")\n',
    "src/{{ values.project_name }}.py": "# prepared file for {{ values.project_name }}\n",
}

EXPECTED = {
    "README.md": "# my-app\n\nA project by Alice.",
    "src/main.py": 'print("Hello from my-app")\n',
    "src/my-app.py": "# prepared file for my-app\n",
}

PARAMS = {"project_name": "my-app", "author": "Alice"}


# ---------------------------------------------------------------------------
# Template data
# ---------------------------------------------------------------------------


@pytest.fixture
def template_files() -> dict[str, str]:
    return dict(TEMPLATE)


@pytest.fixture
def expected_files() -> dict[str, str]:
    return dict(EXPECTED)


@pytest.fixture
def template_params() -> dict[str, str]:
    return dict(PARAMS)


# ---------------------------------------------------------------------------
# Filesystem helpers
# ---------------------------------------------------------------------------


def _write_tree(root: Path, files: dict[str, str | bytes]) -> Path:
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_bytes(content.encode("utf-8"))
    root.mkdir(parents=True, exist_ok=True)
    return root


def _read_tree(root: Path) -> dict[str, str]:
    return {
        path.relative_to(root).as_posix(): path.read_bytes().decode("utf-8")
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


def _tar_gz(members: list[tuple[str, bytes | None]]) -> bytes:
    """Build a .tar.gz; a ``None`` payload adds a directory member."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
        for name, payload in members:
            info = tarfile.TarInfo(name)
            if payload is None:
                info.type = tarfile.DIRTYPE
                info.mode = 0o755
                archive.addfile(info)
            else:
                info.size = len(payload)
                info.mode = 0o644
                archive.addfile(info, io.BytesIO(payload))
    return buffer.getvalue()


@pytest.fixture
def write_tree() -> Callable[[Path, dict[str, str | bytes]], Path]:
    """Write ``{relative path: content}`` below a root directory."""
    return _write_tree


@pytest.fixture
def read_tree() -> Callable[[Path], dict[str, str]]:
    """Read every file below a root as ``{relative posix path: text}``."""
    return _read_tree


@pytest.fixture
def make_tar_gz() -> Callable[[list[tuple[str, bytes | None]]], bytes]:
    return _tar_gz
