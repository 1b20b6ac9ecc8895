"""Error taxonomy for scaffolding runs.

Every error aborts the run. Messages carry the file path, key or API status
needed to diagnose the failure.
"""

from __future__ import annotations

from pathlib import Path


class TreeplateError(Exception):
    """Base class for all scaffolding failures."""


class ParameterFileError(TreeplateError):
    """Raised when a parameter file cannot be read or parsed."""

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Invalid parameters file '{self.path}': {reason}")


class ParameterSyntaxError(TreeplateError):
    """Raised for a malformed inline KEY=VALUE parameter."""

    def __init__(self, entry: str, reason: str = "expected format KEY=VALUE") -> None:
        self.entry = entry
        super().__init__(f"Invalid parameter {entry!r}: {reason}")


class SourceReferenceError(TreeplateError):
    """Raised when a source reference cannot be parsed."""


class SourceNotFoundError(TreeplateError):
    def __init__(self, path: Path | str, reason: str = "does not exist") -> None:
        self.path = Path(path)
        super().__init__(f"Template source '{self.path}' {reason}")


class ArchiveFormatError(TreeplateError):
    """Raised for corrupt or unsupported archives."""


class UnsafePathError(TreeplateError):
    """Raised when a path would escape its root."""

    def __init__(self, path: str, reason: str = "escapes the destination root") -> None:
        self.path = path
        super().__init__(f"Invalid path '{path}': {reason}")


class ArchiveTraversalError(UnsafePathError):
    def __init__(self, path: str) -> None:
        super().__init__(path, "archive member escapes the archive root")


class PathCollisionError(TreeplateError):
    """Raised when two template entries render to the same output path."""

    def __init__(self, path: str, first: str, second: str) -> None:
        self.path = path
        self.first = first
        self.second = second
        super().__init__(
            f"Entries '{first}' and '{second}' both render to '{path}'"
        )


class RemoteFetchError(TreeplateError):
    """Raised when a Git host API request fails.

    ``status`` is the HTTP status code, or None when no response was received.
    """

    def __init__(self, url: str, status: int | None, detail: str = "") -> None:
        self.url = url
        self.status = status
        self.detail = detail
        if status is None:
            message = f"Failed to fetch archive from {url}: {detail}"
        else:
            message = f"Git host API '{url}' returned error {status}"
            if detail:
                message = f"{message}: {detail}"
        super().__init__(message)


class TemplatePathNotFoundError(TreeplateError):
    def __init__(self, subpath: str, reason: str = "is not a directory in the source") -> None:
        self.subpath = subpath
        super().__init__(f"Template path '{subpath}' {reason}")


class RenderError(TreeplateError):
    """Raised when a path segment or file content fails to render."""

    def __init__(self, entry_path: str, cause: Exception) -> None:
        self.entry_path = entry_path
        self.cause = cause
        super().__init__(f"Template execution for '{entry_path}' failed: {cause}")


class DestinationExistsError(TreeplateError):
    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        super().__init__(
            f"Destination '{self.path}' already exists and is not empty. "
            "Use --force to write into it."
        )


class FilesystemError(TreeplateError):
    def __init__(self, path: Path | str, cause: Exception | str) -> None:
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"Failed to write '{self.path}': {cause}")


class ArchiveWriteError(TreeplateError):
    def __init__(self, path: Path | str, cause: Exception | str) -> None:
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"Failed to write archive '{self.path}': {cause}")
