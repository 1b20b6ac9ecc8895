"""Domain models for sources, destinations and run results."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from typing_extensions import Annotated


class Dialect(str, Enum):
    """Delimiter set recognized for template expressions."""

    STANDARD = "standard"
    BACKSTAGE = "backstage"


class LocalDirectory(BaseModel):
    """A template stored as a plain directory."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["directory"] = "directory"
    path: Path = Field(..., description="Template directory")


class LocalArchive(BaseModel):
    """A template packed into a local .tar.gz archive."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["archive"] = "archive"
    path: Path = Field(..., description="Template archive file")


class RemoteRepository(BaseModel):
    """A repository snapshot on a Git hosting service."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["remote"] = "remote"
    provider: Literal["gitlab", "github"] = Field(..., description="Hosting API flavour")
    host: str = Field(..., min_length=1, description="API host name")
    project: str = Field(
        ..., min_length=1, description="group[/subgroup]/project or owner/repo"
    )
    ref: str | None = Field(default=None, description="Branch, tag or commit")

    @property
    def display_name(self) -> str:
        suffix = f"@{self.ref}" if self.ref else ""
        return f"{self.provider}://{self.host}/{self.project}{suffix}"


SourceDescriptor = Annotated[
    Union[LocalDirectory, LocalArchive, RemoteRepository],
    Field(discriminator="kind"),
]


class DirectoryDestination(BaseModel):
    """Render into a directory on disk."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["directory"] = "directory"
    path: Path = Field(..., description="Output directory")
    allow_overwrite: bool = Field(
        default=False, description="Write into an existing non-empty directory"
    )


class ArchiveDestination(BaseModel):
    """Render into a .tar.gz archive."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["archive"] = "archive"
    path: Path = Field(..., description="Output archive file")


Destination = Annotated[
    Union[DirectoryDestination, ArchiveDestination],
    Field(discriminator="kind"),
]


class RunSummary(BaseModel):
    """Counters collected while walking a template tree."""

    destination: Path = Field(..., description="Where the output was written")
    files_written: int = Field(default=0, ge=0)
    directories_created: int = Field(default=0, ge=0)
    binary_files: int = Field(default=0, ge=0, description="Files copied unrendered")
    skipped: int = Field(
        default=0, ge=0, description="Entries whose rendered name was empty"
    )
