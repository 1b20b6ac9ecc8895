"""Main CLI application."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from .. import __version__
from ..core.errors import TreeplateError
from ..core.models import Dialect
from ..destinations.writer import parse_destination
from ..parameters.store import build_parameters
from ..rendering.walker import execute
from ..settings import Settings
from ..sources.resolver import parse_source, resolve

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="treeplate",
    help="Bootstrap code projects from template directories, archives or Git repositories.",
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"treeplate {__version__}")
        raise typer.Exit()


@app.command()
def render(
    source: Annotated[
        str,
        typer.Argument(
            help="Template source: directory, .tar.gz archive, gitlab:// or github:// URL.",
            metavar="SOURCE",
        ),
    ],
    destination: Annotated[
        Path,
        typer.Argument(
            help="Destination directory or .tar.gz archive.",
            metavar="DESTINATION",
        ),
    ],
    parameters: Annotated[
        list[Path],
        typer.Option(
            "--parameters",
            "-p",
            help="YAML parameters file. Repeatable, later files override earlier ones.",
            metavar="FILE",
        ),
    ] = [],
    sets: Annotated[
        list[str],
        typer.Option(
            "--set",
            "-s",
            help="Set a parameter (KEY=VALUE). Repeatable, always overrides files.",
            metavar="KEY=VALUE",
        ),
    ] = [],
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Write into an already existing, non-empty destination directory.",
        ),
    ] = False,
    backstage: Annotated[
        bool,
        typer.Option(
            "--backstage",
            help="Use Backstage software template syntax (${{ }} instead of {{ }}).",
        ),
    ] = False,
    parameters_on_root: Annotated[
        bool,
        typer.Option(
            "--parameters-on-root",
            help="Pass parameters at root level instead of under the 'values' key.",
        ),
    ] = False,
    template_subpath: Annotated[
        Optional[str],
        typer.Option(
            "--template-subpath",
            "-t",
            help="Directory inside the source to use as template root.",
            metavar="PATH",
        ),
    ] = None,
    gitlab_token: Annotated[
        Optional[str],
        typer.Option(
            "--gitlab-token",
            help="GitLab personal access token (default: $GITLAB_TOKEN).",
            show_default=False,
        ),
    ] = None,
    github_token: Annotated[
        Optional[str],
        typer.Option(
            "--github-token",
            help="GitHub token (default: $GITHUB_TOKEN).",
            show_default=False,
        ),
    ] = None,
    preserve_mode: Annotated[
        bool,
        typer.Option(
            "--preserve-mode",
            help="Keep source file permission bits instead of 0644.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose logging.",
        ),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show the version and exit.",
        ),
    ] = False,
) -> None:
    """Render a template tree into a directory or archive."""
    # Configure logging
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )

    logger.debug("Starting treeplate")

    settings = Settings().with_tokens(gitlab_token=gitlab_token, github_token=github_token)
    dialect = Dialect.BACKSTAGE if backstage else Dialect.STANDARD

    try:
        params = build_parameters(
            parameters, sets, wrap_under_values=not parameters_on_root
        )
        descriptor = parse_source(source)
        tree = resolve(descriptor, template_subpath, settings=settings)
        target = parse_destination(destination, allow_overwrite=force)
        summary = execute(tree, params, dialect, target, preserve_mode=preserve_mode)
    except TreeplateError as exc:
        logger.error(str(exc))
        raise typer.Exit(code=1) from exc

    logger.debug(f"Completed: {summary.model_dump()}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
