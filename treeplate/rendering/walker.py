"""Render a template tree and stream it to a destination."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

from ..core.entries import RenderedEntry, check_segment
from ..core.errors import PathCollisionError
from ..core.models import Destination, Dialect, RunSummary
from ..destinations.writer import open_sink
from ..parameters.store import ParameterSet
from ..sources.tree import VirtualTree
from .engine import TemplateRenderer

logger = logging.getLogger(__name__)


class TreeWalker:
    """Renders every entry of a tree with one parameter set and dialect.

    Path segments are rendered one at a time, so directory and file names
    may reference parameters. A segment rendering to an empty string drops
    the entry together with everything below it.
    """

    def __init__(self, parameters: ParameterSet, dialect: Dialect = Dialect.STANDARD) -> None:
        self.parameters = parameters
        self.renderer = TemplateRenderer(dialect)

    def render_entries(
        self, tree: VirtualTree, summary: RunSummary | None = None
    ) -> Iterator[RenderedEntry]:
        """Yield rendered entries in tree order.

        Raises:
            RenderError: When a name or file content fails to render
            UnsafePathError: When a rendered name is '.', '..' or has a separator
            PathCollisionError: When two entries render to the same path
        """
        context: dict[str, Any] = self.parameters.context()
        rendered_dirs: dict[tuple[str, ...], tuple[str, ...]] = {(): ()}
        skipped: set[tuple[str, ...]] = set()
        claimed: dict[tuple[str, ...], RenderedEntry] = {}

        for entry in tree.walk():
            parent = entry.segments[:-1]
            if parent in skipped:
                skipped.add(entry.segments)
                continue

            name = self.renderer.render(entry.segments[-1], context, entry.path)
            if not name:
                logger.debug(f"Skipping {entry.path}: name rendered empty")
                skipped.add(entry.segments)
                if summary is not None:
                    summary.skipped += 1
                continue
            check_segment(name, entry.path)
            segments = rendered_dirs[parent] + (name,)

            previous = claimed.get(segments)
            if previous is not None and not (previous.is_dir and entry.is_dir):
                raise PathCollisionError("/".join(segments), previous.source, entry.path)

            if entry.is_dir:
                rendered_dirs[entry.segments] = segments
                rendered = RenderedEntry(
                    segments, "directory", mode=entry.mode, source=entry.path
                )
            else:
                content, binary = self.renderer.render_bytes(
                    entry.read(), context, entry.path
                )
                rendered = RenderedEntry(
                    segments, "file", content, entry.mode, entry.path, binary
                )
                logger.debug(f"Rendered {entry.path} → {rendered.path}")

            claimed[segments] = rendered
            yield rendered

    def execute(
        self, tree: VirtualTree, destination: Destination, preserve_mode: bool = False
    ) -> RunSummary:
        """Render the tree into the destination.

        The destination is checked before anything is rendered. Entries are
        written as they are produced; the first error aborts the run and
        output already written is left in place.
        """
        summary = RunSummary(destination=destination.path)

        with open_sink(destination, preserve_mode) as sink:
            for rendered in self.render_entries(tree, summary):
                sink.write_entry(rendered)
                if rendered.is_dir:
                    summary.directories_created += 1
                else:
                    summary.files_written += 1
                    if rendered.binary:
                        summary.binary_files += 1
            sink.finalize()

        logger.info(
            f"Rendered {summary.files_written} file(s) and "
            f"{summary.directories_created} director(ies) into {summary.destination}"
        )
        return summary


def execute(
    tree: VirtualTree,
    parameters: ParameterSet,
    dialect: Dialect,
    destination: Destination,
    *,
    preserve_mode: bool = False,
) -> RunSummary:
    """Render ``tree`` with ``parameters`` into ``destination``."""
    return TreeWalker(parameters, dialect).execute(tree, destination, preserve_mode)
