"""Treeplate - scaffold projects from template trees.

Renders a directory, archive or remote repository snapshot through Jinja2
and writes the result to a directory or archive.
"""

__version__ = "0.1.0"

# Configure logging for library use
import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())

# Re-export main CLI entry point
from .cli import main

__all__ = ["main"]
