"""Template rendering engine."""

from __future__ import annotations

import logging
from typing import Any

from jinja2 import StrictUndefined, TemplateError
from jinja2.ext import Extension
from jinja2.lexer import TOKEN_VARIABLE_BEGIN, newline_re
from jinja2.sandbox import SandboxedEnvironment

from ..core.errors import RenderError
from ..core.models import Dialect

logger = logging.getLogger(__name__)

# Backstage scaffolder templates only change the variable start marker
BACKSTAGE_VARIABLE_START = "${{"
# Standard dialect emits Backstage expressions verbatim
_BACKSTAGE_ESCAPE = "{{ '${{' }}"

_EXPRESSION_ERRORS = (TemplateError, TypeError, ValueError, ArithmeticError, LookupError)


class BackstageLiteralExtension(Extension):
    """Keeps Backstage ${{ }} expressions verbatim in standard templates.

    Only markers the lexer reads as template data are escaped. Raw blocks,
    comments and string literals keep their text.
    """

    def preprocess(
        self, source: str, name: str | None, filename: str | None = None
    ) -> str:
        if BACKSTAGE_VARIABLE_START not in source:
            return source

        # Match the newline normalization the lexer applies
        source = "\n".join(newline_re.split(source)[::2])
        starts = []
        cursor = 0
        for _, token, value in self.environment.lexer.tokeniter(source, name, filename):
            start = source.find(value, cursor)
            if start < 0:
                start = cursor
            if token == TOKEN_VARIABLE_BEGIN and start > 0 and source[start - 1] == "$":
                starts.append(start - 1)
            cursor = start + len(value)

        parts = []
        last = 0
        for start in starts:
            parts.append(source[last:start])
            parts.append(_BACKSTAGE_ESCAPE)
            last = start + len(BACKSTAGE_VARIABLE_START)
        parts.append(source[last:])
        return "".join(parts)


def create_environment(dialect: Dialect = Dialect.STANDARD) -> SandboxedEnvironment:
    """Create a Jinja2 environment for the given delimiter dialect.

    Args:
        dialect: Delimiter set to recognize

    Returns:
        Sandboxed environment failing on undefined variables
    """
    options: dict[str, Any] = {}
    if dialect is Dialect.BACKSTAGE:
        options["variable_start_string"] = BACKSTAGE_VARIABLE_START
    else:
        options["extensions"] = [BackstageLiteralExtension]

    return SandboxedEnvironment(
        undefined=StrictUndefined,
        autoescape=False,
        keep_trailing_newline=True,
        **options,
    )


def decode_text(content: bytes) -> str | None:
    """Decode content as UTF-8, returning None for binary data."""
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError:
        return None


class TemplateRenderer:
    """Renders file contents and path segments for one dialect."""

    def __init__(self, dialect: Dialect = Dialect.STANDARD) -> None:
        self.dialect = Dialect(dialect)
        self.env = create_environment(self.dialect)
        self._crlf_env = self.env.overlay(newline_sequence="\r\n")
        self._markers = (
            self.env.variable_start_string,
            self.env.block_start_string,
            self.env.comment_start_string,
        )

    def has_markers(self, text: str) -> bool:
        if self.dialect is Dialect.STANDARD:
            text = text.replace(BACKSTAGE_VARIABLE_START, "")
        return any(marker in text for marker in self._markers)

    def render(self, text: str, context: dict[str, Any], entry_path: str) -> str:
        """Render one unit of text.

        Args:
            text: Template source (file content or a path segment)
            context: Template variables
            entry_path: Source path reported on failure

        Returns:
            Rendered text; text without markers is returned unchanged

        Raises:
            RenderError: On undefined variables, syntax or type errors
        """
        if not self.has_markers(text):
            return text

        crlf = text.count("\r\n")
        env = self._crlf_env if crlf > text.count("\n") - crlf else self.env
        try:
            return env.from_string(text).render(context)
        except _EXPRESSION_ERRORS as exc:
            raise RenderError(entry_path, exc) from exc

    def render_bytes(
        self, content: bytes, context: dict[str, Any], entry_path: str
    ) -> tuple[bytes, bool]:
        """Render file content, passing non-UTF-8 data through untouched.

        Returns:
            Tuple of output bytes and whether the content was binary
        """
        text = decode_text(content)
        if text is None:
            logger.debug(f"Copying binary file {entry_path} unrendered")
            return content, True
        return self.render(text, context, entry_path).encode("utf-8"), False
