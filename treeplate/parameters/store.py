"""Parameter loading and merging."""

from __future__ import annotations

import copy
import datetime as dt
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import yaml

from ..core.errors import ParameterFileError, ParameterSyntaxError

logger = logging.getLogger(__name__)

VALUES_KEY = "values"

_SCALAR_TYPES = (str, bool, int, float)


class ParameterSet(Mapping[str, Any]):
    """Immutable, ordered mapping of template parameters.

    Iteration and lookup expose the merged parameters themselves; the
    rendering context (optionally wrapped under ``values``) comes from
    :meth:`context`.
    """

    def __init__(self, values: Mapping[str, Any], root_key: str | None = VALUES_KEY) -> None:
        self._values = copy.deepcopy(dict(values))
        self._root_key = root_key

    @property
    def root_key(self) -> str | None:
        return self._root_key

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self):
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"ParameterSet({self._values!r}, root_key={self._root_key!r})"

    def context(self) -> dict[str, Any]:
        """Return a fresh rendering context built from the parameters."""
        values = copy.deepcopy(self._values)
        if self._root_key is None:
            return values
        return {self._root_key: values}


def normalize_value(value: Any, where: str) -> Any:
    """Map a parsed value onto the supported parameter types.

    Args:
        value: Parsed YAML value
        where: Dotted key path used in error messages

    Returns:
        The value, with dates converted to ISO-8601 strings

    Raises:
        TypeError: For unsupported value types
    """
    if value is None or isinstance(value, _SCALAR_TYPES):
        return value
    if isinstance(value, (dt.date, dt.datetime)):
        return value.isoformat()
    if isinstance(value, list):
        return [normalize_value(item, f"{where}[{i}]") for i, item in enumerate(value)]
    if isinstance(value, dict):
        normalized: dict[str, Any] = {}
        for key, item in value.items():
            name = str(key)
            normalized[name] = normalize_value(item, f"{where}.{name}" if where else name)
        return normalized
    raise TypeError(f"unsupported value of type {type(value).__name__} at '{where}'")


def load_parameter_file(path: Path) -> dict[str, Any]:
    """Load one YAML parameters file.

    Args:
        path: Parameters file path

    Returns:
        Top-level mapping of the file (empty for an empty file)
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ParameterFileError(path, f"cannot read file: {exc}") from exc

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ParameterFileError(path, f"invalid YAML: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ParameterFileError(
            path, f"top level must be a mapping, got {type(data).__name__}"
        )

    try:
        return normalize_value(data, "")
    except TypeError as exc:
        raise ParameterFileError(path, str(exc)) from exc


def parse_key_value(entry: str) -> tuple[str, str]:
    """Parse an inline parameter in format KEY=VALUE."""
    if "=" not in entry:
        raise ParameterSyntaxError(entry)
    key, value = entry.split("=", 1)
    key = key.strip()
    if not key:
        raise ParameterSyntaxError(entry, "key must not be empty")
    if any(not part for part in key.split(".")):
        raise ParameterSyntaxError(entry, f"invalid dotted key {key!r}")
    return key, value


def assign(params: dict[str, Any], key: str, value: Any) -> None:
    """Assign ``value`` at a dotted ``key``, creating nested mappings."""
    *parents, leaf = key.split(".")
    node = params
    for part in parents:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[leaf] = value


def build_parameters(
    files: Iterable[Path] = (),
    inline_sets: Iterable[str] = (),
    wrap_under_values: bool = True,
) -> ParameterSet:
    """Merge parameter files and inline overrides.

    Files merge first in the order given, then inline sets in the order
    given; the last writer wins for a key.

    Args:
        files: YAML parameter files
        inline_sets: KEY=VALUE overrides, values kept as strings
        wrap_under_values: Expose parameters under the ``values`` key

    Returns:
        Merged parameter set
    """
    params: dict[str, Any] = {}

    for path in files:
        path = Path(path)
        file_params = load_parameter_file(path)
        logger.debug(f"Loaded {len(file_params)} parameter(s) from {path}")
        params.update(file_params)

    for entry in inline_sets:
        key, value = parse_key_value(entry)
        assign(params, key, value)
        logger.debug(f"Set parameter {key}")

    logger.info(f"Merged {len(params)} top-level parameter(s)")
    return ParameterSet(params, VALUES_KEY if wrap_under_values else None)
