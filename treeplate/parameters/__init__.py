"""Template parameter sources."""

from .store import VALUES_KEY, ParameterSet, build_parameters

__all__ = ["VALUES_KEY", "ParameterSet", "build_parameters"]
