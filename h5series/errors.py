"""Exceptions raised by h5series."""

from __future__ import annotations


class H5SeriesError(Exception):
    """Base error for all h5series exceptions."""


# ---- Open time ----
class ConfigurationError(H5SeriesError, ValueError):
    """Raised when the writer is configured with unusable inputs."""


class TargetExistsError(ConfigurationError, FileExistsError):
    """Raised when the file for a period already exists."""


class GeometryError(H5SeriesError, ValueError):
    """Raised when no positive chunk length exists for a dataset."""


class LayoutError(H5SeriesError, ValueError):
    """Raised when the catalog items do not map onto a valid namespace."""


# ---- Write time ----
class ContractViolation(H5SeriesError, ValueError):
    """Raised when a write request falls outside what the open file declares."""


class WriterStateError(H5SeriesError, RuntimeError):
    """Raised when open/write/close are called out of order."""
