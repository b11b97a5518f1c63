"""Error taxonomy for codeatlas analysis runs."""

from __future__ import annotations


class CodeAtlasError(RuntimeError):
    """Base class for errors raised by codeatlas."""


class ConfigurationError(CodeAtlasError):
    """Raised before analysis starts when the run configuration is unusable."""


class CancellationError(CodeAtlasError):
    """Raised when a run is stopped; no partial report is produced."""


class ExtractionFailure(CodeAtlasError):
    """Raised by an extractor variant when a single file cannot be processed.

    The extractor registry converts it into a ``failed`` FileRecord, so it
    never escapes a run.
    """


__all__ = [
    "CancellationError",
    "CodeAtlasError",
    "ConfigurationError",
    "ExtractionFailure",
]
