"""
Exception hierarchy for asemap.

Every failure in the pipeline surfaces as an AseError subclass; the CLI
layer is the single place where these are turned into a diagnostic and a
non-zero exit status.
"""

from typing import Optional


class AseError(Exception):
    """Base class for all asemap errors."""


class ConfigurationError(AseError):
    """Invalid options or unreadable input (mapping, reference, GTF, file list)."""


class CountFileError(ConfigurationError):
    """A read count file is missing required columns or has invalid values."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(f"{path}: {message}")


class IngestionError(AseError):
    """A loader worker failed while reading or aggregating counts."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        self.path = path
        super().__init__(message)


class ProcessingConsistencyError(AseError):
    """An internal invariant was violated while computing or writing results."""
