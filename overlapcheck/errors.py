"""Custom exceptions for the overlapping template checker."""

from __future__ import annotations


class OverlapCheckError(Exception):
    """Base error type for application specific failures."""


class MissingFileError(OverlapCheckError):
    """Raised when a required input file could not be located."""


class InvalidConfigurationError(OverlapCheckError):
    """Raised when the configuration file or test parameters are invalid."""


class TemplateLengthError(InvalidConfigurationError):
    """Raised when the template length cannot be represented by the counters."""


class LifecycleError(OverlapCheckError):
    """Raised when driver operations are called out of order."""


class InconsistentStateError(OverlapCheckError):
    """Raised when collected results do not match the configured run."""


class ReportWriteError(OverlapCheckError):
    """Raised when a report file could not be written completely."""


class InvalidInputError(OverlapCheckError):
    """Raised when the provided bit data does not meet application constraints."""


class EmptyInputFileError(InvalidInputError):
    """Raised when the input file does not contain any bits."""


class InsufficientBitsError(InvalidInputError):
    """Raised when the input holds fewer bits than the requested streams need."""
