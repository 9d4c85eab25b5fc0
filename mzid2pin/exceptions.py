"""Errors raised while converting mzIdentML documents.

Every condition below is fatal: the converter never recovers locally, and the
CLI turns any of them into a non-zero exit status.
"""

from pathlib import Path
from typing import Optional, Union


class ConversionError(Exception):
    """Base class for fatal conversion errors.

    Args:
        message: Human readable description of the problem.
        source: The input file the problem was found in, if known.
    """

    def __init__(self, message: str, source: Optional[Union[Path, str]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.source = source

    def __str__(self) -> str:
        if self.source is None:
            return self.message
        return f"{self.source}: {self.message}"


class MalformedInputError(ConversionError):
    """The document could not be parsed or has an unexpected structure."""


class MissingFieldError(ConversionError):
    """A field the output format requires is absent from the input."""


class DuplicatePeptideError(ConversionError):
    """A peptide identifier occurs more than once in one file."""


class FeatureSchemaError(ConversionError):
    """The feature layout of a file or match differs from the established one."""


class ScanMergeError(ConversionError):
    """Two sightings of the same spectrum disagree on the precursor m/z."""
