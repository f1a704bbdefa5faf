"""Exceptions raised by the import pipeline."""

from __future__ import annotations


class ImportPipelineError(Exception):
    """Base class for import pipeline errors."""


class FormatError(ImportPipelineError):
    """The file as a whole cannot be parsed (wrong extension, missing anchor, undecodable, empty)."""


class PreconditionError(ImportPipelineError):
    """An import run cannot start (no account, incomplete mapping, purge failed, bad timezone)."""


class InvalidStepError(ImportPipelineError):
    """An import session operation was called out of order."""

    def __init__(self, message: str, *, step: str | None = None):
        super().__init__(message)
        self.step = step
