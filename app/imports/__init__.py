"""
Broker file import pipeline.

File -> detect -> parser -> (rows, headers) -> mapping -> assembler -> executor
"""

from app.imports.errors import FormatError, ImportPipelineError, InvalidStepError, PreconditionError
from app.imports.models import ColumnMapping, DataSource, ImportMode, ImportStats, ParsedFile

__all__ = [
    "FormatError",
    "ImportPipelineError",
    "InvalidStepError",
    "PreconditionError",
    "ColumnMapping",
    "DataSource",
    "ImportMode",
    "ImportStats",
    "ParsedFile",
]
