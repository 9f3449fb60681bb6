"""Analysis-related exceptions: file access, parsing, dialect support."""

from pathlib import Path
from typing import List

from .base import EntityGraphError


class AnalysisError(EntityGraphError):
    """Base class for analysis-related errors."""
    pass


class FileAccessError(AnalysisError):
    """Raised when a source file cannot be read."""

    def __init__(self, filepath: Path, reason: str):
        super().__init__(
            f"Cannot access file: {filepath}",
            details={"filepath": str(filepath), "reason": reason},
        )
        self.filepath = filepath
        self.reason = reason


class ParsingError(AnalysisError):
    """Raised when file content cannot be decoded or parsed."""

    def __init__(self, filepath: Path, dialect: str, reason: str):
        super().__init__(
            f"Failed to parse {dialect} file: {filepath}",
            details={"filepath": str(filepath), "dialect": dialect, "reason": reason},
        )
        self.filepath = filepath
        self.dialect = dialect
        self.reason = reason


class UnsupportedDialectError(AnalysisError):
    """Raised when no extractor handles a file's dialect."""

    def __init__(self, dialect: str, supported_dialects: List[str]):
        super().__init__(
            f"Unsupported dialect: {dialect}",
            details={"dialect": dialect, "supported": ", ".join(supported_dialects)},
        )
        self.dialect = dialect
        self.supported_dialects = supported_dialects
