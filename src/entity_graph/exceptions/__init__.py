"""Exception hierarchy for entity-graph."""

from .analysis import (
    AnalysisError,
    FileAccessError,
    ParsingError,
    UnsupportedDialectError,
)
from .base import EntityGraphError
from .config import (
    ConfigurationError,
    InvalidConfigError,
    InvalidPathError,
)
from .taxonomy import Issue, IssueKind

__all__ = [
    "EntityGraphError",
    "AnalysisError",
    "FileAccessError",
    "ParsingError",
    "UnsupportedDialectError",
    "ConfigurationError",
    "InvalidPathError",
    "InvalidConfigError",
    "Issue",
    "IssueKind",
]
