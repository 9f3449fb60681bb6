"""Non-fatal issue taxonomy.

Nothing in the graph builder aborts a run for a single bad file or entity.
Components record what they skipped as ``Issue`` records instead of raising:

    NOT_FOUND          missing file, package, or config; a default is used
    UNPARSABLE         a file or config could not be read or parsed; it is skipped
    AMBIGUOUS          duplicate names resolved deterministically
    CONTEXT_VIOLATION  an entity was analyzed outside the current entity context
    CYCLE              a type-config extends chain looped or ran too deep; it was truncated
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class IssueKind(Enum):
    """Categories of recoverable problems."""

    NOT_FOUND = "not_found"
    UNPARSABLE = "unparsable"
    AMBIGUOUS = "ambiguous"
    CONTEXT_VIOLATION = "context_violation"
    CYCLE = "cycle"


@dataclass(frozen=True)
class Issue:
    """A recoverable problem observed while building the graph.

    Attributes:
        kind: Issue category
        message: Human-readable description
        context: Extra structured context (path, name, ...)
    """

    kind: IssueKind
    message: str
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.message}"

    def to_json(self) -> dict[str, Any]:
        """Structured logging format."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "context": self.context,
        }
