"""Base exception for entity-graph."""

from typing import Any, Dict, Optional


class EntityGraphError(Exception):
    """Base exception for all entity-graph errors.

    ``details`` carries structured context (paths, dialects, reasons). When
    a component downgrades the error to an ``Issue``, the details become the
    issue's context.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})

    def __str__(self) -> str:
        reason = self.details.get("reason")
        if reason:
            return f"{self.message}: {reason}"
        return self.message
