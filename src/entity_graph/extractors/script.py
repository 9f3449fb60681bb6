"""Extractor for plain script modules (.ts, .tsx, .js, .jsx and friends)."""

from ..logging_config import get_logger
from ..models import Entity
from ..scanning.source_index import SourceFile
from .base import BaseExtractor

logger = get_logger(__name__)


class ScriptExtractor(BaseExtractor):
    """Emits one entity per exported top-level declaration.

    Private declarations never appear. A declaration exported under several
    names (``export function f``, ``export default f``, ``export { f as g }``)
    appears once, under its own name when it is exported as itself.
    """

    dialects = ("typescript", "tsx", "javascript")

    def build_entities(self, source_file: SourceFile, rel: str) -> list[Entity]:
        entities = super().build_entities(source_file, rel)
        if source_file.syntax.has_errors:
            logger.warning(
                "Syntax errors in %s; kept %d declarations that parsed cleanly", rel, len(entities)
            )
        return entities
