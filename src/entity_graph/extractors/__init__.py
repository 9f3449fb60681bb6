"""Entity extractors, one per source dialect."""

from ..exceptions import UnsupportedDialectError
from ..scanning.source_index import SourceIndex
from .base import BaseExtractor, relative_file
from .component import ComponentDocumentExtractor
from .script import ScriptExtractor

EXTRACTOR_TYPES: tuple[type[BaseExtractor], ...] = (ScriptExtractor, ComponentDocumentExtractor)


class ExtractorRegistry:
    """Dialect -> extractor, all sharing one SourceIndex."""

    def __init__(self, index: SourceIndex):
        self.index = index
        self._by_dialect: dict[str, BaseExtractor] = {}
        for extractor_type in EXTRACTOR_TYPES:
            extractor = extractor_type(index)
            for dialect in extractor_type.dialects:
                self._by_dialect[dialect] = extractor

    def get(self, dialect: str) -> BaseExtractor:
        extractor = self._by_dialect.get(dialect)
        if extractor is None:
            raise UnsupportedDialectError(dialect, sorted(self._by_dialect))
        return extractor

    @property
    def dialects(self) -> list[str]:
        return sorted(self._by_dialect)


__all__ = [
    "BaseExtractor",
    "ComponentDocumentExtractor",
    "ExtractorRegistry",
    "ScriptExtractor",
    "relative_file",
]
