"""Extractor for single-file component documents (.vue)."""

from ..models import DEFAULT_EXPORT, Entity
from ..scanning.source_index import SourceFile
from .base import BaseExtractor


class ComponentDocumentExtractor(BaseExtractor):
    """Emits the document's root component plus any named script exports.

    The root component is always ``Component:<file stem>`` with raw name
    ``default``, whether the document uses ``<script setup>``, an
    ``export default {...}`` object, ``defineComponent(...)``, or only a
    template. A document with neither template nor script yields nothing.
    """

    dialects = ("vue",)

    def build_entities(self, source_file: SourceFile, rel: str) -> list[Entity]:
        entities = super().build_entities(source_file, rel)
        # root component first, then named exports by line
        entities.sort(key=lambda entity: (entity.raw_name != DEFAULT_EXPORT, entity.loc.start))
        return entities
