"""Tests for entity extraction from component documents."""

from entity_graph.extractors import ComponentDocumentExtractor
from entity_graph.models import DEFAULT_EXPORT, EntityType

SETUP_DOCUMENT = """
<template>
  <UserAvatar />
</template>

<script setup lang="ts">
import UserAvatar from './UserAvatar.vue'
const local = 1
</script>
"""

OPTIONS_DOCUMENT = """
<template>
  <div>{{ label }}</div>
</template>

<script lang="ts">
import { defineComponent } from 'vue'

export const SIZES = ['s', 'm', 'l']

export default defineComponent({
  props: { label: String },
})
</script>
"""


class TestComponentDocumentExtractor:
    """Test root component and named exports."""

    def test_setup_document_yields_root_only(self, index, make_tree):
        """Setup bindings stay private; the root component is emitted."""
        root = make_tree({"src/UserCard.vue": SETUP_DOCUMENT})
        entities = ComponentDocumentExtractor(index).extract(root / "src/UserCard.vue", root)
        assert [(e.id, e.raw_name, e.type) for e in entities] == [
            ("Component:UserCard", DEFAULT_EXPORT, EntityType.COMPONENT)
        ]

    def test_root_spans_document(self, index, make_tree):
        """The root component covers the whole file."""
        root = make_tree({"Card.vue": SETUP_DOCUMENT})
        (entity,) = ComponentDocumentExtractor(index).extract(root / "Card.vue", root)
        assert entity.loc.start == 1
        assert entity.loc.end == len(SETUP_DOCUMENT.strip("\n").splitlines())

    def test_options_document_named_exports(self, index, make_tree):
        """Named exports of a plain script follow the root component."""
        root = make_tree({"Badge.vue": OPTIONS_DOCUMENT})
        entities = ComponentDocumentExtractor(index).extract(root / "Badge.vue", root)
        assert [e.id for e in entities] == ["Component:Badge", "Variable:SIZES"]

    def test_named_export_lines_are_file_lines(self, index, make_tree):
        """Lines of script declarations are offset to the document."""
        root = make_tree({"Badge.vue": OPTIONS_DOCUMENT})
        entities = ComponentDocumentExtractor(index).extract(root / "Badge.vue", root)
        sizes = entities[1]
        lines = OPTIONS_DOCUMENT.strip("\n").splitlines()
        assert lines[sizes.loc.start - 1].startswith("export const SIZES")

    def test_template_only(self, index, make_tree):
        """A template without script still yields the root component."""
        root = make_tree({"Static.vue": "<template><p>hi</p></template>\n"})
        entities = ComponentDocumentExtractor(index).extract(root / "Static.vue", root)
        assert [e.id for e in entities] == ["Component:Static"]

    def test_empty_document(self, index, make_tree):
        """A document without template or script yields nothing."""
        root = make_tree({"Empty.vue": "<style>p { color: red; }</style>\n"})
        assert ComponentDocumentExtractor(index).extract(root / "Empty.vue", root) == []

    def test_fragments_released(self, index, make_tree):
        """Script fragments parsed during extraction are released."""
        root = make_tree({"Card.vue": SETUP_DOCUMENT})
        ComponentDocumentExtractor(index).extract(root / "Card.vue", root)
        assert index.active_fragments == 0
