"""Tests for splitting component documents into sections."""

import textwrap

from entity_graph.scanning.sections import split_component_document
from entity_graph.scanning.treesitter_parser import TreeSitterParser

DOCUMENT = textwrap.dedent(
    """\
    <template>
      <!-- Shows one user -->
      <div class="card">
        <UserAvatar :user="user" />
        <base-button @click="select">Pick</base-button>
      </div>
    </template>

    <script setup lang="ts">
    import UserAvatar from './UserAvatar.vue'
    const emit = defineEmits(['select'])
    </script>

    <style scoped>
    .card { color: red; }
    </style>
    """
)


def split(text: str):
    return split_component_document(text.encode(), TreeSitterParser())


class TestSplitComponentDocument:
    """Test section discovery."""

    def test_finds_all_sections(self):
        """Template, script and style sections are found."""
        sections = split(DOCUMENT)
        assert sections.template is not None
        assert len(sections.scripts) == 1
        assert sections.style_count == 1
        assert not sections.is_empty

    def test_script_attributes(self):
        """lang and setup attributes are read."""
        script = split(DOCUMENT).scripts[0]
        assert script.setup is True
        assert script.lang == "ts"
        assert script.grammar == "typescript"
        assert not script.jsx

    def test_script_position(self):
        """start_row points at the row the script content begins on."""
        script = split(DOCUMENT).scripts[0]
        assert "import UserAvatar" in script.content
        first_code_row = DOCUMENT.splitlines().index("import UserAvatar from './UserAvatar.vue'")
        offset = script.content[: script.content.index("import")].count("\n")
        assert script.start_row + offset == first_code_row

    def test_template_tags_exclude_template_itself(self):
        """Tag names inside the template are collected in order."""
        tags = split(DOCUMENT).template.tags
        assert tags == ("div", "UserAvatar", "base-button")

    def test_template_leading_comment(self):
        """A leading HTML comment in the template is captured."""
        assert split(DOCUMENT).template.leading_comment == "Shows one user"

    def test_plain_script_defaults_to_js(self):
        """A script without lang is JavaScript."""
        sections = split("<script>\nexport default {}\n</script>\n")
        assert sections.template is None
        assert sections.scripts[0].lang == "js"
        assert sections.scripts[0].grammar == "javascript"
        assert not sections.scripts[0].setup

    def test_two_scripts(self):
        """A document may carry both a plain and a setup script."""
        text = '<script lang="ts">\nexport const x = 1\n</script>\n<script setup lang="ts">\nconst y = 2\n</script>\n'
        scripts = split(text).scripts
        assert [s.setup for s in scripts] == [False, True]

    def test_empty_document(self):
        """A document without template or script is empty."""
        assert split("<style>a{}</style>\n").is_empty
