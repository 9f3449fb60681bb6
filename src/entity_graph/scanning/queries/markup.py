"""Tree-sitter queries for component-document markup (HTML grammar)."""

MARKUP_GRAMMARS = frozenset({"html"})

TAG_QUERY = """
(start_tag
    (tag_name) @tag.name
)

(self_closing_tag
    (tag_name) @tag.name
)
"""
