"""Splits single-file component documents into their sections.

A ``.vue`` document is parsed with the HTML grammar; top-level
``<template>``, ``<script>``, ``<script setup>`` and ``<style>`` elements
become sections. Template tag names and the template's leading comment are
read here so the markup tree never has to be kept around.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from tree_sitter import Node

from .languages import SCRIPT_LANG_GRAMMARS
from .queries.markup import TAG_QUERY
from .syntax import first_child_of_type, node_text
from .treesitter_parser import TreeSitterParser


@dataclass(frozen=True)
class ScriptSection:
    """One ``<script>`` block.

    Attributes:
        content: Raw script text
        start_row: 0-based file row the content starts on
        lang: ``lang`` attribute (defaults to ``js``)
        setup: ``<script setup>``
    """

    content: str
    start_row: int
    lang: str = "js"
    setup: bool = False

    @property
    def grammar(self) -> str:
        return SCRIPT_LANG_GRAMMARS.get(self.lang, "typescript")

    @property
    def jsx(self) -> bool:
        return self.grammar in ("tsx", "javascript")


@dataclass(frozen=True)
class TemplateSection:
    """The ``<template>`` block, pre-digested."""

    tags: tuple[str, ...]
    leading_comment: Optional[str]
    start_line: int
    end_line: int


@dataclass(frozen=True)
class ComponentSections:
    template: Optional[TemplateSection] = None
    scripts: tuple[ScriptSection, ...] = field(default_factory=tuple)
    style_count: int = 0

    @property
    def is_empty(self) -> bool:
        return self.template is None and not self.scripts


def _attributes(start_tag: Node, source: bytes) -> dict[str, str]:
    attrs: dict[str, str] = {}
    for attribute in start_tag.named_children:
        if attribute.type != "attribute":
            continue
        name_node = first_child_of_type(attribute, "attribute_name")
        if name_node is None:
            continue
        value = ""
        value_node = first_child_of_type(attribute, "quoted_attribute_value", "attribute_value")
        if value_node is not None:
            inner = first_child_of_type(value_node, "attribute_value")
            value = node_text(inner if inner is not None else value_node, source).strip("'\"")
        attrs[node_text(name_node, source)] = value
    return attrs


def _tag_name(element: Node, source: bytes) -> Optional[str]:
    tag = first_child_of_type(element, "start_tag", "self_closing_tag")
    if tag is None:
        return None
    name = first_child_of_type(tag, "tag_name")
    return node_text(name, source) if name is not None else None


def _script_section(element: Node, source: bytes) -> ScriptSection:
    start_tag = first_child_of_type(element, "start_tag")
    attrs = _attributes(start_tag, source) if start_tag is not None else {}
    raw = first_child_of_type(element, "raw_text")
    if raw is not None:
        content = node_text(raw, source)
        start_row = raw.start_point[0]
    else:
        content = ""
        start_row = element.start_point[0]
    return ScriptSection(
        content=content,
        start_row=start_row,
        lang=attrs.get("lang", "js").lower() or "js",
        setup="setup" in attrs,
    )


def _template_section(element: Node, source: bytes, parser: TreeSitterParser, tree) -> TemplateSection:
    tags = []
    for node, _name in parser.query(tree, TAG_QUERY, "html", node=element):
        tags.append(node_text(node, source))
    # the template's own tag comes first
    if tags and tags[0] == "template":
        tags = tags[1:]

    leading_comment = None
    for child in element.named_children:
        if child.type == "start_tag":
            continue
        if child.type == "comment":
            text = node_text(child, source)
            leading_comment = text.removeprefix("<!--").removesuffix("-->").strip() or None
        break

    return TemplateSection(
        tags=tuple(tags),
        leading_comment=leading_comment,
        start_line=element.start_point[0] + 1,
        end_line=element.end_point[0] + 1,
    )


def split_component_document(source: bytes, parser: TreeSitterParser) -> ComponentSections:
    """Split a component document into template, script and style sections."""
    tree = parser.parse(source, "html")
    if tree is None:
        return ComponentSections()

    template: Optional[TemplateSection] = None
    scripts: list[ScriptSection] = []
    style_count = 0

    for element in tree.root_node.named_children:
        if element.type == "script_element":
            scripts.append(_script_section(element, source))
        elif element.type == "style_element":
            style_count += 1
        elif element.type == "element" and template is None and _tag_name(element, source) == "template":
            template = _template_section(element, source, parser, tree)

    return ComponentSections(template=template, scripts=tuple(scripts), style_count=style_count)
