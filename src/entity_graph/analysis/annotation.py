"""Leading-comment extraction and normalization."""

from __future__ import annotations

from typing import Optional

from tree_sitter import Node

from ..scanning.syntax import node_text

# Tool directives rather than documentation
_DIRECTIVE_PREFIXES = (
    "eslint-",
    "eslint ",
    "@ts-",
    "prettier-ignore",
    "istanbul ignore",
    "c8 ignore",
    "#region",
    "#endregion",
    "webpackChunkName",
    "@vite-ignore",
)


def normalize_comment(text: str) -> str:
    """Strip comment markers from a ``//`` or ``/* */`` comment."""
    text = text.strip()
    if text.startswith("/*"):
        body = text[2:-2] if text.endswith("*/") and len(text) >= 4 else text[2:]
        body = body.lstrip("*!")
        lines = []
        for line in body.splitlines():
            line = line.strip()
            if line.startswith("*"):
                line = line[1:]
                if line.startswith(" "):
                    line = line[1:]
            lines.append(line.rstrip())
    else:
        line = text.lstrip("/")
        if line.startswith(" "):
            line = line[1:]
        lines = [line.rstrip()]

    while lines and not lines[0]:
        lines.pop(0)
    while lines and not lines[-1]:
        lines.pop()
    return "\n".join(lines)


def is_directive(text: str) -> bool:
    return text.startswith(_DIRECTIVE_PREFIXES)


def leading_comment_nodes(statement: Node) -> list[Node]:
    """Comments directly above ``statement``, top to bottom.

    The run stops at a blank line. A comment sharing its line with the
    preceding statement is that statement's trailing comment and is left out.
    """
    comments: list[Node] = []
    expected_row = statement.start_point[0]
    node = statement.prev_sibling
    while node is not None and node.type == "comment":
        if node.end_point[0] < expected_row - 1:
            break
        comments.append(node)
        expected_row = node.start_point[0]
        node = node.prev_sibling

    if comments and node is not None and node.end_point[0] == comments[-1].start_point[0]:
        comments.pop()
    comments.reverse()
    return comments


def leading_comment(statement: Node, source: bytes) -> Optional[str]:
    """Normalized leading documentation of ``statement``, or None."""
    parts = []
    for comment in leading_comment_nodes(statement):
        text = normalize_comment(node_text(comment, source))
        if text and not is_directive(text):
            parts.append(text)
    return "\n".join(parts) if parts else None


def first_statement(root: Node) -> Optional[Node]:
    for child in root.named_children:
        if child.type != "comment":
            return child
    return None
