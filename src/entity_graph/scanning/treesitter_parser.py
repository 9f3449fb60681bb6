"""Tree-sitter parser wrapper.

One ``Language`` per grammar is built at import time. Parsers are not
thread-safe, so ``parse`` creates a fresh ``Parser`` per call while compiled
queries are shared.

Usage:
    parser = TreeSitterParser()
    tree = parser.parse(code_bytes, "typescript")
    captures = parser.query(tree, query_str, "typescript")
"""

from __future__ import annotations

import threading
from typing import Optional

import tree_sitter_html
import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language, Node, Parser, Query, QueryCursor, Tree

from ..logging_config import get_logger
from .queries import applies_to

logger = get_logger(__name__)

Capture = tuple[Node, str]

_LANGUAGES: dict[str, Language] = {
    "typescript": Language(tree_sitter_typescript.language_typescript()),
    "tsx": Language(tree_sitter_typescript.language_tsx()),
    "javascript": Language(tree_sitter_javascript.language()),
    "html": Language(tree_sitter_html.language()),
}


def get_supported_grammars() -> list[str]:
    """Get list of grammar names the parser can handle."""
    return list(_LANGUAGES.keys())


class TreeSitterParser:
    """Wrapper around tree-sitter for the script and markup grammars."""

    def __init__(self) -> None:
        self._queries: dict[tuple[str, str], Optional[Query]] = {}
        self._lock = threading.Lock()

    def parse(self, code: bytes, grammar: str) -> Optional[Tree]:
        """Parse code and return its syntax tree.

        Args:
            code: Source code as bytes
            grammar: Grammar name (e.g., "typescript", "html")

        Returns:
            Tree, or None if the grammar is unknown
        """
        language = _LANGUAGES.get(grammar)
        if language is None:
            return None
        return Parser(language).parse(code)

    def query(self, tree: Optional[Tree], query_str: str, grammar: str,
              node: Optional[Node] = None) -> list[Capture]:
        """Run a query on a syntax tree.

        Args:
            tree: Syntax tree from parse()
            query_str: S-expression query string
            grammar: Grammar name the tree was parsed with
            node: Restrict matching to this subtree (defaults to the root)

        Returns:
            List of (node, capture_name) tuples in document order
        """
        if tree is None:
            return []

        query = self._compiled(query_str, grammar)
        if query is None:
            return []

        cursor = QueryCursor(query)
        matches = cursor.matches(node if node is not None else tree.root_node)
        result: list[Capture] = []
        for _pattern_id, captures_dict in matches:
            for capture_name, nodes in captures_dict.items():
                for captured in nodes:
                    result.append((captured, capture_name))
        result.sort(key=lambda capture: capture[0].start_byte)
        return result

    def is_grammar_supported(self, grammar: str) -> bool:
        """Check if a grammar is available."""
        return grammar in _LANGUAGES

    def _compiled(self, query_str: str, grammar: str) -> Optional[Query]:
        key = (grammar, query_str)
        with self._lock:
            if key in self._queries:
                return self._queries[key]
            language = _LANGUAGES.get(grammar)
            query: Optional[Query] = None
            if language is not None and applies_to(query_str, grammar):
                query = Query(language, query_str)
            elif language is not None:
                # Node types absent from this grammar (e.g. JSX in plain TypeScript)
                logger.debug("Query not applicable to %s; not compiled", grammar)
            self._queries[key] = query
            return query
