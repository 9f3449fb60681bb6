"""Tree-sitter query sources.

``script`` queries run on the typescript, tsx and javascript grammars;
``markup`` queries run on the html grammar of component documents.
``QUERY_GRAMMARS`` lists the grammars whose node types each query uses; a
query is never compiled against any other grammar.
"""

from .markup import MARKUP_GRAMMARS, TAG_QUERY
from .script import CALL_QUERY, JSX_ELEMENT_QUERY, JSX_GRAMMARS, SCRIPT_GRAMMARS

QUERY_GRAMMARS: dict[str, frozenset[str]] = {
    CALL_QUERY: SCRIPT_GRAMMARS,
    JSX_ELEMENT_QUERY: JSX_GRAMMARS,
    TAG_QUERY: MARKUP_GRAMMARS,
}


def applies_to(query_str: str, grammar: str) -> bool:
    """Whether ``query_str`` can be compiled for ``grammar``.

    Query strings not listed in ``QUERY_GRAMMARS`` are assumed to apply.
    """
    grammars = QUERY_GRAMMARS.get(query_str)
    return grammars is None or grammar in grammars


__all__ = [
    "CALL_QUERY",
    "JSX_ELEMENT_QUERY",
    "TAG_QUERY",
    "QUERY_GRAMMARS",
    "applies_to",
]
