"""Tree-sitter queries shared by the TypeScript, TSX and JavaScript grammars.

The query bodies only use node types common to all three grammars, except
``JSX_ELEMENT_QUERY`` whose node types exist only in tsx and javascript.
"""

SCRIPT_GRAMMARS = frozenset({"typescript", "tsx", "javascript"})
JSX_GRAMMARS = frozenset({"tsx", "javascript"})

# Any invocation; callee shape is inspected by the analyzer
CALL_QUERY = """
(call_expression
    function: (_) @call.function
    arguments: (_) @call.arguments
) @call

(new_expression
    constructor: (_) @new.constructor
) @new
"""

JSX_ELEMENT_QUERY = """
(jsx_opening_element
    name: (_) @jsx.name
)

(jsx_self_closing_element
    name: (_) @jsx.name
)
"""
