"""Heuristics deciding which entity type a declaration is emitted as.

Without type inference, "is this a UI component?" is answered from naming
conventions and syntax:

    - verb-prefixed names (getUser, useAuth, handleClick) and utility
      suffixes (DateUtils, AuthService) are never components
    - PascalCase functions whose body contains JSX are components
    - classes extending Component / React.Component / PureComponent, or
      defining ``render()``, or decorated ``@Component``, are components
    - PascalCase values wrapped in memo/forwardRef/defineComponent are
      components

Variables resolve with precedence component > constant > function > variable,
constants being reported as plain variables.
"""

import re
from typing import Optional

from tree_sitter import Node

from ..models import EntityType
from .syntax import iter_descendants, node_text

_NON_COMPONENT_PREFIX = re.compile(
    r"^(?i:get|set|use|handle|on|is|has|can|should|fetch|load|save|parse|validate|"
    r"compute|calculate|convert|transform|format|serialize|dispatch|subscribe|make|"
    r"init|with)(?=[A-Z0-9_]|$)"
)

_NON_COMPONENT_SUFFIX = re.compile(
    r"(Util|Utils|Service|Manager|Helper|Helpers|Store|Api|Client|Factory|Config|"
    r"Constants|Context|Reducer|Middleware|Hook|Hooks|Schema|Validator|Error)$"
)

_CONSTANT_NAME = re.compile(r"^[A-Z][A-Z0-9_]*$")

_COMPONENT_BASES = re.compile(r"^(React\.)?(Pure)?Component$")

_COMPONENT_WRAPPERS = {
    "memo",
    "React.memo",
    "forwardRef",
    "React.forwardRef",
    "observer",
    "defineComponent",
    "defineAsyncComponent",
    "Vue.extend",
    "Vue.component",
}

_FUNCTION_VALUES = {"arrow_function", "function_expression", "function", "generator_function"}

_LITERAL_VALUES = {
    "string",
    "template_string",
    "number",
    "true",
    "false",
    "null",
    "undefined",
    "object",
    "array",
    "regex",
}

_JSX_NODES = {"jsx_element", "jsx_self_closing_element", "jsx_fragment"}


def is_pascal_case(name: str) -> bool:
    return bool(name) and name[0].isupper() and not _CONSTANT_NAME.match(name)


def is_component_name(name: str) -> bool:
    """PascalCase and not shaped like a helper, hook, or service."""
    if not is_pascal_case(name):
        return False
    if _NON_COMPONENT_PREFIX.match(name):
        return False
    return not _NON_COMPONENT_SUFFIX.search(name)


def contains_jsx(node: Optional[Node]) -> bool:
    if node is None:
        return False
    return any(child.type in _JSX_NODES for child in iter_descendants(node))


def _callee_text(call: Node, source: bytes) -> str:
    function = call.child_by_field_name("function")
    return node_text(function, source) if function is not None else ""


def _has_component_decorator(node: Node, source: bytes) -> bool:
    for child in node.children:
        if child.type == "decorator" and node_text(child, source).lstrip("@").startswith("Component"):
            return True
    return False


def classify_function(name: str, node: Node, source: bytes, jsx: bool) -> EntityType:
    if jsx and is_component_name(name) and contains_jsx(node.child_by_field_name("body")):
        return EntityType.COMPONENT
    return EntityType.FUNCTION


def classify_class(name: str, node: Node, source: bytes, statement: Optional[Node] = None) -> EntityType:
    """Component when it extends a component base, renders, or carries @Component."""
    if _has_component_decorator(node, source) or (
        statement is not None and _has_component_decorator(statement, source)
    ):
        return EntityType.COMPONENT

    for child in node.children:
        if child.type != "class_heritage":
            continue
        for clause in iter_descendants(child):
            if clause.type != "extends_clause":
                continue
            value = clause.child_by_field_name("value")
            if value is not None and _COMPONENT_BASES.match(node_text(value, source)):
                return EntityType.COMPONENT

    body = node.child_by_field_name("body")
    if body is not None:
        for member in body.named_children:
            if member.type != "method_definition":
                continue
            member_name = member.child_by_field_name("name")
            if member_name is not None and node_text(member_name, source) == "render":
                return EntityType.COMPONENT
    return EntityType.CLASS


def classify_value(name: str, value: Optional[Node], source: bytes, jsx: bool) -> EntityType:
    """Entity type of ``const name = value``."""
    if value is None:
        return EntityType.VARIABLE

    # unwrap `x as T` / `x satisfies T`
    while value.type in ("as_expression", "satisfies_expression", "parenthesized_expression"):
        inner = value.named_children[0] if value.named_children else None
        if inner is None:
            break
        value = inner

    if value.type in _FUNCTION_VALUES and jsx and is_component_name(name):
        if contains_jsx(value.child_by_field_name("body")):
            return EntityType.COMPONENT
    if value.type == "call_expression" and is_pascal_case(name):
        if _callee_text(value, source) in _COMPONENT_WRAPPERS:
            return EntityType.COMPONENT
    if value.type == "class":
        kind = classify_class(name, value, source)
        if kind is EntityType.COMPONENT:
            return kind

    if _CONSTANT_NAME.match(name) or value.type in _LITERAL_VALUES:
        return EntityType.VARIABLE
    if value.type in _FUNCTION_VALUES:
        return EntityType.FUNCTION
    if value.type == "class":
        return EntityType.CLASS
    return EntityType.VARIABLE


def classify_default_value(value: Node, source: bytes, jsx: bool, stem: str,
                           component_document: bool = False) -> EntityType:
    """Entity type of an anonymous ``export default <expression>``.

    The file stem stands in for the missing name in naming heuristics.
    """
    if component_document and value.type in ("object", "call_expression"):
        return EntityType.COMPONENT
    if value.type in _FUNCTION_VALUES:
        return classify_function(stem, value, source, jsx)
    if value.type == "class":
        return classify_class(stem, value, source)
    if value.type == "call_expression" and _callee_text(value, source) in _COMPONENT_WRAPPERS:
        return EntityType.COMPONENT
    return EntityType.VARIABLE
