"""Syntax models for parsed script modules.

ScriptSyntax is the per-file export table the extractors and the analyzer
share:
    - declarations: top-level declarations keyed by local name
    - exports: exported name -> binding (local declaration or re-export)
    - star_sources: ``export * from`` specifiers
    - imports: import bindings in document order
    - issues: AMBIGUOUS issues found while collecting (duplicate export names)

Line numbers are 1-based file lines; for component documents the script
section's offset is already applied.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from tree_sitter import Node

from ..exceptions import Issue
from ..models import DEFAULT_EXPORT, EntityType

NAMESPACE = "*"


@dataclass
class Declaration:
    """A top-level declaration.

    Attributes:
        name: Local name (``default`` for anonymous default exports)
        kind: Entity type the declaration would be emitted as
        start_line: First line of the enclosing top-level statement
        end_line: Last line of the enclosing top-level statement
        commonjs: Declared through ``exports.x =``; used for lookups only
    """

    name: str
    kind: EntityType
    start_line: int
    end_line: int
    commonjs: bool = False


@dataclass(frozen=True)
class ExportBinding:
    """What an exported name refers to.

    Exactly one of ``local`` or ``source`` is set. ``imported`` is the name
    looked up in ``source`` (``*`` for ``export * as ns``). CommonJS bindings
    (``exports.x = ...``, ``module.exports = ...``) serve lookups only.
    """

    name: str
    local: Optional[str] = None
    source: Optional[str] = None
    imported: Optional[str] = None
    commonjs: bool = False

    @property
    def is_reexport(self) -> bool:
        return self.source is not None


@dataclass(frozen=True)
class ImportBinding:
    """One name bound by an import statement.

    Attributes:
        local: Name bound in the importing module
        imported: ``default``, ``*`` (namespace), or the exported name
        source: Module specifier as written
        line: 1-based line of the import statement
        type_only: ``import type`` statement
    """

    local: str
    imported: str
    source: str
    line: int
    type_only: bool = False

    @property
    def is_namespace(self) -> bool:
        return self.imported == NAMESPACE


@dataclass
class ScriptSyntax:
    """Export/import table of one module."""

    declarations: dict[str, Declaration] = field(default_factory=dict)
    exports: dict[str, ExportBinding] = field(default_factory=dict)
    star_sources: list[str] = field(default_factory=list)
    imports: list[ImportBinding] = field(default_factory=list)
    has_errors: bool = False
    issues: list[Issue] = field(default_factory=list)

    def import_for(self, local: str) -> Optional[ImportBinding]:
        for binding in self.imports:
            if binding.local == local:
                return binding
        return None

    def export_names_for(self, local: str) -> list[str]:
        """Names under which a local declaration is exported, in export order."""
        return [
            name
            for name, binding in self.exports.items()
            if binding.local == local and binding.source is None and not binding.commonjs
        ]

    def raw_name_for(self, local: str) -> Optional[str]:
        """The raw name the entity for ``local`` is emitted under.

        The declaration's own name when exported as itself, else its first
        non-default alias, else the default marker. None when not exported.
        """
        names = self.export_names_for(local)
        if not names:
            return None
        if local in names:
            return local
        for name in names:
            if name != DEFAULT_EXPORT:
                return name
        return DEFAULT_EXPORT

    def exported_declarations(self) -> list[tuple[Declaration, str]]:
        """(declaration, raw name) for every exported local declaration, by line."""
        result = []
        for local, decl in self.declarations.items():
            if decl.commonjs:
                continue
            raw_name = self.raw_name_for(local)
            if raw_name is not None:
                result.append((decl, raw_name))
        result.sort(key=lambda pair: (pair[0].start_line, pair[1]))
        return result

    def entity_declaration_names(self) -> dict[str, str]:
        """Local name -> raw name for declarations that become entities."""
        return {decl.name: raw_name for decl, raw_name in self.exported_declarations()}


# ── Node helpers ───────────────────────────────────────────────────


def node_text(node: Node, source: bytes) -> str:
    return source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


def string_value(node: Node, source: bytes) -> str:
    """Contents of a string literal node without its quotes."""
    text = node_text(node, source)
    if len(text) >= 2 and text[0] in "'\"`" and text[-1] == text[0]:
        return text[1:-1]
    return text


def first_child_of_type(node: Node, *types: str) -> Optional[Node]:
    for child in node.children:
        if child.type in types:
            return child
    return None


def has_child_token(node: Node, token: str) -> bool:
    return any(child.type == token for child in node.children)


def iter_descendants(node: Node):
    """Pre-order traversal of a subtree, the node itself included."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))
