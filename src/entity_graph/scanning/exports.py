"""Collects a module's export/import table from its syntax tree.

Only top-level statements are inspected. ``ERROR`` nodes produced by
tree-sitter's error recovery are skipped, so a partially broken file still
yields whatever declarations parsed cleanly.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from tree_sitter import Node, Tree

from ..exceptions import Issue, IssueKind
from ..logging_config import get_logger
from ..models import DEFAULT_EXPORT, EntityType
from .classify import classify_class, classify_default_value, classify_function, classify_value
from .syntax import (
    NAMESPACE,
    Declaration,
    ExportBinding,
    ImportBinding,
    ScriptSyntax,
    first_child_of_type,
    has_child_token,
    node_text,
    string_value,
)

logger = get_logger(__name__)

FUNCTION_DECLARATIONS = {
    "function_declaration",
    "generator_function_declaration",
    "function_signature",
}
CLASS_DECLARATIONS = {"class_declaration", "abstract_class_declaration"}
VARIABLE_DECLARATIONS = {"lexical_declaration", "variable_declaration"}
TYPE_DECLARATIONS = {
    "interface_declaration": EntityType.INTERFACE,
    "type_alias_declaration": EntityType.TYPE,
    "enum_declaration": EntityType.ENUM,
}
DECLARATION_TYPES = (
    FUNCTION_DECLARATIONS | CLASS_DECLARATIONS | VARIABLE_DECLARATIONS | set(TYPE_DECLARATIONS)
)


class ScriptSyntaxCollector:
    """Builds a ScriptSyntax for one parsed module.

    Args:
        source: Bytes the tree was parsed from
        jsx: The grammar supports JSX (enables component detection)
        path: File the module belongs to; its stem classifies anonymous default exports
        line_offset: Rows preceding the module in its file (component documents)
        component_document: The module is a component document's script
    """

    def __init__(self, source: bytes, jsx: bool, path: Path, line_offset: int = 0,
                 component_document: bool = False):
        self.source = source
        self.jsx = jsx
        self.path = Path(path)
        self.stem = self.path.stem
        self.line_offset = line_offset
        self.component_document = component_document
        self.syntax = ScriptSyntax()

    def collect(self, tree: Tree) -> ScriptSyntax:
        root = tree.root_node
        self.syntax.has_errors = root.has_error
        for statement in root.named_children:
            if statement.type == "ERROR":
                continue
            try:
                self._collect_statement(statement)
            except (AttributeError, IndexError, ValueError) as e:
                # Malformed subtree from error recovery; the other statements still count
                logger.debug("Skipping malformed %s at line %d: %s",
                             statement.type, self._line(statement), e)
        return self.syntax

    # ── Statements ─────────────────────────────────────────────────

    def _collect_statement(self, statement: Node) -> None:
        kind = statement.type
        if kind == "import_statement":
            self._collect_import(statement)
        elif kind == "export_statement":
            self._collect_export(statement)
        elif kind in DECLARATION_TYPES or kind == "ambient_declaration":
            self._declare(statement, statement)
        elif kind == "expression_statement":
            self._collect_commonjs(statement)

    def _collect_import(self, statement: Node) -> None:
        source_node = statement.child_by_field_name("source")
        require_clause = first_child_of_type(statement, "import_require_clause")
        if source_node is None and require_clause is not None:
            source_node = require_clause.child_by_field_name("source")
        if source_node is None:
            return
        specifier = string_value(source_node, self.source)
        line = self._line(statement)
        type_only = has_child_token(statement, "type")

        if require_clause is not None:
            name = first_child_of_type(require_clause, "identifier")
            if name is not None:
                self._add_import(node_text(name, self.source), NAMESPACE, specifier, line, type_only)
            return

        clause = first_child_of_type(statement, "import_clause")
        if clause is None:
            return  # side-effect import
        for child in clause.named_children:
            if child.type == "identifier":
                self._add_import(node_text(child, self.source), DEFAULT_EXPORT, specifier, line, type_only)
            elif child.type == "namespace_import":
                name = first_child_of_type(child, "identifier")
                if name is not None:
                    self._add_import(node_text(name, self.source), NAMESPACE, specifier, line, type_only)
            elif child.type == "named_imports":
                for spec in child.named_children:
                    if spec.type != "import_specifier":
                        continue
                    name_node = spec.child_by_field_name("name")
                    alias_node = spec.child_by_field_name("alias")
                    if name_node is None:
                        continue
                    imported = self._module_name(name_node)
                    local = node_text(alias_node, self.source) if alias_node is not None else imported
                    self._add_import(local, imported, specifier, line,
                                     type_only or has_child_token(spec, "type"))

    def _collect_export(self, statement: Node) -> None:
        declaration = statement.child_by_field_name("declaration")
        value = statement.child_by_field_name("value")
        source_node = statement.child_by_field_name("source")
        is_default = has_child_token(statement, "default")

        if declaration is not None:
            names = self._declare(declaration, statement)
            if is_default:
                if names:
                    self._export(DEFAULT_EXPORT, local=names[0])
            else:
                for name in names:
                    self._export(name, local=name)
            return

        if is_default or has_child_token(statement, "="):
            if value is None:
                value = next(
                    (c for c in statement.named_children if c.type not in ("comment", "decorator")),
                    None,
                )
            if value is not None:
                self._export_default_value(value, statement)
            return

        specifier = string_value(source_node, self.source) if source_node is not None else None

        clause = first_child_of_type(statement, "export_clause")
        if clause is not None:
            for spec in clause.named_children:
                if spec.type != "export_specifier":
                    continue
                name_node = spec.child_by_field_name("name")
                if name_node is None:
                    continue
                name = self._module_name(name_node)
                alias_node = spec.child_by_field_name("alias")
                exported = self._module_name(alias_node) if alias_node is not None else name
                if specifier is not None:
                    self._export(exported, source=specifier, imported=name)
                else:
                    self._export(exported, local=name)
            return

        namespace = first_child_of_type(statement, "namespace_export")
        if namespace is not None and specifier is not None:
            name = first_child_of_type(namespace, "identifier", "string")
            if name is not None:
                self._export(self._module_name(name), source=specifier, imported=NAMESPACE)
            return

        if specifier is not None and has_child_token(statement, "*"):
            if specifier not in self.syntax.star_sources:
                self.syntax.star_sources.append(specifier)

    def _export_default_value(self, value: Node, statement: Node) -> None:
        if value.type == "identifier":
            self._export(DEFAULT_EXPORT, local=node_text(value, self.source))
            return
        kind = classify_default_value(value, self.source, self.jsx, self.stem, self.component_document)
        self._add_declaration(DEFAULT_EXPORT, kind, statement)
        self._export(DEFAULT_EXPORT, local=DEFAULT_EXPORT)

    def _collect_commonjs(self, statement: Node) -> None:
        assignment = first_child_of_type(statement, "assignment_expression")
        if assignment is None:
            return
        left = assignment.child_by_field_name("left")
        right = assignment.child_by_field_name("right")
        if left is None or right is None or left.type != "member_expression":
            return
        target = node_text(left, self.source)

        if target == "module.exports":
            if right.type == "identifier":
                self._export(DEFAULT_EXPORT, local=node_text(right, self.source), commonjs=True)
            elif right.type == "object":
                for prop in right.named_children:
                    if prop.type == "shorthand_property_identifier":
                        name = node_text(prop, self.source)
                        self._export(name, local=name, commonjs=True)
                    elif prop.type == "pair":
                        key = prop.child_by_field_name("key")
                        val = prop.child_by_field_name("value")
                        if key is not None and val is not None and val.type == "identifier":
                            self._export(node_text(key, self.source), local=node_text(val, self.source),
                                         commonjs=True)
            return

        obj = left.child_by_field_name("object")
        prop = left.child_by_field_name("property")
        if obj is None or prop is None:
            return
        if node_text(obj, self.source) not in ("exports", "module.exports"):
            return
        name = node_text(prop, self.source)
        if right.type == "identifier":
            self._export(name, local=node_text(right, self.source), commonjs=True)
        else:
            kind = classify_value(name, right, self.source, self.jsx)
            self._add_declaration(name, kind, statement, commonjs=True)
            self._export(name, local=name, commonjs=True)

    # ── Declarations ───────────────────────────────────────────────

    def _declare(self, node: Node, statement: Node) -> list[str]:
        """Record the declarations in ``node``; return their local names."""
        kind = node.type
        if kind == "ambient_declaration":
            inner = next((c for c in node.named_children if c.type in DECLARATION_TYPES), None)
            return self._declare(inner, statement) if inner is not None else []

        name_node = node.child_by_field_name("name")
        if kind in FUNCTION_DECLARATIONS and name_node is not None:
            name = node_text(name_node, self.source)
            self._add_declaration(name, classify_function(name, node, self.source, self.jsx), statement)
            return [name]
        if kind in CLASS_DECLARATIONS and name_node is not None:
            name = node_text(name_node, self.source)
            self._add_declaration(name, classify_class(name, node, self.source, statement), statement)
            return [name]
        if kind in TYPE_DECLARATIONS and name_node is not None:
            name = node_text(name_node, self.source)
            self._add_declaration(name, TYPE_DECLARATIONS[kind], statement)
            return [name]
        if kind in VARIABLE_DECLARATIONS:
            names = []
            for declarator in node.named_children:
                if declarator.type != "variable_declarator":
                    continue
                declarator_name = declarator.child_by_field_name("name")
                # destructuring patterns declare no single entity
                if declarator_name is None or declarator_name.type != "identifier":
                    continue
                name = node_text(declarator_name, self.source)
                value = declarator.child_by_field_name("value")
                self._add_declaration(name, classify_value(name, value, self.source, self.jsx), statement)
                names.append(name)
            return names
        return []

    def _add_declaration(self, name: str, kind: EntityType, statement: Node,
                         commonjs: bool = False) -> None:
        start = self._line(statement)
        end = statement.end_point[0] + 1 + self.line_offset
        existing = self.syntax.declarations.get(name)
        if existing is not None:
            # overload signatures followed by the implementation
            existing.end_line = max(existing.end_line, end)
            return
        self.syntax.declarations[name] = Declaration(
            name=name, kind=kind, start_line=start, end_line=end, commonjs=commonjs
        )

    # ── Bindings ───────────────────────────────────────────────────

    def _export(self, name: str, local: Optional[str] = None, source: Optional[str] = None,
                imported: Optional[str] = None, commonjs: bool = False) -> None:
        existing = self.syntax.exports.get(name)
        if existing is not None:
            if (existing.local, existing.source, existing.imported) == (local, source, imported):
                # overload signatures re-export the same declaration
                return
            issue = Issue(
                kind=IssueKind.AMBIGUOUS,
                message=f"Duplicate export {name!r} in {self.path}; keeping the first",
                context={"name": name, "path": str(self.path)},
            )
            self.syntax.issues.append(issue)
            logger.warning(str(issue))
            return
        self.syntax.exports[name] = ExportBinding(
            name=name, local=local, source=source, imported=imported, commonjs=commonjs
        )

    def _add_import(self, local: str, imported: str, source: str, line: int, type_only: bool) -> None:
        self.syntax.imports.append(
            ImportBinding(local=local, imported=imported, source=source, line=line, type_only=type_only)
        )

    def _module_name(self, node: Node) -> str:
        if node.type == "string":
            return string_value(node, self.source)
        return node_text(node, self.source)

    def _line(self, node: Node) -> int:
        return node.start_point[0] + 1 + self.line_offset


def collect_script_syntax(tree: Tree, source: bytes, *, jsx: bool, path: Path,
                          line_offset: int = 0, component_document: bool = False) -> ScriptSyntax:
    """Collect the export/import table of a parsed module."""
    collector = ScriptSyntaxCollector(
        source,
        jsx=jsx,
        path=path,
        line_offset=line_offset,
        component_document=component_document,
    )
    return collector.collect(tree)
