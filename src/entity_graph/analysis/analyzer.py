"""Per-entity static analysis.

``StaticAnalyzer.analyze_entity`` runs a fixed pipeline of stages:

    LOAD_FILE -> PARSE_SECTION -> EXTRACT_IMPORTS -> RESOLVE_IMPORT_TARGETS
    -> EXTRACT_CALLS -> EXTRACT_EMITS -> EXTRACT_TEMPLATE_REFS
    -> EXTRACT_ANNOTATION

A stage that fails stops the pipeline; fields filled by earlier stages are
kept and the rest stay empty. Analyzing an entity that is not part of the
analyzer's entity context yields an empty result.

The entity context is fixed per instance. ``with_entities`` returns a new
analyzer that shares the parse cache, the resolver and its alias/workspace
tables.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from contextlib import ExitStack
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Union

from tree_sitter import Node, Tree

from ..aliases import AliasLoader
from ..config import DEFAULT_CONFIG, GraphConfig
from ..exceptions import EntityGraphError, Issue, IssueKind
from ..extractors.base import relative_file
from ..logging_config import get_logger
from ..models import (
    DEFAULT_EXPORT,
    AnalysisResult,
    Entity,
    EntityLike,
    EntityType,
    as_entity,
    make_entity_id,
)
from ..resolver import ModuleResolver
from ..scanning.queries.script import CALL_QUERY, JSX_ELEMENT_QUERY
from ..scanning.source_index import SourceFile, SourceIndex, normalize_path
from ..scanning.syntax import NAMESPACE, ImportBinding, node_text, string_value
from ..workspace import WorkspaceResolver
from .annotation import first_statement, leading_comment
from .markup import callback_event, is_component_tag, is_emit_callee, kebab_to_pascal

logger = get_logger(__name__)


class AnalysisStage(Enum):
    LOAD_FILE = "load_file"
    PARSE_SECTION = "parse_section"
    EXTRACT_IMPORTS = "extract_imports"
    RESOLVE_IMPORT_TARGETS = "resolve_import_targets"
    EXTRACT_CALLS = "extract_calls"
    EXTRACT_EMITS = "extract_emits"
    EXTRACT_TEMPLATE_REFS = "extract_template_refs"
    EXTRACT_ANNOTATION = "extract_annotation"


@dataclass(frozen=True)
class _Module:
    """One parsed script: a whole file, or a component-document section."""

    tree: Tree
    source: bytes
    grammar: str
    line_offset: int = 0

    @property
    def jsx(self) -> bool:
        return self.grammar in ("tsx", "javascript")

    def line_of(self, node: Node) -> int:
        return node.start_point[0] + 1 + self.line_offset


@dataclass
class _Run:
    """Mutable state of one ``analyze_entity`` call."""

    entity: Entity
    stack: ExitStack
    result: AnalysisResult = field(default_factory=AnalysisResult)
    source_file: Optional[SourceFile] = None
    modules: list[_Module] = field(default_factory=list)
    bindings: list[ImportBinding] = field(default_factory=list)
    imported_ids: dict[str, str] = field(default_factory=dict)
    namespaces: dict[str, Path] = field(default_factory=dict)
    local_ids: dict[str, str] = field(default_factory=dict)
    invocations: list[tuple[_Module, Node]] = field(default_factory=list)

    @property
    def is_component_document(self) -> bool:
        return self.source_file is not None and self.source_file.is_component_document


class StaticAnalyzer:
    """Derives IMPORTS, CALLS, EMITS, TEMPLATE_COMPONENTS and ANNOTATION per entity.

    Args:
        root: Analysis root; entity files are relative to it
        entities: Entity context used to map declarations back to ids
        config: Graph configuration
        index: Parse cache (shared with a walker to avoid re-parsing)
        resolver: Module resolver; built from the workspace around ``root``
            when omitted
    """

    def __init__(self, root: Union[str, Path], entities: Iterable[EntityLike] = (), *,
                 config: GraphConfig = DEFAULT_CONFIG, index: Optional[SourceIndex] = None,
                 resolver: Optional[ModuleResolver] = None):
        self.root = Path(root).resolve()
        self.config = config
        self.index = index or SourceIndex(config=config)
        self.resolver = resolver or self._build_resolver()
        self.issues: list[Issue] = []

        self._entities: tuple[Entity, ...] = tuple(as_entity(e) for e in entities)
        self._by_id: dict[str, Entity] = {}
        self._by_key: dict[tuple[str, str], Entity] = {}
        for entity in self._entities:
            self._by_id.setdefault(entity.id, entity)
            self._by_key.setdefault(entity.natural_key, entity)
        self._component_names = {
            make_entity_id(e.type, e.raw_name, e.file).split(":", 1)[1]
            for e in self._entities
            if e.type is EntityType.COMPONENT
        }

    def _build_resolver(self) -> ModuleResolver:
        workspace = WorkspaceResolver(self.config)
        workspace_root = workspace.find_root(self.root)
        packages = workspace.build_package_map(workspace_root) if workspace_root else {}
        return ModuleResolver(self.root, packages, AliasLoader(self.config), self.config)

    @property
    def entities(self) -> tuple[Entity, ...]:
        return self._entities

    def with_entities(self, entities: Iterable[EntityLike]) -> StaticAnalyzer:
        """A new analyzer over ``entities`` sharing this one's caches and tables."""
        return StaticAnalyzer(
            self.root, entities, config=self.config, index=self.index, resolver=self.resolver
        )

    # ── Entry points ───────────────────────────────────────────────

    def analyze_entity(self, entity: EntityLike) -> AnalysisResult:
        """Analyze one entity of the current context. Never raises."""
        if not isinstance(entity, Entity):
            entity = Entity.from_dict(entity)

        if self._by_id.get(entity.id) != entity:
            self._record(
                IssueKind.CONTEXT_VIOLATION,
                f"Entity {entity.id} is not in the current entity context",
                entity=entity.id,
            )
            return AnalysisResult()

        with ExitStack() as stack:
            run = _Run(entity=entity, stack=stack)
            for stage, step in self._pipeline():
                try:
                    step(run)
                except Exception as e:
                    logger.warning("Analysis of %s stopped at %s: %s", entity.id, stage.value, e)
                    break
            return run.result

    def analyze_all(self, entities: Iterable[EntityLike],
                    max_workers: Optional[int] = None) -> list[AnalysisResult]:
        """Analyze many entities under a bounded thread pool, results in input order."""
        entities = list(entities)
        workers = max_workers or self.config.analysis_concurrency
        if workers <= 1 or len(entities) <= 1:
            return [self.analyze_entity(entity) for entity in entities]
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(self.analyze_entity, entities))

    def _pipeline(self) -> list[tuple[AnalysisStage, Callable[[_Run], None]]]:
        return [
            (AnalysisStage.LOAD_FILE, self._load_file),
            (AnalysisStage.PARSE_SECTION, self._parse_sections),
            (AnalysisStage.EXTRACT_IMPORTS, self._extract_imports),
            (AnalysisStage.RESOLVE_IMPORT_TARGETS, self._resolve_import_targets),
            (AnalysisStage.EXTRACT_CALLS, self._extract_calls),
            (AnalysisStage.EXTRACT_EMITS, self._extract_emits),
            (AnalysisStage.EXTRACT_TEMPLATE_REFS, self._extract_template_refs),
            (AnalysisStage.EXTRACT_ANNOTATION, self._extract_annotation),
        ]

    # ── Stages ─────────────────────────────────────────────────────

    def _load_file(self, run: _Run) -> None:
        run.source_file = self.index.load(self.root / run.entity.file)

    def _parse_sections(self, run: _Run) -> None:
        source_file = run.source_file
        if source_file.sections is None:
            run.modules.append(_Module(source_file.tree, source_file.source, source_file.grammar))
            return
        for section in source_file.sections.scripts:
            fragment = run.stack.enter_context(self.index.open_fragment(source_file.path, section))
            run.modules.append(
                _Module(fragment.tree, fragment.source, fragment.grammar, fragment.line_offset)
            )

    def _extract_imports(self, run: _Run) -> None:
        run.bindings = list(run.source_file.syntax.imports)

    def _resolve_import_targets(self, run: _Run) -> None:
        source_file = run.source_file
        for binding in run.bindings:
            resolution = self.resolver.resolve(binding.source, source_file.path)
            if resolution.path is None:
                continue
            if binding.is_namespace:
                run.namespaces[binding.local] = resolution.path
                continue
            entity_id = self.lookup_export(resolution.path, binding.imported)
            if entity_id is None:
                continue
            run.imported_ids[binding.local] = entity_id
            _append_unique(run.result.imports, entity_id)

        for local, raw_name in source_file.syntax.entity_declaration_names().items():
            run.local_ids[local] = self._entity_id(source_file, local, raw_name)

    def _extract_calls(self, run: _Run) -> None:
        for module in run.modules:
            for node, capture in self.index.parser.query(module.tree, CALL_QUERY, module.grammar):
                if capture not in ("call", "new"):
                    continue
                if not run.entity.loc.contains(module.line_of(node)):
                    continue
                run.invocations.append((module, node))
                callee = node.child_by_field_name("function" if capture == "call" else "constructor")
                if callee is None:
                    continue
                target = self._call_target(run, callee, module.source)
                if target is not None and target != run.entity.id:
                    _append_unique(run.result.calls, target)

    def _extract_emits(self, run: _Run) -> None:
        component_document = run.is_component_document
        for module, node in run.invocations:
            if node.type != "call_expression":
                continue
            callee = node.child_by_field_name("function")
            if callee is None:
                continue
            event = None
            if component_document:
                if is_emit_callee(node_text(callee, module.source)):
                    event = _first_string_argument(node, module.source)
            elif module.jsx:
                member = _member_parts(callee, module.source)
                if member is not None and member[0].type != "call_expression":
                    owner = node_text(member[0], module.source)
                    if owner in ("props", "this.props"):
                        event = callback_event(member[1])
            if event:
                _append_unique(run.result.emits, event)

    def _extract_template_refs(self, run: _Run) -> None:
        source_file = run.source_file
        known = self._component_names | set(run.imported_ids) | set(run.namespaces)

        if source_file.sections is not None:
            if run.entity.raw_name != DEFAULT_EXPORT:
                # only the document's own component renders the template
                return
            template = source_file.sections.template
            tags = list(template.tags) if template is not None else []
        else:
            elements = [
                (module, node)
                for module in run.modules
                if module.jsx
                for node, _name in self.index.parser.query(module.tree, JSX_ELEMENT_QUERY, module.grammar)
            ]
            if not elements:
                # no markup in this module
                return
            tags = [
                node_text(node, module.source)
                for module, node in elements
                if run.entity.loc.contains(module.line_of(node))
            ]

        refs: list[str] = []
        for tag in tags:
            if not is_component_tag(tag):
                continue
            name = kebab_to_pascal(tag).split(".", 1)[0]
            if name in known or tag in known:
                _append_unique(refs, tag)
        run.result.template_components = refs

    def _extract_annotation(self, run: _Run) -> None:
        entity = run.entity
        source_file = run.source_file

        if source_file.sections is not None and entity.raw_name == DEFAULT_EXPORT:
            for module in run.modules:
                statement = first_statement(module.tree.root_node)
                if statement is not None:
                    run.result.annotation = leading_comment(statement, module.source)
                    break
            template = source_file.sections.template
            if run.result.annotation is None and template is not None:
                run.result.annotation = template.leading_comment
            return

        for module in run.modules:
            for statement in module.tree.root_node.named_children:
                if module.line_of(statement) == entity.loc.start and statement.type != "comment":
                    run.result.annotation = leading_comment(statement, module.source)
                    return

    # ── Export lookup ──────────────────────────────────────────────

    def lookup_export(self, path: Union[str, Path], name: str) -> Optional[str]:
        """Entity id of the declaration ``path`` exports as ``name``.

        Follows ``export ... from``, ``export *`` and import-then-export
        chains up to ``max_reexport_depth`` hops. Returns None for
        third-party targets, unknown names, and chains that cycle.
        """
        return self._lookup(Path(path), name, 0, frozenset())

    def _lookup(self, path: Path, name: str, depth: int, seen: frozenset) -> Optional[str]:
        key = (normalize_path(path), name)
        if key in seen or depth > self.config.max_reexport_depth:
            logger.debug("Re-export chain for %r stopped at %s", name, path)
            return None
        seen = seen | {key}
        try:
            source_file = self.index.load(path)
        except EntityGraphError as e:
            logger.debug("Cannot load %s for export lookup: %s", path, e)
            return None
        syntax = source_file.syntax

        binding = syntax.exports.get(name)
        if binding is None:
            if name == DEFAULT_EXPORT:
                return None
            for star in syntax.star_sources:
                target = self.resolver.resolve(star, path).path
                if target is not None:
                    found = self._lookup(target, name, depth + 1, seen)
                    if found is not None:
                        return found
            return None

        if binding.source is not None:
            if binding.imported == NAMESPACE:
                return None
            target = self.resolver.resolve(binding.source, path).path
            if target is None:
                return None
            return self._lookup(target, binding.imported or name, depth + 1, seen)

        local = binding.local
        if local in syntax.declarations:
            raw_name = syntax.raw_name_for(local)
            if raw_name is None:
                # exported through CommonJS only, so there is no entity
                return None
            return self._entity_id(source_file, local, raw_name)

        imported = syntax.import_for(local)
        if imported is not None and not imported.is_namespace:
            target = self.resolver.resolve(imported.source, path).path
            if target is not None:
                return self._lookup(target, imported.imported, depth + 1, seen)
        return None

    def _entity_id(self, source_file: SourceFile, local: str, raw_name: str) -> str:
        rel = relative_file(source_file.path, self.root)
        entity = self._by_key.get((rel, raw_name))
        if entity is not None:
            return entity.id
        declaration = source_file.syntax.declarations[local]
        return make_entity_id(declaration.kind, raw_name, rel)

    # ── Call targets ───────────────────────────────────────────────

    def _call_target(self, run: _Run, callee: Node, source: bytes) -> Optional[str]:
        if callee.type == "identifier":
            name = node_text(callee, source)
            return run.imported_ids.get(name) or run.local_ids.get(name)

        member = _member_parts(callee, source)
        if member is None:
            return None
        obj, method = member
        if obj.type != "identifier":
            return None
        owner = node_text(obj, source)
        if owner in run.namespaces:
            return self.lookup_export(run.namespaces[owner], method)
        owner_id = run.imported_ids.get(owner) or run.local_ids.get(owner)
        if owner_id is not None:
            return f"{owner_id}.{method}"
        return None

    def _record(self, kind: IssueKind, message: str, **context: Any) -> None:
        issue = Issue(kind=kind, message=message, context=context)
        self.issues.append(issue)
        logger.warning(str(issue))


def _member_parts(callee: Node, source: bytes) -> Optional[tuple[Node, str]]:
    """(object node, property name) of ``a.b`` or ``a['b']``."""
    if callee.type == "member_expression":
        obj = callee.child_by_field_name("object")
        prop = callee.child_by_field_name("property")
        if obj is not None and prop is not None:
            return obj, node_text(prop, source)
    elif callee.type == "subscript_expression":
        obj = callee.child_by_field_name("object")
        index = callee.child_by_field_name("index")
        if obj is not None and index is not None and index.type == "string":
            return obj, string_value(index, source)
    return None


def _first_string_argument(call: Node, source: bytes) -> Optional[str]:
    arguments = call.child_by_field_name("arguments")
    if arguments is None or not arguments.named_children:
        return None
    first = arguments.named_children[0]
    if first.type == "string":
        return string_value(first, source)
    return None


def _append_unique(items: list[str], value: str) -> None:
    if value not in items:
        items.append(value)
