"""Per-file parse cache.

``SourceIndex`` maps a normalized absolute path to a ``SourceFile``: the
raw bytes, the syntax tree (plain scripts only), the export/import table,
and for component documents their sections. Entries are validated against
``(mtime_ns, size)`` on every lookup, so an unchanged file is parsed once.

Component-document scripts are parsed as ephemeral fragments: each fragment
is registered for the duration of a ``with`` block and released on every
exit path, and never enters the tree cache.
"""

from __future__ import annotations

import os
import secrets
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional, Union

from tree_sitter import Tree

from ..config import DEFAULT_CONFIG, GraphConfig
from ..exceptions import FileAccessError, ParsingError, UnsupportedDialectError
from ..logging_config import get_logger
from ..models import DEFAULT_EXPORT, Entity, EntityType
from .exports import collect_script_syntax
from .languages import DIALECTS, detect_dialect
from .sections import ComponentSections, ScriptSection, split_component_document
from .syntax import Declaration, ExportBinding, ScriptSyntax
from .treesitter_parser import TreeSitterParser

logger = get_logger(__name__)

_BOM = b"\xef\xbb\xbf"


def normalize_path(path: Union[str, Path]) -> str:
    return os.path.normcase(os.path.abspath(os.fspath(path)))


@dataclass
class SourceFile:
    """Everything parsed from one source file.

    Attributes:
        path: Absolute path
        dialect: Dialect name (see scanning.languages)
        source: File bytes (BOM stripped)
        stamp: (mtime_ns, size) the entry was built from
        syntax: Export/import table
        tree: Syntax tree for plain scripts; None for component documents
        grammar: Grammar of ``tree``
        sections: Component-document sections
        line_count: Number of lines in the file
    """

    path: Path
    dialect: str
    source: bytes
    stamp: tuple[int, int]
    syntax: ScriptSyntax
    tree: Optional[Tree] = None
    grammar: Optional[str] = None
    sections: Optional[ComponentSections] = None
    line_count: int = 0
    entities: dict[str, list[Entity]] = field(default_factory=dict)

    @property
    def is_component_document(self) -> bool:
        return self.sections is not None


@dataclass(frozen=True)
class ScriptFragment:
    """An isolated parse of one component-document script section."""

    name: str
    section: ScriptSection
    source: bytes
    tree: Tree

    @property
    def grammar(self) -> str:
        return self.section.grammar

    @property
    def line_offset(self) -> int:
        return self.section.start_row


class SourceIndex:
    """Thread-safe cache of parsed source files, keyed by normalized path."""

    def __init__(self, parser: Optional[TreeSitterParser] = None,
                 config: GraphConfig = DEFAULT_CONFIG):
        self.parser = parser or TreeSitterParser()
        self.config = config
        self._entries: dict[str, SourceFile] = {}
        self._lock = threading.Lock()
        self._fragments: dict[str, str] = {}
        self._fragment_lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        return normalize_path(path) in self._entries

    @property
    def active_fragments(self) -> int:
        """Number of fragments currently acquired."""
        with self._fragment_lock:
            return len(self._fragments)

    def load(self, path: Union[str, Path]) -> SourceFile:
        """Return the parsed file, parsing it on first access or after a change.

        Raises:
            FileAccessError: The file can't be read or is too large
            ParsingError: The file isn't valid UTF-8
            UnsupportedDialectError: The extension has no dialect
        """
        key = normalize_path(path)
        filepath = Path(key)
        try:
            stat = filepath.stat()
        except OSError as e:
            raise FileAccessError(filepath, str(e))
        stamp = (stat.st_mtime_ns, stat.st_size)

        with self._lock:
            cached = self._entries.get(key)
        if cached is not None and cached.stamp == stamp:
            return cached

        # Built outside the lock; two threads racing on a first access build
        # equal entries and the last write wins.
        entry = self._build(filepath, stamp)
        with self._lock:
            self._entries[key] = entry
        return entry

    def invalidate(self, path: Optional[Union[str, Path]] = None) -> None:
        """Drop one cached file, or all of them."""
        with self._lock:
            if path is None:
                self._entries.clear()
            else:
                self._entries.pop(normalize_path(path), None)

    @contextmanager
    def open_fragment(self, path: Union[str, Path], section: ScriptSection) -> Iterator[ScriptFragment]:
        """Parse a script section in isolation for the duration of the block."""
        kind = "setup" if section.setup else "script"
        name = f"{normalize_path(path)}#{kind}-{secrets.token_hex(4)}"
        source = section.content.encode("utf-8")
        tree = self.parser.parse(source, section.grammar)
        if tree is None:
            raise ParsingError(Path(path), section.lang, "no grammar for script section")
        with self._fragment_lock:
            self._fragments[name] = normalize_path(path)
        try:
            yield ScriptFragment(name=name, section=section, source=source, tree=tree)
        finally:
            with self._fragment_lock:
                self._fragments.pop(name, None)

    # ── Building ───────────────────────────────────────────────────

    def _build(self, filepath: Path, stamp: tuple[int, int]) -> SourceFile:
        dialect = detect_dialect(filepath)
        config = DIALECTS.get(dialect)
        if config is None:
            raise UnsupportedDialectError(dialect, sorted(DIALECTS))

        if stamp[1] > self.config.max_file_size_bytes:
            raise FileAccessError(filepath, f"larger than {self.config.max_file_size_mb} MB")

        try:
            source = filepath.read_bytes()
        except OSError as e:
            raise FileAccessError(filepath, str(e))
        if source.startswith(_BOM):
            source = source[len(_BOM):]
        try:
            text = source.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParsingError(filepath, dialect, f"not valid UTF-8: {e}")
        line_count = text.count("\n") + (0 if text.endswith("\n") or not text else 1)

        if config.grammar is None:
            return self._build_component_document(filepath, dialect, source, stamp, line_count)

        tree = self.parser.parse(source, config.grammar)
        if tree is None:
            raise ParsingError(filepath, dialect, f"grammar {config.grammar} unavailable")
        syntax = collect_script_syntax(tree, source, jsx=config.jsx, path=filepath)
        if syntax.has_errors:
            logger.debug("Recovered from syntax errors in %s", filepath)
        return SourceFile(
            path=filepath,
            dialect=dialect,
            source=source,
            stamp=stamp,
            syntax=syntax,
            tree=tree,
            grammar=config.grammar,
            line_count=line_count,
        )

    def _build_component_document(self, filepath: Path, dialect: str, source: bytes,
                                  stamp: tuple[int, int], line_count: int) -> SourceFile:
        sections = split_component_document(source, self.parser)
        merged = ScriptSyntax()

        for section in sections.scripts:
            with self.open_fragment(filepath, section) as fragment:
                part = collect_script_syntax(
                    fragment.tree,
                    fragment.source,
                    jsx=section.jsx,
                    path=filepath,
                    line_offset=fragment.line_offset,
                    component_document=True,
                )
            merged.imports.extend(part.imports)
            merged.has_errors = merged.has_errors or part.has_errors
            merged.issues.extend(part.issues)
            if section.setup:
                # setup bindings are private to the component
                continue
            for name, binding in part.exports.items():
                if name == DEFAULT_EXPORT:
                    continue
                merged.exports.setdefault(name, binding)
                if binding.local is not None and binding.local in part.declarations:
                    merged.declarations.setdefault(binding.local, part.declarations[binding.local])
            for star in part.star_sources:
                if star not in merged.star_sources:
                    merged.star_sources.append(star)

        if not sections.is_empty:
            merged.declarations[DEFAULT_EXPORT] = Declaration(
                name=DEFAULT_EXPORT,
                kind=EntityType.COMPONENT,
                start_line=1,
                end_line=max(line_count, 1),
            )
            merged.exports[DEFAULT_EXPORT] = ExportBinding(name=DEFAULT_EXPORT, local=DEFAULT_EXPORT)

        return SourceFile(
            path=filepath,
            dialect=dialect,
            source=source,
            stamp=stamp,
            syntax=merged,
            sections=sections,
            line_count=line_count,
        )
