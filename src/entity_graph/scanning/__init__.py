"""Parsing infrastructure: dialects, tree-sitter wrapper, export tables.

``source_index`` is not re-exported here because it depends on
``entity_graph.config``, which itself imports ``scanning.languages``.
"""

from .languages import (
    DIALECTS,
    SKIP_DIRS,
    SOURCE_EXTENSIONS,
    DialectConfig,
    detect_dialect,
    is_source_file,
    should_skip_dir,
)
from .sections import ComponentSections, ScriptSection, TemplateSection, split_component_document
from .syntax import Declaration, ExportBinding, ImportBinding, ScriptSyntax
from .treesitter_parser import TreeSitterParser, get_supported_grammars

__all__ = [
    "DIALECTS",
    "SKIP_DIRS",
    "SOURCE_EXTENSIONS",
    "DialectConfig",
    "detect_dialect",
    "is_source_file",
    "should_skip_dir",
    "ComponentSections",
    "ScriptSection",
    "TemplateSection",
    "split_component_document",
    "Declaration",
    "ExportBinding",
    "ImportBinding",
    "ScriptSyntax",
    "TreeSitterParser",
    "get_supported_grammars",
]
