"""
entity-graph - cross-file symbol graphs for script and component repositories

Extracts every exported declaration of a TypeScript/JavaScript/Vue tree,
including multi-package workspaces, gives each a stable id, and derives
what it imports, calls, emits and renders.
"""

__version__ = "0.1.0"

from .config import DEFAULT_CONFIG, GraphConfig, load_config
from .aliases import AliasLoader
from .analysis import AnalysisStage, StaticAnalyzer
from .api import build_graph
from .exceptions import EntityGraphError, Issue, IssueKind
from .models import (
    AliasRule,
    AliasTable,
    AnalysisResult,
    EnrichedEntity,
    Entity,
    EntityType,
    Location,
    WorkspacePackage,
    enrich,
    make_entity_id,
)
from .resolver import ModuleResolver, Resolution, ResolutionKind
from .walker import FileWalker, ensure_unique_ids
from .workspace import WorkspaceResolver

__all__ = [
    "build_graph",  # Main entry point
    "FileWalker",
    "StaticAnalyzer",
    "AnalysisStage",
    "WorkspaceResolver",
    "AliasLoader",
    "ModuleResolver",
    "Resolution",
    "ResolutionKind",
    "GraphConfig",
    "DEFAULT_CONFIG",
    "load_config",
    "Entity",
    "EntityType",
    "Location",
    "AnalysisResult",
    "EnrichedEntity",
    "AliasRule",
    "AliasTable",
    "WorkspacePackage",
    "enrich",
    "ensure_unique_ids",
    "make_entity_id",
    "EntityGraphError",
    "Issue",
    "IssueKind",
]
