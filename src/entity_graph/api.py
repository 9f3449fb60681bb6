"""Public API for entity-graph.

``build_graph`` runs the whole pipeline over one root: extract entities,
then analyze each of them against the full entity list.

Example:
    >>> from entity_graph import build_graph
    >>>
    >>> graph = build_graph("/path/to/repo")
    >>> [node.to_dict() for node in graph]
    >>>
    >>> # Patch mode, keeping ids from an earlier run
    >>> graph = build_graph("/path/to/repo", files=["src/a.ts"], previous=old_entities)
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional, Union

from .analysis import StaticAnalyzer
from .config import load_config
from .logging_config import get_logger, setup_logging
from .models import EnrichedEntity, EntityLike, as_entity, enrich
from .walker import FileWalker

logger = get_logger(__name__)


def build_graph(
    path: Union[str, Path] = ".",
    files: Optional[Iterable[Union[str, Path]]] = None,
    previous: Optional[Iterable[EntityLike]] = None,
    context: Optional[Iterable[EntityLike]] = None,
    config_file: Optional[Path] = None,
    **overrides,
) -> list[EnrichedEntity]:
    """Extract and analyze the entities under ``path``.

    Args:
        path: Analysis root
        files: Patch mode: only these files are extracted and analyzed
        previous: Entities of an earlier run; their ids are kept stable
        context: Extra entities for cross-file lookups (e.g. the rest of the
            repository in patch mode); defaults to ``previous``
        config_file: Optional explicit config file path
        **overrides: Configuration overrides (e.g. max_reexport_depth=3)

    Returns:
        One EnrichedEntity per extracted entity, in extraction order

    Raises:
        InvalidPathError: ``path`` is not a directory
        ConfigurationError: The configuration is invalid
    """
    config = load_config(config_file, **overrides)
    if config.verbosity != "normal":
        setup_logging(config.verbosity)
    previous = list(previous or ())
    if files is not None:
        files = list(files)

    walker = FileWalker(path, config)
    entities = walker.extract_all(files=files, previous=previous)

    # Context entries superseded by this run: same declaration, or a re-extracted file
    refreshed = {entity.natural_key for entity in entities}
    patched = {walker.relative(file) for file in files} if files is not None else set()
    extra = [
        e for e in map(as_entity, context if context is not None else previous)
        if e.natural_key not in refreshed and e.file not in patched
    ]
    analyzer = StaticAnalyzer(walker.root, [*entities, *extra], config=config, index=walker.index)
    results = analyzer.analyze_all(entities)

    logger.info("Analyzed %d entities under %s", len(entities), walker.root)
    return [enrich(entity, result) for entity, result in zip(entities, results)]
