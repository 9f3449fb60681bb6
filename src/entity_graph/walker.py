"""Source-file discovery and entity extraction for a whole tree.

``FileWalker`` enumerates source files under the analysis root (and, when
the root is a workspace package, under the packages it depends on), hands
each to the extractor for its dialect, and makes the resulting ids unique.

Patch mode restricts a run to an explicit file list; ``previous`` keeps the
ids of unchanged declarations stable across runs.
"""

from __future__ import annotations

import os
import secrets
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, Iterator, Optional, Union

from .config import DEFAULT_CONFIG, GraphConfig
from .exceptions import EntityGraphError, InvalidPathError, Issue, IssueKind
from .extractors import ExtractorRegistry
from .extractors.base import relative_file
from .logging_config import get_logger
from .models import Entity, EntityLike, as_entity, make_entity_id
from .scanning.languages import detect_dialect, is_source_file, should_skip_dir
from .scanning.source_index import SourceIndex, normalize_path
from .workspace import WorkspaceResolver

logger = get_logger(__name__)

# Default worker count: CPU count, capped at 8 to avoid overwhelming I/O
_DEFAULT_WORKERS = min(os.cpu_count() or 4, 8)


class FileWalker:
    """Walks one analysis root and extracts its entities.

    Args:
        root: Analysis root; entity files are relative to it
        config: Graph configuration
        index: Parse cache, shareable with a StaticAnalyzer
        workspace: Workspace resolver used to find extra roots

    Raises:
        InvalidPathError: ``root`` is not a directory
    """

    def __init__(self, root: Union[str, Path], config: GraphConfig = DEFAULT_CONFIG,
                 index: Optional[SourceIndex] = None,
                 workspace: Optional[WorkspaceResolver] = None):
        root = Path(root)
        if not root.is_dir():
            raise InvalidPathError(root, "not a directory")
        self.root = root.resolve()
        self.config = config
        self.index = index or SourceIndex(config=config)
        self.registry = ExtractorRegistry(self.index)
        self.workspace = workspace or WorkspaceResolver(config)
        self.issues: list[Issue] = []

    # ── Discovery ──────────────────────────────────────────────────

    def roots(self) -> list[Path]:
        """The root, followed by workspace packages it depends on internally."""
        roots = [self.root]
        workspace_root = self.workspace.find_root(self.root)
        if workspace_root is None or workspace_root == self.root:
            return roots

        packages = self.workspace.build_package_map(workspace_root)
        own = next((p for p in packages.values() if p.path == self.root), None)
        if own is None:
            return roots
        for name in own.dependencies:
            package = packages.get(name)
            if package is None or package.path in roots or self.root in package.path.parents:
                continue
            roots.append(package.path)
            logger.debug("Walking workspace dependency %s at %s", name, package.path)
        return roots

    def iter_files(self) -> Iterator[Path]:
        """Source files under every root, in lexicographic order per directory."""
        seen: set[str] = set()
        for root in self.roots():
            for dirpath, dirnames, filenames in os.walk(root, followlinks=self.config.follow_symlinks):
                dirnames[:] = sorted(d for d in dirnames if not should_skip_dir(d, self.config.skip_dirs))
                for filename in sorted(filenames):
                    if not is_source_file(filename, self.config.source_extensions):
                        continue
                    path = Path(dirpath) / filename
                    key = normalize_path(path)
                    if key not in seen:
                        seen.add(key)
                        yield path

    def select_files(self, files: Iterable[Union[str, Path]]) -> list[Path]:
        """Patch mode: existing source files among ``files`` (absolute or root-relative)."""
        selected: list[Path] = []
        seen: set[str] = set()
        for file in files:
            path = Path(file)
            if not path.is_absolute():
                path = self.root / path
            if not path.is_file() or not is_source_file(path, self.config.source_extensions):
                logger.debug("Patch mode: ignoring %s", file)
                continue
            key = normalize_path(path)
            if key not in seen:
                seen.add(key)
                selected.append(path)
        return selected

    # ── Extraction ─────────────────────────────────────────────────

    def extract_file(self, path: Union[str, Path]) -> list[Entity]:
        """Entities of one file; an unreadable file yields none and records an issue."""
        try:
            extractor = self.registry.get(detect_dialect(path))
            entities = extractor.extract(path, self.root)
            # Duplicate export names, logged when the file was parsed
            self.issues.extend(self.index.load(path).syntax.issues)
            return entities
        except EntityGraphError as e:
            self._record(IssueKind.UNPARSABLE, f"Skipped {path}: {e}", **{**e.details, "path": str(path)})
            return []

    def extract_all(self, files: Optional[Iterable[Union[str, Path]]] = None,
                    previous: Optional[Iterable[EntityLike]] = None,
                    parallel: bool = True) -> list[Entity]:
        """Extract every entity under the roots, or only from ``files`` in patch mode.

        Args:
            files: Restrict the run to these files
            previous: Entities of an earlier run whose ids should be kept
            parallel: Use a thread pool for batches above ``parallel_threshold``

        Returns:
            Entities ordered by file, then line, with unique ids
        """
        if files is not None:
            files = list(files)
        paths = self.select_files(files) if files is not None else list(self.iter_files())

        if not parallel or len(paths) < self.config.parallel_threshold:
            per_file = [self.extract_file(path) for path in paths]
        else:
            workers = self.config.workers or _DEFAULT_WORKERS
            with ThreadPoolExecutor(max_workers=workers) as executor:
                per_file = list(executor.map(self.extract_file, paths))

        entities = [entity for batch in per_file for entity in batch]
        entities.sort(key=lambda e: (e.file, e.loc.start, e.raw_name))

        previous_entities = [as_entity(e) for e in previous or ()]
        # Patch mode: ids of untouched files stay in use
        reserved: set[str] = set()
        if files is not None:
            patched = {self.relative(file) for file in files}
            reserved = {e.id for e in previous_entities if e.file not in patched}
        entities = ensure_unique_ids(
            entities,
            previous=previous_entities,
            reserved=reserved,
            nbytes=self.config.disambiguator_bytes,
            issues=self.issues,
        )

        files_with_entities = sum(1 for batch in per_file if batch)
        logger.info(
            "Extraction complete: %d entities from %d files (%d scanned)",
            len(entities), files_with_entities, len(paths),
        )
        return entities

    def relative(self, file: Union[str, Path]) -> str:
        """Root-relative POSIX form of an absolute or root-relative path."""
        path = Path(file)
        return relative_file(path if path.is_absolute() else self.root / path, self.root)

    def _record(self, kind: IssueKind, message: str, **context) -> None:
        issue = Issue(kind=kind, message=message, context=context)
        self.issues.append(issue)
        logger.warning(str(issue))


def ensure_unique_ids(entities: list[Entity], previous: Iterable[Entity] = (), nbytes: int = 3,
                      issues: Optional[list[Issue]] = None,
                      reserved: Iterable[str] = ()) -> list[Entity]:
    """Give every entity a distinct id.

    Ids from ``previous`` are reclaimed first for the same ``(file, rawName)``
    and type. Natural ids go to the first entity (in list order) that wants
    them; later collisions get a random hex suffix and an AMBIGUOUS issue.
    ``reserved`` ids are held by entities outside this batch (unchanged files
    in patch mode) and are never handed out.
    """
    remembered = {
        e.natural_key: e.id
        for e in previous or ()
        if e.id.split(":", 1)[0] == e.type.id_prefix
    }
    assigned: list[Optional[str]] = [None] * len(entities)
    taken: set[str] = set(reserved)

    for i, entity in enumerate(entities):
        old_id = remembered.get(entity.natural_key)
        if old_id is not None and old_id.split(":", 1)[0] == entity.type.id_prefix and old_id not in taken:
            assigned[i] = old_id
            taken.add(old_id)

    for i, entity in enumerate(entities):
        if assigned[i] is None:
            natural = make_entity_id(entity.type, entity.raw_name, entity.file)
            if natural not in taken:
                assigned[i] = natural
                taken.add(natural)

    for i, entity in enumerate(entities):
        if assigned[i] is not None:
            continue
        natural = make_entity_id(entity.type, entity.raw_name, entity.file)
        candidate = f"{natural}_{secrets.token_hex(nbytes)}"
        while candidate in taken:
            candidate = f"{natural}_{secrets.token_hex(nbytes)}"
        assigned[i] = candidate
        taken.add(candidate)
        issue = Issue(
            kind=IssueKind.AMBIGUOUS,
            message=f"Duplicate id {natural} for {entity.file}; using {candidate}",
            context={"id": natural, "file": entity.file, "assigned": candidate},
        )
        if issues is not None:
            issues.append(issue)
        logger.warning(str(issue))

    return [
        entity if entity.id == new_id else entity.with_id(new_id)
        for entity, new_id in zip(entities, assigned)
    ]
