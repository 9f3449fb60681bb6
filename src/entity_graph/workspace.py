"""Workspace discovery: which directories of a repository are packages.

A workspace root is the nearest ancestor holding a member-glob manifest:

    pnpm-workspace.yaml      packages: [...]
    package.json             "workspaces": [...] or {"packages": [...]}
    lerna.json               "packages": [...]

Member globs are expanded segment by segment (``*`` = one level, ``**`` =
depth-bounded recursion, anything else literal or fnmatch), children are
visited in lexicographic order, and every candidate must pass
``is_valid_package``: a parseable package.json plus at least one source
file. On duplicate package names the first discovery wins.

Nothing here raises; unreadable manifests degrade to an empty map.
"""

from __future__ import annotations

import fnmatch
import json
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from .config import DEFAULT_CONFIG, GraphConfig
from .exceptions import Issue, IssueKind
from .logging_config import get_logger
from .models import WorkspacePackage
from .scanning.languages import is_source_file, should_skip_dir

logger = get_logger(__name__)

PNPM_MANIFEST = "pnpm-workspace.yaml"
PACKAGE_DESCRIPTOR = "package.json"
LERNA_MANIFEST = "lerna.json"

_DEPENDENCY_FIELDS = ("dependencies", "devDependencies", "peerDependencies", "optionalDependencies")


def read_json(path: Path) -> Optional[dict[str, Any]]:
    """Parse a JSON object file; None when missing, unreadable, or not an object."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def _workspaces_field(descriptor: dict[str, Any]) -> Optional[list[str]]:
    workspaces = descriptor.get("workspaces")
    if isinstance(workspaces, dict):
        workspaces = workspaces.get("packages")
    if isinstance(workspaces, list):
        return [p for p in workspaces if isinstance(p, str)]
    return None


class WorkspaceResolver:
    """Finds workspace roots and maps package names to directories.

    Attributes:
        issues: Recoverable problems seen so far (duplicates, bad manifests)
    """

    def __init__(self, config: GraphConfig = DEFAULT_CONFIG):
        self.config = config
        self.issues: list[Issue] = []

    # ── Root discovery ─────────────────────────────────────────────

    def find_root(self, start_dir: Union[str, Path]) -> Optional[Path]:
        """Walk up from ``start_dir`` to the nearest workspace root.

        Returns:
            The root directory, or None for single-package mode
        """
        current = Path(start_dir).resolve()
        if current.is_file():
            current = current.parent
        for directory in (current, *current.parents):
            if self._declares_members(directory):
                return directory
        return None

    def _declares_members(self, directory: Path) -> bool:
        if (directory / PNPM_MANIFEST).is_file():
            return True
        descriptor = read_json(directory / PACKAGE_DESCRIPTOR)
        if descriptor is not None and _workspaces_field(descriptor) is not None:
            return True
        lerna = read_json(directory / LERNA_MANIFEST)
        return lerna is not None and isinstance(lerna.get("packages"), list)

    def member_patterns(self, root: Union[str, Path]) -> list[str]:
        """Member globs declared at ``root``, in declaration order, deduplicated."""
        root = Path(root)
        patterns: list[str] = []

        pnpm = root / PNPM_MANIFEST
        if pnpm.is_file():
            try:
                manifest = yaml.safe_load(pnpm.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
                self._record(IssueKind.UNPARSABLE, f"Cannot read {pnpm}: {e}", path=str(pnpm))
                manifest = None
            if isinstance(manifest, dict) and isinstance(manifest.get("packages"), list):
                patterns.extend(p for p in manifest["packages"] if isinstance(p, str))

        descriptor = read_json(root / PACKAGE_DESCRIPTOR)
        if descriptor is not None:
            patterns.extend(_workspaces_field(descriptor) or [])

        lerna = read_json(root / LERNA_MANIFEST)
        if lerna is not None and isinstance(lerna.get("packages"), list):
            patterns.extend(p for p in lerna["packages"] if isinstance(p, str))

        return list(dict.fromkeys(p.strip() for p in patterns if p.strip()))

    # ── Glob expansion ─────────────────────────────────────────────

    def expand(self, pattern: str, root: Union[str, Path]) -> list[Path]:
        """Expand one member glob into validated package directories.

        Args:
            pattern: Glob relative to ``root`` (``packages/*``, ``apps/**``)
            root: Workspace root

        Returns:
            Matching directories that pass ``is_valid_package``, sorted
        """
        root = Path(root).resolve()
        segments = [s for s in pattern.strip().strip("/").split("/") if s and s != "."]
        if not segments:
            candidates = [root]
        else:
            candidates = self._expand_segments(root, segments)

        seen: set[Path] = set()
        result = []
        for candidate in candidates:
            if candidate in seen:
                continue
            seen.add(candidate)
            if self.is_valid_package(candidate):
                result.append(candidate)
        return result

    def _expand_segments(self, base: Path, segments: list[str]) -> list[Path]:
        if not segments:
            return [base] if base.is_dir() else []
        head, rest = segments[0], segments[1:]

        if head == "**":
            found: list[Path] = []
            for directory in self._walk_dirs(base, self.config.glob_max_depth):
                found.extend(self._expand_segments(directory, rest))
            return found

        if any(ch in head for ch in "*?["):
            found = []
            for child in self._child_dirs(base):
                if fnmatch.fnmatchcase(child.name, head):
                    found.extend(self._expand_segments(child, rest))
            return found

        if head == "..":
            return self._expand_segments(base.parent, rest)
        return self._expand_segments(base / head, rest)

    def _child_dirs(self, directory: Path) -> list[Path]:
        try:
            children = [
                child
                for child in directory.iterdir()
                if child.is_dir() and not should_skip_dir(child.name, self.config.skip_dirs)
            ]
        except OSError:
            return []
        if not self.config.follow_symlinks:
            children = [child for child in children if not child.is_symlink()]
        return sorted(children, key=lambda child: child.name)

    def _walk_dirs(self, base: Path, max_depth: int) -> list[Path]:
        """``base`` and its descendants up to ``max_depth`` levels, pre-order."""
        if not base.is_dir():
            return []
        result = [base]
        if max_depth <= 0:
            return result
        for child in self._child_dirs(base):
            result.extend(self._walk_dirs(child, max_depth - 1))
        return result

    # ── Validation ─────────────────────────────────────────────────

    def is_valid_package(self, directory: Union[str, Path]) -> bool:
        """A package has a package.json and at least one source file."""
        directory = Path(directory)
        if not directory.is_dir():
            return False
        if read_json(directory / PACKAGE_DESCRIPTOR) is None:
            return False
        return self._has_source_file(directory, self.config.package_probe_depth)

    def _has_source_file(self, directory: Path, depth: int) -> bool:
        try:
            entries = sorted(directory.iterdir(), key=lambda entry: entry.name)
        except OSError:
            return False
        subdirs = []
        for entry in entries:
            if entry.is_file():
                if is_source_file(entry, self.config.source_extensions):
                    return True
            elif entry.is_dir() and not should_skip_dir(entry.name, self.config.skip_dirs):
                subdirs.append(entry)
        if depth <= 0:
            return False
        return any(self._has_source_file(subdir, depth - 1) for subdir in subdirs)

    # ── Package map ────────────────────────────────────────────────

    def build_package_map(self, root: Union[str, Path]) -> dict[str, WorkspacePackage]:
        """Map package name -> package for every member of the workspace at ``root``.

        Patterns starting with ``!`` exclude directories matched by the rest
        of the pattern. Duplicate names keep the first discovery and record
        an AMBIGUOUS issue.
        """
        root = Path(root).resolve()
        patterns = self.member_patterns(root)
        includes = [p for p in patterns if not p.startswith("!")]
        excludes = [p[1:].strip().strip("/") for p in patterns if p.startswith("!")]

        descriptors: dict[str, tuple[Path, dict[str, Any]]] = {}
        for pattern in includes:
            for directory in self.expand(pattern, root):
                rel = directory.relative_to(root).as_posix() if directory != root else "."
                if any(fnmatch.fnmatchcase(rel, exclude) for exclude in excludes):
                    continue
                descriptor = read_json(directory / PACKAGE_DESCRIPTOR) or {}
                name = descriptor.get("name")
                if not isinstance(name, str) or not name:
                    name = directory.name

                existing = descriptors.get(name)
                if existing is not None:
                    if existing[0] != directory:
                        self._record(
                            IssueKind.AMBIGUOUS,
                            f"Duplicate workspace package {name!r}: keeping {existing[0]}, "
                            f"ignoring {directory}",
                            name=name,
                            kept=str(existing[0]),
                            ignored=str(directory),
                        )
                    continue
                descriptors[name] = (directory, descriptor)

        names = set(descriptors)
        packages = {
            name: WorkspacePackage(
                name=name,
                path=directory,
                dependencies=internal_dependencies(descriptor, names - {name}),
            )
            for name, (directory, descriptor) in descriptors.items()
        }
        logger.debug("Workspace %s: %d packages", root, len(packages))
        return packages

    def dependents(self, packages: dict[str, WorkspacePackage]) -> dict[str, list[str]]:
        """Invert the dependency map: package -> packages depending on it."""
        result: dict[str, list[str]] = {name: [] for name in packages}
        for name, package in sorted(packages.items()):
            for dependency in package.dependencies:
                if dependency in result:
                    result[dependency].append(name)
        return result

    def package_for(self, path: Union[str, Path],
                    packages: dict[str, WorkspacePackage]) -> Optional[WorkspacePackage]:
        """The innermost package containing ``path``."""
        target = Path(path).resolve()
        best: Optional[WorkspacePackage] = None
        for package in packages.values():
            if target == package.path or package.path in target.parents:
                if best is None or len(package.path.parts) > len(best.path.parts):
                    best = package
        return best

    def _record(self, kind: IssueKind, message: str, **context: Any) -> None:
        issue = Issue(kind=kind, message=message, context=context)
        self.issues.append(issue)
        logger.warning(str(issue))


def internal_dependencies(descriptor: dict[str, Any], workspace_names: set[str]) -> tuple[str, ...]:
    """Names of workspace packages a package.json depends on.

    A dependency counts when it uses the ``workspace:`` protocol, is marked
    ``injected`` in ``dependenciesMeta``, or names another workspace package.
    """
    found: list[str] = []
    for field_name in _DEPENDENCY_FIELDS:
        deps = descriptor.get(field_name)
        if not isinstance(deps, dict):
            continue
        for dep_name, version in deps.items():
            if (isinstance(version, str) and version.startswith("workspace:")) or dep_name in workspace_names:
                found.append(dep_name)

    meta = descriptor.get("dependenciesMeta")
    if isinstance(meta, dict):
        for dep_name, options in meta.items():
            if isinstance(options, dict) and options.get("injected"):
                found.append(dep_name)

    return tuple(dict.fromkeys(found))
