"""Import specifier resolution.

``ModuleResolver.resolve(specifier, from_file)`` tries, in order:

    1. relative (``./x``, ``../x``) and root-anchored (``/x``) specifiers
    2. the alias table of the package owning ``from_file``, most specific
       rule first, then ``baseUrl`` roots
    3. workspace packages, by the specifier's leading package name
    4. anything else is third-party

Every step uses the same file lookup: the exact path, ESM ``.js`` ->
``.ts`` substitution, each known extension appended, then a directory's
package.json entry or ``index.*``. Nothing here raises.
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from .aliases import AliasLoader
from .config import DEFAULT_CONFIG, GraphConfig
from .logging_config import get_logger
from .models import AliasTable, WorkspacePackage
from .scanning.languages import INDEX_BASENAMES, RESOLVE_EXTENSIONS
from .workspace import PACKAGE_DESCRIPTOR, read_json

logger = get_logger(__name__)

_ESM_SUBSTITUTES = {
    ".js": (".ts", ".tsx"),
    ".jsx": (".tsx",),
    ".mjs": (".mts",),
    ".cjs": (".cts",),
}

_ENTRY_FIELDS = ("source", "module", "main")


class ResolutionKind(Enum):
    RELATIVE = "relative"
    ALIAS = "alias"
    WORKSPACE = "workspace"
    THIRD_PARTY = "third_party"


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving one specifier; ``path`` is None for third-party."""

    specifier: str
    kind: ResolutionKind
    path: Optional[Path] = None

    @property
    def is_third_party(self) -> bool:
        return self.kind is ResolutionKind.THIRD_PARTY


def is_relative_specifier(specifier: str) -> bool:
    return specifier in (".", "..") or specifier.startswith(("./", "../"))


def split_package_name(specifier: str) -> tuple[str, str]:
    """``@scope/name/sub/path`` -> (``@scope/name``, ``sub/path``)."""
    parts = specifier.split("/")
    if specifier.startswith("@") and len(parts) >= 2:
        return "/".join(parts[:2]), "/".join(parts[2:])
    return parts[0], "/".join(parts[1:])


class ModuleResolver:
    """Resolves import specifiers to files of the analyzed tree.

    Args:
        root: Analysis root; ``/``-anchored specifiers resolve against it
        packages: Workspace package map (may be empty)
        alias_loader: Shared alias loader; tables are cached per package root
        config: Graph configuration
    """

    def __init__(self, root: Union[str, Path], packages: Optional[dict[str, WorkspacePackage]] = None,
                 alias_loader: Optional[AliasLoader] = None, config: GraphConfig = DEFAULT_CONFIG):
        self.root = Path(root).resolve()
        self.packages = dict(packages or {})
        self.config = config
        self.alias_loader = alias_loader or AliasLoader(config)
        self._memo: dict[tuple[str, str], Resolution] = {}
        self._entries: dict[str, Optional[Path]] = {}
        self._lock = threading.Lock()

    def resolve(self, specifier: str, from_file: Union[str, Path]) -> Resolution:
        """Resolve ``specifier`` as written in ``from_file``."""
        from_dir = os.path.dirname(os.path.abspath(from_file))
        key = (specifier, from_dir)
        with self._lock:
            cached = self._memo.get(key)
        if cached is not None:
            return cached

        try:
            resolution = self._resolve(specifier.strip(), Path(from_dir), Path(from_file))
        except OSError as e:
            logger.debug("Cannot resolve %r from %s: %s", specifier, from_file, e)
            resolution = Resolution(specifier, ResolutionKind.THIRD_PARTY)

        with self._lock:
            self._memo[key] = resolution
        return resolution

    def _resolve(self, specifier: str, from_dir: Path, from_file: Path) -> Resolution:
        if not specifier:
            return Resolution(specifier, ResolutionKind.THIRD_PARTY)

        if is_relative_specifier(specifier) or specifier.startswith("/"):
            if specifier.startswith("/"):
                base = os.path.join(str(self.root), specifier.lstrip("/"))
            else:
                base = os.path.join(str(from_dir), specifier)
            path = self.resolve_file(base)
            if path is not None:
                return Resolution(specifier, ResolutionKind.RELATIVE, path)
            return Resolution(specifier, ResolutionKind.THIRD_PARTY)

        path = self._resolve_alias(specifier, self.alias_table_for(from_file))
        if path is not None:
            return Resolution(specifier, ResolutionKind.ALIAS, path)

        path = self._resolve_workspace(specifier)
        if path is not None:
            return Resolution(specifier, ResolutionKind.WORKSPACE, path)

        return Resolution(specifier, ResolutionKind.THIRD_PARTY)

    # ── Aliases ────────────────────────────────────────────────────

    def alias_table_for(self, from_file: Union[str, Path]) -> AliasTable:
        """Alias table of the innermost workspace package containing ``from_file``."""
        target = Path(os.path.abspath(from_file))
        owner = self.root
        best_depth = -1
        for package in self.packages.values():
            if package.path in target.parents and len(package.path.parts) > best_depth:
                owner = package.path
                best_depth = len(package.path.parts)
        return self.alias_loader.load_aliases(owner)

    def _resolve_alias(self, specifier: str, table: AliasTable) -> Optional[Path]:
        for rule in table.matching(specifier):
            for candidate in rule.candidates(specifier):
                path = self.resolve_file(candidate)
                if path is not None:
                    return path
        for base_url in table.base_urls:
            path = self.resolve_file(os.path.join(base_url, specifier))
            if path is not None:
                return path
        return None

    # ── Workspace packages ─────────────────────────────────────────

    def _resolve_workspace(self, specifier: str) -> Optional[Path]:
        name, subpath = split_package_name(specifier)
        package = self.packages.get(name)
        if package is None:
            return None
        if subpath:
            for base in (package.path / subpath, package.path / "src" / subpath):
                path = self.resolve_file(str(base))
                if path is not None:
                    return path
            return None
        return self.package_entry(package)

    def package_entry(self, package: WorkspacePackage) -> Optional[Path]:
        """Declared entry of a package, else its conventional index file."""
        with self._lock:
            if package.name in self._entries:
                return self._entries[package.name]

        entry = None
        descriptor = read_json(package.path / PACKAGE_DESCRIPTOR) or {}
        for field_name in _ENTRY_FIELDS:
            value = descriptor.get(field_name)
            if not isinstance(value, str) or not value:
                continue
            # built output is never walked, so entities can't live there
            if any(part in self.config.skip_dirs for part in Path(value).parts):
                continue
            entry = self.resolve_file(str(package.path / value), follow_directories=False)
            if entry is not None:
                break
        if entry is None:
            for base in (package.path, package.path / "src"):
                entry = self._index_file(base)
                if entry is not None:
                    break

        with self._lock:
            self._entries[package.name] = entry
        return entry

    # ── Files ──────────────────────────────────────────────────────

    def resolve_file(self, base: str, follow_directories: bool = True) -> Optional[Path]:
        """Find the file ``base`` refers to, trying extensions and directory entries."""
        path = Path(os.path.normpath(base))
        if path.is_file():
            return path

        for substitute in _ESM_SUBSTITUTES.get(path.suffix, ()):
            candidate = path.with_suffix(substitute)
            if candidate.is_file():
                return candidate

        for ext in RESOLVE_EXTENSIONS:
            candidate = Path(str(path) + ext)
            if candidate.is_file():
                return candidate

        if follow_directories and path.is_dir():
            descriptor = read_json(path / PACKAGE_DESCRIPTOR)
            if descriptor is not None:
                for field_name in _ENTRY_FIELDS:
                    value = descriptor.get(field_name)
                    if isinstance(value, str) and value:
                        entry = self.resolve_file(str(path / value), follow_directories=False)
                        if entry is not None:
                            return entry
            return self._index_file(path)
        return None

    @staticmethod
    def _index_file(directory: Path) -> Optional[Path]:
        for basename in INDEX_BASENAMES:
            for ext in RESOLVE_EXTENSIONS:
                candidate = directory / f"{basename}{ext}"
                if candidate.is_file():
                    return candidate
        return None
