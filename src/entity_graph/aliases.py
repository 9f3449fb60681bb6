"""Path-alias tables from type-configs and bundler configs.

Sources, merged in order (later ones override earlier ones per prefix):

    1. tsconfig.json / jsconfig.json found in the root or its ancestors,
       with its ``extends`` chain applied base-first
    2. vue.config.js, vite.config.*, vitest.config.*, webpack.config.js

Type-configs are JSON with comments and trailing commas. Bundler configs
are JavaScript, so their ``alias`` blocks are read with patterns covering
the common shapes rather than evaluated.
"""

from __future__ import annotations

import json
import os
import re
import threading
from pathlib import Path
from typing import Any, Iterator, Optional, Union

from .config import DEFAULT_CONFIG, GraphConfig
from .exceptions import Issue, IssueKind
from .logging_config import get_logger
from .models import AliasRule, AliasTable

logger = get_logger(__name__)

TYPE_CONFIG_NAMES = ("tsconfig.json", "jsconfig.json")

BUNDLER_CONFIG_NAMES = (
    "vue.config.js",
    "vite.config.js",
    "vite.config.mjs",
    "vite.config.ts",
    "vite.config.mts",
    "vitest.config.js",
    "vitest.config.mjs",
    "vitest.config.ts",
    "webpack.config.js",
)

_TRAILING_COMMA = re.compile(r",(\s*[}\]])")

_ALIAS_OPEN = re.compile(r"\balias\s*:\s*([\[{])")

_STRING = r"""(?:'[^'\n]*'|"[^"\n]*"|`[^`\n]*`)"""

_VALUE = (
    r"(?P<value>"
    r"(?:path\s*\.\s*)?(?:resolve|join)\s*\((?P<args>[^()]*)\)"
    r"|fileURLToPath\s*\(\s*new\s+URL\s*\(\s*(?P<url>" + _STRING + r")[^()]*\)\s*\)"
    r"|(?P<literal>" + _STRING + r"))"
)

_OBJECT_ENTRY = re.compile(
    r"(?P<key>" + _STRING + r"|[A-Za-z_$@][\w$\-]*)\s*:\s*" + _VALUE
)

_ARRAY_ENTRY = re.compile(
    r"find\s*:\s*(?P<key>" + _STRING + r")\s*,\s*replacement\s*:\s*" + _VALUE
)

_STRING_LITERAL = re.compile(_STRING)


def strip_jsonc(text: str) -> str:
    """Remove comments and trailing commas so JSON-with-comments parses."""
    out: list[str] = []
    i = 0
    n = len(text)
    in_string = False
    while i < n:
        ch = text[i]
        if in_string:
            out.append(ch)
            if ch == "\\" and i + 1 < n:
                out.append(text[i + 1])
                i += 2
                continue
            if ch == '"':
                in_string = False
            i += 1
            continue
        if ch == '"':
            in_string = True
            out.append(ch)
            i += 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = n if end == -1 else end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = n if end == -1 else end + 2
        else:
            out.append(ch)
            i += 1
    return _TRAILING_COMMA.sub(r"\1", "".join(out))


def loads_jsonc(text: str) -> Any:
    return json.loads(strip_jsonc(text.lstrip("\ufeff")))


def _join(base: Path, relative: str) -> str:
    """Absolute target string, keeping a trailing separator when present."""
    joined = os.path.normpath(os.path.join(str(base), relative))
    if relative.endswith("/") and not joined.endswith(os.sep):
        joined += os.sep
    return joined


def _wildcard_target(base: Path, prefix: str) -> str:
    """Absolute form of the part of a ``dir/*`` target before the ``*``."""
    if prefix == "" or prefix.endswith("/"):
        return os.path.normpath(os.path.join(str(base), prefix)) + os.sep
    return os.path.normpath(os.path.join(str(base), prefix))


def _unquote(literal: str) -> str:
    return literal[1:-1] if len(literal) >= 2 and literal[0] in "'\"`" else literal


def _balanced_block(text: str, start: int) -> str:
    """Text from the opening bracket at ``start`` to its matching close."""
    opening = text[start]
    closing = "}" if opening == "{" else "]"
    depth = 0
    quote: Optional[str] = None
    i = start
    while i < len(text):
        ch = text[i]
        if quote:
            if ch == "\\":
                i += 1
            elif ch == quote:
                quote = None
        elif ch in "'\"`":
            quote = ch
        elif ch in "{[":
            depth += 1
        elif ch in "}]":
            depth -= 1
            if depth == 0 and ch == closing:
                return text[start:i + 1]
        i += 1
    return text[start:]


def parse_bundler_aliases(text: str, config_dir: Path) -> list[tuple[str, str]]:
    """(alias key, absolute target) pairs declared in a bundler config."""
    pairs: list[tuple[str, str]] = []
    for opening in _ALIAS_OPEN.finditer(text):
        block = _balanced_block(text, opening.start(1))
        pattern = _OBJECT_ENTRY if opening.group(1) == "{" else _ARRAY_ENTRY
        for entry in pattern.finditer(block):
            key = _unquote(entry.group("key"))
            target = _bundler_target(entry, config_dir)
            if key and target is not None:
                pairs.append((key, target))
    return pairs


def _bundler_target(entry: re.Match, config_dir: Path) -> Optional[str]:
    if entry.group("args") is not None:
        parts = [_unquote(s) for s in _STRING_LITERAL.findall(entry.group("args"))]
        if not parts:
            return None
        return _join(config_dir, os.path.join(*parts))
    if entry.group("url") is not None:
        return _join(config_dir, _unquote(entry.group("url")))
    literal = _unquote(entry.group("literal"))
    if not literal or not (literal.startswith((".", "/")) or "/" in literal):
        # bare package-name replacements aren't directories of this project
        return None
    return _join(config_dir, literal)


class AliasLoader:
    """Builds and caches one AliasTable per root.

    Attributes:
        issues: Configs that were missing, unparsable, or cyclic
    """

    def __init__(self, config: GraphConfig = DEFAULT_CONFIG):
        self.config = config
        self.issues: list[Issue] = []
        self._cache: dict[str, AliasTable] = {}
        self._lock = threading.Lock()

    def load_aliases(self, root: Union[str, Path]) -> AliasTable:
        """Alias table for ``root``, built on first request."""
        root = Path(root).resolve()
        key = os.path.normcase(str(root))
        with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                return cached
            table = self._build(root)
            self._cache[key] = table
        logger.debug("Alias table for %s: %d rules", root, len(table))
        return table

    def rebuild(self) -> None:
        """Forget cached tables; the next lookup re-reads the configs."""
        with self._lock:
            self._cache.clear()

    def find_type_config(self, root: Path) -> Optional[Path]:
        """Nearest tsconfig/jsconfig in ``root`` or above, stopping at the repository boundary."""
        for directory in (root, *root.parents):
            for name in TYPE_CONFIG_NAMES:
                candidate = directory / name
                if candidate.is_file():
                    return candidate
            if (directory / ".git").exists():
                break
        return None

    # ── Building ───────────────────────────────────────────────────

    def _build(self, root: Path) -> AliasTable:
        rules: dict[tuple[str, bool], AliasRule] = {}
        base_url: Optional[str] = None

        type_config = self.find_type_config(root)
        if type_config is not None:
            layers: list[tuple[Path, dict[str, Any]]] = []
            self._collect_layers(type_config, 0, frozenset(), layers)
            for path, data in layers:
                layer_base_url = self._apply_type_config(path, data, rules)
                if layer_base_url is not None:
                    base_url = layer_base_url

        for name in BUNDLER_CONFIG_NAMES:
            path = root / name
            if not path.is_file():
                continue
            try:
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                self._record(IssueKind.UNPARSABLE, f"Cannot read {path}: {e}", path=str(path))
                continue
            for key, target in parse_bundler_aliases(text, path.parent):
                for rule in self._bundler_rules(key, target, str(path)):
                    rules[(rule.prefix, rule.exact)] = rule

        return AliasTable.from_rules(rules, (base_url,) if base_url else ())

    def _collect_layers(self, path: Path, depth: int, chain: frozenset,
                        layers: list[tuple[Path, dict[str, Any]]]) -> None:
        """Append ``path`` and its bases to ``layers``, bases first."""
        key = os.path.normcase(str(path.resolve()))
        if key in chain:
            self._record(IssueKind.CYCLE, f"Cyclic extends at {path}; chain truncated", path=str(path))
            return
        if depth > self.config.max_extends_depth:
            self._record(
                IssueKind.CYCLE,
                f"extends chain deeper than {self.config.max_extends_depth} at {path}; truncated",
                path=str(path),
            )
            return

        data = self._read_type_config(path)
        if data is None:
            return

        extends = data.get("extends")
        if isinstance(extends, str):
            extends = [extends]
        for spec in extends if isinstance(extends, list) else []:
            if not isinstance(spec, str):
                continue
            base = self._resolve_extends(spec, path.parent)
            if base is None:
                self._record(IssueKind.NOT_FOUND, f"{path}: cannot find extended config {spec!r}",
                             path=str(path), extends=spec)
                continue
            self._collect_layers(base, depth + 1, chain | {key}, layers)
        layers.append((path, data))

    def _read_type_config(self, path: Path) -> Optional[dict[str, Any]]:
        try:
            data = loads_jsonc(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValueError) as e:
            self._record(IssueKind.UNPARSABLE, f"Cannot parse {path}: {e}", path=str(path))
            return None
        if not isinstance(data, dict):
            self._record(IssueKind.UNPARSABLE, f"{path} is not a JSON object", path=str(path))
            return None
        return data

    def _resolve_extends(self, spec: str, directory: Path) -> Optional[Path]:
        if spec.startswith(".") or os.path.isabs(spec):
            bases = [directory / spec]
        else:
            bases = [d / "node_modules" / spec for d in (directory, *directory.parents)]
        for base in bases:
            for candidate in self._extends_candidates(base):
                if candidate.is_file():
                    return candidate
        return None

    @staticmethod
    def _extends_candidates(base: Path) -> Iterator[Path]:
        yield base
        if base.suffix != ".json":
            yield base.with_name(base.name + ".json")
        yield base / "tsconfig.json"

    def _apply_type_config(self, path: Path, data: dict[str, Any],
                           rules: dict[tuple[str, bool], AliasRule]) -> Optional[str]:
        """Merge one layer's ``paths`` into ``rules``; return its baseUrl, if any."""
        options = data.get("compilerOptions")
        if not isinstance(options, dict):
            return None
        base_url = options.get("baseUrl")
        paths_base = path.parent
        resolved_base_url = None
        if isinstance(base_url, str):
            paths_base = Path(_join(path.parent, base_url))
            resolved_base_url = str(paths_base)

        paths = options.get("paths")
        if isinstance(paths, dict):
            for pattern, targets in paths.items():
                if not isinstance(targets, list):
                    continue
                exact = "*" not in pattern
                prefix = pattern if exact else pattern.split("*", 1)[0]
                resolved = tuple(
                    _join(paths_base, target) if exact
                    else _wildcard_target(paths_base, target.split("*", 1)[0])
                    for target in targets
                    if isinstance(target, str)
                )
                if resolved:
                    rules[(prefix, exact)] = AliasRule(prefix, resolved, exact, source=str(path))
        return resolved_base_url

    @staticmethod
    def _bundler_rules(key: str, target: str, source: str) -> list[AliasRule]:
        if key.endswith("$"):
            # webpack exact-match alias
            return [AliasRule(key[:-1], (target,), True, source)]
        if key.endswith("/"):
            return [AliasRule(key, (target.rstrip(os.sep) + os.sep,), False, source)]
        return [
            AliasRule(key, (target,), True, source),
            AliasRule(key + "/", (target.rstrip(os.sep) + os.sep,), False, source),
        ]

    def _record(self, kind: IssueKind, message: str, **context: Any) -> None:
        issue = Issue(kind=kind, message=message, context=context)
        self.issues.append(issue)
        logger.warning(str(issue))
