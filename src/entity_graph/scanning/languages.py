"""Source dialects, extensions, and directory skip rules.

A *dialect* picks both the grammar used to parse a file and the extractor
that turns it into entities:

    typescript  .ts .mts .cts
    tsx         .tsx
    javascript  .js .jsx .mjs .cjs   (the JavaScript grammar parses JSX)
    vue         .vue                 (component documents, split first)
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union


@dataclass(frozen=True)
class DialectConfig:
    """How files of one dialect are parsed."""

    name: str
    extensions: tuple[str, ...]
    grammar: Optional[str]  # None for component documents
    jsx: bool = False


DIALECTS: dict[str, DialectConfig] = {
    "typescript": DialectConfig("typescript", (".ts", ".mts", ".cts"), "typescript"),
    "tsx": DialectConfig("tsx", (".tsx",), "tsx", jsx=True),
    "javascript": DialectConfig("javascript", (".js", ".jsx", ".mjs", ".cjs"), "javascript", jsx=True),
    "vue": DialectConfig("vue", (".vue",), None, jsx=False),
}

_EXTENSION_TO_DIALECT: dict[str, str] = {
    ext: cfg.name for cfg in DIALECTS.values() for ext in cfg.extensions
}

SOURCE_EXTENSIONS: tuple[str, ...] = (
    ".ts",
    ".tsx",
    ".js",
    ".jsx",
    ".mjs",
    ".cjs",
    ".mts",
    ".cts",
    ".vue",
)

# Tried in order when a specifier omits its extension
RESOLVE_EXTENSIONS: tuple[str, ...] = (
    ".ts",
    ".tsx",
    ".vue",
    ".js",
    ".jsx",
    ".mjs",
    ".cjs",
    ".mts",
    ".cts",
)

INDEX_BASENAMES: tuple[str, ...] = ("index",)

# Dependency and output directories, never walked
SKIP_DIRS: tuple[str, ...] = (
    "node_modules",
    "bower_components",
    "jspm_packages",
    "dist",
    "build",
    "coverage",
    "tmp",
    "temp",
    "logs",
    "out",
    "target",
    "bin",
    "obj",
    ".git",
    ".vscode",
    ".idea",
    ".next",
    ".nuxt",
    ".output",
    ".turbo",
    ".cache",
)

# Generated or declaration-only files that never hold entities
SKIP_FILE_SUFFIXES: tuple[str, ...] = (".d.ts", ".d.mts", ".d.cts", ".min.js", ".bundle.js")

# Script `lang` attribute of a component document -> grammar
SCRIPT_LANG_GRAMMARS: dict[str, str] = {
    "ts": "typescript",
    "typescript": "typescript",
    "tsx": "tsx",
    "js": "javascript",
    "javascript": "javascript",
    "jsx": "javascript",
}


def detect_dialect(filepath: Union[str, Path]) -> str:
    """Detect a file's dialect from its extension.

    Returns:
        Dialect name (e.g., "typescript", "vue") or "unknown"
    """
    path = Path(filepath)
    return _EXTENSION_TO_DIALECT.get(path.suffix.lower(), "unknown")


def should_skip_dir(name: str, skip_dirs: tuple[str, ...] = SKIP_DIRS) -> bool:
    """True for dependency/output directories and dot-directories."""
    return name in skip_dirs or name.startswith(".")


def is_source_file(
    filepath: Union[str, Path], extensions: tuple[str, ...] = SOURCE_EXTENSIONS
) -> bool:
    """True when the file has a source extension and isn't generated."""
    name = Path(filepath).name.lower()
    if any(name.endswith(suffix) for suffix in SKIP_FILE_SUFFIXES):
        return False
    return Path(name).suffix in extensions
