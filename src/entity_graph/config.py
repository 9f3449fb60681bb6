"""Configuration loading and management for entity-graph.

Configuration sources are merged in priority order:
    1. Defaults (defined in GraphConfig)
    2. Global config (~/.entity-graph.toml)
    3. Project config (./entity-graph.toml)
    4. Explicit config file
    5. Environment variables (ENTITY_GRAPH_* prefix)
    6. Keyword overrides

Example:
    >>> config = load_config(max_reexport_depth=3)
    >>> config.max_reexport_depth
    3
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, Optional, get_type_hints

from .exceptions import ConfigurationError, InvalidConfigError
from .scanning.languages import SKIP_DIRS, SOURCE_EXTENSIONS

Verbosity = Literal["quiet", "normal", "verbose"]

ENV_PREFIX = "ENTITY_GRAPH_"


@dataclass(frozen=True)
class GraphConfig:
    """Configuration for one graph-building run.

    Attributes:
        File discovery:
            source_extensions: File extensions treated as source files
            skip_dirs: Directory names never descended into
            max_file_size_mb: Larger files are skipped
            follow_symlinks: Follow symbolic links while walking

        Workspace discovery:
            glob_max_depth: Depth bound for ``**`` workspace globs
            package_probe_depth: Depth searched for source files when
                validating a package directory

        Resolution:
            max_extends_depth: Longest ``extends`` chain followed in type-configs
            max_reexport_depth: Longest re-export chain followed on lookup

        Identity:
            disambiguator_bytes: Random bytes appended (as hex) to colliding ids

        Performance:
            workers: Extraction threads (None = auto-detect)
            parallel_threshold: Batches smaller than this are extracted serially
            analysis_concurrency: Default limit for ``analyze_all``

        Output control:
            verbosity: Logging verbosity level
    """

    source_extensions: tuple[str, ...] = SOURCE_EXTENSIONS
    skip_dirs: tuple[str, ...] = SKIP_DIRS
    max_file_size_mb: float = 5.0
    follow_symlinks: bool = False

    glob_max_depth: int = 3
    package_probe_depth: int = 3

    max_extends_depth: int = 8
    max_reexport_depth: int = 5

    disambiguator_bytes: int = 3

    workers: Optional[int] = None
    parallel_threshold: int = 10
    analysis_concurrency: int = 5

    verbosity: Verbosity = "normal"

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not self.source_extensions:
            raise InvalidConfigError("source_extensions", self.source_extensions, "must not be empty")
        for ext in self.source_extensions:
            if not ext.startswith("."):
                raise InvalidConfigError("source_extensions", ext, "extensions start with '.'")

        if self.max_file_size_mb <= 0:
            raise InvalidConfigError("max_file_size_mb", self.max_file_size_mb, "must be positive")

        for name in (
            "glob_max_depth",
            "package_probe_depth",
            "max_extends_depth",
            "max_reexport_depth",
            "disambiguator_bytes",
            "parallel_threshold",
            "analysis_concurrency",
        ):
            value = getattr(self, name)
            if value < 1:
                raise InvalidConfigError(name, value, "must be at least 1")

        if self.workers is not None and self.workers < 1:
            raise InvalidConfigError("workers", self.workers, "must be at least 1")

        if self.verbosity not in ("quiet", "normal", "verbose"):
            raise InvalidConfigError("verbosity", self.verbosity, "expected quiet/normal/verbose")

    @property
    def max_file_size_bytes(self) -> int:
        """Get max file size in bytes."""
        return int(self.max_file_size_mb * 1024 * 1024)


DEFAULT_CONFIG = GraphConfig()


def load_config(config_file: Optional[Path] = None, **overrides) -> GraphConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides

    Returns:
        Validated GraphConfig instance

    Raises:
        ConfigurationError: If a config file is invalid or missing
        InvalidConfigError: If a value fails validation
    """
    merged: dict[str, Any] = {}

    global_config = Path.home() / ".entity-graph.toml"
    if global_config.exists():
        merged.update(_load_toml_file(global_config))

    project_config = Path.cwd() / "entity-graph.toml"
    if project_config.exists():
        merged.update(_load_toml_file(project_config))

    if config_file is not None:
        config_file = Path(config_file)
        if not config_file.exists():
            raise ConfigurationError(f"Config file not found: {config_file}")
        merged.update(_load_toml_file(config_file))

    merged.update(_load_env_vars())

    if "verbose" in overrides:
        if overrides["verbose"]:
            overrides["verbosity"] = "verbose"
        del overrides["verbose"]
    if "quiet" in overrides:
        if overrides["quiet"]:
            overrides["verbosity"] = "quiet"
        del overrides["quiet"]

    merged.update(overrides)

    # TOML arrays arrive as lists
    for key in ("source_extensions", "skip_dirs"):
        if key in merged and isinstance(merged[key], list):
            merged[key] = tuple(merged[key])

    try:
        return GraphConfig(**merged)
    except TypeError as e:
        raise ConfigurationError(f"Invalid configuration: {e}")


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from ENTITY_GRAPH_* environment variables.

    Tuple-valued fields (extensions, skip dirs) are not read from the
    environment.
    """
    type_hints = get_type_hints(GraphConfig)
    result: dict[str, Any] = {}

    for field_name in GraphConfig.__dataclass_fields__:
        env_key = f"{ENV_PREFIX}{field_name.upper()}"
        env_value = os.environ.get(env_key)
        if env_value is None:
            continue

        type_hint = type_hints.get(field_name)
        if type_hint is None:
            continue

        try:
            parsed = _parse_env_value(env_value, type_hint)
        except ValueError as e:
            raise ConfigurationError(f"Invalid {env_key}: {e}")
        if parsed is not None:
            result[field_name] = parsed

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse an environment variable string to the field's type.

    Returns None for types that are not settable from the environment.

    Raises:
        ValueError: If value can't be parsed to expected type
    """
    origin = getattr(type_hint, "__origin__", None)

    args = getattr(type_hint, "__args__", ())
    if type(None) in args:
        non_none_types = [t for t in args if t is not type(None)]
        if non_none_types:
            type_hint = non_none_types[0]
            origin = getattr(type_hint, "__origin__", None)

    if origin is tuple or type_hint is tuple:
        return None

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        elif lower in ("false", "0", "no", "off"):
            return False
        else:
            raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if type_hint is float:
        return float(value)

    if type_hint is str or origin is Literal:
        return value

    return None


def _load_toml_file(path: Path) -> dict:
    """Load a TOML file, wrapping parse failures in ConfigurationError."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(f"Invalid config file '{path}': {e}")
