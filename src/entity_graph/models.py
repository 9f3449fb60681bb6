"""Core data model shared by the extractors, resolvers and analyzer.

Entity ids follow ``{Type}:{name}``. The name segment is the declaration's
raw name, except for default exports whose raw name is the ``default``
marker and whose id uses the file stem instead (``Component:UserCard``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

DEFAULT_EXPORT = "default"


class EntityType(str, Enum):
    """Kinds of exported declarations tracked in the graph."""

    FUNCTION = "function"
    CLASS = "class"
    VARIABLE = "variable"
    COMPONENT = "component"
    INTERFACE = "interface"
    TYPE = "type"
    ENUM = "enum"

    @property
    def id_prefix(self) -> str:
        return self.value.capitalize()


def make_entity_id(entity_type: EntityType, raw_name: str, file: str) -> str:
    """Format the natural id of a declaration.

    >>> make_entity_id(EntityType.FUNCTION, "formatDate", "src/date.ts")
    'Function:formatDate'
    >>> make_entity_id(EntityType.COMPONENT, "default", "src/UserCard.vue")
    'Component:UserCard'
    """
    name = raw_name
    if raw_name == DEFAULT_EXPORT:
        name = Path(file).stem.split(".")[0] or raw_name
    return f"{entity_type.id_prefix}:{name}"


@dataclass(frozen=True)
class Location:
    """1-based line span of a declaration."""

    start: int
    end: Optional[int] = None

    def contains(self, line: int) -> bool:
        end = self.end if self.end is not None else self.start
        return self.start <= line <= end

    def to_dict(self) -> dict[str, int]:
        result = {"start": self.start}
        if self.end is not None:
            result["end"] = self.end
        return result


@dataclass(frozen=True)
class Entity:
    """A single named, exported declaration.

    Attributes:
        id: Unique id within a run (``Function:formatDate``)
        type: Declaration kind
        file: Root-relative POSIX path of the declaring file
        loc: Declaration line span
        raw_name: Exported name, or ``default`` for default exports
    """

    id: str
    type: EntityType
    file: str
    loc: Location
    raw_name: str

    @property
    def natural_key(self) -> tuple[str, str]:
        """(file, raw_name): stable across re-extraction of an unchanged declaration."""
        return (self.file, self.raw_name)

    def with_id(self, new_id: str) -> Entity:
        return Entity(id=new_id, type=self.type, file=self.file, loc=self.loc, raw_name=self.raw_name)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "file": self.file,
            "loc": self.loc.to_dict(),
            "rawName": self.raw_name,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Entity:
        loc = data.get("loc") or {}
        return cls(
            id=data["id"],
            type=EntityType(data["type"]),
            file=data["file"],
            loc=Location(start=int(loc.get("start", 1)), end=loc.get("end")),
            raw_name=data.get("rawName", data.get("raw_name", "")),
        )


# An Entity, or its ``to_dict`` form
EntityLike = Union[Entity, dict]


def as_entity(value: EntityLike) -> Entity:
    return value if isinstance(value, Entity) else Entity.from_dict(value)


@dataclass
class AnalysisResult:
    """Relationships derived for one entity.

    ``template_components`` and ``annotation`` stay None when the dialect has
    no markup or the declaration has no leading comment.
    """

    imports: list[str] = field(default_factory=list)
    calls: list[str] = field(default_factory=list)
    emits: list[str] = field(default_factory=list)
    template_components: Optional[list[str]] = None
    annotation: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "IMPORTS": list(self.imports),
            "CALLS": list(self.calls),
            "EMITS": list(self.emits),
        }
        if self.template_components is not None:
            result["TEMPLATE_COMPONENTS"] = list(self.template_components)
        if self.annotation is not None:
            result["ANNOTATION"] = self.annotation
        return result


@dataclass(frozen=True)
class EnrichedEntity:
    """An entity together with its analysis result."""

    entity: Entity
    analysis: AnalysisResult

    def to_dict(self) -> dict[str, Any]:
        result = self.entity.to_dict()
        result.update(self.analysis.to_dict())
        return result


def enrich(entity: Entity, result: AnalysisResult) -> EnrichedEntity:
    return EnrichedEntity(entity=entity, analysis=result)


@dataclass(frozen=True)
class WorkspacePackage:
    """A validated package directory of a workspace.

    Attributes:
        name: Name from the package's own package.json, else the directory name
        path: Absolute package directory
        dependencies: Names of other workspace packages this one depends on
    """

    name: str
    path: Path
    dependencies: tuple[str, ...] = ()


@dataclass(frozen=True)
class AliasRule:
    """One import-path shorthand.

    An exact rule matches only ``prefix`` itself; otherwise the rule matches
    any specifier starting with ``prefix`` and the remainder is appended to
    each target.
    """

    prefix: str
    targets: tuple[str, ...]
    exact: bool = False
    source: str = ""

    def match(self, specifier: str) -> Optional[str]:
        """Return the unmatched remainder, or None if the rule doesn't apply."""
        if self.exact:
            return "" if specifier == self.prefix else None
        if specifier.startswith(self.prefix):
            return specifier[len(self.prefix):]
        return None

    def candidates(self, specifier: str) -> list[str]:
        rest = self.match(specifier)
        if rest is None:
            return []
        return [target + rest for target in self.targets]


@dataclass(frozen=True)
class AliasTable:
    """Ordered alias rules, most specific first."""

    rules: tuple[AliasRule, ...] = ()
    base_urls: tuple[str, ...] = ()

    @classmethod
    def from_rules(cls, rules: dict[tuple[str, bool], AliasRule],
                   base_urls: tuple[str, ...] = ()) -> AliasTable:
        # Longer prefixes first; an exact rule beats a prefix rule of the same length
        ordered = sorted(rules.values(), key=lambda r: (-len(r.prefix), not r.exact, r.prefix))
        return cls(rules=tuple(ordered), base_urls=base_urls)

    def matching(self, specifier: str) -> list[AliasRule]:
        return [rule for rule in self.rules if rule.match(specifier) is not None]

    def __len__(self) -> int:
        return len(self.rules)
