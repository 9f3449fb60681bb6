"""Tests for entity extraction from plain script modules."""

import pytest

from entity_graph.exceptions import UnsupportedDialectError
from entity_graph.extractors import ExtractorRegistry, ScriptExtractor
from entity_graph.models import DEFAULT_EXPORT, EntityType


def extract(index, make_tree, files, target):
    root = make_tree(files)
    return ScriptExtractor(index).extract(root / target, root), root


class TestExportOnly:
    """Only exported declarations become entities."""

    def test_private_declarations_invisible(self, index, make_tree):
        """Private top-level declarations never appear."""
        entities, _ = extract(
            index,
            make_tree,
            {
                "src/date.ts": """
                    const pad = (n: number) => String(n).padStart(2, '0');
                    function internal() {}
                    export function formatDate(d: Date) { return pad(d.getDate()); }
                    export const EPOCH = 0;
                """
            },
            "src/date.ts",
        )
        assert [e.id for e in entities] == ["Function:formatDate", "Variable:EPOCH"]

    def test_each_declaration_once(self, index, make_tree):
        """A declaration exported several ways appears once, under its own name."""
        entities, _ = extract(
            index,
            make_tree,
            {
                "a.ts": """
                    export function run() {}
                    export { run as start };
                    export default run;
                """
            },
            "a.ts",
        )
        assert [(e.id, e.raw_name) for e in entities] == [("Function:run", "run")]

    def test_reexports_mint_nothing(self, index, make_tree):
        """Re-exports from other modules yield no entities."""
        entities, _ = extract(
            index,
            make_tree,
            {
                "index.ts": """
                    export { formatDate } from './date';
                    export * from './other';
                """
            },
            "index.ts",
        )
        assert entities == []


class TestEntityFields:
    """Test ids, files, locations and raw names."""

    def test_default_export_uses_file_stem(self, index, make_tree):
        """Default exports carry raw name 'default' and a stem-based id."""
        entities, _ = extract(
            index,
            make_tree,
            {"components/UserCard.tsx": "export default function () { return <div />; }\n"},
            "components/UserCard.tsx",
        )
        (entity,) = entities
        assert entity.raw_name == DEFAULT_EXPORT
        assert entity.id == "Component:UserCard"
        assert entity.type is EntityType.COMPONENT

    def test_file_is_root_relative_posix(self, index, make_tree):
        """file uses forward slashes relative to the root."""
        entities, _ = extract(index, make_tree, {"a/b/c.ts": "export const x = 1;\n"}, "a/b/c.ts")
        assert entities[0].file == "a/b/c.ts"

    def test_location(self, index, make_tree):
        """loc spans the export statement."""
        entities, _ = extract(
            index,
            make_tree,
            {"m.ts": "// header\nexport function f() {\n  return 1;\n}\n"},
            "m.ts",
        )
        assert entities[0].loc.start == 2
        assert entities[0].loc.end == 4

    def test_to_dict(self, index, make_tree):
        """to_dict uses the rawName key."""
        entities, _ = extract(index, make_tree, {"m.ts": "export enum Color { Red }\n"}, "m.ts")
        assert entities[0].to_dict() == {
            "id": "Enum:Color",
            "type": "enum",
            "file": "m.ts",
            "loc": {"start": 1, "end": 1},
            "rawName": "Color",
        }


class TestCaching:
    """Repeated extraction of an unchanged file is served from cache."""

    def test_same_entities_without_reparse(self, index, make_tree):
        """The second call returns equal entities from the cached entry."""
        root = make_tree({"m.ts": "export const x = 1;\n"})
        extractor = ScriptExtractor(index)
        first = extractor.extract(root / "m.ts", root)
        entry = index.load(root / "m.ts")
        second = extractor.extract(root / "m.ts", root)
        assert first == second
        assert index.load(root / "m.ts") is entry

    def test_changed_file_is_reparsed(self, index, make_tree):
        """A modified file is parsed again."""
        root = make_tree({"m.ts": "export const x = 1;\n"})
        extractor = ScriptExtractor(index)
        extractor.extract(root / "m.ts", root)
        (root / "m.ts").write_text("export const x = 1;\nexport const yy = 2;\n")
        assert [e.raw_name for e in extractor.extract(root / "m.ts", root)] == ["x", "yy"]


class TestRegistry:
    """Test dialect dispatch."""

    def test_dialects(self, index):
        """Every dialect has an extractor."""
        registry = ExtractorRegistry(index)
        assert registry.dialects == ["javascript", "tsx", "typescript", "vue"]
        assert isinstance(registry.get("tsx"), ScriptExtractor)

    def test_unknown_dialect(self, index):
        """Unknown dialects raise UnsupportedDialectError."""
        with pytest.raises(UnsupportedDialectError):
            ExtractorRegistry(index).get("unknown")
