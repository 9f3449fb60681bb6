"""Tests for import specifier resolution."""

from entity_graph.resolver import ModuleResolver, ResolutionKind, is_relative_specifier, split_package_name
from entity_graph.workspace import WorkspaceResolver

SRC = "export const x = 1;\n"


def resolver_for(root):
    workspace = WorkspaceResolver()
    workspace_root = workspace.find_root(root)
    packages = workspace.build_package_map(workspace_root) if workspace_root else {}
    return ModuleResolver(root, packages)


class TestSpecifierHelpers:
    """Test specifier classification."""

    def test_relative(self):
        """./ and ../ are relative; bare names are not."""
        assert is_relative_specifier("./a")
        assert is_relative_specifier("../a")
        assert is_relative_specifier(".")
        assert not is_relative_specifier("react")
        assert not is_relative_specifier("@/a")

    def test_split_package_name(self):
        """Scoped and unscoped names split from their subpath."""
        assert split_package_name("@t/shared/utils/x") == ("@t/shared", "utils/x")
        assert split_package_name("lodash/fp") == ("lodash", "fp")
        assert split_package_name("react") == ("react", "")


class TestRelative:
    """Test relative resolution."""

    def test_extension_probing(self, make_tree):
        """Missing extensions are tried in order."""
        root = make_tree({"src/a.ts": SRC, "src/b.vue": "<template/>\n"})
        resolver = ModuleResolver(root)
        result = resolver.resolve("./b", root / "src/a.ts")
        assert result.kind is ResolutionKind.RELATIVE
        assert result.path == root / "src/b.vue"

    def test_esm_js_to_ts(self, make_tree):
        """An ESM .js specifier finds the .ts source."""
        root = make_tree({"src/a.ts": SRC, "src/util.ts": SRC})
        result = ModuleResolver(root).resolve("./util.js", root / "src/a.ts")
        assert result.path == root / "src/util.ts"

    def test_directory_index(self, make_tree):
        """A directory resolves to its index file."""
        root = make_tree({"src/a.ts": SRC, "src/lib/index.tsx": SRC})
        assert ModuleResolver(root).resolve("./lib", root / "src/a.ts").path == root / "src/lib/index.tsx"

    def test_directory_package_main(self, make_tree):
        """A directory with package.json uses its main field."""
        root = make_tree({"a.ts": SRC, "lib/package.json": {"main": "entry.js"}, "lib/entry.js": SRC})
        assert ModuleResolver(root).resolve("./lib", root / "a.ts").path == root / "lib/entry.js"

    def test_root_anchored(self, make_tree):
        """/-anchored specifiers resolve against the analysis root."""
        root = make_tree({"src/deep/a.ts": SRC, "shared/x.ts": SRC})
        assert ModuleResolver(root).resolve("/shared/x", root / "src/deep/a.ts").path == root / "shared/x.ts"

    def test_missing_relative_is_unresolved(self, make_tree):
        """A missing relative target resolves to nothing, without raising."""
        root = make_tree({"a.ts": SRC})
        result = ModuleResolver(root).resolve("./missing", root / "a.ts")
        assert result.path is None
        assert result.is_third_party


class TestAlias:
    """Test alias resolution."""

    def test_tsconfig_alias(self, make_tree):
        """@/ maps through tsconfig paths."""
        root = make_tree(
            {
                "tsconfig.json": {"compilerOptions": {"baseUrl": ".", "paths": {"@/*": ["src/*"]}}},
                "src/components/Card.vue": "<template/>\n",
                "src/pages/home.ts": SRC,
            }
        )
        result = ModuleResolver(root).resolve("@/components/Card.vue", root / "src/pages/home.ts")
        assert result.kind is ResolutionKind.ALIAS
        assert result.path == root / "src/components/Card.vue"

    def test_most_specific_alias_wins(self, make_tree):
        """The longest matching prefix is tried first."""
        root = make_tree(
            {
                "tsconfig.json": {
                    "compilerOptions": {"paths": {"@/*": ["src/*"], "@/ui/*": ["design/*"]}}
                },
                "src/ui/button.ts": SRC,
                "design/button.ts": SRC,
                "main.ts": SRC,
            }
        )
        assert ModuleResolver(root).resolve("@/ui/button", root / "main.ts").path == root / "design/button.ts"

    def test_falls_back_to_next_rule(self, make_tree):
        """If the specific rule finds nothing, broader rules are tried."""
        root = make_tree(
            {
                "tsconfig.json": {
                    "compilerOptions": {"paths": {"@/*": ["src/*"], "@/ui/*": ["design/*"]}}
                },
                "src/ui/only-here.ts": SRC,
                "main.ts": SRC,
            }
        )
        assert ModuleResolver(root).resolve("@/ui/only-here", root / "main.ts").path == root / "src/ui/only-here.ts"

    def test_base_url(self, make_tree):
        """Bare specifiers resolve against baseUrl."""
        root = make_tree(
            {"tsconfig.json": {"compilerOptions": {"baseUrl": "src"}}, "src/utils/date.ts": SRC, "src/a.ts": SRC}
        )
        result = ModuleResolver(root).resolve("utils/date", root / "src/a.ts")
        assert result.kind is ResolutionKind.ALIAS
        assert result.path == root / "src/utils/date.ts"

    def test_alias_before_workspace(self, make_tree):
        """An alias shadowing a workspace package name wins."""
        root = make_tree(
            {
                "pnpm-workspace.yaml": "packages:\n  - 'packages/*'\n",
                "tsconfig.json": {"compilerOptions": {"paths": {"@t/shared": ["local/shared.ts"]}}},
                "local/shared.ts": SRC,
                "packages/shared/package.json": {"name": "@t/shared"},
                "packages/shared/index.ts": SRC,
                "main.ts": SRC,
            }
        )
        result = resolver_for(root).resolve("@t/shared", root / "main.ts")
        assert result.kind is ResolutionKind.ALIAS
        assert result.path == root / "local/shared.ts"

    def test_per_package_alias_table(self, make_tree):
        """Each workspace package uses its own tsconfig aliases."""
        root = make_tree(
            {
                "pnpm-workspace.yaml": "packages:\n  - 'packages/*'\n",
                "packages/a/package.json": {"name": "a"},
                "packages/a/tsconfig.json": {"compilerOptions": {"paths": {"@/*": ["src/*"]}}},
                "packages/a/src/x.ts": SRC,
                "packages/a/src/main.ts": SRC,
                "packages/b/package.json": {"name": "b"},
                "packages/b/tsconfig.json": {"compilerOptions": {"paths": {"@/*": ["lib/*"]}}},
                "packages/b/lib/x.ts": SRC,
                "packages/b/lib/main.ts": SRC,
            }
        )
        resolver = resolver_for(root)
        assert resolver.resolve("@/x", root / "packages/a/src/main.ts").path == root / "packages/a/src/x.ts"
        assert resolver.resolve("@/x", root / "packages/b/lib/main.ts").path == root / "packages/b/lib/x.ts"


class TestWorkspace:
    """Test workspace package resolution."""

    def test_package_main(self, monorepo):
        """A package name resolves to its declared entry."""
        result = resolver_for(monorepo).resolve("@t/shared", monorepo / "packages/app/src/main.ts")
        assert result.kind is ResolutionKind.WORKSPACE
        assert result.path == monorepo / "packages/shared/src/index.ts"

    def test_skips_built_entry(self, make_tree):
        """Entries pointing into dist fall back to the source index."""
        root = make_tree(
            {
                "package.json": {"workspaces": ["packages/*"]},
                "packages/lib/package.json": {"name": "lib", "main": "dist/index.js"},
                "packages/lib/dist/index.js": SRC,
                "packages/lib/src/index.ts": SRC,
                "app.ts": SRC,
            }
        )
        assert resolver_for(root).resolve("lib", root / "app.ts").path == root / "packages/lib/src/index.ts"

    def test_subpath(self, make_tree):
        """A subpath resolves inside the package, then its src/."""
        root = make_tree(
            {
                "package.json": {"workspaces": ["packages/*"]},
                "packages/lib/package.json": {"name": "@x/lib"},
                "packages/lib/src/utils/math.ts": SRC,
                "app.ts": SRC,
            }
        )
        assert resolver_for(root).resolve("@x/lib/utils/math", root / "app.ts").path == (
            root / "packages/lib/src/utils/math.ts"
        )

    def test_third_party(self, monorepo):
        """Unknown bare specifiers are third-party."""
        result = resolver_for(monorepo).resolve("react", monorepo / "packages/app/src/main.ts")
        assert result.kind is ResolutionKind.THIRD_PARTY
        assert result.path is None

    def test_memoised(self, make_tree):
        """Resolutions are memoised per specifier and directory."""
        root = make_tree({"a.ts": SRC, "b.ts": SRC})
        resolver = ModuleResolver(root)
        first = resolver.resolve("./b", root / "a.ts")
        (root / "b.ts").unlink()
        assert resolver.resolve("./b", root / "a.ts") is first
