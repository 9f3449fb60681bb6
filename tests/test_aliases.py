"""Tests for alias tables from type-configs and bundler configs."""

import os
import textwrap

from entity_graph.aliases import AliasLoader, loads_jsonc, parse_bundler_aliases, strip_jsonc
from entity_graph.exceptions import IssueKind
from entity_graph.models import AliasRule, AliasTable


def targets(table, prefix, exact=False):
    for rule in table.rules:
        if rule.prefix == prefix and rule.exact == exact:
            return rule.targets
    return None


class TestJsonc:
    """Test lenient JSON parsing."""

    def test_comments_and_trailing_commas(self):
        """Line and block comments and trailing commas are accepted."""
        text = '{\n  // line\n  "a": 1, /* block */\n  "b": [1, 2,],\n}\n'
        assert loads_jsonc(text) == {"a": 1, "b": [1, 2]}

    def test_comment_markers_inside_strings_kept(self):
        """// inside a string is not a comment."""
        assert loads_jsonc('{"url": "http://x//y"}') == {"url": "http://x//y"}

    def test_escaped_quote(self):
        """Escaped quotes do not end the string."""
        assert strip_jsonc('{"a": "say \\"hi\\" // no"}') == '{"a": "say \\"hi\\" // no"}'

    def test_bom(self):
        """A leading byte-order mark is ignored."""
        assert loads_jsonc("\ufeff{}") == {}


class TestAliasRule:
    """Test rule matching and ordering."""

    def test_prefix_rule(self):
        """Prefix rules append the remainder to each target."""
        rule = AliasRule("@/", ("/abs/src/",))
        assert rule.candidates("@/lib/x") == ["/abs/src/lib/x"]
        assert rule.match("~/x") is None

    def test_exact_rule(self):
        """Exact rules only match the key itself."""
        rule = AliasRule("@config", ("/abs/config.ts",), exact=True)
        assert rule.candidates("@config") == ["/abs/config.ts"]
        assert rule.match("@config/x") is None

    def test_table_order(self):
        """Longer prefixes come first; exact beats prefix at equal length."""
        rules = {
            ("@/", False): AliasRule("@/", ("a",)),
            ("@/components/", False): AliasRule("@/components/", ("b",)),
            ("@/", True): AliasRule("@/", ("c",), exact=True),
        }
        table = AliasTable.from_rules(rules)
        assert [(r.prefix, r.exact) for r in table.rules] == [
            ("@/components/", False),
            ("@/", True),
            ("@/", False),
        ]
        assert [r.prefix for r in table.matching("@/components/Card")] == ["@/components/", "@/"]


class TestTypeConfig:
    """Test tsconfig/jsconfig alias loading."""

    def test_paths_relative_to_base_url(self, make_tree):
        """paths resolve against baseUrl."""
        root = make_tree(
            {
                "tsconfig.json": """
                    {
                      // comment
                      "compilerOptions": {
                        "baseUrl": ".",
                        "paths": {"@/*": ["src/*"], "@config": ["config/index.ts"]},
                      },
                    }
                """
            }
        )
        table = AliasLoader().load_aliases(root)
        assert targets(table, "@/") == (str(root / "src") + os.sep,)
        assert targets(table, "@config", exact=True) == (str(root / "config" / "index.ts"),)
        assert table.base_urls == (str(root),)

    def test_paths_without_base_url(self, make_tree):
        """Without baseUrl, paths resolve against the config's directory."""
        root = make_tree({"jsconfig.json": {"compilerOptions": {"paths": {"~/*": ["./lib/*"]}}}})
        table = AliasLoader().load_aliases(root)
        assert targets(table, "~/") == (str(root / "lib") + os.sep,)
        assert table.base_urls == ()

    def test_found_in_parent(self, make_tree):
        """The nearest config above the root is used."""
        root = make_tree(
            {
                "tsconfig.json": {"compilerOptions": {"paths": {"@/*": ["src/*"]}}},
                "packages/app/x.ts": "",
            }
        )
        table = AliasLoader().load_aliases(root / "packages/app")
        assert targets(table, "@/") == (str(root / "src") + os.sep,)

    def test_extends_inherits_and_overrides(self, make_tree):
        """Base paths are inherited; the child overrides the same key."""
        root = make_tree(
            {
                "tsconfig.base.json": {
                    "compilerOptions": {"paths": {"@shared/*": ["shared/*"], "@/*": ["base/*"]}}
                },
                "app/tsconfig.json": {
                    "extends": "../tsconfig.base.json",
                    "compilerOptions": {"paths": {"@/*": ["src/*"]}},
                },
            }
        )
        table = AliasLoader().load_aliases(root / "app")
        assert targets(table, "@shared/") == (str(root / "shared") + os.sep,)
        assert targets(table, "@/") == (str(root / "app" / "src") + os.sep,)

    def test_extends_without_json_suffix(self, make_tree):
        """extends may omit the .json suffix."""
        root = make_tree(
            {
                "base.json": {"compilerOptions": {"paths": {"#lib/*": ["lib/*"]}}},
                "tsconfig.json": {"extends": "./base"},
            }
        )
        assert targets(AliasLoader().load_aliases(root), "#lib/") is not None

    def test_extends_package(self, make_tree):
        """extends may name a package under node_modules."""
        root = make_tree(
            {
                "node_modules/@acme/tsconfig/tsconfig.json": {
                    "compilerOptions": {"paths": {"@acme/*": ["acme/*"]}}
                },
                "tsconfig.json": {"extends": "@acme/tsconfig"},
            }
        )
        table = AliasLoader().load_aliases(root)
        assert targets(table, "@acme/") == (str(root / "node_modules/@acme/tsconfig/acme") + os.sep,)

    def test_self_referential_extends(self, make_tree):
        """A cyclic extends chain is truncated with a CYCLE issue."""
        root = make_tree(
            {"tsconfig.json": {"extends": "./tsconfig.json", "compilerOptions": {"paths": {"@/*": ["src/*"]}}}}
        )
        loader = AliasLoader()
        table = loader.load_aliases(root)
        assert targets(table, "@/") is not None
        assert [issue.kind for issue in loader.issues] == [IssueKind.CYCLE]

    def test_missing_extends(self, make_tree):
        """A missing base is reported as NOT_FOUND."""
        root = make_tree({"tsconfig.json": {"extends": "./nope.json"}})
        loader = AliasLoader()
        assert len(loader.load_aliases(root)) == 0
        assert loader.issues[0].kind is IssueKind.NOT_FOUND

    def test_unparsable_config(self, make_tree):
        """A broken config is reported as UNPARSABLE and yields no rules."""
        root = make_tree({"tsconfig.json": "{ nope"})
        loader = AliasLoader()
        assert len(loader.load_aliases(root)) == 0
        assert loader.issues[0].kind is IssueKind.UNPARSABLE

    def test_cached_until_rebuild(self, make_tree):
        """Tables are cached per root; rebuild() re-reads."""
        root = make_tree({"tsconfig.json": {"compilerOptions": {"paths": {"@/*": ["src/*"]}}}})
        loader = AliasLoader()
        first = loader.load_aliases(root)
        (root / "tsconfig.json").write_text('{"compilerOptions": {"paths": {"~/*": ["src/*"]}}}')
        assert loader.load_aliases(root) is first
        loader.rebuild()
        assert targets(loader.load_aliases(root), "~/") is not None


class TestBundlerConfig:
    """Test alias blocks in bundler configs."""

    def test_vite_object_form(self, tmp_path):
        """Object-form aliases with path.resolve and fileURLToPath."""
        text = textwrap.dedent(
            """
            import { fileURLToPath, URL } from 'node:url'
            export default defineConfig({
              resolve: {
                alias: {
                  '@': fileURLToPath(new URL('./src', import.meta.url)),
                  '@lib': path.resolve(__dirname, 'lib'),
                  assets: './public/assets',
                  vue: 'vue/dist/vue.esm-bundler.js',
                },
              },
            })
            """
        )
        pairs = dict(parse_bundler_aliases(text, tmp_path))
        assert pairs["@"] == str(tmp_path / "src")
        assert pairs["@lib"] == str(tmp_path / "lib")
        assert pairs["assets"] == str(tmp_path / "public" / "assets")

    def test_array_form(self, tmp_path):
        """find/replacement entries are read."""
        text = "alias: [{ find: '~', replacement: path.resolve(__dirname, 'src') }]"
        assert parse_bundler_aliases(text, tmp_path) == [("~", str(tmp_path / "src"))]

    def test_bundler_key_yields_exact_and_prefix(self, make_tree):
        """Key K becomes an exact rule K and a prefix rule K/."""
        root = make_tree(
            {"vite.config.ts": "export default { resolve: { alias: { '@': path.resolve(__dirname, 'src') } } }\n"}
        )
        table = AliasLoader().load_aliases(root)
        assert targets(table, "@", exact=True) == (str(root / "src"),)
        assert targets(table, "@/") == (str(root / "src") + os.sep,)

    def test_bundler_overrides_type_config(self, make_tree):
        """Bundler aliases override type-config paths for the same prefix."""
        root = make_tree(
            {
                "tsconfig.json": {"compilerOptions": {"paths": {"@/*": ["old/*"]}}},
                "vite.config.js": "module.exports = { resolve: { alias: { '@': path.resolve(__dirname, 'new') } } }\n",
            }
        )
        table = AliasLoader().load_aliases(root)
        assert targets(table, "@/") == (str(root / "new") + os.sep,)

    def test_webpack_exact_suffix(self, make_tree):
        """A trailing $ on a webpack key makes an exact-only rule."""
        root = make_tree(
            {"webpack.config.js": "module.exports = { resolve: { alias: { xyz$: path.resolve(__dirname, 'x.js') } } }\n"}
        )
        table = AliasLoader().load_aliases(root)
        assert targets(table, "xyz", exact=True) == (str(root / "x.js"),)
        assert targets(table, "xyz/") is None
