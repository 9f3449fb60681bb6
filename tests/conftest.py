"""Shared test fixtures for entity-graph."""

import json
import textwrap
from pathlib import Path

import pytest

from entity_graph.scanning.source_index import SourceIndex


def pytest_addoption(parser):
    """Add --run-slow option for slow tests."""
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="run slow tests",
    )


def pytest_configure(config):
    """Configure slow marker."""
    config.addinivalue_line("markers", "slow: mark test as slow to run")


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless --run-slow is given."""
    if config.getoption("--run-slow"):
        return
    skip_slow = pytest.mark.skip(reason="need --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


def write_tree(base: Path, files: dict) -> Path:
    """Write ``{relative path: content}`` under ``base``.

    Dict and list contents are written as JSON; strings are dedented.
    """
    for rel, content in files.items():
        path = base / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, (dict, list)):
            path.write_text(json.dumps(content, indent=2), encoding="utf-8")
        elif isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")
    return base


@pytest.fixture
def make_tree(tmp_path):
    """Factory writing a file tree into tmp_path and returning its root."""

    def _make(files: dict, subdir: str = "") -> Path:
        base = tmp_path / subdir if subdir else tmp_path
        base.mkdir(parents=True, exist_ok=True)
        return write_tree(base, files).resolve()

    return _make


@pytest.fixture
def index():
    """A fresh parse cache."""
    return SourceIndex()


@pytest.fixture
def monorepo(make_tree):
    """pnpm workspace: @t/app depends on @t/shared and calls its formatDate."""
    return make_tree(
        {
            "pnpm-workspace.yaml": "packages:\n  - 'packages/*'\n",
            "package.json": {"name": "root", "private": True},
            "packages/shared/package.json": {"name": "@t/shared", "main": "src/index.ts"},
            "packages/shared/src/index.ts": """
                export function formatDate(d: Date): string {
                  return d.toISOString();
                }
            """,
            "packages/app/package.json": {
                "name": "@t/app",
                "dependencies": {"@t/shared": "workspace:*"},
            },
            "packages/app/src/main.ts": """
                import { formatDate } from '@t/shared';

                export function render(): string {
                  return formatDate(new Date());
                }
            """,
        }
    )
