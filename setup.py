"""Setup script for entity-graph"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README
this_directory = Path(__file__).parent
long_description = ""
readme_path = this_directory / "README.md"
if readme_path.exists():
    long_description = readme_path.read_text(encoding="utf-8")

setup(
    name="entity-graph",
    version="0.1.0",
    description="Cross-file symbol graphs for TypeScript, JavaScript and Vue repositories",
    long_description=long_description,
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
    ],
    python_requires=">=3.11",
    install_requires=[
        "tree-sitter>=0.25.0",
        "tree-sitter-typescript>=0.23.0",
        "tree-sitter-javascript>=0.23.0",
        "tree-sitter-html>=0.23.0",
        "rich>=13.0.0",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    keywords="static-analysis typescript javascript vue monorepo symbol-graph tree-sitter",
)
