"""Shared extraction logic: a parsed file's export table becomes entities."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Union

from ..logging_config import get_logger
from ..models import Entity, Location, make_entity_id
from ..scanning.source_index import SourceFile, SourceIndex

logger = get_logger(__name__)


def relative_file(path: Union[str, Path], root_dir: Union[str, Path]) -> str:
    """Root-relative POSIX path; files outside the root keep their ``../`` prefix."""
    rel = os.path.relpath(os.path.abspath(path), os.path.abspath(root_dir))
    return Path(rel).as_posix()


class BaseExtractor:
    """Turns the exported declarations of one file into entities.

    Subclasses declare the dialects they handle and may post-process the
    entity list. Results are cached on the ``SourceFile`` per root, so
    re-extracting an unchanged file costs one ``stat``.
    """

    dialects: tuple[str, ...] = ()

    def __init__(self, index: SourceIndex):
        self.index = index

    def extract(self, file_path: Union[str, Path], root_dir: Union[str, Path]) -> list[Entity]:
        """Extract the exported entities of one file.

        Raises:
            FileAccessError, ParsingError: The file can't be read or decoded
        """
        source_file = self.index.load(file_path)
        root_key = os.path.normcase(os.path.abspath(root_dir))
        cached = source_file.entities.get(root_key)
        if cached is not None:
            return list(cached)

        rel = relative_file(source_file.path, root_dir)
        entities = self.build_entities(source_file, rel)
        source_file.entities[root_key] = entities
        logger.debug("Extracted %d entities from %s", len(entities), rel)
        return list(entities)

    def build_entities(self, source_file: SourceFile, rel: str) -> list[Entity]:
        entities = []
        for decl, raw_name in source_file.syntax.exported_declarations():
            entities.append(
                Entity(
                    id=make_entity_id(decl.kind, raw_name, rel),
                    type=decl.kind,
                    file=rel,
                    loc=Location(start=decl.start_line, end=decl.end_line),
                    raw_name=raw_name,
                )
            )
        return entities
