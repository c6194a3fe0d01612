"""High-level ingestion helpers to load documents from the content directory."""

from __future__ import annotations

import functools
import logging
from concurrent.futures import Executor
from pathlib import Path
from typing import Iterable, List

from .config import Config
from .content import Document, load_markdown_document

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = {".md", ".markdown"}


def load_documents(config: Config, *, executor: Executor | None = None) -> list[Document]:
    """Load every supported document under the configured content directory.

    Documents come back in sorted source-path order. The first parse error (in
    that order) is raised unchanged.
    """
    root = config.content_dir
    if not root.exists():
        logger.warning("Content directory %s does not exist; nothing to build.", root)
        return []

    paths = list(iter_content_files(root))
    load = functools.partial(load_markdown_document, post_layouts=tuple(config.post_layouts))
    if executor is None:
        documents: List[Document] = [load(path) for path in paths]
    else:
        documents = list(executor.map(load, paths))
    logger.info("Loaded %d document(s) from %s", len(documents), root)
    return documents


def iter_content_files(root: Path) -> Iterable[Path]:
    directories = sorted(p for p in root.rglob("*") if p.is_dir())
    directories.insert(0, root)

    for directory in directories:
        for path in sorted(directory.iterdir()):
            if path.is_file() and path.suffix.lower() in SUPPORTED_SUFFIXES:
                yield path
