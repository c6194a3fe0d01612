"""In-memory index of every document and static asset in a single build."""

from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Mapping

from .content import Document
from .errors import DuplicateIdentifier
from .utils import normalize_url_path, slugify

logger = logging.getLogger(__name__)

DEFAULT_POST_PERMALINK = "/{year}/{month}/{day}/{title}/"


@dataclass(frozen=True, slots=True)
class StaticAsset:
    """A file under the static-asset root and the URL path it is served from."""

    url_path: str
    source: Path


def index_assets(static_dir: Path, prefix: str) -> dict[str, StaticAsset]:
    """Map every file under ``static_dir`` to ``<prefix><relative path>``."""
    assets: dict[str, StaticAsset] = {}
    if not static_dir.exists():
        return assets
    base = "/" + prefix.strip("/")
    for path in sorted(static_dir.rglob("*")):
        if not path.is_file():
            continue
        relative = path.relative_to(static_dir).as_posix()
        url_path = f"{base.rstrip('/')}/{relative}"
        assets[normalize_url_path(url_path)] = StaticAsset(url_path=url_path, source=path)
    return assets


def _date_order(document: Document) -> tuple[float, str, str]:
    # Newest first; equal timestamps fall back to source order.
    timestamp = document.date.timestamp() if document.date is not None else 0.0
    return (-timestamp, document.source_path, document.source_identity)


class ContentRegistry:
    """Registry of documents keyed by resolved permalink.

    Date and category indexes are maintained on insertion, so ordering depends
    only on document dates and source paths, never on registration order.
    """

    def __init__(
        self,
        *,
        post_permalink: str = DEFAULT_POST_PERMALINK,
        assets: Mapping[str, StaticAsset] | None = None,
    ) -> None:
        self._post_permalink = post_permalink
        self._by_permalink: dict[str, Document] = {}
        self._permalinks: dict[str, str] = {}
        self._posts: list[Document] = []
        self._by_category: dict[str, list[Document]] = {}
        self._assets: dict[str, StaticAsset] = dict(assets or {})

    def __len__(self) -> int:
        return len(self._by_permalink)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and self.resolve(path) is not None

    def register(self, document: Document) -> str:
        """Insert a document and return its resolved permalink.

        Raises ``DuplicateIdentifier`` without modifying the registry when the
        permalink or the source is already registered.
        """
        if document.source_identity in self._permalinks:
            raise DuplicateIdentifier(document.source_path, source_path=document.source_path)

        permalink = self._derive_permalink(document)
        key = normalize_url_path(permalink)
        existing = self._by_permalink.get(key)
        if existing is not None:
            raise DuplicateIdentifier(
                key,
                source_path=document.source_path,
                existing_path=existing.source_path,
            )

        self._by_permalink[key] = document
        self._permalinks[document.source_identity] = key
        if document.is_post:
            bisect.insort(self._posts, document, key=_date_order)
            for category in document.categories:
                bisect.insort(self._by_category.setdefault(category, []), document, key=_date_order)
        logger.debug("Registered %s as %s", document.source_path, key)
        return key

    def register_all(self, documents: Iterable[Document]) -> list[str]:
        return [self.register(document) for document in documents]

    def permalink_for(self, document: Document) -> str:
        """Resolved permalink for a registered document, or the one it would get."""
        registered = self._permalinks.get(document.source_identity)
        if registered is not None:
            return registered
        return normalize_url_path(self._derive_permalink(document))

    def all_posts(self) -> Iterator[Document]:
        """Yield every post, newest first."""
        yield from tuple(self._posts)

    def by_category(self, name: str) -> Iterator[Document]:
        """Yield posts in ``name`` (lowercase-normalized), newest first."""
        key = " ".join(name.split()).lower()
        yield from tuple(self._by_category.get(key, ()))

    def categories(self) -> list[str]:
        """Categories that have at least one post."""
        return sorted(name for name, posts in self._by_category.items() if posts)

    def pages(self) -> Iterator[Document]:
        for key in sorted(self._by_permalink):
            document = self._by_permalink[key]
            if not document.is_post:
                yield document

    def documents(self) -> Iterator[Document]:
        """Yield every document ordered by permalink."""
        for key in sorted(self._by_permalink):
            yield self._by_permalink[key]

    def assets(self) -> Iterator[StaticAsset]:
        for key in sorted(self._assets):
            yield self._assets[key]

    def resolve(self, path: str) -> Document | StaticAsset | None:
        """Look up a document or static asset by site path; ``None`` when absent."""
        key = normalize_url_path(path)
        document = self._by_permalink.get(key)
        if document is not None:
            return document
        return self._assets.get(key)

    def _derive_permalink(self, document: Document) -> str:
        if document.permalink:
            return document.permalink
        if document.is_post and document.date is not None:
            categories = "/".join(slugify(category) for category in document.categories)
            return self._post_permalink.format(
                slug=document.slug,
                title=document.title_slug,
                year=f"{document.date:%Y}",
                month=f"{document.date:%m}",
                day=f"{document.date:%d}",
                categories=categories,
            )
        stem = slugify(Path(document.source_path).stem) or document.title_slug
        if stem == "index":
            return "/"
        return f"/{stem}/"
