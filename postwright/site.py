"""Plan and write the final site: document pages, listings, index, and feeds."""

from __future__ import annotations

import html
import logging
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Sequence

from .config import Config
from .content import Document
from .errors import OutputPathCollision
from .feeds import ATOM_PATH, RSS_PATH, feed_paths, render_feeds
from .registry import ContentRegistry, StaticAsset
from .rendering import RenderedDocument
from .utils import normalize_url_path, output_relpath, slugify

logger = logging.getLogger(__name__)


class PageKind(str, Enum):
    """Origin of a planned output file."""

    DOCUMENT = "document"
    CATEGORY = "category"
    INDEX = "index"
    FEED = "feed"
    ASSET = "asset"


@dataclass(frozen=True, slots=True)
class PlannedPage:
    """One file the emit phase will write, relative to the output root."""

    url_path: str
    output_path: Path
    kind: PageKind
    owner: str
    content: str = ""
    source: Path | None = None


@dataclass(slots=True)
class SitePlan:
    """Complete, collision-free set of outputs for one build."""

    pages: list[PlannedPage] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.pages)

    def of_kind(self, kind: PageKind) -> list[PlannedPage]:
        return [page for page in self.pages if page.kind is kind]

    def get(self, url_path: str) -> PlannedPage | None:
        key = normalize_url_path(url_path)
        for page in self.pages:
            if normalize_url_path(page.url_path) == key:
                return page
        return None


def category_urls(config: Config, names: Iterable[str]) -> dict[str, str]:
    """Listing URL per category name.

    Names are taken in sorted order; a name whose slug is already taken gets
    the first free ``-2``, ``-3`` ... suffix, so ``c``, ``c#`` and ``c++`` all
    receive their own page.
    """
    urls: dict[str, str] = {}
    taken: set[str] = set()
    for name in sorted(set(names)):
        base = slugify(name) or "uncategorized"
        slug = base
        suffix = 2
        url = _category_path(config, slug)
        while url in taken:
            slug = f"{base}-{suffix}"
            suffix += 1
            url = _category_path(config, slug)
        taken.add(url)
        urls[name] = url
    return urls


def _category_path(config: Config, slug: str) -> str:
    return normalize_url_path(config.category_permalink.format(category=slug))


def index_urls(post_count: int, page_size: int) -> list[str]:
    """Chronological index pages: ``/``, ``/page/2/``, ..."""
    total = max(1, -(-post_count // page_size))
    return ["/"] + [f"/page/{number}/" for number in range(2, total + 1)]


def generated_paths(registry: ContentRegistry, config: Config) -> list[str]:
    """URL paths of every listing and feed the plan will contain."""
    post_count = sum(1 for _ in registry.all_posts())
    paths = index_urls(post_count, config.index_page_size)
    paths.extend(category_urls(config, registry.categories()).values())
    paths.extend(feed_paths(config, post_count > 0))
    return paths


def plan_site(
    registry: ContentRegistry,
    rendered: Iterable[RenderedDocument],
    *,
    config: Config,
) -> SitePlan:
    """Build the full output plan without touching the filesystem.

    Raises ``OutputPathCollision`` when two outputs map to the same file.
    """
    by_identity = {item.document.source_identity: item for item in rendered}
    has_posts = next(registry.all_posts(), None) is not None
    categories = category_urls(config, registry.categories())
    layout = PageLayout(config, with_feeds=bool(feed_paths(config, has_posts)), category_links=categories)
    plan = SitePlan()
    claimed: dict[Path, PlannedPage] = {}

    def claim(page: PlannedPage) -> None:
        existing = claimed.get(page.output_path)
        if existing is not None:
            raise OutputPathCollision(page.output_path.as_posix(), existing.owner, page.owner)
        claimed[page.output_path] = page
        plan.pages.append(page)

    def rendered_for(document: Document) -> RenderedDocument:
        try:
            return by_identity[document.source_identity]
        except KeyError:
            raise ValueError(f"Document {document.source_path} was registered but never rendered.") from None

    for document in registry.documents():
        url = registry.permalink_for(document)
        claim(
            PlannedPage(
                url_path=url,
                output_path=output_relpath(url),
                kind=PageKind.DOCUMENT,
                owner=document.source_path,
                content=layout.document_page(rendered_for(document)),
            )
        )

    posts = [rendered_for(document) for document in registry.all_posts()]
    urls = index_urls(len(posts), config.index_page_size)
    size = config.index_page_size
    for number, url in enumerate(urls):
        chunk = posts[number * size : (number + 1) * size]
        previous_url = urls[number - 1] if number > 0 else None
        next_url = urls[number + 1] if number + 1 < len(urls) else None
        heading = "Latest posts" if number == 0 else f"Posts, page {number + 1}"
        claim(
            PlannedPage(
                url_path=url,
                output_path=output_relpath(url),
                kind=PageKind.INDEX,
                owner=f"index page {number + 1}",
                content=layout.listing_page(
                    heading,
                    [(registry.permalink_for(item.document), item) for item in chunk],
                    previous_url=previous_url,
                    next_url=next_url,
                ),
            )
        )

    for name in registry.categories():
        members = [rendered_for(document) for document in registry.by_category(name)]
        if not members:
            continue
        url = categories[name]
        claim(
            PlannedPage(
                url_path=url,
                output_path=output_relpath(url),
                kind=PageKind.CATEGORY,
                owner=f"category '{name}'",
                content=layout.listing_page(
                    f"Category: {name}",
                    [(registry.permalink_for(item.document), item) for item in members],
                ),
            )
        )

    feeds = render_feeds(config, posts, lambda item: registry.permalink_for(item.document))
    for url, content in feeds.items():
        claim(
            PlannedPage(
                url_path=url,
                output_path=output_relpath(url),
                kind=PageKind.FEED,
                owner=f"feed {url}",
                content=content,
            )
        )

    for asset in registry.assets():
        claim(_asset_page(asset))

    logger.info("Planned %d output file(s)", len(plan))
    return plan


def emit_site(plan: SitePlan, output_dir: Path) -> list[Path]:
    """Write every planned output under ``output_dir``."""
    output_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for page in plan.pages:
        destination = output_dir / page.output_path
        destination.parent.mkdir(parents=True, exist_ok=True)
        if page.source is not None:
            shutil.copy2(page.source, destination)
        else:
            destination.write_text(page.content, encoding="utf-8")
        written.append(destination)
    logger.info("Wrote %d file(s) to %s", len(written), output_dir)
    return written


def reset_directory(path: Path) -> None:
    """Remove a directory and recreate it empty."""
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)


def _asset_page(asset: StaticAsset) -> PlannedPage:
    return PlannedPage(
        url_path=asset.url_path,
        output_path=output_relpath(asset.url_path),
        kind=PageKind.ASSET,
        owner=asset.source.as_posix(),
        source=asset.source,
    )


class PageLayout:
    """Render page chrome around document bodies and post listings."""

    def __init__(
        self,
        config: Config,
        *,
        with_feeds: bool = False,
        category_links: dict[str, str] | None = None,
    ) -> None:
        self._config = config
        self._category_links = category_links or {}
        self._site_title = config.display_title
        self._with_feeds = with_feeds

    def document_page(self, rendered: RenderedDocument) -> str:
        document = rendered.document
        header = [f'  <h1 class="post-title">{html.escape(document.title)}</h1>']
        if document.is_post:
            header.append(f"  {self._post_meta(document)}")
        parts = [
            f'<article class="{document.kind.value}">',
            "<header>",
            *header,
            "</header>",
            '<div class="post-body">',
            rendered.html,
            "</div>",
            "</article>",
        ]
        return self._wrap(document.title, "\n".join(parts))

    def listing_page(
        self,
        heading: str,
        entries: Sequence[tuple[str, RenderedDocument]],
        *,
        previous_url: str | None = None,
        next_url: str | None = None,
    ) -> str:
        parts = [f'<h1 class="listing-title">{html.escape(heading)}</h1>']
        if not entries:
            parts.append('<p class="listing-empty">No posts yet.</p>')
        else:
            parts.append('<ul class="post-list">')
            for url, rendered in entries:
                document = rendered.document
                parts.append("  <li>")
                parts.append(f'    <a class="post-link" href="{html.escape(url)}">{html.escape(document.title)}</a>')
                parts.append(f"    {self._post_meta(document)}")
                if rendered.excerpt:
                    parts.append(f'    <p class="post-excerpt">{html.escape(rendered.excerpt)}</p>')
                parts.append("  </li>")
            parts.append("</ul>")

        if previous_url or next_url:
            parts.append('<nav class="pagination">')
            if previous_url:
                parts.append(f'  <a class="pagination__newer" href="{html.escape(previous_url)}">Newer posts</a>')
            if next_url:
                parts.append(f'  <a class="pagination__older" href="{html.escape(next_url)}">Older posts</a>')
            parts.append("</nav>")
        return self._wrap(heading, "\n".join(parts))

    def _post_meta(self, document: Document) -> str:
        pieces: list[str] = []
        if document.date is not None:
            stamp = document.date
            label = f"{stamp:%b} {stamp.day}, {stamp:%Y}"
            pieces.append(f'<time datetime="{stamp.isoformat()}">{label}</time>')
        for name in document.categories:
            url = self._category_links.get(name) or category_urls(self._config, [name])[name]
            href = html.escape(url)
            pieces.append(f'<a class="category-link" href="{href}">{html.escape(name)}</a>')
        return f'<p class="post-meta">{" ".join(pieces)}</p>'

    def _wrap(self, title: str, main: str) -> str:
        site_title = html.escape(self._site_title)
        page_title = html.escape(title)
        head_title = site_title if title == self._site_title else f"{page_title} - {site_title}"
        feed_links: list[str] = []
        if self._with_feeds:
            feed_links = [
                f'  <link rel="alternate" type="application/rss+xml" href="{RSS_PATH}" title="{site_title}" />',
                f'  <link rel="alternate" type="application/atom+xml" href="{ATOM_PATH}" title="{site_title}" />',
            ]
        parts = [
            "<!DOCTYPE html>",
            '<html lang="en">',
            "<head>",
            '  <meta charset="utf-8" />',
            '  <meta name="viewport" content="width=device-width, initial-scale=1" />',
            f"  <title>{head_title}</title>",
            *feed_links,
            "</head>",
            "<body>",
            '<header class="site-header">',
            f'  <a class="site-title" href="/">{site_title}</a>',
            "</header>",
            '<main class="site-main">',
            main,
            "</main>",
            "</body>",
            "</html>",
        ]
        return "\n".join(parts) + "\n"
