"""Syndication feed rendering for the newest posts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import format_datetime as format_rfc2822
from html import escape
from typing import Callable, Iterable, Sequence

from .config import Config
from .rendering import RenderedDocument

RSS_PATH = "/feed.xml"
ATOM_PATH = "/atom.xml"


@dataclass(slots=True)
class FeedEntry:
    """Normalized feed entry derived from a rendered post."""

    title: str
    url: str
    summary: str | None
    categories: list[str]
    published: datetime

    @property
    def identifier(self) -> str:
        return self.url


def feed_paths(config: Config, has_posts: bool) -> list[str]:
    """URL paths of the feeds a build will produce."""
    if not config.feeds.enabled or not has_posts:
        return []
    return [RSS_PATH, ATOM_PATH]


def render_feeds(
    config: Config,
    posts: Sequence[RenderedDocument],
    permalink_for: Callable[[RenderedDocument], str],
) -> dict[str, str]:
    """Render RSS and Atom documents keyed by URL path.

    ``posts`` must already be ordered newest first.
    """
    if not feed_paths(config, bool(posts)):
        return {}

    base_url = config.feeds.base_url
    entries = _collect_entries(posts[: config.feeds.limit], permalink_for, base_url)
    metadata = {
        "title": config.display_title,
        "description": config.feeds.description,
        "home_url": _make_absolute("/", base_url),
        "feed_atom": _make_absolute(ATOM_PATH, base_url),
    }
    updated = entries[0].published
    return {
        RSS_PATH: _render_rss(metadata, entries, updated),
        ATOM_PATH: _render_atom(metadata, entries, updated),
    }


def _collect_entries(
    posts: Iterable[RenderedDocument],
    permalink_for: Callable[[RenderedDocument], str],
    base_url: str | None,
) -> list[FeedEntry]:
    entries: list[FeedEntry] = []
    for rendered in posts:
        document = rendered.document
        if document.date is None:
            continue
        entries.append(
            FeedEntry(
                title=document.title,
                url=_make_absolute(permalink_for(rendered), base_url),
                summary=rendered.excerpt,
                categories=list(document.categories),
                published=document.date,
            )
        )
    return entries


def _render_rss(metadata: dict[str, str], entries: Sequence[FeedEntry], updated: datetime) -> str:
    parts = [
        '<?xml version="1.0" encoding="utf-8"?>',
        "<rss version=\"2.0\">",
        "  <channel>",
        f"    <title>{escape(metadata['title'])}</title>",
        f"    <link>{escape(metadata['home_url'])}</link>",
        f"    <description>{escape(metadata['description'])}</description>",
        f"    <lastBuildDate>{_format_rfc2822(updated)}</lastBuildDate>",
    ]

    for entry in entries:
        parts.extend(
            [
                "    <item>",
                f"      <title>{escape(entry.title)}</title>",
                f"      <link>{escape(entry.url)}</link>",
                f"      <guid>{escape(entry.identifier)}</guid>",
                f"      <pubDate>{_format_rfc2822(entry.published)}</pubDate>",
            ]
        )
        if entry.summary:
            parts.append(f"      <description>{escape(entry.summary)}</description>")
        for category in entry.categories:
            parts.append(f"      <category>{escape(category)}</category>")
        parts.append("    </item>")

    parts.extend(["  </channel>", "</rss>"])
    return "\n".join(parts) + "\n"


def _render_atom(metadata: dict[str, str], entries: Sequence[FeedEntry], updated: datetime) -> str:
    parts = [
        '<?xml version="1.0" encoding="utf-8"?>',
        '<feed xmlns="http://www.w3.org/2005/Atom">',
        f"  <title>{escape(metadata['title'])}</title>",
        f'  <link href="{escape(metadata["home_url"])}" rel="alternate" />',
        f'  <link href="{escape(metadata["feed_atom"])}" rel="self" />',
        f"  <updated>{_format_iso(updated)}</updated>",
        f"  <id>{escape(metadata['home_url'])}</id>",
    ]
    if metadata.get("description"):
        parts.append(f"  <subtitle>{escape(metadata['description'])}</subtitle>")

    for entry in entries:
        parts.extend(
            [
                "  <entry>",
                f"    <title>{escape(entry.title)}</title>",
                f'    <link href="{escape(entry.url)}" />',
                f"    <id>{escape(entry.identifier)}</id>",
                f"    <updated>{_format_iso(entry.published)}</updated>",
                f"    <published>{_format_iso(entry.published)}</published>",
            ]
        )
        if entry.summary:
            parts.append(f"    <summary>{escape(entry.summary)}</summary>")
        for category in entry.categories:
            parts.append(f'    <category term="{escape(category)}" />')
        parts.append("  </entry>")

    parts.append("</feed>")
    return "\n".join(parts) + "\n"


def _format_rfc2822(value: datetime) -> str:
    return format_rfc2822(value.astimezone(timezone.utc))


def _format_iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _make_absolute(path: str, base_url: str | None) -> str:
    normalized = f"/{path.lstrip('/')}"
    if base_url:
        return f"{base_url}{normalized}"
    return normalized
