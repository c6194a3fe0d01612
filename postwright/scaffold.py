"""Utilities for scaffolding new posts and pages."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

import yaml

from .config import Config
from .content.models import normalize_categories, normalize_permalink
from .utils import slugify


class ScaffoldError(RuntimeError):
    """Raised when scaffolding cannot continue."""


@dataclass(slots=True)
class ScaffoldResult:
    """Details about filesystem writes performed during scaffolding."""

    created: list[Path] = field(default_factory=list)
    updated: list[Path] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    def record(self, path: Path, existed: bool) -> None:
        if existed:
            self.updated.append(path)
        else:
            self.created.append(path)


def normalize_slug(raw: str) -> str:
    """Convert a title into a filesystem-safe slug."""
    slug = slugify(raw)
    if not slug:
        raise ScaffoldError("Unable to derive a slug from the title. Include letters or numbers.")
    return slug


def scaffold_post(
    config: Config,
    title: str,
    *,
    date: datetime | None = None,
    categories: Iterable[str] = (),
    force: bool = False,
) -> ScaffoldResult:
    """Write ``<posts_dir>/<YYYY-MM-DD-slug>.md`` with post front matter."""
    title = _require_title(title)
    slug = normalize_slug(title)
    stamp = _aware(date)
    try:
        names = list(normalize_categories(list(categories)))
    except ValueError as exc:
        raise ScaffoldError(str(exc)) from exc

    header: dict[str, object] = {
        "layout": config.post_layouts[0],
        "title": title,
        "date": stamp.strftime("%Y-%m-%d %H:%M:%S %z"),
        "categories": names,
    }
    path = config.posts_dir / f"{stamp:%Y-%m-%d}-{slug}.md"

    result = ScaffoldResult()
    existed = _write_text(path, _render_document(header, "Write your post here.\n"), force=force)
    result.record(path, existed)
    if not names:
        result.notes.append("No categories set; the post will only appear on the index.")
    return result


def scaffold_page(
    config: Config,
    title: str,
    *,
    permalink: str | None = None,
    force: bool = False,
) -> ScaffoldResult:
    """Write ``<content_dir>/<slug>.md`` with page front matter."""
    title = _require_title(title)
    slug = normalize_slug(title)
    header: dict[str, object] = {"layout": "page", "title": title}
    if permalink:
        try:
            header["permalink"] = normalize_permalink(permalink)
        except ValueError as exc:
            raise ScaffoldError(str(exc)) from exc
    if header["layout"] in config.post_layouts:
        raise ScaffoldError("'page' is configured as a post layout; pages cannot be scaffolded.")

    path = config.content_dir / f"{slug}.md"
    result = ScaffoldResult()
    existed = _write_text(path, _render_document(header, "Page content goes here.\n"), force=force)
    result.record(path, existed)
    return result


def _require_title(title: str) -> str:
    text = title.strip()
    if not text:
        raise ScaffoldError("A title is required.")
    return text


def _aware(value: datetime | None) -> datetime:
    if value is None:
        return datetime.now(timezone.utc).replace(microsecond=0)
    if value.tzinfo is None:
        return value.astimezone()
    return value


def _render_document(header: dict[str, object], body: str) -> str:
    front_matter = yaml.safe_dump(header, sort_keys=False, allow_unicode=True, default_flow_style=None)
    return f"---\n{front_matter}---\n\n{body}"


def _write_text(path: Path, content: str, *, force: bool) -> bool:
    path.parent.mkdir(parents=True, exist_ok=True)
    existed = path.exists()
    if existed and not force:
        raise ScaffoldError(f"Path already exists: {path}")
    path.write_text(content, encoding="utf-8")
    return existed
