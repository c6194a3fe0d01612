from __future__ import annotations

from pathlib import Path

import pytest

from postwright.config import Config, FeedConfig
from postwright.content import Document, parse_document
from postwright.errors import OutputPathCollision
from postwright.registry import ContentRegistry, index_assets
from postwright.rendering import render_document
from postwright.site import PageKind, category_urls, emit_site, generated_paths, index_urls, plan_site


def _post(name: str, day: int, categories: str = "", permalink: str | None = None) -> Document:
    header = f"---\nlayout: post\ntitle: Post {name}\ndate: 2023-04-{day:02d} 12:00:00 +0000\n"
    if categories:
        header += f"categories: {categories}\n"
    if permalink:
        header += f"permalink: {permalink}\n"
    return parse_document(header + f"---\nBody of {name}.\n", source_path=f"content/_posts/{name}.md")


def _page(name: str, permalink: str | None = None) -> Document:
    header = f"---\nlayout: page\ntitle: Page {name}\n"
    if permalink:
        header += f"permalink: {permalink}\n"
    return parse_document(header + "---\nPage body.\n", source_path=f"content/{name}.md")


def _plan(config: Config, *documents: Document, registry: ContentRegistry | None = None):
    registry = registry or ContentRegistry(post_permalink=config.post_permalink)
    registry.register_all(documents)
    rendered = [render_document(document) for document in registry.documents()]
    return registry, plan_site(registry, rendered, config=config)


def test_plan_contains_documents_index_categories_and_feeds() -> None:
    config = Config(project_name="Test Blog")
    registry, plan = _plan(config, _post("a", 1, "python"), _post("b", 2, "python web"), _page("about"))

    urls = {page.url_path for page in plan.pages}
    assert "/2023/04/01/post-a/" in urls
    assert "/about/" in urls
    assert {"/", "/categories/python/", "/categories/web/", "/feed.xml", "/atom.xml"} <= urls
    assert len(plan.of_kind(PageKind.DOCUMENT)) == 3
    assert len(plan.of_kind(PageKind.CATEGORY)) == 2
    assert plan.get("/about/index.html") is not None
    assert plan.get("/about").output_path == Path("about/index.html")

    index = plan.get("/").content
    assert index.index("Post b") < index.index("Post a")
    assert "application/rss+xml" in index

    assert set(generated_paths(registry, config)) == {
        page.url_path for page in plan.pages if page.kind in {PageKind.INDEX, PageKind.CATEGORY, PageKind.FEED}
    }


def test_document_page_shows_date_and_category_links() -> None:
    config = Config(site_title="Notes")
    _, plan = _plan(config, _post("a", 9, "dev tools"))

    html = plan.get("/2023/04/09/post-a/").content
    assert "<title>Post a - Notes</title>" in html
    assert '<time datetime="2023-04-09T12:00:00+00:00">Apr 9, 2023</time>' in html
    assert 'href="/categories/dev/"' in html
    assert 'href="/categories/tools/"' in html


def test_only_categories_with_posts_get_pages() -> None:
    config = Config()
    _, plan = _plan(config, _post("a", 1), _page("about"))

    assert plan.of_kind(PageKind.CATEGORY) == []


def test_index_is_paginated() -> None:
    config = Config(index_page_size=2)
    posts = [_post(str(day), day) for day in range(1, 6)]
    _, plan = _plan(config, *posts)

    assert [page.url_path for page in plan.of_kind(PageKind.INDEX)] == ["/", "/page/2/", "/page/3/"]
    assert plan.get("/page/2/").output_path == Path("page/2/index.html")
    second = plan.get("/page/2/").content
    assert 'href="/"' in second and 'href="/page/3/"' in second
    assert "Post 3" in second and "Post 2" in second
    assert index_urls(0, 10) == ["/"]


def test_feeds_are_skipped_when_disabled_or_without_posts() -> None:
    _, disabled = _plan(Config(feeds=FeedConfig(enabled=False)), _post("a", 1))
    _, pages_only = _plan(Config(), _page("about"))

    assert disabled.of_kind(PageKind.FEED) == []
    assert pages_only.of_kind(PageKind.FEED) == []
    assert "application/rss+xml" not in pages_only.get("/").content


def test_document_colliding_with_category_page_is_fatal() -> None:
    config = Config()
    post = _post("a", 1, "python")
    squatter = _page("squatter", permalink="/categories/python/")

    with pytest.raises(OutputPathCollision) as excinfo:
        _plan(config, post, squatter)

    assert excinfo.value.output_path == "categories/python/index.html"
    assert "content/squatter.md" in excinfo.value.owners


def test_index_page_source_collides_with_generated_index() -> None:
    with pytest.raises(OutputPathCollision):
        _plan(Config(), _page("index"))


def test_categories_that_slugify_alike_get_distinct_pages() -> None:
    config = Config()
    registry, plan = _plan(config, _post("a", 1, "c++"), _post("b", 2, "c#"), _post("c", 3, "c"))

    assert category_urls(config, registry.categories()) == {
        "c": "/categories/c/",
        "c#": "/categories/c-2/",
        "c++": "/categories/c-3/",
    }
    assert "Category: c#" in plan.get("/categories/c-2/").content
    assert 'href="/categories/c-3/"' in plan.get("/2023/04/01/post-a/").content


def test_category_suffix_skips_slugs_taken_by_real_categories() -> None:
    urls = category_urls(Config(), ["c 2", "c", "c++"])

    assert urls == {"c": "/categories/c/", "c 2": "/categories/c-2/", "c++": "/categories/c-3/"}


def test_emit_writes_pages_and_copies_assets(tmp_path: Path) -> None:
    static = tmp_path / "static"
    static.mkdir()
    (static / "style.css").write_text("body {}", encoding="utf-8")
    config = Config(static_dir=static, output_dir=tmp_path / "site")
    registry = ContentRegistry(assets=index_assets(static, config.asset_prefix))
    _, plan = _plan(config, _post("a", 1), _page("about"), registry=registry)

    written = emit_site(plan, config.output_dir)

    assert len(written) == len(plan)
    assert (config.output_dir / "index.html").exists()
    assert (config.output_dir / "about" / "index.html").read_text(encoding="utf-8").startswith("<!DOCTYPE html>")
    assert (config.output_dir / "assets" / "style.css").read_text(encoding="utf-8") == "body {}"
    assert (config.output_dir / "feed.xml").exists()
