from __future__ import annotations

from itertools import permutations
from pathlib import Path

import pytest

from postwright.content import Document, parse_document
from postwright.errors import DuplicateIdentifier
from postwright.registry import ContentRegistry, StaticAsset, index_assets


def _post(
    name: str,
    title: str,
    date: str,
    *,
    categories: str = "",
    permalink: str | None = None,
) -> Document:
    lines = ["---", "layout: post", f'title: "{title}"', f"date: {date}"]
    if categories:
        lines.append(f"categories: {categories}")
    if permalink:
        lines.append(f"permalink: {permalink}")
    lines.extend(["---", "Body."])
    return parse_document("\n".join(lines) + "\n", source_path=f"content/_posts/{name}.md")


def _page(name: str, title: str, *, permalink: str | None = None) -> Document:
    header = f"---\nlayout: page\ntitle: {title}\n"
    if permalink:
        header += f"permalink: {permalink}\n"
    return parse_document(header + "---\nPage.\n", source_path=f"content/{name}.md")


def test_same_day_posts_with_similar_titles_get_distinct_permalinks() -> None:
    first = _post(
        "2022-01-11-a",
        "Simulate geolocation with Capybara and Headless Chrome",
        "2022-01-11 10:00:00 +0000",
    )
    second = _post(
        "2022-01-11-b",
        "Simulate geolocation with Capybara and Chrome headless",
        "2022-01-11 10:00:00 +0000",
    )
    registry = ContentRegistry()

    first_key = registry.register(first)
    second_key = registry.register(second)

    assert first.slug != second.slug
    assert first_key == "/2022/01/11/simulate-geolocation-with-capybara-and-headless-chrome/"
    assert second_key == "/2022/01/11/simulate-geolocation-with-capybara-and-chrome-headless/"
    assert len(registry) == 2


def test_explicit_permalink_clash_raises_and_leaves_registry_unchanged() -> None:
    first = _post("a", "Headless Chrome", "2022-01-11 10:00:00 +0000", categories="ruby", permalink="/geo/")
    second = _post("b", "Chrome headless", "2022-01-11 11:00:00 +0000", categories="ruby", permalink="/geo")
    registry = ContentRegistry()
    registry.register(first)

    with pytest.raises(DuplicateIdentifier) as excinfo:
        registry.register(second)

    assert excinfo.value.identifier == "/geo/"
    assert excinfo.value.existing_path == first.source_path
    assert excinfo.value.source_path == second.source_path
    assert len(registry) == 1
    assert list(registry.all_posts()) == [first]
    assert list(registry.by_category("ruby")) == [first]
    assert registry.resolve("/geo/") is first


def test_registering_the_same_source_twice_is_rejected() -> None:
    document = _page("about", "About")
    registry = ContentRegistry()
    registry.register(document)

    with pytest.raises(DuplicateIdentifier):
        registry.register(document)
    assert len(registry) == 1


def test_ordering_is_newest_first_regardless_of_registration_order() -> None:
    documents = [
        _post("old", "Old", "2020-01-01 00:00:00 +0000", categories="news"),
        _post("mid", "Mid", "2021-06-01 12:00:00 +0200", categories="news misc"),
        _post("new", "New", "2022-01-01 00:00:00 -0500", categories="news"),
    ]
    expected = ["New", "Mid", "Old"]

    for order in permutations(documents):
        registry = ContentRegistry()
        registry.register_all(order)
        assert [doc.title for doc in registry.all_posts()] == expected
        assert [doc.title for doc in registry.by_category("news")] == expected


def test_equal_dates_fall_back_to_source_path() -> None:
    b = _post("b", "Bravo", "2022-03-03 08:00:00 +0000")
    a = _post("a", "Alpha", "2022-03-03 09:00:00 +0100")
    registry = ContentRegistry()
    registry.register_all([b, a])

    assert [doc.title for doc in registry.all_posts()] == ["Alpha", "Bravo"]


def test_by_category_is_case_insensitive_and_unknown_is_empty() -> None:
    registry = ContentRegistry()
    registry.register(_post("p", "Post", "2022-01-01 00:00:00 +0000", categories="Python"))

    assert [doc.title for doc in registry.by_category("PYTHON")] == ["Post"]
    assert list(registry.by_category("missing")) == []
    assert registry.categories() == ["python"]


def test_iteration_uses_a_snapshot() -> None:
    registry = ContentRegistry()
    registry.register(_post("one", "One", "2022-01-01 00:00:00 +0000"))
    posts = registry.all_posts()
    first = next(posts)

    registry.register(_post("two", "Two", "2023-01-01 00:00:00 +0000"))

    assert first.title == "One"
    assert list(posts) == []


def test_page_permalinks_follow_source_stem() -> None:
    registry = ContentRegistry()
    about = _page("about-me", "About")
    home = _page("index", "Home")
    contact = _page("contact", "Contact", permalink="reach-us/")

    assert registry.register(about) == "/about-me/"
    assert registry.register(home) == "/"
    assert registry.register(contact) == "/reach-us/"
    assert [doc.title for doc in registry.pages()] == ["Home", "About", "Contact"]
    assert "/about-me/index.html" in registry
    assert "/nowhere/" not in registry


def test_post_permalink_pattern_is_configurable() -> None:
    registry = ContentRegistry(post_permalink="/{categories}/{slug}.html")
    post = _post("x", "Hello World", "2021-02-03 04:05:06 +0000", categories="Dev Tools")

    assert registry.register(post) == "/dev/tools/2021-02-03-hello-world.html"
    assert registry.permalink_for(post) == "/dev/tools/2021-02-03-hello-world.html"


def test_resolve_finds_documents_and_assets(tmp_path: Path) -> None:
    static = tmp_path / "assets"
    (static / "img").mkdir(parents=True)
    (static / "img" / "logo.png").write_bytes(b"png")
    assets = index_assets(static, "/assets/")
    registry = ContentRegistry(assets=assets)
    page = _page("about", "About")
    registry.register(page)

    assert registry.resolve("/about") is page
    assert registry.resolve("/about/#team") is page
    resolved = registry.resolve("/assets/img/logo.png")
    assert isinstance(resolved, StaticAsset)
    assert resolved.source == static / "img" / "logo.png"
    assert registry.resolve("/assets/img/missing.png") is None
    assert [asset.url_path for asset in registry.assets()] == ["/assets/img/logo.png"]


def test_index_assets_handles_missing_directory(tmp_path: Path) -> None:
    assert index_assets(tmp_path / "nope", "/assets/") == {}
