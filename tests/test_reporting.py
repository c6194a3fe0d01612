import json
from pathlib import Path

from postwright.config import Config
from postwright.content import Document, parse_document
from postwright.links import validate_links
from postwright.registry import ContentRegistry
from postwright.rendering import render_document
from postwright.reporting import (
    REPORT_FILENAME,
    assemble_report,
    build_document_stats,
    build_link_stats,
    build_output_stats,
    write_report,
)
from postwright.site import plan_site


def _doc(name: str, layout: str, body: str = "Body", categories: str = "") -> Document:
    header = f"---\nlayout: {layout}\ntitle: {name.title()}\n"
    if layout == "post":
        header += "date: 2024-05-01 10:00:00 +0000\n"
    if categories:
        header += f"categories: {categories}\n"
    return parse_document(f"{header}---\n{body}\n", source_path=f"{name}.md")


def _registry() -> ContentRegistry:
    registry = ContentRegistry()
    registry.register_all(
        [
            _doc("first", "post", categories="news"),
            _doc("second", "post", body="[gone](/gone/) ![x](/assets/x.png)", categories="news misc"),
            _doc("about", "page"),
        ]
    )
    return registry


def test_build_document_stats_counts_kinds() -> None:
    stats = build_document_stats(_registry())

    assert stats.total == 3
    assert stats.posts == 2
    assert stats.pages == 1
    assert stats.categories == 2


def test_document_stats_sum_rendered_word_counts() -> None:
    registry = ContentRegistry()
    registry.register_all([_doc("first", "post", body="One two three"), _doc("about", "page", body="# Four\n\nfive")])
    rendered = [render_document(doc) for doc in registry.documents()]

    assert build_document_stats(registry).words == 0
    assert build_document_stats(registry, rendered).words == 5


def test_build_link_stats_splits_problems() -> None:
    stats = build_link_stats(validate_links(_registry()))

    assert stats.checked == 2
    assert stats.broken == 2
    assert stats.missing_assets == 1
    assert stats.missing_documents == 1


def test_write_report_serializes_json(tmp_path: Path) -> None:
    config = Config(project_name="Report Blog")
    registry = _registry()
    links = validate_links(registry)
    plan = plan_site(registry, [render_document(doc) for doc in registry.documents()], config=config)
    outputs = build_output_stats(plan)

    report = assemble_report(
        project=config.project_name,
        duration_seconds=0.5,
        strict=False,
        registry=registry,
        links=links,
        plan=plan,
        rendered=[render_document(doc) for doc in registry.documents()],
    )
    path = write_report(report, tmp_path / "site")

    assert path == tmp_path / "site" / REPORT_FILENAME
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["project"] == "Report Blog"
    assert payload["duration_seconds"] == 0.5
    assert payload["outputs"]["documents"] == 3
    assert payload["outputs"]["feeds"] == 2
    assert payload["outputs"] == outputs.model_dump()
    assert len(payload["warnings"]) == 2
    assert payload["documents"]["words"] == 4
    assert payload["generated_at"].endswith("Z") or payload["generated_at"].endswith("+00:00")
