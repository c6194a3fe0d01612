"""Build reporting helpers for Postwright."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from pydantic import BaseModel, Field

from .links import LinkReport
from .registry import ContentRegistry
from .rendering import RenderedDocument
from .site import PageKind, SitePlan

REPORT_FILENAME = "build-report.json"


class DocumentStats(BaseModel):
    total: int
    posts: int
    pages: int
    categories: int
    words: int = 0


class LinkStats(BaseModel):
    checked: int
    broken: int
    missing_assets: int
    missing_documents: int


class OutputStats(BaseModel):
    files: int
    documents: int
    listings: int
    feeds: int
    assets: int


class BuildReport(BaseModel):
    project: str
    generated_at: datetime
    duration_seconds: float
    strict: bool
    documents: DocumentStats
    links: LinkStats
    outputs: OutputStats
    warnings: list[str] = Field(default_factory=list)


def build_document_stats(
    registry: ContentRegistry,
    rendered: Iterable[RenderedDocument] = (),
) -> DocumentStats:
    posts = sum(1 for _ in registry.all_posts())
    return DocumentStats(
        total=len(registry),
        posts=posts,
        pages=sum(1 for _ in registry.pages()),
        categories=len(registry.categories()),
        words=sum(item.word_count for item in rendered),
    )


def build_link_stats(report: LinkReport) -> LinkStats:
    return LinkStats(
        checked=report.checked,
        broken=len(report.broken),
        missing_assets=report.missing_assets,
        missing_documents=report.missing_documents,
    )


def build_output_stats(plan: SitePlan) -> OutputStats:
    return OutputStats(
        files=len(plan),
        documents=len(plan.of_kind(PageKind.DOCUMENT)),
        listings=len(plan.of_kind(PageKind.INDEX)) + len(plan.of_kind(PageKind.CATEGORY)),
        feeds=len(plan.of_kind(PageKind.FEED)),
        assets=len(plan.of_kind(PageKind.ASSET)),
    )


def assemble_report(
    *,
    project: str,
    duration_seconds: float,
    strict: bool,
    registry: ContentRegistry,
    links: LinkReport,
    plan: SitePlan,
    rendered: Iterable[RenderedDocument] = (),
) -> BuildReport:
    warnings = [
        f"{issue.location}: broken reference {issue.reference} ({issue.reason.value})" for issue in links.broken
    ]
    return BuildReport(
        project=project,
        generated_at=datetime.now(timezone.utc),
        duration_seconds=duration_seconds,
        strict=strict,
        documents=build_document_stats(registry, rendered),
        links=build_link_stats(links),
        outputs=build_output_stats(plan),
        warnings=warnings,
    )


def write_report(report: BuildReport, output_dir: Path) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    target = output_dir / REPORT_FILENAME
    with target.open("w", encoding="utf-8") as handle:
        json.dump(report.model_dump(mode="json"), handle, ensure_ascii=False, indent=2)
    return target
