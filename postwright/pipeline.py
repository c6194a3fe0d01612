"""Build driver tying ingestion, registration, checks, rendering, and emission together."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from .config import Config
from .content import Document
from .errors import OutputPathCollision
from .ingest import load_documents
from .links import LinkReport, validate_links
from .registry import ContentRegistry, index_assets
from .rendering import RenderedDocument, render_document
from .reporting import REPORT_FILENAME, BuildReport, assemble_report, write_report
from .site import SitePlan, emit_site, generated_paths, plan_site, reset_directory

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class BuildResult:
    """Everything a build produced, whether or not it was written to disk."""

    registry: ContentRegistry
    rendered: list[RenderedDocument]
    links: LinkReport
    plan: SitePlan
    strict: bool
    duration_seconds: float = 0.0
    written: list[Path] = field(default_factory=list)
    report: BuildReport | None = None
    report_path: Path | None = None

    @property
    def emitted(self) -> bool:
        return self.report_path is not None


def build_registry(config: Config, documents: Iterable[Document]) -> ContentRegistry:
    """Register documents and static assets; raises on the first duplicate."""
    registry = ContentRegistry(
        post_permalink=config.post_permalink,
        assets=index_assets(config.static_dir, config.asset_prefix),
    )
    registry.register_all(documents)
    logger.info(
        "Registered %d document(s) across %d categor%s",
        len(registry),
        len(registry.categories()),
        "y" if len(registry.categories()) == 1 else "ies",
    )
    return registry


def build_site(
    config: Config,
    *,
    strict: bool | None = None,
    emit: bool = True,
    clean: bool = False,
) -> BuildResult:
    """Run the full build.

    Nothing is written unless every stage succeeds. ``strict`` overrides
    ``config.strict`` for this run; ``clean`` empties the output directory
    before writing.
    """
    start = time.perf_counter()
    strict = config.strict if strict is None else strict

    with ThreadPoolExecutor(max_workers=config.workers, thread_name_prefix="postwright") as pool:
        documents = load_documents(config, executor=pool)
        registry = build_registry(config, documents)

        links_future = pool.submit(
            validate_links,
            registry,
            asset_prefix=config.asset_prefix,
            known_paths=generated_paths(registry, config),
        )
        rendered = list(pool.map(render_document, list(registry.documents())))
        links = links_future.result()

    logger.info("Checked %d reference(s); %d broken", links.checked, len(links.broken))
    links.raise_if_strict(strict)

    plan = plan_site(registry, rendered, config=config)
    reserved = plan.get(f"/{REPORT_FILENAME}")
    if reserved is not None:
        raise OutputPathCollision(REPORT_FILENAME, reserved.owner, "build report")

    result = BuildResult(registry=registry, rendered=rendered, links=links, plan=plan, strict=strict)
    if not emit:
        result.duration_seconds = time.perf_counter() - start
        return result

    if clean:
        reset_directory(config.output_dir)
    result.written = emit_site(plan, config.output_dir)
    result.duration_seconds = time.perf_counter() - start
    result.report = assemble_report(
        project=config.project_name,
        duration_seconds=result.duration_seconds,
        strict=strict,
        registry=registry,
        links=links,
        plan=plan,
        rendered=rendered,
    )
    result.report_path = write_report(result.report, config.output_dir)
    return result


def check_site(config: Config, *, strict: bool | None = None) -> BuildResult:
    """Run every build stage except writing output."""
    return build_site(config, strict=strict, emit=False)
