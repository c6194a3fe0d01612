"""Static checks for asset references and internal cross-links in document bodies."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from html.parser import HTMLParser
from typing import Iterable, Iterator, List, Tuple
from urllib.parse import unquote, urlsplit

from markdown_it.token import Token

from .content import Document
from .errors import BrokenReferencesError
from .registry import ContentRegistry
from .rendering import parse_tokens
from .utils import normalize_url_path

logger = logging.getLogger(__name__)


class ReferenceProblem(str, Enum):
    """Why a reference failed to resolve."""

    ASSET_NOT_FOUND = "asset-not-found"
    DOCUMENT_NOT_FOUND = "document-not-found"


@dataclass(frozen=True, slots=True)
class BrokenReference:
    """A reference in ``document`` that the registry could not resolve."""

    document: Document
    reference: str
    reason: ReferenceProblem
    line: int | None = None

    @property
    def location(self) -> str:
        if self.line is None:
            return self.document.source_path
        return f"{self.document.source_path}:{self.line}"


@dataclass(slots=True)
class LinkReport:
    """Aggregate reference check results for a registry."""

    broken: list[BrokenReference] = field(default_factory=list)
    checked: int = 0
    documents: int = 0

    def add(self, issue: BrokenReference) -> None:
        self.broken.append(issue)

    @property
    def missing_assets(self) -> int:
        return sum(1 for issue in self.broken if issue.reason is ReferenceProblem.ASSET_NOT_FOUND)

    @property
    def missing_documents(self) -> int:
        return sum(1 for issue in self.broken if issue.reason is ReferenceProblem.DOCUMENT_NOT_FOUND)

    def raise_if_strict(self, strict: bool) -> None:
        """Promote broken references to a fatal error in strict mode."""
        if strict and self.broken:
            raise BrokenReferencesError(len(self.broken))


class _ReferenceCollector(HTMLParser):
    """Collect href/src references from raw HTML embedded in markdown."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.references: list[str] = []

    def handle_starttag(self, tag: str, attrs: List[Tuple[str, str | None]]) -> None:
        attr_map = {name: value for name, value in attrs if value is not None}
        if tag in {"a", "link"} and "href" in attr_map:
            self.references.append(attr_map["href"])
        if tag in {"img", "script", "iframe", "audio", "video", "source", "track", "embed"}:
            src = attr_map.get("src")
            if src:
                self.references.append(src)
        if tag in {"img", "source"} and "srcset" in attr_map:
            self.references.extend(_srcset_candidates(attr_map["srcset"]))


def validate_links(
    registry: ContentRegistry,
    *,
    asset_prefix: str = "/assets/",
    known_paths: Iterable[str] = (),
) -> LinkReport:
    """Check every registered document; never raises for broken references.

    ``known_paths`` lists generated pages (listings, feeds) that are valid
    link targets even though no document owns them.
    """
    generated = {normalize_url_path(path) for path in known_paths}
    report = LinkReport()
    for document in registry.documents():
        report.documents += 1
        for reference, line in iter_references(document):
            report.checked += 1
            problem = classify_reference(reference, registry, asset_prefix=asset_prefix, generated=generated)
            if problem is None:
                continue
            issue = BrokenReference(document=document, reference=reference, reason=problem, line=line)
            logger.warning("Broken reference %s in %s (%s)", reference, issue.location, problem.value)
            report.add(issue)
    return report


def classify_reference(
    reference: str,
    registry: ContentRegistry,
    *,
    asset_prefix: str = "/assets/",
    generated: set[str] | None = None,
) -> ReferenceProblem | None:
    """Return the problem with a checkable reference, or ``None`` if it resolves."""
    path = unquote(urlsplit(reference.strip()).path)
    if registry.resolve(path) is not None:
        return None
    if generated and normalize_url_path(path) in generated:
        return None
    if path.startswith(asset_prefix):
        return ReferenceProblem.ASSET_NOT_FOUND
    return ReferenceProblem.DOCUMENT_NOT_FOUND


def iter_references(document: Document) -> Iterator[tuple[str, int | None]]:
    """Yield root-relative references in the body with their source line."""
    if not document.body.strip():
        return
    for token in parse_tokens(document.body):
        line = document.body_line + token.map[0] if token.map else None
        for reference in _token_references(token):
            if _is_checkable(reference):
                yield reference.strip(), line


def _token_references(token: Token) -> Iterator[str]:
    if token.type == "html_block":
        yield from _html_references(token.content)
        return
    if token.type != "inline":
        return
    for child in token.children or []:
        if child.type == "link_open":
            href = child.attrGet("href")
            if href:
                yield str(href)
        elif child.type == "image":
            src = child.attrGet("src")
            if src:
                yield str(src)
        elif child.type == "html_inline":
            yield from _html_references(child.content)


def _html_references(markup: str) -> list[str]:
    parser = _ReferenceCollector()
    parser.feed(markup)
    parser.close()
    return parser.references


def _srcset_candidates(srcset: str) -> Iterator[str]:
    for candidate in srcset.split(","):
        url = candidate.strip().split(" ", 1)[0]
        if url:
            yield url


def _is_checkable(reference: str) -> bool:
    stripped = reference.strip()
    if not stripped:
        return False
    # Ignore templating placeholders (e.g., Liquid) that aren't concrete paths yet.
    if "{{" in stripped or "{%" in stripped:
        return False

    parsed = urlsplit(stripped)
    if parsed.scheme:
        # External (http, https, mailto, data, ...) links are not checked.
        return False
    if parsed.netloc:
        # Protocol-relative URL (e.g., //cdn.example.com)
        return False
    if not parsed.path:
        return False
    return parsed.path.startswith("/")
