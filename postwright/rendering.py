"""Markdown rendering into block-level nodes and HTML."""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Iterator, Optional, Union

from markdown_it import MarkdownIt
from markdown_it.token import Token
from markdown_it.tree import SyntaxTreeNode
from mdit_py_plugins.deflist import deflist_plugin
from mdit_py_plugins.footnote import footnote_plugin
from mdit_py_plugins.tasklists import tasklists_plugin

from .content import Document
from .errors import UnterminatedCodeFence
from .utils import slugify

BLOCKQUOTE_PREFIX_RE = re.compile(r"^(?:\s*>)+\s?")
EXCERPT_LIMIT = 240


@dataclass(frozen=True, slots=True)
class Link:
    href: str
    text: str
    title: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Image:
    src: str
    alt: str
    title: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Paragraph:
    text: str
    inlines: tuple[Union[Link, Image], ...] = ()


@dataclass(frozen=True, slots=True)
class Heading:
    level: int
    text: str
    anchor: str


@dataclass(frozen=True, slots=True)
class CodeBlock:
    """Preformatted code. ``language`` is the fence tag verbatim, if any."""

    code: str
    language: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Blockquote:
    children: tuple["Node", ...]


@dataclass(frozen=True, slots=True)
class ListBlock:
    ordered: bool
    items: tuple[tuple["Node", ...], ...]
    start: Optional[int] = None


@dataclass(frozen=True, slots=True)
class ThematicBreak:
    pass


@dataclass(frozen=True, slots=True)
class Table:
    header: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...]


@dataclass(frozen=True, slots=True)
class RawHtml:
    html: str


Node = Union[Paragraph, Heading, CodeBlock, Blockquote, ListBlock, Image, ThematicBreak, Table, RawHtml]


@dataclass(frozen=True, slots=True)
class RenderedDocument:
    """Render output for one document."""

    document: Document
    nodes: tuple[Node, ...]
    html: str

    @property
    def word_count(self) -> int:
        return sum(len(text.split()) for text in _iter_text(self.nodes))

    @property
    def excerpt(self) -> str | None:
        for node in self.nodes:
            if isinstance(node, Paragraph) and node.text.strip():
                return _truncate(node.text.strip(), EXCERPT_LIMIT)
        return None


@lru_cache(maxsize=1)
def _renderer() -> MarkdownIt:
    """Configure and cache a CommonMark-compliant renderer."""
    md = MarkdownIt("commonmark", {"html": True, "typographer": True})
    md.enable("table").enable("strikethrough")
    md.use(deflist_plugin)
    md.use(footnote_plugin)
    md.use(tasklists_plugin, label=True)
    return md


def parse_tokens(body: str) -> list[Token]:
    """Token stream for a markdown body using the shared parser configuration."""
    return _renderer().parse(body, {})


def render_document(document: Document) -> RenderedDocument:
    """Render a document body; raises ``UnterminatedCodeFence`` on unclosed fences."""
    nodes, html = _render(document.body, source_path=document.source_path, first_line=document.body_line)
    return RenderedDocument(document=document, nodes=nodes, html=html)


def render_body(body: str, *, source_path: str | None = None, first_line: int = 1) -> tuple[Node, ...]:
    """Transform a markdown body into block-level nodes."""
    nodes, _ = _render(body, source_path=source_path, first_line=first_line)
    return nodes


def render_html(body: str, *, source_path: str | None = None, first_line: int = 1) -> str:
    _, html = _render(body, source_path=source_path, first_line=first_line)
    return html


def find_unterminated_fence(body: str, tokens: list[Token] | None = None) -> int | None:
    """Return the 0-based line index of an opening fence that never closes.

    markdown-it closes a dangling fence at the end of its container, so the
    last source line of every ``fence`` token must hold a real closing marker.
    """
    if tokens is None:
        tokens = parse_tokens(body)
    lines = body.splitlines()
    for token in tokens:
        if token.type != "fence" or not token.map:
            continue
        start, end = token.map
        last = min(end, len(lines)) - 1
        if last <= start or not _closes_fence(lines[start], lines[last], token.markup):
            return start
    return None


def _closes_fence(opener: str, candidate: str, marker: str) -> bool:
    column = max(BLOCKQUOTE_PREFIX_RE.sub("", opener).find(marker), 0)
    line = BLOCKQUOTE_PREFIX_RE.sub("", candidate)
    stripped = line.strip()
    indent = len(line) - len(line.lstrip())
    if indent - column >= 4:
        return False
    return len(stripped) >= len(marker) and stripped == marker[0] * len(stripped)


def _render(body: str, *, source_path: str | None, first_line: int) -> tuple[tuple[Node, ...], str]:
    if not body.strip():
        return (), ""

    md = _renderer()
    env: dict[str, Any] = {}
    tokens = md.parse(body, env)
    unclosed = find_unterminated_fence(body, tokens)
    if unclosed is not None:
        raise UnterminatedCodeFence(
            "Fenced code block is never closed.",
            source_path=source_path,
            line=first_line + unclosed,
        )
    html = md.renderer.render(tokens, md.options, env).strip()
    tree = SyntaxTreeNode(tokens)
    nodes = tuple(node for node in (_convert_block(child) for child in tree.children) if node is not None)
    return nodes, html


def _convert_block(node: SyntaxTreeNode) -> Node | None:
    kind = node.type
    if kind == "paragraph":
        inline = node.children[0] if node.children else None
        if inline is None:
            return Paragraph(text="")
        if len(inline.children) == 1 and inline.children[0].type == "image":
            return _image(inline.children[0])
        return Paragraph(text=_plain_text(inline), inlines=tuple(_collect_inlines(inline)))
    if kind == "heading":
        text = _plain_text(node)
        return Heading(level=int(node.tag[1:]), text=text, anchor=slugify(text))
    if kind == "fence":
        info = (node.info or "").strip()
        return CodeBlock(code=node.content, language=info.split()[0] if info else None)
    if kind == "code_block":
        return CodeBlock(code=node.content)
    if kind == "blockquote":
        return Blockquote(children=_convert_children(node))
    if kind in {"bullet_list", "ordered_list"}:
        ordered = kind == "ordered_list"
        start = int(node.attrs.get("start", 1)) if ordered else None
        items = tuple(_convert_children(item) for item in node.children)
        return ListBlock(ordered=ordered, items=items, start=start)
    if kind == "hr":
        return ThematicBreak()
    if kind == "html_block":
        return RawHtml(html=node.content)
    if kind == "table":
        return _table(node)
    text = _plain_text(node)
    return Paragraph(text=text) if text else None


def _convert_children(node: SyntaxTreeNode) -> tuple[Node, ...]:
    converted = (_convert_block(child) for child in node.children)
    return tuple(child for child in converted if child is not None)


def _table(node: SyntaxTreeNode) -> Table:
    header: tuple[str, ...] = ()
    rows: list[tuple[str, ...]] = []
    for section in node.children:
        for row in section.children:
            cells = tuple(_plain_text(cell) for cell in row.children)
            if section.type == "thead":
                header = cells
            else:
                rows.append(cells)
    return Table(header=header, rows=tuple(rows))


def _image(node: SyntaxTreeNode) -> Image:
    title = node.attrs.get("title")
    return Image(
        src=str(node.attrs.get("src", "")),
        alt=_plain_text(node) or node.content,
        title=str(title) if title else None,
    )


def _collect_inlines(node: SyntaxTreeNode) -> Iterator[Union[Link, Image]]:
    for child in node.children:
        if child.type == "link":
            title = child.attrs.get("title")
            yield Link(
                href=str(child.attrs.get("href", "")),
                text=_plain_text(child),
                title=str(title) if title else None,
            )
        elif child.type == "image":
            yield _image(child)
        else:
            yield from _collect_inlines(child)


def _plain_text(node: SyntaxTreeNode) -> str:
    if node.type in {"text", "code_inline"}:
        return node.content
    if node.type in {"softbreak", "hardbreak"}:
        return " "
    return "".join(_plain_text(child) for child in node.children).strip()


def _iter_text(nodes: tuple[Node, ...]) -> Iterator[str]:
    for node in nodes:
        if isinstance(node, (Paragraph, Heading)):
            yield node.text
        elif isinstance(node, Blockquote):
            yield from _iter_text(node.children)
        elif isinstance(node, ListBlock):
            for item in node.items:
                yield from _iter_text(item)
        elif isinstance(node, Table):
            yield " ".join(node.header)
            for row in node.rows:
                yield " ".join(row)


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    truncated = text[:limit].rsplit(" ", 1)[0]
    return f"{truncated}…"
