"""Utilities for loading and validating source documents."""

from .models import (
    Document,
    DocumentKind,
    FrontMatter,
    PageFrontMatter,
    PostFrontMatter,
)
from .parsers import load_markdown_document, parse_document, split_front_matter

__all__ = [
    "Document",
    "DocumentKind",
    "FrontMatter",
    "PageFrontMatter",
    "PostFrontMatter",
    "load_markdown_document",
    "parse_document",
    "split_front_matter",
]
