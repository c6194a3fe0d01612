"""Small text and path helpers shared across the pipeline."""

from __future__ import annotations

import re
from hashlib import sha256
from pathlib import Path

SLUG_PATTERN = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    """Lowercase text and collapse every non-alphanumeric run into one hyphen.

    Returns an empty string when nothing alphanumeric survives; callers decide
    whether that is an error.
    """
    text = value.strip().lower()
    text = SLUG_PATTERN.sub("-", text)
    return text.strip("-")


def source_identity(path: str | Path) -> str:
    """Stable opaque key for a source location."""
    normalized = Path(path).as_posix()
    return sha256(normalized.encode("utf-8")).hexdigest()[:16]


def normalize_url_path(value: str) -> str:
    """Canonical form for site-relative paths used as lookup keys.

    ``/about``, ``/about/`` and ``/about/index.html`` all map to ``/about/``.
    Paths naming a file (``/feed.xml``) are kept as-is.
    """
    path = value.split("#", 1)[0].split("?", 1)[0].strip()
    if not path:
        return "/"
    if not path.startswith("/"):
        path = f"/{path}"
    path = re.sub(r"/{2,}", "/", path)
    if path.endswith("/index.html"):
        path = path[: -len("index.html")]
    last = path.rsplit("/", 1)[-1]
    if last and "." not in last:
        path = f"{path}/"
    return path


def output_relpath(url_path: str) -> Path:
    """Map a site-relative URL path onto the file written under the output root."""
    normalized = normalize_url_path(url_path)
    relative = normalized.lstrip("/")
    if not relative or relative.endswith("/"):
        return Path(relative) / "index.html"
    return Path(relative)
