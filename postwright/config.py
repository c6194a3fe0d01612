from pathlib import Path
from string import Formatter
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

CONFIG_FILENAME = "postwright.yml"
POST_PERMALINK_FIELDS = frozenset({"slug", "title", "year", "month", "day", "categories"})
CATEGORY_PERMALINK_FIELDS = frozenset({"category"})


class FeedConfig(BaseModel):
    """Options controlling feed generation."""

    enabled: bool = Field(
        default=True,
        description="Toggle syndication feed generation.",
    )
    limit: int = Field(
        default=20,
        ge=1,
        le=500,
        description="Maximum number of posts to include per feed.",
    )
    base_url: str | None = Field(
        default=None,
        description="Canonical site URL used for absolute links (e.g., 'https://example.com').",
    )
    description: str = Field(default="", description="Channel description/subtitle.")

    @field_validator("base_url")
    def _strip_base_url(cls, value: str | None) -> str | None:
        if value is None:
            return None
        text = value.strip().rstrip("/")
        return text or None


class Config(BaseModel):
    project_name: str = Field(default="Postwright Blog")
    site_title: str | None = Field(default=None, description="Title shown in page chrome; defaults to project_name.")
    content_dir: Path = Field(default=Path("content"))
    posts_subdir: str = Field(default="_posts", description="Directory under content_dir used by 'new post'.")
    static_dir: Path = Field(default=Path("assets"), description="Root of static assets copied into the site.")
    asset_prefix: str = Field(default="/assets/", description="URL prefix that maps onto static_dir.")
    output_dir: Path = Field(default=Path("site"))
    post_layouts: list[str] = Field(default_factory=lambda: ["post"])
    post_permalink: str = Field(
        default="/{year}/{month}/{day}/{title}/",
        description="Pattern for derived post permalinks: {slug} {title} {year} {month} {day} {categories}.",
    )
    category_permalink: str = Field(default="/categories/{category}/")
    index_page_size: int = Field(default=20, ge=1)
    strict: bool = Field(default=False, description="Treat broken references as fatal.")
    workers: int = Field(default=4, ge=1, le=64)
    feeds: FeedConfig = Field(default_factory=FeedConfig)

    @field_validator("content_dir", "static_dir", "output_dir", mode="before")
    def _ensure_path(cls, value: Any) -> Path:
        return Path(value)

    @field_validator("asset_prefix")
    def _normalize_prefix(cls, value: str) -> str:
        text = "/" + value.strip().strip("/")
        return f"{text}/" if text != "/" else text

    @field_validator("post_permalink")
    def _check_post_permalink(cls, value: str) -> str:
        return _permalink_pattern(value, POST_PERMALINK_FIELDS)

    @field_validator("category_permalink")
    def _check_category_permalink(cls, value: str) -> str:
        return _permalink_pattern(value, CATEGORY_PERMALINK_FIELDS)

    @field_validator("post_layouts")
    def _require_layouts(cls, value: list[str]) -> list[str]:
        layouts = [entry.strip() for entry in value if entry and entry.strip()]
        if not layouts:
            raise ValueError("post_layouts must name at least one layout")
        return layouts

    @property
    def display_title(self) -> str:
        return self.site_title or self.project_name

    @property
    def posts_dir(self) -> Path:
        return self.content_dir / self.posts_subdir


def load_config(path: str | Path) -> Config:
    """Load configuration and resolve relative paths based on the config location.

    The ``path`` argument may point to a file (e.g., ``/blog/postwright.yml``) or a
    directory containing that file. All relative paths inside the configuration
    are interpreted relative to the directory holding the config file.
    """
    candidate = Path(path)
    data: dict[str, Any] = {}
    if candidate.is_dir():
        # A project directory without a config file builds with defaults.
        config_file = candidate / CONFIG_FILENAME
        if config_file.exists():
            data = _read_yaml(config_file)
        base_dir = candidate.resolve()
    else:
        if not candidate.exists():
            raise FileNotFoundError(candidate)
        data = _read_yaml(candidate)
        base_dir = candidate.parent.resolve()

    cfg = Config(**data)

    def _abs(value: Path) -> Path:
        return value if value.is_absolute() else (base_dir / value).resolve()

    cfg.content_dir = _abs(cfg.content_dir)
    cfg.static_dir = _abs(cfg.static_dir)
    cfg.output_dir = _abs(cfg.output_dir)
    return cfg


def _read_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Configuration in {path} must be a mapping.")
    return data


def _permalink_pattern(value: str, allowed: frozenset[str]) -> str:
    text = value.strip()
    if not text.startswith("/"):
        text = f"/{text}"
    for _, name, _, _ in Formatter().parse(text):
        if name is not None and name not in allowed:
            placeholder = "{" + name + "}"
            raise ValueError(f"unknown placeholder {placeholder}; expected one of {', '.join(sorted(allowed))}")
    return text
