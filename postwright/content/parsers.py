"""Parse source files into `Document` instances."""

from __future__ import annotations

import json
from datetime import date, datetime
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Iterable, cast

import yaml
from jsonschema import Draft202012Validator
from pydantic import ValidationError

from ..errors import InvalidDate, MalformedHeader, MissingRequiredField
from ..utils import source_identity
from .models import Document, FrontMatter, PageFrontMatter, PostFrontMatter

DELIMITER = "---"
SCHEMA_PACKAGE = "postwright.schemas"
HEADER_SCHEMA_NAME = "front_matter.schema.json"
REQUIRED_TEXT_FIELDS = ("layout", "title")
DEFAULT_POST_LAYOUTS = ("post",)

TIMESTAMP_FORMATS = (
    "%Y-%m-%d %H:%M:%S %z",
    "%Y-%m-%d %H:%M:%S.%f %z",
    "%Y-%m-%d %H:%M %z",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M%z",
)


def load_markdown_document(
    path: str | Path,
    *,
    post_layouts: Iterable[str] = DEFAULT_POST_LAYOUTS,
) -> Document:
    """Load a markdown file with YAML front matter into a document."""
    source_path = Path(path)
    text = source_path.read_text(encoding="utf-8")
    return parse_document(text, source_path=source_path.as_posix(), post_layouts=post_layouts)


def parse_document(
    text: str,
    *,
    source_path: str,
    post_layouts: Iterable[str] = DEFAULT_POST_LAYOUTS,
) -> Document:
    """Split, validate, and type a raw document. Pure; no filesystem access."""
    header_text, body, body_line = split_front_matter(text, source_path=source_path)
    data = parse_header(header_text, source_path=source_path)
    front_matter = build_front_matter(data, post_layouts=post_layouts, source_path=source_path)
    return Document.from_front_matter(
        front_matter,
        body=body,
        body_line=body_line,
        source_path=source_path,
        source_identity=source_identity(source_path),
    )


def split_front_matter(text: str, *, source_path: str | None = None) -> tuple[str, str, int]:
    """Return ``(header_text, body, body_line)``.

    ``body_line`` is the 1-based source line of the first body line after
    leading blank lines are trimmed.
    """
    lines = text.lstrip("\ufeff").splitlines()
    if not lines or lines[0].strip() != DELIMITER:
        raise MalformedHeader(
            f"Opening front matter delimiter '{DELIMITER}' missing.",
            source_path=source_path,
            line=1,
        )

    for idx, line in enumerate(lines[1:], start=1):
        if line.strip() != DELIMITER:
            continue
        header_text = "\n".join(lines[1:idx])
        body_lines = lines[idx + 1 :]
        body_line = idx + 2
        while body_lines and not body_lines[0].strip():
            body_lines.pop(0)
            body_line += 1
        while body_lines and not body_lines[-1].strip():
            body_lines.pop()
        return header_text, "\n".join(body_lines), body_line

    raise MalformedHeader(
        f"Closing front matter delimiter '{DELIMITER}' missing.",
        source_path=source_path,
        line=1,
    )


def parse_header(header_text: str, *, source_path: str | None = None) -> dict[str, Any]:
    """Parse header text as a flat key/value mapping."""
    try:
        data = yaml.safe_load(header_text)
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        line = mark.line + 2 if mark is not None else 1
        raise MalformedHeader(f"Header is not valid YAML: {exc}", source_path=source_path, line=line) from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise MalformedHeader(
            f"Header must be a key/value mapping, got {type(data).__name__}.",
            source_path=source_path,
            line=2,
        )

    _validate_header_shape(data, source_path=source_path)
    return cast(dict[str, Any], data)


def build_front_matter(
    data: dict[str, Any],
    *,
    post_layouts: Iterable[str] = DEFAULT_POST_LAYOUTS,
    source_path: str | None = None,
) -> FrontMatter:
    """Validate a header mapping into the record for its document kind."""
    payload = dict(data)
    layout = str(payload.get("layout") or "").strip()
    is_post = layout in set(post_layouts)

    if payload.get("date") is not None:
        payload["date"] = parse_timestamp(payload["date"], source_path=source_path)
    elif is_post:
        raise MissingRequiredField("date", source_path=source_path)

    model = PostFrontMatter if is_post else PageFrontMatter
    try:
        return model(**payload)
    except ValidationError as exc:
        raise _translate_validation_error(exc, source_path) from exc


def parse_timestamp(value: Any, *, source_path: str | None = None) -> datetime:
    """Parse a calendar date plus time plus UTC offset.

    Dates without a time or without an offset are rejected.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None or value.utcoffset() is None:
            raise InvalidDate(f"Date '{value}' has no UTC offset.", source_path=source_path)
        return value
    if isinstance(value, date):
        raise InvalidDate(f"Date '{value}' has no time of day.", source_path=source_path)
    if not isinstance(value, str):
        raise InvalidDate(f"Date must be text, got {type(value).__name__}.", source_path=source_path)

    text = value.strip()
    for fmt in TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise InvalidDate(
            f"Date '{text}' is not in 'YYYY-MM-DD HH:MM:SS +HHMM' form.",
            source_path=source_path,
        ) from None
    if parsed.tzinfo is None:
        raise InvalidDate(f"Date '{text}' must include a time and UTC offset.", source_path=source_path)
    return parsed


@lru_cache(maxsize=1)
def _get_header_validator() -> Draft202012Validator:
    with resources.files(SCHEMA_PACKAGE).joinpath(HEADER_SCHEMA_NAME).open("r", encoding="utf-8") as handle:
        schema = json.load(handle)
    if not isinstance(schema, dict):
        raise ValueError(f"Schema '{HEADER_SCHEMA_NAME}' must be a JSON object.")
    return Draft202012Validator(schema)


def _validate_header_shape(data: dict[Any, Any], *, source_path: str | None) -> None:
    instance = {key: _jsonable(value) for key, value in data.items()}
    errors = sorted(_get_header_validator().iter_errors(instance), key=lambda err: [str(part) for part in err.path])
    if not errors:
        return

    for error in errors:
        if error.validator == "required" and not error.path:
            missing = [name for name in error.validator_value if name not in error.instance]
            for name in REQUIRED_TEXT_FIELDS:
                if name in missing:
                    raise MissingRequiredField(name, source_path=source_path)

    first = errors[0]
    pointer = "/".join(str(part) for part in first.path)
    message = f"Header is not a flat key/value mapping: {first.message}"
    if pointer:
        message += f" (at {pointer})"
    raise MalformedHeader(message, source_path=source_path)


def _jsonable(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, list):
        return [_jsonable(item) for item in value]
    return value


def _translate_validation_error(exc: ValidationError, source_path: str | None) -> Exception:
    first = exc.errors()[0]
    field = str(first["loc"][0]) if first["loc"] else "header"
    raw = first.get("input")
    if first["type"] == "missing":
        return MissingRequiredField(field, source_path=source_path)
    if field in REQUIRED_TEXT_FIELDS and (raw is None or not str(raw).strip()):
        return MissingRequiredField(field, source_path=source_path)
    if field == "date":
        return InvalidDate(f"Invalid date: {first['msg']}", source_path=source_path)
    return MalformedHeader(f"Invalid value for '{field}': {first['msg']}", source_path=source_path)
