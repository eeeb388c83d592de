"""Parse source files into `ContentItem` instances."""

from __future__ import annotations

import re
from datetime import date, datetime
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .models import ContentItem, DraftState

WHITESPACE_PATTERN = re.compile(r"\s+")
BUNDLE_STEMS = {"index", "_index"}
RECOGNISED_KEYS = {
    "title",
    "date",
    "tags",
    "categories",
    "module",
    "draft",
    "status",
    "slug",
    "aliases",
}


class MalformedFrontMatter(ValueError):
    """Raised when a content unit has missing or invalid front matter."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


def load_content_item(path: str | Path) -> ContentItem:
    """Load a markdown file with YAML front matter into a content item."""
    source_path = Path(path)
    text = source_path.read_text(encoding="utf-8")
    return parse_content_item(text, str(source_path), slug_hint=slug_from_path(source_path))


def parse_content_item(text: str, source_path: str, *, slug_hint: str) -> ContentItem:
    """Parse raw text (front matter + body) into a content item."""
    try:
        front_matter, body = split_front_matter(text)
    except MalformedFrontMatter as exc:
        raise MalformedFrontMatter(f"{source_path}: {exc}", path=source_path) from exc

    if not front_matter:
        raise MalformedFrontMatter(f"{source_path}: front matter block is missing", path=source_path)

    try:
        fields = _parse_fields(front_matter, slug_hint)
        return ContentItem(body=body.strip(), source_path=source_path, **fields)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise MalformedFrontMatter(
            f"{source_path}: invalid '{location}': {first['msg']}", path=source_path
        ) from exc
    except MalformedFrontMatter as exc:
        raise MalformedFrontMatter(f"{source_path}: {exc}", path=source_path) from exc


def split_front_matter(text: str) -> tuple[dict[str, Any], str]:
    lines = text.splitlines()
    if not lines:
        return {}, ""
    if lines[0].strip() != "---":
        return {}, text

    front_lines: list[str] = []
    for idx, line in enumerate(lines[1:], start=1):
        if line.strip() == "---":
            raw_front_matter = "\n".join(front_lines)
            body = "\n".join(lines[idx + 1 :])
            try:
                data = yaml.safe_load(raw_front_matter) or {}
            except (yaml.YAMLError, ValueError) as exc:
                # Timestamps such as 2024-02-30 fail inside the YAML constructor.
                raise MalformedFrontMatter(f"front matter is not valid YAML ({exc})") from exc
            if not isinstance(data, dict):
                raise MalformedFrontMatter("front matter must be a mapping")
            return data, body
        front_lines.append(line)
    raise MalformedFrontMatter("closing front matter delimiter '---' missing")


def slug_from_path(path: Path) -> str:
    """Derive a slug from a content path; page bundles use their directory name."""
    stem = path.stem
    if stem.lower() in BUNDLE_STEMS and path.parent.name:
        stem = path.parent.name
    return WHITESPACE_PATTERN.sub("-", stem.strip()).lower()


def _parse_fields(data: dict[str, Any], slug_hint: str) -> dict[str, Any]:
    title = data.get("title")
    if not isinstance(title, str) or not title.strip():
        raise MalformedFrontMatter("required field 'title' is missing or empty")

    slug = data.get("slug", slug_hint)
    if not isinstance(slug, str):
        raise MalformedFrontMatter("'slug' must be a string")

    return {
        "slug": slug,
        "title": title,
        "published_date": _parse_date(data.get("date")),
        "tags": frozenset(_parse_tags(data.get("tags"))),
        "module": _parse_module(data),
        "draft_state": _parse_draft_state(data),
        "aliases": tuple(_parse_string_list(data.get("aliases"), "aliases")),
        "extra": {key: value for key, value in data.items() if key not in RECOGNISED_KEYS},
    }


def _parse_date(value: Any) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError:
            raise MalformedFrontMatter(f"unparseable date '{text}'") from None
    raise MalformedFrontMatter(f"unparseable date {value!r}")


def _parse_tags(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    return [tag.strip() for tag in _parse_string_list(value, "tags") if tag.strip()]


def _parse_string_list(value: Any, name: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(entry, str) for entry in value):
        raise MalformedFrontMatter(f"'{name}' must be a list of strings")
    return list(value)


def _parse_module(data: dict[str, Any]) -> str | None:
    references: list[str] = []
    module = data.get("module")
    if module is not None:
        if not isinstance(module, str):
            raise MalformedFrontMatter("'module' must be a string")
        references.append(module.strip())

    categories = data.get("categories")
    if isinstance(categories, str):
        references.append(categories.strip())
    elif categories is not None:
        references.extend(entry.strip() for entry in _parse_string_list(categories, "categories"))

    distinct = sorted({reference for reference in references if reference})
    if len(distinct) > 1:
        raise MalformedFrontMatter(
            f"an item belongs to at most one module, found {', '.join(distinct)}"
        )
    return distinct[0] if distinct else None


def _parse_draft_state(data: dict[str, Any]) -> DraftState:
    from_draft: DraftState | None = None
    if "draft" in data:
        draft = data["draft"]
        if not isinstance(draft, bool):
            raise MalformedFrontMatter(f"'draft' must be a boolean, got {draft!r}")
        from_draft = DraftState.DRAFT if draft else DraftState.PUBLISHED

    from_status: DraftState | None = None
    if "status" in data:
        status = data["status"]
        try:
            from_status = DraftState(str(status).strip().lower())
        except ValueError:
            allowed = ", ".join(state.value for state in DraftState)
            raise MalformedFrontMatter(
                f"invalid status '{status}' (expected one of: {allowed})"
            ) from None

    if from_draft is not None and from_status is not None and from_draft is not from_status:
        raise MalformedFrontMatter("'draft' and 'status' disagree")
    return from_status or from_draft or DraftState.PUBLISHED
