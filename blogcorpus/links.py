"""Extract internal cross-references from item bodies and resolve them."""

from __future__ import annotations

import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import lru_cache
from typing import AbstractSet, Iterator, Sequence
from urllib.parse import unquote, urlsplit

from markdown_it import MarkdownIt
from markdown_it.token import Token

from .config import RouteConfig
from .content import ContentItem
from .findings import Finding, FindingKind, error, sort_findings, warning

HREF_PATTERN = re.compile(r"(?:href|src)\s*=\s*[\"']([^\"']+)[\"']", re.IGNORECASE)
EXTERNAL_SCHEMES = {"http", "https", "mailto", "tel", "data", "javascript", "ftp"}


@dataclass(frozen=True, slots=True)
class CrossLink:
    """A reference from one item's body to an internal path."""

    source_slug: str
    target: str
    line: int


class RoutePattern:
    """Match a URL path against a pattern such as ``/posts/{slug}/``."""

    def __init__(self, pattern: str, placeholder: str) -> None:
        before, _, after = pattern.partition(placeholder)
        self.pattern = pattern
        self.placeholder = placeholder
        self._regex = re.compile(
            "^" + re.escape(before) + r"(?P<value>[^/]+)" + re.escape(after.rstrip("/")) + "$"
        )

    def match(self, path: str) -> str | None:
        normalized = path.rstrip("/") if path != "/" else path
        found = self._regex.match(normalized)
        return found.group("value") if found else None

    def format(self, value: str) -> str:
        return self.pattern.replace(self.placeholder, value)


def post_pattern(routes: RouteConfig) -> RoutePattern:
    return RoutePattern(routes.post_route, "{slug}")


def module_pattern(routes: RouteConfig) -> RoutePattern:
    return RoutePattern(routes.module_route, "{key}")


def tag_pattern(routes: RouteConfig) -> RoutePattern:
    return RoutePattern(routes.tag_route, "{tag}")


@lru_cache(maxsize=1)
def _parser() -> MarkdownIt:
    """Configure and cache the CommonMark parser used for link extraction."""
    md = MarkdownIt("commonmark", {"html": True})
    md.enable("table").enable("strikethrough")
    return md


def extract_links(item: ContentItem) -> list[CrossLink]:
    """Return every link target in the body, skipping code blocks and inline code.

    Reference-style links are reported where they are used, with the
    target taken from their definition. Raw HTML anchors are included.
    """
    links: list[CrossLink] = []
    if not item.body.strip():
        return links
    start = 0
    for token in _parser().parse(item.body):
        if token.map is not None:
            start = token.map[0]
        if token.type == "html_block":
            for offset, line in enumerate(token.content.splitlines()):
                for target in _iter_html_targets(line):
                    links.append(CrossLink(source_slug=item.slug, target=target, line=start + offset + 1))
        elif token.type == "inline":
            for target, offset in _iter_inline_targets(token.children or []):
                links.append(CrossLink(source_slug=item.slug, target=target, line=start + offset + 1))
    return links


def resolve_links(
    items: Sequence[ContentItem],
    routes: RouteConfig,
    *,
    known_slugs: AbstractSet[str],
    module_keys: AbstractSet[str],
    draft_slugs: AbstractSet[str] = frozenset(),
    include_drafts: bool = False,
    workers: int = 1,
) -> list[Finding]:
    """Collect one finding per broken internal link across all items."""
    posts = post_pattern(routes)
    modules = module_pattern(routes)

    def check(item: ContentItem) -> list[Finding]:
        findings: list[Finding] = []
        for link in extract_links(item):
            path = _internal_path(link.target)
            if path is None:
                continue
            slug = posts.match(path)
            key = modules.match(path)
            if slug is None and key is None:
                continue

            resolves_to_post = slug is not None and slug in known_slugs
            resolves_to_module = key is not None and key in module_keys
            target_slug = slug if slug is not None else key
            if not (resolves_to_post or resolves_to_module):
                findings.append(
                    error(
                        FindingKind.DANGLING_REFERENCE,
                        item.slug,
                        f"line {link.line}: '{link.target}' targets unknown slug '{target_slug}'",
                        item.source_path,
                    )
                )
            elif (
                resolves_to_post
                and not resolves_to_module
                and slug in draft_slugs
                and not include_drafts
                and not item.is_draft
            ):
                findings.append(
                    warning(
                        FindingKind.DRAFT_REFERENCE,
                        item.slug,
                        f"line {link.line}: '{link.target}' targets draft '{slug}' which is not published",
                        item.source_path,
                    )
                )
        return findings

    with ThreadPoolExecutor(max_workers=max(1, workers)) as executor:
        batches = list(executor.map(check, items))

    return sort_findings(finding for batch in batches for finding in batch)


def _iter_inline_targets(children: Sequence[Token]) -> Iterator[tuple[str, int]]:
    """Yield ``(target, line offset)`` pairs from an inline token's children."""
    offset = 0
    for child in children:
        if child.type in ("softbreak", "hardbreak"):
            offset += 1
        elif child.type == "link_open":
            href = child.attrGet("href")
            if href:
                yield str(href), offset
        elif child.type == "image":
            src = child.attrGet("src")
            if src:
                yield str(src), offset
        elif child.type == "html_inline":
            for target in _iter_html_targets(child.content):
                yield target, offset


def _iter_html_targets(text: str) -> Iterator[str]:
    for match in HREF_PATTERN.finditer(text):
        yield match.group(1)


def _internal_path(target: str) -> str | None:
    stripped = target.strip()
    if not stripped:
        return None
    parsed = urlsplit(stripped)
    if parsed.scheme in EXTERNAL_SCHEMES or parsed.netloc:
        return None
    path = unquote(parsed.path or "")
    if not path.startswith("/"):
        # Relative and fragment-only links are left to the renderer.
        return None
    return path
