"""Corpus-wide integrity checks spanning multiple content items."""

from __future__ import annotations

import re
from collections import defaultdict
from typing import AbstractSet, Sequence

from .content import ContentItem, DraftState
from .findings import Finding, FindingKind, error, sort_findings, warning

DEFAULT_TAG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


def validate_integrity(
    items: Sequence[ContentItem],
    *,
    tag_pattern: str = DEFAULT_TAG_PATTERN,
    previously_published: AbstractSet[str] = frozenset(),
) -> list[Finding]:
    """Run every cross-item invariant check and return the merged findings."""
    findings: list[Finding] = []
    findings.extend(find_duplicate_slugs(items))
    findings.extend(check_publish_dates(items))
    findings.extend(check_tags(items, tag_pattern))
    findings.extend(detect_transitions(items, previously_published))
    return sort_findings(findings)


def find_duplicate_slugs(items: Sequence[ContentItem]) -> list[Finding]:
    """Emit one finding per slug shared by two or more items."""
    paths: dict[str, list[str]] = defaultdict(list)
    for item in items:
        paths[item.slug].append(item.source_path)

    findings: list[Finding] = []
    for slug in sorted(paths):
        conflicting = sorted(paths[slug])
        if len(conflicting) < 2:
            continue
        findings.append(
            error(
                FindingKind.DUPLICATE_SLUG,
                slug,
                f"slug '{slug}' is declared by {len(conflicting)} items: {', '.join(conflicting)}",
                conflicting[0],
            )
        )
    return findings


def check_publish_dates(items: Sequence[ContentItem]) -> list[Finding]:
    return [
        error(
            FindingKind.MISSING_PUBLISH_DATE,
            item.slug,
            "published item has no 'date'",
            item.source_path,
        )
        for item in items
        if item.draft_state is DraftState.PUBLISHED and item.published_date is None
    ]


def check_tags(items: Sequence[ContentItem], pattern: str = DEFAULT_TAG_PATTERN) -> list[Finding]:
    """Require tags to be lowercase kebab-case (or match ``pattern``)."""
    compiled = re.compile(pattern)
    findings: list[Finding] = []
    for item in items:
        for tag in item.sorted_tags:
            if compiled.fullmatch(tag):
                continue
            findings.append(
                error(
                    FindingKind.MALFORMED_TAG,
                    item.slug,
                    f"tag '{tag}' is not lowercase kebab-case (suggest '{normalize_tag(tag)}')",
                    item.source_path,
                )
            )
    return findings


def detect_transitions(
    items: Sequence[ContentItem],
    previously_published: AbstractSet[str],
) -> list[Finding]:
    """Report items moved from published back to draft since the last build.

    ``DRAFT -> PUBLISHED`` is the normal forward transition and is silent.
    Unpublishing is legal but changes the route table, so it surfaces as a
    warning rather than an error.
    """
    return [
        warning(
            FindingKind.UNPUBLISHED,
            item.slug,
            "item was published by the previous build and is now a draft",
            item.source_path,
        )
        for item in items
        if item.is_draft and item.slug in previously_published
    ]


def normalize_tag(tag: str) -> str:
    text = tag.strip().lower()
    text = re.sub(r"[\s_]+", "-", text)
    text = re.sub(r"[^a-z0-9\-]+", "", text)
    text = re.sub(r"-{2,}", "-", text)
    return text.strip("-")
