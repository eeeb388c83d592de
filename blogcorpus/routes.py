"""Plan the final route table handed to the rendering collaborator."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from .config import RouteConfig
from .content import ContentItem
from .findings import Finding, FindingKind, error, implicated_slugs, sort_findings
from .links import module_pattern, post_pattern, tag_pattern
from .taxonomy import TaxonomyIndex

# Error kinds whose finding slug names a content item (rather than a module).
ITEM_ERROR_KINDS = (
    FindingKind.MALFORMED_FRONT_MATTER,
    FindingKind.UNKNOWN_MODULE_REFERENCE,
    FindingKind.MODULE_MEMBERSHIP_MISMATCH,
    FindingKind.DANGLING_REFERENCE,
    FindingKind.DUPLICATE_SLUG,
    FindingKind.MISSING_PUBLISH_DATE,
    FindingKind.MALFORMED_TAG,
)


class RouteKind(str, Enum):
    POST = "post"
    MODULE = "module"
    TAG = "tag"
    ALIAS = "alias"


class RouteEntry(BaseModel):
    """One URL path and the content entity rendered at it."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(description="Site-absolute URL path.")
    kind: RouteKind
    ref: str = Field(description="Slug, module key, or tag of the routed entity.")
    title: str = Field(default="")
    source_path: Optional[str] = Field(default=None)
    redirect_to: Optional[str] = Field(default=None, description="Canonical path for aliases.")
    members: tuple[str, ...] = Field(default=(), description="Routed slugs listed on the page.")


class RouteTable(BaseModel):
    """Path-sorted mapping from URL path to content entity."""

    model_config = ConfigDict(frozen=True)

    include_drafts: bool = False
    entries: tuple[RouteEntry, ...] = ()

    def get(self, path: str) -> RouteEntry | None:
        for entry in self.entries:
            if entry.path == path:
                return entry
        return None

    @property
    def paths(self) -> list[str]:
        return [entry.path for entry in self.entries]

    def refs(self, kind: RouteKind) -> list[str]:
        return [entry.ref for entry in self.entries if entry.kind is kind]

    def to_dict(self) -> dict[str, object]:
        return {
            "include_drafts": self.include_drafts,
            "routes": {
                entry.path: entry.model_dump(mode="json", exclude={"path"}, exclude_none=True)
                for entry in self.entries
            },
        }


@dataclass(frozen=True, slots=True)
class RoutePlan:
    table: RouteTable
    findings: list[Finding]


def plan_routes(
    items: Sequence[ContentItem],
    index: TaxonomyIndex,
    findings: Iterable[Finding],
    routes: RouteConfig,
    *,
    include_drafts: bool = False,
) -> RoutePlan:
    """Build the route table, leaving out drafts and items with errors.

    Module index pages and item pages share one path namespace, so the
    table is re-checked for collisions; a colliding path is dropped and
    reported as ``DuplicateRoute``.
    """
    findings = list(findings)
    blocked = implicated_slugs(findings, *ITEM_ERROR_KINDS)
    routed_items = [
        item
        for item in items
        if item.slug not in blocked and (include_drafts or not item.is_draft)
    ]
    routed_slugs = {item.slug for item in routed_items}

    posts = post_pattern(routes)
    modules = module_pattern(routes)
    tags = tag_pattern(routes)

    candidates: list[RouteEntry] = []
    for item in routed_items:
        canonical = posts.format(item.slug)
        candidates.append(
            RouteEntry(
                path=canonical,
                kind=RouteKind.POST,
                ref=item.slug,
                title=item.title,
                source_path=item.source_path,
            )
        )
        for alias in item.aliases:
            alias_path = _normalize_path(alias)
            if alias_path == canonical:
                continue
            candidates.append(
                RouteEntry(
                    path=alias_path,
                    kind=RouteKind.ALIAS,
                    ref=item.slug,
                    title=item.title,
                    source_path=item.source_path,
                    redirect_to=canonical,
                )
            )

    duplicated = implicated_slugs(findings, FindingKind.DUPLICATE_MODULE_KEY)
    for module in index.declared:
        if module.key in duplicated:
            continue
        members = tuple(slug for slug in index.members.get(module.key, ()) if slug in routed_slugs)
        if not members:
            continue
        candidates.append(
            RouteEntry(
                path=modules.format(module.key),
                kind=RouteKind.MODULE,
                ref=module.key,
                title=module.title,
                source_path=module.source_path or None,
                members=members,
            )
        )

    for tag, slugs in index.tags.items():
        members = tuple(slug for slug in slugs if slug in routed_slugs)
        if not members:
            continue
        candidates.append(
            RouteEntry(path=tags.format(tag), kind=RouteKind.TAG, ref=tag, title=tag, members=members)
        )

    by_path: dict[str, list[RouteEntry]] = defaultdict(list)
    for entry in candidates:
        by_path[entry.path].append(entry)

    entries: list[RouteEntry] = []
    collisions: list[Finding] = []
    dropped: set[str] = set()
    for path in sorted(by_path):
        claimants = by_path[path]
        if len(claimants) == 1:
            entries.append(claimants[0])
            continue
        dropped.update(entry.ref for entry in claimants if entry.kind is RouteKind.POST)
        ordered = sorted(claimants, key=lambda entry: (entry.kind.value, entry.ref, entry.source_path or ""))
        described = ", ".join(_describe(entry) for entry in ordered)
        collisions.append(
            error(
                FindingKind.DUPLICATE_ROUTE,
                ordered[0].ref,
                f"path '{path}' is claimed by {described}",
                ordered[0].source_path or "",
            )
        )

    if dropped:
        entries = _prune_dropped(entries, dropped)

    table = RouteTable(include_drafts=include_drafts, entries=tuple(entries))
    return RoutePlan(table=table, findings=sort_findings(collisions))


def _prune_dropped(entries: list[RouteEntry], dropped: set[str]) -> list[RouteEntry]:
    """Remove references to posts whose canonical path lost a collision.

    Aliases redirecting to them go, and index pages stop listing them; an
    index page left without members is removed.
    """
    kept_paths = {entry.path for entry in entries}
    pruned: list[RouteEntry] = []
    for entry in entries:
        if entry.redirect_to is not None and entry.redirect_to not in kept_paths:
            continue
        if entry.members:
            members = tuple(slug for slug in entry.members if slug not in dropped)
            if not members:
                continue
            if members != entry.members:
                entry = entry.model_copy(update={"members": members})
        pruned.append(entry)
    return pruned


def _normalize_path(path: str) -> str:
    text = path.strip()
    if not text.startswith("/"):
        text = f"/{text}"
    return text


def _describe(entry: RouteEntry) -> str:
    label = f"{entry.kind.value} '{entry.ref}'"
    if entry.source_path:
        label += f" ({entry.source_path})"
    return label
