"""Module membership reconciliation and the derived tag index."""

from __future__ import annotations

from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import AbstractSet, Mapping, Sequence

from .content import ContentItem, Module
from .findings import Finding, FindingKind, error, sort_findings


@dataclass(frozen=True, slots=True)
class TaxonomyIndex:
    """Module and tag groupings rebuilt from scratch on every run."""

    declared: tuple[Module, ...] = ()
    modules: Mapping[str, Module] = field(default_factory=dict)
    members: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    tags: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    def module_of(self, slug: str) -> str | None:
        for key, slugs in self.members.items():
            if slug in slugs:
                return key
        return None


@dataclass(frozen=True, slots=True)
class TaxonomyResult:
    index: TaxonomyIndex
    findings: list[Finding]


@dataclass(frozen=True, slots=True)
class _ModuleReconciliation:
    key: str
    members: tuple[str, ...]
    findings: tuple[Finding, ...]


def build_taxonomy(
    items: Sequence[ContentItem],
    modules: Sequence[Module],
    *,
    unreadable_slugs: AbstractSet[str] = frozenset(),
    workers: int = 1,
) -> TaxonomyResult:
    """Associate items with their declared modules and derive the tag index.

    Members whose files failed to parse are not reported as orphans; they
    already carry a ``MalformedFrontMatter`` finding.
    """
    declarations: dict[str, list[Module]] = defaultdict(list)
    for module in modules:
        declarations[module.key].append(module)
    declared = {key: entries[0] for key, entries in declarations.items()}

    items_by_slug: dict[str, list[ContentItem]] = defaultdict(list)
    for item in items:
        items_by_slug[item.slug].append(item)

    findings: list[Finding] = []
    for key, entries in declarations.items():
        if len(entries) > 1:
            described = ", ".join(f"'{entry.title}' ({entry.source_path})" for entry in entries)
            findings.append(
                error(
                    FindingKind.DUPLICATE_MODULE_KEY,
                    key,
                    f"module key '{key}' is declared {len(entries)} times: {described}",
                    entries[1].source_path,
                )
            )

    for item in items:
        if item.module is not None and item.module not in declared:
            findings.append(
                error(
                    FindingKind.UNKNOWN_MODULE_REFERENCE,
                    item.slug,
                    f"module '{item.module}' is not declared",
                    item.source_path,
                )
            )

    def reconcile(module: Module) -> _ModuleReconciliation:
        return _reconcile_module(module, items_by_slug, items, unreadable_slugs)

    with ThreadPoolExecutor(max_workers=max(1, workers)) as executor:
        results = list(executor.map(reconcile, declared.values()))

    members: dict[str, tuple[str, ...]] = {}
    for result in sorted(results, key=lambda entry: entry.key):
        members[result.key] = result.members
        findings.extend(result.findings)

    index = TaxonomyIndex(
        declared=tuple(modules),
        modules={key: declared[key] for key in sorted(declared)},
        members=members,
        tags=build_tag_index(items),
    )
    return TaxonomyResult(index=index, findings=sort_findings(findings))


def build_tag_index(items: Sequence[ContentItem]) -> dict[str, tuple[str, ...]]:
    """Map every tag to the sorted slugs carrying it."""
    tagged: dict[str, set[str]] = defaultdict(set)
    for item in items:
        for tag in item.tags:
            tagged[tag].add(item.slug)
    return {tag: tuple(sorted(tagged[tag])) for tag in sorted(tagged)}


def _reconcile_module(
    module: Module,
    items_by_slug: Mapping[str, list[ContentItem]],
    items: Sequence[ContentItem],
    unreadable_slugs: AbstractSet[str] = frozenset(),
) -> _ModuleReconciliation:
    findings: list[Finding] = []
    members: list[str] = []
    seen: set[str] = set()

    for slug in module.member_slugs:
        if slug in seen:
            continue
        seen.add(slug)
        candidates = items_by_slug.get(slug)
        if not candidates and slug in unreadable_slugs:
            continue
        if not candidates:
            findings.append(
                error(
                    FindingKind.ORPHANED_MODULE_MEMBER,
                    module.key,
                    f"module '{module.key}' lists '{slug}' but no such item exists",
                    module.source_path,
                )
            )
            continue
        disagreeing = [item for item in candidates if item.module != module.key]
        for item in disagreeing:
            declared = f"module '{item.module}'" if item.module else "no module"
            findings.append(
                error(
                    FindingKind.MODULE_MEMBERSHIP_MISMATCH,
                    item.slug,
                    f"listed by module '{module.key}' but declares {declared}",
                    item.source_path,
                )
            )
        if not disagreeing:
            members.append(slug)

    for item in items:
        if item.module == module.key and item.slug not in seen:
            findings.append(
                error(
                    FindingKind.MODULE_MEMBERSHIP_MISMATCH,
                    item.slug,
                    f"declares module '{module.key}' but is not listed in its members",
                    item.source_path,
                )
            )

    return _ModuleReconciliation(key=module.key, members=tuple(members), findings=tuple(findings))
