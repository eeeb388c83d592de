"""Finding records shared by every validation stage."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable


class Severity(str, Enum):
    """Severity level for findings; only errors block publication."""

    ERROR = "error"
    WARNING = "warning"


class FindingKind(str, Enum):
    MALFORMED_FRONT_MATTER = "MalformedFrontMatter"
    UNKNOWN_MODULE_REFERENCE = "UnknownModuleReference"
    ORPHANED_MODULE_MEMBER = "OrphanedModuleMember"
    MODULE_MEMBERSHIP_MISMATCH = "ModuleMembershipMismatch"
    DANGLING_REFERENCE = "DanglingReference"
    DRAFT_REFERENCE = "DraftReference"
    DUPLICATE_SLUG = "DuplicateSlug"
    MISSING_PUBLISH_DATE = "MissingPublishDate"
    MALFORMED_TAG = "MalformedTag"
    UNPUBLISHED = "Unpublished"
    DUPLICATE_ROUTE = "DuplicateRoute"
    DUPLICATE_MODULE_KEY = "DuplicateModuleKey"


@dataclass(frozen=True, slots=True)
class Finding:
    """A single validation result attributed to a content item or module."""

    severity: Severity
    kind: FindingKind
    slug: str
    detail: str
    source_path: str = ""

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def sort_key(self) -> tuple[str, str, str, str]:
        return (self.slug, self.kind.value, self.detail, self.source_path)

    def to_dict(self) -> dict[str, str]:
        return {
            "severity": self.severity.value,
            "kind": self.kind.value,
            "slug": self.slug,
            "detail": self.detail,
            "source_path": self.source_path,
        }


def error(kind: FindingKind, slug: str, detail: str, source_path: str = "") -> Finding:
    return Finding(Severity.ERROR, kind, slug, detail, source_path)


def warning(kind: FindingKind, slug: str, detail: str, source_path: str = "") -> Finding:
    return Finding(Severity.WARNING, kind, slug, detail, source_path)


def sort_findings(findings: Iterable[Finding]) -> list[Finding]:
    """Order findings independently of the order workers produced them."""
    return sorted(findings, key=Finding.sort_key)


def implicated_slugs(findings: Iterable[Finding], *kinds: FindingKind) -> set[str]:
    """Return slugs carrying an error finding, optionally restricted to ``kinds``."""
    return {
        finding.slug
        for finding in findings
        if finding.is_error and (not kinds or finding.kind in kinds)
    }
