"""Validation report assembly and persistence."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable

from pydantic import BaseModel, Field

from .content import Corpus
from .findings import Finding, Severity, sort_findings
from .routes import RouteTable
from .taxonomy import TaxonomyIndex

REPORT_FILENAME = "validation-report.json"
ROUTES_FILENAME = "routes.json"


class FindingRecord(BaseModel):
    severity: Severity
    kind: str
    slug: str
    detail: str
    source_path: str = ""


class CorpusStats(BaseModel):
    items: int
    published: int
    drafts: int
    unparseable: int
    modules: int
    tags: int
    routes: int


class ValidationReport(BaseModel):
    project: str
    include_drafts: bool
    stats: CorpusStats
    findings: list[FindingRecord] = Field(default_factory=list)

    @property
    def error_count(self) -> int:
        return sum(1 for finding in self.findings if finding.severity is Severity.ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for finding in self.findings if finding.severity is Severity.WARNING)

    @property
    def ok(self) -> bool:
        """Warnings never block publication; a single error does."""
        return self.error_count == 0


def build_corpus_stats(corpus: Corpus, index: TaxonomyIndex, table: RouteTable) -> CorpusStats:
    published = drafts = 0
    for item in corpus.items:
        if item.is_draft:
            drafts += 1
        else:
            published += 1
    return CorpusStats(
        items=len(corpus.items),
        published=published,
        drafts=drafts,
        unparseable=len(corpus.unreadable) + len(corpus.unreadable_modules),
        modules=len(index.modules),
        tags=len(index.tags),
        routes=len(table.entries),
    )


def assemble_report(
    *,
    project: str,
    include_drafts: bool,
    stats: CorpusStats,
    findings: Iterable[Finding],
) -> ValidationReport:
    records = [FindingRecord(**finding.to_dict()) for finding in sort_findings(findings)]
    return ValidationReport(
        project=project,
        include_drafts=include_drafts,
        stats=stats,
        findings=records,
    )


def render_report(report: ValidationReport) -> str:
    return json.dumps(report.model_dump(mode="json"), ensure_ascii=False, indent=2) + "\n"


def render_routes(table: RouteTable) -> str:
    return json.dumps(table.to_dict(), ensure_ascii=False, indent=2) + "\n"


def write_report(report: ValidationReport, output_dir: Path) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    target = output_dir / REPORT_FILENAME
    target.write_text(render_report(report), encoding="utf-8")
    return target


def write_routes(table: RouteTable, output_dir: Path) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    target = output_dir / ROUTES_FILENAME
    target.write_text(render_routes(table), encoding="utf-8")
    return target
