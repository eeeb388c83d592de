"""Run the parse → taxonomy → links → integrity → routes pipeline."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

from .config import Config
from .content import Corpus
from .findings import Finding, FindingKind, error, sort_findings
from .ingest import load_corpus
from .links import resolve_links
from .reporting import ValidationReport, assemble_report, build_corpus_stats
from .routes import RouteKind, RouteTable, plan_routes
from .state import PublicationState
from .taxonomy import TaxonomyIndex, build_taxonomy
from .validation import validate_integrity

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PipelineResult:
    """Outcome of a single pipeline run."""

    corpus: Corpus
    index: TaxonomyIndex
    report: ValidationReport
    routes: RouteTable

    @property
    def published(self) -> bool:
        """True when the route table may be handed to the renderer."""
        return self.report.ok

    @property
    def published_slugs(self) -> list[str]:
        drafts = {item.slug for item in self.corpus.items if item.is_draft}
        return sorted({slug for slug in self.routes.refs(RouteKind.POST) if slug not in drafts})


def run_pipeline(
    config: Config,
    *,
    include_drafts: Optional[bool] = None,
    previous: Optional[PublicationState] = None,
) -> PipelineResult:
    """Load the corpus from disk and validate it.

    Raises `CorpusError` when the content root cannot be read; every other
    problem is collected into the report.
    """
    corpus = load_corpus(config)
    return validate_corpus(corpus, config, include_drafts=include_drafts, previous=previous)


def validate_corpus(
    corpus: Corpus,
    config: Config,
    *,
    include_drafts: Optional[bool] = None,
    previous: Optional[PublicationState] = None,
) -> PipelineResult:
    """Validate an already-loaded corpus snapshot and plan its routes."""
    drafts_enabled = config.include_drafts if include_drafts is None else include_drafts
    previous = previous or PublicationState.empty()
    items = corpus.items
    findings: list[Finding] = [
        error(FindingKind.MALFORMED_FRONT_MATTER, entry.slug, entry.message, entry.source_path)
        for entry in (*corpus.unreadable, *corpus.unreadable_modules)
    ]

    start = time.perf_counter()
    taxonomy = build_taxonomy(
        items,
        corpus.modules,
        unreadable_slugs=frozenset(entry.slug for entry in corpus.unreadable),
        workers=config.workers,
    )
    findings.extend(taxonomy.findings)
    logger.debug("Taxonomy built in %.3fs", time.perf_counter() - start)

    start = time.perf_counter()
    findings.extend(
        resolve_links(
            items,
            config.routes,
            known_slugs=corpus.known_slugs,
            module_keys=frozenset(taxonomy.index.modules),
            draft_slugs=frozenset(item.slug for item in items if item.is_draft),
            include_drafts=drafts_enabled,
            workers=config.workers,
        )
    )
    logger.debug("Links resolved in %.3fs", time.perf_counter() - start)

    findings.extend(
        validate_integrity(
            items,
            tag_pattern=config.tag_pattern,
            previously_published=previous.published_slugs,
        )
    )

    plan = plan_routes(
        items,
        taxonomy.index,
        findings,
        config.routes,
        include_drafts=drafts_enabled,
    )
    findings.extend(plan.findings)

    report = assemble_report(
        project=config.project_name,
        include_drafts=drafts_enabled,
        stats=build_corpus_stats(corpus, taxonomy.index, plan.table),
        findings=sort_findings(findings),
    )
    if report.ok:
        logger.info("Corpus valid: %d route(s) planned.", len(plan.table.entries))
    else:
        logger.info(
            "Corpus invalid: %d error(s), %d warning(s).", report.error_count, report.warning_count
        )
    return PipelineResult(corpus=corpus, index=taxonomy.index, report=report, routes=plan.table)
