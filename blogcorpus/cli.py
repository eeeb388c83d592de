import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import Config, load_config
from .findings import Severity
from .ingest import CorpusError
from .pipeline import PipelineResult, run_pipeline
from .reporting import FindingRecord, write_report, write_routes
from .state import PublicationState, state_path

console = Console()
app = typer.Typer(help="Validate a blog content corpus and plan its routes.")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log pipeline progress to stderr."),
) -> None:
    """blogcorpus content-integrity toolkit."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@app.command()
def check(
    config_path: str = typer.Option(
        ".", "--config", "-c", help="Configuration file, or a project directory holding blogcorpus.yml."
    ),
    include_drafts: bool = typer.Option(
        False, "--include-drafts", help="Plan routes for draft items (preview mode)."
    ),
    strict: bool = typer.Option(False, "--strict", help="Treat warnings as errors."),
    report_path: str | None = typer.Option(
        None, "--report", "-r", help="Optional directory to write the JSON validation report into."
    ),
) -> None:
    """Validate the corpus and print every finding."""
    config = _load(config_path)
    previous = PublicationState.load(state_path(config))
    result = _run(config, include_drafts=include_drafts or None, previous=previous)
    report = result.report

    if report_path:
        target = write_report(report, Path(report_path))
        console.print(f"[bold green]Report written[/]: {_display_path(target)}")

    if not report.findings:
        console.print(
            f"[bold green]Corpus clean[/]: {report.stats.items} item(s), "
            f"{report.stats.routes} route(s) planned."
        )
        raise typer.Exit()

    _print_findings(report.findings)
    _print_summary(result)

    exit_code = 0
    if report.error_count > 0 or (strict and report.warning_count > 0):
        exit_code = 1
    raise typer.Exit(code=exit_code)


@app.command()
def build(
    config_path: str = typer.Option(
        ".", "--config", "-c", help="Configuration file, or a project directory holding blogcorpus.yml."
    ),
    include_drafts: bool = typer.Option(
        False, "--include-drafts", help="Publish draft items too (preview builds)."
    ),
) -> None:
    """Validate the corpus and write the route table for the renderer."""
    config = _load(config_path)
    tracker_path = state_path(config)
    previous = PublicationState.load(tracker_path)
    result = _run(config, include_drafts=include_drafts or None, previous=previous)
    report = result.report

    report_file = write_report(report, config.output_dir)
    if report.findings:
        _print_findings(report.findings)
    _print_summary(result)

    if not result.published:
        console.print(
            f"[bold red]Publication blocked[/]: {report.error_count} error(s); "
            f"see {_display_path(report_file)}"
        )
        raise typer.Exit(code=1)

    routes_file = write_routes(result.routes, config.output_dir)
    if not result.routes.include_drafts:
        PublicationState.from_slugs(result.published_slugs).save(tracker_path)
    console.print(
        f"[bold green]Routes[/]: {len(result.routes.entries)} route(s) written to "
        f"{_display_path(routes_file)}"
    )


@app.command()
def routes(
    config_path: str = typer.Option(
        ".", "--config", "-c", help="Configuration file, or a project directory holding blogcorpus.yml."
    ),
    include_drafts: bool = typer.Option(False, "--include-drafts", help="Include draft items."),
) -> None:
    """Print the planned route table."""
    config = _load(config_path)
    result = _run(config, include_drafts=include_drafts or None)

    table = Table(title="Route table")
    table.add_column("Path")
    table.add_column("Kind")
    table.add_column("Entity")
    for entry in result.routes.entries:
        target = entry.ref if entry.redirect_to is None else f"{entry.ref} -> {entry.redirect_to}"
        table.add_row(entry.path, entry.kind.value, target)
    console.print(table)

    if not result.published:
        console.print(
            f"[bold yellow]Not publishable[/]: {result.report.error_count} error(s); "
            "run 'check' for details."
        )
        raise typer.Exit(code=1)


@app.command()
def tags(
    config_path: str = typer.Option(
        ".", "--config", "-c", help="Configuration file, or a project directory holding blogcorpus.yml."
    ),
) -> None:
    """Print the derived tag index."""
    config = _load(config_path)
    result = _run(config)

    if not result.index.tags:
        console.print("[bold blue]Tags[/]: no tags in corpus.")
        return
    for tag, slugs in result.index.tags.items():
        console.print(f"[bold]{tag}[/] ({len(slugs)}): {', '.join(slugs)}")


def _run(
    config: Config,
    *,
    include_drafts: bool | None = None,
    previous: PublicationState | None = None,
) -> PipelineResult:
    try:
        return run_pipeline(config, include_drafts=include_drafts, previous=previous)
    except CorpusError as exc:
        console.print(f"[bold red]Corpus unreadable[/]: {exc}")
        raise typer.Exit(code=2) from exc


def _print_findings(findings: list[FindingRecord]) -> None:
    for finding in sorted(findings, key=_finding_sort_key):
        style = "red" if finding.severity is Severity.ERROR else "yellow"
        location = finding.slug
        if finding.source_path:
            location = f"{location} ({finding.source_path})"
        console.print(
            f"[bold {style}]{finding.severity.name}[/] {finding.kind} {escape(location)} - {escape(finding.detail)}"
        )


def _print_summary(result: PipelineResult) -> None:
    report = result.report
    stats = report.stats
    console.print(
        f"[bold blue]Summary[/]: {report.error_count} error(s), {report.warning_count} warning(s) "
        f"across {stats.items} item(s) ({stats.published} published, {stats.drafts} drafts) "
        f"and {stats.modules} module(s)."
    )


def _finding_sort_key(finding: FindingRecord) -> tuple[int, str, str, str]:
    severity_order = 0 if finding.severity is Severity.ERROR else 1
    return (severity_order, finding.slug, finding.kind, finding.detail)


def _display_path(path: Path) -> str:
    try:
        return path.relative_to(Path.cwd()).as_posix()
    except ValueError:
        return path.as_posix()


def _load(path: str) -> Config:
    try:
        return load_config(path)
    except FileNotFoundError as exc:
        raise typer.BadParameter(f"Config file not found: {path}") from exc
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
