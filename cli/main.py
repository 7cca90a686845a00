"""Edu Harvester CLI — entry-point for pipeline operations.

Usage:
    python cli/main.py --help

Command groups:
    filter-check   → one relevance decision for a link
    sort           → bulk classification of the local archive
    resort-remote  → re-sort the remote Review_Needed queue
    archive        → mirror / purge the Google Drive archive
    stats          → scraper counters
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from harvester.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from typing import Optional

import typer

from harvester.config import settings
from harvester.models import LinkContext

from cli.commands import archive as archive_commands
from cli.commands.archive import archive_app
from cli.commands.stats import stats_app

app = typer.Typer(
    name="harvest",
    help="Edu Harvester pipeline CLI.",
    no_args_is_help=True,
)
app.add_typer(archive_app, name="archive")
app.add_typer(stats_app, name="stats")


def _classification_client():
    from harvester.ai.client import LLMClassificationClient

    return LLMClassificationClient()


# ---------------------------------------------------------------------------
# Relevance filter
# ---------------------------------------------------------------------------
@app.command("filter-check")
def filter_check(
    url: str = typer.Argument(..., help="Link URL to evaluate."),
    text: str = typer.Option("", "--text", help="Anchor text of the link."),
    context: str = typer.Option("", "--context", help="Text surrounding the link."),
    title: str = typer.Option("", "--title", help="Title of the page the link was found on."),
    min_confidence: Optional[float] = typer.Option(
        None, "--min-confidence", help="Override the approval threshold."
    ),
) -> None:
    """Ask the relevance filter whether a single link should be downloaded."""
    from harvester.ai.relevance import RelevanceFilter

    relevance = RelevanceFilter(_classification_client())
    if min_confidence is not None:
        relevance.update_config(min_confidence=min_confidence)

    decision = relevance.decide(
        LinkContext(url=url, link_text=text, surrounding_text=context, page_title=title)
    )
    verdict = "DOWNLOAD" if decision.should_download else "SKIP"
    typer.echo(f"[filter-check] {verdict}  confidence={decision.confidence:.2f}")
    typer.echo(f"[filter-check] Reasoning: {decision.reasoning}")
    if decision.detected_subject or decision.detected_grade:
        typer.echo(
            f"[filter-check] Detected: subject={decision.detected_subject or '-'}  "
            f"grade={decision.detected_grade or '-'}"
        )


# ---------------------------------------------------------------------------
# Sorting
# ---------------------------------------------------------------------------
@app.command("sort")
def sort_local(
    root: Optional[Path] = typer.Option(None, "--root", help="Archive root (default: downloads dir)."),
    threshold: Optional[float] = typer.Option(None, "--threshold", help="Minimum confidence to file."),
    pdf_context: Optional[bool] = typer.Option(
        None, "--pdf-context/--no-pdf-context", help="Send first-page PDF text to the model."
    ),
) -> None:
    """Classify unsorted files in the local archive into grade/subject folders."""
    from harvester.ai.sorter import ClassificationSorter
    from harvester.sorting import sort_local_archive
    from harvester.storage.mappings import MappingStore

    archive_root = root or settings.downloads_dir
    if not archive_root.is_dir():
        typer.echo(f"[sort] Archive root {archive_root} does not exist.")
        raise typer.Exit(1)

    report = sort_local_archive(
        archive_root,
        ClassificationSorter(_classification_client()),
        mappings=MappingStore(settings.mappings_path),
        threshold=threshold,
        use_pdf_context=pdf_context,
    )
    typer.echo(
        f"[sort] Sorted: {len(report.sorted)}  Review: {len(report.review)}  "
        f"Failed: {len(report.failed)}"
    )
    if report.unmapped:
        typer.echo(f"[sort] ⚠️  {len(report.unmapped)} mapping(s) could not be saved.")


@app.command("resort-remote")
def resort_remote(
    folder_id: Optional[str] = typer.Option(None, "--folder-id", help="Drive root folder id."),
    threshold: Optional[float] = typer.Option(None, "--threshold", help="Minimum confidence to file."),
) -> None:
    """Re-classify files in the remote Review_Needed folder by filename."""
    from harvester.ai.sorter import ClassificationSorter
    from harvester.sorting import resort_remote_review

    root_id = archive_commands.require_folder_id(folder_id)
    sync = archive_commands.open_sync()
    report = resort_remote_review(
        sync,
        ClassificationSorter(_classification_client()),
        root_id,
        threshold=threshold,
    )
    typer.echo(
        f"[resort-remote] Moved: {len(report.sorted)}  Still in review: {len(report.review)}  "
        f"Failed: {len(report.failed)}"
    )


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
