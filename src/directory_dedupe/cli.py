"""CLI interface for the directory dedupe engine."""

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .exceptions import DirectoryError

app = typer.Typer(
    name="directory-dedupe",
    help="Duplicate detection and draft review for listing directories",
    add_completion=False,
)
console = Console()

BAND_STYLES = {"high": "red", "medium": "yellow", "low": "cyan"}


def get_config():
    """Load configuration from environment."""
    from dotenv import load_dotenv
    import os

    load_dotenv()

    return {
        "db_path": os.getenv("DIRECTORY_DB_PATH", "./data/directory.db"),
        "geocoding_api_key": os.getenv("GOOGLE_GEOCODING_API_KEY"),
        "reviewer": os.getenv("DIRECTORY_REVIEWER"),
    }


def get_service(config: dict):
    """Wire the service over the SQLite store and, when keyed, the geocoder."""
    from .geo import GoogleGeocoder
    from .projections import SQLiteDirectoryStore
    from .service import DirectoryService

    store = SQLiteDirectoryStore(config["db_path"])
    geo = GoogleGeocoder(config["geocoding_api_key"]) if config.get("geocoding_api_key") else None
    return DirectoryService(store, store, geo=geo)


def _load_json(file_path: Path):
    try:
        return json.loads(file_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        console.print(f"[red]File not found: {file_path}[/red]")
        raise typer.Exit(1)
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON in {file_path}: {e}[/red]")
        raise typer.Exit(1)


def _fail(error: Exception):
    console.print(f"[red]Error: {escape(str(error))}[/red]")
    raise typer.Exit(1)


@app.command()
def check(
    file_path: Path = typer.Argument(..., help="JSON file with one candidate listing"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw result as JSON"),
):
    """Check a candidate listing for duplicates."""
    from pydantic import ValidationError

    service = get_service(get_config())
    try:
        result = service.check_duplicates(_load_json(file_path))
    except ValidationError as e:
        _fail(e)

    if as_json:
        typer.echo(result.model_dump_json(indent=2))
        return

    if not result.has_duplicates:
        console.print("[green]No duplicates found[/green]")
    else:
        band = result.confidence_band.value
        console.print(
            Panel(
                f"[bold]Best match:[/bold] {result.best_match.existing_id} "
                f"({result.best_match.match_reason})",
                title=f"[{BAND_STYLES[band]}]{band} confidence[/{BAND_STYLES[band]}]",
            )
        )
        _display_matches(result.matches)

    if result.vetoed:
        console.print(f"[dim]{len(result.vetoed)} match(es) vetoed as too far away[/dim]")


@app.command("import")
def import_rows(
    file_path: Path = typer.Argument(..., help="JSON array of listing rows"),
    submitted_by: str = typer.Option(None, "--submitted-by", "-u", help="Importing user"),
):
    """Bulk import listings as drafts awaiting review."""
    rows = _load_json(file_path)
    if not isinstance(rows, list):
        console.print("[red]Expected a JSON array of rows[/red]")
        raise typer.Exit(1)

    service = get_service(get_config())
    report = service.bulk_import(rows, submitted_by=submitted_by)

    table = Table(title="Bulk Import")
    table.add_column("Row", justify="right")
    table.add_column("Name")
    table.add_column("Draft", style="dim")
    table.add_column("Status")
    table.add_column("Duplicates")
    table.add_column("Missing / Errors")

    for row in report.rows:
        table.add_row(
            str(row.row),
            row.name or "",
            row.draft_id[:8] + "..." if row.draft_id else "",
            row.status,
            f"{len(row.duplicates)} ({row.confidence_band.value})" if row.duplicates else "0",
            "; ".join(row.errors) if row.errors else ", ".join(row.missing_fields),
        )

    console.print(table)
    console.print(
        f"Drafts created: {report.drafts_created}  "
        f"Duplicates flagged: {report.duplicates_found}  "
        f"Failed rows: {report.failed}"
    )


@app.command("drafts")
def list_drafts(
    status: str = typer.Option(None, "--status", "-s", help="Filter by status"),
    source: str = typer.Option(None, "--source", help="Filter by source"),
    limit: int = typer.Option(20, "--limit", "-l", help="Maximum results"),
):
    """List drafts."""
    from .models import DraftStatus

    status_filter = None
    if status:
        try:
            status_filter = DraftStatus(status.lower())
        except ValueError:
            console.print(f"[red]Invalid status. Choose from: {[s.value for s in DraftStatus]}[/red]")
            raise typer.Exit(1)

    service = get_service(get_config())
    drafts = service.list_drafts(status=status_filter, source=source, limit=limit)

    table = Table(title="Drafts")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Status")
    table.add_column("Source")
    table.add_column("Matches")

    for draft in drafts:
        table.add_row(
            draft.draft_id,
            draft.payload.name or "",
            draft.status.value,
            draft.source,
            str(len(draft.duplicate_matches)),
        )

    console.print(table)
    console.print(f"[dim]Showing {len(drafts)} drafts[/dim]")


@app.command()
def report(draft_id: str = typer.Argument(..., help="Draft ID")):
    """Show what a draft still needs before approval."""
    service = get_service(get_config())
    try:
        result = service.approval_report(draft_id)
    except DirectoryError as e:
        _fail(e)

    if result.ready:
        console.print(f"[green]Draft {draft_id} is ready for approval[/green]")
    else:
        console.print(f"[yellow]Missing required: {', '.join(result.missing_required)}[/yellow]")
    if result.missing_recommended:
        console.print(f"[dim]Missing recommended: {', '.join(result.missing_recommended)}[/dim]")


def _transition(draft_id: str, action: str, params: dict):
    config = get_config()
    params.setdefault("reviewed_by", config.get("reviewer"))
    service = get_service(config)
    try:
        draft = service.transition_draft(draft_id, action, params)
    except DirectoryError as e:
        _fail(e)
    console.print(f"[green]Draft {draft.draft_id} {draft.status.value}[/green]")
    return draft


@app.command()
def approve(
    draft_id: str = typer.Argument(..., help="Draft ID"),
    reviewer: str = typer.Option(None, "--reviewer", "-r", help="Reviewer name"),
):
    """Approve a pending draft as a new listing."""
    params = {"reviewed_by": reviewer} if reviewer else {}
    draft = _transition(draft_id, "approve", params)
    console.print(f"Created listing {draft.canonical_id}")


@app.command()
def reject(
    draft_id: str = typer.Argument(..., help="Draft ID"),
    notes: str = typer.Option(None, "--notes", "-n", help="Reviewer notes"),
    reviewer: str = typer.Option(None, "--reviewer", "-r", help="Reviewer name"),
):
    """Reject a pending draft."""
    params = {"notes": notes}
    if reviewer:
        params["reviewed_by"] = reviewer
    _transition(draft_id, "reject", params)


@app.command()
def merge(
    draft_id: str = typer.Argument(..., help="Draft ID"),
    existing_id: str = typer.Argument(..., help="Existing listing to merge into"),
    reviewer: str = typer.Option(None, "--reviewer", "-r", help="Reviewer name"),
):
    """Merge a pending draft into an existing listing."""
    params = {"existing_id": existing_id}
    if reviewer:
        params["reviewed_by"] = reviewer
    _transition(draft_id, "merge", params)
    console.print(f"Merged into listing {existing_id}")


@app.command()
def seed(file_path: Path = typer.Argument(..., help="JSON array of existing listings")):
    """Load existing listings into the store."""
    from pydantic import ValidationError

    from .models import ExistingRecord
    from .projections import SQLiteDirectoryStore

    rows = _load_json(file_path)
    if not isinstance(rows, list):
        console.print("[red]Expected a JSON array of listings[/red]")
        raise typer.Exit(1)

    try:
        records = [ExistingRecord.model_validate(row) for row in rows]
    except ValidationError as e:
        _fail(e)

    store = SQLiteDirectoryStore(get_config()["db_path"])
    for record in records:
        store.put(record)
    console.print(f"[green]Seeded {len(records)} listings[/green]")


def _display_matches(matches):
    table = Table(title="Matches")
    table.add_column("Listing")
    table.add_column("Strategy")
    table.add_column("Score")
    table.add_column("Band")
    table.add_column("Distance (km)")

    for match in matches:
        style = BAND_STYLES[match.confidence_band.value]
        table.add_row(
            match.existing_id,
            match.strategy.value,
            f"{match.raw_score:.2f}",
            f"[{style}]{match.confidence_band.value}[/{style}]",
            f"{match.distance_km:.1f}" if match.distance_km is not None else "-",
        )

    console.print(table)


if __name__ == "__main__":
    app()
