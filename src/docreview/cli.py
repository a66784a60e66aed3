"""Document review CLI."""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from docreview.config import settings
from docreview.errors import DocReviewError
from docreview.log import configure_logging
from docreview.models import FieldStatus
from docreview.review import FieldStateStore, ReviewSession, UploadedDocument

app = typer.Typer(
    name="docreview",
    help="Review extracted document fields and export filled documents",
    add_completion=False,
)
console = Console()

STATUS_STYLES = {
    FieldStatus.FILLED: "green",
    FieldStatus.EMPTY: "red",
    FieldStatus.UNCERTAIN: "yellow",
    FieldStatus.SKIPPED: "dim",
}

IMAGE_MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
    ".webp": "image/webp",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
}


def _fail(message: str) -> None:
    console.print(f"[bold red]Error:[/bold red] {message}")
    raise typer.Exit(code=1)


def _open_session(
    payload_path: Path,
    edits: Optional[list[str]],
    skips: Optional[list[str]],
    image_path: Optional[Path] = None,
) -> ReviewSession:
    """Load a payload, apply --set/--skip edits and return the session."""
    configure_logging(settings.log_level)

    upload = None
    if image_path is not None:
        upload = UploadedDocument(
            name=image_path.name,
            mime_type=IMAGE_MIME_TYPES.get(image_path.suffix.lower(), "application/octet-stream"),
            data=image_path.read_bytes(),
        )

    session = ReviewSession()
    try:
        store = session.load_payload(payload_path.read_text(encoding="utf-8"), upload=upload)
    except DocReviewError as exc:
        _fail(str(exc))

    for edit in edits or []:
        key, sep, value = edit.partition("=")
        if not sep:
            _fail(f"Invalid --set '{edit}', expected KEY=VALUE")
        store.set_value(key.strip(), value)
    for key in skips or []:
        store.toggle_skip(key.strip())

    return session


def _print_fields(store: FieldStateStore) -> None:
    table = Table(title="Fields")
    table.add_column("Key", style="cyan")
    table.add_column("Label")
    table.add_column("Type")
    table.add_column("Value", overflow="fold")
    table.add_column("Status")
    table.add_column("Req", justify="center")

    for field in store:
        value = field.value
        if field.type.is_raster and value:
            value = "<image>"
        style = STATUS_STYLES[field.status]
        table.add_row(
            field.key,
            field.label,
            field.type.value,
            value,
            f"[{style}]{field.status.value}[/{style}]",
            "*" if field.required else "",
        )
    console.print(table)


@app.command()
def summary(
    payload_path: Path = typer.Argument(..., exists=True, help="Extraction result JSON"),
) -> None:
    """Show the analysis summary and field table."""
    session = _open_session(payload_path, None, None)
    store = session.store
    analysis = store.to_analysis()

    console.print(f"[bold blue]{analysis.document_type or 'Document Analysis'}[/bold blue]")
    console.print(f"[dim]{analysis.summary}[/dim]")
    console.print(f"Completion: [bold]{store.compute_completion()}%[/bold]")
    console.print()
    _print_fields(store)

    if analysis.security_risks:
        console.print("[bold red]Security & PII[/bold red]")
        for risk in analysis.security_risks:
            console.print(f"  • {risk}")
    if analysis.actionable_insights:
        console.print("[bold blue]Action Items[/bold blue]")
        for item in analysis.actionable_insights:
            console.print(f"  • {item}")


@app.command()
def validate(
    payload_path: Path = typer.Argument(..., exists=True, help="Extraction result JSON"),
    edits: Optional[list[str]] = typer.Option(None, "--set", help="KEY=VALUE edit"),
    skips: Optional[list[str]] = typer.Option(None, "--skip", help="Toggle skip on KEY"),
) -> None:
    """Validate required fields."""
    session = _open_session(payload_path, edits, skips)
    report = session.store.validate()

    console.print(f"Completion: [bold]{session.store.compute_completion()}%[/bold]")
    if report.valid:
        console.print(f"[green]{report.message}[/green]")
        return

    console.print(f"[red]{report.message}[/red]")
    for field in report.missing:
        console.print(f"  • {field.key} ({field.label})")
    raise typer.Exit(code=1)


@app.command("export-json")
def export_json(
    payload_path: Path = typer.Argument(..., exists=True, help="Extraction result JSON"),
    edits: Optional[list[str]] = typer.Option(None, "--set", help="KEY=VALUE edit"),
    skips: Optional[list[str]] = typer.Option(None, "--skip", help="Toggle skip on KEY"),
    output_dir: Path = typer.Option(Path(settings.export_dir), help="Output directory"),
) -> None:
    """Export the edited analysis as JSON."""
    session = _open_session(payload_path, edits, skips)
    path = session.export_structured().save(output_dir)
    console.print(f"[bold green]Exported:[/bold green] {path}")


@app.command("export-pdf")
def export_pdf(
    payload_path: Path = typer.Argument(..., exists=True, help="Extraction result JSON"),
    image_path: Path = typer.Argument(..., exists=True, help="Original document image"),
    edits: Optional[list[str]] = typer.Option(None, "--set", help="KEY=VALUE edit"),
    skips: Optional[list[str]] = typer.Option(None, "--skip", help="Toggle skip on KEY"),
    output_dir: Path = typer.Option(Path(settings.export_dir), help="Output directory"),
) -> None:
    """Burn field values into the original image and export a PDF."""
    session = _open_session(payload_path, edits, skips, image_path=image_path)
    if not session.can_export_document:
        _fail(f"{image_path.name} is not an image; document export is unavailable")

    try:
        artifact = asyncio.run(session.export_document())
    except DocReviewError as exc:
        _fail(str(exc))

    path = artifact.save(output_dir)
    console.print(f"[bold green]Exported:[/bold green] {path}")


if __name__ == "__main__":
    app()
