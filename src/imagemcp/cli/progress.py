"""
Rich progress displays for CLI operations.

This module provides spinners and result panels for CLI operations using the
rich library. All output goes to stderr to preserve stdout for
machine-readable output.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from imagemcp.core.batch import BatchResult
from imagemcp.core.image_service import EditResult
from imagemcp.core.response import ResponseEnvelope

# Console for stderr output (preserves stdout for machine output)
console = Console(stderr=True)


@contextmanager
def operation_progress(
    action: str, model: str | None = None, detail: str | None = None
) -> Iterator[None]:
    """
    Display a spinner while an operation runs.

    Args:
        action: What is happening, e.g. "Generating image"
        model: The upstream model being used
        detail: Extra indicator shown after the model, e.g. "3 images"
    """
    progress = Progress(
        SpinnerColumn(spinner_name="dots"),
        TextColumn("[green]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )

    desc_parts = [action]
    if model:
        model_display = model if len(model) <= 40 else f"{model[:37]}..."
        desc_parts.append(f"[dim]({model_display})[/dim]")
    if detail:
        desc_parts.append(f"• [dim cyan]{detail}[/dim cyan]")

    with progress:
        task = progress.add_task(" ".join(desc_parts), total=None)
        yield
        progress.update(task, completed=True)


def _details_table() -> Table:
    table = Table.grid(padding=(0, 2))
    table.add_column(style="cyan", justify="right", vertical="top")
    table.add_column(style="white")
    return table


def _print_panel(table: Table, title: str, style: str = "green") -> None:
    console.print()
    console.print(
        Panel(
            table,
            title=f"[bold {style}]{title}[/bold {style}]",
            border_style=style,
            padding=(1, 2),
        )
    )


def print_generate_result(envelope: ResponseEnvelope, prompt: str, model: str) -> None:
    """Print a panel describing a generated image."""
    meta = envelope.metadata
    table = _details_table()
    if envelope.file_path:
        table.add_row("Saved to", f"[bold green]{envelope.file_path}[/bold green]")
    if envelope.image_url:
        table.add_row("URL", envelope.image_url)
    table.add_row("Size", f"{meta.width}x{meta.height}")
    table.add_row("Format", meta.format)
    table.add_row("Bytes", str(meta.size_bytes))
    table.add_row("Model", model)
    table.add_row("Prompt", f"[dim]{prompt}[/dim]")
    _print_panel(table, "✓ Image Generated")
    for warning in envelope.warnings:
        print_warning(warning)


def print_edit_result(result: EditResult) -> None:
    """Print a panel describing an edited image."""
    table = _details_table()
    if result.saved_image:
        table.add_row("Saved to", f"[bold green]{result.saved_image.local_path}[/bold green]")
    if result.image_url:
        table.add_row("URL", result.image_url)
    table.add_row("Source", result.original_ref)
    table.add_row("Kind", result.edit_kind.value)
    table.add_row("Model", result.model_used)
    table.add_row("Time", f"{result.edit_time_ms / 1000:.1f}s")
    table.add_row("Prompt", f"[dim]{result.original_prompt}[/dim]")
    _print_panel(table, "✓ Image Edited")
    for warning in result.warnings:
        print_warning(warning)


def print_batch_result(result: BatchResult) -> None:
    """Print a per-item table for a batch."""
    table = Table(show_header=True, header_style="bold cyan", box=None, padding=(0, 2))
    table.add_column("#", justify="right")
    table.add_column("Status")
    table.add_column("Source")
    table.add_column("Result")
    for index, item in enumerate(result.items, start=1):
        status = "[green]✓[/green]" if item.success else "[red]✗[/red]"
        if item.success:
            detail = item.saved_image.local_path if item.saved_image else (item.image_url or "")
        else:
            detail = f"[red]{item.error or ''}[/red]"
        table.add_row(str(index), status, item.original_ref, detail)

    style = "green" if result.failed == 0 else "yellow"
    title = f"Batch: {result.succeeded}/{result.total} succeeded in {result.timing_ms / 1000:.1f}s"
    _print_panel(table, title, style=style)


def print_info(message: str) -> None:
    """Print an info message in cyan."""
    console.print(f"[cyan]ℹ[/cyan] {message}")


def print_warning(message: str) -> None:
    """Print a warning message in yellow."""
    console.print(f"[yellow]⚠[/yellow] {message}")


def print_error(message: str) -> None:
    """Print an error message in red."""
    console.print(f"[red]✗[/red] {message}")


def print_success(message: str) -> None:
    """Print a success message in green."""
    console.print(f"[green]✓[/green] {message}")
