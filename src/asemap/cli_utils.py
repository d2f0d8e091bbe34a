"""
Shared CLI utilities for asemap.

Provides file validation, the single place where pipeline errors are turned
into a user-facing message and exit status, and dry-run reporting.
"""

from pathlib import Path
from typing import List, Optional
import logging
import os

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from asemap.errors import (
    AseError,
    ConfigurationError,
    IngestionError,
    ProcessingConsistencyError,
)

console = Console()
logger = logging.getLogger("asemap")


def format_file_size(size_bytes: int) -> str:
    """Format file size in human-readable format."""
    if size_bytes > 1_000_000_000:
        return f"{size_bytes / 1_000_000_000:.1f} GB"
    elif size_bytes > 1_000_000:
        return f"{size_bytes / 1_000_000:.1f} MB"
    return f"{size_bytes / 1_000:.1f} KB"


def check_file_status(path: str) -> tuple[str, str]:
    """Check if file exists and return status and formatted size.

    Returns:
        Tuple of (status_string, size_string) where status is Rich-formatted
    """
    p = Path(path)
    if p.is_file():
        size_str = format_file_size(p.stat().st_size)
        return "[green]✓ Found[/green]", size_str
    return "[red]✗ Not found[/red]", "-"


def check_output_writable(out_path: Path) -> str:
    """Check if output folder is writable and return Rich-formatted status."""
    if out_path.exists() and os.access(out_path, os.W_OK):
        return "[green]Yes[/green]"
    if not out_path.exists():
        parent = out_path.parent or Path(".")
        if parent.exists() and os.access(parent, os.W_OK):
            return "[green]Yes (will create)[/green]"
    return "[red]No - check permissions[/red]"


def create_dry_run_panel(subtitle: str = "Validating inputs without running analysis") -> Panel:
    """Create the dry-run mode header panel."""
    return Panel(
        f"[bold]Dry Run Mode[/bold]\n[dim]{subtitle}[/dim]",
        border_style="yellow",
    )


def create_input_validation_table(inputs: List[tuple[str, str]]) -> Table:
    """Table of (description, path) inputs with their status and size."""
    table = Table(title="Input Validation", show_header=True)
    table.add_column("File", style="cyan")
    table.add_column("Path", style="dim")
    table.add_column("Status", style="green")
    table.add_column("Size", style="dim")

    for description, path in inputs:
        status, size = check_file_status(path)
        table.add_row(description, path, status, size)
    return table


ERROR_TITLES = {
    ConfigurationError: "Configuration Error",
    IngestionError: "Fatal Loading Error",
    ProcessingConsistencyError: "Processing Error",
}


def handle_error(
    e: Exception,
    context: str,
    extra_hints: Optional[dict[str, str]] = None
) -> None:
    """Report an exception with a hint and exit with status 1.

    Args:
        e: The exception that occurred
        context: Description of what was being done (e.g., "ASE analysis")
        extra_hints: Additional error patterns and hints to check
    """
    error_msg = str(e)
    logger.critical(f"Error during {context}: {error_msg}", exc_info=e)

    hints = {
        "not sorted": "This is a bug, please report it with the log file.",
        "columns instead of 2": "Sample mapping lines must be: reference_sample<TAB>study_sample.",
        "missing required columns": "Count files need chrom, pos, ref, alt, ref_count and alt_count columns.",
        "not indexed": "Index the reference panel with bcftools index or tabix.",
        "Permission denied": "Check file permissions or try a different output location.",
        "No space left": "Free up disk space or write results to a different output folder.",
    }

    if extra_hints:
        hints.update(extra_hints)

    hint = "Check input files and parameters. Use --help for usage information."
    for pattern, suggestion in hints.items():
        if pattern.lower() in error_msg.lower():
            hint = suggestion
            break

    title = "Error"
    if isinstance(e, AseError):
        for error_type, error_title in ERROR_TITLES.items():
            if isinstance(e, error_type):
                title = error_title
                break

    console.print(
        Panel(
            f"[red]Error during {context}:[/red]\n"
            f"  {error_msg}\n\n"
            f"[dim]Hint: {hint}[/dim]",
            title=title,
            border_style="red",
        )
    )
    raise typer.Exit(code=1)
