"""Shared CLI utilities — Rich console, logging, error handling, output paths."""

from __future__ import annotations

import functools
import logging
import traceback
from pathlib import Path
from typing import Any, Callable

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

console = Console()

# Set by the --verbose flag on the top-level CLI group.
verbose: bool = False


def setup_logging(debug: bool = False) -> None:
    """Route library logging through Rich on the shared console."""
    handler = RichHandler(console=console, show_path=debug, rich_tracebacks=debug)
    root = logging.getLogger("mitomi")
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if debug else logging.INFO)
    root.propagate = False


def error_handler(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator wrapping CLI commands with standard error handling.

    Catches MitomiError (exit 1) and unexpected exceptions (exit 2).
    With --verbose, unexpected errors include the full traceback.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        from mitomi.core.exceptions import MitomiError, UserAbort

        try:
            return func(*args, **kwargs)
        except SystemExit:
            raise
        except UserAbort as e:
            console.print(f"[yellow]Aborted:[/yellow] {e}. No output written.")
            raise SystemExit(1)
        except MitomiError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise SystemExit(1)
        except Exception as e:
            if verbose:
                console.print(f"[red]Internal error:[/red] {e}")
                console.print(traceback.format_exc())
            else:
                console.print(
                    f"[red]Internal error:[/red] {type(e).__name__}: {e}\n"
                    "[dim]Use --verbose for the full traceback.[/dim]"
                )
            raise SystemExit(2)

    return wrapper


def check_output_path(output: str, overwrite: bool) -> Path:
    """Validate an output file path before any work is done.

    Raises:
        SystemExit: With code 1 if the path is a directory, its parent is
            missing, or it exists and ``overwrite`` is False.
    """
    out_path = Path(output).expanduser()

    if out_path.is_dir():
        console.print(
            f"[red]Error:[/red] Output path is a directory: {out_path}\n"
            f"Provide a file path, e.g. {out_path / 'results.csv'}"
        )
        raise SystemExit(1)

    if not out_path.parent.exists():
        console.print(
            f"[red]Error:[/red] Parent directory does not exist: {out_path.parent}"
        )
        raise SystemExit(1)

    if out_path.exists() and not overwrite:
        console.print(
            f"[red]Error:[/red] Output file already exists: {out_path}\n"
            "Use --overwrite to replace it."
        )
        raise SystemExit(1)

    return out_path


def make_progress() -> Progress:
    """Create a Rich progress bar for CLI operations."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    )


def print_warnings(warnings: list[str], limit: int = 20) -> None:
    """Print per-well warnings, truncated to ``limit`` lines."""
    if not warnings:
        return
    console.print()
    console.print(f"[yellow]Warnings ({len(warnings)}):[/yellow]")
    for w in warnings[:limit]:
        console.print(f"  [dim]- {w}[/dim]")
    if len(warnings) > limit:
        console.print(f"  [dim]... and {len(warnings) - limit} more[/dim]")
