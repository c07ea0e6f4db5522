"""mitomi analyze — run the full analysis described by a run file."""

from __future__ import annotations

import dataclasses
from pathlib import Path

import click

from mitomi.cli.utils import check_output_path, console, error_handler, make_progress, print_warnings


@click.command()
@click.argument("run_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "-o", "--output", required=True, type=click.Path(),
    help="Output table (.csv, or .txt/.tsv for tab-separated).",
)
@click.option(
    "--interactive", is_flag=True,
    help="Review on the terminal instead of replaying the run file's corrections.",
)
@click.option(
    "--workers", type=int, default=None,
    help="Worker threads for localization and extraction.",
)
@click.option(
    "--include-removed", is_flag=True,
    help="Also write rows for removed wells.",
)
@click.option(
    "--overwrite", is_flag=True,
    help="Overwrite output file if it exists.",
)
@error_handler
def analyze(
    run_file: str,
    output: str,
    interactive: bool,
    workers: int | None,
    include_removed: bool,
    overwrite: bool,
) -> None:
    """Locate, review and measure every well of a chip."""
    from mitomi.correct import TranscriptSource
    from mitomi.io import load_run_file, write_table
    from mitomi.pipeline import AnalysisPipeline

    out_path = check_output_path(output, overwrite)
    plan = load_run_file(Path(run_file))
    config = plan.config
    if workers is not None:
        config = dataclasses.replace(config, workers=workers)

    with console.status("[bold blue]Loading images..."):
        images = plan.load_images()

    pipeline = AnalysisPipeline(config)
    pipeline.validate(images)
    buttons, chambers = pipeline.build_lattices(
        images, plan.button_corners, plan.chamber_corners,
    )
    store = pipeline.new_store(buttons, chambers)

    with make_progress() as progress:
        task = progress.add_task("Locating buttons", total=len(store))

        def on_progress(current: int, total: int) -> None:
            progress.update(task, total=total, completed=current)

        button_result = pipeline.localize_buttons(store, images, buttons, on_progress)
        task = progress.add_task("Locating chambers", total=len(store))
        chamber_result = pipeline.localize_chambers(store, images, chambers, on_progress)

    if interactive:
        from mitomi.cli.review import PromptCommandSource

        pipeline.review(store, PromptCommandSource(store))
    elif plan.corrections is not None:
        pipeline.review(store, TranscriptSource(plan.corrections))
    else:
        console.print("[dim]No corrections given; using automatic positions.[/dim]")

    with make_progress() as progress:
        task = progress.add_task("Extracting", total=len(store))

        def on_extract(current: int, total: int) -> None:
            progress.update(task, total=total, completed=current)

        extraction = pipeline.extract(store, images, on_extract)

    rows = write_table(extraction.table, out_path, include_removed=include_removed)

    # Summary
    console.print()
    console.print("[green]Analysis complete[/green]")
    console.print(
        f"  Buttons identified with automation: "
        f"{button_result.autofound} out of {button_result.total}"
    )
    console.print(
        f"  Chambers identified with automation: "
        f"{chamber_result.autofound} out of {chamber_result.total}"
    )
    console.print(f"  Wells measured: {extraction.wells_measured}")
    console.print(f"  Wells removed: {extraction.wells_removed}")
    console.print(f"  Rows written: {rows} to {out_path}")

    print_warnings(button_result.warnings + chamber_result.warnings + extraction.warnings)
