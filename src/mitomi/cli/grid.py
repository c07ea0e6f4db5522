"""mitomi grid — fit both lattices and write their coordinates."""

from __future__ import annotations

from pathlib import Path

import click

from mitomi.cli.utils import check_output_path, console, error_handler


@click.command()
@click.argument("run_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "-o", "--output", required=True, type=click.Path(),
    help="Output table (.csv, or .txt/.tsv for tab-separated).",
)
@click.option(
    "--overwrite", is_flag=True,
    help="Overwrite output file if it exists.",
)
@error_handler
def grid(run_file: str, output: str, overwrite: bool) -> None:
    """Preview the button and chamber lattices of a run file."""
    from mitomi.io import load_run_file, write_table
    from mitomi.pipeline import AnalysisPipeline

    out_path = check_output_path(output, overwrite)
    plan = load_run_file(Path(run_file))
    images = plan.load_images()

    pipeline = AnalysisPipeline(plan.config)
    buttons, chambers = pipeline.build_lattices(
        images, plan.button_corners, plan.chamber_corners,
    )
    store = pipeline.new_store(buttons, chambers)
    rows = write_table(store.to_frame(), out_path, include_removed=True)

    console.print()
    console.print("[green]Lattices fitted[/green]")
    console.print(f"  Sites: {rows} ({plan.config.num_row} rows x {plan.config.num_col} columns)")
    console.print(f"  Button radius: {buttons.radius} px")
    console.print(f"  Chamber radius: {chambers.radius} px")
    console.print(f"  Written to: {out_path}")
