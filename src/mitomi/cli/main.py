"""MITOMI CLI — top-level Click group."""

from __future__ import annotations

import click


@click.group()
@click.version_option(package_name="mitomi")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging and full tracebacks on errors.")
def cli(verbose: bool) -> None:
    """MITOMI — button and chamber quantification for microfluidic chips."""
    from mitomi.cli import utils

    utils.verbose = verbose
    utils.setup_logging(verbose)


def _register_commands() -> None:
    """Register all subcommands — imports deferred to avoid loading heavy deps at startup."""
    from mitomi.cli.analyze import analyze
    from mitomi.cli.grid import grid

    cli.add_command(analyze)
    cli.add_command(grid)


_register_commands()
