"""Terminal review — prompt for correction commands stage by stage."""

from __future__ import annotations

import numpy as np
from rich.prompt import Prompt
from rich.table import Table

from mitomi.cli.utils import console
from mitomi.core.exceptions import RunFileError
from mitomi.core.feature_store import FeatureStore
from mitomi.correct.commands import (
    Abort,
    Command,
    Continue,
    FlagRegion,
    RemoveRegion,
    Reposition,
    UndoLastRemoval,
    UnflagLast,
    parse_command_text,
)
from mitomi.correct.protocol import Stage, allowed_commands, is_allowed

_USAGE: dict[type, str] = {
    Continue: "c | continue",
    Abort: "q | abort",
    Reposition: "move X Y NEW_X NEW_Y",
    FlagRegion: "flag X0 Y0 X1 Y1",
    UnflagLast: "unflag",
    RemoveRegion: "remove X0 Y0 X1 Y1",
    UndoLastRemoval: "undo",
}

# Wells listed individually per category before truncating
_MAX_LISTED = 10


class PromptCommandSource:
    """Read correction commands from the terminal.

    Each prompt shows the stage's well categories with counts and the
    coordinates of the first few wells. Parse errors and commands the
    stage does not accept are reported and the prompt repeats. End of
    input counts as closing the review.
    """

    def __init__(self, store: FeatureStore) -> None:
        self._store = store
        self._shown: Stage | None = None

    def next_command(self, stage: Stage, partition: dict[str, np.ndarray]) -> Command | None:
        if self._shown is not stage:
            self._show_help(stage)
            self._shown = stage
        self._show_partition(stage, partition)

        while True:
            try:
                text = Prompt.ask(f"[bold]{stage.value}[/bold]", default="continue")
            except EOFError:
                return None
            try:
                command = parse_command_text(text)
            except RunFileError as e:
                console.print(f"[red]{e}[/red]")
                continue
            if not is_allowed(stage, command):
                console.print(f"[red]Not available during {stage.value} review[/red]")
                continue
            return command

    def _show_help(self, stage: Stage) -> None:
        console.print(f"\n[bold]{stage.value.capitalize()} review[/bold]")
        for cls in allowed_commands(stage):
            console.print(f"  [dim]{_USAGE[cls]}[/dim]")

    def _show_partition(self, stage: Stage, partition: dict[str, np.ndarray]) -> None:
        kind = "chamber" if stage is Stage.CHAMBER_POSITION else "button"
        xs, ys = self._store.coordinates(kind)
        table = Table(show_header=True)
        table.add_column("Wells", style="bold")
        table.add_column("Count", justify="right")
        table.add_column("First positions")
        for name, indices in partition.items():
            shown = ", ".join(f"({xs[m]}, {ys[m]})" for m in indices[:_MAX_LISTED])
            if len(indices) > _MAX_LISTED:
                shown += ", ..."
            table.add_row(name, str(len(indices)), shown)
        console.print(table)
