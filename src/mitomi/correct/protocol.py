"""CorrectionProtocol — three review stages over a FeatureStore."""

from __future__ import annotations

import logging
from collections import deque
from enum import Enum
from typing import Iterable, Iterator, Protocol

import numpy as np

from mitomi.core._numeric import round_half_up
from mitomi.core.exceptions import CommandNotAllowedError, UserAbort
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
    command_name,
)

logger = logging.getLogger(__name__)


class Stage(Enum):
    """Review stages, in the order they run."""

    BUTTON_POSITION = "button position"
    INCLUSION = "inclusion"
    CHAMBER_POSITION = "chamber position"


_ALLOWED: dict[Stage, tuple[type, ...]] = {
    Stage.BUTTON_POSITION: (Continue, Abort, Reposition),
    Stage.INCLUSION: (Continue, Abort, FlagRegion, UnflagLast, RemoveRegion, UndoLastRemoval),
    Stage.CHAMBER_POSITION: (Continue, Abort, Reposition),
}


def is_allowed(stage: Stage, command: Command) -> bool:
    """Whether ``stage`` accepts ``command``."""
    return isinstance(command, _ALLOWED[stage])


def allowed_commands(stage: Stage) -> tuple[type, ...]:
    """Command types a stage accepts."""
    return _ALLOWED[stage]


class BatchHistory:
    """Bounded stack of well batches changed by flag or removal commands.

    Args:
        depth: Number of batches kept; older ones are dropped.
    """

    def __init__(self, depth: int = 1) -> None:
        self._batches: deque[np.ndarray] = deque(maxlen=depth)

    def push(self, indices: np.ndarray) -> None:
        self._batches.append(indices)

    def pop(self) -> np.ndarray | None:
        """Most recent batch, or None when there is nothing to undo."""
        return self._batches.pop() if self._batches else None

    def __len__(self) -> int:
        return len(self._batches)


class ReviewState:
    """FeatureStore under review plus the per-kind undo histories."""

    def __init__(self, store: FeatureStore, history_depth: int = 1) -> None:
        self.store = store
        self.flag_history = BatchHistory(history_depth)
        self.remove_history = BatchHistory(history_depth)


def review_partition(store: FeatureStore, stage: Stage) -> dict[str, np.ndarray]:
    """Disjoint sets of well indices the reviewer sees highlighted in a stage.

    Button position: autodetected / manual. Inclusion: active / flagged
    (non-removed). Chamber position: autodetected / manual / flagged, all
    non-removed.
    """
    kept = ~store.remove
    if stage is Stage.BUTTON_POSITION:
        return {
            "autodetected": np.flatnonzero(store.autofind_button),
            "manual": np.flatnonzero(~store.autofind_button),
        }
    if stage is Stage.INCLUSION:
        return {
            "active": np.flatnonzero(kept & ~store.flag),
            "flagged": np.flatnonzero(kept & store.flag),
        }
    unflagged = kept & ~store.flag
    return {
        "autodetected": np.flatnonzero(unflagged & store.autofind_chamber),
        "manual": np.flatnonzero(unflagged & ~store.autofind_chamber),
        "flagged": np.flatnonzero(kept & store.flag),
    }


def apply_command(state: ReviewState, stage: Stage, command: Command) -> bool:
    """Apply one command to the store under review.

    Returns:
        True when the stage is finished (``Continue``), False to stay.

    Raises:
        UserAbort: On ``Abort``.
        CommandNotAllowedError: If the stage does not accept the command.
    """
    if not is_allowed(stage, command):
        raise CommandNotAllowedError(command_name(command), stage.value)

    store = state.store
    if isinstance(command, Continue):
        return True
    if isinstance(command, Abort):
        raise UserAbort(stage.value)

    if isinstance(command, Reposition):
        kind = "button" if stage is Stage.BUTTON_POSITION else "chamber"
        m = store.nearest(kind, command.near.x, command.near.y)
        x, y = round_half_up(command.to.x), round_half_up(command.to.y)
        if kind == "button":
            store.set_button(m, x, y, autofind=False)
        else:
            store.set_chamber(m, x, y, autofind=False)
        logger.debug("Moved %s %d to (%d, %d)", kind, m, x, y)
    elif isinstance(command, FlagRegion):
        inside = command.rect.contains(store.button_x, store.button_y)
        changed = np.flatnonzero(inside & ~store.remove & ~store.flag)
        store.flag[changed] = True
        state.flag_history.push(changed)
        logger.info("Flagged %d wells", len(changed))
    elif isinstance(command, RemoveRegion):
        inside = command.rect.contains(store.button_x, store.button_y)
        changed = np.flatnonzero(inside & ~store.remove)
        store.remove[changed] = True
        state.remove_history.push(changed)
        logger.info("Removed %d wells", len(changed))
    elif isinstance(command, UnflagLast):
        batch = state.flag_history.pop()
        if batch is None:
            logger.warning("No flag batch to undo")
        else:
            store.flag[batch] = False
            logger.info("Unflagged %d wells", len(batch))
    elif isinstance(command, UndoLastRemoval):
        batch = state.remove_history.pop()
        if batch is None:
            logger.warning("No removal batch to undo")
        else:
            store.remove[batch] = False
            logger.info("Restored %d removed wells", len(batch))
    return False


class CommandSource(Protocol):
    """The interactive collaborator: shows a stage and returns the next command.

    Returning None means the review window was closed.
    """

    def next_command(self, stage: Stage, partition: dict[str, np.ndarray]) -> Command | None:
        ...


class TranscriptSource:
    """Replay a recorded list of commands."""

    def __init__(self, commands: Iterable[Command]) -> None:
        self._commands: Iterator[Command] = iter(commands)

    def next_command(self, stage: Stage, partition: dict[str, np.ndarray]) -> Command | None:
        return next(self._commands, None)


class CorrectionProtocol:
    """Drive the three review stages over a FeatureStore.

    Stages run strictly in order and each ends only on ``Continue``. An
    ``Abort`` or a closed source raises ``UserAbort`` and leaves the store
    as it was at that moment.

    Args:
        store: FeatureStore to edit in place.
        history_depth: Number of flag/removal batches that can be undone.
    """

    def __init__(self, store: FeatureStore, history_depth: int = 1) -> None:
        self.state = ReviewState(store, history_depth)

    def run_stage(self, stage: Stage, source: CommandSource) -> int:
        """Run one stage to completion.

        Returns:
            Number of commands applied, the final ``Continue`` included.

        Raises:
            UserAbort: On ``Abort`` or when the source is exhausted.
        """
        applied = 0
        while True:
            command = source.next_command(stage, review_partition(self.state.store, stage))
            if command is None:
                raise UserAbort(stage.value)
            applied += 1
            if apply_command(self.state, stage, command):
                logger.info("%s review complete", stage.value.capitalize())
                return applied

    def run(self, source: CommandSource) -> None:
        """Run all stages in order."""
        for stage in Stage:
            self.run_stage(stage, source)
