"""Correction commands issued by the reviewer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from mitomi.core.exceptions import RunFileError
from mitomi.core.models import Point, Rect


@dataclass(frozen=True)
class Continue:
    """Accept the current stage and move on."""


@dataclass(frozen=True)
class Abort:
    """Stop the review; nothing is written."""


@dataclass(frozen=True)
class Reposition:
    """Move the feature nearest to ``near`` so it is centered on ``to``."""

    near: Point
    to: Point


@dataclass(frozen=True)
class FlagRegion:
    """Flag every non-removed well strictly inside ``rect``."""

    rect: Rect


@dataclass(frozen=True)
class UnflagLast:
    """Undo the most recent flag batch."""


@dataclass(frozen=True)
class RemoveRegion:
    """Remove every well strictly inside ``rect``."""

    rect: Rect


@dataclass(frozen=True)
class UndoLastRemoval:
    """Undo the most recent removal batch."""


Command = Union[Continue, Abort, Reposition, FlagRegion, UnflagLast, RemoveRegion, UndoLastRemoval]

_NAMES: dict[str, type] = {
    "continue": Continue,
    "abort": Abort,
    "reposition": Reposition,
    "flag_region": FlagRegion,
    "unflag_last": UnflagLast,
    "remove_region": RemoveRegion,
    "undo_last_removal": UndoLastRemoval,
}


def command_name(command: Command) -> str:
    """Transcript name of a command (e.g. ``"flag_region"``)."""
    for name, cls in _NAMES.items():
        if isinstance(command, cls):
            return name
    raise TypeError(f"Not a correction command: {command!r}")


def _numbers(value: Any, count: int, name: str) -> list[float]:
    if not isinstance(value, (list, tuple)) or len(value) != count:
        raise RunFileError(f"{name} expects {count} numbers, got {value!r}")
    try:
        return [float(v) for v in value]
    except (TypeError, ValueError):
        raise RunFileError(f"{name} expects {count} numbers, got {value!r}") from None


def parse_command(entry: Any) -> Command:
    """Parse one transcript entry.

    Accepted forms::

        continue
        abort
        unflag_last
        undo_last_removal
        {reposition: {near: [x, y], to: [x, y]}}
        {flag_region: [x0, y0, x1, y1]}
        {remove_region: [x0, y0, x1, y1]}

    Raises:
        RunFileError: If the entry is not a known command.
    """
    if isinstance(entry, str):
        name, args = entry.strip().lower(), None
    elif isinstance(entry, dict) and len(entry) == 1:
        name, args = next(iter(entry.items()))
        name = str(name).lower()
    else:
        raise RunFileError(f"Cannot parse correction command {entry!r}")

    if name not in _NAMES:
        raise RunFileError(
            f"Unknown correction command {name!r}. Available: {sorted(_NAMES)}"
        )
    cls = _NAMES[name]

    if cls is Reposition:
        if not isinstance(args, dict) or set(args) != {"near", "to"}:
            raise RunFileError(f"reposition expects 'near' and 'to' points, got {args!r}")
        near = _numbers(args["near"], 2, "reposition.near")
        to = _numbers(args["to"], 2, "reposition.to")
        return Reposition(near=Point(*near), to=Point(*to))
    if cls in (FlagRegion, RemoveRegion):
        return cls(rect=Rect(*_numbers(args, 4, name)))
    if args is not None:
        raise RunFileError(f"{name} takes no arguments, got {args!r}")
    return cls()


def parse_command_text(text: str) -> Command:
    """Parse a command typed at a prompt, e.g. ``"flag 10 10 200 300"``.

    Verbs: ``continue``/``c``, ``abort``/``q``, ``move X0 Y0 X1 Y1``,
    ``flag X0 Y0 X1 Y1``, ``unflag``, ``remove X0 Y0 X1 Y1``, ``undo``.

    Raises:
        RunFileError: If the text is not a known command.
    """
    parts = text.split()
    if not parts:
        raise RunFileError("Empty command")
    verb, args = parts[0].lower(), parts[1:]
    try:
        values = [float(a) for a in args]
    except ValueError:
        raise RunFileError(f"Expected numbers after {verb!r}, got {args}") from None

    simple = {
        "continue": Continue, "c": Continue, "abort": Abort, "q": Abort,
        "unflag": UnflagLast, "undo": UndoLastRemoval,
    }
    if verb in simple and not values:
        return simple[verb]()
    if verb == "move" and len(values) == 4:
        return Reposition(near=Point(values[0], values[1]), to=Point(values[2], values[3]))
    if verb == "flag" and len(values) == 4:
        return FlagRegion(rect=Rect(*values))
    if verb == "remove" and len(values) == 4:
        return RemoveRegion(rect=Rect(*values))
    raise RunFileError(f"Cannot parse command {text!r}")
