"""MITOMI Correct — reviewer commands and the staged correction protocol."""

from mitomi.correct.commands import (
    Abort,
    Command,
    Continue,
    FlagRegion,
    RemoveRegion,
    Reposition,
    UndoLastRemoval,
    UnflagLast,
    parse_command,
    parse_command_text,
)
from mitomi.correct.protocol import (
    BatchHistory,
    CommandSource,
    CorrectionProtocol,
    ReviewState,
    Stage,
    TranscriptSource,
    allowed_commands,
    apply_command,
    is_allowed,
    review_partition,
)

__all__ = [
    "Abort",
    "BatchHistory",
    "Command",
    "CommandSource",
    "Continue",
    "CorrectionProtocol",
    "FlagRegion",
    "RemoveRegion",
    "Reposition",
    "ReviewState",
    "Stage",
    "TranscriptSource",
    "UndoLastRemoval",
    "UnflagLast",
    "allowed_commands",
    "apply_command",
    "is_allowed",
    "parse_command",
    "parse_command_text",
    "review_partition",
]
