"""Exception classes for the MITOMI analysis core."""


class MitomiError(Exception):
    """Base exception for all analysis errors."""


class ConfigurationError(MitomiError):
    """Raised when a run's inputs violate a precondition. Never retried."""


class FrameCountError(ConfigurationError):
    """Raised when the number of captured frames does not fit the experiment type."""

    def __init__(self, experiment: str, received: int, expected: str) -> None:
        super().__init__(
            f"Expected {expected} captured frame(s) for {experiment} analysis, "
            f"received {received}"
        )
        self.experiment = experiment
        self.received = received


class ImageDimensionError(ConfigurationError):
    """Raised when the channels of an image set do not share row/column extent."""

    def __init__(self, shapes: dict[str, tuple[int, ...]] | None = None) -> None:
        if shapes:
            detail = ", ".join(f"{name}={shape}" for name, shape in shapes.items())
            msg = f"Image dimensions do not match: {detail}"
        else:
            msg = "Image dimensions do not match"
        super().__init__(msg)
        self.shapes = shapes or {}


class CornerSampleError(ConfigurationError):
    """Raised when circumference samples cannot define a corner circle."""

    def __init__(self, reason: str, corner: int | None = None) -> None:
        msg = f"Corner {corner}: {reason}" if corner is not None else reason
        super().__init__(msg)
        self.corner = corner


class LatticeError(ConfigurationError):
    """Raised when four corner centers cannot be turned into a lattice."""


class CommandNotAllowedError(ConfigurationError):
    """Raised when a correction command is issued in a stage that does not accept it."""

    def __init__(self, command: str, stage: str) -> None:
        super().__init__(f"Command {command!r} is not allowed during {stage} review")
        self.command = command
        self.stage = stage


class RunFileError(ConfigurationError):
    """Raised when a run description file is missing or malformed."""

    def __init__(self, reason: str, path: str | None = None) -> None:
        msg = f"{path}: {reason}" if path else reason
        super().__init__(msg)
        self.path = path


class UserAbort(MitomiError):
    """Raised when the reviewer aborts (or closes) an interactive stage."""

    def __init__(self, stage: str | None = None) -> None:
        msg = f"User aborted during {stage} review" if stage else "User aborted"
        super().__init__(msg)
        self.stage = stage


class AnalysisCancelled(MitomiError):
    """Raised when a batch stage stops on a cancellation request.

    Wells finished before the request keep their results.
    """

    def __init__(self, stage: str, completed: int, total: int) -> None:
        super().__init__(f"{stage} cancelled after {completed} of {total} wells")
        self.stage = stage
        self.completed = completed
        self.total = total
