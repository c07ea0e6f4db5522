"""Analysis parameters and their YAML representation."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any

from mitomi.core.exceptions import ConfigurationError, FrameCountError


class ExperimentType(Enum):
    """Kind of binding experiment; fixes how many captured frames are expected."""

    EQUILIBRIUM = "equilibrium"
    DISSOCIATION = "dissociation"


@dataclass(frozen=True)
class AnalysisConfig:
    """Parameters for one analysis run.

    Attributes:
        num_row: Lattice rows (often 56).
        num_col: Lattice columns (often 28).
        experiment: Equilibrium (one captured frame) or dissociation
            (several captured frames).
        saturation_value: Pixel value reported by a saturated sensor.
        button_fg_fraction: Localization foreground disk radius as a
            fraction of the enlarged button radius.
        button_bg_inner: Inner radius of the localization background
            annulus, as a fraction of the enlarged button radius.
        chamber_search_fraction: Half-size of the chamber fallback search
            neighborhood, as a fraction of the chamber radius.
        use_circle_detection: Run the Hough pass before the fallback search.
        hough_threshold: Minimum normalized Hough accumulator value.
        canny_sigma: Gaussian width of the Canny edge detector.
        button_measure_fraction: Button foreground disk radius used for
            extraction, as a fraction of the button radius.
        button_exclusion_fraction: Radius cut out of the chamber disk around
            the button, as a fraction of the button radius.
        chamber_bg_inner: Inner chamber background radius fraction.
        chamber_bg_outer: Outer chamber background radius fraction.
        history_depth: Number of flag/removal batches that can be undone.
        workers: Worker threads for localization and extraction.
    """

    num_row: int = 56
    num_col: int = 28
    experiment: ExperimentType = ExperimentType.EQUILIBRIUM
    saturation_value: float = 65535.0
    button_fg_fraction: float = 0.5
    button_bg_inner: float = 0.75
    chamber_search_fraction: float = 0.875
    use_circle_detection: bool = True
    hough_threshold: float = 0.5
    canny_sigma: float = 1.0
    button_measure_fraction: float = 0.9
    button_exclusion_fraction: float = 1.1
    chamber_bg_inner: float = 1.1
    chamber_bg_outer: float = 1.3
    history_depth: int = 1
    workers: int = 1

    def __post_init__(self) -> None:
        """Validate parameters."""
        if isinstance(self.experiment, str):
            try:
                object.__setattr__(self, "experiment", ExperimentType(self.experiment.lower()))
            except ValueError:
                raise ConfigurationError(
                    f"Unknown experiment type {self.experiment!r}. "
                    f"Supported: {sorted(e.value for e in ExperimentType)}"
                ) from None
        if self.num_row < 1 or self.num_col < 1:
            raise ConfigurationError(
                f"Lattice dimensions must be positive, got {self.num_row}x{self.num_col}"
            )
        if self.saturation_value <= 0:
            raise ConfigurationError(
                f"saturation_value must be > 0, got {self.saturation_value}"
            )
        if not (0 < self.button_fg_fraction < self.button_bg_inner < 1):
            raise ConfigurationError(
                "Expected 0 < button_fg_fraction < button_bg_inner < 1, got "
                f"{self.button_fg_fraction} and {self.button_bg_inner}"
            )
        if not (0 < self.chamber_search_fraction <= 1):
            raise ConfigurationError(
                f"chamber_search_fraction must be in (0, 1], got {self.chamber_search_fraction}"
            )
        if not (0 <= self.hough_threshold <= 1):
            raise ConfigurationError(
                f"hough_threshold must be between 0 and 1, got {self.hough_threshold}"
            )
        if self.canny_sigma <= 0:
            raise ConfigurationError(f"canny_sigma must be > 0, got {self.canny_sigma}")
        if self.button_measure_fraction <= 0 or self.button_exclusion_fraction <= 0:
            raise ConfigurationError("Button measurement fractions must be > 0")
        if not (0 < self.chamber_bg_inner < self.chamber_bg_outer):
            raise ConfigurationError(
                "Expected 0 < chamber_bg_inner < chamber_bg_outer, got "
                f"{self.chamber_bg_inner} and {self.chamber_bg_outer}"
            )
        if self.history_depth < 1:
            raise ConfigurationError(f"history_depth must be >= 1, got {self.history_depth}")
        if self.workers < 1:
            raise ConfigurationError(f"workers must be >= 1, got {self.workers}")

    @property
    def num_wells(self) -> int:
        return self.num_row * self.num_col

    def check_captured_frames(self, received: int) -> None:
        """Validate the captured frame count against the experiment type.

        Raises:
            FrameCountError: If equilibrium data has other than one frame,
                or dissociation data has fewer than two.
        """
        if self.experiment is ExperimentType.EQUILIBRIUM and received != 1:
            raise FrameCountError(self.experiment.value, received, "exactly 1")
        if self.experiment is ExperimentType.DISSOCIATION and received < 2:
            raise FrameCountError(self.experiment.value, received, "more than 1")

    def to_dict(self) -> dict[str, Any]:
        """Convert to a YAML/JSON-serializable dict."""
        data = asdict(self)
        data["experiment"] = self.experiment.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AnalysisConfig:
        """Build a config from a mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown analysis parameter(s): {unknown}")
        try:
            return cls(**data)
        except TypeError as e:
            raise ConfigurationError(f"Invalid analysis parameters: {e}") from e


def load_config(path: Path) -> AnalysisConfig:
    """Load an AnalysisConfig from a YAML file.

    Raises:
        ConfigurationError: If the file does not hold a mapping of known
            parameters.
        FileNotFoundError: If the file doesn't exist.
    """
    import yaml

    with open(Path(path)) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: expected a mapping of analysis parameters")
    return AnalysisConfig.from_dict(data)


def save_config(config: AnalysisConfig, path: Path) -> None:
    """Write an AnalysisConfig to a YAML file."""
    import yaml

    with open(Path(path), "w") as f:
        yaml.safe_dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
