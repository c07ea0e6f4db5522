"""YAML run description: images, orientation, parameters, corners, corrections.

Example::

    images:
      surface: surface.tif
      solubilized: solubilized.tif      # one multi-page file or a list
      captured: [captured_1.tif, captured_2.tif]
    orientation: [rotate_cw, flip_lr]
    parameters:
      num_row: 56
      num_col: 28
      experiment: equilibrium
    corners:
      button:                           # four corners, >= 3 (x, y) points each
        - [[101, 90], [110, 99], [101, 108]]
        - ...
      chamber:
        - ...
    corrections:                        # optional review transcript
      - continue
      - {remove_region: [0, 0, 300, 200]}
      - continue
      - continue

Relative image paths are resolved against the run file's directory.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from mitomi.core.config import AnalysisConfig
from mitomi.core.exceptions import ConfigurationError, RunFileError
from mitomi.core.models import ImageSet
from mitomi.correct.commands import Command, parse_command
from mitomi.io.orientation import orient, validate_ops
from mitomi.io.tiff import load_image_set

Samples = list[list[tuple[float, float]]]

_TOP_LEVEL = {"images", "orientation", "parameters", "corners", "corrections"}


@dataclass
class RunSpec:
    """Everything needed to analyze one chip without interaction.

    Attributes:
        surface: Surface image path.
        solubilized: Solubilized frame file(s).
        captured: Captured frame file(s).
        config: Analysis parameters.
        button_corners: Circumference samples of the four corner buttons.
        chamber_corners: Circumference samples of the four corner chambers.
        orientation: Orientation operations applied after loading.
        corrections: Review transcript, or None to review interactively.
        source: Path of the run file, when loaded from disk.
    """

    surface: Path
    solubilized: list[Path]
    captured: list[Path]
    config: AnalysisConfig
    button_corners: Samples
    chamber_corners: Samples
    orientation: list[str] = field(default_factory=list)
    corrections: list[Command] | None = None
    source: Path | None = None

    def load_images(self) -> ImageSet:
        """Read the three channels and apply the orientation operations."""
        images = load_image_set(self.surface, self.solubilized, self.captured)
        return orient(images, self.orientation)


def _paths(value: Any, base: Path, name: str) -> list[Path]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list) or not value or not all(isinstance(v, str) for v in value):
        raise RunFileError(f"images.{name} must be a path or a list of paths")
    return [(base / v) if not Path(v).is_absolute() else Path(v) for v in value]


def _corners(value: Any, name: str) -> Samples:
    if not isinstance(value, list) or len(value) != 4:
        raise RunFileError(f"corners.{name} must list exactly 4 corners")
    corners: Samples = []
    for i, points in enumerate(value, start=1):
        if not isinstance(points, list) or len(points) < 3:
            raise RunFileError(f"corners.{name}[{i}] needs at least 3 (x, y) points")
        parsed: list[tuple[float, float]] = []
        for point in points:
            if not isinstance(point, (list, tuple)) or len(point) != 2:
                raise RunFileError(f"corners.{name}[{i}]: bad point {point!r}")
            try:
                parsed.append((float(point[0]), float(point[1])))
            except (TypeError, ValueError):
                raise RunFileError(f"corners.{name}[{i}]: bad point {point!r}") from None
        corners.append(parsed)
    return corners


def parse_run(data: Any, base: Path) -> RunSpec:
    """Build a RunSpec from a parsed YAML mapping.

    Args:
        data: Parsed YAML document.
        base: Directory relative image paths are resolved against.

    Raises:
        RunFileError: If the document is malformed.
    """
    if not isinstance(data, dict):
        raise RunFileError("expected a mapping at the top level")
    unknown = sorted(set(data) - _TOP_LEVEL)
    if unknown:
        raise RunFileError(f"unknown section(s) {unknown}")

    images = data.get("images")
    if not isinstance(images, dict) or set(images) != {"surface", "solubilized", "captured"}:
        raise RunFileError("images must name surface, solubilized and captured")
    surface = _paths(images["surface"], base, "surface")
    if len(surface) != 1:
        raise RunFileError("images.surface must be a single file")

    try:
        config = AnalysisConfig.from_dict(data.get("parameters") or {})
        orientation = validate_ops(data.get("orientation") or [])
    except ConfigurationError as e:
        raise RunFileError(str(e)) from e

    corners = data.get("corners")
    if not isinstance(corners, dict) or set(corners) != {"button", "chamber"}:
        raise RunFileError("corners must have 'button' and 'chamber' entries")

    corrections = data.get("corrections")
    if corrections is not None:
        if not isinstance(corrections, list):
            raise RunFileError("corrections must be a list of commands")
        corrections = [parse_command(entry) for entry in corrections]

    return RunSpec(
        surface=surface[0],
        solubilized=_paths(images["solubilized"], base, "solubilized"),
        captured=_paths(images["captured"], base, "captured"),
        config=config,
        button_corners=_corners(corners["button"], "button"),
        chamber_corners=_corners(corners["chamber"], "chamber"),
        orientation=orientation,
        corrections=corrections,
    )


def load_run_file(path: Path) -> RunSpec:
    """Load a run description from a YAML file.

    Raises:
        RunFileError: If the file is missing, is not valid YAML, or is
            malformed.
    """
    import yaml

    path = Path(path)
    if not path.is_file():
        raise RunFileError("run file not found", str(path))
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise RunFileError(f"invalid YAML: {e}", str(path)) from e

    try:
        spec = parse_run(data, path.parent)
    except RunFileError as e:
        if e.path is not None:
            raise
        raise RunFileError(str(e), str(path)) from e
    spec.source = path
    return spec
