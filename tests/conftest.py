"""Shared test fixtures for MITOMI: a small synthetic chip."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import numpy as np
import pytest
import tifffile
import yaml

from mitomi.core import AnalysisConfig, ImageSet

NUM_ROW, NUM_COL = 4, 3
PITCH = 40
ORIGIN = 40
BUTTON_RADIUS = 6
CHAMBER_RADIUS = 10
CHAMBER_OFFSET = (3, 2)
SHAPE = (200, 160)

BUTTON_LEVEL, SURFACE_BG = 20000.0, 1000.0
CHAMBER_LEVEL, SOLUBILIZED_BG = 8000.0, 500.0
CAPTURED_LEVEL, CAPTURED_BG = 5000.0, 200.0

# Wells whose feature sits off its lattice site: {well: (dx, dy)}
BUTTON_JITTER = {5: (2, -1), 6: (-1, 2)}
CHAMBER_JITTER = {5: (-2, 3), 9: (3, -2)}

# Corner wells of a 4 x 3 column-major lattice
CORNERS = (0, 8, 3, 11)


def paint_disk(image: np.ndarray, cx: int, cy: int, radius: float, value: float) -> None:
    """Set every pixel with ``d^2 <= radius^2`` around (cx, cy) to ``value``."""
    yy, xx = np.ogrid[: image.shape[0], : image.shape[1]]
    image[(xx - cx) ** 2 + (yy - cy) ** 2 <= radius ** 2] = value


def circle_samples(cx: float, cy: float, radius: float) -> list[list[float]]:
    """Three exact circumference points (0, 90 and 180 degrees)."""
    cx, cy = float(cx), float(cy)
    return [[cx + radius, cy], [cx, cy + radius], [cx - radius, cy]]


@dataclass
class SyntheticChip:
    """Images plus ground truth for a 4 x 3 chip."""

    images: ImageSet
    lattice_buttons: np.ndarray
    lattice_chambers: np.ndarray
    true_buttons: np.ndarray
    true_chambers: np.ndarray
    button_corners: list[list[list[float]]]
    chamber_corners: list[list[list[float]]]
    button_radius: int = BUTTON_RADIUS
    chamber_radius: int = CHAMBER_RADIUS
    num_row: int = NUM_ROW
    num_col: int = NUM_COL


def _lattice() -> np.ndarray:
    m = np.arange(NUM_ROW * NUM_COL)
    return np.column_stack([ORIGIN + (m // NUM_ROW) * PITCH, ORIGIN + (m % NUM_ROW) * PITCH])


def make_chip(captured_frames: int = 1, solubilized_frames: int = 1) -> SyntheticChip:
    buttons = _lattice()
    chambers = buttons + np.array(CHAMBER_OFFSET)
    true_buttons = buttons.copy()
    true_chambers = chambers.copy()
    for m, shift in BUTTON_JITTER.items():
        true_buttons[m] += shift
    for m, shift in CHAMBER_JITTER.items():
        true_chambers[m] += shift

    surface = np.full(SHAPE, SURFACE_BG, dtype=np.float32)
    captured_frame = np.full(SHAPE, CAPTURED_BG, dtype=np.float32)
    solubilized_frame = np.full(SHAPE, SOLUBILIZED_BG, dtype=np.float32)
    for (bx, by), (sx, sy) in zip(true_buttons, true_chambers):
        paint_disk(surface, bx, by, BUTTON_RADIUS, BUTTON_LEVEL)
        paint_disk(captured_frame, bx, by, BUTTON_RADIUS, CAPTURED_LEVEL)
        paint_disk(solubilized_frame, sx, sy, CHAMBER_RADIUS, CHAMBER_LEVEL)

    images = ImageSet(
        surface=surface,
        solubilized=np.stack([solubilized_frame] * solubilized_frames, axis=-1),
        captured=np.stack([captured_frame] * captured_frames, axis=-1),
    )
    return SyntheticChip(
        images=images,
        lattice_buttons=buttons,
        lattice_chambers=chambers,
        true_buttons=true_buttons,
        true_chambers=true_chambers,
        button_corners=[circle_samples(*buttons[m], BUTTON_RADIUS) for m in CORNERS],
        chamber_corners=[circle_samples(*chambers[m], CHAMBER_RADIUS) for m in CORNERS],
    )


@pytest.fixture
def chip() -> SyntheticChip:
    """Equilibrium chip: one solubilized and one captured frame."""
    return make_chip()


@pytest.fixture
def dissociation_chip() -> SyntheticChip:
    """Dissociation chip: two solubilized and three captured frames."""
    return make_chip(captured_frames=3, solubilized_frames=2)


@pytest.fixture
def config() -> AnalysisConfig:
    """Config for the 4 x 3 chip with the fallback search only."""
    return AnalysisConfig(num_row=NUM_ROW, num_col=NUM_COL, use_circle_detection=False)


@pytest.fixture
def run_dir(tmp_path: Path, chip: SyntheticChip) -> Path:
    """Directory with the chip written as TIFFs plus a run.yaml describing it."""
    images = chip.images
    tifffile.imwrite(str(tmp_path / "surface.tif"), images.surface.astype(np.uint16))
    tifffile.imwrite(
        str(tmp_path / "solubilized.tif"),
        np.moveaxis(images.solubilized, -1, 0).astype(np.uint16),
    )
    tifffile.imwrite(str(tmp_path / "captured.tif"), images.captured[:, :, 0].astype(np.uint16))

    run = {
        "images": {
            "surface": "surface.tif",
            "solubilized": "solubilized.tif",
            "captured": ["captured.tif"],
        },
        "parameters": {
            "num_row": NUM_ROW,
            "num_col": NUM_COL,
            "use_circle_detection": False,
        },
        "corners": {
            "button": chip.button_corners,
            "chamber": chip.chamber_corners,
        },
        "corrections": [
            "continue",
            {"remove_region": [30, 30, 50, 50]},
            {"flag_region": [110, 150, 130, 170]},
            "continue",
            "continue",
        ],
    }
    with open(tmp_path / "run.yaml", "w") as f:
        yaml.safe_dump(run, f, sort_keys=False)
    return tmp_path
