"""Data models shared across the analysis stages."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from mitomi.core.exceptions import ImageDimensionError


@dataclass(frozen=True)
class Point:
    """A 2D image coordinate (x = column, y = row)."""

    x: float
    y: float


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle spanned by two opposite corners in any order."""

    x0: float
    y0: float
    x1: float
    y1: float

    @property
    def low_x(self) -> float:
        return min(self.x0, self.x1)

    @property
    def high_x(self) -> float:
        return max(self.x0, self.x1)

    @property
    def low_y(self) -> float:
        return min(self.y0, self.y1)

    @property
    def high_y(self) -> float:
        return max(self.y0, self.y1)

    def contains(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        """Strict interior test; points on the border are outside."""
        return (
            (x > self.low_x) & (x < self.high_x)
            & (y > self.low_y) & (y < self.high_y)
        )


@dataclass(frozen=True)
class Circle:
    """A fitted circle in image coordinates."""

    x: float
    y: float
    radius: float


def _as_stack(array: np.ndarray) -> np.ndarray:
    stack = np.asarray(array, dtype=np.float32)
    if stack.ndim == 2:
        stack = stack[:, :, np.newaxis]
    return stack


@dataclass(frozen=True)
class ImageSet:
    """The three intensity channels of one chip acquisition.

    Attributes:
        surface: Button channel, 2D (Y, X).
        solubilized: Chamber channel, 3D (Y, X, frames). Frame 0 is used
            for chamber localization.
        captured: Bound-molecule channel, 3D (Y, X, frames).

    2D ``solubilized``/``captured`` inputs are promoted to a single frame.
    All arrays are stored as float32.
    """

    surface: np.ndarray
    solubilized: np.ndarray
    captured: np.ndarray

    def __post_init__(self) -> None:
        surface = np.asarray(self.surface, dtype=np.float32)
        if surface.ndim != 2:
            raise ImageDimensionError({"surface": surface.shape})
        solubilized = _as_stack(self.solubilized)
        captured = _as_stack(self.captured)
        if solubilized.ndim != 3 or captured.ndim != 3:
            raise ImageDimensionError({
                "solubilized": solubilized.shape, "captured": captured.shape,
            })
        if not (surface.shape == solubilized.shape[:2] == captured.shape[:2]):
            raise ImageDimensionError({
                "surface": surface.shape,
                "solubilized": solubilized.shape,
                "captured": captured.shape,
            })
        object.__setattr__(self, "surface", surface)
        object.__setattr__(self, "solubilized", solubilized)
        object.__setattr__(self, "captured", captured)

    @property
    def shape(self) -> tuple[int, int]:
        return self.surface.shape  # type: ignore[return-value]

    @property
    def num_solubilized(self) -> int:
        return self.solubilized.shape[2]

    @property
    def num_captured(self) -> int:
        return self.captured.shape[2]
