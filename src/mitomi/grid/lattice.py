"""Lattice inference from four sampled corner features."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from mitomi.core._numeric import round_half_up
from mitomi.core.exceptions import CornerSampleError, LatticeError
from mitomi.core.models import Circle
from mitomi.grid.circle_fit import fit_circle

logger = logging.getLogger(__name__)

_REDUCERS = {"mean": np.mean, "max": np.max}


@dataclass(frozen=True)
class CornerSet:
    """Four fitted corner circles of one lattice.

    Attributes:
        circles: The four corner circles, in sampling order.
        radius: Nominal feature radius, ``ceil`` of the mean fitted radius.
        approx_intensity: Typical feature intensity sampled at the corner
            centers, or None when no image was supplied.
    """

    circles: tuple[Circle, ...]
    radius: int
    approx_intensity: float | None = None

    @classmethod
    def from_samples(
        cls,
        samples: Sequence[Sequence[Sequence[float]]],
        image: np.ndarray | None = None,
        reduce: str = "mean",
    ) -> CornerSet:
        """Fit the four corners from their circumference samples.

        Args:
            samples: Four sequences of >= 3 (x, y) circumference points.
            image: Optional 2D image to sample the intensity at each center.
            reduce: How corner intensities are combined: "mean" or "max".

        Raises:
            CornerSampleError: If there are not four corners or a corner
                cannot be fitted.
        """
        if len(samples) != 4:
            raise CornerSampleError(f"expected 4 corner samples, got {len(samples)}")
        if reduce not in _REDUCERS:
            raise ValueError(f"Unknown intensity reduction {reduce!r}")

        circles: list[Circle] = []
        for i, points in enumerate(samples, start=1):
            try:
                circles.append(fit_circle(points))
            except CornerSampleError as e:
                raise CornerSampleError(str(e), corner=i) from e

        radius = math.ceil(np.mean([c.radius for c in circles]))

        approx = None
        if image is not None:
            values = [_sample(image, c) for c in circles]
            approx = float(_REDUCERS[reduce](values))

        return cls(circles=tuple(circles), radius=int(radius), approx_intensity=approx)

    @property
    def centers(self) -> np.ndarray:
        """(4, 2) array of corner centers (x, y)."""
        return np.array([[c.x, c.y] for c in self.circles], dtype=np.float64)


def _sample(image: np.ndarray, circle: Circle) -> float:
    h, w = image.shape[:2]
    row = min(max(round_half_up(circle.y), 0), h - 1)
    col = min(max(round_half_up(circle.x), 0), w - 1)
    return float(image[row, col])


def _along(x0: float, y0: float, x1: float, y1: float, at: np.ndarray) -> np.ndarray:
    """Linear interpolation of the line (x0, y0)-(x1, y1) evaluated at ``at``."""
    return y0 + (at - x0) * (y1 - y0) / (x1 - x0)


def _edge(left: np.ndarray, right: np.ndarray, count: int) -> tuple[np.ndarray, np.ndarray]:
    """Evenly spaced points along one lattice edge, sorted by x."""
    xs = np.sort(np.linspace(left[0], right[0], count))
    if count == 1:
        return xs, np.array([left[1]], dtype=np.float64)
    if left[0] == right[0]:
        raise LatticeError("Corner centers of an edge share the same x; cannot span columns")
    return xs, _along(left[0], left[1], right[0], right[1], xs)


def build_lattice(centers: np.ndarray, num_row: int, num_col: int) -> np.ndarray:
    """Interpolate a ``num_row x num_col`` lattice from four corner centers.

    Centers are rounded and ordered by y: the first two form the top edge,
    the last two the bottom edge. Each edge gets ``num_col`` evenly spaced
    x values with y interpolated along it; each column then gets
    ``num_row`` evenly spaced y values between its top and bottom points,
    with x interpolated along the column.

    Args:
        centers: (4, 2) array of (x, y) corner centers, any order.
        num_row: Lattice rows.
        num_col: Lattice columns.

    Returns:
        (num_row * num_col, 2) int64 array of (x, y), column-major (row
        index varies fastest).

    Raises:
        LatticeError: If the corners are not separable into a top and a
            bottom pair, or an edge is degenerate.
    """
    if num_row < 1 or num_col < 1:
        raise LatticeError(f"Lattice dimensions must be positive, got {num_row}x{num_col}")
    vertices = np.asarray(round_half_up(np.asarray(centers, dtype=np.float64)), dtype=np.float64)
    if vertices.shape != (4, 2):
        raise LatticeError(f"Expected 4 corner centers, got array of shape {vertices.shape}")

    vertices = vertices[np.argsort(vertices[:, 1], kind="stable")]
    if vertices[1, 1] == vertices[2, 1]:
        raise LatticeError("Corner centers cannot be separated into top and bottom pairs")

    top_x, top_y = _edge(vertices[0], vertices[1], num_col)
    bot_x, bot_y = _edge(vertices[2], vertices[3], num_col)

    columns: list[np.ndarray] = []
    for j in range(num_col):
        col_y = np.sort(np.linspace(top_y[j], bot_y[j], num_row))
        if top_y[j] == bot_y[j]:
            col_x = np.full(num_row, top_x[j])
        else:
            col_x = _along(top_y[j], top_x[j], bot_y[j], bot_x[j], col_y)
        columns.append(np.column_stack([col_x, col_y]))

    return round_half_up(np.vstack(columns))


@dataclass(frozen=True)
class Lattice:
    """A fitted lattice: nominal radius, typical intensity and site coordinates."""

    coords: np.ndarray
    radius: int
    approx_intensity: float | None
    num_row: int
    num_col: int

    def __len__(self) -> int:
        return len(self.coords)


class GridModel:
    """Turn four corner samples per lattice into full site coordinates.

    Args:
        num_row: Lattice rows.
        num_col: Lattice columns.
    """

    def __init__(self, num_row: int, num_col: int) -> None:
        self.num_row = num_row
        self.num_col = num_col

    def fit(
        self,
        samples: Sequence[Sequence[Sequence[float]]],
        image: np.ndarray | None = None,
        reduce: str = "mean",
    ) -> Lattice:
        """Fit corners and interpolate the lattice.

        Args:
            samples: Four sequences of >= 3 circumference points.
            image: Optional image for the approximate feature intensity.
            reduce: "mean" (buttons) or "max" (chambers).
        """
        corners = CornerSet.from_samples(samples, image=image, reduce=reduce)
        coords = build_lattice(corners.centers, self.num_row, self.num_col)
        logger.info(
            "Lattice of %d sites fitted (radius %d px)",
            len(coords), corners.radius,
        )
        return Lattice(
            coords=coords,
            radius=corners.radius,
            approx_intensity=corners.approx_intensity,
            num_row=self.num_row,
            num_col=self.num_col,
        )
