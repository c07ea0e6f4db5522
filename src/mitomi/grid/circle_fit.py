"""Circle fits for corner samples clicked on a feature's circumference."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from mitomi.core.exceptions import CornerSampleError
from mitomi.core.models import Circle

# Relative tolerance on |t x u|^2 / (|t|^2 |u|^2), i.e. sin^2 of the angle at p1
_COLLINEAR_TOL = 1e-12


def circumcircle(
    p1: Sequence[float], p2: Sequence[float], p3: Sequence[float],
) -> Circle:
    """Return the unique circle through three points.

    The center is the triangle circumcenter, computed from the edge vectors
    ``t = p2 - p1``, ``u = p3 - p1`` and ``v = p3 - p2``.

    Raises:
        CornerSampleError: If the points are collinear or coincident.
    """
    a = np.asarray(p1, dtype=np.float64)
    t = np.asarray(p2, dtype=np.float64) - a
    u = np.asarray(p3, dtype=np.float64) - a
    v = u - t

    t2 = float(t @ t)
    u2 = float(u @ u)
    v2 = float(v @ v)
    w = float(t[0] * u[1] - t[1] * u[0])
    w2 = w * w

    if t2 == 0 or u2 == 0 or w2 <= _COLLINEAR_TOL * t2 * u2:
        raise CornerSampleError("circumference points are collinear or coincident")

    center = a + (t2 * float(u @ v) * u - u2 * float(t @ v) * t) / (2 * w2)
    radius = np.sqrt(t2 * u2 * v2 / w2) / 2
    return Circle(x=float(center[0]), y=float(center[1]), radius=float(radius))


def fit_circle(points: Sequence[Sequence[float]]) -> Circle:
    """Fit a circle to three or more circumference points.

    Three points give the exact circumcircle. More points are fitted by
    algebraic least squares (``x^2 + y^2 = 2ax + 2by + c``).

    Raises:
        CornerSampleError: If fewer than three points are given or they
            do not span a circle.
    """
    pts = np.asarray(points, dtype=np.float64)
    if pts.ndim != 2 or pts.shape[1] != 2:
        raise CornerSampleError(f"expected (x, y) points, got array of shape {pts.shape}")
    if len(pts) < 3:
        raise CornerSampleError(f"need at least 3 circumference points, got {len(pts)}")
    if len(pts) == 3:
        return circumcircle(pts[0], pts[1], pts[2])

    x, y = pts[:, 0], pts[:, 1]
    design = np.column_stack([2 * x, 2 * y, np.ones_like(x)])
    (a, b, c), _, rank, _ = np.linalg.lstsq(design, x ** 2 + y ** 2, rcond=None)
    r2 = c + a ** 2 + b ** 2
    if rank < 3 or r2 <= 0:
        raise CornerSampleError("circumference points are collinear or coincident")
    return Circle(x=float(a), y=float(b), radius=float(np.sqrt(r2)))
