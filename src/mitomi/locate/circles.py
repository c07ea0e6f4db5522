"""Bright circle detection in a normalized window (Canny + circular Hough)."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from skimage.feature import canny
from skimage.transform import hough_circle, hough_circle_peaks

from mitomi.locate.masks import distance_squared

# Candidate peaks examined before giving up on the polarity check
_MAX_PEAKS = 5


@dataclass(frozen=True)
class CircleMatch:
    """A detected circle in window coordinates."""

    x: int
    y: int
    radius: int
    score: float


def _is_bright(window: np.ndarray, x: int, y: int, radius: int) -> bool:
    """True when the disk is brighter on average than the ring around it."""
    half = window.shape[0] // 2
    d2 = distance_squared(half, dx=x - half, dy=y - half)[: window.shape[0], : window.shape[1]]
    inside = d2 <= radius ** 2
    ring = (d2 > radius ** 2) & (d2 <= (1.5 * radius) ** 2)
    if not inside.any() or not ring.any():
        return True
    return float(window[inside].mean()) > float(window[ring].mean())


def detect_circle(
    window: np.ndarray,
    min_radius: int,
    max_radius: int,
    threshold: float = 0.5,
    sigma: float = 1.0,
) -> CircleMatch | None:
    """Find the strongest bright-on-dark circle in a square window.

    Args:
        window: Normalized 2D float window.
        min_radius: Smallest radius searched (pixels).
        max_radius: Largest radius searched (pixels).
        threshold: Minimum normalized accumulator value (fraction of the
            circle perimeter lying on edges).
        sigma: Canny Gaussian width.

    Returns:
        The best match, or None when no circle passes.
    """
    min_radius = max(int(min_radius), 1)
    max_radius = max(int(max_radius), min_radius)
    edges = canny(window, sigma=sigma)
    if not edges.any():
        return None

    radii = np.arange(min_radius, max_radius + 1)
    hspaces = hough_circle(edges, radii, normalize=True)
    accums, cxs, cys, found = hough_circle_peaks(
        hspaces, radii, threshold=threshold, total_num_peaks=_MAX_PEAKS,
    )
    for accum, cx, cy, r in zip(accums, cxs, cys, found):
        if _is_bright(window, int(cx), int(cy), int(r)):
            return CircleMatch(x=int(cx), y=int(cy), radius=int(r), score=float(accum))
    return None
