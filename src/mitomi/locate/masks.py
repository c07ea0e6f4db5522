"""MaskFactory — cached disk and annulus pixel masks."""

from __future__ import annotations

from functools import lru_cache

import numpy as np

from mitomi.core._numeric import round_half_up


def distance_squared(half: int, dx: float = 0.0, dy: float = 0.0) -> np.ndarray:
    """Squared distance of every pixel of a ``(2*half+1)`` square to a center.

    The center sits on the middle pixel shifted by (dx, dy).
    """
    offsets = np.arange(-half, half + 1, dtype=np.float64)
    return (offsets[np.newaxis, :] - dx) ** 2 + (offsets[:, np.newaxis] - dy) ** 2


def _frozen(mask: np.ndarray) -> np.ndarray:
    mask.setflags(write=False)
    return mask


@lru_cache(maxsize=None)
def disk(radius: float, half: int) -> np.ndarray:
    """Boolean disk ``d^2 < radius^2`` centered in a ``(2*half+1)`` square."""
    return _frozen(distance_squared(half) < radius ** 2)


@lru_cache(maxsize=None)
def annulus(inner: float, outer: float, half: int) -> np.ndarray:
    """Boolean ring ``inner^2 < d^2 < outer^2`` centered in a ``(2*half+1)`` square."""
    d2 = distance_squared(half)
    return _frozen((d2 > inner ** 2) & (d2 < outer ** 2))


def mod_radius(radius: int) -> int:
    """Enlarged button radius used for the localization search window."""
    return int(radius + round_half_up(radius / 2))


class MaskFactory:
    """Build the localization masks for a lattice.

    Masks are pure functions of their radius: equal radii return the very
    same read-only array, so they can be shared across worker threads.

    Args:
        button_fg_fraction: Foreground disk radius as a fraction of the
            enlarged button radius.
        button_bg_inner: Inner background radius as a fraction of the
            enlarged button radius (the outer radius is the enlarged radius).
    """

    def __init__(self, button_fg_fraction: float = 0.5, button_bg_inner: float = 0.75) -> None:
        self.button_fg_fraction = button_fg_fraction
        self.button_bg_inner = button_bg_inner

    def button_foreground(self, radius: int) -> np.ndarray:
        """Disk tighter than the nominal button, side ``2*modRadius+1``."""
        m = mod_radius(radius)
        return disk(self.button_fg_fraction * m, m)

    def button_background(self, radius: int) -> np.ndarray:
        """Annulus between ``button_bg_inner*modRadius`` and ``modRadius``."""
        m = mod_radius(radius)
        return annulus(self.button_bg_inner * m, float(m), m)

    def chamber_foreground(self, radius: int) -> np.ndarray:
        """Disk of the chamber radius, side ``2*radius+1``."""
        return disk(float(radius), radius)
