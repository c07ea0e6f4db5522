"""Rounding helpers shared by lattice, mask and localization code."""

from __future__ import annotations

import numpy as np


def round_half_up(value):  # type: ignore[no-untyped-def]
    """Round halves away from zero (numpy's ``round`` rounds them to even).

    Accepts scalars or arrays; scalars come back as ``int``.
    """
    arr = np.asarray(value, dtype=np.float64)
    rounded = np.sign(arr) * np.floor(np.abs(arr) + 0.5)
    if rounded.ndim == 0:
        return int(rounded)
    return rounded.astype(np.int64)
