"""FeatureStore — per-well geometry and review state, one array per field."""

from __future__ import annotations

import numpy as np
import pandas as pd

from mitomi.core.exceptions import LatticeError


class FeatureStore:
    """Structure-of-arrays record of every lattice site.

    Index ``m`` (0-based) refers to the same physical site in every array.
    Sites are ordered column-major: the row index varies fastest.

    Coordinates are integer pixels (x = column, y = row). ``remove`` and
    ``flag`` are independent; a removed well is left out of statistics and
    export whatever its flag.

    Args:
        num_row: Lattice rows.
        num_col: Lattice columns.
        button_radius: Nominal button radius in pixels.
        chamber_radius: Nominal chamber radius in pixels.
    """

    def __init__(
        self,
        num_row: int,
        num_col: int,
        button_radius: int,
        chamber_radius: int,
    ) -> None:
        if num_row < 1 or num_col < 1:
            raise LatticeError(f"Lattice dimensions must be positive, got {num_row}x{num_col}")
        self.num_row = num_row
        self.num_col = num_col
        n = num_row * num_col
        m = np.arange(n)

        self.col_index = m // num_row + 1
        self.row_index = m % num_row + 1

        self.button_x = np.zeros(n, dtype=np.int64)
        self.button_y = np.zeros(n, dtype=np.int64)
        self.button_radius = np.full(n, button_radius, dtype=np.int64)
        self.autofind_button = np.zeros(n, dtype=bool)

        self.chamber_x = np.zeros(n, dtype=np.int64)
        self.chamber_y = np.zeros(n, dtype=np.int64)
        self.chamber_radius = np.full(n, chamber_radius, dtype=np.int64)
        self.autofind_chamber = np.zeros(n, dtype=bool)

        self.remove = np.zeros(n, dtype=bool)
        self.flag = np.zeros(n, dtype=bool)

    @classmethod
    def from_lattices(
        cls,
        button_lattice: np.ndarray,
        chamber_lattice: np.ndarray,
        num_row: int,
        num_col: int,
        button_radius: int,
        chamber_radius: int,
    ) -> FeatureStore:
        """Allocate a store seeded with the lattice coordinates.

        Args:
            button_lattice: (N, 2) integer (x, y) button lattice.
            chamber_lattice: (N, 2) integer (x, y) chamber lattice.

        Raises:
            LatticeError: If a lattice does not have ``num_row * num_col`` points.
        """
        store = cls(num_row, num_col, button_radius, chamber_radius)
        for name, lattice in (("button", button_lattice), ("chamber", chamber_lattice)):
            if len(lattice) != len(store):
                raise LatticeError(
                    f"{name} lattice has {len(lattice)} points, expected {len(store)}"
                )
        store.button_x[:] = button_lattice[:, 0]
        store.button_y[:] = button_lattice[:, 1]
        store.chamber_x[:] = chamber_lattice[:, 0]
        store.chamber_y[:] = chamber_lattice[:, 1]
        return store

    def __len__(self) -> int:
        return self.num_row * self.num_col

    # ------------------------------------------------------------------
    # Localization writes
    # ------------------------------------------------------------------

    def set_button(self, m: int, x: int, y: int, autofind: bool) -> None:
        self.button_x[m] = x
        self.button_y[m] = y
        self.autofind_button[m] = autofind

    def set_chamber(self, m: int, x: int, y: int, autofind: bool) -> None:
        self.chamber_x[m] = x
        self.chamber_y[m] = y
        self.autofind_chamber[m] = autofind

    # ------------------------------------------------------------------
    # Queries used by review and extraction
    # ------------------------------------------------------------------

    def nearest(self, kind: str, x: float, y: float) -> int:
        """Index of the well whose button/chamber is nearest to (x, y).

        Distance is squared Euclidean; ties go to the lowest index.
        """
        xs, ys = self.coordinates(kind)
        d2 = (xs - x) ** 2 + (ys - y) ** 2
        return int(np.argmin(d2))

    def coordinates(self, kind: str) -> tuple[np.ndarray, np.ndarray]:
        """Return the (x, y) arrays for ``"button"`` or ``"chamber"``."""
        if kind == "button":
            return self.button_x, self.button_y
        if kind == "chamber":
            return self.chamber_x, self.chamber_y
        raise ValueError(f"Unknown feature kind {kind!r}, expected 'button' or 'chamber'")

    def compaction_index(self) -> np.ndarray:
        """Contiguous 1..N numbering over non-removed wells; 0 for removed wells."""
        kept = ~self.remove
        index = np.cumsum(kept)
        index[~kept] = 0
        return index.astype(np.int64)

    @property
    def num_autofind_buttons(self) -> int:
        return int(self.autofind_button.sum())

    @property
    def num_autofind_chambers(self) -> int:
        return int(self.autofind_chamber.sum())

    def to_frame(self) -> pd.DataFrame:
        """Geometry and review columns, one row per well, in index order."""
        return pd.DataFrame({
            "Index": self.compaction_index(),
            "ColIndx": self.col_index,
            "RowIndx": self.row_index,
            "Removed": self.remove.copy(),
            "Flagged": self.flag.copy(),
            "ButXCoor": self.button_x.copy(),
            "ButYCoor": self.button_y.copy(),
            "ButRad": self.button_radius.copy(),
            "ButAutoF": self.autofind_button.copy(),
            "SOLXCoor": self.chamber_x.copy(),
            "SOLYCoor": self.chamber_y.copy(),
            "SOLRad": self.chamber_radius.copy(),
            "SOLAutoF": self.autofind_chamber.copy(),
        })
