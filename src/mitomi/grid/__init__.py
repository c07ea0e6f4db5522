"""MITOMI Grid — corner circle fits and lattice interpolation."""

from mitomi.grid.circle_fit import circumcircle, fit_circle
from mitomi.grid.lattice import CornerSet, GridModel, Lattice, build_lattice

__all__ = [
    "CornerSet",
    "GridModel",
    "Lattice",
    "build_lattice",
    "circumcircle",
    "fit_circle",
]
