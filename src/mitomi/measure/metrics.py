"""Per-mask intensity statistics over strictly positive pixels."""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

# Column suffixes in report order
STATISTICS = ("Med", "Avg", "Std", "Sum", "Sat")


def positive_pixels(window: np.ndarray, mask: np.ndarray) -> np.ndarray:
    """Pixel values under the mask that are > 0; zero means masked out."""
    values = window[mask]
    return values[values > 0].astype(np.float64)


def median_intensity(values: np.ndarray) -> float:
    """Median of the sampled pixels (NaN when empty)."""
    return float(np.median(values)) if values.size else math.nan


def mean_intensity(values: np.ndarray) -> float:
    """Average of the sampled pixels (NaN when empty)."""
    return float(np.mean(values)) if values.size else math.nan


def std_intensity(values: np.ndarray) -> float:
    """Sample standard deviation; 0 for a single pixel, NaN when empty."""
    if values.size == 0:
        return math.nan
    if values.size == 1:
        return 0.0
    return float(np.std(values, ddof=1))


def integrated_intensity(values: np.ndarray) -> float:
    """Sum of the sampled pixels (0 when empty)."""
    return float(np.sum(values))


def saturation_fraction(values: np.ndarray, saturation_value: float) -> float:
    """Fraction of sampled pixels at the sensor maximum (NaN when empty)."""
    if values.size == 0:
        return math.nan
    return float(np.count_nonzero(values == saturation_value)) / values.size


@dataclass(frozen=True)
class MaskedStats:
    """Statistics of one mask on one frame."""

    median: float
    mean: float
    std: float
    total: float
    saturated: float
    count: int

    @property
    def empty(self) -> bool:
        return self.count == 0

    def as_tuple(self) -> tuple[float, float, float, float, float]:
        """Values in ``STATISTICS`` order."""
        return (self.median, self.mean, self.std, self.total, self.saturated)

    def scaled_total(self, factor: float) -> MaskedStats:
        """Copy with the sum multiplied by ``factor`` (area normalization)."""
        return MaskedStats(
            self.median, self.mean, self.std, self.total * factor, self.saturated, self.count,
        )


def masked_stats(window: np.ndarray, mask: np.ndarray, saturation_value: float) -> MaskedStats:
    """Compute all statistics of ``window`` under ``mask``."""
    values = positive_pixels(window, mask)
    return MaskedStats(
        median=median_intensity(values),
        mean=mean_intensity(values),
        std=std_intensity(values),
        total=integrated_intensity(values),
        saturated=saturation_fraction(values, saturation_value),
        count=int(values.size),
    )


EMPTY_STATS = MaskedStats(math.nan, math.nan, math.nan, math.nan, math.nan, 0)
