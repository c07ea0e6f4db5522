"""MITOMI Measure — per-well intensity statistics and the report table."""

from mitomi.measure.extractor import (
    ExtractionEngine,
    ExtractionResult,
    WellMasks,
    WellMeasurement,
    build_well_masks,
)
from mitomi.measure.metrics import STATISTICS, MaskedStats, masked_stats

__all__ = [
    "ExtractionEngine",
    "ExtractionResult",
    "MaskedStats",
    "STATISTICS",
    "WellMasks",
    "WellMeasurement",
    "build_well_masks",
    "masked_stats",
]
