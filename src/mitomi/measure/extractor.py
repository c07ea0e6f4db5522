"""ExtractionEngine — per-well, per-frame statistics for the final table."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from typing import Callable

import numpy as np
import pandas as pd

from mitomi.core.config import AnalysisConfig
from mitomi.core.execution import CancelToken, iter_wells
from mitomi.core.feature_store import FeatureStore
from mitomi.core.models import ImageSet
from mitomi.locate.masks import distance_squared
from mitomi.locate.windows import crop_window
from mitomi.measure.metrics import EMPTY_STATS, STATISTICS, MaskedStats, masked_stats

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WellMasks:
    """Extraction masks of one well in a window centered on its button.

    Attributes:
        button: Button foreground disk.
        chamber_no_button: Chamber disk minus the button. Serves as the
            button background and as the chamber foreground: the area
            between button and chamber wall is common to both.
        chamber_background: Ring just outside the chamber.
    """

    button: np.ndarray
    chamber_no_button: np.ndarray
    chamber_background: np.ndarray

    @property
    def button_area(self) -> tuple[int, int]:
        """(foreground, background) pixel counts for the button measurements."""
        return int(self.button.sum()), int(self.chamber_no_button.sum())

    @property
    def chamber_area(self) -> tuple[int, int]:
        """(foreground, background) pixel counts for the chamber measurements."""
        return int(self.chamber_no_button.sum()), int(self.chamber_background.sum())


def build_well_masks(
    half: int,
    button_radius: float,
    chamber_radius: float,
    chamber_dx: float,
    chamber_dy: float,
    config: AnalysisConfig,
) -> WellMasks:
    """Build the masks of one well; the chamber is offset by (dx, dy) from the button."""
    d2_button = distance_squared(half)
    d2_chamber = distance_squared(half, chamber_dx, chamber_dy)

    button = d2_button <= (config.button_measure_fraction * button_radius) ** 2
    near_button = d2_button <= (config.button_exclusion_fraction * button_radius) ** 2
    chamber_no_button = (d2_chamber <= chamber_radius ** 2) & ~near_button
    chamber_background = (
        (d2_chamber >= (config.chamber_bg_inner * chamber_radius) ** 2)
        & (d2_chamber <= (config.chamber_bg_outer * chamber_radius) ** 2)
    )
    return WellMasks(button, chamber_no_button, chamber_background)


@dataclass(frozen=True)
class WellMeasurement:
    """Statistics of one well.

    ``surface`` is a (foreground, background) pair; ``captured`` and
    ``solubilized`` hold one pair per frame.
    """

    button_area: tuple[int, int]
    chamber_area: tuple[int, int]
    surface: tuple[MaskedStats, MaskedStats]
    captured: list[tuple[MaskedStats, MaskedStats]]
    solubilized: list[tuple[MaskedStats, MaskedStats]]
    empty_masks: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ExtractionResult:
    """Result of an extraction run.

    Attributes:
        table: One row per lattice site, in index order.
        wells_measured: Non-removed wells with statistics.
        wells_removed: Wells excluded by the reviewer.
        elapsed_seconds: Wall-clock time in seconds.
        warnings: Per-well data-quality messages.
    """

    table: pd.DataFrame
    wells_measured: int
    wells_removed: int
    elapsed_seconds: float
    warnings: list[str] = field(default_factory=list)


def _ratio(areas: tuple[int, int]) -> float:
    fg, bg = areas
    return fg / bg if bg else math.nan


class ExtractionEngine:
    """Measure every non-removed well on every channel and frame.

    Masks live in a window of side ``4*chamberRadius+1`` centered on the
    button; the chamber masks are shifted by the chamber-minus-button
    offset. Background sums are scaled by the foreground/background mask
    area ratio so both totals are comparable.

    Args:
        config: Analysis parameters.
    """

    def __init__(self, config: AnalysisConfig) -> None:
        self._config = config

    def measure_well(self, store: FeatureStore, images: ImageSet, m: int) -> WellMeasurement:
        """Compute the statistics of well ``m``."""
        cfg = self._config
        bx, by = int(store.button_x[m]), int(store.button_y[m])
        chamber_radius = int(store.chamber_radius[m])
        half = 2 * chamber_radius
        masks = build_well_masks(
            half,
            float(store.button_radius[m]),
            float(chamber_radius),
            float(store.chamber_x[m] - bx),
            float(store.chamber_y[m] - by),
            cfg,
        )
        button_ratio = _ratio(masks.button_area)
        chamber_ratio = _ratio(masks.chamber_area)
        sat = cfg.saturation_value
        empty: list[str] = []

        def pair(
            window: np.ndarray, fg: np.ndarray, bg: np.ndarray, ratio: float, label: str,
        ) -> tuple[MaskedStats, MaskedStats]:
            fg_stats = masked_stats(window, fg, sat)
            bg_stats = masked_stats(window, bg, sat).scaled_total(ratio)
            if fg_stats.empty:
                empty.append(f"{label} FG")
            if bg_stats.empty:
                empty.append(f"{label} BG")
            return fg_stats, bg_stats

        surface = pair(
            crop_window(images.surface, bx, by, half),
            masks.button, masks.chamber_no_button, button_ratio, "surface",
        )
        captured = [
            pair(
                crop_window(images.captured[:, :, z], bx, by, half),
                masks.button, masks.chamber_no_button, button_ratio, f"captured {z + 1}",
            )
            for z in range(images.num_captured)
        ]
        solubilized = [
            pair(
                crop_window(images.solubilized[:, :, z], bx, by, half),
                masks.chamber_no_button, masks.chamber_background, chamber_ratio,
                f"solubilized {z + 1}",
            )
            for z in range(images.num_solubilized)
        ]
        return WellMeasurement(
            button_area=masks.button_area,
            chamber_area=masks.chamber_area,
            surface=surface,
            captured=captured,
            solubilized=solubilized,
            empty_masks=empty,
        )

    def extract(
        self,
        store: FeatureStore,
        images: ImageSet,
        cancel: CancelToken | None = None,
        progress_callback: Callable[[int, int], None] | None = None,
    ) -> ExtractionResult:
        """Measure all wells and assemble the report table.

        Removed wells keep their geometry and carry NaN statistics.
        Per-well failures and empty masks become warnings, never errors.

        Raises:
            AnalysisCancelled: If ``cancel`` is set before all wells ran.
        """
        start = time.monotonic()
        warnings: list[str] = []
        n = len(store)
        nan_well = self._removed_measurement(images)
        measurements: list[WellMeasurement] = [nan_well] * n

        def task(m: int) -> WellMeasurement | str:
            if store.remove[m]:
                return nan_well
            try:
                return self.measure_well(store, images, m)
            except Exception as exc:
                if isinstance(exc, (MemoryError, KeyboardInterrupt, SystemExit)):
                    raise
                logger.warning("Extraction failed for well %d: %s", m, exc, exc_info=True)
                return f"well {m}: extraction failed: {exc}"

        for m, outcome in iter_wells(
            task, n, "extraction", workers=self._config.workers,
            cancel=cancel, progress_callback=progress_callback,
        ):
            if isinstance(outcome, str):
                warnings.append(outcome)
                continue
            measurements[m] = outcome
            if outcome.empty_masks and not store.remove[m]:
                warnings.append(
                    f"well {m}: no positive pixels in {', '.join(outcome.empty_masks)}"
                )

        removed = int(store.remove.sum())
        table = self._assemble(store, measurements, images)
        elapsed = time.monotonic() - start
        logger.info("Data extraction complete: %d wells measured", n - removed)
        return ExtractionResult(
            table=table,
            wells_measured=n - removed,
            wells_removed=removed,
            elapsed_seconds=round(elapsed, 3),
            warnings=warnings,
        )

    @staticmethod
    def _removed_measurement(images: ImageSet) -> WellMeasurement:
        nan_pair = (EMPTY_STATS, EMPTY_STATS)
        return WellMeasurement(
            button_area=(0, 0),
            chamber_area=(0, 0),
            surface=nan_pair,
            captured=[nan_pair] * images.num_captured,
            solubilized=[nan_pair] * images.num_solubilized,
        )

    @staticmethod
    def _assemble(
        store: FeatureStore, measurements: list[WellMeasurement], images: ImageSet,
    ) -> pd.DataFrame:
        geometry = store.to_frame()
        columns: dict[str, object] = {
            name: geometry[name]
            for name in (
                "Index", "ColIndx", "RowIndx", "Removed", "Flagged",
                "ButXCoor", "ButYCoor", "ButRad",
            )
        }
        columns["BuAreaFG"] = [w.button_area[0] for w in measurements]
        columns["BuAreaBG"] = [w.button_area[1] for w in measurements]
        columns["ButAutoF"] = geometry["ButAutoF"]
        columns.update(_stat_columns("BND", [[w.surface] for w in measurements], 1, numbered=False))
        columns.update(_stat_columns("CAP", [w.captured for w in measurements], images.num_captured))
        for name in ("SOLXCoor", "SOLYCoor", "SOLRad"):
            columns[name] = geometry[name]
        columns["SOAreaFG"] = [w.chamber_area[0] for w in measurements]
        columns["SOAreaBG"] = [w.chamber_area[1] for w in measurements]
        columns["SOLAutoF"] = geometry["SOLAutoF"]
        columns.update(
            _stat_columns("SOL", [w.solubilized for w in measurements], images.num_solubilized)
        )
        return pd.DataFrame(columns)


def _stat_columns(
    prefix: str,
    per_well: list[list[tuple[MaskedStats, MaskedStats]]],
    frames: int,
    numbered: bool = True,
) -> dict[str, np.ndarray]:
    """Report columns for one channel: statistic-major, frame-minor, FG before BG."""
    # values[well, frame, fg/bg, statistic]
    values = np.array(
        [[[fg.as_tuple(), bg.as_tuple()] for fg, bg in frames_of_well] for frames_of_well in per_well],
        dtype=np.float64,
    ).reshape(len(per_well), frames, 2, len(STATISTICS))

    columns: dict[str, np.ndarray] = {}
    for side, suffix in enumerate(("FG", "BG")):
        for s, stat in enumerate(STATISTICS):
            for z in range(frames):
                name = f"{prefix}{stat}{suffix}{z + 1 if numbered else ''}"
                columns[name] = values[:, z, side, s]
    return columns
