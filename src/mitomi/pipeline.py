"""AnalysisPipeline — lattices, localization, review and extraction for one chip."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Sequence

import numpy as np
import pandas as pd

from mitomi.core.config import AnalysisConfig
from mitomi.core.execution import CancelToken
from mitomi.core.feature_store import FeatureStore
from mitomi.core.models import ImageSet
from mitomi.correct.protocol import CommandSource, CorrectionProtocol
from mitomi.grid.lattice import GridModel, Lattice
from mitomi.locate.localizer import FeatureLocalizer, LocalizationResult
from mitomi.measure.extractor import ExtractionEngine, ExtractionResult

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class AnalysisResult:
    """Outcome of a full analysis run.

    Attributes:
        table: Per-well report table.
        store: Final geometry and review state.
        localization: Button and chamber localization summaries.
        extraction: Extraction summary.
        elapsed_seconds: Wall-clock time in seconds.
        warnings: All per-well warnings, localization first.
    """

    table: pd.DataFrame
    store: FeatureStore
    localization: list[LocalizationResult]
    extraction: ExtractionResult
    elapsed_seconds: float
    warnings: list[str] = field(default_factory=list)


class AnalysisPipeline:
    """Run the analysis stages in order over one ImageSet.

    Each stage is also callable on its own so a front end can show
    progress or interleave interactive review.

    Args:
        config: Analysis parameters.
        cancel: Optional token shared by the batch stages.
    """

    def __init__(self, config: AnalysisConfig, cancel: CancelToken | None = None) -> None:
        self.config = config
        self.cancel = cancel
        self._grid = GridModel(config.num_row, config.num_col)
        self._localizer = FeatureLocalizer(config)
        self._extractor = ExtractionEngine(config)

    def validate(self, images: ImageSet) -> None:
        """Check the image set against the experiment type.

        Raises:
            FrameCountError: If the captured frame count does not fit.
        """
        self.config.check_captured_frames(images.num_captured)

    def build_lattices(
        self,
        images: ImageSet,
        button_corners: Sequence[Sequence[Sequence[float]]],
        chamber_corners: Sequence[Sequence[Sequence[float]]],
    ) -> tuple[Lattice, Lattice]:
        """Fit the button lattice on the surface image and the chamber
        lattice on solubilized frame 0.

        Raises:
            CornerSampleError: If a corner cannot be fitted.
            LatticeError: If the corners do not span a lattice.
        """
        buttons = self._grid.fit(button_corners, image=images.surface, reduce="mean")
        chambers = self._grid.fit(
            chamber_corners, image=images.solubilized[:, :, 0], reduce="max",
        )
        return buttons, chambers

    def new_store(self, buttons: Lattice, chambers: Lattice) -> FeatureStore:
        """Allocate a FeatureStore seeded with both lattices."""
        return FeatureStore.from_lattices(
            buttons.coords, chambers.coords,
            self.config.num_row, self.config.num_col,
            buttons.radius, chambers.radius,
        )

    def localize_buttons(
        self,
        store: FeatureStore,
        images: ImageSet,
        buttons: Lattice,
        progress_callback: ProgressCallback | None = None,
    ) -> LocalizationResult:
        return self._localizer.locate_buttons(
            store, images.surface, buttons, self.cancel, progress_callback,
        )

    def localize_chambers(
        self,
        store: FeatureStore,
        images: ImageSet,
        chambers: Lattice,
        progress_callback: ProgressCallback | None = None,
    ) -> LocalizationResult:
        return self._localizer.locate_chambers(
            store, images.solubilized, chambers, self.cancel, progress_callback,
        )

    def localize(
        self,
        store: FeatureStore,
        images: ImageSet,
        buttons: Lattice,
        chambers: Lattice,
    ) -> list[LocalizationResult]:
        """Locate buttons, then chambers."""
        return [
            self.localize_buttons(store, images, buttons),
            self.localize_chambers(store, images, chambers),
        ]

    def review(self, store: FeatureStore, source: CommandSource) -> None:
        """Run the three review stages on ``store``.

        Raises:
            UserAbort: If the reviewer aborts; nothing downstream runs.
        """
        CorrectionProtocol(store, self.config.history_depth).run(source)

    def extract(
        self,
        store: FeatureStore,
        images: ImageSet,
        progress_callback: ProgressCallback | None = None,
    ) -> ExtractionResult:
        return self._extractor.extract(store, images, self.cancel, progress_callback)

    def run(
        self,
        images: ImageSet,
        button_corners: Sequence[Sequence[Sequence[float]]],
        chamber_corners: Sequence[Sequence[Sequence[float]]],
        source: CommandSource | None = None,
    ) -> AnalysisResult:
        """Run every stage; review is skipped when ``source`` is None.

        Raises:
            ConfigurationError: On invalid inputs, before any well runs.
            UserAbort: If the reviewer aborts.
            AnalysisCancelled: If the cancel token is set.
        """
        start = time.monotonic()
        self.validate(images)
        buttons, chambers = self.build_lattices(images, button_corners, chamber_corners)
        store = self.new_store(buttons, chambers)
        localization = self.localize(store, images, buttons, chambers)
        if source is not None:
            self.review(store, source)
        extraction = self.extract(store, images)

        warnings: list[str] = []
        for result in localization:
            warnings.extend(result.warnings)
        warnings.extend(extraction.warnings)
        elapsed = time.monotonic() - start
        logger.info(
            "Analysis complete: %d wells measured, %d removed, %d flagged",
            extraction.wells_measured, extraction.wells_removed,
            int(np.count_nonzero(store.flag & ~store.remove)),
        )
        return AnalysisResult(
            table=extraction.table,
            store=store,
            localization=localization,
            extraction=extraction,
            elapsed_seconds=round(elapsed, 3),
            warnings=warnings,
        )
