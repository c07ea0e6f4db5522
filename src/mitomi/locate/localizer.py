"""FeatureLocalizer — find every button and chamber near its lattice site."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from mitomi.core._numeric import round_half_up
from mitomi.core.config import AnalysisConfig
from mitomi.core.execution import CancelToken, iter_wells
from mitomi.core.feature_store import FeatureStore
from mitomi.grid.lattice import Lattice
from mitomi.locate.circles import detect_circle
from mitomi.locate.masks import MaskFactory, mod_radius
from mitomi.locate.windows import crop_window, normalize_window

logger = logging.getLogger(__name__)

# Pixels between the largest candidate chamber circle and the detection window border
_CHAMBER_MARGIN = 3


@dataclass(frozen=True)
class SiteLocation:
    """Localization outcome for one site, in global image coordinates."""

    x: int
    y: int
    autofind: bool


@dataclass(frozen=True)
class LocalizationResult:
    """Summary of one localization pass.

    Attributes:
        kind: "button" or "chamber".
        autofound: Sites located by circle detection.
        total: Sites processed.
        elapsed_seconds: Wall-clock time in seconds.
        warnings: Per-site problems (the site kept its lattice coordinate).
    """

    kind: str
    autofound: int
    total: int
    elapsed_seconds: float
    warnings: list[str] = field(default_factory=list)


def best_offset(
    region: np.ndarray,
    foreground: np.ndarray,
    background: np.ndarray | None = None,
) -> tuple[int, int]:
    """Score every mask placement inside ``region`` and return the best one.

    The score arena has one entry per candidate center: the sum of positive
    pixels under ``foreground`` minus the sum under ``background``. Ties go
    to the first candidate in row-major order.

    Returns:
        (row, col) index into the arena.
    """
    positive = np.clip(region, 0, None)
    windows = sliding_window_view(positive, foreground.shape)
    arena = np.einsum("ijkl,kl->ij", windows, foreground.astype(np.float64))
    if background is not None:
        arena -= np.einsum("ijkl,kl->ij", windows, background.astype(np.float64))
    row, col = np.unravel_index(int(np.argmax(arena)), arena.shape)
    return int(row), int(col)


class FeatureLocalizer:
    """Locate buttons and chambers around their lattice coordinates.

    Each site first gets a circle-detection pass on a contrast-normalized
    window. When that finds nothing, a fallback search scores every
    candidate center in a small neighborhood with the localization masks
    and keeps the best one. Every site ends with a coordinate.

    Args:
        config: Analysis parameters.
        masks: Optional MaskFactory (built from ``config`` if None).
    """

    def __init__(self, config: AnalysisConfig, masks: MaskFactory | None = None) -> None:
        self._config = config
        self._masks = masks or MaskFactory(config.button_fg_fraction, config.button_bg_inner)

    # ------------------------------------------------------------------
    # Single sites
    # ------------------------------------------------------------------

    def locate_button(
        self, surface: np.ndarray, cx: int, cy: int, radius: int, approx_intensity: float,
    ) -> SiteLocation:
        """Locate one button near (cx, cy) in the surface image."""
        m = mod_radius(radius)
        if self._config.use_circle_detection:
            found = self._detect(
                crop_window(surface, cx, cy, 2 * m), approx_intensity,
                round_half_up(m / 2.5), round_half_up(m / 1.25),
            )
            if found is not None:
                return SiteLocation(cx + found[0] - 2 * m, cy + found[1] - 2 * m, True)

        search = 2 * m
        region = crop_window(surface, cx, cy, search + m)
        row, col = best_offset(
            region,
            self._masks.button_foreground(radius),
            self._masks.button_background(radius),
        )
        return SiteLocation(cx - search + col, cy - search + row, False)

    def locate_chamber(
        self, solubilized: np.ndarray, cx: int, cy: int, radius: int, approx_intensity: float,
    ) -> SiteLocation:
        """Locate one chamber near (cx, cy) in solubilized frame 0."""
        if self._config.use_circle_detection:
            r_max = round_half_up(radius * 1.2)
            # The whole circle must lie inside the window for the edge map
            half = r_max + _CHAMBER_MARGIN
            found = self._detect(
                crop_window(solubilized, cx, cy, half), approx_intensity,
                round_half_up(radius * 0.8), r_max,
            )
            if found is not None:
                return SiteLocation(cx + found[0] - half, cy + found[1] - half, True)

        search = int(np.floor(radius * self._config.chamber_search_fraction))
        region = crop_window(solubilized, cx, cy, search + radius)
        row, col = best_offset(region, self._masks.chamber_foreground(radius))
        return SiteLocation(cx - search + col, cy - search + row, False)

    def _detect(
        self, window: np.ndarray, approx_intensity: float, r_min: int, r_max: int,
    ) -> tuple[int, int] | None:
        normalized = normalize_window(window, approx_intensity)
        if normalized is None:
            return None
        match = detect_circle(
            normalized, r_min, r_max,
            threshold=self._config.hough_threshold,
            sigma=self._config.canny_sigma,
        )
        if match is None:
            return None
        return match.x, match.y

    # ------------------------------------------------------------------
    # Whole lattice
    # ------------------------------------------------------------------

    def locate_buttons(
        self,
        store: FeatureStore,
        surface: np.ndarray,
        lattice: Lattice,
        cancel: CancelToken | None = None,
        progress_callback: Callable[[int, int], None] | None = None,
    ) -> LocalizationResult:
        """Locate every button and write the results into ``store``."""
        approx = _approx(lattice, surface)
        return self._run(
            "button", store, lattice,
            lambda cx, cy: self.locate_button(surface, cx, cy, lattice.radius, approx),
            store.set_button, cancel, progress_callback,
        )

    def locate_chambers(
        self,
        store: FeatureStore,
        solubilized: np.ndarray,
        lattice: Lattice,
        cancel: CancelToken | None = None,
        progress_callback: Callable[[int, int], None] | None = None,
    ) -> LocalizationResult:
        """Locate every chamber (solubilized frame 0) and write the results into ``store``."""
        frame = solubilized[:, :, 0] if solubilized.ndim == 3 else solubilized
        approx = _approx(lattice, frame)
        return self._run(
            "chamber", store, lattice,
            lambda cx, cy: self.locate_chamber(frame, cx, cy, lattice.radius, approx),
            store.set_chamber, cancel, progress_callback,
        )

    def _run(
        self,
        kind: str,
        store: FeatureStore,
        lattice: Lattice,
        locate: Callable[[int, int], SiteLocation],
        write: Callable[[int, int, int, bool], None],
        cancel: CancelToken | None,
        progress_callback: Callable[[int, int], None] | None,
    ) -> LocalizationResult:
        start = time.monotonic()
        warnings: list[str] = []
        coords = lattice.coords

        def task(m: int) -> SiteLocation | str:
            cx, cy = int(coords[m, 0]), int(coords[m, 1])
            try:
                return locate(cx, cy)
            except Exception as exc:
                if isinstance(exc, (MemoryError, KeyboardInterrupt, SystemExit)):
                    raise
                logger.warning(
                    "Localization failed for %s %d at (%d, %d): %s",
                    kind, m, cx, cy, exc, exc_info=True,
                )
                return f"{kind} {m}: localization failed: {exc}"

        autofound = 0
        for m, outcome in iter_wells(
            task, len(coords), f"{kind} localization",
            workers=self._config.workers, cancel=cancel,
            progress_callback=progress_callback,
        ):
            if isinstance(outcome, str):
                warnings.append(outcome)
                write(m, int(coords[m, 0]), int(coords[m, 1]), False)
                continue
            write(m, outcome.x, outcome.y, outcome.autofind)
            autofound += int(outcome.autofind)

        elapsed = time.monotonic() - start
        logger.info(
            "%ss identified with automation: %d out of %d",
            kind.capitalize(), autofound, len(coords),
        )
        return LocalizationResult(
            kind=kind,
            autofound=autofound,
            total=len(coords),
            elapsed_seconds=round(elapsed, 3),
            warnings=warnings,
        )


def _approx(lattice: Lattice, image: np.ndarray) -> float:
    """Lattice intensity estimate, or the image's 99th percentile when unsampled."""
    if lattice.approx_intensity is not None:
        return float(lattice.approx_intensity)
    return float(np.percentile(image, 99))
