"""MITOMI Locate — localization masks, circle detection and the FeatureLocalizer."""

from mitomi.locate.circles import CircleMatch, detect_circle
from mitomi.locate.localizer import (
    FeatureLocalizer,
    LocalizationResult,
    SiteLocation,
    best_offset,
)
from mitomi.locate.masks import MaskFactory, annulus, disk, mod_radius
from mitomi.locate.windows import crop_window, normalize_window

__all__ = [
    "CircleMatch",
    "FeatureLocalizer",
    "LocalizationResult",
    "MaskFactory",
    "SiteLocation",
    "annulus",
    "best_offset",
    "crop_window",
    "detect_circle",
    "disk",
    "mod_radius",
    "normalize_window",
]
