"""MITOMI Core — configuration, image models, FeatureStore, errors."""

from mitomi.core.config import AnalysisConfig, ExperimentType, load_config, save_config
from mitomi.core.exceptions import (
    AnalysisCancelled,
    CommandNotAllowedError,
    ConfigurationError,
    CornerSampleError,
    FrameCountError,
    ImageDimensionError,
    LatticeError,
    MitomiError,
    RunFileError,
    UserAbort,
)
from mitomi.core.execution import CancelToken, iter_wells
from mitomi.core.feature_store import FeatureStore
from mitomi.core.models import Circle, ImageSet, Point, Rect

__all__ = [
    "AnalysisCancelled",
    "AnalysisConfig",
    "CancelToken",
    "Circle",
    "CommandNotAllowedError",
    "ConfigurationError",
    "CornerSampleError",
    "ExperimentType",
    "FeatureStore",
    "FrameCountError",
    "ImageDimensionError",
    "ImageSet",
    "LatticeError",
    "MitomiError",
    "Point",
    "Rect",
    "RunFileError",
    "UserAbort",
    "iter_wells",
    "load_config",
    "save_config",
]
