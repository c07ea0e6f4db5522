"""Orientation transforms applied to every channel of an image set."""

from __future__ import annotations

import logging
from typing import Callable, Sequence

import numpy as np

from mitomi.core.exceptions import ConfigurationError
from mitomi.core.models import ImageSet

logger = logging.getLogger(__name__)


def rotate_cw(image: np.ndarray) -> np.ndarray:
    """Rotate 90 degrees clockwise in the (Y, X) plane.

    Args:
        image: 2D (Y, X) or 3D (Y, X, frames) array.

    Returns:
        Rotated array; frames stay on the last axis.
    """
    return np.rot90(image, k=-1, axes=(0, 1))


def rotate_ccw(image: np.ndarray) -> np.ndarray:
    """Rotate 90 degrees counter-clockwise in the (Y, X) plane."""
    return np.rot90(image, k=1, axes=(0, 1))


def flip_lr(image: np.ndarray) -> np.ndarray:
    """Mirror left to right."""
    return image[:, ::-1, ...]


def flip_ud(image: np.ndarray) -> np.ndarray:
    """Mirror top to bottom."""
    return image[::-1, ...]


ORIENTATION_OPS: dict[str, Callable[[np.ndarray], np.ndarray]] = {
    "rotate_cw": rotate_cw,
    "rotate_ccw": rotate_ccw,
    "flip_lr": flip_lr,
    "flip_ud": flip_ud,
}


def validate_ops(ops: Sequence[str]) -> list[str]:
    """Normalize operation names.

    Raises:
        ConfigurationError: If an operation is unknown.
    """
    names = [str(op).strip().lower() for op in ops]
    unknown = [op for op in names if op not in ORIENTATION_OPS]
    if unknown:
        raise ConfigurationError(
            f"Unknown orientation operation(s) {unknown}. "
            f"Available: {sorted(ORIENTATION_OPS)}"
        )
    return names


def orient(images: ImageSet, ops: Sequence[str]) -> ImageSet:
    """Apply orientation operations, in order, to all three channels.

    Args:
        images: Image set as acquired.
        ops: Operation names from ``ORIENTATION_OPS``.

    Returns:
        A new ImageSet; the input is left untouched.
    """
    names = validate_ops(ops)
    if not names:
        return images
    surface, solubilized, captured = images.surface, images.solubilized, images.captured
    for name in names:
        op = ORIENTATION_OPS[name]
        surface, solubilized, captured = op(surface), op(solubilized), op(captured)
    logger.info("Applied orientation: %s", ", ".join(names))
    return ImageSet(
        surface=np.ascontiguousarray(surface),
        solubilized=np.ascontiguousarray(solubilized),
        captured=np.ascontiguousarray(captured),
    )
