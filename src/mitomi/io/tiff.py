"""TIFF reading of chip channels via tifffile."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence, Union

import numpy as np
import tifffile

from mitomi.core.exceptions import ConfigurationError, ImageDimensionError
from mitomi.core.models import ImageSet

PathLike = Union[str, Path]


def read_tiff(path: Path) -> np.ndarray:
    """Read a TIFF file into a numpy array.

    Args:
        path: Path to the TIFF file.

    Returns:
        Numpy array with the image data. Multi-page files come back as
        (pages, Y, X).

    Raises:
        ConfigurationError: If the file does not exist.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f"Image file not found: {path}")
    return tifffile.imread(str(path))


def read_frame(path: Path) -> np.ndarray:
    """Read a single-frame image as a 2D array.

    Raises:
        ImageDimensionError: If the file holds more than one frame.
    """
    data = np.squeeze(read_tiff(path))
    if data.ndim != 2:
        raise ImageDimensionError({str(path): data.shape})
    return data


def read_stack(paths: PathLike | Sequence[PathLike]) -> np.ndarray:
    """Read one or more files into a (Y, X, frames) stack.

    Frames follow file order, then page order within each file.

    Raises:
        ConfigurationError: If no file is given.
        ImageDimensionError: If a file is not 2D or (pages, Y, X), or the
            frames differ in size.
    """
    if isinstance(paths, (str, Path)):
        paths = [paths]
    if not paths:
        raise ConfigurationError("At least one image file is required per channel")

    frames: list[np.ndarray] = []
    for p in paths:
        data = read_tiff(Path(p))
        if data.ndim == 2:
            frames.append(data)
        elif data.ndim == 3:
            frames.extend(data)
        else:
            raise ImageDimensionError({str(p): data.shape})

    shapes = {f.shape for f in frames}
    if len(shapes) > 1:
        raise ImageDimensionError({f"frame {i + 1}": f.shape for i, f in enumerate(frames)})
    return np.stack(frames, axis=-1)


def load_image_set(
    surface: PathLike,
    solubilized: PathLike | Sequence[PathLike],
    captured: PathLike | Sequence[PathLike],
) -> ImageSet:
    """Read the three chip channels into an ImageSet.

    Args:
        surface: Single-frame surface (button) image.
        solubilized: One multi-page file or a list of frame files.
        captured: One multi-page file or a list of frame files.

    Raises:
        ConfigurationError: If a file is missing.
        ImageDimensionError: If the channels do not share row/column extent.
    """
    return ImageSet(
        surface=read_frame(Path(surface)),
        solubilized=read_stack(solubilized),
        captured=read_stack(captured),
    )
