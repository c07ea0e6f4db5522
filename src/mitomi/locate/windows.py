"""Local image windows around lattice sites."""

from __future__ import annotations

import numpy as np
from skimage import exposure


def crop_window(image: np.ndarray, cx: int, cy: int, half: int) -> np.ndarray:
    """Square ``(2*half+1)`` crop of a 2D image centered on (cx, cy).

    Pixels outside the image are 0, which every statistic treats as
    masked out.
    """
    side = 2 * half + 1
    out = np.zeros((side, side), dtype=np.float64)
    h, w = image.shape[:2]

    y0, x0 = cy - half, cx - half
    src_y0, src_x0 = max(y0, 0), max(x0, 0)
    src_y1, src_x1 = min(y0 + side, h), min(x0 + side, w)
    if src_y0 >= src_y1 or src_x0 >= src_x1:
        return out

    out[src_y0 - y0 : src_y1 - y0, src_x0 - x0 : src_x1 - x0] = image[
        src_y0:src_y1, src_x0:src_x1
    ]
    return out


def normalize_window(window: np.ndarray, approx_intensity: float) -> np.ndarray | None:
    """Contrast-normalize a window to [0, 1] for circle detection.

    The input range ``[median - 2*std, approx_intensity + 2*std]`` follows
    the window's own statistics, so the result adapts to illumination
    gradients across the chip. A 1-99 percentile stretch follows.

    Returns:
        Float image in [0, 1], or None when the window is flat.
    """
    std = float(np.std(window, ddof=1)) if window.size > 1 else 0.0
    low = float(np.median(window)) - 2 * std
    high = approx_intensity + 2 * std
    if not high > low:
        return None

    scaled = exposure.rescale_intensity(
        window, in_range=(low, high), out_range=(0.0, 1.0),
    )
    p_low, p_high = np.percentile(scaled, (1, 99))
    if p_high > p_low:
        scaled = exposure.rescale_intensity(
            scaled, in_range=(p_low, p_high), out_range=(0.0, 1.0),
        )
    return scaled
