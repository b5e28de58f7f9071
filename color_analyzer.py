"""
Color analysis utilities for photomosaic generation.
Provides average-color computation over RGBA pixel buffers and the
nearest-color lookup used to pick a pool image for every tile.
"""

from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np
from PIL import Image
from numba import jit


RGBColor = Tuple[float, float, float]


@jit(nopython=True)
def _rgba_channel_sums(data: np.ndarray) -> Tuple[float, float, float]:
    red = 0.0
    green = 0.0
    blue = 0.0
    for i in range(0, data.shape[0], 4):
        red += data[i]
        green += data[i + 1]
        blue += data[i + 2]
    return red, green, blue


class ColorAnalyzer:
    """Utility collection for analyzing color statistics of images."""

    # ------------------------------------------------------------------
    # Public helpers for average color computation
    # ------------------------------------------------------------------
    @staticmethod
    def get_average_color_from_rgba(data: np.ndarray) -> RGBColor:
        """Return the RGB mean of an RGBA buffer; alpha is ignored.

        The buffer is walked with a stride of four bytes, so any array whose
        flattened form is ``R, G, B, A, R, G, B, A, ...`` is accepted.
        """
        flat = np.ascontiguousarray(data, dtype=np.uint8).reshape(-1)
        if flat.size % 4:
            raise ValueError(f"RGBA buffer length must be a multiple of 4, got {flat.size}")
        count = flat.size // 4
        if count == 0:
            return 0.0, 0.0, 0.0
        red, green, blue = _rgba_channel_sums(flat)
        return red / count, green / count, blue / count

    @staticmethod
    def get_average_color_from_image(image: Image.Image) -> RGBColor:
        """Return the RGB mean of a whole bitmap."""
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        return ColorAnalyzer.get_average_color_from_rgba(np.asarray(image))

    @staticmethod
    def get_average_colors(images: Sequence[Image.Image]) -> np.ndarray:
        """Stack the average colors of several bitmaps into an ``(n, 3)`` array."""
        colors = [ColorAnalyzer.get_average_color_from_image(image) for image in images]
        return np.array(colors, dtype=np.float64).reshape(-1, 3)

    # ------------------------------------------------------------------
    # Distance metrics
    # ------------------------------------------------------------------
    @staticmethod
    def color_distance(color1: Sequence[float], color2: Sequence[float]) -> float:
        """Euclidean distance between two RGB colors."""
        diff = np.asarray(color1, dtype=np.float64) - np.asarray(color2, dtype=np.float64)
        return float(np.sqrt(np.sum(diff * diff)))

    @staticmethod
    def euclidean_distance_vectorized(color: Sequence[float], color_array: np.ndarray) -> np.ndarray:
        diff = np.asarray(color_array, dtype=np.float64) - np.asarray(color, dtype=np.float64)
        return np.sqrt(np.sum(diff * diff, axis=1))

    @staticmethod
    def best_match_index(color: Sequence[float], candidate_colors: np.ndarray) -> int:
        """Index of the candidate closest to ``color``.

        Ties go to the earliest candidate, as ``argmin`` returns the first
        occurrence of the minimum.
        """
        if len(candidate_colors) == 0:
            raise ValueError("Cannot match a color against an empty candidate list")
        distances = ColorAnalyzer.euclidean_distance_vectorized(color, candidate_colors)
        return int(np.argmin(distances))


__all__ = ["ColorAnalyzer", "RGBColor"]
