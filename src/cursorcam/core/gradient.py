"""Horizontal background gradient, precomputed once per run."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np

Color = Tuple[float, float, float]

CHROMA_SHIFT = 128.0


def precompute_gradient(width: int, start: Color, end: Color) -> np.ndarray:
    """
    Linearly interpolate ``width`` RGB triples from ``start`` to ``end``.

    Column ``x`` sits at ``t = x / (width - 1)``. The result has shape
    ``(width, 3)`` in float64.
    """
    if width <= 0:
        return np.zeros((0, 3), dtype=np.float64)
    start_arr = np.asarray(start, dtype=np.float64)
    end_arr = np.asarray(end, dtype=np.float64)
    if width == 1:
        return start_arr.reshape(1, 3).copy()
    t = np.arange(width, dtype=np.float64) / (width - 1)
    return start_arr + t[:, np.newaxis] * (end_arr - start_arr)


def rgb_to_yuv(rgb: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    y = 0.299 * r + 0.587 * g + 0.114 * b
    u = -0.16874 * r - 0.33126 * g + 0.5 * b + CHROMA_SHIFT
    v = 0.5 * r - 0.41869 * g - 0.08131 * b + CHROMA_SHIFT
    return y, u, v


def _to_uint8(values: np.ndarray) -> np.ndarray:
    # truncates like an integer cast
    return np.clip(values, 0.0, 255.0).astype(np.uint8)


@dataclass
class GradientTable:
    luma: np.ndarray  # (width,) uint8
    chroma_u: np.ndarray  # (ceil(width / 2),) uint8, sampled at even columns
    chroma_v: np.ndarray

    @property
    def width(self) -> int:
        return int(self.luma.shape[0])

    @staticmethod
    def build(width: int, start: Color, end: Color) -> "GradientTable":
        rgb = precompute_gradient(width, start, end)
        y, u, v = rgb_to_yuv(rgb)
        return GradientTable(
            luma=_to_uint8(y),
            chroma_u=_to_uint8(u[::2]),
            chroma_v=_to_uint8(v[::2]),
        )
