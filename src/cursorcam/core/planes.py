"""
Planar YUV 4:2:0 frames as strided numpy views.

Every plane is a ``(buffer, stride, width, height)`` view: ``buffer`` is a
``(rows, stride)`` uint8 array whose first ``width`` columns hold pixels and
whose remaining columns are alignment padding. Chroma planes have half the
luma resolution (rounded up), so any sub-region handed to them is first
aligned down to an even luma coordinate pair.
"""

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction
from typing import Optional, Tuple

import av
import cv2
import numpy as np

from .errors import ResampleError

PIXEL_FORMAT = "yuv420p"
ROW_ALIGN = 32


def make_even(value: int) -> int:
    return value - (value % 2)


def chroma_size(width: int, height: int) -> Tuple[int, int]:
    return (width + 1) // 2, (height + 1) // 2


def _aligned(width: int, align: int = ROW_ALIGN) -> int:
    return max(align, ((width + align - 1) // align) * align)


@dataclass
class PlaneView:
    buffer: np.ndarray
    width: int
    height: int

    @property
    def stride(self) -> int:
        return int(self.buffer.shape[1])

    @property
    def pixels(self) -> np.ndarray:
        return self.buffer[: self.height, : self.width]

    @staticmethod
    def allocate(width: int, height: int, stride: Optional[int] = None) -> "PlaneView":
        stride = stride if stride is not None else _aligned(width)
        if stride < width:
            raise ValueError(f"Stride {stride} is narrower than width {width}")
        return PlaneView(np.zeros((height, stride), dtype=np.uint8), width, height)

    @staticmethod
    def wrap(pixels: np.ndarray) -> "PlaneView":
        height, width = pixels.shape[:2]
        return PlaneView(pixels, width, height)

    def region(self, top: int, left: int, height: int, width: int) -> np.ndarray:
        """Read-only view of a sub-rectangle, bounds-checked."""
        if top < 0 or left < 0 or height <= 0 or width <= 0:
            raise ValueError(f"Invalid region {left},{top} {width}x{height}")
        if top + height > self.height or left + width > self.width:
            raise ValueError(
                f"Region {left},{top} {width}x{height} exceeds plane {self.width}x{self.height}"
            )
        view = self.buffer[top : top + height, left : left + width]
        view.flags.writeable = False
        return view

    def paste(self, top: int, left: int, data: np.ndarray) -> None:
        rows, cols = data.shape[:2]
        rows = min(rows, self.height - top)
        cols = min(cols, self.width - left)
        if rows <= 0 or cols <= 0:
            return
        self.buffer[top : top + rows, left : left + cols] = data[:rows, :cols]

    def copy(self) -> "PlaneView":
        return PlaneView(self.buffer.copy(), self.width, self.height)


@dataclass
class CanvasFrame:
    y: PlaneView
    u: PlaneView
    v: PlaneView

    @property
    def width(self) -> int:
        return self.y.width

    @property
    def height(self) -> int:
        return self.y.height

    @property
    def planes(self) -> Tuple[PlaneView, PlaneView, PlaneView]:
        return self.y, self.u, self.v

    @staticmethod
    def allocate(width: int, height: int) -> "CanvasFrame":
        chroma_w, chroma_h = chroma_size(width, height)
        return CanvasFrame(
            y=PlaneView.allocate(width, height),
            u=PlaneView.allocate(chroma_w, chroma_h),
            v=PlaneView.allocate(chroma_w, chroma_h),
        )

    @staticmethod
    def from_planes(y: np.ndarray, u: np.ndarray, v: np.ndarray) -> "CanvasFrame":
        return CanvasFrame(PlaneView.wrap(y), PlaneView.wrap(u), PlaneView.wrap(v))

    def copy(self) -> "CanvasFrame":
        return CanvasFrame(self.y.copy(), self.u.copy(), self.v.copy())

    def crop(self, top: int, left: int, height: int, width: int) -> "CanvasFrame":
        """
        Views of the same rectangle in all three planes.

        ``top``/``left`` are rounded down to even before the chroma offsets
        are taken, and ``height``/``width`` must be even.
        """
        if height % 2 or width % 2:
            raise ValueError(f"Crop size {width}x{height} must be even")
        top = make_even(top)
        left = make_even(left)
        luma = self.y.region(top, left, height, width)
        chroma_top, chroma_left = top // 2, left // 2
        u = self.u.region(chroma_top, chroma_left, height // 2, width // 2)
        v = self.v.region(chroma_top, chroma_left, height // 2, width // 2)
        return CanvasFrame.from_planes(luma, u, v)

    # ------------------------------------------------------------ PyAV ------
    @staticmethod
    def from_av(frame: av.VideoFrame) -> "CanvasFrame":
        if frame.format.name != PIXEL_FORMAT:
            try:
                frame = frame.reformat(format=PIXEL_FORMAT)
            except (av.error.FFmpegError, ValueError) as exc:
                raise ResampleError(f"Failed to convert {frame.format.name} frame to {PIXEL_FORMAT}: {exc}") from exc
        views = []
        for plane in frame.planes:
            raw = np.frombuffer(plane, dtype=np.uint8)
            buffer = raw[: plane.line_size * plane.height].reshape(plane.height, plane.line_size)
            views.append(PlaneView(buffer, plane.width, plane.height))
        return CanvasFrame(*views)

    def to_av(self, pts: Optional[int] = None, time_base: Optional[Fraction] = None) -> av.VideoFrame:
        frame = av.VideoFrame(self.width, self.height, PIXEL_FORMAT)
        for plane, view in zip(frame.planes, self.planes):
            padded = np.zeros((plane.height, plane.line_size), dtype=np.uint8)
            rows = min(plane.height, view.height)
            cols = min(plane.width, view.width)
            padded[:rows, :cols] = view.pixels[:rows, :cols]
            plane.update(padded)
        frame.pts = pts
        if time_base is not None:
            frame.time_base = time_base
        return frame


def resize_plane(pixels: np.ndarray, width: int, height: int) -> np.ndarray:
    if width <= 0 or height <= 0:
        raise ResampleError(f"Cannot scale plane to {width}x{height}")
    if pixels.size == 0:
        raise ResampleError("Cannot scale an empty plane")
    if pixels.shape[1] == width and pixels.shape[0] == height:
        return np.array(pixels, copy=True)
    try:
        return cv2.resize(np.ascontiguousarray(pixels), (width, height), interpolation=cv2.INTER_LINEAR)
    except cv2.error as exc:
        raise ResampleError(f"Failed to scale plane to {width}x{height}: {exc}") from exc


def resize_frame(frame: CanvasFrame, width: int, height: int) -> CanvasFrame:
    """Bilinear rescale of all three planes into a freshly allocated frame."""
    chroma_w, chroma_h = chroma_size(width, height)
    return CanvasFrame.from_planes(
        resize_plane(frame.y.pixels, width, height),
        resize_plane(frame.u.pixels, chroma_w, chroma_h),
        resize_plane(frame.v.pixels, chroma_w, chroma_h),
    )
