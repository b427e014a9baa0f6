"""Crop the camera rectangle out of the canvas and scale it to output size."""

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction

import av

from .camera import CropRect
from .errors import ResampleError
from .planes import CanvasFrame, resize_frame

UPSCALE_FACTOR = 4


def rescale_ts(value: int, source: Fraction, target: Fraction) -> int:
    """Convert a timestamp between time bases, rounding to nearest."""
    return int(round(Fraction(value) * source / target))


@dataclass
class SampledFrame:
    image: CanvasFrame
    pts: int
    time_base: Fraction

    def to_av(self) -> av.VideoFrame:
        return self.image.to_av(pts=self.pts, time_base=self.time_base)


class RegionSampler:
    def __init__(self, output_width: int, output_height: int, upscale_factor: int = UPSCALE_FACTOR) -> None:
        if upscale_factor < 1:
            raise ValueError(f"Upscale factor must be at least 1, got {upscale_factor}")
        self.output_width = output_width
        self.output_height = output_height
        self.upscale_factor = int(upscale_factor)

    def surface_size(self, canvas_width: int, canvas_height: int):
        return canvas_width * self.upscale_factor, canvas_height * self.upscale_factor

    def upscale(self, canvas: CanvasFrame) -> CanvasFrame:
        if self.upscale_factor == 1:
            return canvas
        width, height = self.surface_size(canvas.width, canvas.height)
        return resize_frame(canvas, width, height)

    def extract(self, canvas: CanvasFrame, rect: CropRect) -> CanvasFrame:
        surface = self.upscale(canvas)
        try:
            region = surface.crop(rect.top, rect.left, rect.height, rect.width)
        except ValueError as exc:
            raise ResampleError(f"Zoom region does not fit the canvas: {exc}") from exc
        return resize_frame(region, self.output_width, self.output_height)

    def sample(self, canvas: CanvasFrame, rect: CropRect, frame_index: int,
               encoder_time_base: Fraction, stream_time_base: Fraction) -> SampledFrame:
        image = self.extract(canvas, rect)
        return SampledFrame(
            image=image,
            pts=rescale_ts(frame_index, encoder_time_base, stream_time_base),
            time_base=stream_time_base,
        )
