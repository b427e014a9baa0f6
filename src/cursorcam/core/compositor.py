"""
Background compositor.

For every decoded frame we start from the painted gradient canvas, shrink the
recording by the inset factor and paste it centred, producing a YUV 4:2:0
canvas that the camera stage crops from.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

import av

from .gradient import GradientTable
from .planes import CanvasFrame, make_even, resize_plane, chroma_size
from .project_model import BackgroundSpec

INSET_SCALE = 0.8


@dataclass
class InsetLayout:
    width: int
    height: int
    offset_x: int
    offset_y: int


def inset_layout(canvas_width: int, canvas_height: int, source_width: int, source_height: int,
                 scale: float = INSET_SCALE) -> InsetLayout:
    width = max(2, make_even(int(source_width * scale)))
    height = max(2, make_even(int(source_height * scale)))
    width = min(width, make_even(canvas_width))
    height = min(height, make_even(canvas_height))
    return InsetLayout(
        width=width,
        height=height,
        offset_x=make_even((canvas_width - width) // 2),
        offset_y=make_even((canvas_height - height) // 2),
    )


def paint_background(canvas: CanvasFrame, table: GradientTable) -> None:
    """Replicate the luma row down the Y plane and the chroma rows down U/V."""
    canvas.y.pixels[:, :] = table.luma[: canvas.width]
    chroma_w = canvas.u.width
    canvas.u.pixels[:, :] = table.chroma_u[:chroma_w]
    canvas.v.pixels[:, :] = table.chroma_v[:chroma_w]


class Compositor:
    def __init__(self, width: int, height: int, background: BackgroundSpec,
                 inset_scale: float = INSET_SCALE) -> None:
        self.width = width
        self.height = height
        self.inset_scale = inset_scale
        self.table = GradientTable.build(width, background.start.as_tuple(), background.end.as_tuple())
        self._background = CanvasFrame.allocate(width, height)
        paint_background(self._background, self.table)
        self._layouts: Dict[Tuple[int, int], InsetLayout] = {}

    def layout_for(self, source_width: int, source_height: int) -> InsetLayout:
        key = (source_width, source_height)
        layout = self._layouts.get(key)
        if layout is None:
            layout = inset_layout(self.width, self.height, source_width, source_height, self.inset_scale)
            self._layouts[key] = layout
        return layout

    def render_frame(self, decoded: av.VideoFrame) -> CanvasFrame:
        return self.composite(CanvasFrame.from_av(decoded))

    def composite(self, source: CanvasFrame) -> CanvasFrame:
        canvas = self._background.copy()
        layout = self.layout_for(source.width, source.height)
        chroma_w, chroma_h = chroma_size(layout.width, layout.height)

        canvas.y.paste(layout.offset_y, layout.offset_x, resize_plane(source.y.pixels, layout.width, layout.height))
        chroma_top, chroma_left = layout.offset_y // 2, layout.offset_x // 2
        canvas.u.paste(chroma_top, chroma_left, resize_plane(source.u.pixels, chroma_w, chroma_h))
        canvas.v.paste(chroma_top, chroma_left, resize_plane(source.v.pixels, chroma_w, chroma_h))
        return canvas

