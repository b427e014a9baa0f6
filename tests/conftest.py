"""Shared pytest fixtures for the cursorcam test suite."""

from fractions import Fraction
from pathlib import Path

import av
import numpy as np
import pytest

from cursorcam.core.planes import CanvasFrame
from cursorcam.core.project_model import BackgroundSpec, Config, Rgb, SourceWindowInfo, ZoomInterval

CLIP_WIDTH = 64
CLIP_HEIGHT = 48
CLIP_FRAMES = 12

CONFIG_DATA = {
    "duration": 5000,
    "positions_file": "positions.json",
    "source_file": "source.json",
    "input_file": "capture.mp4",
    "output_file": "output.mp4",
    "zoom_info": [{"start": 1000, "end": 3000, "zoom": 0.5}],
    "background_info": [{"start": {"r": 10, "g": 20, "b": 30}, "end": {"r": 200, "g": 150, "b": 100}}],
}


def has_encoder(name: str) -> bool:
    try:
        av.Codec(name, "w")
    except ValueError:
        return False
    return True


requires_x264 = pytest.mark.skipif(not has_encoder("libx264"), reason="libx264 encoder not available")


def write_clip(path: Path, frames: int = CLIP_FRAMES, width: int = CLIP_WIDTH, height: int = CLIP_HEIGHT,
               fps: int = 30) -> Path:
    with av.open(str(path), mode="w") as container:
        stream = container.add_stream("mpeg4", rate=fps)
        stream.width = width
        stream.height = height
        stream.pix_fmt = "yuv420p"
        for index in range(frames):
            image = np.zeros((height, width, 3), dtype=np.uint8)
            image[..., 0] = (index * 20) % 256
            image[..., 1] = np.linspace(0, 255, width, dtype=np.uint8)[np.newaxis, :]
            frame = av.VideoFrame.from_ndarray(image, format="rgb24")
            frame.pts = index
            frame.time_base = Fraction(1, fps)
            for packet in stream.encode(frame):
                container.mux(packet)
        for packet in stream.encode(None):
            container.mux(packet)
    return path


def ramp_canvas(width: int, height: int) -> CanvasFrame:
    """Canvas with smooth ramps in every plane."""
    canvas = CanvasFrame.allocate(width, height)
    canvas.y.pixels[:, :] = (np.arange(width, dtype=np.uint16) * 2 % 256).astype(np.uint8)[np.newaxis, :]
    canvas.u.pixels[:, :] = (np.arange(canvas.u.height, dtype=np.uint16) * 4 + 64).astype(np.uint8)[:, np.newaxis]
    canvas.v.pixels[:, :] = 128
    return canvas


@pytest.fixture
def sample_clip(tmp_path) -> Path:
    return write_clip(tmp_path / "capture.mp4")


@pytest.fixture
def background() -> BackgroundSpec:
    return BackgroundSpec(start=Rgb(0, 0, 0), end=Rgb(255, 255, 255))


@pytest.fixture
def make_config(background):
    def _make(zoom_info=(), duration=5000):
        return Config(
            duration=duration,
            background_info=[background],
            zoom_info=[ZoomInterval(*zoom) if isinstance(zoom, tuple) else zoom for zoom in zoom_info],
        )

    return _make


@pytest.fixture
def window() -> SourceWindowInfo:
    return SourceWindowInfo(x=0, y=0, width=CLIP_WIDTH, height=CLIP_HEIGHT, scale_factor=1.0)
