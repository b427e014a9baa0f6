"""Recording transform pipeline: decode, composite, zoom, encode."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from ..core.camera import CameraController, CameraSettings, mouse_focus
from ..core.compositor import INSET_SCALE, Compositor
from ..core.decoder import MediaDecoder
from ..core.errors import StreamError, TransformError
from ..core.planes import make_even
from ..core.project_model import Config, MouseEvent, SourceWindowInfo
from ..core.sampler import UPSCALE_FACTOR, RegionSampler
from .encoder import OUTPUT_PROFILE, MediaEncoder

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Video transformation completed successfully"


@dataclass
class PipelineSettings:
    fps: int = OUTPUT_PROFILE["fps"]
    inset_scale: float = INSET_SCALE
    upscale_factor: int = UPSCALE_FACTOR
    camera: CameraSettings = field(default_factory=CameraSettings)


@dataclass
class TransformOutcome:
    ok: bool
    message: str


class Exporter:
    def __init__(
        self,
        config: Config,
        mouse_events: Sequence[MouseEvent],
        window: SourceWindowInfo,
        settings: Optional[PipelineSettings] = None,
    ) -> None:
        self.config = config
        self.mouse_events = list(mouse_events)
        self.window = window
        self.settings = settings or PipelineSettings()

    def export(self, input_path: Path, output_path: Path) -> int:
        """Run the transform and return the number of frames encoded."""
        settings = self.settings
        self.config.validate(settings.camera.animation_duration_ms)
        fps = settings.fps
        expected_frames = max(self.config.duration * fps // 1000, 1)

        with MediaDecoder(Path(input_path)) as decoder:
            width, height = make_even(decoder.width), make_even(decoder.height)
            if width < 2 or height < 2:
                raise StreamError(f"Video stream in {input_path} has no usable size ({decoder.width}x{decoder.height})")

            compositor = Compositor(width, height, self.config.background, settings.inset_scale)
            sampler = RegionSampler(width, height, settings.upscale_factor)
            surface_width, surface_height = sampler.surface_size(width, height)
            focus = mouse_focus(
                self.mouse_events, self.window, width, height, settings.inset_scale, settings.upscale_factor
            )
            camera = CameraController(self.config, surface_width, surface_height, fps, settings.camera, focus)
            with MediaEncoder(Path(output_path), width, height, {"fps": fps}) as encoder:
                frame_index = 0
                for decoded in decoder.frames():
                    canvas = compositor.render_frame(decoded)
                    rect = camera.step()
                    sampled = sampler.sample(
                        canvas, rect, frame_index, encoder.codec_time_base, encoder.stream_time_base
                    )
                    encoder.write(sampled)
                    frame_index += 1
                    if frame_index % fps == 0:
                        logger.info(
                            "Encoded %d/%d frames (crop %dx%d at %d,%d)",
                            frame_index,
                            expected_frames,
                            rect.width,
                            rect.height,
                            rect.left,
                            rect.top,
                        )
                encoder.finish()

        logger.info("Transform finished: %d frames written to %s", frame_index, output_path)
        return frame_index


def transform_video(
    config: Config,
    mouse_events: Sequence[MouseEvent],
    window: SourceWindowInfo,
    input_path: Path,
    output_path: Path,
    settings: Optional[PipelineSettings] = None,
) -> str:
    Exporter(config, mouse_events, window, settings).export(input_path, output_path)
    return SUCCESS_MESSAGE


def run_transform(
    config: Config,
    mouse_events: Sequence[MouseEvent],
    window: SourceWindowInfo,
    input_path: Path,
    output_path: Path,
    settings: Optional[PipelineSettings] = None,
) -> TransformOutcome:
    """
    Dispatch boundary for the transform.

    Failures are reported as a message instead of an exception; a failed run
    may leave a truncated file at ``output_path`` that should be discarded.
    """
    try:
        message = transform_video(config, mouse_events, window, input_path, output_path, settings)
    except TransformError as exc:
        logger.error("Transform of %s failed: %s", input_path, exc)
        return TransformOutcome(ok=False, message=str(exc))
    return TransformOutcome(ok=True, message=message)
