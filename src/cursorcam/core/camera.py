"""
Virtual camera for the zoom/pan effect.

The camera is a small state machine (idle, zooming in, zooming out) driven by
the elapsed time of each frame. Its state is an immutable ``CameraState``
value; ``advance`` maps the previous state and the frame time to the next one
and ``crop_rect`` turns a state into the rectangle the sampler extracts.

Sizes and positions live in sampling-surface coordinates: the canvas scaled
by the sampler's upscale factor.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Optional, Sequence, Tuple

from .planes import make_even
from .project_model import (
    ANIMATION_DURATION_MS,
    Config,
    MouseEvent,
    SourceWindowInfo,
    ZoomInterval,
    first_event_at_or_after,
)

logger = logging.getLogger(__name__)

FRICTION = 4.0
DIMENSION_SMOOTHING_FACTOR = 0.95

FocusResolver = Callable[[ZoomInterval], Optional[Tuple[float, float]]]


class Phase(Enum):
    IDLE = "idle"
    ZOOMING_IN = "zooming_in"
    ZOOMING_OUT = "zooming_out"


@dataclass(frozen=True)
class CameraSettings:
    friction: float = FRICTION
    animation_duration_ms: int = ANIMATION_DURATION_MS
    dimension_smoothing: bool = False
    dimension_smoothing_factor: float = DIMENSION_SMOOTHING_FACTOR
    # None keeps the focal point jump instantaneous
    focus_friction: Optional[float] = None


@dataclass(frozen=True)
class CropRect:
    left: int
    top: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.left + self.width

    @property
    def bottom(self) -> int:
        return self.top + self.height


@dataclass(frozen=True)
class CameraState:
    surface_width: int
    surface_height: int
    current_width: float
    current_height: float
    current_mouse_x: float
    current_mouse_y: float
    target_mouse_x: float
    target_mouse_y: float
    velocity_width: float = 0.0
    velocity_height: float = 0.0
    velocity_mouse_x: float = 0.0
    velocity_mouse_y: float = 0.0
    zooming_in: bool = False
    zooming_out: bool = False
    target_multiplier: float = 1.0
    active_interval: Optional[int] = None
    smooth_width: Optional[float] = None
    smooth_height: Optional[float] = None
    frame_index: int = 0

    @staticmethod
    def initial(surface_width: int, surface_height: int) -> "CameraState":
        """Full-surface crop centred on the surface."""
        center_x = surface_width / 2.0
        center_y = surface_height / 2.0
        return CameraState(
            surface_width=surface_width,
            surface_height=surface_height,
            current_width=float(surface_width),
            current_height=float(surface_height),
            current_mouse_x=center_x,
            current_mouse_y=center_y,
            target_mouse_x=center_x,
            target_mouse_y=center_y,
        )

    @property
    def phase(self) -> Phase:
        if self.zooming_in:
            return Phase.ZOOMING_IN
        if self.zooming_out:
            return Phase.ZOOMING_OUT
        return Phase.IDLE

    @property
    def target_width(self) -> float:
        return self.surface_width * self.target_multiplier

    @property
    def target_height(self) -> float:
        return self.surface_height * self.target_multiplier

    @property
    def used_width(self) -> float:
        return self.current_width if self.smooth_width is None else self.smooth_width

    @property
    def used_height(self) -> float:
        return self.current_height if self.smooth_height is None else self.smooth_height


def elapsed_ms(frame_index: int, fps: int) -> int:
    return frame_index * 1000 // fps


def decay_step(target: float, current: float, friction: float) -> float:
    """Displacement that moves ``current`` a fixed fraction of the way to ``target``."""
    return (target - current) * math.exp(-friction)


def frames_to_converge(distance: float, epsilon: float, friction: float) -> int:
    """Upper bound on frames for ``decay_step`` to bring ``distance`` under ``epsilon``."""
    distance = abs(distance)
    if distance <= epsilon:
        return 0
    keep = 1.0 - math.exp(-friction)
    if keep <= 0.0:
        return 1
    return int(math.ceil(math.log(epsilon / distance) / math.log(keep)))


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


def _approach(previous: float, updated: float, target: float) -> float:
    # never cross the target from the side we started on
    if previous >= target:
        return max(updated, target)
    return min(updated, target)


def resolve_phase(intervals: Sequence[ZoomInterval], time_ms: int,
                  animation_duration_ms: int = ANIMATION_DURATION_MS) -> Tuple[Optional[Phase], Optional[int]]:
    """
    Pick the phase a frame at ``time_ms`` falls in.

    Every interval is checked in order: one containing the time selects
    zooming in, one whose zoom-out window contains it selects zooming out.
    The last match wins when intervals overlap. ``(None, None)`` means the
    camera keeps whatever it was doing.
    """
    phase: Optional[Phase] = None
    match: Optional[int] = None
    for index, interval in enumerate(intervals):
        if interval.contains(time_ms):
            phase, match = Phase.ZOOMING_IN, index
        elif interval.end <= time_ms < interval.end + animation_duration_ms:
            phase, match = Phase.ZOOMING_OUT, index
    return phase, match


def map_mouse_to_canvas(event: MouseEvent, window: SourceWindowInfo, canvas_width: int, canvas_height: int,
                        inset_scale: float) -> Tuple[float, float]:
    """Device coordinates of ``event`` to canvas coordinates inside the inset."""
    margin = (1.0 - inset_scale) / 2.0
    x = (event.x * window.scale_factor - window.x) * inset_scale + canvas_width * margin
    y = (event.y * window.scale_factor - window.y) * inset_scale + canvas_height * margin
    return x, y


def mouse_focus(events: Sequence[MouseEvent], window: SourceWindowInfo, canvas_width: int, canvas_height: int,
                inset_scale: float, upscale_factor: int = 1) -> FocusResolver:
    def resolve(interval: ZoomInterval) -> Optional[Tuple[float, float]]:
        event = first_event_at_or_after(events, interval.start)
        if event is None:
            return None
        x, y = map_mouse_to_canvas(event, window, canvas_width, canvas_height, inset_scale)
        return x * upscale_factor, y * upscale_factor

    return resolve


def _no_focus(interval: ZoomInterval) -> None:
    return None


def advance(state: CameraState, config: Config, time_ms: int,
            settings: CameraSettings = CameraSettings(),
            focus: FocusResolver = _no_focus) -> CameraState:
    """Next camera state for a frame at ``time_ms``."""
    intervals = config.zoom_info
    phase, index = resolve_phase(intervals, time_ms, settings.animation_duration_ms)
    changes = {}

    if phase is Phase.ZOOMING_IN:
        if not state.zooming_in or state.active_interval != index:
            interval = intervals[index]
            changes.update(
                velocity_width=0.0,
                velocity_height=0.0,
                velocity_mouse_x=0.0,
                velocity_mouse_y=0.0,
                zooming_in=True,
                zooming_out=False,
                target_multiplier=interval.zoom,
                active_interval=index,
            )
            point = focus(interval)
            if point is not None:
                changes.update(target_mouse_x=point[0], target_mouse_y=point[1])
                if settings.focus_friction is None:
                    changes.update(current_mouse_x=point[0], current_mouse_y=point[1])
            logger.debug("Zooming in to %.2f at %d ms (interval %d)", interval.zoom, time_ms, index)
    elif phase is Phase.ZOOMING_OUT:
        if state.zooming_in:
            changes.update(
                velocity_width=0.0,
                velocity_height=0.0,
                velocity_mouse_x=0.0,
                velocity_mouse_y=0.0,
                zooming_in=False,
                zooming_out=True,
                target_multiplier=1.0,
                active_interval=index,
            )
            logger.debug("Zooming out at %d ms (interval %d)", time_ms, index)

    state = replace(state, **changes) if changes else state
    state = _filter_dimensions(state, settings)
    state = _filter_focus(state, settings)
    return replace(state, frame_index=state.frame_index + 1)


def _filter_dimensions(state: CameraState, settings: CameraSettings) -> CameraState:
    if not (state.zooming_in or state.zooming_out):
        return state
    width_bound = float(state.surface_width)
    height_bound = float(state.surface_height)
    target_width = state.target_width
    target_height = state.target_height

    velocity_width = _clamp(decay_step(target_width, state.current_width, settings.friction), -width_bound, width_bound)
    velocity_height = _clamp(
        decay_step(target_height, state.current_height, settings.friction), -height_bound, height_bound
    )
    current_width = _approach(state.current_width, state.current_width + velocity_width, target_width)
    current_height = _approach(state.current_height, state.current_height + velocity_height, target_height)

    smooth_width = smooth_height = None
    if settings.dimension_smoothing:
        factor = settings.dimension_smoothing_factor
        previous_width = current_width if state.smooth_width is None else state.smooth_width
        previous_height = current_height if state.smooth_height is None else state.smooth_height
        smooth_width = _clamp(factor * current_width + (1.0 - factor) * previous_width, 1.0, width_bound)
        smooth_height = _clamp(factor * current_height + (1.0 - factor) * previous_height, 1.0, height_bound)

    return replace(
        state,
        current_width=current_width,
        current_height=current_height,
        velocity_width=velocity_width,
        velocity_height=velocity_height,
        smooth_width=smooth_width,
        smooth_height=smooth_height,
    )


def _filter_focus(state: CameraState, settings: CameraSettings) -> CameraState:
    mouse_x = state.current_mouse_x
    mouse_y = state.current_mouse_y
    velocity_x = state.velocity_mouse_x
    velocity_y = state.velocity_mouse_y
    if settings.focus_friction is not None:
        velocity_x = decay_step(state.target_mouse_x, mouse_x, settings.focus_friction)
        velocity_y = decay_step(state.target_mouse_y, mouse_y, settings.focus_friction)
        mouse_x += velocity_x
        mouse_y += velocity_y
    return replace(
        state,
        current_mouse_x=_clamp(mouse_x, 0.0, float(state.surface_width)),
        current_mouse_y=_clamp(mouse_y, 0.0, float(state.surface_height)),
        velocity_mouse_x=velocity_x,
        velocity_mouse_y=velocity_y,
    )


def crop_rect(state: CameraState) -> CropRect:
    surface_width = make_even(state.surface_width)
    surface_height = make_even(state.surface_height)
    width = make_even(int(_clamp(round(state.used_width), 2, surface_width)))
    height = make_even(int(_clamp(round(state.used_height), 2, surface_height)))

    left = _clamp(state.current_mouse_x - width / 2.0, 0.0, surface_width - width)
    top = _clamp(state.current_mouse_y - height / 2.0, 0.0, surface_height - height)
    return CropRect(
        left=make_even(int(math.floor(left))),
        top=make_even(int(math.floor(top))),
        width=width,
        height=height,
    )


class CameraController:
    """Owns the per-run camera state and steps it once per frame."""

    def __init__(self, config: Config, surface_width: int, surface_height: int, fps: int,
                 settings: Optional[CameraSettings] = None, focus: FocusResolver = _no_focus) -> None:
        self.config = config
        self.fps = fps
        self.settings = settings or CameraSettings()
        self.focus = focus
        self.state = CameraState.initial(surface_width, surface_height)

    def step(self) -> CropRect:
        time_ms = elapsed_ms(self.state.frame_index, self.fps)
        self.state = advance(self.state, self.config, time_ms, self.settings, self.focus)
        return crop_rect(self.state)
