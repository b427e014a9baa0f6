"""
Core data model for a recording transform.

All time values are integer milliseconds measured from the start of the
recording. Colors are RGB triples on the 0..255 scale.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .errors import InputError

logger = logging.getLogger(__name__)

# length of the zoom-out window that follows every interval
ANIMATION_DURATION_MS = 5000


@dataclass
class Rgb:
    r: float
    g: float
    b: float

    def as_tuple(self) -> Tuple[float, float, float]:
        return self.r, self.g, self.b

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Rgb":
        return Rgb(
            r=float(data["r"]),
            g=float(data["g"]),
            b=float(data["b"]),
        )


@dataclass
class BackgroundSpec:
    start: Rgb
    end: Rgb

    def to_dict(self) -> Dict[str, Any]:
        return {"start": self.start.to_dict(), "end": self.end.to_dict()}

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "BackgroundSpec":
        return BackgroundSpec(
            start=Rgb.from_dict(data["start"]),
            end=Rgb.from_dict(data["end"]),
        )


@dataclass
class ZoomInterval:
    start: int
    end: int
    zoom: float

    def contains(self, time_ms: int) -> bool:
        return self.start <= time_ms < self.end

    def to_dict(self) -> Dict[str, Any]:
        return {"start": int(self.start), "end": int(self.end), "zoom": float(self.zoom)}

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "ZoomInterval":
        return ZoomInterval(
            start=int(data["start"]),
            end=int(data["end"]),
            zoom=float(data["zoom"]),
        )


@dataclass
class MouseEvent:
    x: int
    y: int
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "MouseEvent":
        return MouseEvent(
            x=int(data["x"]),
            y=int(data["y"]),
            timestamp=int(data["timestamp"]),
        )


@dataclass
class SourceWindowInfo:
    x: int
    y: int
    width: int
    height: int
    scale_factor: float = 1.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "SourceWindowInfo":
        return SourceWindowInfo(
            x=int(data.get("x", 0)),
            y=int(data.get("y", 0)),
            width=int(data["width"]),
            height=int(data["height"]),
            scale_factor=float(data.get("scale_factor", 1.0)),
        )


@dataclass
class Config:
    duration: int
    background_info: List[BackgroundSpec]
    zoom_info: List[ZoomInterval] = field(default_factory=list)
    positions_file: str = ""
    source_file: str = ""
    input_file: str = ""
    output_file: str = ""

    @property
    def background(self) -> BackgroundSpec:
        return self.background_info[0]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "duration": int(self.duration),
            "positions_file": self.positions_file,
            "source_file": self.source_file,
            "input_file": self.input_file,
            "output_file": self.output_file,
            "zoom_info": [zoom.to_dict() for zoom in self.zoom_info],
            "background_info": [bg.to_dict() for bg in self.background_info],
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Config":
        return Config(
            duration=int(data.get("duration", 0)),
            positions_file=str(data.get("positions_file", "")),
            source_file=str(data.get("source_file", "")),
            input_file=str(data.get("input_file", "")),
            output_file=str(data.get("output_file", "")),
            zoom_info=[ZoomInterval.from_dict(z) for z in data.get("zoom_info", [])],
            background_info=[BackgroundSpec.from_dict(b) for b in data.get("background_info", [])],
        )

    def validate(self, animation_duration_ms: int = ANIMATION_DURATION_MS) -> None:
        if self.duration < 0:
            raise InputError(f"Duration must not be negative, got {self.duration}")
        if not self.background_info:
            raise InputError("background_info must contain at least one entry")
        for zoom in self.zoom_info:
            if zoom.end <= zoom.start:
                raise InputError(f"Zoom interval {zoom.start}-{zoom.end} ends before it starts")
            if zoom.zoom <= 0:
                raise InputError(f"Zoom factor must be positive, got {zoom.zoom}")
        for earlier, later in find_overrides(self.zoom_info, animation_duration_ms):
            logger.warning(
                "Zoom interval %d-%d is listed after %d-%d and overrides part of its zoom-in",
                later.start, later.end, earlier.start, earlier.end,
            )


def find_overrides(intervals: Sequence[ZoomInterval],
                   animation_duration_ms: int = ANIMATION_DURATION_MS) -> List[Tuple[ZoomInterval, ZoomInterval]]:
    """
    Pairs ``(earlier, later)`` where a later-listed interval takes over part
    of an earlier one's zoom-in.

    Each interval is matched over ``[start, end + animation_duration_ms)``
    and the last listed match wins, so any intersection with an earlier
    ``[start, end)`` cuts that zoom-in short.
    """
    pairs = []
    for index, earlier in enumerate(intervals):
        for later in intervals[index + 1:]:
            if later.start < earlier.end and earlier.start < later.end + animation_duration_ms:
                pairs.append((earlier, later))
    return pairs


def first_event_at_or_after(events: Iterable[MouseEvent], timestamp: int) -> Optional[MouseEvent]:
    """Return the first event in log order whose timestamp is >= ``timestamp``."""
    return next((event for event in events if event.timestamp >= timestamp), None)
