"""
Decoding helpers built on top of PyAV.

The decoder demuxes a single video stream and yields decoded frames in
presentation order. Each packet is sent to the codec and the codec is then
drained of every frame it can produce before the next packet is read.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterator, Optional

import av

from .errors import CodecError, StreamError

logger = logging.getLogger(__name__)


def drain_frames(codec_context, packet: Optional[av.Packet]) -> Iterator[av.VideoFrame]:
    """
    Send one packet and yield every frame the codec has ready.

    ``None`` (or an empty flush packet) asks the codec for its buffered
    frames. EAGAIN and EOF end the drain without error.
    """
    try:
        frames = codec_context.decode(packet)
    except (av.error.BlockingIOError, av.error.EOFError):
        return
    except av.error.FFmpegError as exc:
        raise CodecError(f"Error sending packet for decoding: {exc}") from exc
    yield from frames


class MediaDecoder:
    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._container: Optional[av.container.InputContainer] = None
        self._stream: Optional[av.video.stream.VideoStream] = None

    # ---------------------------------------------------------- metadata ----------
    @staticmethod
    def probe(path: Path) -> Dict[str, float]:
        try:
            container = av.open(str(path))
        except (av.error.FFmpegError, OSError) as exc:
            raise StreamError(f"Could not open file {path}: {exc}") from exc
        with container:
            stream = next((s for s in container.streams if s.type == "video"), None)
            if stream is None:
                raise StreamError(f"No video stream found in {path}")
            return {
                "duration": float(container.duration) / av.time_base if container.duration else 0.0,
                "index": stream.index,
                "width": stream.codec_context.width,
                "height": stream.codec_context.height,
                "fps": float(stream.average_rate) if stream.average_rate else 0.0,
                "frames": stream.frames,
            }

    # ----------------------------------------------------------- lifecycle --------
    def open(self) -> "MediaDecoder":
        if self._container is not None:
            return self
        logger.info("Opening input file %s", self.path)
        try:
            container = av.open(str(self.path))
        except (av.error.FFmpegError, OSError) as exc:
            raise StreamError(f"Could not open file {self.path}: {exc}") from exc
        stream = next((s for s in container.streams if s.type == "video"), None)
        if stream is None:
            container.close()
            raise StreamError(f"No video stream found in {self.path}")
        stream.thread_type = "AUTO"
        self._container = container
        self._stream = stream
        codec = stream.codec_context
        logger.info(
            "Video stream %d: codec=%s %dx%d pix_fmt=%s, %d streams in container",
            stream.index,
            codec.name,
            codec.width,
            codec.height,
            codec.pix_fmt,
            len(container.streams),
        )
        return self

    def close(self) -> None:
        if self._container is not None:
            self._container.close()
        self._container = None
        self._stream = None

    def __enter__(self) -> "MediaDecoder":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------- properties -----
    @property
    def stream(self) -> av.video.stream.VideoStream:
        if self._stream is None:
            raise StreamError("Decoder is not open")
        return self._stream

    @property
    def width(self) -> int:
        return self.stream.codec_context.width

    @property
    def height(self) -> int:
        return self.stream.codec_context.height

    # ----------------------------------------------------------- frame decode -----
    def frames(self) -> Iterator[av.VideoFrame]:
        """Yield decoded frames until the demuxer runs out of packets."""
        stream = self.stream
        try:
            packets = self._container.demux(stream)
            for packet in packets:
                yield from drain_frames(stream.codec_context, packet)
        except av.error.FFmpegError as exc:
            raise CodecError(f"Error reading packets from {self.path}: {exc}") from exc
