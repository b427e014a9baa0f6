"""H.264 encoder and muxer built on PyAV."""

from __future__ import annotations

import logging
from fractions import Fraction
from pathlib import Path
from typing import Iterator, Optional

import av

from ..core.errors import CodecError, StreamError
from ..core.planes import PIXEL_FORMAT
from ..core.sampler import SampledFrame, rescale_ts

logger = logging.getLogger(__name__)


OUTPUT_PROFILE = {
    "codec": "libx264",
    "fps": 60,
    "pix_fmt": PIXEL_FORMAT,
    "preset": "faster",
    "crf": 27,
    "gop_size": 10,
    "max_b_frames": 1,
}


def drain_packets(stream, frame: Optional[av.VideoFrame]) -> Iterator[av.Packet]:
    """
    Send one frame (``None`` to flush) and yield every packet ready.

    EAGAIN and EOF end the drain without error.
    """
    try:
        packets = stream.encode(frame)
    except (av.error.BlockingIOError, av.error.EOFError):
        return
    except av.error.FFmpegError as exc:
        raise CodecError(f"Error sending frame for encoding: {exc}") from exc
    yield from packets


class MediaEncoder:
    def __init__(self, path: Path, width: int, height: int, profile: Optional[dict] = None) -> None:
        self.path = Path(path)
        self.width = width
        self.height = height
        self.profile = dict(OUTPUT_PROFILE, **(profile or {}))
        self.packets_written = 0
        self._container: Optional[av.container.OutputContainer] = None
        self._stream = None
        self._flushed = False

    @property
    def fps(self) -> int:
        return int(self.profile["fps"])

    @property
    def codec_time_base(self) -> Fraction:
        return Fraction(1, self.fps)

    @property
    def stream_time_base(self) -> Fraction:
        if self._stream is None or self._stream.time_base is None:
            return self.codec_time_base
        return Fraction(self._stream.time_base)

    # ----------------------------------------------------------- lifecycle --------
    def open(self) -> "MediaEncoder":
        if self._container is not None:
            return self
        profile = self.profile
        logger.info("Setting up %s encoder for %s (%dx%d @ %d fps)",
                    profile["codec"], self.path, self.width, self.height, self.fps)
        try:
            container = av.open(str(self.path), mode="w")
        except (av.error.FFmpegError, OSError) as exc:
            raise StreamError(f"Could not create output context: {exc}") from exc

        try:
            stream = container.add_stream(
                profile["codec"],
                rate=self.fps,
                options={"preset": str(profile["preset"]), "crf": str(profile["crf"])},
            )
            stream.width = self.width
            stream.height = self.height
            stream.pix_fmt = profile["pix_fmt"]
            codec = stream.codec_context
            codec.time_base = self.codec_time_base
            codec.gop_size = int(profile["gop_size"])
            codec.max_b_frames = int(profile["max_b_frames"])
            # opens the codec and writes the container header
            container.start_encoding()
        except (av.error.FFmpegError, ValueError) as exc:
            container.close()
            raise StreamError(f"Failed to set up video encoder: {exc}") from exc

        self._container = container
        self._stream = stream
        logger.debug("Output stream time base %s", self.stream_time_base)
        return self

    def write(self, sampled: SampledFrame) -> int:
        """Encode one frame and mux every packet it releases."""
        frame = sampled.to_av()
        frame.pts = rescale_ts(sampled.pts, sampled.time_base, self.codec_time_base)
        frame.time_base = self.codec_time_base
        return self._mux(drain_packets(self._require_stream(), frame))

    def finish(self) -> None:
        """Flush buffered packets; the trailer is written by ``close``."""
        if self._flushed or self._container is None:
            return
        self._flushed = True
        count = self._mux(drain_packets(self._require_stream(), None))
        logger.debug("Flushed %d packets from encoder", count)

    def close(self) -> None:
        container = self._container
        self._container = None
        self._stream = None
        if container is None:
            return
        try:
            container.close()
        except av.error.FFmpegError as exc:
            raise CodecError(f"Error occurred when writing trailer: {exc}") from exc
        logger.info("Wrote %d packets to %s", self.packets_written, self.path)

    def __enter__(self) -> "MediaEncoder":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
            return
        try:
            self.close()
        except CodecError as close_exc:
            logger.warning("Could not finalise %s after failure: %s", self.path, close_exc)

    # ------------------------------------------------------------- helpers --------
    def _require_stream(self):
        if self._stream is None:
            raise StreamError("Encoder is not open")
        return self._stream

    def _mux(self, packets: Iterator[av.Packet]) -> int:
        count = 0
        for packet in packets:
            try:
                self._container.mux(packet)
            except av.error.FFmpegError as exc:
                raise CodecError(f"Error writing packet: {exc}") from exc
            count += 1
        self.packets_written += count
        return count
