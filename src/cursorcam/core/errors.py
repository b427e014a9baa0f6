"""Error taxonomy for the video transform."""

from __future__ import annotations


class TransformError(Exception):
    pass


class InputError(TransformError):
    """Configuration, mouse log or window descriptor could not be used."""


class StreamError(TransformError):
    """Input/output streams or codecs could not be set up."""


class CodecError(TransformError):
    """A send/receive call on a codec failed mid-run."""


class ResampleError(TransformError):
    """A scaling stage (inset, canvas upscale or zoom) failed."""
