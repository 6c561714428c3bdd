"""
Exception hierarchy for the enhancement pipeline.

Every failure surfaced by the public API derives from PipelineError so
callers can catch one type and keep showing the original image.
"""


class PipelineError(Exception):
    """Base exception for enhancement pipeline errors."""


class DecodeError(PipelineError):
    """Raised when input cannot be interpreted as a raster buffer."""


class UnsupportedFormatError(PipelineError):
    """Raised when a buffer is not 4-channel, 8-bit RGBA."""


class EncodeError(PipelineError):
    """Raised when the enhanced buffer cannot be serialized."""


class ConfigError(PipelineError, ValueError):
    """Raised when an enhancement configuration value is invalid."""
