"""
Low-Light Image Enhancement Pipeline

A numpy/OpenCV package that lifts exposure with a quadratic light
curve, refines colour and detail, removes noise with an edge-aware
filter and tone maps over-bright results, all on RGBA pixel buffers.
"""

__version__ = "1.0.0"
__author__ = "Computer Vision Team"

from .buffer import PixelBuffer
from .config import EnhancementConfig, ToneMapVariant
from .errors import PipelineError, DecodeError, UnsupportedFormatError, EncodeError, ConfigError
from .io import read_image, save_image, decode_image, encode_image
from .stats import ScalarStatistics, brightness_statistics, global_hist_stats
from .curve_estim import enhance_curve
from .refinement import refine_details
from .denoise import denoise, compute_edge_map
from .tone_map import tone_map
from .pipeline import EnhancementResult, enhance, enhance_image, enhance_bytes

__all__ = [
    "PixelBuffer",
    "EnhancementConfig",
    "ToneMapVariant",
    "PipelineError",
    "DecodeError",
    "UnsupportedFormatError",
    "EncodeError",
    "ConfigError",
    "read_image",
    "save_image",
    "decode_image",
    "encode_image",
    "ScalarStatistics",
    "brightness_statistics",
    "global_hist_stats",
    "enhance_curve",
    "refine_details",
    "denoise",
    "compute_edge_map",
    "tone_map",
    "EnhancementResult",
    "enhance",
    "enhance_image",
    "enhance_bytes",
]
