"""
Global brightness statistics for tone mapping and reporting.

Computes the scalar aggregates the tone-mapping gate relies on, plus a
histogram summary of the brightness distribution used in batch reports.
"""

from dataclasses import dataclass
from typing import Dict
import numpy as np
import cv2

from .buffer import PixelBuffer


@dataclass(frozen=True)
class ScalarStatistics:
    """Average and maximum per-pixel brightness (R+G+B)/3 on the 0-255 scale."""

    avg_brightness: float
    max_brightness: float


def brightness_map(buf: PixelBuffer) -> np.ndarray:
    """Per-pixel brightness (R+G+B)/3 as float64 (H, W)."""
    return buf.rgb.astype(np.float64).sum(axis=2) / 3.0


def brightness_statistics(buf: PixelBuffer) -> ScalarStatistics:
    """
    Gather whole-image brightness statistics.

    Args:
        buf: RGBA buffer

    Returns:
        ScalarStatistics with average and maximum brightness

    Example:
        >>> stats = brightness_statistics(buf)
        >>> print(f"Mean brightness: {stats.avg_brightness:.1f}")
    """
    brightness = brightness_map(buf)
    return ScalarStatistics(avg_brightness=float(brightness.mean()),
                            max_brightness=float(brightness.max()))


def global_hist_stats(buf: PixelBuffer) -> Dict[str, float]:
    """
    Compute histogram statistics of the HSV value channel.

    Args:
        buf: RGBA buffer

    Returns:
        Dictionary containing:
        - mean: Average brightness value (0-1)
        - p01, p25, p50, p75, p99: Percentile values (0-1)
        - dark_ratio: Fraction of pixels with V < 30/255
        - bright_ratio: Fraction of pixels with V > 200/255
        - contrast: Standard deviation of V channel
    """
    img_hsv = cv2.cvtColor(np.ascontiguousarray(buf.rgb), cv2.COLOR_RGB2HSV)
    v_flat = img_hsv[:, :, 2].astype(np.float32).flatten() / 255.0

    p01, p25, p50, p75, p99 = np.percentile(v_flat, [1, 25, 50, 75, 99])

    return {
        "mean": float(np.mean(v_flat)),
        "p01": float(p01),
        "p25": float(p25),
        "p50": float(p50),
        "p75": float(p75),
        "p99": float(p99),
        "dark_ratio": float(np.mean(v_flat < (30.0 / 255.0))),
        "bright_ratio": float(np.mean(v_flat > (200.0 / 255.0))),
        "contrast": float(np.std(v_flat)),
    }
