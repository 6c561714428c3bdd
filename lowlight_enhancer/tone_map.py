"""
Tone mapping module for over-bright results.

Gathers whole-image brightness statistics and, only when the image is
bright enough, compresses it with a Reinhard operator or a bounded
global gain. Dim images pass through untouched.
"""

from typing import Optional, Tuple
import logging
import numpy as np

from .buffer import PixelBuffer
from .config import EnhancementConfig, ToneMapVariant
from .stats import ScalarStatistics, brightness_statistics

logger = logging.getLogger(__name__)

MIN_GAIN = 0.8
MAX_GAIN = 1.2


def tone_map(buf: PixelBuffer, cfg: EnhancementConfig,
             stats: Optional[ScalarStatistics] = None) -> PixelBuffer:
    """
    Apply the configured tone-mapping operator when the gate opens.

    Args:
        buf: Denoised RGBA buffer
        cfg: Enhancement configuration with tone_map parameters
        stats: Precomputed statistics of ``buf``, gathered if omitted

    Returns:
        New buffer, equal to ``buf`` when the gate stays closed

    Example:
        >>> mapped = tone_map(clean, EnhancementConfig(tone_map_variant="adaptive-gain"))
    """
    return tone_map_with_stats(buf, cfg, stats)[0]


def tone_map_with_stats(buf: PixelBuffer, cfg: EnhancementConfig,
                        stats: Optional[ScalarStatistics] = None
                        ) -> Tuple[PixelBuffer, ScalarStatistics]:
    """Same as ``tone_map`` but also returns the statistics that drove the gate."""
    if stats is None:
        stats = brightness_statistics(buf)

    out = buf.copy()
    if not needs_tone_mapping(stats, cfg):
        logger.debug("Tone mapping skipped: avg=%.1f max=%.1f",
                     stats.avg_brightness, stats.max_brightness)
        return out, stats

    variant = cfg.tone_map_variant
    if variant == ToneMapVariant.REINHARD:
        out.write_rgb(reinhard(out.rgb, cfg.tone_map_exposure, cfg.tone_map_gamma))
    elif variant == ToneMapVariant.ADAPTIVE_GAIN:
        gain = adaptive_gain(stats.avg_brightness, cfg.tone_map_target_luminance)
        out.write_rgb(out.rgb.astype(np.float64) * gain)
    else:
        raise ValueError(f"Unknown tone_map_variant: {variant}. "
                         f"Supported: 'reinhard', 'adaptive-gain'")

    logger.debug("Tone mapping (%s): avg=%.1f max=%.1f",
                 variant.value, stats.avg_brightness, stats.max_brightness)
    return out, stats


def needs_tone_mapping(stats: ScalarStatistics, cfg: EnhancementConfig) -> bool:
    """True when the image is bright enough to be remapped."""
    return (stats.avg_brightness > cfg.tone_map_avg_threshold
            or stats.max_brightness > cfg.tone_map_max_threshold)


def reinhard(rgb: np.ndarray, exposure: float = 1.0, gamma: float = 1.0) -> np.ndarray:
    """
    Per-channel Reinhard operator x / (1 + x) with gamma correction.

    Args:
        rgb: Colour samples in [0, 255]
        exposure: Multiplier applied after normalisation
        gamma: Gamma, the output is raised to 1/gamma

    Returns:
        Float samples clamped to [0, 255]
    """
    x = rgb.astype(np.float64) / 255.0 * exposure
    tonemapped = x / (1.0 + x)
    corrected = np.power(tonemapped, 1.0 / gamma)
    return np.clip(corrected * 255.0, 0.0, 255.0)


def adaptive_gain(avg_brightness: float, target: float = 118.0) -> float:
    """Single global gain pulling average brightness toward ``target``, bounded to [0.8, 1.2]."""
    return float(np.clip(target / (avg_brightness + 1.0), MIN_GAIN, MAX_GAIN))
