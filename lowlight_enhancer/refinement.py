"""
Detail and colour refinement module.

Restores colour with an adaptive saturation boost, then recovers detail
with a 3x3 unsharp-style kernel whose strength follows local variance.
"""

from typing import Tuple
import logging
import numpy as np
import cv2

from .buffer import PixelBuffer, shifted
from .config import EnhancementConfig

logger = logging.getLogger(__name__)

LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)

# Sharpening scale bounds relative to sharpen_amount
MIN_SHARPEN_SCALE = 0.5
MAX_SHARPEN_SCALE = 2.0

_NEIGHBOUR_KERNEL = np.array([[1, 1, 1],
                              [1, 0, 1],
                              [1, 1, 1]], dtype=np.float64)


def refine_details(buf: PixelBuffer, cfg: EnhancementConfig) -> PixelBuffer:
    """
    Apply adaptive saturation followed by adaptive sharpening.

    Args:
        buf: Curve-enhanced RGBA buffer
        cfg: Enhancement configuration

    Returns:
        New buffer with refined colour channels and alpha untouched

    Example:
        >>> refined = refine_details(lifted, EnhancementConfig())
    """
    out = buf.copy()

    out.write_rgb(adaptive_saturation(out.snapshot(), cfg.saturation_factor,
                                      cfg.saturation_floor, cfg.saturation_reference))

    # Sharpening reads the post-saturation snapshot
    out.write_rgb(adaptive_sharpen(out.snapshot(), cfg.sharpen_amount, cfg.sharpen_blend,
                                   cfg.variance_radius, cfg.variance_reference))

    logger.debug("Detail refinement: saturation=%.2f blend=%.2f",
                 cfg.saturation_factor, cfg.sharpen_blend)
    return out


def luminance(rgb: np.ndarray) -> np.ndarray:
    """Rec. 601 luma (H, W) of float colour samples."""
    return rgb @ LUMA_WEIGHTS


def saturation_factor_map(rgb: np.ndarray, base: float, floor: float,
                          reference: float) -> Tuple[np.ndarray, np.ndarray]:
    """
    Per-pixel saturation factor, lower for already saturated pixels.

    Args:
        rgb: Float colour samples (H, W, 3)
        base: Factor given to fully grey pixels (upper bound)
        floor: Minimum factor so near-grey pixels still get a lift
        reference: Saturation magnitude at which the factor reaches zero
            before flooring

    Returns:
        Tuple of (factor map (H, W), luminance (H, W))
    """
    luma = luminance(rgb)
    chroma = rgb - luma[:, :, np.newaxis]
    magnitude = np.sqrt(np.sum(chroma * chroma, axis=2))

    factor = np.clip(base * (1.0 - magnitude / reference), floor, base)
    return factor, luma


def adaptive_saturation(rgb: np.ndarray, base: float = 0.3, floor: float = 0.1,
                        reference: float = 100.0) -> np.ndarray:
    """
    Push each channel away from the pixel's luminance.

    Args:
        rgb: Float colour samples (H, W, 3)
        base: Saturation factor for grey pixels
        floor: Minimum saturation factor
        reference: Saturation magnitude scale

    Returns:
        Float samples clamped to [0, 255]
    """
    factor, luma = saturation_factor_map(rgb, base, floor, reference)
    luma = luma[:, :, np.newaxis]
    saturated = rgb + (rgb - luma) * factor[:, :, np.newaxis]
    return np.clip(saturated, 0.0, 255.0)


def local_variance(gray: np.ndarray, radius: int = 1) -> np.ndarray:
    """
    Variance over a (2r+1)x(2r+1) window.

    The window is clamped at the image edge by replicating border
    samples, so edge pixels never see zero-filled neighbours.

    Args:
        gray: Float image (H, W)
        radius: Window radius

    Returns:
        Non-negative variance map (H, W)
    """
    ksize = (2 * radius + 1, 2 * radius + 1)
    gray = np.ascontiguousarray(gray, dtype=np.float64)
    mean = cv2.blur(gray, ksize, borderType=cv2.BORDER_REPLICATE)
    mean_sq = cv2.blur(gray * gray, ksize, borderType=cv2.BORDER_REPLICATE)
    return np.maximum(mean_sq - mean * mean, 0.0)


def sharpen_scale(variance: np.ndarray, reference: float) -> np.ndarray:
    """Map local variance to a sharpening scale, strongest in flat regions."""
    scale = MAX_SHARPEN_SCALE / (1.0 + variance / reference)
    return np.clip(scale, MIN_SHARPEN_SCALE, MAX_SHARPEN_SCALE)


def adaptive_sharpen(snapshot: np.ndarray, amount: float = 1.0, blend: float = 0.7,
                     radius: int = 1, reference: float = 100.0) -> np.ndarray:
    """
    Variance-adaptive unsharp mask blended with the unsharpened value.

    With a scale of 1 and amount 1 this is the classic
    [[-1,-1,-1],[-1,9,-1],[-1,-1,-1]] kernel. Border rows and columns of
    width 1 keep their snapshot value.

    Args:
        snapshot: Read-only float colour samples (H, W, 3)
        amount: Base sharpening strength
        blend: Weight of the sharpened value in the final mix
        radius: Radius of the local variance window
        reference: Variance at which the scale equals 1

    Returns:
        Float samples clamped to [0, 255]
    """
    result = np.array(snapshot, dtype=np.float64, copy=True)
    h, w = snapshot.shape[:2]
    if h < 3 or w < 3:
        return result

    neighbour_sum = cv2.filter2D(snapshot.copy(), -1, _NEIGHBOUR_KERNEL)
    current = shifted(snapshot, 0, 0, 1)
    detail = 8.0 * current - shifted(neighbour_sum, 0, 0, 1)

    scale = sharpen_scale(local_variance(snapshot.mean(axis=2), radius), reference)
    scale = shifted(scale, 0, 0, 1)[:, :, np.newaxis]

    sharpened = current + amount * scale * detail
    mixed = blend * sharpened + (1.0 - blend) * current
    result[1:-1, 1:-1] = np.clip(mixed, 0.0, 255.0)
    return result
