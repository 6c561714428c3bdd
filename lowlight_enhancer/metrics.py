"""
Before/after comparison metrics for enhanced images.

No-reference measures (entropy, colorfulness, brightness and contrast
gain) plus PSNR/MAE against the input, reported per image by the CLI.
"""

from typing import Dict
import numpy as np
import cv2
from sklearn.metrics import mean_squared_error
from scipy.stats import entropy

from .buffer import PixelBuffer


def compute_metrics(original: PixelBuffer, enhanced: PixelBuffer) -> Dict[str, float]:
    """
    Compute comparison metrics between the input and the enhanced image.

    Args:
        original: Buffer passed to the pipeline
        enhanced: Buffer returned by the pipeline

    Returns:
        Dictionary with computed metrics

    Example:
        >>> metrics = compute_metrics(buf, enhanced)
        >>> print(f"Entropy: {metrics['output_entropy']:.3f}")
    """
    if original.shape != enhanced.shape:
        raise ValueError(f"Shape mismatch: {original.shape} vs {enhanced.shape}")

    orig_rgb = np.ascontiguousarray(original.rgb)
    enh_rgb = np.ascontiguousarray(enhanced.rgb)

    return {
        "brightness_enhancement": compute_brightness_enhancement(orig_rgb, enh_rgb),
        "contrast_enhancement": compute_contrast_enhancement(orig_rgb, enh_rgb),
        "input_entropy": compute_entropy(orig_rgb),
        "output_entropy": compute_entropy(enh_rgb),
        "colorfulness": compute_colorfulness(enh_rgb),
        "psnr": compute_psnr(orig_rgb, enh_rgb),
        "mae": compute_mae(orig_rgb, enh_rgb),
    }


def compute_psnr(reference: np.ndarray, enhanced: np.ndarray) -> float:
    """
    Peak Signal-to-Noise Ratio in dB, infinite for identical images.

    Args:
        reference: Reference image uint8
        enhanced: Enhanced image uint8
    """
    mse = mean_squared_error(reference.reshape(-1).astype(np.float64),
                             enhanced.reshape(-1).astype(np.float64))
    if mse == 0:
        return float("inf")
    return float(20 * np.log10(255.0 / np.sqrt(mse)))


def compute_mae(reference: np.ndarray, enhanced: np.ndarray) -> float:
    return float(np.mean(np.abs(reference.astype(np.float32) - enhanced.astype(np.float32))))


def compute_entropy(image: np.ndarray) -> float:
    """
    Shannon entropy (bits) of the grayscale histogram.

    Args:
        image: RGB image uint8

    Returns:
        Entropy value, 0 for a constant image
    """
    gray = cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)
    hist, _ = np.histogram(gray, bins=256, range=(0, 256))
    return float(entropy(hist, base=2))


def compute_colorfulness(image: np.ndarray) -> float:
    """
    Colorfulness metric of Hasler and Süsstrunk.

    Args:
        image: RGB image uint8

    Returns:
        Colorfulness score
    """
    img = image.astype(np.float32)
    R, G, B = img[:, :, 0], img[:, :, 1], img[:, :, 2]

    rg = R - G
    yb = 0.5 * (R + G) - B

    std_rg_yb = np.sqrt(np.std(rg) ** 2 + np.std(yb) ** 2)
    mean_rg_yb = np.sqrt(np.mean(rg) ** 2 + np.mean(yb) ** 2)

    return float(std_rg_yb + 0.3 * mean_rg_yb)


def compute_brightness_enhancement(original: np.ndarray, enhanced: np.ndarray) -> float:
    """Relative change of mean intensity."""
    orig_brightness = np.mean(original.astype(np.float32))
    enh_brightness = np.mean(enhanced.astype(np.float32))
    return float((enh_brightness - orig_brightness) / (orig_brightness + 1e-6))


def compute_contrast_enhancement(original: np.ndarray, enhanced: np.ndarray) -> float:
    """Relative change of intensity standard deviation."""
    orig_contrast = np.std(original.astype(np.float32))
    enh_contrast = np.std(enhanced.astype(np.float32))
    return float((enh_contrast - orig_contrast) / (orig_contrast + 1e-6))
