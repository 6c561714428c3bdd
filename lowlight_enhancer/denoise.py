"""
Edge-aware denoising module.

Builds a Sobel edge map from a snapshot of the buffer and smooths flat
areas with a bilateral-style weighted average whose radius and blend
shrink as edge strength grows. Strong edges pass through unchanged.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Tuple
import logging
import numpy as np
import cv2

from .buffer import PixelBuffer, row_bands
from .config import EnhancementConfig

logger = logging.getLogger(__name__)

MAX_RADIUS = 2

# Rows filtered per step; bounds the float64 accumulators to a few MB per chunk
CHUNK_ROWS = 64


def denoise(buf: PixelBuffer, cfg: EnhancementConfig) -> PixelBuffer:
    """
    Apply edge-aware denoising.

    Args:
        buf: Refined RGBA buffer
        cfg: Enhancement configuration (edge_normalization,
            denoise_edge_threshold, denoise_blend_floor, intensity_sigma,
            workers)

    Returns:
        New buffer with smoothed colour channels and alpha untouched

    Example:
        >>> clean = denoise(refined, EnhancementConfig(workers=4))
    """
    out = buf.copy()
    snapshot = out.snapshot()

    edge_map = compute_edge_map(snapshot, cfg.edge_normalization)
    out.write_rgb(edge_aware_filter(snapshot, edge_map, cfg))

    logger.debug("Denoising: %.1f%% of pixels at or above edge threshold %.2f",
                 100.0 * float(np.mean(edge_map >= cfg.denoise_edge_threshold)),
                 cfg.denoise_edge_threshold)
    return out


def compute_edge_map(snapshot: np.ndarray, normalization: float = 1200.0) -> np.ndarray:
    """
    Normalised Sobel gradient magnitude summed over the colour channels.

    Border pixels have no full 3x3 neighbourhood and are left at 0; the
    filter excludes them separately, so 0 there never means "flat".

    Args:
        snapshot: Float colour samples (H, W, 3)
        normalization: Magnitude mapped to an edge value of 1

    Returns:
        Read-only edge map (H, W) with values in [0, 1]
    """
    h, w = snapshot.shape[:2]
    edge_map = np.zeros((h, w), dtype=np.float64)

    if h >= 3 and w >= 3:
        # Sobel is linear, so summing channels first equals summing per-channel gradients
        channel_sum = np.ascontiguousarray(snapshot.sum(axis=2))
        gx = cv2.Sobel(channel_sum, cv2.CV_64F, 1, 0, ksize=3)
        gy = cv2.Sobel(channel_sum, cv2.CV_64F, 0, 1, ksize=3)
        magnitude = np.sqrt(gx * gx + gy * gy) / normalization
        edge_map[1:-1, 1:-1] = np.minimum(1.0, magnitude[1:-1, 1:-1])

    edge_map.setflags(write=False)
    return edge_map


def filter_radius(edge_map: np.ndarray) -> np.ndarray:
    """Neighbourhood radius per pixel, 2 on perfectly flat pixels and 1 elsewhere."""
    return np.maximum(1, np.floor(2.0 * (1.0 - edge_map))).astype(np.int64)


def blend_factor(edge_map: np.ndarray, floor: float) -> np.ndarray:
    """Weight of the filtered value, decreasing with edge strength."""
    return np.maximum(floor, 1.0 - 2.0 * edge_map)


def edge_aware_filter(snapshot: np.ndarray, edge_map: np.ndarray,
                      cfg: EnhancementConfig, chunk_rows: int = CHUNK_ROWS) -> np.ndarray:
    """
    Bilateral-style smoothing of interior pixels below the edge threshold.

    Rows are split into bands which may run on a thread pool; each band
    is filtered ``chunk_rows`` rows at a time so the per-pixel weight
    accumulators stay bounded on large images. Every chunk reads only
    the shared snapshot and writes its own rows of the result.

    Args:
        snapshot: Read-only float colour samples (H, W, 3)
        edge_map: Edge map from ``compute_edge_map``
        cfg: Enhancement configuration
        chunk_rows: Rows filtered per step

    Returns:
        Float samples (H, W, 3) clamped to [0, 255]

    Raises:
        ValueError: If chunk_rows is not positive
    """
    if chunk_rows < 1:
        raise ValueError(f"chunk_rows must be >= 1, got {chunk_rows}")

    h, w = snapshot.shape[:2]
    result = np.array(snapshot, dtype=np.float64, copy=True)
    if h < 3 or w < 3:
        return result

    padded = np.pad(snapshot, ((MAX_RADIUS, MAX_RADIUS), (MAX_RADIUS, MAX_RADIUS), (0, 0)),
                    mode="edge")
    in_bounds = np.pad(np.ones((h, w), dtype=np.float64), MAX_RADIUS, mode="constant")

    def run_band(band: Tuple[int, int]) -> None:
        r0, r1 = band
        for start in range(r0, r1, chunk_rows):
            stop = min(start + chunk_rows, r1)
            result[start:stop] = _filter_rows(snapshot, padded, in_bounds, edge_map,
                                              (start, stop), cfg)

    bands = row_bands(h, cfg.workers)
    if len(bands) == 1:
        run_band(bands[0])
    else:
        with ThreadPoolExecutor(max_workers=len(bands)) as executor:
            # list() surfaces exceptions raised inside a band
            list(executor.map(run_band, bands))

    return np.clip(result, 0.0, 255.0)


def _filter_rows(snapshot: np.ndarray, padded: np.ndarray, in_bounds: np.ndarray,
                 edge_map: np.ndarray, band: Tuple[int, int],
                 cfg: EnhancementConfig) -> np.ndarray:
    """Filter rows [r0, r1) of the snapshot."""
    r0, r1 = band
    h, w = snapshot.shape[:2]
    center = snapshot[r0:r1]
    edges = edge_map[r0:r1]

    # Weighted sums over the radius-1 window and the full radius-2 window
    sums = {1: np.zeros_like(center), 2: np.zeros_like(center)}
    weights = {1: np.zeros_like(center), 2: np.zeros_like(center)}

    for dy in range(-MAX_RADIUS, MAX_RADIUS + 1):
        for dx in range(-MAX_RADIUS, MAX_RADIUS + 1):
            ys = slice(MAX_RADIUS + r0 + dy, MAX_RADIUS + r1 + dy)
            xs = slice(MAX_RADIUS + dx, MAX_RADIUS + dx + w)
            neighbour = padded[ys, xs]
            valid = in_bounds[ys, xs][:, :, np.newaxis]

            spatial = 1.0 / (1.0 + np.hypot(dy, dx))
            intensity = np.exp(-np.abs(neighbour - center) / cfg.intensity_sigma)
            weight = spatial * intensity * valid

            for radius in (1, 2):
                if max(abs(dy), abs(dx)) <= radius:
                    sums[radius] += weight * neighbour
                    weights[radius] += weight

    use_wide = (filter_radius(edges) >= 2)[:, :, np.newaxis]
    total = np.where(use_wide, sums[2], sums[1])
    weight_sum = np.where(use_wide, weights[2], weights[1])

    with np.errstate(divide="ignore", invalid="ignore"):
        filtered = np.where(weight_sum > 0, total / weight_sum, center)

    blend = blend_factor(edges, cfg.denoise_blend_floor)[:, :, np.newaxis]
    smoothed = filtered * blend + center * (1.0 - blend)

    rows = np.arange(r0, r1)[:, np.newaxis]
    cols = np.arange(w)[np.newaxis, :]
    interior = (rows > 0) & (rows < h - 1) & (cols > 0) & (cols < w - 1)
    apply = (interior & (edges < cfg.denoise_edge_threshold))[:, :, np.newaxis]

    return np.where(apply, smoothed, center)
