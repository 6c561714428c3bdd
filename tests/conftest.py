import numpy as np
import pytest

from lowlight_enhancer.buffer import PixelBuffer


def make_buffer(rgb, alpha=255):
    """Build a PixelBuffer from an (H, W, 3) array and a scalar or (H, W) alpha."""
    rgb = np.asarray(rgb, dtype=np.uint8)
    h, w = rgb.shape[:2]
    data = np.empty((h, w, 4), dtype=np.uint8)
    data[:, :, :3] = rgb
    data[:, :, 3] = alpha
    return PixelBuffer(data)


def uniform_buffer(value, height=8, width=8, alpha=255):
    return make_buffer(np.full((height, width, 3), value, dtype=np.uint8), alpha)


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def random_buffer(rng):
    data = rng.integers(0, 256, size=(12, 16, 4), dtype=np.uint8)
    return PixelBuffer(data)


@pytest.fixture
def dark_noisy_buffer(rng):
    rgb = np.clip(rng.normal(40, 4, size=(16, 16, 3)), 0, 255).astype(np.uint8)
    alpha = rng.integers(0, 256, size=(16, 16), dtype=np.uint8)
    return make_buffer(rgb, alpha)


@pytest.fixture
def checkerboard():
    pattern = (np.indices((4, 4)).sum(axis=0) % 2).astype(bool)
    gray = np.where(pattern, 200, 40).astype(np.uint8)
    return make_buffer(np.repeat(gray[:, :, np.newaxis], 3, axis=2))


@pytest.fixture
def hard_edge():
    """8x8 buffer, black on the left half and white on the right half."""
    rgb = np.zeros((8, 8, 3), dtype=np.uint8)
    rgb[:, 4:] = 255
    return make_buffer(rgb)


@pytest.fixture
def adversarial_buffers(rng):
    return {
        "black": uniform_buffer(0),
        "white": uniform_buffer(255),
        "gray": uniform_buffer(128),
        "random": PixelBuffer(rng.integers(0, 256, size=(10, 9, 4), dtype=np.uint8)),
        "tiny": PixelBuffer(rng.integers(0, 256, size=(1, 2, 4), dtype=np.uint8)),
    }
