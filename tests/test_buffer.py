import numpy as np
import pytest

from lowlight_enhancer.buffer import PixelBuffer, row_bands, to_uint8
from lowlight_enhancer.errors import DecodeError, PipelineError, UnsupportedFormatError


def test_from_raw_layout():
    raw = bytes(range(2 * 3 * 4))
    buf = PixelBuffer.from_raw(raw, width=3, height=2)

    assert buf.shape == (2, 3)
    assert buf.data[0, 1].tolist() == [4, 5, 6, 7]
    assert buf.alpha[1, 2] == 23
    assert buf.tobytes() == raw


def test_from_raw_truncated():
    with pytest.raises(DecodeError):
        PixelBuffer.from_raw(bytes(10), width=2, height=2)


@pytest.mark.parametrize("width,height", [(0, 4), (4, 0), (-1, 2)])
def test_from_raw_zero_dimensions(width, height):
    with pytest.raises(DecodeError):
        PixelBuffer.from_raw(b"", width=width, height=height)


def test_from_raw_wrong_channel_count():
    with pytest.raises(UnsupportedFormatError):
        PixelBuffer.from_raw(bytes(12), width=2, height=2, channels=3)


def test_from_raw_wrong_bit_depth():
    with pytest.raises(UnsupportedFormatError):
        PixelBuffer.from_raw(np.zeros(16, dtype=np.uint16), width=2, height=2)


@pytest.mark.parametrize("array", [
    np.zeros((4, 4, 3), dtype=np.uint8),
    np.zeros((4, 4), dtype=np.uint8),
    np.zeros((4, 4, 4), dtype=np.float32),
])
def test_rejects_non_rgba8(array):
    with pytest.raises(UnsupportedFormatError):
        PixelBuffer(array)


def test_rejects_empty_array():
    with pytest.raises(DecodeError):
        PixelBuffer(np.zeros((0, 5, 4), dtype=np.uint8))


def test_errors_share_base_class():
    assert issubclass(DecodeError, PipelineError)
    assert issubclass(UnsupportedFormatError, PipelineError)


def test_from_array_copies():
    source = np.zeros((2, 2, 4), dtype=np.uint8)
    buf = PixelBuffer.from_array(source)
    buf.data[0, 0, 0] = 9
    assert source[0, 0, 0] == 0


def test_snapshot_is_read_only_copy(random_buffer):
    snap = random_buffer.snapshot()

    assert snap.shape == (random_buffer.height, random_buffer.width, 3)
    assert snap.dtype == np.float64
    with pytest.raises(ValueError):
        snap[0, 0, 0] = 1.0

    random_buffer.data[0, 0, 0] = 255 - random_buffer.data[0, 0, 0]
    assert snap[0, 0, 0] != random_buffer.data[0, 0, 0]


def test_write_rgb_clamps_and_keeps_alpha(random_buffer):
    alpha = random_buffer.alpha.copy()
    values = np.full((random_buffer.height, random_buffer.width, 3), 300.0)
    values[0, 0] = [-5.0, 0.4, 254.6]

    random_buffer.write_rgb(values)

    assert random_buffer.rgb[0, 0].tolist() == [0, 0, 255]
    assert random_buffer.rgb[1, 1].tolist() == [255, 255, 255]
    assert np.array_equal(random_buffer.alpha, alpha)


def test_to_uint8_rounds_half_to_even():
    assert to_uint8(np.array([0.5, 1.5, 2.5, 127.5])).tolist() == [0, 2, 2, 128]


@pytest.mark.parametrize("height,workers", [(10, 1), (10, 3), (3, 8), (1, 4)])
def test_row_bands_cover_rows(height, workers):
    bands = row_bands(height, workers)

    assert bands[0][0] == 0
    assert bands[-1][1] == height
    assert len(bands) <= workers
    for (_, end), (start, _) in zip(bands[:-1], bands[1:]):
        assert end == start
