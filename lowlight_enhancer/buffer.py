"""
In-memory RGBA pixel buffer shared by every pipeline stage.

Wraps a row-major (H, W, 4) uint8 array and provides the copy and
snapshot operations stages use to avoid read-after-write hazards.
"""

from typing import List, Tuple, Union
import numpy as np

from .errors import DecodeError, UnsupportedFormatError

CHANNELS = 4
COLOR_CHANNELS = 3


class PixelBuffer:
    """
    RGBA raster with 8 bits per channel.

    The alpha channel is carried through every stage untouched. Stages
    never alias a caller's buffer: they work on ``copy()`` and read
    neighbour values from ``snapshot()``.

    Example:
        >>> buf = PixelBuffer.from_raw(raw_bytes, width=640, height=480)
        >>> print(buf.width, buf.height)
        640 480
    """

    __slots__ = ("data",)

    def __init__(self, data: np.ndarray):
        self.data = validate_array(data)

    # ─── Constructors ──────────────────────────────────────────────
    @classmethod
    def from_array(cls, array: np.ndarray) -> "PixelBuffer":
        """Build a buffer from an (H, W, 4) uint8 array, copying it."""
        return cls(np.array(array, copy=True))

    @classmethod
    def from_raw(cls, raw: Union[bytes, bytearray, memoryview, np.ndarray],
                 width: int, height: int, channels: int = CHANNELS) -> "PixelBuffer":
        """
        Build a buffer from interleaved RGBA samples.

        Args:
            raw: Contiguous sequence of width*height*4 bytes
            width: Image width in pixels
            height: Image height in pixels
            channels: Samples per pixel declared by the producer

        Returns:
            PixelBuffer owning a copy of the samples

        Raises:
            DecodeError: If dimensions are not positive or data is truncated
            UnsupportedFormatError: If channels is not 4 or samples are not 8-bit
        """
        if width <= 0 or height <= 0:
            raise DecodeError(f"Invalid dimensions: {width}x{height}")
        if channels != CHANNELS:
            raise UnsupportedFormatError(f"Expected {CHANNELS} channels, got {channels}")

        if isinstance(raw, np.ndarray):
            if raw.dtype != np.uint8:
                raise UnsupportedFormatError(f"Expected 8-bit samples, got {raw.dtype}")
            flat = raw.reshape(-1)
        else:
            flat = np.frombuffer(bytes(raw), dtype=np.uint8)

        expected = width * height * CHANNELS
        if flat.size != expected:
            raise DecodeError(
                f"Buffer length {flat.size} does not match {width}x{height}x{CHANNELS} = {expected}"
            )

        return cls(flat.reshape(height, width, CHANNELS).copy())

    # ─── Geometry ──────────────────────────────────────────────────
    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def shape(self) -> Tuple[int, int]:
        return self.height, self.width

    # ─── Channel views ─────────────────────────────────────────────
    @property
    def rgb(self) -> np.ndarray:
        """Writable view of the colour channels (H, W, 3)."""
        return self.data[:, :, :COLOR_CHANNELS]

    @property
    def alpha(self) -> np.ndarray:
        """Writable view of the alpha channel (H, W)."""
        return self.data[:, :, COLOR_CHANNELS]

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self.data.copy())

    def snapshot(self) -> np.ndarray:
        """
        Read-only float64 copy of the colour channels.

        Returns:
            Array (H, W, 3) that cannot be written to
        """
        snap = self.data[:, :, :COLOR_CHANNELS].astype(np.float64)
        snap.setflags(write=False)
        return snap

    def write_rgb(self, values: np.ndarray) -> None:
        """Round, clamp and store float colour values, leaving alpha intact."""
        self.data[:, :, :COLOR_CHANNELS] = to_uint8(values)

    def tobytes(self) -> bytes:
        return self.data.tobytes()

    def __eq__(self, other) -> bool:
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        return self.data.shape == other.data.shape and bool(np.array_equal(self.data, other.data))

    def __repr__(self) -> str:
        return f"PixelBuffer(width={self.width}, height={self.height})"


def validate_array(data: np.ndarray) -> np.ndarray:
    """
    Check that an array can back a PixelBuffer.

    Args:
        data: Candidate array

    Returns:
        The same array

    Raises:
        UnsupportedFormatError: If it is not (H, W, 4) uint8
        DecodeError: If either dimension is zero
    """
    if not isinstance(data, np.ndarray):
        raise DecodeError(f"Expected a numpy array, got {type(data).__name__}")
    if data.ndim != 3 or data.shape[2] != CHANNELS:
        raise UnsupportedFormatError(f"Buffer must have shape (H, W, {CHANNELS}), got {data.shape}")
    if data.dtype != np.uint8:
        raise UnsupportedFormatError(f"Buffer must be 8-bit, got {data.dtype}")
    if data.shape[0] == 0 or data.shape[1] == 0:
        raise DecodeError(f"Buffer has zero dimension: {data.shape[1]}x{data.shape[0]}")
    return data


def to_uint8(values: np.ndarray) -> np.ndarray:
    """Round half to even and clamp float samples to [0, 255]."""
    return np.clip(np.rint(values), 0, 255).astype(np.uint8)


def shifted(arr: np.ndarray, dy: int, dx: int, radius: int) -> np.ndarray:
    """
    View of ``arr`` offset by (dy, dx) and restricted to the interior.

    The interior excludes a border of ``radius`` pixels, so any
    |dy|, |dx| <= radius stays in bounds.
    """
    h, w = arr.shape[:2]
    return arr[radius + dy:h - radius + dy, radius + dx:w - radius + dx]


def row_bands(height: int, workers: int) -> List[Tuple[int, int]]:
    """Split ``range(height)`` into at most ``workers`` contiguous row ranges."""
    workers = max(1, min(workers, height))
    bounds = np.linspace(0, height, workers + 1).astype(int)
    return [(int(a), int(b)) for a, b in zip(bounds[:-1], bounds[1:]) if b > a]
