"""
Image codec utilities around the enhancement core.

Decodes encoded images into RGBA pixel buffers and encodes buffers back
to JPEG or PNG bytes with OpenCV. HEIF/HEIC input, which OpenCV cannot
read, is decoded through Pillow with the pillow-heif plugin. The pipeline itself never touches
files; only this module and the CLI do.
"""

from io import BytesIO
from pathlib import Path
from typing import Union
import numpy as np
import cv2
from PIL import Image
from pillow_heif import register_heif_opener

from .buffer import PixelBuffer
from .errors import DecodeError, EncodeError, UnsupportedFormatError

SUPPORTED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".heic", ".heif"}

# ISO-BMFF major brands of HEIF still images and sequences
HEIF_BRANDS = {b"heic", b"heix", b"heim", b"heis", b"hevc", b"hevx", b"mif1", b"msf1"}

register_heif_opener()

_EXTENSION_FORMATS = {
    ".jpg": "jpeg",
    ".jpeg": "jpeg",
    ".png": "png",
}


def decode_image(data: bytes) -> PixelBuffer:
    """
    Decode an encoded image into an RGBA buffer.

    Grayscale and 3-channel images are expanded to RGBA with opaque alpha.

    Args:
        data: Encoded image bytes (JPEG, PNG, WebP, HEIC, ...)

    Returns:
        PixelBuffer with 8-bit RGBA samples

    Raises:
        DecodeError: If the bytes cannot be decoded
        UnsupportedFormatError: If the decoded image is not 8-bit

    Example:
        >>> buf = decode_image(Path("night.jpg").read_bytes())
    """
    if not data:
        raise DecodeError("Empty image data")

    encoded = np.frombuffer(data, dtype=np.uint8)
    try:
        img = cv2.imdecode(encoded, cv2.IMREAD_UNCHANGED)
    except cv2.error as e:
        raise DecodeError(f"Could not decode image: {e}") from e

    if img is None:
        if is_heif(data):
            return _decode_heif(data)
        raise DecodeError("Could not decode image data")

    if img.dtype != np.uint8:
        raise UnsupportedFormatError(f"Expected 8-bit samples, got {img.dtype}")

    if img.ndim == 2:
        rgba = cv2.cvtColor(img, cv2.COLOR_GRAY2RGBA)
    elif img.shape[2] == 3:
        rgba = cv2.cvtColor(img, cv2.COLOR_BGR2RGBA)
    elif img.shape[2] == 4:
        rgba = cv2.cvtColor(img, cv2.COLOR_BGRA2RGBA)
    else:
        raise UnsupportedFormatError(f"Unsupported channel count: {img.shape[2]}")

    return PixelBuffer(rgba)


def is_heif(data: bytes) -> bool:
    """True if ``data`` starts with an ISO-BMFF ftyp box carrying a HEIF brand."""
    return len(data) >= 12 and data[4:8] == b"ftyp" and bytes(data[8:12]) in HEIF_BRANDS


def _decode_heif(data: bytes) -> PixelBuffer:
    try:
        with Image.open(BytesIO(data)) as img:
            rgba = np.array(img.convert("RGBA"), dtype=np.uint8)
    except (OSError, ValueError, RuntimeError) as e:
        raise DecodeError(f"Could not decode HEIF image: {e}") from e

    return PixelBuffer(rgba)


def encode_image(buf: PixelBuffer, fmt: str = "jpeg", quality: int = 92) -> bytes:
    """
    Encode an RGBA buffer.

    JPEG has no alpha channel, so alpha is dropped; PNG keeps it.

    Args:
        buf: RGBA buffer
        fmt: 'jpeg' or 'png'
        quality: JPEG quality (0-100), only used for JPEG

    Returns:
        Encoded image bytes

    Raises:
        EncodeError: If the format is unknown or encoding fails
    """
    try:
        if fmt == "jpeg":
            img = cv2.cvtColor(buf.data, cv2.COLOR_RGBA2BGR)
            ok, encoded = cv2.imencode(".jpg", img, [cv2.IMWRITE_JPEG_QUALITY, int(quality)])
        elif fmt == "png":
            img = cv2.cvtColor(buf.data, cv2.COLOR_RGBA2BGRA)
            ok, encoded = cv2.imencode(".png", img, [cv2.IMWRITE_PNG_COMPRESSION, 9])
        else:
            raise EncodeError(f"Unknown format: {fmt}. Supported: 'jpeg', 'png'")
    except cv2.error as e:
        raise EncodeError(f"Failed to encode {fmt}: {e}") from e

    if not ok:
        raise EncodeError(f"Failed to encode {fmt}")

    return encoded.tobytes()


def read_image(path: Union[str, Path]) -> PixelBuffer:
    """
    Read an image file into an RGBA buffer.

    Args:
        path: Path to image file

    Returns:
        PixelBuffer with 8-bit RGBA samples

    Raises:
        FileNotFoundError: If image file doesn't exist
        DecodeError: If the file cannot be decoded
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Image file not found: {path}")

    return decode_image(path.read_bytes())


def save_image(buf: PixelBuffer, path: Union[str, Path], quality: int = 92) -> None:
    """
    Save an RGBA buffer, choosing the encoder from the file extension.

    Args:
        buf: RGBA buffer
        path: Output file path (.jpg, .jpeg or .png)
        quality: JPEG quality (0-100), only used for JPEG files

    Raises:
        EncodeError: If the extension is unsupported or encoding fails
    """
    path = Path(path)
    fmt = format_for_path(path)

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(encode_image(buf, fmt, quality))


def format_for_path(path: Union[str, Path]) -> str:
    """Encoder name for an output path."""
    ext = Path(path).suffix.lower()
    try:
        return _EXTENSION_FORMATS[ext]
    except KeyError:
        raise EncodeError(f"Unsupported output extension: {ext}") from None


def extension_for_format(fmt: str) -> str:
    return ".png" if fmt == "png" else ".jpg"
