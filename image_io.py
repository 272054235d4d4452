"""Image decode/encode around the mask pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import cv2
import numpy as np

from errors import ImageLoadError, ImageWriteError

logger = logging.getLogger(__name__)


@dataclass
class LoadedImage:
    """A decoded image with its dimensions.

    Attributes:
        pixels: uint8 array of shape (height, width, channels), channels in
               RGB(A) order.
        width: Image width in pixels.
        height: Image height in pixels.
        channels: Number of interleaved channels.
    """

    pixels: np.ndarray
    width: int
    height: int
    channels: int


def _to_uint8(pixels: np.ndarray) -> np.ndarray:
    if pixels.dtype == np.uint8:
        return pixels
    if pixels.dtype == np.uint16:
        return (pixels >> 8).astype(np.uint8)
    # Float images (e.g. EXR/HDR) are expected in [0, 1].
    return np.clip(pixels * 255.0, 0, 255).astype(np.uint8)


def load_image(path: str | Path) -> LoadedImage:
    """Decode an image file into an interleaved uint8 buffer.

    The file's own channel count is kept (grayscale stays single-channel,
    alpha is kept), so the reducer decides what to do with it.

    Args:
        path: Image file path.

    Returns:
        LoadedImage with pixels in RGB(A) order.

    Raises:
        ImageLoadError: If the file does not exist or cannot be decoded.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise ImageLoadError(file_path, "image file not found")

    pixels = cv2.imread(str(file_path), cv2.IMREAD_UNCHANGED)
    if pixels is None:
        raise ImageLoadError(file_path, "unable to decode image")

    pixels = _to_uint8(pixels)
    if pixels.ndim == 2:
        pixels = pixels[:, :, np.newaxis]
    elif pixels.shape[2] == 3:
        pixels = cv2.cvtColor(pixels, cv2.COLOR_BGR2RGB)
    elif pixels.shape[2] == 4:
        pixels = cv2.cvtColor(pixels, cv2.COLOR_BGRA2RGBA)

    height, width, channels = pixels.shape
    logger.debug("Decoded %s: %dx%d, %d channel(s)", file_path, width, height, channels)
    return LoadedImage(pixels=pixels, width=width, height=height, channels=channels)


def write_mask(path: str | Path, mask: np.ndarray) -> Path:
    """Encode a single-channel uint8 mask to an image file.

    The format follows the file extension. Parent directories are created.

    Args:
        path: Output file path.
        mask: 2D uint8 array.

    Returns:
        The path written.

    Raises:
        ValueError: If mask is not a 2D uint8 array.
        ImageWriteError: If the image could not be encoded or written.
    """
    if not isinstance(mask, np.ndarray) or mask.ndim != 2:
        raise ValueError("mask must be a 2D numpy array")
    if mask.dtype != np.uint8:
        raise ValueError(f"mask must be uint8, got {mask.dtype}")

    output_path = Path(path)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        written = cv2.imwrite(str(output_path), mask)
    except (OSError, cv2.error) as exc:
        raise ImageWriteError(output_path, str(exc)) from exc
    if not written:
        raise ImageWriteError(output_path)
    return output_path
