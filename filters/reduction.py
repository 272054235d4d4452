"""
Channel reduction: collapse a decoded image to a single intensity plane.

Pure function: returns a new float32 array without modifying the input.
"""

import logging

import numpy as np

logger = logging.getLogger(__name__)

INTENSITY_DTYPE = np.float32


def reduce_to_intensity(pixels: np.ndarray) -> np.ndarray:
    """Reduce a multi-channel image to a float32 intensity buffer.

    The intensity of a pixel is the unweighted mean of its first three
    channels. No luminance weights and no gamma correction are applied.
    Images with fewer than three channels reduce to an all-zero buffer.

    Args:
        pixels: Image as (H, W, C) or (H, W) array. A 2D array is treated
               as a single-channel image.

    Returns:
        Intensity buffer with shape (H, W) and dtype float32.

    Raises:
        TypeError: If pixels is not a numpy array.
        ValueError: If pixels is not 2D or 3D.

    Examples:
        >>> rgb = np.zeros((2, 3, 3), dtype=np.uint8)
        >>> rgb[..., 0] = 30
        >>> reduce_to_intensity(rgb)[0, 0]
        10.0
    """
    if not isinstance(pixels, np.ndarray):
        raise TypeError(f"Expected numpy.ndarray, got {type(pixels).__name__}")

    if pixels.ndim < 2 or pixels.ndim > 3:
        raise ValueError(
            f"Image must be 2D or 3D array, got {pixels.ndim}D array with shape {pixels.shape}"
        )

    height, width = pixels.shape[:2]
    channels = pixels.shape[2] if pixels.ndim == 3 else 1

    if channels < 3:
        logger.debug("Image has %d channel(s), reducing to a blank buffer", channels)
        return np.zeros((height, width), dtype=INTENSITY_DTYPE)

    total = pixels[:, :, :3].astype(INTENSITY_DTYPE).sum(axis=2)
    return total / INTENSITY_DTYPE(3.0)
