"""
Threshold selection: turn a continuous buffer into a 0/255 mask.

Two strategies are provided:
- Percentile black point (edge recipe): the nonzero value at a fixed rank
  of the normalized distribution.
- Histogram mode (region recipe): the most frequent low intensity, with a
  tolerance band around it.

All functions are pure and run on the calling thread.
"""

from __future__ import annotations

import logging

import numpy as np

from config import (
    BINARIZE_CUTOFF,
    CERTAINTY,
    MASK_BACKGROUND,
    MASK_FOREGROUND,
    MODE_HIGH,
    MODE_LOW,
    PERCENTILE_DIVISOR,
)

logger = logging.getLogger(__name__)

MASK_DTYPE = np.uint8


def _normalized(pixels: np.ndarray) -> np.ndarray:
    """Scale pixels so the maximum maps to 255 (all zeros if the max is 0)."""
    values = np.asarray(pixels, dtype=np.float64)
    peak = float(values.max()) if values.size else 0.0
    scale = 255.0 / peak if peak > 0 else 0.0
    return values * scale


def _black_point(scaled: np.ndarray, divisor: int) -> float:
    nonzero = scaled[scaled != 0]
    if nonzero.size == 0:
        return 0.0
    # divisor == 1 would point one past the end; take the maximum instead.
    rank = min(nonzero.size // divisor, nonzero.size - 1)
    return float(np.partition(nonzero, rank)[rank])


def percentile_threshold(pixels: np.ndarray, divisor: int = PERCENTILE_DIVISOR) -> float:
    """Select the black point of a buffer.

    The buffer is normalized so its maximum becomes 255. Among the nonzero
    normalized values, the one at rank size // divisor (0-based, ascending,
    clamped to the largest value) is the black point. Only that rank is
    selected; the values are not fully sorted.

    Args:
        pixels: Buffer of non-negative values.
        divisor: Rank divisor. 4 selects the 25th percentile from the bottom.

    Returns:
        The black point on the normalized 0-255 scale, or 0.0 when the buffer
        has no nonzero values.

    Raises:
        ValueError: If divisor is less than 1.

    Examples:
        >>> percentile_threshold(np.array([[0, 1, 2, 3], [4, 5, 6, 255]]))
        2.0
    """
    if divisor < 1:
        raise ValueError(f"divisor must be at least 1, got {divisor}")
    return _black_point(_normalized(pixels), divisor)


def apply_percentile_threshold(
    pixels: np.ndarray,
    divisor: int = PERCENTILE_DIVISOR,
) -> tuple[np.ndarray, float]:
    """Binarize a buffer against its percentile black point.

    Pixels whose normalized value is above the black point become background
    (0); all others become foreground (255). Strong gradients therefore come
    out black on a white mask.

    Returns:
        Tuple of (uint8 mask, black point).
    """
    if divisor < 1:
        raise ValueError(f"divisor must be at least 1, got {divisor}")
    scaled = _normalized(pixels)
    threshold = _black_point(scaled, divisor)
    mask = np.where(scaled > threshold, MASK_BACKGROUND, MASK_FOREGROUND).astype(MASK_DTYPE)
    return mask, threshold


def truncate_levels(pixels: np.ndarray) -> np.ndarray:
    """Truncate values toward zero and saturate them to the 8-bit range."""
    levels = np.trunc(np.asarray(pixels, dtype=np.float64))
    return np.clip(levels, 0, 255).astype(np.int64)


def histogram_mode_threshold(
    pixels: np.ndarray,
    low: int = MODE_LOW,
    high: int = MODE_HIGH,
) -> int | None:
    """Return the most frequent truncated value within [low, high].

    Values outside the range do not vote. Ties go to the smallest value.

    Returns:
        The mode, or None if no pixel falls inside the range.

    Examples:
        >>> histogram_mode_threshold(np.array([[3.7, 3.1, 9.0, 9.5, 70.0]]))
        3
    """
    if low > high:
        raise ValueError(f"low must not exceed high, got low={low} high={high}")
    levels = truncate_levels(pixels)
    votes = levels[(levels >= low) & (levels <= high)]
    if votes.size == 0:
        return None
    counts = np.bincount(votes, minlength=high + 1)
    # argmax returns the first maximum, i.e. the smallest tied value.
    return int(np.argmax(counts[low:high + 1])) + low


def apply_mode_threshold(
    pixels: np.ndarray,
    certainty: int = CERTAINTY,
    low: int = MODE_LOW,
    high: int = MODE_HIGH,
) -> tuple[np.ndarray, int | None]:
    """Mark pixels close to the histogram mode as foreground.

    A pixel is foreground (255) when its truncated value is less than
    `certainty` away from the mode, background (0) otherwise. Without a mode
    the whole mask is background.

    Returns:
        Tuple of (uint8 mask, mode or None).
    """
    if certainty < 1:
        raise ValueError(f"certainty must be at least 1, got {certainty}")
    threshold = histogram_mode_threshold(pixels, low, high)
    if threshold is None:
        logger.warning("No values in [%d, %d] to vote for a threshold; mask is empty", low, high)
        return np.full(np.shape(pixels), MASK_BACKGROUND, dtype=MASK_DTYPE), None
    distance = np.abs(truncate_levels(pixels) - threshold)
    mask = np.where(distance < certainty, MASK_FOREGROUND, MASK_BACKGROUND).astype(MASK_DTYPE)
    return mask, threshold


def rebinarize(pixels: np.ndarray, cutoff: int = BINARIZE_CUTOFF) -> np.ndarray:
    """Snap a buffer back to 0/255: values above cutoff become 255.

    Returns:
        float32 buffer holding only 0.0 and 255.0, ready for the next pass.
    """
    return np.where(
        np.asarray(pixels) > cutoff, MASK_FOREGROUND, MASK_BACKGROUND
    ).astype(np.float32)
