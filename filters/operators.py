"""
Per-pixel kernel operators with a common interface.

Each operator is a frozen dataclass implementing KernelOperator. Operators
are pure: they read the input buffer and return values, never writing to it,
so one instance can be evaluated from many threads on the same buffer.

evaluate() computes a single pixel and defines the operator's semantics.
evaluate_columns() computes a whole column range at once with numpy and must
return exactly what evaluate() would for every pixel in that range. The
engine only calls evaluate_columns(); the base class falls back to looping
over evaluate().
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable

import numpy as np

from .reduction import INTENSITY_DTYPE

SOBEL_X = ((-1, 0, 1), (-2, 0, 2), (-1, 0, 1))
SOBEL_Y = ((1, 2, 1), (0, 0, 0), (-1, -2, -1))


class KernelOperator(ABC):
    """Base class for per-pixel operators run by the kernel engine."""

    @abstractmethod
    def evaluate(
        self, pixels: np.ndarray, x: int, y: int, width: int, height: int
    ) -> float:
        """Compute the output value of the pixel at (x, y).

        Args:
            pixels: Read-only 2D input buffer, indexed as pixels[y, x].
            x: Column of the pixel.
            y: Row of the pixel.
            width: Buffer width.
            height: Buffer height.

        Returns:
            The output value for (x, y).
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name for logging and debugging."""
        pass

    def evaluate_columns(self, pixels: np.ndarray, x_start: int, x_end: int) -> np.ndarray:
        """Compute every row of the columns [x_start, x_end).

        Returns:
            Array of shape (height, x_end - x_start).
        """
        height, width = pixels.shape
        out = np.zeros((height, x_end - x_start), dtype=INTENSITY_DTYPE)
        for y in range(height):
            for x in range(x_start, x_end):
                out[y, x - x_start] = self.evaluate(pixels, x, y, width, height)
        return out


@dataclass(frozen=True)
class FunctionKernel(KernelOperator):
    """Adapt a plain (pixels, x, y, width, height) -> float callable."""

    func: Callable[[np.ndarray, int, int, int, int], float]

    def evaluate(self, pixels, x, y, width, height):
        return self.func(pixels, x, y, width, height)

    @property
    def name(self) -> str:
        return getattr(self.func, "__name__", "function")


def as_kernel(kernel) -> KernelOperator:
    """Return kernel as a KernelOperator, wrapping plain callables."""
    if isinstance(kernel, KernelOperator):
        return kernel
    if callable(kernel):
        return FunctionKernel(kernel)
    raise TypeError(f"Expected KernelOperator or callable, got {type(kernel).__name__}")


def _padded_columns(pixels: np.ndarray, x_start: int, x_end: int, margin: int) -> np.ndarray:
    """Copy columns [x_start - margin, x_end + margin) with zeros outside the image.

    The result also has `margin` zero rows above and below, so window
    position (ky, kx) of output pixel (y, x) is padded[y + ky, x - x_start + kx].
    """
    height, width = pixels.shape
    lo = max(x_start - margin, 0)
    hi = min(x_end + margin, width)
    padded = np.zeros((height + 2 * margin, x_end - x_start + 2 * margin), dtype=np.float64)
    offset = lo - (x_start - margin)
    padded[margin:margin + height, offset:offset + (hi - lo)] = pixels[:, lo:hi]
    return padded


def _window_counts(positions: np.ndarray, radius: int, size: int) -> np.ndarray:
    """Number of in-bounds positions within radius of each position."""
    return np.minimum(positions + radius, size - 1) - np.maximum(positions - radius, 0) + 1


@dataclass(frozen=True)
class SobelOperator(KernelOperator):
    """Sobel gradient magnitude, |Gx| + |Gy|.

    Taps of the 3x3 kernel that fall outside the image are left out of the
    sum and the result is not renormalized, so border pixels see a partial
    kernel. On a constant image the interior is exactly 0 but the border is
    not.
    """

    def evaluate(self, pixels, x, y, width, height):
        gx = 0.0
        gy = 0.0
        for dy in range(max(y - 1, 0), min(y + 1, height - 1) + 1):
            for dx in range(max(x - 1, 0), min(x + 1, width - 1) + 1):
                value = float(pixels[dy, dx])
                gx += value * SOBEL_X[dy - y + 1][dx - x + 1]
                gy += value * SOBEL_Y[dy - y + 1][dx - x + 1]
        return abs(gx) + abs(gy)

    def evaluate_columns(self, pixels, x_start, x_end):
        height = pixels.shape[0]
        columns = x_end - x_start
        # Out-of-bounds taps read 0, which is the same as omitting them.
        padded = _padded_columns(pixels, x_start, x_end, 1)
        gx = np.zeros((height, columns), dtype=np.float64)
        gy = np.zeros((height, columns), dtype=np.float64)
        for ky in range(3):
            for kx in range(3):
                window = padded[ky:ky + height, kx:kx + columns]
                if SOBEL_X[ky][kx]:
                    gx += SOBEL_X[ky][kx] * window
                if SOBEL_Y[ky][kx]:
                    gy += SOBEL_Y[ky][kx] * window
        return (np.abs(gx) + np.abs(gy)).astype(INTENSITY_DTYPE)

    @property
    def name(self) -> str:
        return "sobel"


@dataclass(frozen=True)
class BoxAverageOperator(KernelOperator):
    """Mean of the square window of the given radius around each pixel.

    The window is clipped to the image and divided by the number of pixels
    actually inside it, so borders are normalized correctly. Radius 0 is the
    identity. Used both as the denoiser and as the blur.

    Attributes:
        radius: Half-size of the window; the full window is 2 * radius + 1.
    """

    radius: int = 1

    def __post_init__(self):
        if self.radius < 0:
            raise ValueError(f"radius must be non-negative, got {self.radius}")

    def evaluate(self, pixels, x, y, width, height):
        start_x, end_x = max(x - self.radius, 0), min(x + self.radius, width - 1)
        start_y, end_y = max(y - self.radius, 0), min(y + self.radius, height - 1)
        total = 0.0
        for dy in range(start_y, end_y + 1):
            for dx in range(start_x, end_x + 1):
                total += float(pixels[dy, dx])
        divisor = (end_x - start_x + 1) * (end_y - start_y + 1)
        return total / divisor

    def evaluate_columns(self, pixels, x_start, x_end):
        return self._box_mean(pixels, x_start, x_end).astype(INTENSITY_DTYPE)

    def _box_mean(self, pixels: np.ndarray, x_start: int, x_end: int) -> np.ndarray:
        height, width = pixels.shape
        radius = self.radius
        columns = x_end - x_start
        padded = _padded_columns(pixels, x_start, x_end, radius)

        # Separable window sum: rows first, then columns.
        row_sums = np.zeros((height + 2 * radius, columns), dtype=np.float64)
        for kx in range(2 * radius + 1):
            row_sums += padded[:, kx:kx + columns]
        total = np.zeros((height, columns), dtype=np.float64)
        for ky in range(2 * radius + 1):
            total += row_sums[ky:ky + height]

        count_y = _window_counts(np.arange(height), radius, height)
        count_x = _window_counts(np.arange(x_start, x_end), radius, width)
        return total / np.outer(count_y, count_x)

    @property
    def name(self) -> str:
        return f"box({self.radius})"


@dataclass(frozen=True)
class DilationOperator(BoxAverageOperator):
    """Box average that never promotes background.

    Pixels that are exactly 0 stay 0; every other pixel becomes the box
    average of its window. Run repeatedly with re-binarization in between
    (see filters.thresholds.rebinarize) this grows dense foreground and
    drops sparse foreground.
    """

    radius: int = 9

    def evaluate(self, pixels, x, y, width, height):
        if pixels[y, x] == 0:
            return 0.0
        return super().evaluate(pixels, x, y, width, height)

    def evaluate_columns(self, pixels, x_start, x_end):
        mean = self._box_mean(pixels, x_start, x_end)
        centre = pixels[:, x_start:x_end]
        return np.where(centre == 0, 0.0, mean).astype(INTENSITY_DTYPE)

    @property
    def name(self) -> str:
        return f"dilate({self.radius})"
