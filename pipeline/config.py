"""
Configuration for the edge mask pipeline.

Every filter parameter is carried by EdgeMaskConfig so runs are reproducible
and easy to vary. Defaults come from the top-level config module.
"""

from dataclasses import dataclass, field
from typing import Optional, Any

import numpy as np

from config import (
    KERNEL_WORKERS,
    DENOISE_COUNT,
    DENOISE_RADIUS,
    PERCENTILE_DIVISOR,
    PRE_BLUR_COUNT,
    BLUR_COUNT,
    BLUR_RADIUS,
    MODE_LOW,
    MODE_HIGH,
    CERTAINTY,
    DILATE_COUNT,
    DILATE_RADIUS,
    BINARIZE_CUTOFF,
)
from errors import ConfigError


@dataclass(frozen=True)
class EdgeMaskConfig:
    """Configuration for both pipeline recipes.

    This immutable configuration object parameterizes every stage. Fields a
    recipe does not use are ignored by it.

    Attributes:
        denoise_count: Box-average passes after Sobel (edge recipe).
        denoise_radius: Window radius of the denoise passes.
        percentile_divisor: Black point rank divisor (4 = 25th percentile).
        pre_blur_count: Blur passes before Sobel (region recipe).
        blur_count: Blur passes after Sobel (region recipe).
        blur_radius: Window radius of every blur pass.
        certainty: Half-width of the band around the histogram mode that
                  counts as foreground.
        mode_low: Smallest truncated value that votes for the mode.
        mode_high: Largest truncated value that votes for the mode.
        dilate_count: Dilation passes closing the region mask.
        dilate_radius: Window radius of the dilation passes.
        binarize_cutoff: Values above this snap to 255 after each dilation.
        workers: Threads per kernel pass. None means one per CPU.
    """

    # Edge recipe
    denoise_count: int = DENOISE_COUNT
    denoise_radius: int = DENOISE_RADIUS
    percentile_divisor: int = PERCENTILE_DIVISOR

    # Region recipe
    pre_blur_count: int = PRE_BLUR_COUNT
    blur_count: int = BLUR_COUNT
    blur_radius: int = BLUR_RADIUS
    certainty: int = CERTAINTY
    mode_low: int = MODE_LOW
    mode_high: int = MODE_HIGH
    dilate_count: int = DILATE_COUNT
    dilate_radius: int = DILATE_RADIUS
    binarize_cutoff: int = BINARIZE_CUTOFF

    # Execution
    workers: Optional[int] = KERNEL_WORKERS

    def validate(self) -> None:
        """Validate configuration parameters.

        Raises:
            ConfigError: If any parameter is invalid.
        """
        for name in ("denoise_count", "pre_blur_count", "blur_count", "dilate_count"):
            value = getattr(self, name)
            if value < 0:
                raise ConfigError(f"{name} must be non-negative, got {value}")

        for name in ("denoise_radius", "blur_radius", "dilate_radius"):
            value = getattr(self, name)
            if value < 0:
                raise ConfigError(f"{name} must be non-negative, got {value}")

        if self.percentile_divisor < 1:
            raise ConfigError(
                f"percentile_divisor must be at least 1, got {self.percentile_divisor}"
            )

        if self.certainty < 1:
            raise ConfigError(f"certainty must be at least 1, got {self.certainty}")

        if not (0 <= self.mode_low <= self.mode_high <= 255):
            raise ConfigError(
                "mode range must satisfy 0 <= mode_low <= mode_high <= 255, "
                f"got [{self.mode_low}, {self.mode_high}]"
            )

        if not (0 <= self.binarize_cutoff <= 255):
            raise ConfigError(
                f"binarize_cutoff must be within [0, 255], got {self.binarize_cutoff}"
            )

        if self.workers is not None and self.workers < 1:
            raise ConfigError(f"workers must be positive, got {self.workers}")


@dataclass
class MaskResult:
    """Result of running a recipe on one image.

    Attributes:
        original: Decoded input pixels. Preserved for reference only.
        mask: Final uint8 mask, values 0 or 255, shape (height, width).
        threshold: Threshold chosen for this image (black point for the edge
                  recipe, histogram mode for the region recipe; None if no
                  value could be chosen).
        recipe: Name of the recipe that produced the mask.
        config: The configuration used.
        artifact_paths: Dict mapping step names to saved file paths (if artifact saving enabled).
        metadata: Aggregated metadata from all steps.
    """

    original: np.ndarray
    mask: np.ndarray
    threshold: Optional[float]
    recipe: str
    config: EdgeMaskConfig
    artifact_paths: dict[str, str] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def dimensions(self) -> tuple[int, int]:
        """Get (width, height) of the mask."""
        h, w = self.mask.shape[:2]
        return w, h

    @property
    def foreground_ratio(self) -> float:
        """Fraction of mask pixels that are foreground (255)."""
        if self.mask.size == 0:
            return 0.0
        return float(np.count_nonzero(self.mask)) / self.mask.size
