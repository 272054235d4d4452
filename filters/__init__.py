"""
Pixel filters for edge mask extraction.

This package holds the computational core: the intensity reducer, the
fork-join kernel engine, the per-pixel operators it runs, and the threshold
selectors that turn a filtered buffer into a 0/255 mask. Everything here
works on plain numpy arrays and knows nothing about files.

Key components:
- reduction: reduce_to_intensity() collapses channels to a float32 plane
- engine: KernelEngine / apply_kernel() run an operator over every pixel
- operators: SobelOperator, BoxAverageOperator, DilationOperator
- thresholds: percentile and histogram-mode selectors, rebinarize()
"""

from .reduction import reduce_to_intensity, INTENSITY_DTYPE
from .engine import KernelEngine, apply_kernel, partition_columns, resolve_worker_count
from .operators import (
    KernelOperator,
    FunctionKernel,
    SobelOperator,
    BoxAverageOperator,
    DilationOperator,
    as_kernel,
)
from .thresholds import (
    MASK_DTYPE,
    percentile_threshold,
    apply_percentile_threshold,
    histogram_mode_threshold,
    apply_mode_threshold,
    truncate_levels,
    rebinarize,
)

__all__ = [
    # Reduction
    "reduce_to_intensity",
    "INTENSITY_DTYPE",
    # Engine
    "KernelEngine",
    "apply_kernel",
    "partition_columns",
    "resolve_worker_count",
    # Operators
    "KernelOperator",
    "FunctionKernel",
    "SobelOperator",
    "BoxAverageOperator",
    "DilationOperator",
    "as_kernel",
    # Thresholds
    "MASK_DTYPE",
    "percentile_threshold",
    "apply_percentile_threshold",
    "histogram_mode_threshold",
    "apply_mode_threshold",
    "truncate_levels",
    "rebinarize",
]
